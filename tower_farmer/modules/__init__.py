"""
Game modules - vision, state detection, automation and upgrade tracking
"""
