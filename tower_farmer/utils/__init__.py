"""
Utility modules for Tower Farmer
"""
