"""
Tower Farmer - Main Package
Screen-driven automation of a mobile tower defense game over ADB and computer vision.
"""

__version__ = "1.0.0"
__description__ = "Automation of a mobile tower defense game using ADB and computer vision"
