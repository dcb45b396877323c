"""
Core modules - device bridge and frame distribution
"""

from .adb_manager import ADBManager
from .device_manager import DeviceManager
from .frame_broadcaster import FrameBroadcaster

__all__ = ['ADBManager', 'DeviceManager', 'FrameBroadcaster']
