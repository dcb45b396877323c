"""
Device Manager - Device discovery and selection at startup
"""

import time
from typing import List, Optional

from .adb_manager import ADBManager
from ..utils.logger import get_logger
from ..utils.exceptions import DeviceNotFoundError, ADBError

logger = get_logger(__name__)


class DeviceManager:
    """
    Finds the device to automate, recovering a stuck ADB server when nothing is listed
    """

    def __init__(self, adb: Optional[ADBManager] = None, retries: int = 5,
                 retry_delay: float = 2.0, sleep=time.sleep):
        self.adb = adb or ADBManager()
        self.retries = retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def discover_devices(self) -> List[str]:
        """List connected devices, treating a transport failure as none"""
        try:
            devices = self.adb.get_connected_devices()
        except ADBError as e:
            logger.warning(f"Error listing devices: {e}")
            return []

        logger.info(f"Found {len(devices)} device(s): {', '.join(devices) or '-'}")
        return devices

    def wait_for_device(self, preferred: Optional[str] = None) -> str:
        """
        Select a device, retrying a bounded number of times

        Args:
            preferred: Serial to use when several devices are connected

        Returns:
            Serial of the selected device

        Raises:
            DeviceNotFoundError: if nothing usable appears after all retries
        """
        for attempt in range(1, self.retries + 1):
            devices = self.discover_devices()

            if preferred and preferred in devices:
                return preferred
            if devices and not preferred:
                return devices[0]

            if preferred and devices:
                logger.warning(f"Device {preferred} not connected (attempt {attempt}/{self.retries})")
            else:
                logger.warning(f"No devices found (attempt {attempt}/{self.retries}), resetting ADB server")
                try:
                    self.adb.kill_server()
                except ADBError as e:
                    logger.warning(f"Could not reset ADB server: {e}")

            if attempt < self.retries:
                self._sleep(self.retry_delay)

        target = preferred or "any device"
        raise DeviceNotFoundError(f"No connection to {target} after {self.retries} attempts")
