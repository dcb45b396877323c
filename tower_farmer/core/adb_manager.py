"""
ADB Manager - Android Debug Bridge operations for a single device
Lists devices, captures the screen and delivers taps
"""

import subprocess
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from ..utils.logger import get_logger
from ..utils.exceptions import ADBError, ConnectionTimeoutError
from ..utils.cancellation import CancellationToken

logger = get_logger(__name__)


class ADBManager:
    """
    Manages ADB operations for Android devices/emulators
    """

    def __init__(self, device_id: Optional[str] = None, timeout: int = 30,
                 adb_path: Optional[str] = None):
        """
        Initialize ADB Manager

        Args:
            device_id: Serial of the device to capture from and tap on
            timeout: Default timeout for ADB operations in seconds
            adb_path: Optional path to ADB executable, 'adb' from PATH otherwise
        """
        self.device_id = device_id
        self.timeout = timeout
        self.adb_path = adb_path

        if self.adb_path and not Path(self.adb_path).is_file():
            logger.warning(f"Provided ADB path does not exist: {self.adb_path}, using 'adb' from PATH")
            self.adb_path = None

    def _get_adb_command(self, args: List[str]) -> List[str]:
        """Build ADB command with proper path"""
        return [self.adb_path or 'adb'] + args

    def _get_device_command(self, args: List[str]) -> List[str]:
        if not self.device_id:
            raise ADBError("No device selected")
        return self._get_adb_command(['-s', self.device_id] + args)

    def _run(self, cmd: List[str], text: bool = True, timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        try:
            result = subprocess.run(cmd, capture_output=True, text=text,
                                    timeout=timeout or self.timeout)
        except subprocess.TimeoutExpired:
            raise ConnectionTimeoutError(f"ADB command timeout: {' '.join(cmd)}")
        except OSError as e:
            raise ADBError(f"Could not run {cmd[0]}: {e}")

        if result.returncode != 0:
            stderr = result.stderr if text else result.stderr.decode('utf-8', errors='replace')
            raise ADBError(f"ADB command failed ({result.returncode}): {' '.join(cmd)}: {stderr.strip()}")
        return result

    def get_connected_devices(self) -> List[str]:
        """Get list of connected Android devices/emulators"""
        result = self._run(self._get_adb_command(['devices']))

        devices = []
        for line in result.stdout.splitlines():
            if 'device' in line and 'List' not in line:
                devices.append(line.split('\t')[0].strip())
        return devices

    def kill_server(self) -> None:
        """Restart the ADB transport by killing the server; the next command respawns it"""
        logger.info("Killing ADB server")
        self._run(self._get_adb_command(['kill-server']))

    def take_screenshot(self, token: Optional[CancellationToken] = None) -> np.ndarray:
        """
        Capture the device screen as a BGR image

        Raises:
            ADBError: if the capture fails or the PNG cannot be decoded
            OperationCancelledError: if the token fired around the capture
        """
        if token is not None:
            token.raise_if_cancelled()

        result = self._run(self._get_device_command(['exec-out', 'screencap', '-p']), text=False)

        if token is not None:
            token.raise_if_cancelled()

        buffer = np.frombuffer(result.stdout, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        if image is None:
            raise ADBError(f"Could not decode screenshot from {self.device_id} ({buffer.size} bytes)")

        return image

    def tap(self, x: int, y: int, token: Optional[CancellationToken] = None) -> None:
        """
        Tap the screen at (x, y)

        Raises:
            ADBError: if the tap command fails
            OperationCancelledError: if the token fired before the tap
        """
        if token is not None:
            token.raise_if_cancelled()

        logger.debug(f"Tap at ({x}, {y}) on {self.device_id}")
        self._run(self._get_device_command(['shell', 'input', 'tap', str(int(x)), str(int(y))]))
