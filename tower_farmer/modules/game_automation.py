"""
Game Automation - Main polling loop and per-state supervisors
Captures the screen, classifies it, and keeps exactly one supervisor running
for the current game state
"""

import threading
from typing import Callable, List, Optional

import numpy as np

from ..core.adb_manager import ADBManager
from ..core.frame_broadcaster import FrameBroadcaster
from ..utils.cancellation import CancellationToken
from ..utils.config import BotConfig, config_manager
from ..utils.exceptions import ADBError, ConfigurationError, OperationCancelledError
from ..utils.game_resources import Templates
from ..utils.logger import get_device_logger
from .game_state_detector import GameState, GameStateDetector
from .upgrade_manager import UpgradeManager
from .vision import Vision


class GameAutomation:
    """
    Automation controller for one device

    The main loop publishes every capture to a FrameBroadcaster. Supervisors
    consume frames from it and tap through the ADB manager. A state change
    cancels the running supervisor and joins it before the next one starts.
    """

    def __init__(self, adb: ADBManager,
                 config: Optional[BotConfig] = None,
                 vision: Optional[Vision] = None,
                 detector: Optional[GameStateDetector] = None,
                 broadcaster: Optional[FrameBroadcaster] = None):
        """
        Initialize game automation

        Args:
            adb: ADB manager bound to the device to automate
            config: Bot configuration, the global configuration if None
            vision: Vision engine, built from config if None
            detector: State detector, built on the vision engine if None
            broadcaster: Frame broadcaster shared with the supervisors
        """
        self.adb = adb
        self.config = config or config_manager.get_config()
        self.vision = vision or Vision(self.config.vision)
        self.detector = detector or GameStateDetector(self.vision)
        self.broadcaster = broadcaster or FrameBroadcaster()
        self.logger = get_device_logger(__name__, adb.device_id or "-")

        self.upgrade_manager = UpgradeManager(
            self.adb, self.vision, self.broadcaster, self.config.upgrades, log=self.logger
        )

        self.current_state = GameState.UNKNOWN
        self._state_token = CancellationToken()
        self._state_thread: Optional[threading.Thread] = None

    def run(self, token: CancellationToken) -> None:
        """Poll the device until the token is cancelled"""
        self.logger.info("Starting automation controller")

        try:
            while True:
                self.poll_once(token)
                token.wait(self.config.automation.poll_interval)
        except OperationCancelledError:
            self.logger.info("Automation controller cancelled")
        finally:
            self.stop()

    def poll_once(self, token: CancellationToken) -> None:
        """
        Capture, classify, switch supervisor if the state changed, then publish the frame

        Raises:
            OperationCancelledError: if the token fired during the capture
            ConfigurationError: on a missing template asset
        """
        try:
            frame = self.adb.take_screenshot(token)
            detected_state = self.detector.detect_game_state(frame)

            if detected_state != self.current_state:
                self.logger.info(f"State changed: {self.current_state.name} -> {detected_state.name}")
                self._switch_state(detected_state)

            self.broadcaster.publish(frame)
        except (OperationCancelledError, ConfigurationError):
            raise
        except ADBError as e:
            self.logger.error(f"Device error: {e}")
        except Exception as e:
            self.logger.error(f"Error in GameAutomation: {e}", exc_info=True)

    def stop(self) -> None:
        """Stop the running supervisor and close the broadcaster"""
        self._stop_supervisor()
        self.broadcaster.complete()
        self.logger.info("Automation controller stopped")

    @property
    def supervisor_running(self) -> bool:
        return self._state_thread is not None and self._state_thread.is_alive()

    def _stop_supervisor(self) -> None:
        self._state_token.cancel()
        if self._state_thread is not None:
            self._state_thread.join()
            self._state_thread = None

    def _switch_state(self, state: GameState) -> None:
        self._stop_supervisor()

        self.current_state = state
        self._state_token = CancellationToken()

        if state == GameState.UNKNOWN:
            return

        self._state_thread = threading.Thread(
            target=self._handle_state,
            args=(state, self._state_token),
            name=f"supervisor-{state.value}",
            daemon=True,
        )
        self._state_thread.start()

    def _handle_state(self, state: GameState, token: CancellationToken) -> None:
        if state == GameState.MAIN_MENU:
            self._guarded("HandleMainMenu", self._handle_main_menu, token)
        elif state == GameState.IN_BATTLE:
            self._handle_in_battle(token)
        elif state == GameState.DEFEAT:
            self._guarded("HandleDefeat", self._handle_defeat, token)

    def _guarded(self, name: str, routine: Callable[[CancellationToken], None],
                 token: CancellationToken) -> None:
        """Run a routine, treating cancellation as a normal exit and logging anything else"""
        try:
            routine(token)
        except OperationCancelledError:
            self.logger.debug(f"{name} cancelled")
        except Exception as e:
            self.logger.error(f"Error in {name}: {e}", exc_info=True)

    def _handle_main_menu(self, token: CancellationToken) -> None:
        while not token.is_cancelled:
            frame = self.broadcaster.wait(token)
            self._find_and_tap(frame, Templates.MAIN_MENU_CLAIM_GEMS, token)
            self._find_and_tap(frame, Templates.MAIN_MENU_BATTLE_START, token)

    def _handle_defeat(self, token: CancellationToken) -> None:
        while not token.is_cancelled:
            frame = self.broadcaster.wait(token)
            self._find_and_tap(frame, Templates.DEFEAT_RETRY, token)

    def _handle_in_battle(self, token: CancellationToken) -> None:
        routines = [
            ("GatherGems", self._gather_gems),
            ("GatherMovingGems", self._gather_moving_gems),
        ]
        if self.config.automation.track_upgrades:
            routines.append(("UpgradeManager", self.upgrade_manager.run))

        threads: List[threading.Thread] = []
        for name, routine in routines:
            thread = threading.Thread(
                target=self._guarded, args=(name, routine, token),
                name=f"battle-{name}", daemon=True,
            )
            thread.start()
            threads.append(thread)

        for thread in threads:
            thread.join()

    def _gather_gems(self, token: CancellationToken) -> None:
        while not token.is_cancelled:
            frame = self.broadcaster.wait(token)
            self._find_and_tap(frame, Templates.BATTLE_CLAIM_GEMS, token, "Claimed ad gem")

    def _gather_moving_gems(self, token: CancellationToken) -> None:
        orbit_radius = self.config.vision.orbit_radius

        while not token.is_cancelled:
            frame = self.broadcaster.wait(token)

            tower = self.vision.find_template(frame, Templates.BATTLE_TOWER)
            if tower is None:
                continue

            point = self.vision.detect_by_color(frame, tower.point, orbit_radius)
            if point is not None:
                self.logger.info("Claimed moving gem")
                self.adb.tap(point[0], point[1], token)

    def _find_and_tap(self, frame: np.ndarray, template: str, token: CancellationToken,
                      success_message: Optional[str] = None) -> bool:
        match = self.vision.find_template(frame, template)
        if match is not None:
            self.adb.tap(match.x, match.y, token)
            if success_message:
                self.logger.info(success_message)
            return True
        return False
