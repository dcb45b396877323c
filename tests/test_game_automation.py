"""
Tests for the automation controller and its per-state supervisors
"""

import threading
import time
import unittest

from tower_farmer.core.frame_broadcaster import FrameBroadcaster
from tower_farmer.modules.game_automation import GameAutomation
from tower_farmer.modules.game_state_detector import GameState
from tower_farmer.utils.cancellation import CancellationToken
from tower_farmer.utils.config import AutomationConfig, BotConfig
from tower_farmer.utils.exceptions import ADBError, TemplateNotFoundError
from tower_farmer.utils.game_resources import Templates

from tests.helpers import FakeADB, FakeVision, wait_until

LOGGER_NAME = 'tower_farmer.modules.game_automation'

MAIN_MENU_TAPS = {(10, 10), (20, 20)}
BATTLE_TAP = (30, 30)
DEFEAT_TAP = (40, 40)


class ScriptedDetector:
    """Reports whatever state the test sets"""

    def __init__(self, state=GameState.UNKNOWN):
        self.state = state
        self.error = None

    def detect_game_state(self, frame):
        if self.error is not None:
            raise self.error
        return self.state


class FailingADB(FakeADB):

    def take_screenshot(self, token=None):
        raise ADBError("device offline")


def make_vision():
    return FakeVision({
        Templates.MAIN_MENU_CLAIM_GEMS: (10, 10),
        Templates.MAIN_MENU_BATTLE_START: (20, 20),
        Templates.BATTLE_CLAIM_GEMS: BATTLE_TAP,
        Templates.DEFEAT_RETRY: DEFEAT_TAP,
    })


class GameAutomationTest(unittest.TestCase):

    def setUp(self):
        self.config = BotConfig(automation=AutomationConfig(poll_interval=0.01, track_upgrades=False))
        self.adb = FakeADB()
        self.detector = ScriptedDetector()
        self.broadcaster = FrameBroadcaster(poll_interval=0.01)
        self.automation = GameAutomation(self.adb, self.config, vision=make_vision(),
                                         detector=self.detector, broadcaster=self.broadcaster)
        self.token = CancellationToken()

    def tearDown(self):
        self.token.cancel()
        self.automation.stop()

    def poll(self, times=5, delay=0.03):
        for _ in range(times):
            self.automation.poll_once(self.token)
            time.sleep(delay)

    def poll_until(self, predicate, timeout=3.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            self.automation.poll_once(self.token)
            if predicate():
                return True
            time.sleep(0.02)
        return False

    def test_unknown_state_runs_no_supervisor(self):
        self.poll(3)

        self.assertEqual(self.automation.current_state, GameState.UNKNOWN)
        self.assertFalse(self.automation.supervisor_running)
        self.assertEqual(self.adb.tap_log(), [])

    def test_state_sequence_joins_previous_supervisor(self):
        self.poll(2)

        self.detector.state = GameState.MAIN_MENU
        self.assertTrue(self.poll_until(lambda: MAIN_MENU_TAPS <= set(self.adb.tap_log())))
        main_menu_thread = self.automation._state_thread

        self.detector.state = GameState.IN_BATTLE
        self.automation.poll_once(self.token)
        self.assertFalse(main_menu_thread.is_alive())

        self.assertTrue(self.poll_until(lambda: BATTLE_TAP in self.adb.tap_log()))
        battle_thread = self.automation._state_thread

        self.detector.state = GameState.DEFEAT
        self.automation.poll_once(self.token)
        self.assertFalse(battle_thread.is_alive())
        self.assertTrue(self.poll_until(lambda: DEFEAT_TAP in self.adb.tap_log()))

        taps = self.adb.tap_log()
        last_main_menu = max(i for i, tap in enumerate(taps) if tap in MAIN_MENU_TAPS)
        self.assertLess(last_main_menu, taps.index(BATTLE_TAP))

        first_defeat = taps.index(DEFEAT_TAP)
        self.assertNotIn(BATTLE_TAP, taps[first_defeat:])
        self.assertEqual(self.automation.current_state, GameState.DEFEAT)

    def test_returning_to_unknown_stops_supervisor(self):
        self.detector.state = GameState.DEFEAT
        self.assertTrue(self.poll_until(lambda: DEFEAT_TAP in self.adb.tap_log()))

        self.detector.state = GameState.UNKNOWN
        self.automation.poll_once(self.token)

        self.assertFalse(self.automation.supervisor_running)
        tap_count = len(self.adb.tap_log())
        self.poll(3)
        self.assertEqual(len(self.adb.tap_log()), tap_count)

    def test_upgrade_tracking_runs_beside_gem_collection(self):
        self.config.automation.track_upgrades = True
        started = threading.Event()
        self.automation.upgrade_manager.run = lambda token: (started.set(), token.wait())

        self.detector.state = GameState.IN_BATTLE
        self.automation.poll_once(self.token)

        self.assertTrue(started.wait(3))
        self.assertTrue(self.poll_until(lambda: BATTLE_TAP in self.adb.tap_log()))

    def test_failing_battle_routine_leaves_siblings_running(self):
        def broken_color_search(frame, origin, orbit_radius):
            raise RuntimeError("colour search exploded")

        self.automation.vision.visible[Templates.BATTLE_TOWER] = (400, 400)
        self.automation.vision.detect_by_color = broken_color_search

        with self.assertLogs(LOGGER_NAME, level='ERROR') as logs:
            self.detector.state = GameState.IN_BATTLE
            self.assertTrue(self.poll_until(
                lambda: any("Error in GatherMovingGems" in line for line in logs.output)))

            claims = self.adb.tap_log().count(BATTLE_TAP)
            self.assertTrue(self.poll_until(lambda: self.adb.tap_log().count(BATTLE_TAP) > claims))

        self.assertTrue(any("colour search exploded" in line for line in logs.output))

    def test_moving_gem_is_tapped(self):
        self.automation.vision.visible[Templates.BATTLE_TOWER] = (400, 400)
        self.automation.vision.color_point = (77, 88)

        with self.assertLogs(LOGGER_NAME, level='INFO') as logs:
            self.detector.state = GameState.IN_BATTLE
            self.assertTrue(self.poll_until(lambda: (77, 88) in self.adb.tap_log()))

        self.assertTrue(any("Claimed moving gem" in line for line in logs.output))

    def test_no_tower_means_no_moving_gem_tap(self):
        self.automation.vision.color_point = (77, 88)

        self.detector.state = GameState.IN_BATTLE
        self.assertTrue(self.poll_until(lambda: BATTLE_TAP in self.adb.tap_log()))
        self.poll(3)

        self.assertNotIn((77, 88), self.adb.tap_log())

    def test_device_errors_are_logged_not_raised(self):
        automation = GameAutomation(FailingADB(), self.config, vision=make_vision(),
                                    detector=self.detector, broadcaster=FrameBroadcaster())
        with self.assertLogs(LOGGER_NAME, level='ERROR') as logs:
            automation.poll_once(self.token)
        automation.stop()

        self.assertIn("device offline", logs.output[0])

    def test_missing_template_is_fatal(self):
        self.detector.error = TemplateNotFoundError("Template not found: battle_start.png")

        with self.assertRaises(TemplateNotFoundError):
            self.automation.poll_once(self.token)

    def test_run_until_cancelled(self):
        self.detector.state = GameState.MAIN_MENU
        worker = threading.Thread(target=self.automation.run, args=(self.token,), daemon=True)
        worker.start()

        self.assertTrue(wait_until(lambda: MAIN_MENU_TAPS <= set(self.adb.tap_log())))
        self.token.cancel()
        worker.join(3)

        self.assertFalse(worker.is_alive())
        self.assertFalse(self.automation.supervisor_running)
        self.assertTrue(self.broadcaster.completed)

    def test_stop_completes_broadcaster(self):
        self.detector.state = GameState.MAIN_MENU
        self.automation.poll_once(self.token)

        self.automation.stop()

        self.assertFalse(self.automation.supervisor_running)
        self.assertTrue(self.broadcaster.completed)


if __name__ == '__main__':
    unittest.main()
