"""
Upgrade Manager - Reads the in-battle upgrade panels and keeps the latest known values
"""

import re
import threading
import time
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..core.adb_manager import ADBManager
from ..core.frame_broadcaster import FrameBroadcaster
from ..utils.cancellation import CancellationToken
from ..utils.config import UpgradeConfig
from ..utils.exceptions import OperationCancelledError
from ..utils.game_resources import Templates
from ..utils.logger import get_logger
from .game_state_detector import UpgradeWindow
from .upgrades import Upgrade, UpgradeOption, lookup_upgrade
from .vision import Vision

logger = get_logger(__name__)

# Template that is visible while each window is open
WINDOW_TEMPLATES: Mapping[UpgradeWindow, Tuple[str, ...]] = MappingProxyType({
    UpgradeWindow.ATTACK: (Templates.BATTLE_ATTACK_UPGRADE,),
    UpgradeWindow.DEFENSE: (Templates.BATTLE_DEFENSE_UPGRADE,),
    UpgradeWindow.UTILITY: (Templates.BATTLE_UTILITY_UPGRADE,),
})

# Button that opens each window
WINDOW_BUTTONS: Mapping[UpgradeWindow, str] = MappingProxyType({
    UpgradeWindow.ATTACK: Templates.BATTLE_ATTACK_ON,
    UpgradeWindow.DEFENSE: Templates.BATTLE_DEFENSE_OFF,
    UpgradeWindow.UTILITY: Templates.BATTLE_ECO_OFF,
})

NON_NUMERIC = re.compile(r'[^0-9.]')


def format_number(value: float) -> str:
    """150.5 -> '150.5', 1200.0 -> '1200'"""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


class UpgradeManager:
    """
    Cycles through the attack, defense and utility windows, reads their panels
    and maintains the latest UpgradeOption per Upgrade
    """

    def __init__(self, adb: ADBManager, vision: Vision, broadcaster: FrameBroadcaster,
                 config: Optional[UpgradeConfig] = None, log=None):
        self.adb = adb
        self.vision = vision
        self.broadcaster = broadcaster
        self.config = config or UpgradeConfig()
        self.logger = log or logger

        self._upgrades: Dict[Upgrade, UpgradeOption] = {}
        self._lock = threading.Lock()

    def run(self, token: CancellationToken) -> None:
        """Refresh every window, report, and refresh again periodically until cancelled"""
        try:
            while True:
                self.refresh_all(token)
                self.print_upgrades()

                next_refresh = time.monotonic() + self.config.refresh_interval
                while time.monotonic() < next_refresh:
                    self.broadcaster.wait(token)
        except OperationCancelledError:
            self.logger.debug("Upgrade manager cancelled")
        except Exception as e:
            self.logger.error(f"Error in UpgradeManager: {e}", exc_info=True)

    def refresh_all(self, token: CancellationToken) -> None:
        for window in (UpgradeWindow.ATTACK, UpgradeWindow.DEFENSE, UpgradeWindow.UTILITY):
            self.refresh_upgrades(window, token)

    def detect_upgrade_window(self, token: CancellationToken) -> UpgradeWindow:
        """Wait for the next frame and tell which upgrade window it shows"""
        frame = self.broadcaster.wait(token)

        for window, templates in WINDOW_TEMPLATES.items():
            for template in templates:
                if self.vision.find_template(frame, template) is not None:
                    return window

        return UpgradeWindow.NONE

    def change_upgrade_window(self, window: UpgradeWindow, token: CancellationToken) -> None:
        """Tap the button that opens the window, if it is visible in the next frame"""
        if window == UpgradeWindow.NONE:
            return

        frame = self.broadcaster.wait(token)
        match = self.vision.find_template(frame, WINDOW_BUTTONS[window])
        if match is not None:
            self.adb.tap(match.x, match.y, token)

    def refresh_upgrades(self, window: UpgradeWindow, token: CancellationToken) -> None:
        """Switch to a window and record what its panels show"""
        while self.detect_upgrade_window(token) != window:
            self.change_upgrade_window(window, token)

        frame = self.broadcaster.wait(token)

        x, y, w, h = self.config.panel_region
        panel_area = frame[y:y + h, x:x + w]
        self.process_panels(self.vision.detect_upgrades(panel_area))

    def process_panels(self, panels: Iterable[Tuple[str, str]]) -> int:
        """
        Parse (name, value) panel text and update the catalog

        A value of exactly three lines (level, amount, cost) is parsed into an
        UpgradeOption; any other shape means the upgrade is maxed out. When the
        numbers cannot be parsed the previous reading is kept.

        Returns:
            Number of upgrades stored
        """
        stored = 0

        for name, value in panels:
            upgrade = lookup_upgrade(name)
            if upgrade is None:
                self.logger.warning(f"Unknown upgrade: {name!r}")
                continue

            lines = value.split('\n')
            if len(lines) != 3:
                option = UpgradeOption.maxed()
            else:
                amount = NON_NUMERIC.sub('', lines[1])
                cost = NON_NUMERIC.sub('', lines[2])
                try:
                    option = UpgradeOption(float(amount), float(cost))
                except ValueError:
                    self.logger.warning(
                        f"Could not parse {upgrade.value} values {lines[1]!r} / {lines[2]!r}, keeping last reading"
                    )
                    continue

            with self._lock:
                self._upgrades[upgrade] = option
            stored += 1

        return stored

    def get_upgrades(self) -> Dict[Upgrade, UpgradeOption]:
        """Snapshot of the latest reading per upgrade"""
        with self._lock:
            return dict(self._upgrades)

    def format_upgrades(self) -> str:
        rows = []
        for upgrade, option in self.get_upgrades().items():
            amount = "MAX" if option.is_max else format_number(option.amount)
            cost = "-" if option.is_max else format_number(option.cost)
            rows.append((upgrade.value, amount, cost))

        name_width = max([len(row[0]) for row in rows] + [7])
        amount_width = max([len(row[1]) for row in rows] + [6])
        cost_width = max([len(row[2]) for row in rows] + [4])

        def line(name, amount, cost):
            return f"| {name.ljust(name_width)} | {amount.ljust(amount_width)} | {cost.ljust(cost_width)} |"

        header = line("Upgrade", "Amount", "Cost")
        separator = '-' * len(header)

        table = [separator, header, separator]
        table.extend(line(*row) for row in rows)
        table.append(separator)
        return '\n'.join(table)

    def print_upgrades(self) -> None:
        self.logger.info('\n' + self.format_upgrades())
