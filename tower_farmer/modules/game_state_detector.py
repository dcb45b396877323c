"""
Game State Detector - Classifies a frame into one of the known game screens
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import numpy as np

from ..utils.logger import get_logger
from ..utils.game_resources import Templates
from .vision import Vision

logger = get_logger(__name__)


class GameState(Enum):
    UNKNOWN = "unknown"
    MAIN_MENU = "main_menu"
    IN_BATTLE = "in_battle"
    DEFEAT = "defeat"


class UpgradeWindow(Enum):
    NONE = "none"
    ATTACK = "attack"
    DEFENSE = "defense"
    UTILITY = "utility"


# Checked in this order; the first state with a matching template wins
STATE_TEMPLATES: Mapping[GameState, Tuple[str, ...]] = MappingProxyType({
    GameState.MAIN_MENU: (Templates.MAIN_MENU_BATTLE_START,),
    GameState.DEFEAT: (Templates.DEFEAT_RETRY,),
    GameState.IN_BATTLE: (Templates.BATTLE_SUPER_OFF,
                          Templates.BATTLE_ECO_OFF,
                          Templates.BATTLE_DEFENSE_OFF),
})


class GameStateDetector:
    """
    Stateless classifier of frames into GameState values
    """

    def __init__(self, vision: Vision, threshold: Optional[float] = None):
        self.vision = vision
        self.threshold = threshold

    def detect_game_state(self, frame: np.ndarray) -> GameState:
        for state, templates in STATE_TEMPLATES.items():
            for template in templates:
                if self.vision.find_template(frame, template, self.threshold) is not None:
                    logger.debug(f"Frame matched {template} -> {state.name}")
                    return state

        return GameState.UNKNOWN
