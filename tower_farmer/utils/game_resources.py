"""
Game Resources - Template image assets used to locate on-screen elements
"""

from pathlib import Path
from typing import Iterable, List

from ..utils.logger import get_logger
from ..utils.exceptions import TemplateNotFoundError

logger = get_logger(__name__)


class Templates:
    """File names of the template images, relative to the templates directory"""

    # Main menu
    MAIN_MENU_CLAIM_GEMS = "claim_gems_main.png"
    MAIN_MENU_BATTLE_START = "battle_start.png"

    # Battle
    BATTLE_CLAIM_GEMS = "claim_gems_battle.png"
    BATTLE_SUPER_OFF = "battle_super_off.png"
    BATTLE_ECO_OFF = "battle_eco_off.png"
    BATTLE_DEFENSE_OFF = "battle_defense_off.png"
    BATTLE_ATTACK_ON = "battle_attack_on.png"
    BATTLE_ATTACK_UPGRADE = "attack_upgrade.png"
    BATTLE_DEFENSE_UPGRADE = "defense_upgrade.png"
    BATTLE_UTILITY_UPGRADE = "utility_upgrade.png"
    BATTLE_TOWER = "tower.png"

    # Defeat screen
    DEFEAT_RETRY = "defeat_retry.png"

    @classmethod
    def all(cls) -> List[str]:
        return [value for name, value in vars(cls).items() if name.isupper()]


class GameResources:
    """
    Resolves template names to paths under the templates directory
    """

    def __init__(self, templates_dir: str = "assets/templates"):
        self.templates_dir = Path(templates_dir)

    def path(self, template_name: str) -> Path:
        """Full path of a template; existence is checked when it is loaded"""
        return self.templates_dir / template_name

    def missing(self, template_names: Iterable[str] = None) -> List[str]:
        """Template names that have no file on disk"""
        names = Templates.all() if template_names is None else list(template_names)
        return [name for name in names if not self.path(name).is_file()]

    def validate(self, template_names: Iterable[str] = None) -> None:
        """
        Ensure every template asset exists

        Raises:
            TemplateNotFoundError: listing every missing file
        """
        missing = self.missing(template_names)
        if missing:
            raise TemplateNotFoundError(
                f"Missing template images in {self.templates_dir}: {', '.join(missing)}"
            )
        logger.info(f"All template images present in {self.templates_dir}")
