"""
Upgrade catalog - the stat upgrades that can be bought during a battle
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class Upgrade(Enum):
    # Attack upgrades
    DAMAGE = "Damage"
    ATTACK_SPEED = "AttackSpeed"
    CRITICAL_CHANCE = "CriticalChance"
    CRITICAL_FACTOR = "CriticalFactor"
    RANGE = "Range"
    DAMAGE_METER = "DamageMeter"
    # Panel text reads "Multishot Chance"
    MULTISHOT_CHANCE = "MultishotChance"
    MULTISHOT_TARGETS = "MultishotTargets"
    RAPID_FIRE_CHANCE = "RapidFireChance"
    RAPID_FIRE_DURATION = "RapidFireDuration"
    BOUNCE_SHOT_CHANCE = "BounceShotChance"
    BOUNCE_SHOT_TARGETS = "BounceShotTargets"
    BOUNCE_SHOT_RANGE = "BounceShotRange"

    # Defense upgrades
    HEALTH = "Health"
    HEALTH_REGEN = "HealthRegen"
    DEFENSE = "Defense"
    DEFENSE_ABSOLUTE = "DefenseAbsolute"
    THORN_DAMAGE = "ThornDamage"
    LIFESTEAL = "Lifesteal"
    KNOCKBACK_CHANCE = "KnockbackChance"
    KNOCKBACK_FORCE = "KnockbackForce"
    ORB_SPEED = "OrbSpeed"
    ORBS = "Orbs"
    SHOCKWAVE_SIZE = "ShockwaveSize"
    SHOCKWAVE_FREQUENCY = "ShockwaveFrequency"

    # Utility upgrades
    CASH_BONUS = "CashBonus"
    CASH_WAVE = "CashWave"
    COINS_KILL_BONUS = "CoinsKillBonus"
    COINS_WAVE = "CoinsWave"
    FREE_ATTACK_UPGRADE = "FreeAttackUpgrade"
    FREE_DEFENSE_UPGRADE = "FreeDefenseUpgrade"
    FREE_UTILITY_UPGRADE = "FreeUtilityUpgrade"
    INTEREST_WAVE = "InterestWave"


_BY_NAME: Dict[str, Upgrade] = {upgrade.value.lower(): upgrade for upgrade in Upgrade}

# Characters the panel font puts inside names ("Damage / Meter", "Crit %")
_NAME_NOISE = str.maketrans('', '', '\n\r/% \t')


def lookup_upgrade(name: str) -> Optional[Upgrade]:
    """
    Map a recognised panel name to its catalog entry, ignoring case

    Besides the newline, slash and percent characters the panel font puts in
    names, spaces, tabs and carriage returns are dropped as well: catalog keys
    have none, while tesseract reads "Attack Speed" with a space.
    """
    return _BY_NAME.get(name.translate(_NAME_NOISE).lower())


@dataclass(frozen=True)
class UpgradeOption:
    """Last reading of an upgrade panel; amount and cost are -1 once maxed out"""
    amount: float
    cost: float
    is_max: bool = False

    @classmethod
    def maxed(cls) -> "UpgradeOption":
        return cls(-1, -1, True)
