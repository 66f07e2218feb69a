"""Roll and check result models produced by the roll engines."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ThreatLevel(str, Enum):
    """How dangerous the player currently looks to an enemy."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Behavior(str, Enum):
    """Enemy attack styles that alter the attack modifier and crit range."""
    NORMAL = "normal"
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    DESPERATE = "desperate"
    BERSERKER = "berserker"


class AttackRollResult(BaseModel):
    """Result of an attack roll."""
    model_config = ConfigDict(frozen=True)

    roll: int                       # Base die + modifier
    dice_type: int
    dice_count: int
    modifier: int                   # Final modifier applied
    rolls: list[int]                # Every die rolled, in roll order
    is_critical: bool
    is_fumble: bool
    breakdown: str

    @property
    def base_roll(self) -> int:
        """The kept die (the highest of all dice rolled)."""
        return self.roll - self.modifier


class DamageResult(BaseModel):
    """Result of a damage roll. Damage is never below 1."""
    model_config = ConfigDict(frozen=True)

    damage: int
    breakdown: str


class CheckResult(BaseModel):
    """Result of a saving throw or skill check."""
    model_config = ConfigDict(frozen=True)

    success: bool
    roll: int
    breakdown: str
