"""Action request and turn result models for Skirmish Engine."""

from enum import Enum

from pydantic import BaseModel

from models.notifications import Notification


class ActionType(str, Enum):
    """Actions a player can take on their turn."""
    ATTACK = "attack"
    DEFEND = "defend"
    SKILL = "skill"
    ITEM = "item"
    FLEE = "flee"
    ENEMY_ATTACK = "enemy_attack"   # Only ever produced by the enemy turn


class ActionRequest(BaseModel):
    """A player's requested action."""
    action_type: ActionType
    item_id: str | None = None      # For item actions


class TurnResult(BaseModel):
    """The engine's response after resolving (or refusing) a turn."""
    success: bool
    action_type: ActionType | None = None
    description: str                # Human-readable log line
    attack_roll: int | None = None
    hit: bool | None = None
    critical: bool | None = None
    fumble: bool | None = None
    damage_dealt: int | None = None
    target_hp_remaining: int | None = None
    enemy_action: str | None = None  # The identifier the enemy AI chose
    notification: Notification | None = None
    error: str | None = None        # If the turn was refused
