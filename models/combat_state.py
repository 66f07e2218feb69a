"""Encounter state and event models for Skirmish Engine."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from models.characters import Combatant, ItemDefinition


class CombatPhase(str, Enum):
    """Possible states of an encounter."""
    NOT_STARTED = "not_started"
    INITIATIVE_ROLLED = "initiative_rolled"
    PLAYER_TURN = "player_turn"
    ENEMY_TURN = "enemy_turn"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"
    ABORTED = "aborted"             # Torn down before a result


TERMINAL_PHASES = frozenset(
    {CombatPhase.VICTORY, CombatPhase.DEFEAT, CombatPhase.FLED, CombatPhase.ABORTED}
)


class CombatEvent(BaseModel):
    """A logged event from the encounter."""
    round: int
    actor_id: str
    action_type: str
    description: str
    details: dict = {}              # Rolls, damage, etc.
    timestamp: datetime


class Rewards(BaseModel):
    """What the player earns for a victory."""
    experience: int
    gold: int
    loot: ItemDefinition | None = None


class CombatState(BaseModel):
    """The full state of one player-versus-enemy encounter."""
    encounter_id: str
    phase: CombatPhase = CombatPhase.NOT_STARTED
    player: Combatant
    enemy: Combatant
    player_initiative: int | None = None
    enemy_initiative: int | None = None
    round_number: int = 1
    pending_attack_bonus: int = 0   # Consumed by the player's next attack
    event_log: list[CombatEvent] = []
    rewards: Rewards | None = None

    @property
    def is_over(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def player_acts_first(self) -> bool:
        """The player opens only on a strictly higher initiative."""
        if self.player_initiative is None or self.enemy_initiative is None:
            return False
        return self.player_initiative > self.enemy_initiative

    @property
    def is_player_turn(self) -> bool:
        if self.phase == CombatPhase.INITIATIVE_ROLLED:
            return self.player_acts_first
        return self.phase == CombatPhase.PLAYER_TURN

    @property
    def is_enemy_turn(self) -> bool:
        if self.phase == CombatPhase.INITIATIVE_ROLLED:
            return not self.player_acts_first
        return self.phase == CombatPhase.ENEMY_TURN

    @property
    def log_lines(self) -> list[str]:
        """Event descriptions, newest last."""
        return [event.description for event in self.event_log]
