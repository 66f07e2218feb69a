"""A live encounter bound to the game store and the enemy-turn timer.

CombatSession is what a UI drives: it reads the player from the store,
runs the pure transitions in engine.combat, writes results back through
the store's setters, and paces the enemy's reply with a cancellable
delayed callback. At most one enemy turn is ever pending.
"""

from __future__ import annotations

import logging
import random

from config import ENEMY_TURN_DELAY_SECONDS
from engine.bestiary import pick_enemy, spawn_enemy
from engine.combat import (
    abort_encounter,
    process_enemy_turn,
    process_player_action,
    roll_initiative,
    start_encounter,
)
from engine.scheduler import Handle, Scheduler, make_scheduler
from engine.store import GameStore
from models.actions import ActionRequest, ActionType, TurnResult
from models.characters import Combatant, EnemyDefinition
from models.combat_state import CombatPhase, CombatState
from models.notifications import Notification, Severity

logger = logging.getLogger(__name__)


class CombatSession:
    """One player's encounter, from initiative to victory or defeat."""

    def __init__(
        self,
        store: GameStore,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        enemy_turn_delay: float = ENEMY_TURN_DELAY_SECONDS,
    ) -> None:
        self.store = store
        self.scheduler = scheduler or make_scheduler(enemy_turn_delay)
        self.rng = rng or random.Random()
        self.enemy_turn_delay = enemy_turn_delay
        self.state: CombatState | None = None
        self.turn_results: list[TurnResult] = []
        self._pending: Handle | None = None
        self._resolving = False

    @property
    def enemy_turn_pending(self) -> bool:
        return self._pending is not None

    def start(
        self,
        character_id: str,
        enemy: Combatant | EnemyDefinition | None = None,
    ) -> TurnResult:
        """Open an encounter and roll initiative.

        With no enemy given, one is picked from the bestiary by the
        player's level. If the enemy wins initiative its turn is scheduled.
        """
        self._cancel_pending()
        player = self.store.get_character(character_id)
        if player is not None and enemy is None:
            enemy = pick_enemy(player.level, self.rng)
        if isinstance(enemy, EnemyDefinition):
            enemy = spawn_enemy(enemy)

        state, result = start_encounter(player, enemy)
        if state is None:
            return self._finish(result)

        self.state, initiative = roll_initiative(state, self.rng)
        self.turn_results = [result, initiative]
        self._schedule_enemy_turn()
        return initiative

    def act(self, action: ActionRequest) -> TurnResult:
        """Resolve a player action and queue the enemy's reply."""
        if self._resolving or self._pending is not None:
            return self._finish(_busy(action.action_type))

        self._resolving = True
        try:
            self.state, result = process_player_action(self.state, action, self.rng)
        finally:
            self._resolving = False

        if result.success:
            self._sync(action)
        self._finish(result)
        self._schedule_enemy_turn()
        return result

    def run_enemy_turn(self) -> TurnResult:
        """Resolve the enemy's turn now, dropping any pending timer."""
        self._cancel_pending()
        return self._resolve_enemy_turn()

    def abort(self) -> None:
        """Stop the encounter; a pending enemy turn is discarded."""
        self._cancel_pending()
        self.state = abort_encounter(self.state)

    def reset(self) -> None:
        """Forget the encounter entirely."""
        self._cancel_pending()
        self.state = None
        self.turn_results = []

    # -- internals -------------------------------------------------------

    def _resolve_enemy_turn(self) -> TurnResult:
        if self._resolving:
            return self._finish(_busy(ActionType.ENEMY_ATTACK))

        self._resolving = True
        try:
            self.state, result = process_enemy_turn(self.state, self.rng)
        finally:
            self._resolving = False

        if result.success:
            self._sync()
        return self._finish(result)

    def _on_enemy_timer(self) -> None:
        self._pending = None
        # The encounter may have moved on since this was scheduled.
        if self.state is None or not self.state.is_enemy_turn:
            logger.debug("Discarding stale enemy turn")
            return
        self._resolve_enemy_turn()

    def _schedule_enemy_turn(self) -> None:
        if self.state is None or not self.state.is_enemy_turn or self._pending is not None:
            return
        logger.debug("%s prepares to attack...", self.state.enemy.name)
        resolved = len(self.turn_results)
        handle = self.scheduler.call_later(self.enemy_turn_delay, self._on_enemy_timer)
        # An inline scheduler has already run (or refused) the turn by now.
        if len(self.turn_results) == resolved:
            self._pending = handle

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _sync(self, action: ActionRequest | None = None) -> None:
        """Write the player's side of the encounter back to the store."""
        state = self.state
        player_id = state.player.id
        stored = self.store.get_character(player_id)
        if stored is None:
            logger.warning("Player %s vanished from the store mid-encounter", player_id)
            return

        self.store.update_health(player_id, state.player.current_hp)
        if (
            action is not None
            and action.action_type == ActionType.ITEM
            and any(item.id == action.item_id for item in stored.inventory)
        ):
            self.store.remove_item(player_id, action.item_id)
        if state.phase == CombatPhase.VICTORY and state.rewards is not None:
            self.store.gain_experience(player_id, state.rewards.experience)
            self.store.gain_gold(player_id, state.rewards.gold)
            if state.rewards.loot is not None:
                self.store.add_item(player_id, state.rewards.loot)

    def _finish(self, result: TurnResult) -> TurnResult:
        self.turn_results.append(result)
        if result.notification is not None:
            self.store.notify(result.notification)
        return result


def _busy(action_type: ActionType) -> TurnResult:
    message = "Another turn is still being resolved"
    return TurnResult(
        success=False,
        action_type=action_type,
        description=message,
        error=message,
        notification=Notification(message=message, severity=Severity.ERROR),
    )
