"""Enemy AI: threat assessment, action selection, and behavior choice."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

from pydantic import BaseModel

from config import DESPERATE_HEALTH_PERCENT
from models.rolls import Behavior, ThreatLevel

if TYPE_CHECKING:
    from models.characters import Combatant

logger = logging.getLogger(__name__)

# Action identifier keywords -> attack style, checked in order.
_BEHAVIOR_KEYWORDS: list[tuple[tuple[str, ...], Behavior]] = [
    (("berserk", "frenzy", "rage"), Behavior.BERSERKER),
    (("ultimate", "desperate"), Behavior.DESPERATE),
    (("aggressive",), Behavior.AGGRESSIVE),
    (("defensive", "guard"), Behavior.DEFENSIVE),
]


class EnemyPlan(BaseModel):
    """What the enemy intends to do this turn."""
    action: str
    behavior: Behavior
    threat: ThreatLevel


def _health_percent(health: int, max_health: int) -> float:
    if max_health <= 0:
        raise ValueError(f"Max health must be positive, got {max_health}")
    return health / max_health * 100


def compute_threat_level(
    player_level: int,
    player_health: int,
    player_max_health: int,
    player_ac: int,
) -> ThreatLevel:
    """Classify the player's threat from their remaining health.

    player_level and player_ac are part of the signature but do not
    currently weigh in.

    Raises:
        ValueError: If player_max_health is not positive.
    """
    health_percent = _health_percent(player_health, player_max_health)

    if health_percent < 25:
        return ThreatLevel.CRITICAL
    if health_percent < 50:
        return ThreatLevel.HIGH
    if health_percent < 75:
        return ThreatLevel.MEDIUM
    return ThreatLevel.LOW


def _first_containing(actions: list[str], *keywords: str) -> str:
    for action in actions:
        if any(keyword in action for keyword in keywords):
            return action
    return actions[0]


def select_enemy_action(
    available_actions: list[str],
    enemy_health: int,
    enemy_max_health: int,
    player_threat_level: ThreatLevel,
    combat_round: int,
    rng: random.Random | None = None,
) -> str:
    """Choose an enemy action. The first matching rule wins:

    1. Below 25% health: an "ultimate"/"desperate" action, else the first.
    2. Player threat high or critical: an "aggressive"/"attack" action,
       else the first.
    3. After round 5: rotate through actions by round number.
    4. Otherwise: a uniformly random action.

    Raises:
        ValueError: If available_actions is empty.
    """
    if not available_actions:
        raise ValueError("Enemy has no available actions to choose from")

    health_percent = _health_percent(enemy_health, enemy_max_health)

    if health_percent < 25:
        return _first_containing(available_actions, "ultimate", "desperate")

    if ThreatLevel(player_threat_level) in (ThreatLevel.CRITICAL, ThreatLevel.HIGH):
        return _first_containing(available_actions, "aggressive", "attack")

    if combat_round > 5:
        return available_actions[combat_round % len(available_actions)]

    rng = rng or random.Random()
    return rng.choice(available_actions)


def behavior_for_action(action: str, health_percent: float) -> Behavior:
    """Pick the attack style for a chosen action.

    Keywords in the action identifier decide first; failing that, an enemy
    below the desperate threshold fights desperately.
    """
    lowered = action.lower()
    for keywords, behavior in _BEHAVIOR_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return behavior
    if health_percent < DESPERATE_HEALTH_PERCENT:
        return Behavior.DESPERATE
    return Behavior.NORMAL


def plan_enemy_turn(
    enemy: Combatant,
    player: Combatant,
    combat_round: int,
    rng: random.Random | None = None,
) -> EnemyPlan:
    """Decide what an enemy does on its turn."""
    threat = compute_threat_level(
        player.level, player.current_hp, player.max_hp, player.armor_class
    )
    action = select_enemy_action(
        enemy.attacks, enemy.current_hp, enemy.max_hp, threat, combat_round, rng
    )
    behavior = behavior_for_action(action, enemy.health_percent)
    logger.debug(
        "%s plans %s (%s) against %s threat", enemy.name, action, behavior.value, threat.value
    )
    return EnemyPlan(action=action, behavior=behavior, threat=threat)
