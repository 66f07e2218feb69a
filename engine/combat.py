"""Combat orchestration: encounters, initiative, turns, and rewards.

Every function here takes a CombatState and returns a new one together
with a TurnResult; the state passed in is never modified. A refused
transition returns the original state and a failed TurnResult carrying an
error notification instead of raising.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from uuid import uuid4

from config import (
    BASE_FLEE_DC,
    BASE_SKILL_DC,
    DEFAULT_POTION_HEAL,
    DEFEND_HEAL_AMOUNT,
    DESPERATE_DAMAGE_MULTIPLIER,
    GOLD_REWARD_MAX,
    GOLD_REWARD_MIN,
    LOOT_DROP_CHANCE,
    PLAYER_INITIATIVE_BONUS,
    SKILL_FOCUS_BONUS,
    XP_PER_DIFFICULTY,
)
from engine.attacks import enemy_attack_roll, enhanced_attack_roll
from engine.bestiary import loot_pool
from engine.dice import roll_d20
from engine.npc import plan_enemy_turn
from engine.rules import (
    apply_damage,
    calculate_ability_modifier,
    check_death,
    damage_roll,
    heal,
    skill_check,
    tick_buffs,
)
from models.actions import ActionRequest, ActionType, TurnResult
from models.characters import Combatant, ItemType
from models.combat_state import CombatEvent, CombatPhase, CombatState, Rewards
from models.notifications import Notification, Severity
from models.rolls import Behavior

logger = logging.getLogger(__name__)


def _refuse(message: str, action_type: ActionType | None = None) -> TurnResult:
    logger.warning("Refused combat transition: %s", message)
    return TurnResult(
        success=False,
        action_type=action_type,
        description=message,
        error=message,
        notification=Notification(message=message, severity=Severity.ERROR),
    )


def _log(
    state: CombatState,
    actor: Combatant,
    action_type: str,
    description: str,
    **details,
) -> list[CombatEvent]:
    event = CombatEvent(
        round=state.round_number,
        actor_id=actor.id,
        action_type=action_type,
        description=description,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )
    return [*state.event_log, event]


def start_encounter(
    player: Combatant | None,
    enemy: Combatant | None,
) -> tuple[CombatState | None, TurnResult]:
    """Open an encounter between a player and an enemy.

    Returns:
        (state, result). state is None when the encounter was refused.
    """
    if player is None:
        return None, _refuse("No active character")
    if enemy is None:
        return None, _refuse("No enemy to fight")
    if check_death(player):
        return None, _refuse(
            f"{player.name} has fainted and cannot battle. Use a revive potion to restore them."
        )

    state = CombatState(encounter_id=str(uuid4()), player=player, enemy=enemy)
    description = f"A wild {enemy.name} appears!"
    state = state.model_copy(update={"event_log": _log(state, enemy, "encounter", description)})
    logger.info("Encounter %s: %s vs %s", state.encounter_id, player.name, enemy.name)
    return state, TurnResult(success=True, description=description)


def roll_initiative(
    state: CombatState | None,
    rng: random.Random | None = None,
) -> tuple[CombatState | None, TurnResult]:
    """Both sides roll initiative; the player opens only on a strictly higher total.

    Returns:
        (updated_state, result) tuple.
    """
    if state is None:
        return state, _refuse("No encounter in progress")
    if state.phase != CombatPhase.NOT_STARTED:
        return state, _refuse("Initiative has already been rolled")

    player, enemy = state.player, state.enemy
    player_roll = roll_d20(rng=rng)
    enemy_roll = roll_d20(rng=rng)
    player_mod = calculate_ability_modifier(player.stat("dexterity"))
    enemy_mod = calculate_ability_modifier(enemy.stat("dexterity"))
    player_total = player_roll + player_mod + PLAYER_INITIATIVE_BONUS
    enemy_total = enemy_roll + enemy_mod

    state = state.model_copy(
        update={
            "phase": CombatPhase.INITIATIVE_ROLLED,
            "player_initiative": player_total,
            "enemy_initiative": enemy_total,
        }
    )
    first = player.name if state.player_acts_first else enemy.name
    description = (
        f"Initiative: {player.name} rolls {player_roll} + {player_mod} + "
        f"{PLAYER_INITIATIVE_BONUS} (bonus) = {player_total}, {enemy.name} rolls "
        f"{enemy_roll} + {enemy_mod} = {enemy_total}. {first} goes first!"
    )
    state = state.model_copy(
        update={
            "event_log": _log(
                state, player, "initiative", description,
                player_initiative=player_total, enemy_initiative=enemy_total,
            )
        }
    )
    logger.info("Encounter %s: %s goes first", state.encounter_id, first)
    return state, TurnResult(success=True, description=description)


def grant_rewards(difficulty: int, rng: random.Random | None = None) -> Rewards:
    """Roll victory rewards for defeating an enemy of the given difficulty.

    Experience is difficulty * XP_PER_DIFFICULTY, gold is uniform in
    [GOLD_REWARD_MIN, GOLD_REWARD_MAX], and loot drops with
    LOOT_DROP_CHANCE from items no stronger than difficulty + 2.
    """
    rng = rng or random.Random()
    gold = rng.randint(GOLD_REWARD_MIN, GOLD_REWARD_MAX)
    loot = None
    if rng.random() < LOOT_DROP_CHANCE:
        pool = loot_pool(difficulty)
        if pool:
            loot = rng.choice(pool)
    return Rewards(experience=difficulty * XP_PER_DIFFICULTY, gold=gold, loot=loot)


def _victory(
    state: CombatState,
    description: str,
    rng: random.Random | None,
) -> tuple[CombatState, Notification]:
    rewards = grant_rewards(state.enemy.difficulty, rng)
    message = f"Victory! +{rewards.experience} XP, +{rewards.gold} Gold"
    if rewards.loot:
        message += f", Loot: {rewards.loot.name}"
    logger.info("Encounter %s: victory over %s", state.encounter_id, state.enemy.name)
    state = state.model_copy(
        update={
            "phase": CombatPhase.VICTORY,
            "rewards": rewards,
            "event_log": _log(state, state.player, "victory", f"{description} {message}"),
        }
    )
    return state, Notification(message=message, severity=Severity.SUCCESS)


def _player_attack(
    state: CombatState,
    rng: random.Random | None,
) -> tuple[CombatState, TurnResult]:
    player, enemy = state.player, state.enemy
    attack_stat = "dexterity" if player.equipment.stats.get("dexterity") else "strength"
    modifier = calculate_ability_modifier(player.stat(attack_stat))

    attack = enhanced_attack_roll(
        modifier,
        player.level,
        buffs=sum(buff.effect for buff in player.buffs),
        debuffs=sum(debuff.effect for debuff in player.debuffs),
        equipment_bonus=player.equipment.attack + state.pending_attack_bonus,
        has_enhanced_dice=player.has_enhanced_dice,
        is_player=True,
        rng=rng,
    )
    updates: dict = {"pending_attack_bonus": 0}

    hit = not attack.is_fumble and (attack.roll >= enemy.armor_class or attack.is_critical)
    if not hit:
        description = f"{player.name} misses! {attack.breakdown} vs AC {enemy.armor_class}"
        updates["event_log"] = _log(
            state, player, ActionType.ATTACK.value, description,
            attack_roll=attack.roll, hit=False,
        )
        state = state.model_copy(update=updates)
        return state, TurnResult(
            success=True,
            action_type=ActionType.ATTACK,
            description=description,
            attack_roll=attack.roll,
            hit=False,
            critical=False,
            fumble=attack.is_fumble,
            damage_dealt=0,
            target_hp_remaining=enemy.current_hp,
        )

    damage = damage_roll(
        1,
        player.damage_die,
        modifier,
        attack.is_critical,
        level_bonus=player.level // 2,
        equipment_bonus=player.equipment.damage,
        rng=rng,
    )
    enemy = apply_damage(enemy, damage.damage)
    label = "CRITICAL HIT!" if attack.is_critical else "Hit!"
    description = (
        f"{player.name}: {label} {attack.breakdown} vs AC {enemy.armor_class}. "
        f"Damage: {damage.breakdown}. {enemy.name} has {enemy.current_hp} HP remaining."
    )
    updates["enemy"] = enemy
    updates["event_log"] = _log(
        state, player, ActionType.ATTACK.value, description,
        attack_roll=attack.roll, hit=True, damage_dealt=damage.damage,
    )
    state = state.model_copy(update=updates)
    return state, TurnResult(
        success=True,
        action_type=ActionType.ATTACK,
        description=description,
        attack_roll=attack.roll,
        hit=True,
        critical=attack.is_critical,
        fumble=False,
        damage_dealt=damage.damage,
        target_hp_remaining=enemy.current_hp,
    )


def _player_defend(state: CombatState) -> tuple[CombatState, TurnResult]:
    player = heal(state.player, DEFEND_HEAL_AMOUNT)
    description = (
        f"{player.name} takes a defensive stance and recovers to "
        f"{player.current_hp}/{player.max_hp} HP."
    )
    state = state.model_copy(
        update={
            "player": player,
            "event_log": _log(state, player, ActionType.DEFEND.value, description),
        }
    )
    return state, TurnResult(success=True, action_type=ActionType.DEFEND, description=description)


def _player_skill(
    state: CombatState,
    rng: random.Random | None,
) -> tuple[CombatState, TurnResult]:
    player = state.player
    check = skill_check(
        player.stat("intelligence"),
        BASE_SKILL_DC + state.enemy.difficulty,
        proficiency=True,
        level=player.level,
        rng=rng,
    )
    bonus = state.pending_attack_bonus
    if check.success:
        bonus += SKILL_FOCUS_BONUS
        description = (
            f"{player.name} uses a skill and finds an opening ({check.breakdown}). "
            f"+{SKILL_FOCUS_BONUS} to the next attack."
        )
    else:
        description = f"{player.name} uses a skill but fails ({check.breakdown})."
    state = state.model_copy(
        update={
            "pending_attack_bonus": bonus,
            "event_log": _log(
                state, player, ActionType.SKILL.value, description, check_roll=check.roll,
            ),
        }
    )
    return state, TurnResult(success=True, action_type=ActionType.SKILL, description=description)


def _player_item(state: CombatState, item_id: str | None) -> tuple[CombatState, TurnResult]:
    player = state.player
    if item_id is None:
        return state, _refuse("Item action requires an item_id", ActionType.ITEM)

    inventory = list(player.inventory)
    index = next((i for i, item in enumerate(inventory) if item.id == item_id), None)
    if index is None:
        return state, _refuse(f"{player.name} has no '{item_id}' to use", ActionType.ITEM)
    item = inventory[index]

    bonus = state.pending_attack_bonus
    if item.type == ItemType.WEAPON:
        bonus += item.effect_value or 0
        description = f"{player.name} readies {item.name}: +{item.effect_value or 0} to the next attack."
    elif item.type == ItemType.POTION:
        player = heal(player, item.effect_value or DEFAULT_POTION_HEAL)
        description = (
            f"{player.name} uses {item.name} and recovers to "
            f"{player.current_hp}/{player.max_hp} HP."
        )
    else:
        return state, _refuse(f"{item.name} cannot be used in combat", ActionType.ITEM)

    del inventory[index]
    player = player.model_copy(update={"inventory": inventory})
    state = state.model_copy(
        update={
            "player": player,
            "pending_attack_bonus": bonus,
            "event_log": _log(state, player, ActionType.ITEM.value, description, item_id=item.id),
        }
    )
    return state, TurnResult(success=True, action_type=ActionType.ITEM, description=description)


def _player_flee(
    state: CombatState,
    rng: random.Random | None,
) -> tuple[CombatState, TurnResult]:
    player, enemy = state.player, state.enemy
    die = roll_d20(rng=rng)
    escape_roll = die + calculate_ability_modifier(player.stat("dexterity"))
    difficulty = BASE_FLEE_DC + enemy.level // 3

    if escape_roll >= difficulty:
        description = (
            f"{player.name} successfully flees from the {enemy.name}! "
            f"({escape_roll} vs DC {difficulty})"
        )
        state = state.model_copy(
            update={
                "phase": CombatPhase.FLED,
                "event_log": _log(state, player, ActionType.FLEE.value, description),
            }
        )
        return state, TurnResult(
            success=True,
            action_type=ActionType.FLEE,
            description=description,
            notification=Notification(
                message=f"Successfully fled from {enemy.name}!", severity=Severity.INFO
            ),
        )

    description = f"{player.name} fails to escape! ({escape_roll} vs DC {difficulty})"
    state = state.model_copy(
        update={"event_log": _log(state, player, ActionType.FLEE.value, description)}
    )
    return state, TurnResult(success=True, action_type=ActionType.FLEE, description=description)


def _hand_over(state: CombatState, acting: str) -> CombatState:
    """End the acting side's turn: tick their buffs and pass control."""
    # A round closes once control returns to whoever opened it.
    if acting == "player":
        round_number = state.round_number + (0 if state.player_acts_first else 1)
        return state.model_copy(
            update={
                "player": tick_buffs(state.player),
                "phase": CombatPhase.ENEMY_TURN,
                "round_number": round_number,
            }
        )
    round_number = state.round_number + (1 if state.player_acts_first else 0)
    return state.model_copy(
        update={
            "enemy": tick_buffs(state.enemy),
            "phase": CombatPhase.PLAYER_TURN,
            "round_number": round_number,
        }
    )


def process_player_action(
    state: CombatState | None,
    action: ActionRequest,
    rng: random.Random | None = None,
) -> tuple[CombatState | None, TurnResult]:
    """Validate and resolve the player's action, then pass the turn.

    Args:
        state: Current encounter state.
        action: The requested action.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        (updated_state, turn_result) tuple.
    """
    if state is None:
        return state, _refuse("No encounter in progress", action.action_type)
    if state.is_over:
        return state, _refuse("Combat is already over", action.action_type)
    if not state.is_player_turn:
        return state, _refuse("It's not your turn", action.action_type)
    if check_death(state.player):
        return state, _refuse(
            f"{state.player.name} has fainted and cannot act.", action.action_type
        )

    try:
        if action.action_type == ActionType.ATTACK:
            state, result = _player_attack(state, rng)
        elif action.action_type == ActionType.DEFEND:
            state, result = _player_defend(state)
        elif action.action_type == ActionType.SKILL:
            state, result = _player_skill(state, rng)
        elif action.action_type == ActionType.ITEM:
            state, result = _player_item(state, action.item_id)
        elif action.action_type == ActionType.FLEE:
            state, result = _player_flee(state, rng)
        else:
            return state, _refuse(f"Unknown action type: {action.action_type.value}")
    except ValueError as e:
        # Malformed combatant data; the state is left as it was.
        return state, _refuse(
            f"Cannot resolve {action.action_type.value}: {e}", action.action_type
        )

    if not result.success or state.is_over:
        return state, result

    if check_death(state.enemy):
        state, notification = _victory(state, f"{state.enemy.name} is defeated!", rng)
        return state, result.model_copy(update={"notification": notification})

    return _hand_over(state, "player"), result


def process_enemy_turn(
    state: CombatState | None,
    rng: random.Random | None = None,
) -> tuple[CombatState | None, TurnResult]:
    """Let the enemy AI pick an action and attack the player.

    Returns:
        (updated_state, turn_result) tuple.
    """
    if state is None:
        return state, _refuse("No encounter in progress", ActionType.ENEMY_ATTACK)
    if state.is_over:
        return state, _refuse("Combat is already over", ActionType.ENEMY_ATTACK)
    if not state.is_enemy_turn:
        return state, _refuse("It's not the enemy's turn", ActionType.ENEMY_ATTACK)

    try:
        return _enemy_attack(state, rng)
    except ValueError as e:
        return state, _refuse(f"Cannot resolve the enemy turn: {e}", ActionType.ENEMY_ATTACK)


def _enemy_attack(
    state: CombatState,
    rng: random.Random | None,
) -> tuple[CombatState, TurnResult]:
    player, enemy = state.player, state.enemy
    plan = plan_enemy_turn(enemy, player, state.round_number, rng)
    modifier = calculate_ability_modifier(enemy.stat("strength"))
    attack = enemy_attack_roll(
        modifier, enemy.level, plan.behavior, enemy.health_percent, rng=rng
    )
    player_ac = player.armor_class + player.equipment.defense

    hit = not attack.is_fumble and (attack.roll >= player_ac or attack.is_critical)
    if not hit:
        prefix = "CRITICAL MISS!" if attack.is_fumble else "misses!"
        description = (
            f"{enemy.name} uses {plan.action} and {prefix} {attack.breakdown} vs AC {player_ac}"
        )
        state = state.model_copy(
            update={
                "event_log": _log(
                    state, enemy, ActionType.ENEMY_ATTACK.value, description,
                    attack_roll=attack.roll, hit=False, behavior=plan.behavior.value,
                )
            }
        )
        return _hand_over(state, "enemy"), TurnResult(
            success=True,
            action_type=ActionType.ENEMY_ATTACK,
            description=description,
            attack_roll=attack.roll,
            hit=False,
            critical=False,
            fumble=attack.is_fumble,
            damage_dealt=0,
            target_hp_remaining=player.current_hp,
            enemy_action=plan.action,
        )

    multiplier = DESPERATE_DAMAGE_MULTIPLIER if plan.behavior == Behavior.DESPERATE else 1
    damage = damage_roll(
        1,
        enemy.damage_die,
        modifier,
        attack.is_critical,
        level_bonus=enemy.level // 2,
        behavior_multiplier=multiplier,
        rng=rng,
    )
    player = apply_damage(player, damage.damage)
    label = "CRITICAL HIT!" if attack.is_critical else "hits!"
    description = (
        f"{enemy.name} uses {plan.action}: {label} {attack.breakdown} vs AC {player_ac}. "
        f"Damage: {damage.breakdown}. {player.name} has {player.current_hp} HP remaining."
    )
    state = state.model_copy(
        update={
            "player": player,
            "event_log": _log(
                state, enemy, ActionType.ENEMY_ATTACK.value, description,
                attack_roll=attack.roll, hit=True, damage_dealt=damage.damage,
                behavior=plan.behavior.value,
            ),
        }
    )
    result = TurnResult(
        success=True,
        action_type=ActionType.ENEMY_ATTACK,
        description=description,
        attack_roll=attack.roll,
        hit=True,
        critical=attack.is_critical,
        fumble=False,
        damage_dealt=damage.damage,
        target_hp_remaining=player.current_hp,
        enemy_action=plan.action,
    )

    if check_death(player):
        message = f"Defeat! You were defeated by {enemy.name} and have fainted."
        logger.info("Encounter %s: defeat by %s", state.encounter_id, enemy.name)
        state = state.model_copy(
            update={
                "phase": CombatPhase.DEFEAT,
                "event_log": _log(state, enemy, "defeat", message),
            }
        )
        return state, result.model_copy(
            update={"notification": Notification(message=message, severity=Severity.ERROR)}
        )

    return _hand_over(state, "enemy"), result


def abort_encounter(state: CombatState | None) -> CombatState | None:
    """Tear down an encounter that has not finished."""
    if state is None or state.is_over:
        return state
    logger.info("Encounter %s aborted", state.encounter_id)
    return state.model_copy(update={"phase": CombatPhase.ABORTED})
