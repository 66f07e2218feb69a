"""Derived values, checks, and damage rules for Skirmish Engine."""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING

from engine.dice import roll_d20, roll_dice
from models.rolls import CheckResult, DamageResult

if TYPE_CHECKING:
    from models.characters import Combatant

logger = logging.getLogger(__name__)


def calculate_ability_modifier(score: int) -> int:
    """Calculate ability modifier from a score.

    Args:
        score: The ability score (e.g. 16).

    Returns:
        The modifier (e.g. +3 for score 16, -1 for score 8).
    """
    return (score - 10) // 2


def dice_type_for_level(level: int, enhanced: bool = False) -> int:
    """Die size used for attack rolls at a given level.

    Standard dice step 18/20/22/24 at levels 5, 10 and 15. Enhanced dice
    start at 20 and reach 24 at level 10.
    """
    if enhanced:
        if level >= 10:
            return 24
        if level >= 5:
            return 22
        return 20

    if level >= 15:
        return 24
    if level >= 10:
        return 22
    if level >= 5:
        return 20
    return 18


def dice_count_for_level(level: int) -> int:
    """Number of attack dice rolled at a given level."""
    if level >= 15:
        return 3
    if level >= 5:
        return 2
    return 1


def saving_throw(
    stat: int,
    difficulty: int,
    level: int = 1,
    advantage: bool = False,
    research_bonus: int = 0,
    buff_bonus: int = 0,
    rng: random.Random | None = None,
) -> CheckResult:
    """Roll a saving throw against a difficulty class.

    Args:
        stat: The ability score being tested.
        difficulty: DC to meet or beat.
        level: Character level (adds level // 4).
        advantage: Roll two d20 and keep the higher.
        research_bonus: Flat bonus from research.
        buff_bonus: Flat bonus from active buffs.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        CheckResult with success, total, and breakdown.
    """
    modifier = calculate_ability_modifier(stat) + level // 4 + research_bonus + buff_bonus

    if advantage:
        rolls = roll_dice(2, 20, rng)
        die = max(rolls)
        dice_text = f"d20({rolls[0]}, {rolls[1]}) [advantage]"
    else:
        die = roll_d20(rng=rng)
        dice_text = f"d20({die})"

    total = die + modifier
    return CheckResult(
        success=total >= difficulty,
        roll=total,
        breakdown=f"{dice_text} + {modifier} = {total} vs DC {difficulty}",
    )


def skill_check(
    stat: int,
    difficulty: int,
    proficiency: bool = False,
    level: int = 1,
    research_bonus: int = 0,
    rng: random.Random | None = None,
) -> CheckResult:
    """Roll a d20 skill check; proficiency adds ceil(level / 4) + 1."""
    proficiency_bonus = math.ceil(level / 4) + 1 if proficiency else 0
    modifier = calculate_ability_modifier(stat) + proficiency_bonus + research_bonus

    die = roll_d20(rng=rng)
    total = die + modifier
    return CheckResult(
        success=total >= difficulty,
        roll=total,
        breakdown=f"d20({die}) + {modifier} = {total} vs DC {difficulty}",
    )


def damage_roll(
    dice_count: int,
    dice_size: int,
    modifier: int = 0,
    is_critical: bool = False,
    level_bonus: int = 0,
    equipment_bonus: int = 0,
    spell_bonus: int = 0,
    research_bonus: int = 0,
    behavior_multiplier: float = 1,
    rng: random.Random | None = None,
) -> DamageResult:
    """Roll damage. A critical rolls the dice pool a second time.

    The final value is floor((dice + bonuses) * behavior_multiplier),
    never less than 1.

    Raises:
        ValueError: If dice_count is negative or dice_size is below 1.
    """
    rolls = roll_dice(dice_count, dice_size, rng)
    base_damage = sum(rolls)
    if is_critical:
        base_damage += sum(roll_dice(dice_count, dice_size, rng))

    total_bonus = modifier + level_bonus + equipment_bonus + spell_bonus + research_bonus
    damage = max(1, math.floor((base_damage + total_bonus) * behavior_multiplier))

    breakdown = f"{dice_count}d{dice_size}"
    if is_critical:
        breakdown += " x2"
    breakdown += f" ({base_damage}) + {total_bonus} x{behavior_multiplier} = {damage}"
    if is_critical:
        breakdown += " [CRITICAL]"

    logger.debug("Damage roll: %s", breakdown)
    return DamageResult(damage=damage, breakdown=breakdown)


def initiative_roll(
    dexterity: int,
    level: int = 1,
    research_bonus: int = 0,
    rng: random.Random | None = None,
) -> int:
    """Roll initiative: d20 + dexterity modifier + level // 5 + research."""
    modifier = calculate_ability_modifier(dexterity) + level // 5 + research_bonus
    return roll_d20(rng=rng) + modifier


def apply_damage(combatant: Combatant, damage: int) -> Combatant:
    """Return a copy of the combatant with damage applied, clamped at 0 HP."""
    return combatant.model_copy(
        update={"current_hp": max(0, combatant.current_hp - damage)}
    )


def heal(combatant: Combatant, amount: int) -> Combatant:
    """Return a copy of the combatant healed by amount, clamped at max HP."""
    return combatant.model_copy(
        update={"current_hp": min(combatant.max_hp, combatant.current_hp + amount)}
    )


def check_death(combatant: Combatant) -> bool:
    """Check if a combatant is down (at 0 HP or below)."""
    return combatant.current_hp <= 0


def tick_buffs(combatant: Combatant) -> Combatant:
    """Return a copy with every buff and debuff one turn closer to expiring."""

    def _tick(effects):
        return [
            effect.model_copy(update={"remaining_turns": effect.remaining_turns - 1})
            for effect in effects
            if effect.remaining_turns > 1
        ]

    return combatant.model_copy(
        update={"buffs": _tick(combatant.buffs), "debuffs": _tick(combatant.debuffs)}
    )
