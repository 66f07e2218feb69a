"""Attack roll engines: plain, enhanced (player/buffed), and enemy rolls.

Attack rolls use level-scaled dice instead of a d20. Several dice are
rolled and the highest one is kept as the base die, so criticals and
fumbles are judged on that single kept die.
"""

from __future__ import annotations

import logging
import random

from engine.dice import roll_dice
from engine.rules import dice_count_for_level, dice_type_for_level
from models.rolls import AttackRollResult, Behavior

logger = logging.getLogger(__name__)

BEHAVIOR_BONUS = {
    Behavior.NORMAL: 0,
    Behavior.AGGRESSIVE: 2,
    Behavior.DEFENSIVE: -1,
    Behavior.BERSERKER: 3,
}


def _dice_text(dice_type: int, rolls: list[int]) -> str:
    return f"d{dice_type}({', '.join(str(r) for r in rolls)})"


def attack_roll(
    modifier: int,
    level: int = 1,
    rng: random.Random | None = None,
) -> AttackRollResult:
    """Roll a standard attack: keep the best of the level's dice, add modifier.

    Args:
        modifier: Flat modifier added to the kept die.
        level: Attacker level; selects die type and count.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        AttackRollResult. Critical on the die's top face, fumble on a 1.
    """
    dice_type = dice_type_for_level(level)
    dice_count = dice_count_for_level(level)
    rolls = roll_dice(dice_count, dice_type, rng)
    base = max(rolls)
    total = base + modifier

    return AttackRollResult(
        roll=total,
        dice_type=dice_type,
        dice_count=dice_count,
        modifier=modifier,
        rolls=rolls,
        is_critical=base == dice_type,
        is_fumble=base == 1,
        breakdown=f"{_dice_text(dice_type, rolls)} + {modifier} = {total}",
    )


def enhanced_attack_roll(
    modifier: int,
    level: int,
    buffs: int = 0,
    debuffs: int = 0,
    equipment_bonus: int = 0,
    has_enhanced_dice: bool = False,
    is_player: bool = False,
    advantage: bool = False,
    research_bonus: int = 0,
    spell_bonus: int = 0,
    rng: random.Random | None = None,
) -> AttackRollResult:
    """Roll an attack with buffs, debuffs, equipment, and player bonuses.

    Players always roll with advantage: twice the level's dice count is
    rolled and the best die kept. Each buff is worth +2 and each debuff -1,
    players get a flat +2, and every third level adds +1.

    Enhanced dice widen the critical range to the top two faces. Players
    never fumble on this roll; other attackers fumble on a kept 1.

    Args:
        modifier: Base ability modifier.
        level: Attacker level.
        buffs: Number of active buffs.
        debuffs: Number of active debuffs.
        equipment_bonus: Flat attack bonus from equipment.
        has_enhanced_dice: Use the enhanced die table and widened crit range.
        is_player: Apply player bonuses (advantage, +2, fumble immunity).
        advantage: Roll with advantage even when not a player.
        research_bonus: Flat bonus from research.
        spell_bonus: Flat bonus from spells.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        AttackRollResult with the total modifier and every die rolled.
    """
    dice_type = dice_type_for_level(level, has_enhanced_dice)
    dice_count = dice_count_for_level(level)

    rolled_with_advantage = advantage or is_player
    rolls = roll_dice(dice_count * 2 if rolled_with_advantage else dice_count, dice_type, rng)
    base = max(rolls)

    total_modifier = (
        modifier
        + buffs * 2
        - debuffs
        + (2 if is_player else 0)
        + equipment_bonus
        + level // 3
        + research_bonus
        + spell_bonus
    )
    total = base + total_modifier

    critical_threshold = dice_type - 1 if has_enhanced_dice else dice_type
    dice_text = _dice_text(dice_type, rolls)
    if rolled_with_advantage:
        dice_text += " [advantage]"

    return AttackRollResult(
        roll=total,
        dice_type=dice_type,
        dice_count=dice_count,
        modifier=total_modifier,
        rolls=rolls,
        is_critical=base >= critical_threshold,
        is_fumble=base == 1 and not is_player,
        breakdown=f"{dice_text} + {total_modifier} = {total}",
    )


def behavior_bonus(behavior: Behavior, health_percent: float = 100) -> int:
    """Attack bonus granted by an enemy behavior.

    Desperate enemies gain +1 for every 20% of health they have lost.
    """
    if behavior == Behavior.DESPERATE:
        return int((100 - health_percent) // 20)
    return BEHAVIOR_BONUS[behavior]


def enemy_attack_roll(
    modifier: int,
    level: int,
    behavior: Behavior = Behavior.NORMAL,
    health_percent: float = 100,
    rng: random.Random | None = None,
) -> AttackRollResult:
    """Roll an enemy attack shaped by its current behavior.

    Berserkers also crit on the die's top two faces. Enemies always
    fumble on a kept 1.

    Args:
        modifier: Base ability modifier.
        level: Enemy level.
        behavior: Attack style chosen by the AI or the encounter.
        health_percent: Enemy health percentage (used by desperate).
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        AttackRollResult; the breakdown is tagged with the behavior.
    """
    behavior = Behavior(behavior)
    dice_type = dice_type_for_level(level)
    dice_count = dice_count_for_level(level)
    rolls = roll_dice(dice_count, dice_type, rng)
    base = max(rolls)

    total_modifier = modifier + behavior_bonus(behavior, health_percent)
    total = base + total_modifier
    critical_threshold = dice_type - 1 if behavior == Behavior.BERSERKER else dice_type

    logger.debug("Enemy %s attack: base %d, modifier %d", behavior.value, base, total_modifier)
    return AttackRollResult(
        roll=total,
        dice_type=dice_type,
        dice_count=dice_count,
        modifier=total_modifier,
        rolls=rolls,
        is_critical=base >= critical_threshold,
        is_fumble=base == 1,
        breakdown=(
            f"{_dice_text(dice_type, rolls)} + {total_modifier} = {total} "
            f"[{behavior.value}]"
        ),
    )
