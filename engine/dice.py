"""Dice rolling primitives for Skirmish Engine."""

import logging
import random

logger = logging.getLogger(__name__)


def roll_die(sides: int, rng: random.Random | None = None) -> int:
    """Roll a single die with the given number of sides.

    Args:
        sides: Number of faces (must be at least 1).
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        A uniformly distributed integer in [1, sides].

    Raises:
        ValueError: If sides is less than 1.
    """
    if sides < 1:
        raise ValueError(f"A die needs at least 1 side, got {sides}")
    rng = rng or random.Random()
    return rng.randint(1, sides)


def roll_dice(count: int, sides: int, rng: random.Random | None = None) -> list[int]:
    """Roll `count` independent dice, returned in roll order (unsorted).

    Args:
        count: Number of dice (0 yields an empty list).
        sides: Number of faces on each die.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The individual rolls.

    Raises:
        ValueError: If count is negative or sides is less than 1.
    """
    if count < 0:
        raise ValueError(f"Cannot roll a negative number of dice: {count}")
    if sides < 1:
        raise ValueError(f"A die needs at least 1 side, got {sides}")
    rng = rng or random.Random()
    rolls = [roll_die(sides, rng) for _ in range(count)]
    logger.debug("Rolled %dd%d: %s", count, sides, rolls)
    return rolls


def roll_d20(
    advantage: bool = False,
    disadvantage: bool = False,
    rng: random.Random | None = None,
) -> int:
    """Roll a d20, optionally with advantage or disadvantage.

    Args:
        advantage: Roll twice, take the higher.
        disadvantage: Roll twice, take the lower.
        rng: Optional Random instance for seeded/testing rolls.

    Returns:
        The resulting d20 roll.
    """
    rng = rng or random.Random()

    if advantage and disadvantage:
        # They cancel out, straight roll
        return roll_die(20, rng)

    if advantage:
        return max(roll_die(20, rng), roll_die(20, rng))

    if disadvantage:
        return min(roll_die(20, rng), roll_die(20, rng))

    return roll_die(20, rng)


def percentile_roll(rng: random.Random | None = None) -> int:
    """Roll a d100."""
    return roll_die(100, rng)


def luck_roll(
    threshold: int = 50,
    luck_bonus: int = 0,
    rng: random.Random | None = None,
) -> bool:
    """Succeed when a d100 comes in at or under threshold + luck_bonus."""
    return percentile_roll(rng) <= threshold + luck_bonus
