"""Engine-wide configuration constants for Skirmish Engine."""

import os

ENEMY_TURN_DELAY_SECONDS = float(os.environ.get("ENEMY_TURN_DELAY_SECONDS", "1.0"))
PLAYER_INITIATIVE_BONUS = 2       # Flat bonus on the player's initiative roll
DEFEND_HEAL_AMOUNT = 5            # HP restored by the defend action
DEFAULT_POTION_HEAL = 10          # Used when a potion has no effect value
SKILL_FOCUS_BONUS = 2             # Attack bonus granted by a successful skill
BASE_SKILL_DC = 10                # Plus enemy difficulty
BASE_FLEE_DC = 8                  # Plus enemy level // 3
XP_PER_DIFFICULTY = 100
GOLD_REWARD_MIN = 10
GOLD_REWARD_MAX = 59
LOOT_DROP_CHANCE = 0.3
LOOT_DIFFICULTY_MARGIN = 2        # Loot effect value <= difficulty + margin
DESPERATE_HEALTH_PERCENT = 25     # Enemies below this fight desperately
DESPERATE_DAMAGE_MULTIPLIER = 1.5
ENCOUNTER_LEVEL_SPREAD = 2        # Enemy difficulty within level +/- spread
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
