"""Built-in enemy and item content tables, and encounter selection."""

from __future__ import annotations

import random
from uuid import uuid4

from config import ENCOUNTER_LEVEL_SPREAD, LOOT_DIFFICULTY_MARGIN
from models.characters import (
    AbilityScores,
    Combatant,
    EnemyDefinition,
    ItemDefinition,
    ItemType,
)


def _scores(str_: int, dex: int, con: int, int_: int, wis: int, cha: int) -> AbilityScores:
    return AbilityScores(
        strength=str_,
        dexterity=dex,
        constitution=con,
        intelligence=int_,
        wisdom=wis,
        charisma=cha,
    )


# ---------------------------------------------------------------------------
# Enemies
# ---------------------------------------------------------------------------

ENEMIES: list[EnemyDefinition] = [
    EnemyDefinition(
        id="forest_goblin",
        name="Forest Goblin",
        difficulty=1,
        ability_scores=_scores(6, 12, 8, 6, 8, 4),
        max_hp=25,
        armor_class=11,
        damage_die=4,
        attacks=["quick_strike", "sneak_attack"],
    ),
    EnemyDefinition(
        id="dire_wolf",
        name="Dire Wolf",
        difficulty=3,
        ability_scores=_scores(14, 16, 12, 4, 12, 6),
        max_hp=45,
        armor_class=13,
        damage_die=6,
        attacks=["bite_attack", "howl_defensive", "pack_hunter_aggressive"],
    ),
    EnemyDefinition(
        id="stone_golem",
        name="Stone Golem",
        difficulty=4,
        ability_scores=_scores(16, 6, 18, 3, 8, 1),
        max_hp=70,
        armor_class=15,
        damage_die=8,
        attacks=["stone_skin_guard", "boulder_throw", "earthquake_ultimate"],
    ),
    EnemyDefinition(
        id="forest_troll",
        name="Forest Troll",
        difficulty=5,
        ability_scores=_scores(18, 8, 16, 6, 10, 4),
        max_hp=80,
        armor_class=13,
        damage_die=8,
        attacks=["tree_slam_attack", "roar", "regenerate_defensive"],
    ),
    EnemyDefinition(
        id="mountain_orc",
        name="Mountain Orc",
        difficulty=6,
        ability_scores=_scores(18, 10, 14, 8, 6, 8),
        max_hp=90,
        armor_class=14,
        damage_die=10,
        attacks=["cleave_attack", "war_cry", "berserker_rage"],
    ),
    EnemyDefinition(
        id="bog_witch",
        name="Bog Witch",
        difficulty=8,
        ability_scores=_scores(8, 12, 10, 18, 16, 14),
        max_hp=75,
        armor_class=12,
        damage_die=8,
        attacks=["curse", "poison_cloud_attack", "swamp_fire_desperate"],
    ),
    EnemyDefinition(
        id="frost_giant",
        name="Frost Giant",
        difficulty=10,
        ability_scores=_scores(22, 8, 20, 10, 12, 14),
        max_hp=150,
        armor_class=16,
        damage_die=12,
        attacks=["frost_breath_attack", "ice_armor_guard", "avalanche_ultimate"],
    ),
    EnemyDefinition(
        id="lich_lord",
        name="Lich Lord",
        difficulty=15,
        ability_scores=_scores(10, 8, 12, 22, 18, 16),
        max_hp=200,
        armor_class=17,
        damage_die=12,
        attacks=["death_ray_attack", "life_drain", "summon_undead", "ancient_magic_ultimate"],
    ),
]


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

ITEMS: list[ItemDefinition] = [
    ItemDefinition(id="health_potion", name="Health Potion", type=ItemType.POTION, effect_value=25),
    ItemDefinition(id="rusty_dagger", name="Rusty Dagger", type=ItemType.WEAPON, effect_value=2,
                   stats={"attack": 2}),
    ItemDefinition(id="iron_sword", name="Iron Sword", type=ItemType.WEAPON, effect_value=3,
                   stats={"attack": 8, "strength": 2}),
    ItemDefinition(id="apprentice_staff", name="Apprentice Staff", type=ItemType.WEAPON,
                   rarity="uncommon", effect_value=4, stats={"attack": 4, "intelligence": 2}),
    ItemDefinition(id="strength_elixir", name="Elixir of Strength", type=ItemType.POTION,
                   rarity="rare", effect_value=5),
    ItemDefinition(id="wooden_shield", name="Wooden Shield", type=ItemType.ARMOR,
                   stats={"defense": 2}),
    ItemDefinition(id="wolf_pelt", name="Dire Wolf Pelt", type=ItemType.MATERIAL, rarity="uncommon"),
    ItemDefinition(id="greater_health_potion", name="Greater Health Potion", type=ItemType.POTION,
                   rarity="uncommon", effect_value=50),
]


def find_item(item_id: str) -> ItemDefinition | None:
    """Look up an item definition by id."""
    for item in ITEMS:
        if item.id == item_id:
            return item
    return None


def loot_pool(difficulty: int) -> list[ItemDefinition]:
    """Items an enemy of this difficulty can drop.

    Items without an effect value count as 1.
    """
    ceiling = difficulty + LOOT_DIFFICULTY_MARGIN
    return [item for item in ITEMS if (item.effect_value or 1) <= ceiling]


def enemies_for_level(
    level: int,
    pool: list[EnemyDefinition] | None = None,
) -> list[EnemyDefinition]:
    """Enemies within ENCOUNTER_LEVEL_SPREAD of the level, or the full pool."""
    pool = ENEMIES if pool is None else pool
    matching = [
        enemy for enemy in pool
        if level - ENCOUNTER_LEVEL_SPREAD <= enemy.difficulty <= level + ENCOUNTER_LEVEL_SPREAD
    ]
    return matching or list(pool)


def pick_enemy(
    level: int,
    rng: random.Random | None = None,
    pool: list[EnemyDefinition] | None = None,
) -> EnemyDefinition:
    """Choose a random enemy suited to the player's level.

    Raises:
        ValueError: If the enemy pool is empty.
    """
    candidates = enemies_for_level(level, pool)
    if not candidates:
        raise ValueError("Enemy pool is empty")
    rng = rng or random.Random()
    return rng.choice(candidates)


def spawn_enemy(definition: EnemyDefinition) -> Combatant:
    """Create a fresh, full-health enemy combatant from a definition."""
    return Combatant(
        id=str(uuid4()),
        name=definition.name,
        level=max(1, definition.difficulty),
        current_hp=definition.max_hp,
        max_hp=definition.max_hp,
        ability_scores=definition.ability_scores,
        armor_class=definition.armor_class,
        damage_die=definition.damage_die,
        is_npc=True,
        difficulty=definition.difficulty,
        attacks=list(definition.attacks),
    )
