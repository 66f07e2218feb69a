"""Combatant, item, and enemy definition models for Skirmish Engine."""

from enum import Enum

from pydantic import BaseModel, Field


class AbilityScores(BaseModel):
    """The six core ability scores."""
    strength: int = 10
    dexterity: int = 10
    constitution: int = 10
    intelligence: int = 10
    wisdom: int = 10
    charisma: int = 10


class Buff(BaseModel):
    """A timed buff or debuff on a combatant."""
    name: str
    effect: int = 1                 # Magnitude counted by the attack roll
    remaining_turns: int = 1


class EquipmentBonus(BaseModel):
    """Flat bonuses aggregated from everything a combatant has equipped."""
    attack: int = 0
    defense: int = 0
    damage: int = 0
    stats: dict[str, int] = {}      # e.g. {"dexterity": 1}


class ItemType(str, Enum):
    """Item categories the combat engine cares about."""
    WEAPON = "weapon"
    ARMOR = "armor"
    POTION = "potion"
    ACCESSORY = "accessory"
    MATERIAL = "material"


class ItemDefinition(BaseModel):
    """An entry in the item content table (also used for inventory)."""
    id: str
    name: str
    type: ItemType
    rarity: str = "common"
    effect_value: int | None = None  # Attack bonus for weapons, heal for potions
    stats: dict[str, int] = {}


class EnemyDefinition(BaseModel):
    """An entry in the enemy content table."""
    id: str
    name: str
    difficulty: int                 # Doubles as the enemy's level
    ability_scores: AbilityScores = AbilityScores()
    max_hp: int = Field(gt=0)
    armor_class: int
    damage_die: int = Field(default=6, ge=1)
    image: str | None = None
    attacks: list[str] = Field(default=["attack"], min_length=1)  # Action identifiers fed to the AI


class Combatant(BaseModel):
    """A player character or an enemy taking part in combat."""
    id: str
    name: str
    level: int = Field(default=1, ge=1)
    current_hp: int
    max_hp: int = Field(gt=0)
    current_mana: int | None = None
    max_mana: int | None = None
    ability_scores: AbilityScores = AbilityScores()
    armor_class: int = 10
    damage_die: int = Field(default=6, ge=1)
    buffs: list[Buff] = []
    debuffs: list[Buff] = []
    equipment: EquipmentBonus = EquipmentBonus()
    has_enhanced_dice: bool = False
    is_npc: bool = False
    difficulty: int = 1
    attacks: list[str] = Field(default=["attack"], min_length=1)
    gold: int = 0
    experience: int = 0
    inventory: list[ItemDefinition] = []

    @property
    def health_percent(self) -> float:
        """Current health as a percentage of max health."""
        if self.max_hp <= 0:
            return 0.0
        return self.current_hp / self.max_hp * 100

    def stat(self, name: str) -> int:
        """An ability score including equipment stat bonuses."""
        return getattr(self.ability_scores, name) + self.equipment.stats.get(name, 0)
