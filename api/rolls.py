"""Stateless endpoints exposing the individual roll engines."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from engine.attacks import attack_roll, enemy_attack_roll, enhanced_attack_roll
from engine.dice import luck_roll, percentile_roll
from engine.npc import compute_threat_level, select_enemy_action
from engine.rules import damage_roll, initiative_roll, saving_throw, skill_check
from models.rolls import AttackRollResult, Behavior, CheckResult, DamageResult, ThreatLevel

router = APIRouter()


class AttackRequest(BaseModel):
    modifier: int
    level: int = 1


class EnhancedAttackRequest(BaseModel):
    modifier: int
    level: int = 1
    buffs: int = 0
    debuffs: int = 0
    equipment_bonus: int = 0
    has_enhanced_dice: bool = False
    is_player: bool = False
    advantage: bool = False
    research_bonus: int = 0
    spell_bonus: int = 0


class EnemyAttackRequest(BaseModel):
    modifier: int
    level: int = 1
    behavior: Behavior = Behavior.NORMAL
    health_percent: float = 100


class SavingThrowRequest(BaseModel):
    stat: int
    difficulty: int
    level: int = 1
    advantage: bool = False
    research_bonus: int = 0
    buff_bonus: int = 0


class SkillCheckRequest(BaseModel):
    stat: int
    difficulty: int
    proficiency: bool = False
    level: int = 1
    research_bonus: int = 0


class DamageRequest(BaseModel):
    dice_count: int
    dice_size: int
    modifier: int = 0
    is_critical: bool = False
    level_bonus: int = 0
    equipment_bonus: int = 0
    spell_bonus: int = 0
    research_bonus: int = 0
    behavior_multiplier: float = 1


class InitiativeRequest(BaseModel):
    dexterity: int
    level: int = 1
    research_bonus: int = 0


class ThreatRequest(BaseModel):
    player_level: int
    player_health: int
    player_max_health: int
    player_ac: int


class EnemyActionRequest(BaseModel):
    available_actions: list[str]
    enemy_health: int
    enemy_max_health: int
    player_threat_level: ThreatLevel
    combat_round: int


@router.post("/attack", response_model=AttackRollResult)
def roll_attack(body: AttackRequest) -> AttackRollResult:
    return attack_roll(body.modifier, body.level)


@router.post("/enhanced-attack", response_model=AttackRollResult)
def roll_enhanced_attack(body: EnhancedAttackRequest) -> AttackRollResult:
    return enhanced_attack_roll(**body.model_dump())


@router.post("/enemy-attack", response_model=AttackRollResult)
def roll_enemy_attack(body: EnemyAttackRequest) -> AttackRollResult:
    return enemy_attack_roll(**body.model_dump())


@router.post("/saving-throw", response_model=CheckResult)
def roll_saving_throw(body: SavingThrowRequest) -> CheckResult:
    return saving_throw(**body.model_dump())


@router.post("/skill-check", response_model=CheckResult)
def roll_skill_check(body: SkillCheckRequest) -> CheckResult:
    return skill_check(**body.model_dump())


@router.post("/damage", response_model=DamageResult)
def roll_damage(body: DamageRequest) -> DamageResult:
    try:
        return damage_roll(**body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/initiative")
def roll_initiative(body: InitiativeRequest) -> dict:
    return {"initiative": initiative_roll(**body.model_dump())}


@router.get("/percentile")
def roll_percentile() -> dict:
    return {"roll": percentile_roll()}


@router.get("/luck")
def roll_luck(threshold: int = 50, luck_bonus: int = 0) -> dict:
    return {"success": luck_roll(threshold, luck_bonus)}


@router.post("/threat", response_model=ThreatLevel)
def assess_threat(body: ThreatRequest) -> ThreatLevel:
    try:
        return compute_threat_level(**body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/enemy-action")
def choose_enemy_action(body: EnemyActionRequest) -> dict:
    try:
        return {"action": select_enemy_action(**body.model_dump())}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
