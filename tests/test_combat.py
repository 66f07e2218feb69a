"""Tests for combat orchestration: initiative, turns, win conditions, rewards."""

import random

import pytest
from pydantic import ValidationError

from engine.bestiary import find_item
from engine.combat import (
    abort_encounter,
    grant_rewards,
    process_enemy_turn,
    process_player_action,
    roll_initiative,
    start_encounter,
)
from models.actions import ActionRequest, ActionType
from models.characters import AbilityScores, Buff, Combatant, EquipmentBonus
from models.combat_state import CombatPhase
from models.notifications import Severity

# Player 15 + 1 (DEX 12) + 2 bonus = 18 vs enemy 10 + 0
PLAYER_FIRST = [15, 10]
# Player 1 + 1 + 2 = 4 vs enemy 20 + 0
ENEMY_FIRST = [1, 20]


def _make_player(
    hp: int = 30,
    dex: int = 12,
    strength: int = 14,
    intelligence: int = 10,
    inventory: list | None = None,
    buffs: list[Buff] | None = None,
) -> Combatant:
    """Helper to create a test player (level 1, AC 12, d6 damage)."""
    return Combatant(
        id="p1",
        name="Hero",
        level=1,
        current_hp=hp,
        max_hp=30,
        ability_scores=AbilityScores(strength=strength, dexterity=dex, intelligence=intelligence),
        armor_class=12,
        damage_die=6,
        inventory=inventory or [],
        buffs=buffs or [],
    )


def _make_enemy(
    hp: int = 20,
    ac: int = 10,
    attacks: list[str] | None = None,
    difficulty: int = 1,
) -> Combatant:
    """Helper to create a test enemy (level 1, STR 12, d6 damage)."""
    return Combatant(
        id="e1",
        name="Goblin",
        level=1,
        current_hp=hp,
        max_hp=20,
        ability_scores=AbilityScores(strength=12, dexterity=10),
        armor_class=ac,
        damage_die=6,
        is_npc=True,
        difficulty=difficulty,
        attacks=attacks or ["bite"],
    )


def _begin(rng, player=None, enemy=None):
    """Start an encounter and roll initiative with the given rng."""
    state, _ = start_encounter(player or _make_player(), enemy or _make_enemy())
    state, _ = roll_initiative(state, rng)
    return state


def _act(state, action_type, rng=None, item_id=None):
    return process_player_action(state, ActionRequest(action_type=action_type, item_id=item_id), rng)


class TestStartEncounter:
    def test_start_sets_not_started(self):
        state, result = start_encounter(_make_player(), _make_enemy())
        assert result.success
        assert state.phase == CombatPhase.NOT_STARTED
        assert "appears" in state.log_lines[0]

    def test_missing_player_refused(self):
        state, result = start_encounter(None, _make_enemy())
        assert state is None
        assert result.success is False
        assert result.notification.severity == Severity.ERROR

    def test_missing_enemy_refused(self):
        state, result = start_encounter(_make_player(), None)
        assert state is None
        assert result.error == "No enemy to fight"

    def test_fainted_player_refused(self):
        state, result = start_encounter(_make_player(hp=0), _make_enemy())
        assert state is None
        assert "fainted" in result.error


class TestInitiative:
    def test_player_goes_first_on_higher_roll(self, scripted):
        state = _begin(scripted(PLAYER_FIRST))
        assert state.phase == CombatPhase.INITIATIVE_ROLLED
        assert state.player_initiative == 18
        assert state.enemy_initiative == 10
        assert state.is_player_turn
        assert not state.is_enemy_turn

    def test_enemy_goes_first_on_higher_roll(self, scripted):
        state = _begin(scripted(ENEMY_FIRST))
        assert state.is_enemy_turn
        assert not state.is_player_turn

    def test_tie_goes_to_enemy(self, scripted):
        # Player 8 + 0 + 2 = 10 vs enemy 10 + 0
        state = _begin(scripted([8, 10]), player=_make_player(dex=10))
        assert state.player_initiative == state.enemy_initiative == 10
        assert state.is_enemy_turn

    def test_cannot_roll_twice(self, scripted):
        state = _begin(scripted(PLAYER_FIRST))
        same, result = roll_initiative(state, scripted([20, 1]))
        assert same is state
        assert result.success is False

    def test_no_encounter(self):
        state, result = roll_initiative(None)
        assert state is None
        assert result.success is False


class TestPlayerAttack:
    def test_hit_applies_damage(self, scripted):
        # d18 pair (8, 3) keeps 8, +4 modifier = 12 vs AC 10; d6 5 + 2 = 7 damage
        rng = scripted(PLAYER_FIRST + [8, 3, 5])
        state = _begin(rng)
        new_state, result = _act(state, ActionType.ATTACK, rng)
        assert result.success
        assert result.hit is True
        assert result.attack_roll == 12
        assert result.damage_dealt == 7
        assert new_state.enemy.current_hp == 13
        assert new_state.phase == CombatPhase.ENEMY_TURN

    def test_state_not_mutated(self, scripted):
        rng = scripted(PLAYER_FIRST + [8, 3, 5])
        state = _begin(rng)
        _act(state, ActionType.ATTACK, rng)
        assert state.enemy.current_hp == 20
        assert state.phase == CombatPhase.INITIATIVE_ROLLED

    def test_miss(self, scripted):
        rng = scripted(PLAYER_FIRST + [2, 3])
        state, result = _act(_begin(rng), ActionType.ATTACK, rng)
        assert result.hit is False
        assert result.damage_dealt == 0
        assert state.enemy.current_hp == 20
        assert state.phase == CombatPhase.ENEMY_TURN

    def test_critical_always_hits(self, scripted):
        # Natural 18 on a d18 beats any AC; critical damage rolls 2d6
        rng = scripted(PLAYER_FIRST + [18, 1, 3, 4])
        state, result = _act(_begin(rng, enemy=_make_enemy(ac=40)), ActionType.ATTACK, rng)
        assert result.hit is True
        assert result.critical is True
        assert result.damage_dealt == 9
        assert state.enemy.current_hp == 11

    def test_damage_clamped_at_zero(self, scripted):
        rng = scripted(PLAYER_FIRST + [8, 3, 6])
        state, _ = _act(_begin(rng, enemy=_make_enemy(hp=2)), ActionType.ATTACK, rng)
        assert state.enemy.current_hp == 0

    def test_buffs_add_to_attack(self, scripted):
        rng = scripted(PLAYER_FIRST + [2, 3])
        player = _make_player(buffs=[Buff(name="bless", effect=1, remaining_turns=3)])
        _, result = _act(_begin(rng, player=player), ActionType.ATTACK, rng)
        # base 3 + 4 + buff 2
        assert result.attack_roll == 9

    def test_buffs_tick_at_end_of_turn(self, scripted):
        rng = scripted(PLAYER_FIRST)
        player = _make_player(buffs=[Buff(name="bless", remaining_turns=1)])
        state, _ = _act(_begin(rng, player=player), ActionType.DEFEND)
        assert state.player.buffs == []

    def test_equipment_dexterity_weapon(self, scripted):
        player = _make_player(dex=16, strength=8).model_copy(
            update={"equipment": EquipmentBonus(attack=1, stats={"dexterity": 2})}
        )
        # Initiative: 15 + mod(18)=4 + 2 = 21. Attack: mod(18)=4 + 2 player + 1 equipment
        rng = scripted(PLAYER_FIRST + [2, 3])
        _, result = _act(_begin(rng, player=player), ActionType.ATTACK, rng)
        assert result.attack_roll == 10


class TestVictory:
    def test_enemy_at_zero_is_victory(self, scripted):
        rng = scripted(PLAYER_FIRST + [8, 3, 5])
        enemy = _make_enemy(hp=5, difficulty=3)
        state, result = _act(_begin(rng, enemy=enemy), ActionType.ATTACK, rng)
        assert state.phase == CombatPhase.VICTORY
        assert state.is_over
        assert state.rewards.experience == 300
        assert 10 <= state.rewards.gold <= 59
        assert result.notification.severity == Severity.SUCCESS
        assert "Victory!" in result.notification.message

    def test_no_actions_after_victory(self, scripted):
        rng = scripted(PLAYER_FIRST + [8, 3, 5])
        state, _ = _act(_begin(rng, enemy=_make_enemy(hp=5)), ActionType.ATTACK, rng)
        same, result = _act(state, ActionType.ATTACK, rng)
        assert same is state
        assert result.success is False
        _, enemy_result = process_enemy_turn(state, rng)
        assert enemy_result.success is False


class TestRewards:
    def test_experience_scales_with_difficulty(self):
        rewards = grant_rewards(5, random.Random(1))
        assert rewards.experience == 500
        assert 10 <= rewards.gold <= 59

    def test_gold_range(self):
        rng = random.Random(2)
        golds = {grant_rewards(1, rng).gold for _ in range(3000)}
        assert min(golds) == 10
        assert max(golds) == 59

    def test_loot_drop_when_lucky(self, scripted):
        rewards = grant_rewards(5, scripted(floats=[0.0]))
        assert rewards.loot is not None
        assert (rewards.loot.effect_value or 1) <= 7

    def test_no_loot_when_unlucky(self, scripted):
        assert grant_rewards(5, scripted(floats=[0.3])).loot is None

    def test_loot_rate_is_about_thirty_percent(self):
        rng = random.Random(11)
        trials = 3000
        drops = sum(1 for _ in range(trials) if grant_rewards(5, rng).loot is not None)
        assert 0.25 < drops / trials < 0.35


class TestOtherPlayerActions:
    def test_defend_heals(self, scripted):
        state, result = _act(_begin(scripted(PLAYER_FIRST), player=_make_player(hp=20)), ActionType.DEFEND)
        assert result.success
        assert state.player.current_hp == 25
        assert state.phase == CombatPhase.ENEMY_TURN

    def test_defend_clamped_at_max(self, scripted):
        state, _ = _act(_begin(scripted(PLAYER_FIRST), player=_make_player(hp=28)), ActionType.DEFEND)
        assert state.player.current_hp == 30

    def test_skill_success_grants_bonus(self, scripted):
        # INT 10 (+0), proficiency at level 1 = +2, DC 10 + difficulty 1
        rng = scripted(PLAYER_FIRST + [9])
        state, _ = _act(_begin(rng), ActionType.SKILL, rng)
        assert state.pending_attack_bonus == 2

    def test_skill_failure(self, scripted):
        rng = scripted(PLAYER_FIRST + [3])
        state, result = _act(_begin(rng), ActionType.SKILL, rng)
        assert result.success
        assert state.pending_attack_bonus == 0
        assert "fails" in result.description

    def test_potion_heals_and_is_consumed(self, scripted):
        player = _make_player(hp=2, inventory=[find_item("health_potion")])
        state, result = _act(
            _begin(scripted(PLAYER_FIRST), player=player), ActionType.ITEM, item_id="health_potion"
        )
        assert result.success
        assert state.player.current_hp == 27
        assert state.player.inventory == []

    def test_weapon_item_boosts_next_attack(self, scripted):
        player = _make_player(inventory=[find_item("rusty_dagger")])
        # Item turn, enemy misses with a 2, then the attack carries +2
        rng = scripted(PLAYER_FIRST + [2, 2, 3])
        state, _ = _act(_begin(rng, player=player), ActionType.ITEM, rng, item_id="rusty_dagger")
        assert state.pending_attack_bonus == 2
        state, _ = process_enemy_turn(state, rng)
        state, result = _act(state, ActionType.ATTACK, rng)
        assert result.attack_roll == 3 + 4 + 2
        assert state.pending_attack_bonus == 0

    def test_missing_item_refused(self, scripted):
        state = _begin(scripted(PLAYER_FIRST))
        same, result = _act(state, ActionType.ITEM, item_id="health_potion")
        assert same is state
        assert result.success is False
        assert result.notification.severity == Severity.ERROR

    def test_item_without_id_refused(self, scripted):
        _, result = _act(_begin(scripted(PLAYER_FIRST)), ActionType.ITEM)
        assert result.success is False

    def test_unusable_item_refused(self, scripted):
        player = _make_player(inventory=[find_item("wolf_pelt")])
        state = _begin(scripted(PLAYER_FIRST), player=player)
        same, result = _act(state, ActionType.ITEM, item_id="wolf_pelt")
        assert result.success is False
        assert len(same.player.inventory) == 1

    def test_flee_success(self, scripted):
        # d20 7 + DEX 1 = 8 vs DC 8 + 1 // 3
        rng = scripted(PLAYER_FIRST + [7])
        state, result = _act(_begin(rng), ActionType.FLEE, rng)
        assert state.phase == CombatPhase.FLED
        assert result.notification.severity == Severity.INFO

    def test_flee_failure_passes_turn(self, scripted):
        rng = scripted(PLAYER_FIRST + [2])
        state, result = _act(_begin(rng), ActionType.FLEE, rng)
        assert result.success
        assert state.phase == CombatPhase.ENEMY_TURN

    def test_enemy_attack_not_a_player_action(self, scripted):
        _, result = _act(_begin(scripted(PLAYER_FIRST)), ActionType.ENEMY_ATTACK)
        assert result.success is False


class TestTurnOrder:
    def test_player_cannot_act_on_enemy_turn(self, scripted):
        state = _begin(scripted(ENEMY_FIRST))
        same, result = _act(state, ActionType.ATTACK)
        assert same is state
        assert result.error == "It's not your turn"

    def test_enemy_cannot_act_on_player_turn(self, scripted):
        state = _begin(scripted(PLAYER_FIRST))
        same, result = process_enemy_turn(state)
        assert same is state
        assert result.success is False

    def test_actions_before_initiative_refused(self):
        state, _ = start_encounter(_make_player(), _make_enemy())
        _, result = _act(state, ActionType.ATTACK)
        assert result.success is False
        _, enemy_result = process_enemy_turn(state)
        assert enemy_result.success is False

    def test_missing_state_refused(self):
        state, result = _act(None, ActionType.ATTACK)
        assert state is None
        assert result.success is False
        state, result = process_enemy_turn(None)
        assert state is None
        assert result.success is False

    def test_round_advances_when_player_opened(self, scripted):
        rng = scripted(PLAYER_FIRST + [2])
        state, _ = _act(_begin(rng), ActionType.DEFEND)
        assert state.round_number == 1
        state, _ = process_enemy_turn(state, rng)
        assert state.round_number == 2
        assert state.phase == CombatPhase.PLAYER_TURN

    def test_round_advances_when_enemy_opened(self, scripted):
        rng = scripted(ENEMY_FIRST + [2])
        state, _ = process_enemy_turn(_begin(rng), rng)
        assert state.round_number == 1
        state, _ = _act(state, ActionType.DEFEND)
        assert state.round_number == 2


class TestEnemyTurn:
    def test_enemy_hit(self, scripted):
        # d18 15 + STR 1 = 16 vs AC 12; d6 4 + 1 = 5 damage
        rng = scripted(ENEMY_FIRST + [15, 4])
        state, result = process_enemy_turn(_begin(rng), rng)
        assert result.hit is True
        assert result.enemy_action == "bite"
        assert result.damage_dealt == 5
        assert state.player.current_hp == 25
        assert state.phase == CombatPhase.PLAYER_TURN

    def test_enemy_fumble_misses(self, scripted):
        rng = scripted(ENEMY_FIRST + [1])
        state, result = process_enemy_turn(_begin(rng), rng)
        assert result.hit is False
        assert result.fumble is True
        assert "CRITICAL MISS" in result.description
        assert state.player.current_hp == 30

    def test_enemy_fumble_misses_low_armor(self, scripted):
        # 1 + STR 1 = 2 beats AC 1, but a kept 1 always misses
        player = _make_player().model_copy(update={"armor_class": 1})
        rng = scripted(ENEMY_FIRST + [1])
        state, result = process_enemy_turn(_begin(rng, player=player), rng)
        assert result.attack_roll == 2
        assert result.fumble is True
        assert result.hit is False
        assert state.player.current_hp == 30

    def test_enemy_miss(self, scripted):
        rng = scripted(ENEMY_FIRST + [5])
        state, result = process_enemy_turn(_begin(rng), rng)
        assert result.hit is False
        assert result.fumble is False

    def test_equipment_defense_raises_ac(self, scripted):
        player = _make_player().model_copy(update={"equipment": EquipmentBonus(defense=5)})
        rng = scripted(ENEMY_FIRST + [15])
        _, result = process_enemy_turn(_begin(rng, player=player), rng)
        assert result.hit is False

    def test_desperate_enemy_hits_harder(self, scripted):
        # 4/20 HP: desperate bonus (100 - 20) // 20 = 4, damage x1.5
        rng = scripted(ENEMY_FIRST + [10, 4])
        state, result = process_enemy_turn(_begin(rng, enemy=_make_enemy(hp=4)), rng)
        assert result.attack_roll == 15
        assert result.damage_dealt == 7
        assert state.player.current_hp == 23

    def test_defeat(self, scripted):
        rng = scripted(ENEMY_FIRST + [15, 4])
        state, result = process_enemy_turn(_begin(rng, player=_make_player(hp=3)), rng)
        assert state.player.current_hp == 0
        assert state.phase == CombatPhase.DEFEAT
        assert state.rewards is None
        assert result.notification.severity == Severity.ERROR


class TestMalformedCombatants:
    @pytest.mark.parametrize(
        "field,value",
        [("damage_die", 0), ("max_hp", 0), ("attacks", [])],
    )
    def test_models_reject_unplayable_values(self, field, value):
        with pytest.raises(ValidationError):
            Combatant(id="x", name="X", current_hp=10, max_hp=10, **{field: value})

    def test_zero_damage_die_refused(self, scripted):
        player = _make_player().model_copy(update={"damage_die": 0})
        rng = scripted(PLAYER_FIRST + [8, 3])
        state = _begin(rng, player=player)
        same, result = _act(state, ActionType.ATTACK, rng)
        assert same is state
        assert result.success is False
        assert result.notification.severity == Severity.ERROR
        assert same.enemy.current_hp == 20

    def test_enemy_without_actions_refused(self, scripted):
        enemy = _make_enemy().model_copy(update={"attacks": []})
        rng = scripted(ENEMY_FIRST)
        state = _begin(rng, enemy=enemy)
        same, result = process_enemy_turn(state, rng)
        assert same is state
        assert result.success is False
        assert "no available actions" in result.error

    def test_zero_max_health_refused(self, scripted):
        player = _make_player().model_copy(update={"max_hp": 0})
        rng = scripted(ENEMY_FIRST)
        state = _begin(rng, player=player)
        same, result = process_enemy_turn(state, rng)
        assert same is state
        assert result.success is False
        assert same.phase == CombatPhase.INITIATIVE_ROLLED


class TestAbort:
    def test_abort_in_progress(self, scripted):
        state = abort_encounter(_begin(scripted(PLAYER_FIRST)))
        assert state.phase == CombatPhase.ABORTED
        assert state.is_over

    def test_abort_finished_is_noop(self, scripted):
        rng = scripted(PLAYER_FIRST + [7])
        fled, _ = _act(_begin(rng), ActionType.FLEE, rng)
        assert abort_encounter(fled).phase == CombatPhase.FLED

    def test_abort_none(self):
        assert abort_encounter(None) is None
