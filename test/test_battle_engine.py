"""
战斗引擎测试
Battle Engine Tests

作者: lx
日期: 2025-06-18
描述: 测试回合编排: 行动顺序、提前结束、无效行动、ID解析和并发冲突
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from common.exceptions import (
    BattleAlreadyFinishedError, BattleNotFoundError, TurnConflictError, ValidationError
)
from services.fight.core.battle_engine import BattleEngine, TurnAction
from services.fight.core.battle_unit import StatusEffect
from conftest import ScriptedRandom, make_player, make_enemy

# 模板不存在的敌人不会由AI生成行动
IDLE = "dummy"


def _engine(store, rng=None):
    return BattleEngine(store, rng=rng or ScriptedRandom(default=0.5))


def _attack(target_id, skill_id="fire_blast", actor_id="p1"):
    return {"actor_id": actor_id, "target_id": target_id, "skill_id": skill_id}


class TestTurnFlow:
    """测试回合流程"""

    @pytest.mark.asyncio
    async def test_battle_ends_when_last_enemy_falls(self, memory_store, make_battle):
        """测试击倒最后一个存活敌人后战斗立即结束"""
        memory_store.add_battle(make_battle([
            make_player(special_attack=40),
            make_enemy("e1", IDLE, health=0, max_health=60, position=1),
            make_enemy("e2", IDLE, health=0, max_health=60, position=2),
            make_enemy("e3", IDLE, health=10, max_health=60, position=3),
        ]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e3")])

        assert turn.finished
        assert turn.winning_team == "player"
        assert turn.winner_id == "p1"
        assert turn.turn_number == 1
        assert turn.player_actions[0].target_defeated
        assert "Enemy e3 was defeated!" in turn.player_actions[0].messages

        stored = await memory_store.load_battle("battle_1")
        assert stored.is_finished
        assert stored.current_turn == 1
        assert stored.ended_at is not None
        assert stored.get_participant("e3").health == 0

    @pytest.mark.asyncio
    async def test_unfinished_turn_increments_counter(self, memory_store, make_battle):
        """测试未结束的回合只推进回合数"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE, health=500)]))
        engine = _engine(memory_store)

        first = await engine.execute_turn("battle_1", [_attack("e1")])
        second = await engine.execute_turn("battle_1", [_attack("e1")])

        assert not first.finished
        assert first.turn_number == 1
        assert second.turn_number == 2
        stored = await memory_store.load_battle("battle_1")
        assert stored.get_participant("e1").health < 500

    @pytest.mark.asyncio
    async def test_finished_battle_is_rejected(self, memory_store, make_battle):
        """测试已结束的战斗拒绝新回合且不做修改"""
        enemy = make_enemy("e1", IDLE, health=5, max_health=60, physical_attack=12)
        enemy.status_effects.append(StatusEffect("poison", 2, 4))
        memory_store.add_battle(make_battle(
            [make_player(), enemy],
            is_finished=True, winning_team="player", winner_id="p1"
        ))
        before = (await memory_store.load_battle("battle_1")).get_participant("e1").to_dict()

        with pytest.raises(BattleAlreadyFinishedError):
            await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        stored = await memory_store.load_battle("battle_1")
        assert stored.current_turn == 0
        assert stored.get_participant("e1").to_dict() == before

    @pytest.mark.asyncio
    async def test_missing_battle(self, memory_store):
        """测试战斗不存在"""
        with pytest.raises(BattleNotFoundError):
            await _engine(memory_store).execute_turn("missing", [])

    @pytest.mark.asyncio
    async def test_faster_side_acts_first(self, memory_store, make_battle):
        """测试速度快的一方先行动，击倒对方后对方不再行动"""
        memory_store.add_battle(make_battle(
            [make_player(health=1, speed=5), make_enemy("e1", "slime", speed=20)],
            metadata={"ai_difficulty": 3}
        ))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        assert turn.finished
        assert turn.winning_team == "enemy"
        assert turn.winner_id == "e1"
        assert turn.player_actions == []
        assert turn.enemy_actions[0].target_id == "p1"
        assert turn.enemy_actions[0].skill_id == "water_jet"

    @pytest.mark.asyncio
    async def test_damage_over_time_can_end_battle(self, memory_store, make_battle):
        """测试回合开始的持续伤害击倒玩家后，玩家不行动并在回合末判负"""
        player = make_player(health=5)
        player.status_effects.append(StatusEffect("poison", 3, 10))
        memory_store.add_battle(make_battle([player, make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        assert turn.finished
        assert turn.winning_team == "enemy"
        assert turn.player_actions == []
        assert turn.tick_events[0].kind == "damage"
        assert turn.turn_number == 1

    @pytest.mark.asyncio
    async def test_buff_and_debuff_are_persisted(self, memory_store, make_battle):
        """测试增减益随回合一起提交"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1", "war_cry")])

        action = turn.player_actions[0]
        assert action.buff == {"attribute": "physical_attack", "value": 3, "duration": 3}
        assert action.debuff == {"attribute": "physical_defense", "value": -2, "duration": 3}

        stored = await memory_store.load_battle("battle_1")
        assert stored.get_participant("p1").stats.physical_attack == 13
        assert stored.get_participant("e1").stats.physical_defense == 8
        assert stored.get_participant("e1").modifiers[0].remaining_turns == 3


class TestInvalidActions:
    """测试无效行动"""

    @pytest.mark.asyncio
    async def test_stunned_actor_fizzles(self, memory_store, make_battle):
        """测试被控制的行动者本回合无法行动"""
        player = make_player()
        player.status_effects.append(StatusEffect("stun", 2))
        memory_store.add_battle(make_battle([player, make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        action = turn.player_actions[0]
        assert not action.performed
        assert "cannot act" in action.messages[0]
        stored = await memory_store.load_battle("battle_1")
        assert stored.get_participant("e1").health == 60

    @pytest.mark.asyncio
    async def test_dead_target_fizzles(self, memory_store, make_battle):
        """测试目标已被击倒时行动无效"""
        memory_store.add_battle(make_battle([
            make_player(),
            make_enemy("e1", IDLE, health=0, max_health=60, position=1),
            make_enemy("e2", IDLE, position=2),
        ]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        assert not turn.finished
        assert turn.player_actions[0].messages == ["Enemy e1 has already been defeated"]

    @pytest.mark.asyncio
    async def test_unknown_skill(self, memory_store, make_battle):
        """测试技能不存在"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1", "nope")])

        assert turn.player_actions[0].messages == ["Skill not found"]
        assert not turn.player_actions[0].performed

    @pytest.mark.asyncio
    async def test_unequipped_skill(self, memory_store, make_battle):
        """测试玩家使用未装备的技能"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1", "stun_bolt")])

        assert turn.player_actions[0].messages == ["Stun Bolt is not equipped and cannot be used"]
        stored = await memory_store.load_battle("battle_1")
        assert stored.get_participant("e1").health == 60

    @pytest.mark.asyncio
    async def test_unknown_target(self, memory_store, make_battle):
        """测试目标不存在时行动无效但仍有结果"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("ghost")])

        assert turn.player_actions[0].target_id is None
        assert turn.player_actions[0].messages == ["Target not found"]
        assert turn.turn_number == 1

    @pytest.mark.asyncio
    async def test_unknown_actor_is_ignored(self, memory_store, make_battle):
        """测试行动者不存在时忽略该行动"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [_attack("e1", actor_id="nobody")])

        assert turn.action_results == []
        assert turn.turn_number == 1

    @pytest.mark.asyncio
    async def test_duplicate_actor_is_rejected(self, memory_store, make_battle):
        """测试同一参与者重复提交行动 (包括通过用户ID解析出的重复)"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        with pytest.raises(ValidationError):
            await _engine(memory_store).execute_turn(
                "battle_1", [_attack("e1"), _attack("e1", "tackle", actor_id="user_1")]
            )

        stored = await memory_store.load_battle("battle_1")
        assert stored.current_turn == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actions", [
        [{"actor_id": "p1", "target_id": "e1"}],
        [{"actor_id": "p1", "target_id": "e1", "skill_id": 3}],
        ["p1"],
        {"actor_id": "p1"},
    ])
    async def test_malformed_actions(self, memory_store, make_battle, actions):
        """测试行动格式错误"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        with pytest.raises(ValidationError):
            await _engine(memory_store).execute_turn("battle_1", actions)


class TestIdResolution:
    """测试ID解析"""

    @pytest.mark.asyncio
    async def test_user_and_template_ids_are_remapped(self, memory_store, make_battle):
        """测试用户ID和敌人模板ID被解析为参与者ID"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn(
            "battle_1", [{"actor_id": "user_1", "target_id": IDLE, "skill_id": "tackle"}]
        )

        action = turn.player_actions[0]
        assert action.actor_id == "p1"
        assert action.target_id == "e1"
        assert action.performed

    @pytest.mark.asyncio
    async def test_turn_action_objects_are_accepted(self, memory_store, make_battle):
        """测试直接提交 TurnAction"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        turn = await _engine(memory_store).execute_turn("battle_1", [TurnAction("p1", "e1", "tackle")])

        assert turn.player_actions[0].performed


class TestEnemyActions:
    """测试敌人行动补全"""

    @pytest.mark.asyncio
    async def test_enemy_without_action_uses_ai(self, memory_store, make_battle):
        """测试未提交行动的敌人由AI选择"""
        memory_store.add_battle(make_battle(
            [make_player(health=500), make_enemy("e1", "slime")],
            metadata={"ai_difficulty": 3}
        ))

        turn = await _engine(memory_store).execute_turn("battle_1", [])

        assert len(turn.enemy_actions) == 1
        action = turn.enemy_actions[0]
        assert action.actor_id == "e1"
        assert action.target_id == "p1"
        assert action.performed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("configured", ["hard", [3], float("nan")])
    async def test_invalid_ai_difficulty_falls_back(self, memory_store, make_battle, configured):
        """测试元数据中的AI难度无法解析时按敌人属性计算"""
        memory_store.add_battle(make_battle(
            [make_player(health=500), make_enemy("e1", "slime")],
            metadata={"ai_difficulty": configured}
        ))

        turn = await _engine(memory_store).execute_turn("battle_1", [])

        assert turn.turn_number == 1
        assert len(turn.enemy_actions) == 1
        assert turn.enemy_actions[0].target_id == "p1"

    @pytest.mark.asyncio
    async def test_submitted_enemy_action_is_kept(self, memory_store, make_battle):
        """测试已提交的敌人行动不被AI覆盖"""
        memory_store.add_battle(make_battle([make_player(health=500), make_enemy("e1", "slime")]))

        turn = await _engine(memory_store).execute_turn(
            "battle_1", [{"actor_id": "e1", "target_id": "p1", "skill_id": "tackle"}]
        )

        assert turn.enemy_actions[0].skill_id == "tackle"


class TestConcurrency:
    """测试并发冲突"""

    @pytest.mark.asyncio
    async def test_held_lock_conflicts(self, memory_store, make_battle):
        """测试同一战斗已有回合在处理时拒绝新回合"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))
        engine = _engine(memory_store)

        async with memory_store.battle_lock("battle_1"):
            with pytest.raises(TurnConflictError):
                await engine.execute_turn("battle_1", [_attack("e1")])

        turn = await engine.execute_turn("battle_1", [_attack("e1")])
        assert turn.turn_number == 1

    @pytest.mark.asyncio
    async def test_lock_entries_are_released(self, memory_store, make_battle):
        """测试回合结束后释放锁表条目，包括不存在的战斗"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE, health=500)]))
        engine = _engine(memory_store)

        await engine.execute_turn("battle_1", [_attack("e1")])
        for i in range(20):
            with pytest.raises(BattleNotFoundError):
                await engine.execute_turn(f"bogus_{i}", [])

        assert memory_store._battle_locks == {}

    @pytest.mark.asyncio
    async def test_conflict_keeps_holder_lock(self, memory_store):
        """测试冲突方不会移除持有者的锁"""
        async with memory_store.battle_lock("battle_1"):
            with pytest.raises(TurnConflictError):
                async with memory_store.battle_lock("battle_1"):
                    pass
            assert "battle_1" in memory_store._battle_locks
        assert memory_store._battle_locks == {}

    @pytest.mark.asyncio
    async def test_stale_turn_is_not_saved(self, memory_store, make_battle):
        """测试回合数已变化时提交失败"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))
        stale = await memory_store.load_battle("battle_1")

        await _engine(memory_store).execute_turn("battle_1", [_attack("e1")])

        stale.current_turn += 1
        with pytest.raises(TurnConflictError):
            await memory_store.save_turn(stale, 0)

        stored = await memory_store.load_battle("battle_1")
        assert stored.current_turn == 1


class TestCheckBattleState:
    """测试战斗状态检查"""

    @pytest.mark.asyncio
    async def test_finishes_defeated_battle_without_advancing(self, memory_store, make_battle):
        """测试一方全灭但未结束的战斗在检查时结束，回合数不变"""
        memory_store.add_battle(make_battle(
            [make_player(), make_enemy("e1", IDLE, health=0, max_health=60)],
            current_turn=4
        ))

        state = await _engine(memory_store).check_battle_state("battle_1")

        assert state.is_finished
        assert state.winning_team == "player"
        stored = await memory_store.load_battle("battle_1")
        assert stored.is_finished
        assert stored.current_turn == 4

    @pytest.mark.asyncio
    async def test_active_battle_untouched(self, memory_store, make_battle):
        """测试进行中的战斗保持不变"""
        memory_store.add_battle(make_battle([make_player(), make_enemy("e1", IDLE)]))

        state = await _engine(memory_store).check_battle_state("battle_1")

        assert not state.is_finished
        assert state.current_turn == 0
