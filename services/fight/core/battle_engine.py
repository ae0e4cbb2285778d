"""
战斗引擎
Battle Engine

作者: lx
日期: 2025-06-18
描述: 回合编排器。一次 execute_turn 调用完成一个回合:
      效果结算 -> 敌人AI补全行动 -> 按速度排序依次结算 -> 胜负判定 -> 回合数+1，
      全部修改在战斗快照上完成后以一个工作单元提交
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Iterable, Union, Set

from common.config import BattleSettings, SkillConfig, EnemyConfig
from common.exceptions import (
    ValidationError, BattleAlreadyFinishedError, SkillNotFoundError,
    EnemyNotFoundError, UserNotFoundError
)
from common.logger import log_battle_event

from .battle_state import BattleState
from .battle_unit import Participant, Team
from .damage import DamageCalculator, DamageResult
from .effects import EffectManager, TickEvent, status_name, attribute_name
from .enemy_ai import EnemyAI, clamp_difficulty, determine_difficulty

logger = logging.getLogger(__name__)


def opposing_team(team: str) -> str:
    return Team.ENEMY.value if Team(team) == Team.PLAYER else Team.PLAYER.value


@dataclass
class TurnAction:
    """一次提交的行动: 行动者 -> 目标 -> 技能"""
    actor_id: str
    target_id: Optional[str]
    skill_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TurnAction':
        """从请求数据构建，字段缺失或类型错误时抛出 ValidationError"""
        if not isinstance(data, dict):
            raise ValidationError("Action must be an object", field="actions")
        for key in ("actor_id", "target_id", "skill_id"):
            value = data.get(key)
            if not isinstance(value, str) or not value:
                raise ValidationError(f"Action field '{key}' must be a non-empty string", field=key)
        return cls(actor_id=data["actor_id"], target_id=data["target_id"], skill_id=data["skill_id"])


@dataclass
class ActionResult:
    """单个行动者的结算结果"""
    actor_id: str
    team: str
    target_id: Optional[str] = None
    skill_id: Optional[str] = None
    performed: bool = False
    hit: bool = False
    damage: int = 0
    is_critical: bool = False
    type_multiplier: float = 1.0
    target_defeated: bool = False
    status_effect: Optional[Dict[str, Any]] = None
    buff: Optional[Dict[str, Any]] = None
    debuff: Optional[Dict[str, Any]] = None
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "team": self.team,
            "target_id": self.target_id,
            "skill_id": self.skill_id,
            "performed": self.performed,
            "hit": self.hit,
            "damage": self.damage,
            "is_critical": self.is_critical,
            "type_multiplier": self.type_multiplier,
            "target_defeated": self.target_defeated,
            "status_effect": self.status_effect,
            "buff": self.buff,
            "debuff": self.debuff,
            "messages": list(self.messages),
        }


@dataclass
class TurnResult:
    """回合结算结果"""
    battle_id: str
    turn_number: int
    finished: bool
    winning_team: Optional[str]
    winner_id: Optional[str]
    player_actions: List[ActionResult] = field(default_factory=list)
    enemy_actions: List[ActionResult] = field(default_factory=list)
    tick_events: List[TickEvent] = field(default_factory=list)
    participants: List[Dict[str, Any]] = field(default_factory=list)
    rewards: Optional[Dict[str, Any]] = None

    @property
    def action_results(self) -> List[ActionResult]:
        return self.player_actions + self.enemy_actions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "battle_id": self.battle_id,
            "turn_number": self.turn_number,
            "finished": self.finished,
            "winning_team": self.winning_team,
            "winner_id": self.winner_id,
            "player_actions": [a.to_dict() for a in self.player_actions],
            "enemy_actions": [a.to_dict() for a in self.enemy_actions],
            "tick_events": [e.to_dict() for e in self.tick_events],
            "participants": self.participants,
            "rewards": self.rewards,
        }


ActionInput = Union[TurnAction, Dict[str, Any]]


class BattleEngine:
    """回合编排器

    所有随机数都来自注入的 rng，伤害计算和敌人AI共用同一个随机源
    """

    def __init__(
        self,
        store,
        settings: Optional[BattleSettings] = None,
        rng: Optional[random.Random] = None
    ):
        """
        初始化战斗引擎

        Args:
            store: BattleStore 实现
            settings: 战斗参数，默认取配置管理器中的参数
            rng: 随机源
        """
        self.store = store
        self.settings = settings or store.config_manager.settings
        self.rng = rng or random.Random()

        self.damage_calculator = DamageCalculator(self.settings, self.rng)
        self.effect_manager = EffectManager(self.settings)
        self.enemy_ai = EnemyAI(self.rng)

    # ------------------------------------------------------------------
    # 对外接口
    # ------------------------------------------------------------------

    async def execute_turn(self, battle_id: str, actions: Iterable[ActionInput]) -> TurnResult:
        """
        执行一个回合

        Args:
            battle_id: 战斗ID
            actions: 提交的行动列表

        Returns:
            TurnResult: 回合结果

        Raises:
            BattleNotFoundError: 战斗不存在
            BattleAlreadyFinishedError: 战斗已结束
            ValidationError: 行动格式错误或同一行动者重复提交
            TurnConflictError: 同一战斗有并发回合处理
        """
        submitted = self.parse_actions(actions)

        async with self.store.battle_lock(battle_id):
            state = await self.store.load_battle(battle_id)
            if state.is_finished:
                raise BattleAlreadyFinishedError(battle_id)

            expected_turn = state.current_turn
            planned = self._map_actions(state, submitted)

            # 1. 回合开始效果结算
            tick_events = self.effect_manager.tick(state.participants)

            # 2. 敌人补全行动
            await self._complete_enemy_actions(state, planned)

            # 3. 按速度依次结算
            results = await self._resolve_actions(state, planned)

            # 4. 回合末胜负判定
            if not state.is_finished:
                self._finish_if_team_defeated(state)

            state.current_turn += 1
            await self.store.save_turn(state, expected_turn)

        log_battle_event(
            "turn resolved", battle_id,
            turn_number=state.current_turn,
            finished=state.is_finished,
            winning_team=state.winning_team,
        )
        if state.is_finished:
            log_battle_event("battle finished", battle_id, winning_team=state.winning_team)

        return TurnResult(
            battle_id=battle_id,
            turn_number=state.current_turn,
            finished=state.is_finished,
            winning_team=state.winning_team,
            winner_id=state.winner_id,
            player_actions=[r for r in results if r.team == Team.PLAYER.value],
            enemy_actions=[r for r in results if r.team == Team.ENEMY.value],
            tick_events=tick_events,
            participants=[p.to_dict() for p in state.participants],
        )

    async def check_battle_state(self, battle_id: str) -> BattleState:
        """检查战斗状态，一方全灭但未结束的战斗在此结束，不推进回合数"""
        async with self.store.battle_lock(battle_id):
            state = await self.store.load_battle(battle_id)
            if not state.is_finished and self._finish_if_team_defeated(state):
                await self.store.save_turn(state, state.current_turn)
                log_battle_event("battle finished", battle_id, winning_team=state.winning_team)
        return state

    @staticmethod
    def parse_actions(actions: Iterable[ActionInput]) -> List[TurnAction]:
        """把请求数据转换为 TurnAction 列表"""
        if actions is None:
            return []
        if isinstance(actions, (str, bytes, dict)):
            raise ValidationError("Actions must be a list", field="actions")
        return [a if isinstance(a, TurnAction) else TurnAction.from_dict(a) for a in actions]

    # ------------------------------------------------------------------
    # 行动准备
    # ------------------------------------------------------------------

    def _map_actions(self, state: BattleState, submitted: List[TurnAction]) -> Dict[str, TurnAction]:
        """把提交的行动按行动者参与者ID归并，用户ID和敌人模板ID会被解析为参与者ID"""
        planned: Dict[str, TurnAction] = {}

        for action in submitted:
            actor_id = state.resolve_participant_id(action.actor_id)
            if actor_id is None:
                logger.warning(f"战斗 {state.battle_id} 中找不到行动者 {action.actor_id}，忽略该行动")
                continue
            if actor_id in planned:
                raise ValidationError(f"Duplicate action for participant: {actor_id}", field="actions")

            target_id = state.resolve_participant_id(action.target_id)
            if target_id is None:
                logger.warning(f"战斗 {state.battle_id} 中找不到目标 {action.target_id}")

            planned[actor_id] = TurnAction(actor_id=actor_id, target_id=target_id, skill_id=action.skill_id)

        return planned

    async def _complete_enemy_actions(self, state: BattleState, planned: Dict[str, TurnAction]) -> None:
        """为没有行动的存活敌人生成行动"""
        players = state.team_members(Team.PLAYER)
        enemies = state.team_members(Team.ENEMY)
        user_level: Optional[int] = None
        user_level_loaded = False

        for enemy in enemies:
            if not enemy.is_alive() or enemy.participant_id in planned:
                continue

            try:
                template = await self.store.load_enemy_template(enemy.owner_id)
            except EnemyNotFoundError:
                logger.warning(f"敌人模板不存在: {enemy.owner_id}，{enemy.participant_id} 本回合不行动")
                continue

            skills = await self._load_skills(template.skill_ids)
            if not skills:
                logger.warning(f"{enemy.participant_id} 没有可用技能")
                continue

            if not user_level_loaded:
                user_level = await self._player_level(state)
                user_level_loaded = True
            difficulty = self._ai_difficulty(state, template, enemy, user_level)

            try:
                option = self.enemy_ai.choose_action(enemy, skills, players, enemies, difficulty)
            except (ValueError, KeyError, TypeError, ZeroDivisionError) as e:
                logger.warning(f"{enemy.participant_id} AI决策失败，使用兜底行动: {e}")
                option = self.enemy_ai.fallback_action(enemy, skills, players)

            if option is None:
                continue

            planned[enemy.participant_id] = TurnAction(
                actor_id=enemy.participant_id,
                target_id=option.target.participant_id,
                skill_id=option.skill.skill_id,
            )

    async def _load_skills(self, skill_ids: List[str]) -> List[SkillConfig]:
        skills = []
        for skill_id in skill_ids:
            try:
                skills.append(await self.store.load_skill(skill_id))
            except SkillNotFoundError:
                logger.warning(f"技能不存在: {skill_id}")
        return skills

    async def _player_level(self, state: BattleState) -> Optional[int]:
        """第一个玩家参与者的用户等级，用于敌人AI难度修正"""
        for user_id in state.player_user_ids():
            try:
                user = await self.store.load_user(user_id)
            except UserNotFoundError:
                continue
            return user.level
        return None

    @staticmethod
    def _ai_difficulty(
        state: BattleState,
        template: EnemyConfig,
        enemy: Participant,
        user_level: Optional[int]
    ) -> int:
        configured = state.metadata.get("ai_difficulty")
        if configured is not None:
            try:
                return clamp_difficulty(configured)
            except (TypeError, ValueError, OverflowError):
                logger.warning(f"战斗 {state.battle_id} 的AI难度配置无效: {configured!r}, 按敌人属性计算")
        return determine_difficulty(template.rarity, template.is_boss, user_level, enemy.max_health)

    # ------------------------------------------------------------------
    # 行动结算
    # ------------------------------------------------------------------

    async def _resolve_actions(self, state: BattleState, planned: Dict[str, TurnAction]) -> List[ActionResult]:
        results: List[ActionResult] = []
        equipped_cache: Dict[str, Set[str]] = {}

        for actor in state.speed_order():
            if not actor.is_alive():
                continue
            action = planned.get(actor.participant_id)
            if action is None:
                continue

            result = ActionResult(
                actor_id=actor.participant_id,
                team=actor.team,
                target_id=action.target_id,
                skill_id=action.skill_id,
            )
            results.append(result)

            target = state.get_participant(action.target_id) if action.target_id else None
            if target is None:
                result.messages.append("Target not found")
                continue

            if not target.is_alive():
                result.messages.append(f"{target.name} has already been defeated")
                continue

            if actor.stunned:
                result.messages.append(f"{actor.name} cannot act due to a status effect")
                continue

            try:
                skill = await self.store.load_skill(action.skill_id)
            except SkillNotFoundError:
                result.messages.append("Skill not found")
                continue

            if actor.is_player:
                equipped = await self._equipped_skill_ids(actor.owner_id, equipped_cache)
                if skill.skill_id not in equipped:
                    result.messages.append(f"{skill.name} is not equipped and cannot be used")
                    continue

            outcome = self.damage_calculator.calculate(actor, target, skill)
            self._apply_outcome(state, actor, target, outcome, result)

            if state.is_finished:
                # 一方全灭，剩余行动不再处理
                break

        return results

    async def _equipped_skill_ids(self, user_id: str, cache: Dict[str, Set[str]]) -> Set[str]:
        if user_id not in cache:
            try:
                cache[user_id] = await self.store.load_equipped_skill_ids(user_id)
            except UserNotFoundError:
                logger.warning(f"用户不存在: {user_id}，视为未装备任何技能")
                cache[user_id] = set()
        return cache[user_id]

    def _apply_outcome(
        self,
        state: BattleState,
        actor: Participant,
        target: Participant,
        outcome: DamageResult,
        result: ActionResult
    ) -> None:
        """把伤害计算结果应用到参与者上"""
        result.performed = True
        result.hit = outcome.hit
        result.messages.extend(outcome.messages)
        if not outcome.hit:
            return

        result.damage = target.take_damage(outcome.damage)
        result.is_critical = outcome.is_critical
        result.type_multiplier = outcome.type_multiplier

        logger.debug(
            f"{actor.participant_id} -> {target.participant_id}: {result.damage} 伤害, "
            f"剩余生命 {target.health}/{target.max_health}"
        )

        if not target.is_alive():
            result.target_defeated = True
            result.messages.append(f"{target.name} was defeated!")
            if state.is_team_defeated(target.team):
                state.finish(opposing_team(target.team))
                return

        if outcome.status_effect and target.is_alive():
            if self.effect_manager.apply_status_effect(target, outcome.status_effect):
                result.status_effect = outcome.status_effect.to_dict()
                result.messages.append(f"{target.name} is affected by {status_name(outcome.status_effect.effect_type)}")

        if outcome.buff:
            if self.effect_manager.apply_buff(actor, outcome.buff):
                result.buff = outcome.buff.to_dict()
                result.messages.append(
                    f"{actor.name}'s {attribute_name(outcome.buff.attribute)} rose by {abs(outcome.buff.value)}"
                )

        if outcome.debuff and target.is_alive():
            if self.effect_manager.apply_debuff(target, outcome.debuff):
                result.debuff = outcome.debuff.to_dict()
                result.messages.append(
                    f"{target.name}'s {attribute_name(outcome.debuff.attribute)} fell by {abs(outcome.debuff.value)}"
                )

    @staticmethod
    def _finish_if_team_defeated(state: BattleState) -> bool:
        defeated = state.defeated_team()
        if defeated is None:
            return False
        state.finish(opposing_team(defeated))
        return True
