"""
战斗处理器
Battle Handler

作者: lx
日期: 2025-06-18
描述: 战斗服务对外的业务操作: 执行回合、创建随机战斗、领取奖励以及战斗查询
"""
import logging
import random
import uuid
from typing import Dict, List, Optional, Any, Iterable

from common.config import BattleSettings, EnemyConfig
from common.config.enums import BattleDifficulty, Rarity
from common.database.models import UserModel, BattleRewardModel
from common.exceptions import (
    GameException, ValidationError, EnemyNotFoundError, NoEnemyAvailableError,
    BattleNotFinishedError, BattleNotWonError, NotBattleParticipantError,
    RewardAlreadyClaimedError
)
from common.logger import log_battle_event

from ..core.battle_engine import BattleEngine, TurnResult, ActionInput
from ..core.battle_state import BattleState
from ..core.battle_unit import Participant, PlayerOwner, EnemyOwner, CombatStats, Team
from ..core.enemy_ai import MIN_DIFFICULTY, MAX_DIFFICULTY
from ..core.rewards import RewardCalculator, RewardResult

logger = logging.getLogger(__name__)


class BattleHandler:
    """战斗处理器"""

    def __init__(
        self,
        store,
        engine: Optional[BattleEngine] = None,
        settings: Optional[BattleSettings] = None,
        rng: Optional[random.Random] = None
    ):
        """初始化战斗处理器

        Args:
            store: BattleStore 实现
            engine: 回合编排器，默认按同一随机源创建
            settings: 战斗参数
            rng: 随机源
        """
        self.store = store
        self.settings = settings or store.config_manager.settings
        self.rng = rng or random.Random()
        self.engine = engine or BattleEngine(store, self.settings, self.rng)
        self.reward_calculator = RewardCalculator(self.settings)

        # 统计信息
        self.stats = {
            "battles_created": 0,
            "turns_executed": 0,
            "battles_finished": 0,
            "rewards_claimed": 0,
        }

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)

    # ------------------------------------------------------------------
    # 回合
    # ------------------------------------------------------------------

    async def execute_turn(self, battle_id: str, actions: Iterable[ActionInput]) -> TurnResult:
        """执行回合，玩家方获胜时自动为获胜用户领取奖励

        Args:
            battle_id: 战斗ID
            actions: 提交的行动

        Returns:
            TurnResult: 回合结果，rewards 为各用户的奖励，未能领取时为 None
        """
        turn = await self.engine.execute_turn(battle_id, actions)
        self.stats["turns_executed"] += 1

        if turn.finished:
            self.stats["battles_finished"] += 1
            if turn.winning_team == Team.PLAYER.value:
                turn.rewards = await self._auto_claim(battle_id, turn)

        return turn

    async def _auto_claim(self, battle_id: str, turn: TurnResult) -> Optional[Dict[str, Any]]:
        rewards: Dict[str, Any] = {}
        user_ids = [p["owner"]["user_id"] for p in turn.participants if p["owner"].get("kind") == "player"]

        for user_id in user_ids:
            try:
                result = await self.claim_rewards(user_id, battle_id)
            except GameException as e:
                logger.warning(f"自动领取奖励失败: user={user_id}, battle={battle_id}, {e.message}")
                continue
            rewards[user_id] = result.to_dict()

        return rewards or None

    async def check_battle_state(self, battle_id: str) -> Dict[str, Any]:
        """检查战斗是否仍在进行"""
        state = await self.engine.check_battle_state(battle_id)
        return {
            "battle_id": state.battle_id,
            "is_active": not state.is_finished,
            "is_finished": state.is_finished,
            "winning_team": state.winning_team,
            "winner_id": state.winner_id,
            "current_turn": state.current_turn,
        }

    # ------------------------------------------------------------------
    # 创建战斗
    # ------------------------------------------------------------------

    async def create_random_battle(
        self,
        user_id: str,
        difficulty: str = BattleDifficulty.NORMAL.value,
        ai_difficulty: Optional[int] = None
    ) -> BattleState:
        """
        创建随机战斗

        Args:
            user_id: 用户ID
            difficulty: 战斗难度 easy/normal/hard
            ai_difficulty: 敌人AI难度 1..5，默认按战斗难度取值

        Returns:
            BattleState: 新建的战斗
        """
        try:
            difficulty = BattleDifficulty(difficulty).value
        except ValueError:
            raise ValidationError(f"Invalid difficulty: {difficulty}", field="difficulty")

        if ai_difficulty is not None:
            if isinstance(ai_difficulty, bool) or not isinstance(ai_difficulty, int) \
                    or not MIN_DIFFICULTY <= ai_difficulty <= MAX_DIFFICULTY:
                raise ValidationError(
                    f"ai_difficulty must be an integer between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}",
                    field="ai_difficulty"
                )

        user = await self.store.load_user(user_id)
        templates = await self._pick_enemies(difficulty)

        battle_id = str(uuid.uuid4())
        participants = [self._player_participant(user)]
        participants.extend(
            self._enemy_participant(template, position)
            for position, template in enumerate(templates, start=1)
        )

        state = BattleState(
            battle_id=battle_id,
            participants=participants,
            current_turn=0,
            metadata={
                "difficulty": difficulty,
                "ai_difficulty": ai_difficulty or self.settings.ai_difficulty.get(difficulty),
            },
        )
        await self.store.create_battle(state)
        self.stats["battles_created"] += 1

        log_battle_event(
            "battle created", battle_id,
            user_id=user_id,
            difficulty=difficulty,
            enemy_ids=[t.enemy_id for t in templates],
        )
        return state

    async def _pick_enemies(self, difficulty: str) -> List[EnemyConfig]:
        """按难度的稀有度范围随机挑选敌人模板，首领不参与随机战斗"""
        rarities = self.settings.rarity_pools.get(difficulty, [Rarity.COMMON.value])
        pool = await self.store.list_enemy_templates(rarities)

        if not pool:
            logger.info(f"难度 {difficulty} 的稀有度范围内没有敌人，改为从全部非首领敌人中挑选")
            pool = await self.store.list_enemy_templates([r.value for r in Rarity])

        if not pool:
            raise NoEnemyAvailableError(difficulty)

        count = min(self.settings.enemy_count_for(difficulty), len(pool))
        return self.rng.sample(pool, count)

    @staticmethod
    def _player_participant(user: UserModel) -> Participant:
        attributes = user.attributes
        return Participant(
            participant_id=str(uuid.uuid4()),
            name=user.username,
            owner=PlayerOwner(user_id=user.user_id),
            team=Team.PLAYER,
            position=1,
            elemental_type=user.primary_elemental_type,
            health=attributes.health,
            max_health=attributes.health,
            stats=CombatStats(
                physical_attack=attributes.physical_attack,
                special_attack=attributes.special_attack,
                physical_defense=attributes.physical_defense,
                special_defense=attributes.special_defense,
                speed=attributes.speed,
            ),
        )

    @staticmethod
    def _enemy_participant(template: EnemyConfig, position: int) -> Participant:
        return Participant(
            participant_id=str(uuid.uuid4()),
            name=template.name,
            owner=EnemyOwner(template_id=template.enemy_id),
            team=Team.ENEMY,
            position=position,
            elemental_type=template.elemental_type,
            health=template.health,
            max_health=template.health,
            stats=CombatStats(
                physical_attack=template.physical_attack,
                special_attack=template.special_attack,
                physical_defense=template.physical_defense,
                special_defense=template.special_defense,
                speed=template.speed,
            ),
        )

    # ------------------------------------------------------------------
    # 奖励
    # ------------------------------------------------------------------

    async def claim_rewards(self, user_id: str, battle_id: str) -> RewardResult:
        """
        领取战斗奖励

        Args:
            user_id: 用户ID
            battle_id: 战斗ID

        Returns:
            RewardResult: 经验与升级结果

        Raises:
            BattleNotFinishedError: 战斗未结束
            NotBattleParticipantError: 用户未参与该战斗
            BattleNotWonError: 玩家方未获胜
            RewardAlreadyClaimedError: 已领取过
        """
        state = await self.store.load_battle(battle_id)

        if not state.is_finished:
            raise BattleNotFinishedError(battle_id)
        if state.participant_for_user(user_id) is None:
            raise NotBattleParticipantError(user_id, battle_id)
        if state.winning_team != Team.PLAYER.value:
            raise BattleNotWonError(user_id, battle_id)
        if await self.store.has_claimed_reward(user_id, battle_id):
            raise RewardAlreadyClaimedError(user_id, battle_id)

        user = await self.store.load_user(user_id)
        stat_totals = [await self._enemy_stat_total(p) for p in state.team_members(Team.ENEMY)]
        result = self.reward_calculator.calculate(
            user_id, battle_id, user.level, user.experience, stat_totals
        )

        reward = BattleRewardModel(
            user_id=user_id,
            battle_id=battle_id,
            experience_gained=result.experience_gained,
            leveled_up=result.leveled_up,
            levels_gained=result.levels_gained,
            new_level=result.new_level,
            attribute_points_gained=result.attribute_points_gained,
        )
        await self.store.apply_reward(
            reward, result.new_level, result.experience, result.attribute_points_gained
        )
        self.stats["rewards_claimed"] += 1

        log_battle_event(
            "reward claimed", battle_id,
            user_id=user_id,
            experience_gained=result.experience_gained,
            new_level=result.new_level,
        )
        return result

    async def _enemy_stat_total(self, participant: Participant) -> int:
        """敌人模板五项属性之和，模板缺失时使用参与者当前属性"""
        try:
            template = await self.store.load_enemy_template(participant.owner_id)
        except EnemyNotFoundError:
            logger.warning(f"敌人模板不存在: {participant.owner_id}，使用战斗内属性估算等级")
            return sum(participant.stats.to_dict().values())
        return template.stat_total()

    async def list_rewards(self, user_id: str) -> List[BattleRewardModel]:
        return await self.store.list_rewards(user_id)

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_battle(self, battle_id: str, user_id: Optional[str] = None) -> BattleState:
        """获取战斗，指定用户时校验该用户参与了战斗"""
        state = await self.store.load_battle(battle_id)
        if user_id is not None and state.participant_for_user(user_id) is None:
            raise NotBattleParticipantError(user_id, battle_id)
        return state

    async def list_user_battles(self, user_id: str) -> List[BattleState]:
        """用户参与的战斗，最新的在前"""
        return await self.store.list_user_battles(user_id)
