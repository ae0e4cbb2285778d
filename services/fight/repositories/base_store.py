"""
战斗存储基类
Battle Store Base

作者: lx
日期: 2025-06-20
描述: 战斗引擎依赖的持久化接口。技能与敌人模板来自配置管理器，
      战斗、用户和奖励记录由具体实现负责

多步修改都以一个工作单元提交:
    save_turn    参与者生命/属性、状态效果、增减益、战斗结束标记和回合数一起写入，
                 以 expected_turn 做比较交换
    apply_reward 用户等级/经验/属性点与奖励记录一起写入
"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Iterable, List, Optional, Set

from common.config import ConfigManager, SkillConfig, EnemyConfig, get_config_manager
from common.database.models import UserModel, BattleRewardModel
from common.exceptions import SkillNotFoundError, EnemyNotFoundError

from ..core.battle_state import BattleState


class BattleStore(ABC):
    """战斗存储接口"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """
        初始化存储

        Args:
            config_manager: 技能和敌人模板来源
        """
        self.config_manager = config_manager or get_config_manager()

    # ------------------------------------------------------------------
    # 模板 (只读)
    # ------------------------------------------------------------------

    async def load_skill(self, skill_id: str) -> SkillConfig:
        """加载技能，不存在时抛出 SkillNotFoundError"""
        skill = self.config_manager.get_skill(skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        return skill

    async def load_enemy_template(self, enemy_id: str) -> EnemyConfig:
        """加载敌人模板，不存在时抛出 EnemyNotFoundError"""
        enemy = self.config_manager.get_enemy(enemy_id)
        if enemy is None:
            raise EnemyNotFoundError(enemy_id)
        return enemy

    async def list_enemy_templates(
        self,
        rarities: Iterable[str],
        include_bosses: bool = False
    ) -> List[EnemyConfig]:
        """按稀有度列出敌人模板"""
        return self.config_manager.get_enemies_by_rarity(rarities, include_bosses=include_bosses)

    async def load_equipped_skill_ids(self, user_id: str) -> Set[str]:
        """用户当前装备的技能ID"""
        user = await self.load_user(user_id)
        return set(user.equipped_skill_ids)

    # ------------------------------------------------------------------
    # 战斗
    # ------------------------------------------------------------------

    @abstractmethod
    async def load_battle(self, battle_id: str) -> BattleState:
        """加载战斗及参与者，不存在时抛出 BattleNotFoundError"""

    @abstractmethod
    async def list_user_battles(self, user_id: str) -> List[BattleState]:
        """用户参与的战斗，按开始时间倒序"""

    @abstractmethod
    async def create_battle(self, state: BattleState) -> None:
        """保存新战斗"""

    @abstractmethod
    async def save_turn(self, state: BattleState, expected_turn: int) -> None:
        """提交一次回合处理的全部修改

        Args:
            state: 修改后的战斗状态
            expected_turn: 读取时的回合数，存储中的回合数不一致时抛出 TurnConflictError
        """

    @abstractmethod
    def battle_lock(self, battle_id: str) -> AsyncContextManager:
        """同一战斗的回合处理互斥，锁被占用时抛出 TurnConflictError"""

    # ------------------------------------------------------------------
    # 用户与奖励
    # ------------------------------------------------------------------

    @abstractmethod
    async def load_user(self, user_id: str) -> UserModel:
        """加载用户，不存在时抛出 UserNotFoundError"""

    @abstractmethod
    async def save_user(self, user: UserModel) -> None:
        """保存用户"""

    @abstractmethod
    async def has_claimed_reward(self, user_id: str, battle_id: str) -> bool:
        """是否已领取该战斗奖励"""

    @abstractmethod
    async def apply_reward(
        self,
        reward: BattleRewardModel,
        level: int,
        experience: int,
        points_delta: int
    ) -> UserModel:
        """写入奖励记录并更新用户进度

        Raises:
            RewardAlreadyClaimedError: 已存在该 (用户, 战斗) 的奖励记录
        """

    @abstractmethod
    async def list_rewards(self, user_id: str) -> List[BattleRewardModel]:
        """用户的奖励记录"""
