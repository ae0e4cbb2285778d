"""
内存战斗存储
In-Memory Battle Store

作者: lx
日期: 2025-06-20
描述: 进程内存储实现，用于单进程部署、示例和测试。
      保存的是快照副本，调用方修改返回对象不会影响存储内容
"""
import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, AsyncIterator

from common.config import ConfigManager
from common.database.models import UserModel, BattleRewardModel
from common.exceptions import (
    BattleNotFoundError, UserNotFoundError, TurnConflictError, RewardAlreadyClaimedError
)

from ..core.battle_state import BattleState
from .base_store import BattleStore

logger = logging.getLogger(__name__)


class InMemoryBattleStore(BattleStore):
    """内存战斗存储"""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        super().__init__(config_manager)
        self._battles: Dict[str, dict] = {}
        self._users: Dict[str, UserModel] = {}
        self._rewards: Dict[tuple, BattleRewardModel] = {}

        self._battle_locks: Dict[str, asyncio.Lock] = {}
        self._reward_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # 初始化数据
    # ------------------------------------------------------------------

    def add_user(self, user: UserModel) -> None:
        self._users[user.user_id] = user.model_copy(deep=True)

    def add_battle(self, state: BattleState) -> None:
        self._battles[state.battle_id] = copy.deepcopy(state.to_dict())

    # ------------------------------------------------------------------
    # 战斗
    # ------------------------------------------------------------------

    async def load_battle(self, battle_id: str) -> BattleState:
        data = self._battles.get(battle_id)
        if data is None:
            raise BattleNotFoundError(battle_id)
        return BattleState.from_dict(copy.deepcopy(data))

    async def list_user_battles(self, user_id: str) -> List[BattleState]:
        battles = [
            BattleState.from_dict(copy.deepcopy(data))
            for data in self._battles.values()
        ]
        owned = [b for b in battles if b.participant_for_user(user_id) is not None]
        owned.sort(key=lambda b: b.started_at, reverse=True)
        return owned

    async def create_battle(self, state: BattleState) -> None:
        self.add_battle(state)
        logger.debug(f"创建战斗: {state.battle_id}")

    async def save_turn(self, state: BattleState, expected_turn: int) -> None:
        stored = self._battles.get(state.battle_id)
        if stored is None:
            raise BattleNotFoundError(state.battle_id)
        if stored["current_turn"] != expected_turn:
            raise TurnConflictError(state.battle_id, expected_turn)
        self._battles[state.battle_id] = copy.deepcopy(state.to_dict())

    @asynccontextmanager
    async def battle_lock(self, battle_id: str) -> AsyncIterator[None]:
        lock = self._battle_locks.setdefault(battle_id, asyncio.Lock())
        if lock.locked():
            raise TurnConflictError(battle_id)
        try:
            async with lock:
                yield
        finally:
            # 冲突立即失败，锁上不会有等待者
            if not lock.locked():
                self._battle_locks.pop(battle_id, None)

    # ------------------------------------------------------------------
    # 用户与奖励
    # ------------------------------------------------------------------

    async def load_user(self, user_id: str) -> UserModel:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user.model_copy(deep=True)

    async def save_user(self, user: UserModel) -> None:
        user.touch()
        self._users[user.user_id] = user.model_copy(deep=True)

    async def has_claimed_reward(self, user_id: str, battle_id: str) -> bool:
        return (user_id, battle_id) in self._rewards

    async def apply_reward(
        self,
        reward: BattleRewardModel,
        level: int,
        experience: int,
        points_delta: int
    ) -> UserModel:
        async with self._reward_lock:
            key = (reward.user_id, reward.battle_id)
            if key in self._rewards:
                raise RewardAlreadyClaimedError(reward.user_id, reward.battle_id)

            user = self._users.get(reward.user_id)
            if user is None:
                raise UserNotFoundError(reward.user_id)

            updated = user.model_copy(deep=True)
            updated.level = level
            updated.experience = experience
            updated.attribute_points_to_distribute += points_delta
            updated.claimed_battle_ids.append(reward.battle_id)
            updated.touch()

            self._users[updated.user_id] = updated
            self._rewards[key] = reward.model_copy(deep=True)
            return updated.model_copy(deep=True)

    async def list_rewards(self, user_id: str) -> List[BattleRewardModel]:
        return [
            reward.model_copy(deep=True)
            for (owner, _), reward in self._rewards.items()
            if owner == user_id
        ]
