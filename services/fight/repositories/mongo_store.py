"""
MongoDB战斗存储
MongoDB Battle Store

作者: lx
日期: 2025-06-20
描述: 基于Motor的持久化实现。
      战斗与参与者存为同一个文档，回合提交使用带回合数条件的整体替换；
      奖励领取先以用户文档的条件更新占位，再写入带唯一索引的奖励记录。
      配置了Redis时回合锁使用分布式锁，否则退化为进程内锁
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from common.config import ConfigManager
from common.database.core.config import DatabaseConfig
from common.database.distributed_lock import DistributedLock, LockTimeoutError
from common.database.models import UserModel, BattleRewardModel, utc_now
from common.exceptions import (
    BattleNotFoundError, UserNotFoundError, TurnConflictError, RewardAlreadyClaimedError
)

from ..core.battle_state import BattleState
from .base_store import BattleStore

logger = logging.getLogger(__name__)


class MongoBattleStore(BattleStore):
    """MongoDB战斗存储"""

    def __init__(
        self,
        mongo_client,
        redis_client=None,
        config_manager: Optional[ConfigManager] = None,
        collections: Optional[Dict[str, str]] = None,
        lock_config: Optional[Dict[str, Any]] = None
    ):
        """
        初始化存储

        Args:
            mongo_client: MongoClient 封装或 Motor 数据库对象，按集合名取集合
            redis_client: redis.asyncio 客户端，为空时使用进程内锁
            config_manager: 技能和敌人模板来源
            collections: 集合名称映射
            lock_config: 回合锁配置
        """
        super().__init__(config_manager)
        self.mongo = mongo_client
        self.redis = redis_client
        self.collections = {**DatabaseConfig.COLLECTIONS, **(collections or {})}
        self.lock_config = {**DatabaseConfig.LOCK_CONFIG, **(lock_config or {})}

        self._local_locks: Dict[str, asyncio.Lock] = {}

    @property
    def battles(self):
        return self.mongo[self.collections["battles"]]

    @property
    def users(self):
        return self.mongo[self.collections["users"]]

    @property
    def rewards(self):
        return self.mongo[self.collections["battle_rewards"]]

    async def ensure_indexes(self) -> None:
        """创建所需索引"""
        await self.battles.create_index(
            [("participants.owner.user_id", ASCENDING), ("started_at", DESCENDING)]
        )
        await self.rewards.create_index(
            [("user_id", ASCENDING), ("battle_id", ASCENDING)], unique=True
        )
        logger.info("战斗存储索引创建完成")

    # ------------------------------------------------------------------
    # 战斗
    # ------------------------------------------------------------------

    @staticmethod
    def _to_document(state: BattleState) -> Dict[str, Any]:
        document = state.to_dict()
        document.pop("phase", None)
        document["_id"] = state.battle_id
        return document

    @staticmethod
    def _from_document(document: Dict[str, Any]) -> BattleState:
        data = {key: value for key, value in document.items() if key != "_id"}
        return BattleState.from_dict(data)

    async def load_battle(self, battle_id: str) -> BattleState:
        document = await self.battles.find_one({"_id": battle_id})
        if document is None:
            raise BattleNotFoundError(battle_id)
        return self._from_document(document)

    async def list_user_battles(self, user_id: str) -> List[BattleState]:
        cursor = self.battles.find({"participants.owner.user_id": user_id}).sort("started_at", DESCENDING)
        return [self._from_document(document) async for document in cursor]

    async def create_battle(self, state: BattleState) -> None:
        await self.battles.insert_one(self._to_document(state))
        logger.debug(f"创建战斗: {state.battle_id}")

    async def save_turn(self, state: BattleState, expected_turn: int) -> None:
        result = await self.battles.replace_one(
            {"_id": state.battle_id, "current_turn": expected_turn},
            self._to_document(state)
        )
        if result.matched_count == 0:
            if await self.battles.find_one({"_id": state.battle_id}, {"_id": 1}) is None:
                raise BattleNotFoundError(state.battle_id)
            logger.warning(f"回合提交冲突: {state.battle_id}, 期望回合 {expected_turn}")
            raise TurnConflictError(state.battle_id, expected_turn)

    @asynccontextmanager
    async def battle_lock(self, battle_id: str) -> AsyncIterator[None]:
        if self.redis is None:
            lock = self._local_locks.setdefault(battle_id, asyncio.Lock())
            if lock.locked():
                raise TurnConflictError(battle_id)
            try:
                async with lock:
                    yield
            finally:
                if not lock.locked():
                    self._local_locks.pop(battle_id, None)
            return

        lock = DistributedLock(
            self.redis,
            f"battle:{battle_id}",
            timeout=self.lock_config["timeout"],
            retry_delay=self.lock_config["retry_delay"],
            max_retries=self.lock_config["max_retries"],
        )
        try:
            await lock.acquire()
        except LockTimeoutError as e:
            raise TurnConflictError(battle_id) from e
        try:
            yield
        finally:
            await lock.release()

    # ------------------------------------------------------------------
    # 用户与奖励
    # ------------------------------------------------------------------

    async def load_user(self, user_id: str) -> UserModel:
        document = await self.users.find_one({"_id": user_id})
        if document is None:
            raise UserNotFoundError(user_id)
        return UserModel.from_document(document)

    async def save_user(self, user: UserModel) -> None:
        user.touch()
        document = user.to_document()
        document["_id"] = user.user_id
        await self.users.replace_one({"_id": user.user_id}, document, upsert=True)

    async def has_claimed_reward(self, user_id: str, battle_id: str) -> bool:
        document = await self.rewards.find_one({"user_id": user_id, "battle_id": battle_id}, {"_id": 1})
        return document is not None

    async def apply_reward(
        self,
        reward: BattleRewardModel,
        level: int,
        experience: int,
        points_delta: int
    ) -> UserModel:
        # 用户文档上的条件更新保证同一战斗只结算一次
        result = await self.users.update_one(
            {"_id": reward.user_id, "claimed_battle_ids": {"$ne": reward.battle_id}},
            {
                "$set": {"level": level, "experience": experience, "updated_at": utc_now()},
                "$inc": {"attribute_points_to_distribute": points_delta, "version": 1},
                "$push": {"claimed_battle_ids": reward.battle_id},
            }
        )
        if result.matched_count == 0:
            if await self.users.find_one({"_id": reward.user_id}, {"_id": 1}) is None:
                raise UserNotFoundError(reward.user_id)
            raise RewardAlreadyClaimedError(reward.user_id, reward.battle_id)

        try:
            await self.rewards.insert_one(reward.to_document())
        except DuplicateKeyError as e:
            raise RewardAlreadyClaimedError(reward.user_id, reward.battle_id) from e

        return await self.load_user(reward.user_id)

    async def list_rewards(self, user_id: str) -> List[BattleRewardModel]:
        cursor = self.rewards.find({"user_id": user_id}).sort("created_at", ASCENDING)
        return [BattleRewardModel.from_document(document) async for document in cursor]
