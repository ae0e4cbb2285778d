"""
战斗服务主程序
Fight Service Main

作者: lx
日期: 2025-06-18
描述: 战斗服务启动程序，负责配置加载、存储初始化和请求入口
"""
import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional

from common.config import ConfigLoader, ConfigManager, BattleDifficulty
from common.database import DatabaseConfig, MongoClient, RedisClient, UserModel, UserAttributes
from common.exceptions import ValidationError, handle_exception
from common.logger import setup_logging

from .handlers.battle_handler import BattleHandler
from .repositories import BattleStore, InMemoryBattleStore, MongoBattleStore

logger = logging.getLogger("services.fight")

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "json"


@dataclass
class ServiceConfig:
    """服务配置"""
    service_name: str = "fight"
    store_backend: str = "memory"       # memory / mongo
    mongo_config: Dict[str, Any] = field(default_factory=lambda: dict(DatabaseConfig.MONGO_CONFIG))
    redis_config: Optional[Dict[str, Any]] = None   # 为空时不使用分布式锁
    config_dir: str = str(DEFAULT_CONFIG_DIR)
    environment: str = "production"
    log_level: Optional[str] = None
    log_dir: Optional[str] = None
    random_seed: Optional[int] = None


class FightService:
    """战斗服务"""

    def __init__(self, config: Optional[ServiceConfig] = None, config_manager: Optional[ConfigManager] = None):
        """初始化战斗服务

        Args:
            config: 服务配置
            config_manager: 配置管理器，默认创建独立实例
        """
        self.config = config or ServiceConfig()
        self.config_manager = config_manager or ConfigManager()
        self.store: Optional[BattleStore] = None
        self.battle_handler: Optional[BattleHandler] = None
        self.rng = random.Random(self.config.random_seed)

        self._mongo_client: Optional[MongoClient] = None
        self._redis_client: Optional[RedisClient] = None
        self.running = False

    async def initialize(self) -> None:
        """初始化日志、配置、存储和处理器"""
        setup_logging(self.config.environment, self.config.log_dir, self.config.log_level)
        logger.info(f"{self.config.service_name} 服务初始化中...")

        loader = ConfigLoader(self.config.config_dir, self.config_manager)
        await loader.load_all_configs()

        self.store = await self._create_store()
        self.battle_handler = BattleHandler(
            self.store,
            settings=self.config_manager.settings,
            rng=self.rng
        )
        self.running = True
        logger.info(f"{self.config.service_name} 服务初始化完成, 存储: {self.config.store_backend}")

    async def _create_store(self) -> BattleStore:
        backend = self.config.store_backend
        if backend == "memory":
            return InMemoryBattleStore(self.config_manager)

        if backend == "mongo":
            self._mongo_client = MongoClient(self.config.mongo_config)
            await self._mongo_client.connect()

            redis = None
            if self.config.redis_config is not None:
                self._redis_client = RedisClient(self.config.redis_config)
                await self._redis_client.connect()
                redis = self._redis_client.client

            store = MongoBattleStore(
                self._mongo_client,
                redis_client=redis,
                config_manager=self.config_manager,
                lock_config={"timeout": self.config_manager.settings.lock_timeout},
            )
            await store.ensure_indexes()
            return store

        raise ValueError(f"Unknown store backend: {backend}")

    def _require_handler(self) -> BattleHandler:
        if self.battle_handler is None:
            raise RuntimeError("战斗处理器未初始化")
        return self.battle_handler

    @staticmethod
    def _require(request: Dict[str, Any], key: str) -> Any:
        value = request.get(key)
        if value is None or value == "":
            raise ValidationError(f"Missing required field: {key}", field=key)
        return value

    # ------------------------------------------------------------------
    # 请求入口
    # ------------------------------------------------------------------

    @handle_exception
    async def process_turn_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """执行回合请求: {battle_id, actions: [{actor_id, target_id, skill_id}]}"""
        battle_id = self._require(request, "battle_id")
        turn = await self._require_handler().execute_turn(battle_id, request.get("actions") or [])
        return {"code": 0, "data": turn.to_dict()}

    @handle_exception
    async def process_create_battle_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """创建随机战斗请求: {user_id, difficulty, ai_difficulty}"""
        user_id = self._require(request, "user_id")
        state = await self._require_handler().create_random_battle(
            user_id,
            request.get("difficulty", BattleDifficulty.NORMAL.value),
            request.get("ai_difficulty"),
        )
        return {"code": 0, "data": state.to_dict()}

    @handle_exception
    async def process_claim_rewards_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """领取奖励请求: {user_id, battle_id}"""
        user_id = self._require(request, "user_id")
        battle_id = self._require(request, "battle_id")
        result = await self._require_handler().claim_rewards(user_id, battle_id)
        return {"code": 0, "data": result.to_dict()}

    @handle_exception
    async def process_get_battle_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """查询战斗请求: {battle_id, user_id}"""
        battle_id = self._require(request, "battle_id")
        state = await self._require_handler().get_battle(battle_id, request.get("user_id"))
        return {"code": 0, "data": state.to_dict()}

    @handle_exception
    async def process_list_battles_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """用户战斗列表请求: {user_id}"""
        user_id = self._require(request, "user_id")
        battles = await self._require_handler().list_user_battles(user_id)
        return {"code": 0, "data": [b.to_dict() for b in battles]}

    @handle_exception
    async def process_check_battle_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """检查战斗状态请求: {battle_id}"""
        battle_id = self._require(request, "battle_id")
        status = await self._require_handler().check_battle_state(battle_id)
        return {"code": 0, "data": status}

    def get_service_stats(self) -> Dict[str, Any]:
        """获取服务统计信息"""
        stats = {
            "service_name": self.config.service_name,
            "service_status": "running" if self.running else "stopped",
            "store_backend": self.config.store_backend,
            "configs": self.config_manager.get_config_count(),
        }
        if self.battle_handler:
            stats["battle_handler"] = self.battle_handler.get_stats()
        return stats

    async def shutdown(self) -> None:
        """关闭服务"""
        if not self.running:
            return

        logger.info("战斗服务关闭中...")
        self.running = False

        if self._redis_client is not None:
            await self._redis_client.disconnect()
        if self._mongo_client is not None:
            await self._mongo_client.disconnect()

        logger.info("战斗服务已关闭")


# 示例用法
async def example_battle(seed: Optional[int] = None, config_dir: Optional[str] = None):
    """示例: 创建一场简单战斗并自动对战到结束"""
    service = FightService(ServiceConfig(
        environment="development",
        random_seed=seed,
        config_dir=config_dir or str(DEFAULT_CONFIG_DIR),
    ))
    await service.initialize()

    store = service.store
    skills = list(service.config_manager.get_all_skills())[:4]
    store.add_user(UserModel(
        user_id="demo_user",
        username="Demo",
        primary_elemental_type="fire",
        attributes=UserAttributes(health=120, physical_attack=18, special_attack=16, speed=14),
        equipped_skill_ids=skills,
    ))

    created = await service.process_create_battle_request({"user_id": "demo_user", "difficulty": "easy"})
    print(json.dumps(created, ensure_ascii=False, indent=2, default=str))
    if created.get("code") != 0 or not skills:
        await service.shutdown()
        return

    battle_id = created["data"]["battle_id"]
    for _ in range(30):
        battle = await service.battle_handler.get_battle(battle_id)
        targets = battle.living_members("enemy")
        actions = [{"actor_id": "demo_user", "target_id": targets[0].participant_id, "skill_id": skills[0]}]
        response = await service.process_turn_request({"battle_id": battle_id, "actions": actions})
        print(json.dumps(response, ensure_ascii=False, indent=2, default=str))
        if response.get("code") != 0 or response["data"]["finished"]:
            break

    await service.shutdown()


async def main():
    """主函数"""
    import argparse
    parser = argparse.ArgumentParser(description="战斗服务")
    parser.add_argument("--example", action="store_true", help="运行示例战斗")
    parser.add_argument("--seed", type=int, default=None, help="随机种子")
    parser.add_argument("--config-dir", default=str(DEFAULT_CONFIG_DIR), help="配置目录")
    parser.add_argument("--store", choices=["memory", "mongo"], default="memory", help="存储后端")
    parser.add_argument("--log-level", default=None, help="日志级别")

    args = parser.parse_args()

    if args.example:
        await example_battle(args.seed, args.config_dir)
        return

    service = FightService(ServiceConfig(
        store_backend=args.store,
        config_dir=args.config_dir,
        log_level=args.log_level,
        random_seed=args.seed,
    ))
    await service.initialize()
    print(json.dumps(service.get_service_stats(), ensure_ascii=False, indent=2))
    await service.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
