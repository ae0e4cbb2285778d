"""
MongoDB客户端封装
使用Motor异步驱动
作者: lx
日期: 2025-06-20
"""
import logging
from typing import Optional

import motor.motor_asyncio as motor

logger = logging.getLogger(__name__)


class MongoClient:
    """MongoDB异步客户端"""

    def __init__(self, config: dict):
        """
        初始化MongoDB客户端

        Args:
            config: MongoDB配置
                - uri: 连接字符串
                - database: 数据库名
                - max_pool_size: 最大连接池大小
                - min_pool_size: 最小连接池大小
        """
        self.config = config
        self._client: Optional[motor.AsyncIOMotorClient] = None
        self._database: Optional[motor.AsyncIOMotorDatabase] = None

    async def connect(self):
        """建立连接"""
        self._client = motor.AsyncIOMotorClient(
            self.config.get('uri', 'mongodb://localhost:27017'),
            maxPoolSize=self.config.get('max_pool_size', 100),
            minPoolSize=self.config.get('min_pool_size', 10)
        )
        self._database = self._client[self.config.get('database', 'battle_db')]
        await self._client.admin.command("ping")
        logger.info(f"MongoDB连接成功: {self.config.get('database', 'battle_db')}")

    async def disconnect(self):
        """断开连接"""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None

    @property
    def database(self) -> motor.AsyncIOMotorDatabase:
        """获取数据库实例"""
        if self._database is None:
            raise RuntimeError("MongoDB client not connected")
        return self._database

    def __getitem__(self, collection_name: str) -> motor.AsyncIOMotorCollection:
        """获取集合"""
        return self.database[collection_name]
