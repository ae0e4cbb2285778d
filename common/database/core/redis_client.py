"""
Redis客户端封装
提供连接池管理，供分布式回合锁使用
作者: lx
日期: 2025-06-20
"""
import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis异步客户端"""

    def __init__(self, config: dict):
        """
        初始化Redis客户端

        Args:
            config: Redis配置
                - url: 连接串(优先)
                - host: 主机地址
                - port: 端口
                - db: 数据库号
                - password: 密码
                - pool_size: 连接池大小
        """
        self.config = config
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        """建立连接并检查可用性"""
        if self.config.get("url"):
            self._client = redis.Redis.from_url(
                self.config["url"],
                max_connections=self.config.get("pool_size", 50),
                decode_responses=True
            )
        else:
            pool = redis.ConnectionPool(
                host=self.config.get("host", "localhost"),
                port=self.config.get("port", 6379),
                db=self.config.get("db", 0),
                password=self.config.get("password"),
                max_connections=self.config.get("pool_size", 50),
                decode_responses=True
            )
            self._client = redis.Redis(connection_pool=pool)
        await self._client.ping()
        logger.info("Redis连接成功")

    async def disconnect(self):
        """断开连接"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> redis.Redis:
        """获取Redis客户端实例"""
        if self._client is None:
            raise RuntimeError("Redis client not connected")
        return self._client
