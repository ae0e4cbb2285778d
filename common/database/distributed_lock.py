"""
分布式锁实现
用于串行化同一场战斗的回合处理
作者: lx
日期: 2025-06-18
"""
import asyncio
import time
import uuid
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager
import logging

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class DistributedLockError(Exception):
    """分布式锁相关错误"""
    pass


class LockTimeoutError(DistributedLockError):
    """锁超时错误"""
    pass


class DistributedLock:
    """基于Redis的分布式锁"""

    # Lua脚本用于原子释放锁
    RELEASE_SCRIPT = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
    """

    def __init__(
        self,
        redis_client,
        lock_key: str,
        timeout: float = 10.0,
        retry_delay: float = 0.05,
        max_retries: int = 0
    ):
        """
        初始化分布式锁

        Args:
            redis_client: redis.asyncio 客户端
            lock_key: 锁的键名
            timeout: 锁过期时间(秒)，防止持有者崩溃后永久占用
            retry_delay: 重试间隔时间(秒)
            max_retries: 最大重试次数，0表示获取失败立即报错
        """
        self.redis_client = redis_client
        self.lock_key = f"lock:{lock_key}"
        self.timeout = timeout
        self.retry_delay = retry_delay
        self.max_retries = max_retries

        # 唯一标识符，用于确保只有锁的持有者才能释放锁
        self.lock_value = str(uuid.uuid4())
        self.acquired = False

    async def acquire(self) -> bool:
        """
        获取锁

        Returns:
            bool: 是否成功获取锁

        Raises:
            LockTimeoutError: 重试次数用尽仍未获取到锁
            DistributedLockError: Redis 访问失败
        """
        start_time = time.time()

        for attempt in range(self.max_retries + 1):
            try:
                # SET NX PX 原子获取
                result = await self.redis_client.set(
                    self.lock_key,
                    self.lock_value,
                    px=int(self.timeout * 1000),
                    nx=True
                )
            except RedisError as e:
                logger.error(f"获取锁时发生错误: {self.lock_key}, {e}")
                raise DistributedLockError(f"获取锁失败: {e}") from e

            if result:
                self.acquired = True
                logger.debug(f"成功获取锁: {self.lock_key}")
                return True

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        total_wait_time = time.time() - start_time
        raise LockTimeoutError(
            f"获取锁超时: {self.lock_key}, 等待时间: {total_wait_time:.2f}s"
        )

    async def release(self) -> bool:
        """
        释放锁

        Returns:
            bool: 是否成功释放锁
        """
        if not self.acquired:
            return True

        try:
            result = await self.redis_client.eval(
                self.RELEASE_SCRIPT,
                1,
                self.lock_key,
                self.lock_value
            )
        except RedisError as e:
            # 释放失败时依赖过期时间自动解锁
            logger.error(f"释放锁时发生错误: {self.lock_key}, {e}")
            return False
        finally:
            self.acquired = False

        if result == 1:
            logger.debug(f"成功释放锁: {self.lock_key}")
            return True

        logger.warning(f"锁已被其他进程释放或过期: {self.lock_key}")
        return False

    async def get_lock_info(self) -> Dict[str, Any]:
        """获取锁的详细信息"""
        value = await self.redis_client.get(self.lock_key)
        ttl = await self.redis_client.pttl(self.lock_key)
        return {
            "lock_key": self.lock_key,
            "is_locked": value is not None,
            "is_owned_by_self": value == self.lock_value if value else False,
            "ttl_ms": ttl,
        }

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.release()


@asynccontextmanager
async def distributed_lock(
    redis_client,
    lock_key: str,
    timeout: float = 10.0,
    **kwargs
):
    """分布式锁的便捷异步上下文管理器"""
    lock = DistributedLock(redis_client, lock_key, timeout=timeout, **kwargs)
    await lock.acquire()
    try:
        yield lock
    finally:
        await lock.release()
