"""
数据库层模块
Database Layer Module

提供MongoDB/Redis连接封装、持久化数据模型与分布式锁
作者: lx
日期: 2025-06-20
"""
from .core.redis_client import RedisClient
from .core.mongo_client import MongoClient
from .core.config import DatabaseConfig
from .distributed_lock import (
    DistributedLock, DistributedLockError, LockTimeoutError, distributed_lock
)
from .models import BaseDocument, UserModel, UserAttributes, BattleRewardModel

__all__ = [
    'RedisClient',
    'MongoClient',
    'DatabaseConfig',
    'DistributedLock',
    'DistributedLockError',
    'LockTimeoutError',
    'distributed_lock',
    'BaseDocument',
    'UserModel',
    'UserAttributes',
    'BattleRewardModel',
]
