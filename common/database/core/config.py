"""
数据库配置
定义数据库连接和行为配置
作者: lx
日期: 2025-06-20
"""
import os
from typing import Dict, Any


class DatabaseConfig:
    """数据库配置类"""

    # Redis配置
    REDIS_CONFIG: Dict[str, Any] = {
        "host": os.getenv("REDIS_HOST", "localhost"),
        "port": int(os.getenv("REDIS_PORT", "6379")),
        "db": 0,
        "password": os.getenv("REDIS_PASSWORD"),
        "pool_size": 50,
    }

    # MongoDB配置
    MONGO_CONFIG: Dict[str, Any] = {
        "uri": os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        "database": os.getenv("MONGO_DATABASE", "battle_db"),
        "max_pool_size": 100,
        "min_pool_size": 10,
    }

    # 集合名称
    COLLECTIONS: Dict[str, str] = {
        "battles": "battles",
        "users": "users",
        "battle_rewards": "battle_rewards",
    }

    # 回合锁配置
    LOCK_CONFIG: Dict[str, Any] = {
        "timeout": 10.0,      # 锁过期时间(秒)
        "retry_delay": 0.05,
        "max_retries": 0,     # 同一战斗并发提交时直接冲突
    }
