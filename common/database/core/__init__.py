"""
数据库连接核心模块
战斗存储使用的MongoDB/Redis客户端与连接配置
作者: lx
日期: 2025-06-20
"""
from .config import DatabaseConfig
from .mongo_client import MongoClient
from .redis_client import RedisClient

__all__ = ['DatabaseConfig', 'MongoClient', 'RedisClient']
