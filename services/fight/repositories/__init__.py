"""
战斗存储模块
Battle Store Module

作者: lx
日期: 2025-06-20
"""
from .base_store import BattleStore
from .memory_store import InMemoryBattleStore
from .mongo_store import MongoBattleStore

__all__ = [
    'BattleStore',
    'InMemoryBattleStore',
    'MongoBattleStore',
]
