"""
战斗服务处理器模块
Fight Service Handlers Module

作者: lx
日期: 2025-06-18
描述: 战斗服务的处理器组件
"""

from .battle_handler import BattleHandler

__all__ = [
    "BattleHandler"
]
