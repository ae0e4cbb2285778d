"""
战斗服务模块
Fight Service Module

作者: lx
日期: 2025-06-18
描述: 回合制战斗结算、敌人AI、奖励升级与战斗持久化
"""

from .core import (
    Team, Participant, CombatStats, BattleState, BattlePhase,
    DamageCalculator, EffectManager, EnemyAI, RewardCalculator, RewardResult,
    BattleEngine, TurnAction, ActionResult, TurnResult
)

from .handlers import BattleHandler

from .repositories import BattleStore, InMemoryBattleStore, MongoBattleStore

__all__ = [
    # Core components
    "Team", "Participant", "CombatStats", "BattleState", "BattlePhase",
    "DamageCalculator", "EffectManager", "EnemyAI", "RewardCalculator", "RewardResult",
    "BattleEngine", "TurnAction", "ActionResult", "TurnResult",

    # Handlers
    "BattleHandler",

    # Repositories
    "BattleStore", "InMemoryBattleStore", "MongoBattleStore"
]
