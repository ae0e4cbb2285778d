"""
战斗服务核心模块
Fight Service Core Module

作者: lx
日期: 2025-06-18
描述: 战斗服务的核心组件
"""

from .battle_unit import (
    Team,
    PlayerOwner,
    EnemyOwner,
    CombatStats,
    StatusEffect,
    StatModifier,
    Participant
)

from .battle_state import BattleState, BattlePhase

from .affinity import advantage, is_immune, has_advantage

from .damage import DamageCalculator, DamageResult, ProposedStatus, ProposedModifier

from .effects import EffectManager, TickEvent, describe_status_effect

from .enemy_ai import EnemyAI, ScoredOption, determine_difficulty

from .rewards import RewardCalculator, RewardResult, experience_for_next_level, apply_experience

from .battle_engine import (
    BattleEngine,
    TurnAction,
    ActionResult,
    TurnResult
)

__all__ = [
    # Battle Unit
    "Team",
    "PlayerOwner",
    "EnemyOwner",
    "CombatStats",
    "StatusEffect",
    "StatModifier",
    "Participant",

    # Battle State
    "BattleState",
    "BattlePhase",

    # Affinity
    "advantage",
    "is_immune",
    "has_advantage",

    # Damage
    "DamageCalculator",
    "DamageResult",
    "ProposedStatus",
    "ProposedModifier",

    # Effects
    "EffectManager",
    "TickEvent",
    "describe_status_effect",

    # Enemy AI
    "EnemyAI",
    "ScoredOption",
    "determine_difficulty",

    # Rewards
    "RewardCalculator",
    "RewardResult",
    "experience_for_next_level",
    "apply_experience",

    # Battle Engine
    "BattleEngine",
    "TurnAction",
    "ActionResult",
    "TurnResult"
]
