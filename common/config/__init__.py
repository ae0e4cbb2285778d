"""
配置管理模块
Configuration Module

作者: lx
日期: 2025-06-18
描述: 技能、敌人模板与战斗参数的配置加载和管理
"""

from .enums import (
    ElementType, AttackType, TargetType, StatusType, Attribute, Rarity, BattleDifficulty
)
from .base_config import (
    BaseConfig, SkillConfig, EnemyConfig, BattleSettings,
    ConfigManager, config_manager, get_config_manager
)
from .config_loader import (
    ConfigLoader
)

__all__ = [
    # 枚举
    'ElementType',
    'AttackType',
    'TargetType',
    'StatusType',
    'Attribute',
    'Rarity',
    'BattleDifficulty',

    # 基础配置类
    'BaseConfig',
    'SkillConfig',
    'EnemyConfig',
    'BattleSettings',
    'ConfigManager',
    'config_manager',
    'get_config_manager',

    # 配置加载器
    'ConfigLoader'
]
