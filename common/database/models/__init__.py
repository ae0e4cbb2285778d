"""
数据模型模块
作者: lx
日期: 2025-06-20
"""
from .base_document import BaseDocument, utc_now
from .user_model import UserModel, UserAttributes, MAX_EQUIPPED_SKILLS
from .battle_reward_model import BattleRewardModel

__all__ = [
    'BaseDocument', 'utc_now',
    'UserModel', 'UserAttributes', 'MAX_EQUIPPED_SKILLS',
    'BattleRewardModel',
]
