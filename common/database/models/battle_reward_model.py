"""
战斗奖励记录模型
每个用户每场战斗最多一条，防止重复领取
作者: mrkingu
日期: 2025-06-20
"""
from pydantic import Field

from .base_document import BaseDocument


class BattleRewardModel(BaseDocument):
    """战斗奖励领取记录"""

    user_id: str = Field(..., description="用户ID")
    battle_id: str = Field(..., description="战斗ID")
    experience_gained: int = Field(default=0, ge=0, description="获得经验")
    leveled_up: bool = Field(default=False, description="是否升级")
    levels_gained: int = Field(default=0, ge=0, description="提升等级数")
    new_level: int = Field(default=1, ge=1, description="领取后等级")
    attribute_points_gained: int = Field(default=0, ge=0, description="获得属性点")
