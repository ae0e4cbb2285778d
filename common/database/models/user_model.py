"""
用户数据模型
战斗相关的用户进度与属性，纯数据定义
作者: mrkingu
日期: 2025-06-20
"""
from typing import List

from pydantic import BaseModel, Field, field_validator

from .base_document import BaseDocument

MAX_EQUIPPED_SKILLS = 4


class UserAttributes(BaseModel):
    """用户持久属性，作为战斗参与者的初始数值"""
    health: int = Field(default=100, ge=1, description="生命值")
    physical_attack: int = Field(default=10, ge=0, description="物理攻击")
    special_attack: int = Field(default=10, ge=0, description="特殊攻击")
    physical_defense: int = Field(default=10, ge=0, description="物理防御")
    special_defense: int = Field(default=10, ge=0, description="特殊防御")
    speed: int = Field(default=10, ge=0, description="速度")


class UserModel(BaseDocument):
    """用户数据模型"""

    user_id: str = Field(..., description="用户ID")
    username: str = Field(..., description="用户名")

    # 等级信息
    level: int = Field(default=1, ge=1, description="等级")
    experience: int = Field(default=0, ge=0, description="当前等级经验")
    attribute_points_to_distribute: int = Field(default=0, ge=0, description="可分配属性点")

    primary_elemental_type: str = Field(default="normal", description="主元素类型")
    attributes: UserAttributes = Field(default_factory=UserAttributes, description="属性")

    # 已装备技能，最多4个
    equipped_skill_ids: List[str] = Field(default_factory=list, description="已装备技能")

    # 已领取奖励的战斗，用于单文档原子领取
    claimed_battle_ids: List[str] = Field(default_factory=list, description="已领奖战斗")

    @field_validator("equipped_skill_ids")
    @classmethod
    def check_equipped_limit(cls, value: List[str]) -> List[str]:
        if len(value) > MAX_EQUIPPED_SKILLS:
            raise ValueError(f"at most {MAX_EQUIPPED_SKILLS} skills can be equipped")
        return value

    @field_validator("primary_elemental_type", mode="before")
    @classmethod
    def normalize_element(cls, value):
        return value.lower() if isinstance(value, str) else value
