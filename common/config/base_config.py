"""
配置基类模块
Configuration Base Classes Module

作者: lx
日期: 2025-06-18
描述: 配置系统的基础类和配置管理器，包含技能模板、敌人模板与战斗参数
"""

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Dict, List, Any, Optional, Iterable
from datetime import datetime

from .enums import (
    ElementType, AttackType, TargetType, StatusType, Attribute, Rarity, BattleDifficulty
)


class BaseConfig(BaseModel):
    """配置基类"""

    model_config = ConfigDict(
        # 禁止额外字段
        extra="forbid",
        # 使用枚举值
        use_enum_values=True,
        # 允许属性验证
        validate_assignment=True
    )


def _lower(value: Any) -> Any:
    """元素类型统一小写"""
    if isinstance(value, str):
        return value.lower()
    return value


class SkillConfig(BaseConfig):
    """技能配置"""
    skill_id: str = Field(description="技能ID")
    name: str = Field(description="技能名称")
    elemental_type: ElementType = Field(default=ElementType.NORMAL, description="元素类型")
    attack_type: AttackType = Field(default=AttackType.PHYSICAL, description="攻击类型")
    base_damage: int = Field(default=0, description="基础威力", ge=0)
    accuracy: int = Field(default=100, description="命中率", ge=0, le=100)
    target_type: TargetType = Field(default=TargetType.SINGLE, description="目标类型")
    status_effect: Optional[StatusType] = Field(default=None, description="状态效果")
    status_effect_chance: Optional[int] = Field(default=None, description="状态触发概率", ge=0, le=100)
    status_effect_duration: Optional[int] = Field(default=None, description="状态最大持续回合", ge=1)
    buff_type: Optional[Attribute] = Field(default=None, description="增益属性")
    buff_value: Optional[int] = Field(default=None, description="增益数值")
    debuff_type: Optional[Attribute] = Field(default=None, description="减益属性")
    debuff_value: Optional[int] = Field(default=None, description="减益数值")
    description: str = Field(default="", description="技能描述")

    @field_validator("elemental_type", mode="before")
    @classmethod
    def normalize_element(cls, value: Any) -> Any:
        return _lower(value)

    @property
    def is_aoe(self) -> bool:
        """是否为群体技能"""
        return self.target_type == TargetType.ALL_ENEMIES

    @property
    def has_status_effect(self) -> bool:
        """是否带有完整的状态效果定义"""
        return bool(self.status_effect and self.status_effect_chance and self.status_effect_duration)

    @property
    def is_paralyzing(self) -> bool:
        """是否为控制类技能"""
        return self.status_effect in (StatusType.STUN, StatusType.FREEZE)


class EnemyConfig(BaseConfig):
    """敌人模板配置"""
    enemy_id: str = Field(description="敌人ID")
    name: str = Field(description="敌人名称")
    elemental_type: ElementType = Field(default=ElementType.NORMAL, description="元素类型")
    rarity: Rarity = Field(default=Rarity.COMMON, description="稀有度")
    is_boss: bool = Field(default=False, description="是否首领")
    health: int = Field(description="生命值", ge=1)
    physical_attack: int = Field(default=10, description="物理攻击", ge=0)
    special_attack: int = Field(default=10, description="特殊攻击", ge=0)
    physical_defense: int = Field(default=10, description="物理防御", ge=0)
    special_defense: int = Field(default=10, description="特殊防御", ge=0)
    speed: int = Field(default=10, description="速度", ge=0)
    skill_ids: List[str] = Field(default_factory=list, description="固定技能列表")

    @field_validator("elemental_type", mode="before")
    @classmethod
    def normalize_element(cls, value: Any) -> Any:
        return _lower(value)

    def stat_total(self) -> int:
        """五项战斗属性之和"""
        return (
            self.physical_attack + self.special_attack
            + self.physical_defense + self.special_defense + self.speed
        )


class BattleSettings(BaseConfig):
    """战斗参数配置"""
    critical_chance: float = Field(default=0.05, description="暴击率", ge=0, le=1)
    critical_multiplier: float = Field(default=1.5, description="暴击倍率", ge=1)
    stab_multiplier: float = Field(default=1.5, description="同属性加成", ge=1)
    variance_min: float = Field(default=0.85, description="伤害浮动下限", gt=0)
    variance_max: float = Field(default=1.0, description="伤害浮动上限", gt=0)
    modifier_duration: int = Field(default=3, description="增减益持续回合", ge=1)
    max_stack: int = Field(default=3, description="增减益最大层数", ge=1)
    burn_attack_reduction: float = Field(default=0.3, description="灼烧物攻削减比例", ge=0, le=1)
    experience_base: int = Field(default=20, description="战斗经验基数", ge=0)
    level_curve_base: int = Field(default=100, description="升级经验基数", ge=1)
    level_curve_growth: float = Field(default=1.5, description="升级经验增长率", ge=1)
    points_per_level: int = Field(default=3, description="每级属性点", ge=0)
    enemy_count: Dict[str, int] = Field(
        default_factory=lambda: {"easy": 1, "normal": 2, "hard": 3},
        description="各难度敌人数量"
    )
    rarity_pools: Dict[str, List[Rarity]] = Field(
        default_factory=lambda: {
            "easy": [Rarity.COMMON],
            "normal": [Rarity.COMMON, Rarity.UNCOMMON],
            "hard": [Rarity.COMMON, Rarity.UNCOMMON, Rarity.RARE],
        },
        description="各难度可选稀有度"
    )
    ai_difficulty: Dict[str, int] = Field(
        default_factory=lambda: {"easy": 1, "normal": 3, "hard": 5},
        description="各难度AI等级"
    )
    difficulty_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {"easy": 1.0, "normal": 1.25, "hard": 1.5},
        description="各难度经验倍率"
    )
    lock_timeout: float = Field(default=10.0, description="回合锁超时(秒)", gt=0)

    def enemy_count_for(self, difficulty: str) -> int:
        return self.enemy_count.get(difficulty, self.enemy_count[BattleDifficulty.NORMAL.value])


class ConfigManager:
    """配置管理器"""

    def __init__(self):
        """初始化配置管理器"""
        self.skill_config: Dict[str, SkillConfig] = {}
        self.enemy_config: Dict[str, EnemyConfig] = {}
        self.settings: BattleSettings = BattleSettings()

        # 配置加载时间戳
        self._load_timestamp: Optional[datetime] = None

    def get_skill(self, skill_id: str) -> Optional[SkillConfig]:
        """获取技能配置

        Args:
            skill_id: 技能ID

        Returns:
            技能配置对象，如果不存在返回None
        """
        return self.skill_config.get(skill_id)

    def get_enemy(self, enemy_id: str) -> Optional[EnemyConfig]:
        """获取敌人模板配置

        Args:
            enemy_id: 敌人ID

        Returns:
            敌人配置对象，如果不存在返回None
        """
        return self.enemy_config.get(enemy_id)

    def get_all_skills(self) -> Dict[str, SkillConfig]:
        """获取所有技能配置"""
        return self.skill_config.copy()

    def get_all_enemies(self) -> Dict[str, EnemyConfig]:
        """获取所有敌人配置"""
        return self.enemy_config.copy()

    def get_enemies_by_rarity(
        self,
        rarities: Iterable[str],
        include_bosses: bool = False
    ) -> List[EnemyConfig]:
        """根据稀有度筛选敌人模板

        Args:
            rarities: 允许的稀有度
            include_bosses: 是否包含首领

        Returns:
            符合条件的敌人配置列表
        """
        allowed = {Rarity(r).value for r in rarities}
        return [
            enemy for enemy in self.enemy_config.values()
            if enemy.rarity in allowed and (include_bosses or not enemy.is_boss)
        ]

    def register_skill(self, skill: SkillConfig) -> None:
        self.skill_config[skill.skill_id] = skill
        self._load_timestamp = datetime.now()

    def register_enemy(self, enemy: EnemyConfig) -> None:
        self.enemy_config[enemy.enemy_id] = enemy
        self._load_timestamp = datetime.now()

    def clear_all(self):
        """清空所有配置"""
        self.skill_config.clear()
        self.enemy_config.clear()
        self.settings = BattleSettings()
        self._load_timestamp = None

    def get_config_count(self) -> Dict[str, int]:
        """获取配置数量统计

        Returns:
            各类配置的数量统计
        """
        return {
            "skills": len(self.skill_config),
            "enemies": len(self.enemy_config),
            "total": len(self.skill_config) + len(self.enemy_config)
        }

    def validate_all_configs(self) -> Dict[str, List[str]]:
        """验证所有配置的完整性

        Returns:
            验证错误信息，按配置类型分组
        """
        errors: Dict[str, List[str]] = {
            "skills": [],
            "enemies": []
        }

        for skill_id, skill in self.skill_config.items():
            if skill.status_effect and not (skill.status_effect_chance and skill.status_effect_duration):
                errors["skills"].append(f"技能ID {skill_id}: 状态效果缺少概率或持续回合")
            if bool(skill.buff_type) != bool(skill.buff_value):
                errors["skills"].append(f"技能ID {skill_id}: 增益属性与数值不匹配")
            if bool(skill.debuff_type) != bool(skill.debuff_value):
                errors["skills"].append(f"技能ID {skill_id}: 减益属性与数值不匹配")

        for enemy_id, enemy in self.enemy_config.items():
            if not enemy.skill_ids:
                errors["enemies"].append(f"敌人ID {enemy_id}: 没有技能")
            for skill_id in enemy.skill_ids:
                if skill_id not in self.skill_config:
                    errors["enemies"].append(f"敌人ID {enemy_id}: 未知技能 {skill_id}")

        return errors


# 全局配置管理器实例
config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    """获取全局配置管理器实例

    Returns:
        全局配置管理器实例
    """
    return config_manager
