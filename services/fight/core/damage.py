"""
伤害计算器
Damage Calculator

作者: lx
日期: 2025-06-18
描述: 根据攻击者、防守者和技能计算命中、暴击、伤害及附带效果，本身不修改任何状态
"""
import math
import random
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from common.config import BattleSettings, SkillConfig
from common.config.enums import AttackType, Attribute, StatusType

from .affinity import advantage
from .battle_unit import Participant


@dataclass
class ProposedStatus:
    """待施加的状态效果"""
    effect_type: str
    duration: int
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.effect_type, "duration": self.duration, "value": self.value}


@dataclass
class ProposedModifier:
    """待施加的增减益"""
    attribute: Attribute
    value: int
    duration: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attribute": Attribute(self.attribute).value,
            "value": self.value,
            "duration": self.duration,
        }


@dataclass
class DamageResult:
    """伤害计算结果"""
    hit: bool = True
    damage: int = 0
    is_critical: bool = False
    type_multiplier: float = 1.0
    status_effect: Optional[ProposedStatus] = None
    buff: Optional[ProposedModifier] = None
    debuff: Optional[ProposedModifier] = None
    messages: List[str] = field(default_factory=list)

    @property
    def immune(self) -> bool:
        return self.hit and self.type_multiplier == 0


def status_magnitude(effect_type: str, damage: int) -> int:
    """状态效果数值

    Args:
        effect_type: 状态类型
        damage: 本次伤害

    Returns:
        int: 每回合伤害等数值，控制类状态为0
    """
    if effect_type == StatusType.BURN:
        return math.floor(damage * 0.066)
    if effect_type == StatusType.POISON:
        return max(4, math.floor(damage * 0.12))
    if effect_type == StatusType.BLEED:
        return max(7, math.floor(damage * 0.18))
    return 0


class DamageCalculator:
    """伤害计算器

    每次行动的随机数抽取顺序固定: 命中 -> 暴击 -> 浮动 -> 状态触发 -> 状态回合数
    """

    def __init__(self, settings: Optional[BattleSettings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or BattleSettings()
        self.rng = rng or random.Random()

    def calculate(
        self,
        attacker: Participant,
        defender: Participant,
        skill: SkillConfig,
        attacker_type: Optional[str] = None,
        defender_type: Optional[str] = None
    ) -> DamageResult:
        """计算一次技能命中的结果

        Args:
            attacker: 攻击者
            defender: 防守者
            skill: 技能
            attacker_type: 攻击者属性，默认取参与者属性
            defender_type: 防守者属性，默认取参与者属性

        Returns:
            DamageResult: 计算结果
        """
        attacker_type = (attacker_type or attacker.elemental_type).lower()
        defender_type = (defender_type or defender.elemental_type).lower()
        result = DamageResult()

        # 命中判定
        if skill.accuracy < 100:
            roll = self.rng.random() * 100
            if roll > skill.accuracy:
                result.hit = False
                result.messages.append(f"{attacker.name}'s {skill.name} missed!")
                return result

        # 物理/特殊攻防
        if skill.attack_type == AttackType.PHYSICAL:
            attack = attacker.stats.physical_attack
            defense = defender.stats.physical_defense
        else:
            attack = attacker.stats.special_attack
            defense = defender.stats.special_defense
        defense = max(1, defense)

        base_damage = (attack / defense) * skill.base_damage
        stab = self.settings.stab_multiplier if skill.elemental_type == attacker_type else 1.0
        type_multiplier = advantage(skill.elemental_type, defender_type)

        # 暴击
        is_critical = self.rng.random() < self.settings.critical_chance
        critical = self.settings.critical_multiplier if is_critical else 1.0

        # 浮动
        spread = self.settings.variance_max - self.settings.variance_min
        variance = self.settings.variance_min + self.rng.random() * spread

        damage = math.floor(base_damage * stab * type_multiplier * critical * variance)
        if type_multiplier == 0:
            damage = 0
        else:
            damage = max(1, damage)

        result.damage = damage
        result.is_critical = is_critical
        result.type_multiplier = type_multiplier
        result.messages.append(f"{attacker.name} used {skill.name} on {defender.name} for {damage} damage")
        if is_critical and damage > 0:
            result.messages.append("Critical hit!")
        if type_multiplier == 0:
            result.messages.append(f"It had no effect on {defender.name}...")
        elif type_multiplier > 1:
            result.messages.append("It's super effective!")
        elif type_multiplier < 1:
            result.messages.append("It's not very effective...")

        # 免疫时不附加状态和减益
        if skill.has_status_effect and not result.immune:
            landed = self.rng.random() * 100 <= skill.status_effect_chance
            if landed:
                duration = math.floor(self.rng.random() * skill.status_effect_duration) + 1
                result.status_effect = ProposedStatus(
                    effect_type=StatusType(skill.status_effect).value,
                    duration=duration,
                    value=status_magnitude(skill.status_effect, damage),
                )

        if skill.buff_type and skill.buff_value:
            result.buff = ProposedModifier(
                attribute=Attribute(skill.buff_type),
                value=abs(skill.buff_value),
                duration=self.settings.modifier_duration,
            )

        if skill.debuff_type and skill.debuff_value and not result.immune:
            result.debuff = ProposedModifier(
                attribute=Attribute(skill.debuff_type),
                value=-abs(skill.debuff_value),
                duration=self.settings.modifier_duration,
            )

        return result
