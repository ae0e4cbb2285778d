"""
战斗参与者
Battle Participant

作者: lx
日期: 2025-06-18
描述: 战斗内参与者的定义，包括归属、战斗属性、状态效果与增减益记录
"""
from typing import Dict, List, Optional, Any, Union, Callable, Tuple
from dataclasses import dataclass, field
from enum import Enum

from common.config.enums import Attribute, StatusType


class Team(str, Enum):
    """阵营"""
    PLAYER = "player"   # 玩家方
    ENEMY = "enemy"     # 敌方


# 同速时玩家方先行动
TEAM_ORDER: Dict[str, int] = {Team.PLAYER.value: 0, Team.ENEMY.value: 1}

# 持续伤害类状态
DAMAGE_OVER_TIME = frozenset({StatusType.BURN.value, StatusType.POISON.value, StatusType.BLEED.value})

# 无法行动类状态
PARALYZING = frozenset({StatusType.STUN.value, StatusType.FREEZE.value})


@dataclass(frozen=True)
class PlayerOwner:
    """玩家归属"""
    user_id: str

    @property
    def owner_id(self) -> str:
        return self.user_id

    def to_dict(self) -> Dict[str, str]:
        return {"kind": "player", "user_id": self.user_id}


@dataclass(frozen=True)
class EnemyOwner:
    """敌人模板归属"""
    template_id: str

    @property
    def owner_id(self) -> str:
        return self.template_id

    def to_dict(self) -> Dict[str, str]:
        return {"kind": "enemy", "template_id": self.template_id}


Owner = Union[PlayerOwner, EnemyOwner]


def owner_from_dict(data: Dict[str, str]) -> Owner:
    """从字典还原归属"""
    kind = data.get("kind")
    if kind == "player":
        return PlayerOwner(user_id=data["user_id"])
    if kind == "enemy":
        return EnemyOwner(template_id=data["template_id"])
    raise ValueError(f"Unknown owner kind: {kind}")


@dataclass
class CombatStats:
    """五项战斗属性(战斗内工作副本)"""

    physical_attack: int = 10
    special_attack: int = 10
    physical_defense: int = 10
    special_defense: int = 10
    speed: int = 10

    def get(self, attribute: Attribute) -> int:
        """读取属性值"""
        getter, _ = _ACCESSORS[Attribute(attribute)]
        return getter(self)

    def add(self, attribute: Attribute, delta: int) -> int:
        """属性增加 delta，返回新值"""
        getter, setter = _ACCESSORS[Attribute(attribute)]
        value = getter(self) + delta
        setter(self, value)
        return value

    def copy(self) -> 'CombatStats':
        return CombatStats(**self.to_dict())

    def to_dict(self) -> Dict[str, int]:
        return {
            "physical_attack": self.physical_attack,
            "special_attack": self.special_attack,
            "physical_defense": self.physical_defense,
            "special_defense": self.special_defense,
            "speed": self.speed,
        }


def _setter(name: str) -> Callable[[CombatStats, int], None]:
    def set_value(stats: CombatStats, value: int) -> None:
        setattr(stats, name, value)
    return set_value


# 属性枚举 -> (读取, 写入)
_ACCESSORS: Dict[Attribute, Tuple[Callable[[CombatStats], int], Callable[[CombatStats, int], None]]] = {
    Attribute.PHYSICAL_ATTACK: (lambda s: s.physical_attack, _setter("physical_attack")),
    Attribute.SPECIAL_ATTACK: (lambda s: s.special_attack, _setter("special_attack")),
    Attribute.PHYSICAL_DEFENSE: (lambda s: s.physical_defense, _setter("physical_defense")),
    Attribute.SPECIAL_DEFENSE: (lambda s: s.special_defense, _setter("special_defense")),
    Attribute.SPEED: (lambda s: s.speed, _setter("speed")),
}


@dataclass
class StatusEffect:
    """状态效果"""

    effect_type: str                          # StatusType 值
    remaining_turns: int                      # 剩余回合
    value: int = 0                            # 每回合伤害等数值
    side_attribute: Optional[Attribute] = None  # 附带修改的属性
    side_delta: int = 0                       # 附带修改的实际变化量，过期时反向恢复

    @property
    def is_damage_over_time(self) -> bool:
        return self.effect_type in DAMAGE_OVER_TIME

    @property
    def is_paralyzing(self) -> bool:
        return self.effect_type in PARALYZING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "effect_type": self.effect_type,
            "remaining_turns": self.remaining_turns,
            "value": self.value,
            "side_attribute": Attribute(self.side_attribute).value if self.side_attribute else None,
            "side_delta": self.side_delta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatusEffect':
        side_attribute = data.get("side_attribute")
        return cls(
            effect_type=data["effect_type"],
            remaining_turns=data["remaining_turns"],
            value=data.get("value", 0),
            side_attribute=Attribute(side_attribute) if side_attribute else None,
            side_delta=data.get("side_delta", 0),
        )


@dataclass
class StatModifier:
    """属性增减益，减益以负值表示"""

    attribute: Attribute        # 目标属性
    value: int                  # 每层数值
    remaining_turns: int        # 剩余回合
    stack_count: int = 1        # 叠加层数
    applied_total: int = 0      # 已施加到属性上的总量

    @property
    def is_debuff(self) -> bool:
        return self.value < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attribute": Attribute(self.attribute).value,
            "value": self.value,
            "remaining_turns": self.remaining_turns,
            "stack_count": self.stack_count,
            "applied_total": self.applied_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatModifier':
        return cls(
            attribute=Attribute(data["attribute"]),
            value=data["value"],
            remaining_turns=data["remaining_turns"],
            stack_count=data.get("stack_count", 1),
            applied_total=data.get("applied_total", data["value"]),
        )


class Participant:
    """战斗参与者

    使用__slots__优化内存，一个参与者只属于一场战斗
    """

    __slots__ = [
        'participant_id', 'name', 'owner', 'team', 'position', 'elemental_type',
        'health', 'max_health', 'stats', 'status_effects', 'modifiers', 'stunned'
    ]

    def __init__(
        self,
        participant_id: str,
        name: str,
        owner: Owner,
        team: str,
        position: int = 1,
        elemental_type: str = "normal",
        health: int = 100,
        max_health: Optional[int] = None,
        stats: Optional[CombatStats] = None
    ):
        """初始化参与者

        Args:
            participant_id: 参与者ID
            name: 显示名称
            owner: 归属(玩家或敌人模板)
            team: 阵营
            position: 阵营内位置，从1开始
            elemental_type: 元素类型
            health: 当前生命
            max_health: 初始生命上限
            stats: 战斗属性
        """
        self.participant_id = participant_id
        self.name = name
        self.owner = owner
        self.team = Team(team).value
        self.position = position
        self.elemental_type = (elemental_type or "normal").lower()
        self.health = max(0, health)
        self.max_health = max_health if max_health is not None else health
        self.stats = stats or CombatStats()

        self.status_effects: List[StatusEffect] = []
        self.modifiers: List[StatModifier] = []

        # 本回合是否被控制，只在一次回合处理内有效
        self.stunned = False

    @property
    def is_player(self) -> bool:
        return isinstance(self.owner, PlayerOwner)

    @property
    def owner_id(self) -> str:
        return self.owner.owner_id

    def is_alive(self) -> bool:
        """检查是否存活"""
        return self.health > 0

    def is_defeated(self) -> bool:
        """检查是否被击败"""
        return not self.is_alive()

    def take_damage(self, damage: int) -> int:
        """受到伤害，生命最低为0

        Args:
            damage: 伤害值

        Returns:
            int: 实际扣除的生命
        """
        if damage <= 0 or not self.is_alive():
            return 0
        actual_damage = min(damage, self.health)
        self.health -= actual_damage
        return actual_damage

    def health_fraction(self) -> float:
        """当前生命占比"""
        if self.max_health <= 0:
            return 0.0
        return self.health / self.max_health

    def find_status(self, effect_type: str) -> Optional[StatusEffect]:
        """查找指定类型的状态效果"""
        for effect in self.status_effects:
            if effect.effect_type == effect_type and effect.remaining_turns > 0:
                return effect
        return None

    def has_paralyzing_effect(self) -> bool:
        return any(e.is_paralyzing and e.remaining_turns > 0 for e in self.status_effects)

    def find_modifier(self, attribute: Attribute, debuff: bool) -> Optional[StatModifier]:
        """查找同属性同方向的增减益"""
        for modifier in self.modifiers:
            if (modifier.attribute == attribute and modifier.is_debuff == debuff
                    and modifier.remaining_turns > 0):
                return modifier
        return None

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "participant_id": self.participant_id,
            "name": self.name,
            "owner": self.owner.to_dict(),
            "team": self.team,
            "position": self.position,
            "elemental_type": self.elemental_type,
            "health": self.health,
            "max_health": self.max_health,
            "stats": self.stats.to_dict(),
            "status_effects": [e.to_dict() for e in self.status_effects],
            "modifiers": [m.to_dict() for m in self.modifiers],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Participant':
        """从字典还原"""
        participant = cls(
            participant_id=data["participant_id"],
            name=data.get("name", data["participant_id"]),
            owner=owner_from_dict(data["owner"]),
            team=data["team"],
            position=data.get("position", 1),
            elemental_type=data.get("elemental_type", "normal"),
            health=data["health"],
            max_health=data.get("max_health"),
            stats=CombatStats(**data.get("stats", {})),
        )
        participant.status_effects = [StatusEffect.from_dict(e) for e in data.get("status_effects", [])]
        participant.modifiers = [StatModifier.from_dict(m) for m in data.get("modifiers", [])]
        return participant

    def __repr__(self) -> str:
        return (f"Participant({self.participant_id}, team={self.team}, "
                f"pos={self.position}, hp={self.health}/{self.max_health})")
