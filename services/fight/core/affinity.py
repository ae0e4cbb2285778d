"""
元素克制表
Elemental Affinity Table

作者: lx
日期: 2025-06-18
描述: 元素克制、被克制与免疫的静态查询

判定顺序:
    1. 攻防同属性          -> 0.5
    2. 防守方免疫攻击属性  -> 0
    3. 攻击属性克制防守方  -> 1.5
    4. 防守属性克制攻击方  -> 0.5
    5. 其它                -> 1.0
"""
from typing import Dict, FrozenSet, Optional

from common.config.enums import ElementType

SAME_TYPE_MULTIPLIER = 0.5
IMMUNE_MULTIPLIER = 0.0
ADVANTAGE_MULTIPLIER = 1.5
DISADVANTAGE_MULTIPLIER = 0.5
NEUTRAL_MULTIPLIER = 1.0

E = ElementType

# 攻击属性 -> 被其克制的属性
ADVANTAGES: Dict[str, FrozenSet[str]] = {
    E.FIRE.value: frozenset({E.NATURE.value, E.ICE.value, E.STEEL.value}),
    E.WATER.value: frozenset({E.FIRE.value, E.EARTH.value, E.ROCK.value}),
    E.EARTH.value: frozenset({E.ELECTRIC.value, E.POISON.value, E.FIRE.value}),
    E.AIR.value: frozenset({E.EARTH.value, E.FIGHTING.value, E.BUG.value}),
    E.LIGHT.value: frozenset({E.DARK.value, E.GHOST.value, E.PSYCHIC.value}),
    E.DARK.value: frozenset({E.LIGHT.value, E.PSYCHIC.value, E.GHOST.value}),
    E.NATURE.value: frozenset({E.WATER.value, E.EARTH.value, E.ROCK.value}),
    E.ELECTRIC.value: frozenset({E.WATER.value, E.AIR.value, E.STEEL.value}),
    E.ICE.value: frozenset({E.NATURE.value, E.AIR.value, E.DRAGON.value}),
    E.PSYCHIC.value: frozenset({E.FIGHTING.value, E.POISON.value, E.GHOST.value}),
    E.GHOST.value: frozenset({E.PSYCHIC.value, E.GHOST.value, E.DARK.value}),
    E.STEEL.value: frozenset({E.ICE.value, E.ROCK.value, E.FAIRY.value}),
    E.POISON.value: frozenset({E.NATURE.value, E.FAIRY.value, E.FIGHTING.value}),
    E.FLYING.value: frozenset({E.FIGHTING.value, E.BUG.value, E.NATURE.value}),
    E.ROCK.value: frozenset({E.FIRE.value, E.ICE.value, E.FLYING.value}),
}

# 防守属性 -> 对其完全无效的攻击属性
IMMUNITIES: Dict[str, FrozenSet[str]] = {
    E.EARTH.value: frozenset({E.ELECTRIC.value}),
    E.FLYING.value: frozenset({E.EARTH.value}),
    E.STEEL.value: frozenset({E.POISON.value}),
    E.DARK.value: frozenset({E.PSYCHIC.value}),
}

del E


def _normalize(element: Optional[str]) -> str:
    if not element:
        return ElementType.NORMAL.value
    return str(getattr(element, "value", element)).lower()


def is_immune(attacker_type: str, defender_type: str) -> bool:
    """防守方是否免疫该攻击属性"""
    return _normalize(attacker_type) in IMMUNITIES.get(_normalize(defender_type), frozenset())


def has_advantage(attacker_type: str, defender_type: str) -> bool:
    """攻击属性是否克制防守属性"""
    return _normalize(defender_type) in ADVANTAGES.get(_normalize(attacker_type), frozenset())


def advantage(attacker_type: str, defender_type: str) -> float:
    """查询属性倍率

    Args:
        attacker_type: 攻击(技能)属性
        defender_type: 防守方属性

    Returns:
        float: 0, 0.5, 1.0 或 1.5
    """
    attacker = _normalize(attacker_type)
    defender = _normalize(defender_type)

    if attacker == defender:
        return SAME_TYPE_MULTIPLIER
    if is_immune(attacker, defender):
        return IMMUNE_MULTIPLIER
    if has_advantage(attacker, defender):
        return ADVANTAGE_MULTIPLIER
    if has_advantage(defender, attacker):
        return DISADVANTAGE_MULTIPLIER
    return NEUTRAL_MULTIPLIER
