"""
战斗枚举定义
Battle Enumerations

作者: lx
日期: 2025-06-18
描述: 配置与战斗核心共用的枚举类型，值与存储中的字符串一致
"""
from enum import Enum


class ElementType(str, Enum):
    """元素类型"""
    NORMAL = "normal"        # 无属性
    FIRE = "fire"            # 火
    WATER = "water"          # 水
    EARTH = "earth"          # 土
    AIR = "air"              # 风
    LIGHT = "light"          # 光
    DARK = "dark"            # 暗
    NATURE = "nature"        # 自然
    ELECTRIC = "electric"    # 电
    ICE = "ice"              # 冰
    PSYCHIC = "psychic"      # 超能
    GHOST = "ghost"          # 幽灵
    STEEL = "steel"          # 钢
    POISON = "poison"        # 毒
    FLYING = "flying"        # 飞行
    ROCK = "rock"            # 岩石
    FIGHTING = "fighting"    # 格斗
    BUG = "bug"              # 虫
    DRAGON = "dragon"        # 龙
    FAIRY = "fairy"          # 妖精


class AttackType(str, Enum):
    """攻击类型"""
    PHYSICAL = "physical"    # 物理
    SPECIAL = "special"      # 特殊


class TargetType(str, Enum):
    """目标类型"""
    SINGLE = "single"              # 单体
    ALL_ENEMIES = "all_enemies"    # 敌方全体
    ALL_ALLIES = "all_allies"      # 友方全体
    SELF = "self"                  # 自身


class StatusType(str, Enum):
    """状态效果类型"""
    BURN = "burn"        # 灼烧
    POISON = "poison"    # 中毒
    STUN = "stun"        # 眩晕
    FREEZE = "freeze"    # 冰冻
    BLIND = "blind"      # 致盲
    BLEED = "bleed"      # 流血
    CONFUSE = "confuse"  # 混乱


class Attribute(str, Enum):
    """可被增减益修改的战斗属性"""
    PHYSICAL_ATTACK = "physical_attack"    # 物理攻击
    SPECIAL_ATTACK = "special_attack"      # 特殊攻击
    PHYSICAL_DEFENSE = "physical_defense"  # 物理防御
    SPECIAL_DEFENSE = "special_defense"    # 特殊防御
    SPEED = "speed"                        # 速度


class Rarity(str, Enum):
    """敌人稀有度"""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class BattleDifficulty(str, Enum):
    """战斗难度"""
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
