"""
奖励与升级计算
Reward And Leveling Calculator

作者: lx
日期: 2025-06-18
描述: 战斗胜利后的经验计算与升级结算，纯计算不访问存储
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Any

from common.config import BattleSettings
from common.config.enums import BattleDifficulty


def experience_for_next_level(level: int, settings: Optional[BattleSettings] = None) -> int:
    """升到下一级所需经验: floor(100 * 1.5^(level-1))"""
    settings = settings or BattleSettings()
    return math.floor(settings.level_curve_base * settings.level_curve_growth ** (level - 1))


def estimate_enemy_level(stat_total: int) -> int:
    """根据五项属性之和估算敌人等级"""
    return max(1, math.floor(stat_total / 20))


def difficulty_for_enemy_count(enemy_count: int) -> str:
    """根据敌人数量判定难度"""
    if enemy_count <= 1:
        return BattleDifficulty.EASY.value
    if enemy_count <= 2:
        return BattleDifficulty.NORMAL.value
    return BattleDifficulty.HARD.value


def battle_experience(
    enemy_levels: Sequence[int],
    difficulty: str,
    settings: Optional[BattleSettings] = None
) -> int:
    """战斗经验: floor(20 * 平均敌人等级 * 难度倍率)"""
    settings = settings or BattleSettings()
    if not enemy_levels:
        return 0
    average = sum(enemy_levels) / len(enemy_levels)
    multiplier = settings.difficulty_multipliers.get(str(getattr(difficulty, "value", difficulty)), 1.0)
    return math.floor(settings.experience_base * average * multiplier)


@dataclass
class LevelProgress:
    """升级结算结果"""
    level: int
    experience: int
    levels_gained: int
    attribute_points_gained: int


def apply_experience(
    level: int,
    experience: int,
    gained: int,
    settings: Optional[BattleSettings] = None
) -> LevelProgress:
    """累加经验并循环升级

    Args:
        level: 当前等级
        experience: 当前等级内经验
        gained: 获得经验
        settings: 战斗参数

    Returns:
        LevelProgress: 新等级、剩余经验与获得的属性点
    """
    settings = settings or BattleSettings()
    total = experience + gained
    new_level = level

    requirement = experience_for_next_level(new_level, settings)
    while total >= requirement:
        total -= requirement
        new_level += 1
        requirement = experience_for_next_level(new_level, settings)

    levels_gained = new_level - level
    return LevelProgress(
        level=new_level,
        experience=total,
        levels_gained=levels_gained,
        attribute_points_gained=levels_gained * settings.points_per_level,
    )


@dataclass
class RewardResult:
    """奖励结算结果"""
    user_id: str
    battle_id: str
    difficulty: str
    experience_gained: int
    previous_level: int
    new_level: int
    experience: int
    levels_gained: int
    attribute_points_gained: int
    next_level_experience: int

    @property
    def leveled_up(self) -> bool:
        return self.levels_gained > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "battle_id": self.battle_id,
            "difficulty": self.difficulty,
            "experience_gained": self.experience_gained,
            "previous_level": self.previous_level,
            "new_level": self.new_level,
            "experience": self.experience,
            "leveled_up": self.leveled_up,
            "levels_gained": self.levels_gained,
            "attribute_points_gained": self.attribute_points_gained,
            "next_level_experience": self.next_level_experience,
        }


class RewardCalculator:
    """奖励计算器"""

    def __init__(self, settings: Optional[BattleSettings] = None):
        self.settings = settings or BattleSettings()

    def calculate(
        self,
        user_id: str,
        battle_id: str,
        level: int,
        experience: int,
        enemy_stat_totals: List[int]
    ) -> RewardResult:
        """计算一场胜利战斗的奖励

        Args:
            user_id: 用户ID
            battle_id: 战斗ID
            level: 用户当前等级
            experience: 用户当前经验
            enemy_stat_totals: 每个敌人模板的五项属性之和

        Returns:
            RewardResult: 结算结果
        """
        enemy_levels = [estimate_enemy_level(total) for total in enemy_stat_totals]
        difficulty = difficulty_for_enemy_count(len(enemy_levels))
        gained = battle_experience(enemy_levels, difficulty, self.settings)
        progress = apply_experience(level, experience, gained, self.settings)

        return RewardResult(
            user_id=user_id,
            battle_id=battle_id,
            difficulty=difficulty,
            experience_gained=gained,
            previous_level=level,
            new_level=progress.level,
            experience=progress.experience,
            levels_gained=progress.levels_gained,
            attribute_points_gained=progress.attribute_points_gained,
            next_level_experience=experience_for_next_level(progress.level, self.settings),
        )
