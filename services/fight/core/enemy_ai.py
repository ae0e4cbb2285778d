"""
敌人AI
Enemy AI

作者: lx
日期: 2025-06-18
描述: 为未提交行动的敌方参与者评估 (技能 x 存活对手) 组合并选择得分最高的一项，
      难度越高随机扰动越小
"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from common.config import SkillConfig
from common.config.enums import Rarity

from .affinity import advantage
from .battle_unit import Participant

logger = logging.getLogger(__name__)

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 3
BOSS_MIN_DIFFICULTY = 4

RARITY_DIFFICULTY: Dict[str, int] = {
    Rarity.COMMON.value: 1,
    Rarity.UNCOMMON.value: 2,
    Rarity.RARE.value: 3,
    Rarity.EPIC.value: 4,
    Rarity.LEGENDARY.value: 5,
}


@dataclass
class ScoredOption:
    """一个候选行动及其得分"""
    skill: SkillConfig
    target: Participant
    score: float


def clamp_difficulty(level: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(level)))


def determine_difficulty(
    rarity: Optional[str],
    is_boss: bool,
    user_level: Optional[int],
    enemy_max_health: int
) -> int:
    """根据稀有度和等级差确定AI难度

    Args:
        rarity: 敌人稀有度
        is_boss: 是否首领
        user_level: 玩家等级，未知时不做等级修正
        enemy_max_health: 敌人初始生命，用于估算敌人等级

    Returns:
        int: 1..5
    """
    rarity_value = str(getattr(rarity, "value", rarity)) if rarity else None
    level = RARITY_DIFFICULTY.get(rarity_value, DEFAULT_DIFFICULTY)

    if user_level is not None:
        level_difference = user_level - math.floor(enemy_max_health / 50)
        if level_difference > 5:
            level += 1
        elif level_difference < -5:
            level -= 1

    if is_boss and level < BOSS_MIN_DIFFICULTY:
        level = BOSS_MIN_DIFFICULTY

    return clamp_difficulty(level)


class EnemyAI:
    """启发式敌人AI"""

    BASE_SCORE = 50

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score_option(
        self,
        skill: SkillConfig,
        target: Participant,
        opponents: Sequence[Participant],
        allies: Sequence[Participant],
        difficulty: int
    ) -> float:
        """计算一个 (技能, 目标) 组合的得分"""
        score = float(self.BASE_SCORE)

        # 属性克制
        multiplier = advantage(skill.elemental_type, target.elemental_type)
        if multiplier > 1:
            score += 30
        elif multiplier < 1:
            score -= 20

        # 威力与命中
        score += min(25.0, skill.base_damage / 4)
        score += skill.accuracy * 15 / 100

        # 群体技能在多目标时更有价值
        if skill.is_aoe and len(opponents) > 1:
            score += 20

        # 己方血量占优时偏好状态技能
        if skill.status_effect:
            ally_health = sum(p.health for p in allies if p.is_alive())
            opponent_health = sum(p.health for p in opponents if p.is_alive())
            if ally_health > opponent_health:
                score += 25

        # 优先收割残血目标
        fraction = target.health_fraction()
        if fraction < 0.3:
            score += 35
        elif fraction < 0.5:
            score += 20

        # 目标已被控制时不重复控制
        if target.has_paralyzing_effect():
            if skill.is_paralyzing:
                score -= 30
            else:
                score += 15

        # 随机扰动，难度越高越小
        score += math.floor(self.rng.random() * (20 - difficulty * 3))

        if difficulty >= 4 and target.position == 1 and self.rng.random() > 0.5:
            score += 25

        if difficulty <= 2 and self.rng.random() > 0.7:
            score -= 30

        return score

    def evaluate(
        self,
        skills: Sequence[SkillConfig],
        opponents: Sequence[Participant],
        allies: Sequence[Participant],
        difficulty: int
    ) -> List[ScoredOption]:
        """评估所有组合，按得分降序返回；同分保持评估顺序"""
        difficulty = clamp_difficulty(difficulty)
        living = [p for p in opponents if p.is_alive()]
        options: List[ScoredOption] = []

        for skill in skills:
            for target in living:
                score = self.score_option(skill, target, living, allies, difficulty)
                options.append(ScoredOption(skill=skill, target=target, score=score))

        options.sort(key=lambda option: option.score, reverse=True)
        return options

    def choose_action(
        self,
        actor: Participant,
        skills: Sequence[SkillConfig],
        opponents: Sequence[Participant],
        allies: Sequence[Participant],
        difficulty: int
    ) -> Optional[ScoredOption]:
        """为敌方参与者选择行动

        Args:
            actor: 行动的敌方参与者
            skills: 该敌人可用的技能
            opponents: 对方阵营参与者
            allies: 己方阵营参与者
            difficulty: AI难度 1..5

        Returns:
            ScoredOption: 最优行动，没有技能或没有存活对手时返回None
        """
        options = self.evaluate(skills, opponents, allies, difficulty)
        if not options:
            logger.debug(f"{actor.participant_id} 没有可选行动")
            return None

        best = options[0]
        logger.debug(
            f"{actor.participant_id} 选择 {best.skill.skill_id} -> {best.target.participant_id}, 得分 {best.score}"
        )
        return best

    def fallback_action(
        self,
        actor: Participant,
        skills: Sequence[SkillConfig],
        opponents: Sequence[Participant]
    ) -> Optional[ScoredOption]:
        """兜底: 随机存活目标 + 第一个技能"""
        living = [p for p in opponents if p.is_alive()]
        if not living or not skills:
            return None
        target = living[math.floor(self.rng.random() * len(living))]
        return ScoredOption(skill=skills[0], target=target, score=0.0)
