"""
效果生命周期管理
Effect Lifecycle Manager

作者: lx
日期: 2025-06-18
描述: 状态效果与增减益的施加、叠加、回合递减和过期恢复

状态效果同类型互斥: 目标身上已有同类型状态时，新状态不生效；
不同类型可以共存。增减益按(属性, 正负)区分，同属性的增益和减益各自叠加。
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Iterable, Any

from common.config import BattleSettings
from common.config.enums import Attribute, StatusType

from .battle_unit import Participant, StatusEffect, StatModifier
from .damage import ProposedStatus, ProposedModifier

logger = logging.getLogger(__name__)


STATUS_NAMES: Dict[str, str] = {
    StatusType.BURN.value: "Burn",
    StatusType.POISON.value: "Poison",
    StatusType.STUN.value: "Stun",
    StatusType.FREEZE.value: "Freeze",
    StatusType.BLIND.value: "Blind",
    StatusType.BLEED.value: "Bleed",
    StatusType.CONFUSE.value: "Confusion",
}

STATUS_DESCRIPTIONS: Dict[str, str] = {
    StatusType.BURN.value: "Deals damage every turn and lowers physical attack by 30%",
    StatusType.POISON.value: "Deals damage every turn",
    StatusType.STUN.value: "Prevents acting for a turn",
    StatusType.FREEZE.value: "Prevents acting for a turn",
    StatusType.BLIND.value: "Reduces attack accuracy",
    StatusType.BLEED.value: "Deals heavy damage every turn",
    StatusType.CONFUSE.value: "May cause self-inflicted attacks",
}

ATTRIBUTE_NAMES: Dict[str, str] = {
    Attribute.PHYSICAL_ATTACK.value: "Physical Attack",
    Attribute.SPECIAL_ATTACK.value: "Special Attack",
    Attribute.PHYSICAL_DEFENSE.value: "Physical Defense",
    Attribute.SPECIAL_DEFENSE.value: "Special Defense",
    Attribute.SPEED.value: "Speed",
}


def status_name(effect_type: str) -> str:
    return STATUS_NAMES.get(str(getattr(effect_type, "value", effect_type)), "Unknown effect")


def attribute_name(attribute: Attribute) -> str:
    return ATTRIBUTE_NAMES.get(Attribute(attribute).value, str(attribute))


def describe_status_effect(effect_type: str) -> str:
    """状态效果说明"""
    return STATUS_DESCRIPTIONS.get(str(getattr(effect_type, "value", effect_type)), "Unknown effect")


@dataclass
class TickEvent:
    """回合开始时效果结算产生的事件"""
    participant_id: str
    kind: str           # damage / paralyzed / status_expired / modifier_expired
    effect: str
    amount: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "kind": self.kind,
            "effect": self.effect,
            "amount": self.amount,
            "message": self.message,
        }


class EffectManager:
    """效果生命周期管理器"""

    def __init__(self, settings: Optional[BattleSettings] = None):
        self.settings = settings or BattleSettings()

    # ------------------------------------------------------------------
    # 状态效果
    # ------------------------------------------------------------------

    def apply_status_effect(self, participant: Participant, proposed: ProposedStatus) -> bool:
        """施加状态效果

        Args:
            participant: 目标
            proposed: 待施加的状态

        Returns:
            bool: 是否生效
        """
        if proposed.duration <= 0:
            return False
        if participant.find_status(proposed.effect_type) is not None:
            logger.debug(f"{participant.participant_id} 已有状态 {proposed.effect_type}，忽略")
            return False

        effect = StatusEffect(
            effect_type=proposed.effect_type,
            remaining_turns=proposed.duration,
            value=proposed.value,
        )

        # 灼烧: 立即削减物理攻击，记录实际削减量用于恢复
        if proposed.effect_type == StatusType.BURN:
            reduction = max(0, math.floor(participant.stats.physical_attack * self.settings.burn_attack_reduction))
            participant.stats.add(Attribute.PHYSICAL_ATTACK, -reduction)
            effect.side_attribute = Attribute.PHYSICAL_ATTACK
            effect.side_delta = -reduction

        participant.status_effects.append(effect)
        return True

    # ------------------------------------------------------------------
    # 增减益
    # ------------------------------------------------------------------

    def apply_buff(self, participant: Participant, proposed: ProposedModifier) -> bool:
        """施加增益"""
        return self._apply_modifier(participant, proposed.attribute, abs(proposed.value), proposed.duration)

    def apply_debuff(self, participant: Participant, proposed: ProposedModifier) -> bool:
        """施加减益，数值按负数处理"""
        return self._apply_modifier(participant, proposed.attribute, -abs(proposed.value), proposed.duration)

    def _apply_modifier(self, participant: Participant, attribute: Attribute, value: int, duration: int) -> bool:
        if value == 0 or duration <= 0:
            return False

        attribute = Attribute(attribute)
        existing = participant.find_modifier(attribute, debuff=value < 0)

        if existing is not None:
            # 达到上限后不再增长，仍视为成功
            if existing.stack_count >= self.settings.max_stack:
                return True
            existing.stack_count += 1
            existing.remaining_turns = duration
            existing.applied_total += value
            participant.stats.add(attribute, value)
            return True

        participant.modifiers.append(StatModifier(
            attribute=attribute,
            value=value,
            remaining_turns=duration,
            stack_count=1,
            applied_total=value,
        ))
        participant.stats.add(attribute, value)
        return True

    # ------------------------------------------------------------------
    # 回合结算
    # ------------------------------------------------------------------

    def tick(self, participants: Iterable[Participant]) -> List[TickEvent]:
        """回合开始结算所有状态效果和增减益

        Args:
            participants: 战斗中的全部参与者

        Returns:
            List[TickEvent]: 结算事件
        """
        participants = list(participants)
        events = self.tick_status_effects(participants)
        events.extend(self.tick_modifiers(participants))
        return events

    def tick_status_effects(self, participants: Iterable[Participant]) -> List[TickEvent]:
        events: List[TickEvent] = []

        for participant in participants:
            participant.stunned = False

            for effect in list(participant.status_effects):
                effect.remaining_turns -= 1
                name = status_name(effect.effect_type)

                if effect.is_damage_over_time:
                    dealt = participant.take_damage(effect.value)
                    events.append(TickEvent(
                        participant.participant_id, "damage", effect.effect_type, dealt,
                        f"{participant.name} took {dealt} damage from {name}"
                    ))

                if effect.is_paralyzing:
                    participant.stunned = True
                    events.append(TickEvent(
                        participant.participant_id, "paralyzed", effect.effect_type, 0,
                        f"{participant.name} is affected by {name} and cannot act"
                    ))

                if effect.remaining_turns <= 0:
                    if effect.side_attribute is not None and effect.side_delta:
                        participant.stats.add(effect.side_attribute, -effect.side_delta)
                    participant.status_effects.remove(effect)
                    events.append(TickEvent(
                        participant.participant_id, "status_expired", effect.effect_type, 0,
                        f"{name} wore off from {participant.name}"
                    ))

        return events

    def tick_modifiers(self, participants: Iterable[Participant]) -> List[TickEvent]:
        events: List[TickEvent] = []

        for participant in participants:
            for modifier in list(participant.modifiers):
                modifier.remaining_turns -= 1
                if modifier.remaining_turns > 0:
                    continue

                participant.stats.add(modifier.attribute, -modifier.applied_total)
                participant.modifiers.remove(modifier)
                kind = "debuff" if modifier.is_debuff else "buff"
                events.append(TickEvent(
                    participant.participant_id, "modifier_expired",
                    Attribute(modifier.attribute).value, -modifier.applied_total,
                    f"{attribute_name(modifier.attribute)} {kind} wore off from {participant.name}"
                ))

        return events
