"""
战斗状态
Battle State

作者: lx
日期: 2025-06-18
描述: 一场战斗的持久状态快照，拥有全部参与者；回合处理在快照上修改后整体提交
"""
from typing import Dict, List, Optional, Any
from datetime import datetime, timezone
from enum import Enum

from .battle_unit import Participant, Team, TEAM_ORDER


class BattlePhase(str, Enum):
    """战斗阶段"""
    ACTIVE = "active"       # 进行中
    FINISHED = "finished"   # 已结束


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BattleState:
    """战斗状态"""

    def __init__(
        self,
        battle_id: str,
        participants: Optional[List[Participant]] = None,
        current_turn: int = 0,
        is_finished: bool = False,
        winner_id: Optional[str] = None,
        winning_team: Optional[str] = None,
        started_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None
    ):
        self.battle_id = battle_id
        self.participants: List[Participant] = participants or []
        self.current_turn = current_turn
        self.is_finished = is_finished
        self.winner_id = winner_id
        self.winning_team = winning_team
        self.started_at = started_at or _utc_now()
        self.ended_at = ended_at
        self.metadata: Dict[str, Any] = metadata or {}

    @property
    def phase(self) -> BattlePhase:
        return BattlePhase.FINISHED if self.is_finished else BattlePhase.ACTIVE

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.participant_id == participant_id:
                return participant
        return None

    def resolve_participant_id(self, some_id: Optional[str]) -> Optional[str]:
        """把参与者ID、用户ID或敌人模板ID解析为参与者ID"""
        if some_id is None:
            return None
        if self.get_participant(some_id) is not None:
            return some_id
        for participant in self.participants:
            if participant.owner_id == some_id:
                return participant.participant_id
        return None

    def team_members(self, team: str) -> List[Participant]:
        """阵营成员，按位置排序"""
        members = [p for p in self.participants if p.team == Team(team).value]
        return sorted(members, key=lambda p: p.position)

    def living_members(self, team: str) -> List[Participant]:
        return [p for p in self.team_members(team) if p.is_alive()]

    def is_team_defeated(self, team: str) -> bool:
        """阵营全灭 (空阵营视为全灭)"""
        return not self.living_members(team)

    def team_health(self, team: str) -> int:
        return sum(p.health for p in self.team_members(team))

    def defeated_team(self) -> Optional[str]:
        """返回已全灭的阵营，玩家方优先判定"""
        for team in (Team.PLAYER, Team.ENEMY):
            if self.is_team_defeated(team):
                return team.value
        return None

    def player_user_ids(self) -> List[str]:
        return [p.owner_id for p in self.team_members(Team.PLAYER) if p.is_player]

    def participant_for_user(self, user_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.is_player and participant.owner_id == user_id:
                return participant
        return None

    def speed_order(self) -> List[Participant]:
        """行动顺序: 速度降序，同速玩家方优先，再按位置"""
        return sorted(
            self.participants,
            key=lambda p: (-p.stats.speed, TEAM_ORDER[p.team], p.position)
        )

    def finish(self, winning_team: str) -> None:
        """结束战斗并记录胜方代表"""
        living = self.living_members(winning_team)
        members = living or self.team_members(winning_team)
        self.is_finished = True
        self.winning_team = Team(winning_team).value
        self.winner_id = members[0].participant_id if members else None
        self.ended_at = _utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "battle_id": self.battle_id,
            "current_turn": self.current_turn,
            "is_finished": self.is_finished,
            "phase": self.phase.value,
            "winner_id": self.winner_id,
            "winning_team": self.winning_team,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "metadata": dict(self.metadata),
            "participants": [p.to_dict() for p in self.participants],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BattleState':
        """从字典还原"""
        return cls(
            battle_id=data["battle_id"],
            participants=[Participant.from_dict(p) for p in data.get("participants", [])],
            current_turn=data.get("current_turn", 0),
            is_finished=data.get("is_finished", False),
            winner_id=data.get("winner_id"),
            winning_team=data.get("winning_team"),
            started_at=data.get("started_at"),
            ended_at=data.get("ended_at"),
            metadata=data.get("metadata") or {},
        )
