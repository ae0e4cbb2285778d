"""
测试配置文件
Test Configuration File

作者: lx
日期: 2025-06-18
描述: pytest fixtures、可控随机源、内存存储、Mock MongoDB/Redis
"""
import sys
import copy
import random
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterable

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import pytest_asyncio
from pymongo.errors import DuplicateKeyError

from common.config import ConfigManager, SkillConfig, EnemyConfig, BattleSettings
from common.database.models import UserModel, UserAttributes
from services.fight.core.battle_state import BattleState
from services.fight.core.battle_unit import Participant, PlayerOwner, EnemyOwner, CombatStats, Team
from services.fight.repositories import InMemoryBattleStore


class ScriptedRandom(random.Random):
    """按脚本返回 random() 的随机源，脚本用完后返回 default"""

    def __init__(self, values: Optional[Iterable[float]] = None, default: float = 0.5):
        super().__init__(0)
        self.values: List[float] = list(values or [])
        self.default = default
        self.draws = 0

    def push(self, *values: float) -> None:
        self.values.extend(values)

    def random(self) -> float:
        self.draws += 1
        if self.values:
            return self.values.pop(0)
        return self.default


# ----------------------------------------------------------------------
# Mock MongoDB
# ----------------------------------------------------------------------

class MockUpdateResult:
    def __init__(self, matched_count: int, upserted_id: Any = None):
        self.matched_count = matched_count
        self.modified_count = matched_count
        self.upserted_id = upserted_id


class MockCursor:
    """模拟Motor游标，支持 sort 和 async for"""

    def __init__(self, documents: List[Dict[str, Any]]):
        self.documents = documents

    def sort(self, key: str, direction: int = 1) -> 'MockCursor':
        self.documents.sort(key=lambda d: _resolve(d, key)[0] if _resolve(d, key) else None,
                            reverse=direction < 0)
        return self

    def __aiter__(self):
        self._iter = iter(self.documents)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def _resolve(document: Any, path: str) -> List[Any]:
    """按点号路径取值，遇到列表时展开"""
    values = [document]
    for part in path.split("."):
        next_values = []
        for value in values:
            if isinstance(value, list):
                next_values.extend(v.get(part) for v in value if isinstance(v, dict) and part in v)
            elif isinstance(value, dict) and part in value:
                next_values.append(value[part])
        values = next_values
    flattened = []
    for value in values:
        flattened.extend(value if isinstance(value, list) else [value])
    return flattened


def _matches(document: Dict[str, Any], filter_dict: Dict[str, Any]) -> bool:
    for key, expected in filter_dict.items():
        values = _resolve(document, key)
        if isinstance(expected, dict) and "$ne" in expected:
            if expected["$ne"] in values:
                return False
        elif expected not in values:
            return False
    return True


class MockMongoCollection:
    """模拟Motor集合"""

    def __init__(self):
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.unique_indexes: List[List[str]] = []
        self.indexes: List[Any] = []
        self._next_id = 1

    async def create_index(self, keys, unique: bool = False, **kwargs):
        self.indexes.append(keys)
        if unique:
            self.unique_indexes.append([k for k, _ in keys])
        return "_".join(k for k, _ in keys)

    def _check_unique(self, document: Dict[str, Any], ignore_id: Any = None) -> None:
        for fields in self.unique_indexes:
            for doc_id, existing in self.documents.items():
                if doc_id != ignore_id and all(existing.get(f) == document.get(f) for f in fields):
                    raise DuplicateKeyError(f"duplicate key: {fields}")

    async def insert_one(self, document: Dict[str, Any]):
        document = copy.deepcopy(document)
        if "_id" not in document:
            document["_id"] = self._next_id
            self._next_id += 1
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"duplicate _id: {document['_id']}")
        self._check_unique(document)
        self.documents[document["_id"]] = document
        return document["_id"]

    async def find_one(self, filter_dict: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        for document in self.documents.values():
            if _matches(document, filter_dict):
                return copy.deepcopy(document)
        return None

    def find(self, filter_dict: Optional[Dict[str, Any]] = None) -> MockCursor:
        return MockCursor([
            copy.deepcopy(d) for d in self.documents.values() if _matches(d, filter_dict or {})
        ])

    async def replace_one(self, filter_dict: Dict[str, Any], replacement: Dict[str, Any], upsert: bool = False):
        for doc_id, document in self.documents.items():
            if _matches(document, filter_dict):
                new_document = copy.deepcopy(replacement)
                new_document["_id"] = doc_id
                self.documents[doc_id] = new_document
                return MockUpdateResult(1)
        if upsert:
            await self.insert_one(replacement)
            return MockUpdateResult(0, replacement.get("_id"))
        return MockUpdateResult(0)

    async def update_one(self, filter_dict: Dict[str, Any], update: Dict[str, Any]):
        for document in self.documents.values():
            if not _matches(document, filter_dict):
                continue
            for key, value in update.get("$set", {}).items():
                document[key] = value
            for key, value in update.get("$inc", {}).items():
                document[key] = document.get(key, 0) + value
            for key, value in update.get("$push", {}).items():
                document.setdefault(key, []).append(value)
            return MockUpdateResult(1)
        return MockUpdateResult(0)


class MockMongoDatabase:
    """模拟Motor数据库，按集合名取集合"""

    def __init__(self):
        self.collections: Dict[str, MockMongoCollection] = {}

    def __getitem__(self, name: str) -> MockMongoCollection:
        return self.collections.setdefault(name, MockMongoCollection())


# ----------------------------------------------------------------------
# Mock Redis
# ----------------------------------------------------------------------

class MockRedisClient:
    """模拟 redis.asyncio 客户端，只实现分布式锁用到的命令"""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.ttl: Dict[str, int] = {}

    async def set(self, key: str, value: Any, px: Optional[int] = None, nx: bool = False) -> Optional[bool]:
        if nx and key in self.data:
            return None
        self.data[key] = value
        if px is not None:
            self.ttl[key] = px
        return True

    async def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    async def pttl(self, key: str) -> int:
        if key not in self.data:
            return -2
        return self.ttl.get(key, -1)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttl.pop(key, None)
        return removed

    async def eval(self, script: str, numkeys: int, *args: Any) -> int:
        # 只支持释放锁脚本: 值相等时删除
        key, value = args[0], args[1]
        if self.data.get(key) == value:
            return await self.delete(key)
        return 0


# ----------------------------------------------------------------------
# 测试数据
# ----------------------------------------------------------------------

def build_config_manager() -> ConfigManager:
    manager = ConfigManager()
    skills = [
        SkillConfig(skill_id="fire_blast", name="Fire Blast", elemental_type="fire",
                    attack_type="special", base_damage=50),
        SkillConfig(skill_id="tackle", name="Tackle", elemental_type="normal",
                    attack_type="physical", base_damage=30),
        SkillConfig(skill_id="war_cry", name="War Cry", elemental_type="normal",
                    attack_type="physical", base_damage=10,
                    buff_type="physical_attack", buff_value=3,
                    debuff_type="physical_defense", debuff_value=2),
        SkillConfig(skill_id="stun_bolt", name="Stun Bolt", elemental_type="electric",
                    attack_type="special", base_damage=20,
                    status_effect="stun", status_effect_chance=100, status_effect_duration=1),
        SkillConfig(skill_id="ember", name="Ember", elemental_type="fire",
                    attack_type="special", base_damage=40,
                    status_effect="burn", status_effect_chance=100, status_effect_duration=3),
        SkillConfig(skill_id="water_jet", name="Water Jet", elemental_type="water",
                    attack_type="special", base_damage=45, accuracy=95),
    ]
    for skill in skills:
        manager.register_skill(skill)

    enemies = [
        EnemyConfig(enemy_id="slime", name="Slime", elemental_type="water", rarity="common",
                    health=60, physical_attack=8, special_attack=10, physical_defense=8,
                    special_defense=8, speed=6, skill_ids=["water_jet", "tackle"]),
        EnemyConfig(enemy_id="imp", name="Imp", elemental_type="fire", rarity="common",
                    health=50, physical_attack=10, special_attack=12, physical_defense=7,
                    special_defense=8, speed=12, skill_ids=["ember", "tackle"]),
        EnemyConfig(enemy_id="hawk", name="Hawk", elemental_type="electric", rarity="uncommon",
                    health=70, skill_ids=["stun_bolt"]),
        EnemyConfig(enemy_id="golem", name="Golem", elemental_type="earth", rarity="rare",
                    health=140, physical_attack=20, special_attack=20, physical_defense=20,
                    special_defense=20, speed=20, skill_ids=["tackle"]),
        EnemyConfig(enemy_id="shadow_lord", name="Shadow Lord", elemental_type="dark", rarity="epic",
                    is_boss=True, health=300, skill_ids=["tackle"]),
    ]
    for enemy in enemies:
        manager.register_enemy(enemy)

    return manager


def make_player(
    participant_id: str = "p1",
    user_id: str = "user_1",
    health: int = 100,
    speed: int = 10,
    elemental_type: str = "fire",
    position: int = 1,
    **stats: int
) -> Participant:
    return Participant(
        participant_id=participant_id,
        name=f"Player {user_id}",
        owner=PlayerOwner(user_id=user_id),
        team=Team.PLAYER,
        position=position,
        elemental_type=elemental_type,
        health=health,
        stats=CombatStats(speed=speed, **stats),
    )


def make_enemy(
    participant_id: str = "e1",
    template_id: str = "slime",
    health: int = 60,
    speed: int = 5,
    elemental_type: str = "water",
    position: int = 1,
    max_health: Optional[int] = None,
    **stats: int
) -> Participant:
    return Participant(
        participant_id=participant_id,
        name=f"Enemy {participant_id}",
        owner=EnemyOwner(template_id=template_id),
        team=Team.ENEMY,
        position=position,
        elemental_type=elemental_type,
        health=health,
        max_health=max_health,
        stats=CombatStats(speed=speed, **stats),
    )


# ----------------------------------------------------------------------
# Pytest fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def settings() -> BattleSettings:
    return BattleSettings()


@pytest.fixture
def config_manager() -> ConfigManager:
    return build_config_manager()


@pytest.fixture
def scripted_random() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def test_user() -> UserModel:
    return UserModel(
        user_id="user_1",
        username="tester",
        primary_elemental_type="fire",
        attributes=UserAttributes(health=100, physical_attack=20, special_attack=20, speed=15),
        equipped_skill_ids=["fire_blast", "tackle", "war_cry"],
    )


@pytest.fixture
def memory_store(config_manager, test_user) -> InMemoryBattleStore:
    store = InMemoryBattleStore(config_manager)
    store.add_user(test_user)
    return store


@pytest.fixture
def mock_mongo() -> MockMongoDatabase:
    return MockMongoDatabase()


@pytest.fixture
def mock_redis() -> MockRedisClient:
    return MockRedisClient()


@pytest.fixture
def make_battle():
    """构建战斗状态的工厂"""
    def _make(participants: List[Participant], battle_id: str = "battle_1", **kwargs) -> BattleState:
        return BattleState(battle_id=battle_id, participants=participants, **kwargs)
    return _make


pytest_plugins = []

# 配置asyncio测试
pytest_asyncio.default_fixture_loop_scope = 'function'
