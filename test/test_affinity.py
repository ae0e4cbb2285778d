"""
元素克制表测试
Elemental Affinity Tests

作者: lx
日期: 2025-06-18
描述: 测试属性倍率的判定顺序
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from common.config.enums import ElementType
from services.fight.core.affinity import advantage, is_immune, has_advantage, IMMUNITIES


class TestAffinity:
    """测试元素克制"""

    @pytest.mark.parametrize("element", [e.value for e in ElementType])
    def test_same_type_is_halved(self, element):
        """测试同属性倍率为0.5"""
        assert advantage(element, element) == 0.5

    def test_advantage_and_reverse(self):
        """测试克制与被克制"""
        assert advantage("fire", "nature") == 1.5
        assert advantage("nature", "fire") == 0.5
        assert advantage("water", "fire") == 1.5
        assert advantage("fire", "water") == 0.5

    def test_neutral(self):
        """测试无关系属性"""
        assert advantage("fire", "electric") == 1.0
        assert advantage("normal", "fire") == 1.0

    @pytest.mark.parametrize("attacker,defender", [
        ("electric", "earth"),
        ("earth", "flying"),
        ("poison", "steel"),
        ("psychic", "dark"),
    ])
    def test_immunities(self, attacker, defender):
        """测试免疫"""
        assert is_immune(attacker, defender)
        assert advantage(attacker, defender) == 0

    def test_immunity_beats_reverse_advantage(self):
        """测试免疫优先于反向克制: 土克电，但电打土仍为0"""
        assert has_advantage("earth", "electric")
        assert advantage("electric", "earth") == 0

    def test_same_type_checked_before_immunity(self):
        """测试同属性判定先于免疫"""
        for defender, attackers in IMMUNITIES.items():
            for attacker in attackers:
                assert attacker != defender
        assert advantage("dark", "dark") == 0.5

    def test_case_insensitive(self):
        """测试属性大小写不敏感"""
        assert advantage("FIRE", "Nature") == 1.5
        assert advantage(ElementType.FIRE, ElementType.NATURE) == 1.5

    def test_unknown_types(self):
        """测试未知属性"""
        assert advantage("plasma", "fire") == 1.0
        assert advantage(None, None) == 0.5
