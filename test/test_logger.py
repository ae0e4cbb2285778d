"""
日志系统测试
Logger System Tests

作者: lx
日期: 2025-06-18
描述: 测试格式化器、日志初始化和战斗事件日志
"""
import sys
import json
import logging
import tempfile
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from common.logger import (
    JSONFormatter, SimpleFormatter, setup_logging, shutdown_logging,
    get_battle_logger, log_battle_event
)
from common.logger.config import get_config, get_log_dir, LOG_CONFIG, DEVELOPMENT_CONFIG


def _record(msg="测试消息", **extra):
    record = logging.LogRecord(
        name="test_logger",
        level=logging.INFO,
        pathname="/test/path.py",
        lineno=123,
        msg=msg,
        args=(),
        exc_info=None
    )
    record.created = 1234567890.123
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def clean_logging():
    shutdown_logging()
    yield
    shutdown_logging()


class TestFormatters:
    """测试格式化器"""

    def test_json_formatter(self):
        """测试JSON格式化器"""
        result = JSONFormatter().format(_record(battle_id="b1", turn_number=3))
        data = json.loads(result)

        assert data["level"] == "INFO"
        assert data["logger"] == "test_logger"
        assert data["message"] == "测试消息"
        assert data["line"] == 123
        assert data["battle_id"] == "b1"
        assert data["extra_fields"] == {"turn_number": 3}

    def test_json_formatter_exception(self):
        """测试异常信息输出"""
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]

    def test_simple_formatter(self):
        """测试简单格式化器附带额外字段"""
        result = SimpleFormatter().format(_record(battle_id="b1"))

        assert "[test_logger]" in result
        assert "测试消息" in result
        assert result.endswith("| battle_id=b1")

    def test_simple_formatter_without_extra(self):
        """测试关闭额外字段"""
        result = SimpleFormatter(include_extra=False).format(_record(battle_id="b1"))
        assert "battle_id" not in result


class TestLoggingSetup:
    """测试日志初始化"""

    def test_config_by_environment(self):
        """测试按环境选择配置"""
        assert get_config("development") is DEVELOPMENT_CONFIG
        assert get_config("production") is LOG_CONFIG
        assert get_config("staging") is LOG_CONFIG

    def test_log_dir(self, monkeypatch):
        """测试日志目录优先级"""
        monkeypatch.setenv("LOG_DIR", "/tmp/from_env")
        assert get_log_dir("/tmp/explicit") == Path("/tmp/explicit")
        assert get_log_dir() == Path("/tmp/from_env")

    def test_battle_events_written_as_json(self, clean_logging):
        """测试战斗事件以JSON写入文件"""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging("production", temp_dir)

            log_battle_event("turn resolved", "battle_1", turn_number=2, finished=False)
            shutdown_logging()

            lines = (Path(temp_dir) / "battle.log").read_text(encoding="utf-8").splitlines()
            data = json.loads(lines[-1])
            assert data["message"] == "turn resolved"
            assert data["battle_id"] == "battle_1"
            assert data["extra_fields"] == {"turn_number": 2, "finished": False}

    def test_setup_is_idempotent(self, clean_logging):
        """测试重复初始化不会重复添加处理器"""
        setup_logging("development")
        count = len(get_battle_logger().handlers)
        setup_logging("development")

        assert len(get_battle_logger().handlers) == count
        assert not get_battle_logger().propagate

    def test_level_override(self, clean_logging):
        """测试覆盖日志级别"""
        setup_logging("development", level="warning")
        assert logging.getLogger("services").level == logging.WARNING
