"""
日志格式化器
Logger Formatters

作者: lx
日期: 2025-06-18
描述: 提供JSON和简单文本格式的日志格式化器，战斗事件字段单独输出
"""

import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional


# LogRecord 自带属性，不作为额外字段输出
RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
    "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "getMessage", "exc_info",
    "exc_text", "stack_info", "taskName", "asctime", "message"
})


def collect_extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """提取通过 extra= 传入的字段"""
    return {
        key: value for key, value in record.__dict__.items()
        if key not in RESERVED_ATTRS
    }


class JSONFormatter(logging.Formatter):
    """JSON格式日志格式化器"""

    def __init__(
        self,
        fields: Optional[Dict[str, str]] = None,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S.%f",
        ensure_ascii: bool = False
    ):
        """
        初始化JSON格式化器

        Args:
            fields: 提升到顶层的字段映射 (输出名 -> record属性名)
            timestamp_format: 时间戳格式
            ensure_ascii: 是否确保ASCII编码
        """
        super().__init__()
        self.fields = fields or {"battle_id": "battle_id", "user_id": "user_id"}
        self.timestamp_format = timestamp_format
        self.ensure_ascii = ensure_ascii

    def format(self, record: logging.LogRecord) -> str:
        """
        格式化日志记录为JSON格式

        Args:
            record: 日志记录对象

        Returns:
            JSON格式的日志字符串
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).strftime(self.timestamp_format),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = collect_extra_fields(record)

        # 常用字段放在顶层，便于检索
        for field_name, attr_name in self.fields.items():
            if attr_name in extra_fields:
                log_data[field_name] = extra_fields.pop(attr_name)

        if extra_fields:
            log_data["extra_fields"] = extra_fields

        return json.dumps(log_data, ensure_ascii=self.ensure_ascii, default=str)


class SimpleFormatter(logging.Formatter):
    """简单文本格式化器"""

    def __init__(
        self,
        format_string: Optional[str] = None,
        date_format: Optional[str] = None,
        include_extra: bool = True
    ):
        """
        初始化简单格式化器

        Args:
            format_string: 自定义格式字符串
            date_format: 日期格式
            include_extra: 是否包含额外字段
        """
        if format_string is None:
            format_string = "[{asctime}] {levelname:8} [{name}] {message}"

        super().__init__(format_string, date_format, style="{")
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.include_extra:
            extra_parts = [
                f"{key}={value}" for key, value in collect_extra_fields(record).items()
            ]
            if extra_parts:
                formatted += " | " + " ".join(extra_parts)

        return formatted
