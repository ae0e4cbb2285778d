"""
日志模块
Logger Module

作者: lx
日期: 2025-06-18
描述: 统一日志管理和输出格式化，基于标准库 logging
"""

import logging
import logging.handlers
import os
from typing import Dict, Any, Optional

from .config import get_config, get_log_dir
from .formatters import JSONFormatter, SimpleFormatter

_initialized = False


def _build_formatter(options: Dict[str, Any]) -> logging.Formatter:
    """根据配置构建格式化器"""
    if options.get("type") == "json":
        return JSONFormatter(
            timestamp_format=options.get("timestamp_format", "%Y-%m-%d %H:%M:%S.%f"),
            ensure_ascii=options.get("ensure_ascii", False)
        )
    return SimpleFormatter(
        format_string=options.get("format"),
        include_extra=options.get("include_extra", True)
    )


def _build_handler(options: Dict[str, Any], log_dir) -> logging.Handler:
    """根据配置构建处理器"""
    handler_type = options.get("type", "console")

    if handler_type == "rotating_file":
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_dir / options["filename"],
            maxBytes=options.get("max_bytes", 10 * 1024 * 1024),
            backupCount=options.get("backup_count", 5),
            encoding="utf-8"
        )
    elif handler_type == "file":
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / options["filename"], encoding="utf-8")
    elif handler_type == "console":
        handler = logging.StreamHandler()
    else:
        raise ValueError(f"Unknown handler type: {handler_type}")

    handler.setLevel(options.get("level", "INFO"))
    handler.setFormatter(_build_formatter(options.get("formatter", {})))
    return handler


def setup_logging(
    environment: str = "production",
    log_dir: Optional[str] = None,
    level: Optional[str] = None
) -> None:
    """
    初始化日志系统

    Args:
        environment: 环境名称 ("production", "development")
        log_dir: 日志文件目录
        level: 覆盖所有日志器的级别
    """
    global _initialized
    if _initialized:
        return

    level = level or os.getenv("LOG_LEVEL")
    directory = get_log_dir(log_dir)

    for logger_name, logger_config in get_config(environment).items():
        logger = logging.getLogger(logger_name)
        logger.setLevel((level or logger_config["level"]).upper())
        for handler_spec in logger_config["handlers"]:
            logger.addHandler(_build_handler(handler_spec, directory))
        # 避免与 root 重复输出
        logger.propagate = False

    _initialized = True


def shutdown_logging() -> None:
    """关闭并移除已安装的处理器"""
    global _initialized
    if not _initialized:
        return

    for logger_name in ("battle", "services", "common"):
        logger = logging.getLogger(logger_name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True

    _initialized = False


def get_battle_logger() -> logging.Logger:
    """获取战斗事件日志器"""
    return logging.getLogger("battle")


def log_battle_event(event: str, battle_id: str, **extra_data: Any) -> None:
    """
    记录战斗事件日志

    Args:
        event: 事件描述
        battle_id: 战斗ID
        **extra_data: 额外数据
    """
    get_battle_logger().info(event, extra={"battle_id": battle_id, **extra_data})


__all__ = [
    "JSONFormatter",
    "SimpleFormatter",
    "setup_logging",
    "shutdown_logging",
    "get_battle_logger",
    "log_battle_event",
]
