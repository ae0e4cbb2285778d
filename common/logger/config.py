"""
日志配置
Logger Configuration

作者: lx
日期: 2025-06-18
描述: 日志系统配置管理，按环境区分输出目标
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional


# 默认日志目录，首次写文件时才创建
DEFAULT_LOG_DIR = Path("logs")


# 日志配置
LOG_CONFIG: Dict[str, Dict[str, Any]] = {
    "battle": {
        "level": "INFO",
        "handlers": [
            {
                "type": "rotating_file",
                "filename": "battle.log",
                "max_bytes": 100 * 1024 * 1024,  # 100MB
                "backup_count": 10,
                "level": "INFO",
                "formatter": {"type": "json"}
            },
            {
                "type": "console",
                "level": "WARNING",
                "formatter": {
                    "type": "simple",
                    "format": "[{asctime}] {levelname:8} [BATTLE] {message}"
                }
            }
        ]
    },

    "services": {
        "level": "INFO",
        "handlers": [
            {
                "type": "rotating_file",
                "filename": "fight.log",
                "max_bytes": 50 * 1024 * 1024,  # 50MB
                "backup_count": 5,
                "level": "INFO",
                "formatter": {"type": "json"}
            },
            {
                "type": "console",
                "level": "INFO",
                "formatter": {"type": "simple"}
            }
        ]
    },

    "common": {
        "level": "WARNING",
        "handlers": [
            {
                "type": "console",
                "level": "WARNING",
                "formatter": {"type": "simple"}
            }
        ]
    }
}


# 开发环境配置: 只输出到控制台
DEVELOPMENT_CONFIG: Dict[str, Dict[str, Any]] = {
    "battle": {
        "level": "DEBUG",
        "handlers": [
            {
                "type": "console",
                "level": "DEBUG",
                "formatter": {
                    "type": "simple",
                    "format": "[{asctime}] {levelname:8} [BATTLE] {message}"
                }
            }
        ]
    },

    "services": {
        "level": "DEBUG",
        "handlers": [
            {
                "type": "console",
                "level": "DEBUG",
                "formatter": {"type": "simple"}
            }
        ]
    },

    "common": {
        "level": "INFO",
        "handlers": [
            {
                "type": "console",
                "level": "INFO",
                "formatter": {"type": "simple"}
            }
        ]
    }
}


def get_config(environment: str = "production") -> Dict[str, Dict[str, Any]]:
    """
    获取指定环境的日志配置

    Args:
        environment: 环境名称 ("production", "development")

    Returns:
        日志配置字典
    """
    if environment.lower() == "development":
        return DEVELOPMENT_CONFIG
    return LOG_CONFIG


def get_log_dir(log_dir: Optional[str] = None) -> Path:
    """获取日志目录，优先使用参数，其次环境变量 LOG_DIR"""
    if log_dir:
        return Path(log_dir)
    env_dir = os.getenv("LOG_DIR")
    if env_dir:
        return Path(env_dir)
    return DEFAULT_LOG_DIR
