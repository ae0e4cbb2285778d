"""
配置加载器模块
Configuration Loader Module

作者: lx
日期: 2025-06-18
描述: 启动时加载技能、敌人模板和战斗参数，配置缓存在内存，记录文件版本
"""

import json
import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .base_config import (
    SkillConfig, EnemyConfig, BattleSettings, ConfigManager, get_config_manager
)

# 设置日志
logger = logging.getLogger(__name__)

SKILL_FILE = "skills.json"
ENEMY_FILE = "enemies.json"
SETTINGS_FILE = "battle_settings.json"


@dataclass
class ConfigVersion:
    """配置版本信息"""
    version: str
    timestamp: datetime
    file_hash: str
    file_path: str


def _iter_entries(data: Union[Dict[str, Any], List[Any]], id_field: str) -> List[Dict[str, Any]]:
    """兼容 {id: {...}} 与 [{...}] 两种文件格式"""
    if isinstance(data, list):
        return list(data)
    entries = []
    for entry_id, entry in data.items():
        entries.append({id_field: str(entry_id), **entry})
    return entries


class ConfigLoader:
    """配置加载器"""

    def __init__(self, config_dir: str = "json", config_manager: Optional[ConfigManager] = None):
        """初始化配置加载器

        Args:
            config_dir: 配置文件目录
            config_manager: 配置管理器，默认使用全局实例
        """
        self.config_dir = Path(config_dir)
        self.config_manager = config_manager or get_config_manager()

        # 配置版本管理
        self.config_versions: Dict[str, ConfigVersion] = {}

        self._is_loaded = False
        self._loading_lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    async def load_all_configs(self) -> bool:
        """加载所有配置文件

        Returns:
            是否至少加载了一个配置文件
        """
        async with self._loading_lock:
            logger.info(f"开始加载配置文件: {self.config_dir}")

            if not self.config_dir.exists():
                logger.warning(f"配置目录不存在: {self.config_dir}")
                return False

            self.config_manager.clear_all()
            self.config_versions.clear()

            loaded = 0
            for file_name in (SETTINGS_FILE, SKILL_FILE, ENEMY_FILE):
                config_file = self.config_dir / file_name
                if not config_file.exists():
                    continue
                data = self._read_json(config_file)
                self.load_from_data(file_name, data)
                self._record_config_version(config_file)
                loaded += 1

            # 验证配置完整性
            validation_errors = self.config_manager.validate_all_configs()
            if any(validation_errors.values()):
                logger.warning(f"配置验证发现问题: {validation_errors}")

            self._is_loaded = loaded > 0
            logger.info(f"配置加载完成: {loaded} 个文件, 统计: {self.config_manager.get_config_count()}")
            return self._is_loaded

    def load_from_data(self, file_name: str, data: Any) -> int:
        """从已解析的数据加载配置

        Args:
            file_name: 配置文件名，决定配置类型
            data: JSON数据

        Returns:
            加载成功的条目数量
        """
        if file_name == SETTINGS_FILE:
            self.config_manager.settings = BattleSettings.model_validate(data)
            return 1

        if file_name == SKILL_FILE:
            model, id_field, register = SkillConfig, "skill_id", self.config_manager.register_skill
        elif file_name == ENEMY_FILE:
            model, id_field, register = EnemyConfig, "enemy_id", self.config_manager.register_enemy
        else:
            raise ValueError(f"Unknown config file: {file_name}")

        success_count = 0
        for entry in _iter_entries(data, id_field):
            try:
                register(model.model_validate(entry))
                success_count += 1
            except PydanticValidationError as e:
                logger.error(f"加载配置条目失败 {file_name} {entry.get(id_field)}: {e}")

        logger.info(f"加载 {file_name}: {success_count} 个")
        return success_count

    def _read_json(self, config_file: Path) -> Any:
        with open(config_file, "r", encoding="utf-8") as f:
            return json.load(f)

    def _record_config_version(self, config_file: Path) -> None:
        """记录配置版本信息"""
        with open(config_file, "rb") as f:
            file_hash = hashlib.md5(f.read()).hexdigest()

        config_type = config_file.stem
        self.config_versions[config_type] = ConfigVersion(
            version=f"{config_type}_{datetime.now().strftime('%Y%m%d_%H%M%S')}",
            timestamp=datetime.now(),
            file_hash=file_hash,
            file_path=str(config_file)
        )

    def get_version_info(self) -> Dict[str, Dict[str, str]]:
        """获取配置版本信息"""
        return {
            config_type: {
                "version": version.version,
                "file_hash": version.file_hash,
                "timestamp": version.timestamp.isoformat(),
            }
            for config_type, version in self.config_versions.items()
        }
