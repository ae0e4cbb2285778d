"""
文档基类
所有MongoDB文档的基类，只包含基础字段
作者: mrkingu
日期: 2025-06-20
"""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseDocument(BaseModel):
    """基础文档类 - 只包含数据定义"""

    model_config = ConfigDict(validate_assignment=True)

    # 基础字段
    created_at: datetime = Field(default_factory=utc_now, description="创建时间")
    updated_at: datetime = Field(default_factory=utc_now, description="更新时间")
    version: int = Field(default=1, ge=1, description="版本号")

    def touch(self) -> None:
        """更新修改时间并递增版本"""
        self.updated_at = utc_now()
        self.version += 1

    def to_document(self) -> Dict[str, Any]:
        """转换为MongoDB文档"""
        return self.model_dump(mode="python")

    @classmethod
    def from_document(cls, document: Dict[str, Any]):
        """从MongoDB文档构建模型，忽略 _id 字段"""
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls.model_validate(data)
