"""
运动记录Schema
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from fittrack.schemas.common import coerce_counter


class ActivityType(str, Enum):
    """运动时段（存储为小写）"""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def parse(cls, value: Any) -> "ActivityType":
        """大小写不敏感解析"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValueError(f"未知的运动类型: {value!r}（可选: {allowed}）")


class Activity(BaseModel):
    """运动记录"""

    id: Any
    user_id: str
    name: str
    duration: int = Field(0, description="时长(分钟)")
    calories: int = 0
    type: str
    created_at: Optional[datetime] = None


class ActivityCreate(BaseModel):
    """新增运动"""

    name: str = Field(..., min_length=1)
    duration: int
    calories: int
    type: ActivityType

    @field_validator("duration", "calories", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> int:
        return coerce_counter(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> ActivityType:
        return ActivityType.parse(value)


class ActivityUpdate(BaseModel):
    """更新运动（只写入提供的字段）"""

    name: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = None
    calories: Optional[int] = None
    type: Optional[ActivityType] = None

    @field_validator("duration", "calories", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return coerce_counter(value)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Optional[ActivityType]:
        if value is None:
            return None
        return ActivityType.parse(value)

    def to_row(self) -> dict:
        """转换为写入存储的字段"""
        return self.model_dump(exclude_none=True, mode="json")
