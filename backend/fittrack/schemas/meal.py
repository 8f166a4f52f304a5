"""
餐食Schema
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator

from fittrack.schemas.common import coerce_counter


class MealType(str, Enum):
    """餐次类型"""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


class Meal(BaseModel):
    """餐食记录（meal_type 保留存储中的原值）"""

    id: Any
    user_id: str
    name: str
    calories: int = 0
    meal_type: str
    created_at: Optional[datetime] = None


class MealCreate(BaseModel):
    """新增餐食"""

    name: str = Field(..., min_length=1)
    calories: int

    @field_validator("calories", mode="before")
    @classmethod
    def _coerce_calories(cls, value: Any) -> int:
        return coerce_counter(value)


class MealBuckets(BaseModel):
    """今日餐食按餐次分组；无法识别的餐次单独列出"""

    breakfast: List[Meal] = []
    lunch: List[Meal] = []
    dinner: List[Meal] = []
    unrecognized: List[Meal] = []

    @property
    def total_calories(self) -> int:
        """三个餐次的总热量（不含unrecognized）"""
        return sum(m.calories for m in self.breakfast + self.lunch + self.dinner)
