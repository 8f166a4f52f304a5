"""
每日统计相关Schema
"""
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class DailyStat(BaseModel):
    """每日统计（每个用户每天最多一条）"""

    id: Optional[Any] = None
    user_id: str
    date: str = Field(..., description="YYYY-MM-DD（本地日期）")
    steps: int = Field(0, ge=0)
    calories_burned: int = Field(0, ge=0)
    water_intake: int = Field(0, ge=0, description="饮水量(ml)")


class History(BaseModel):
    """最近N天的步数/卡路里（从旧到新，缺失日期补0）"""

    dates: List[str] = []
    steps: List[int] = []
    calories: List[int] = []
