"""
仪表盘视图Schema
"""
from typing import List
from pydantic import BaseModel, Field

from fittrack.schemas.activity import Activity
from fittrack.schemas.meal import MealBuckets
from fittrack.schemas.stats import DailyStat


class GoalProgress(BaseModel):
    """目标完成度"""
    value: int
    goal: int
    percent: int = Field(..., ge=0, le=100)


class TrendSeries(BaseModel):
    """趋势图数据"""
    labels: List[str]
    values: List[int]


class DashboardSummary(BaseModel):
    """首页数据"""
    stats: DailyStat
    steps: GoalProgress
    calories: GoalProgress
    water: GoalProgress
    recent_activities: List[Activity] = []
    weekly_steps: TrendSeries


class MealSummary(BaseModel):
    """今日餐食与总热量"""
    meals: MealBuckets
    total_calories: int


class InsightsSummary(BaseModel):
    """趋势页数据（含图表纵轴上限）"""
    labels: List[str]
    steps: List[int]
    calories: List[int]
    steps_max: int
    calories_max: int
