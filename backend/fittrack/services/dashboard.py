"""
仪表盘服务 - 把数据访问层的结果整理成页面需要的视图
"""
import logging
import math
from datetime import date
from typing import List, Optional, Sequence

from fittrack.config import settings
from fittrack.schemas.dashboard import (
    DashboardSummary,
    GoalProgress,
    InsightsSummary,
    MealSummary,
    TrendSeries,
)
from fittrack.schemas.result import StoreResult
from fittrack.services.data_manager import DataManager
from fittrack.utils.datetime_helper import weekday_label

logger = logging.getLogger(__name__)

# 图表纵轴的最小上限
STEPS_SCALE_FLOOR = 10000
CALORIES_SCALE_FLOOR = 2000
SCALE_PADDING = 1.2


def goal_progress(value: int, goal: int) -> GoalProgress:
    """完成百分比（封顶100）"""
    percent = min(100, round(value / goal * 100)) if goal > 0 else 0
    return GoalProgress(value=value, goal=goal, percent=max(0, percent))


def chart_max(values: Sequence[int], floor: int) -> int:
    """纵轴上限：max(数据, floor) 再留20%余量"""
    return math.ceil(max(list(values) + [floor]) * SCALE_PADDING)


def history_labels(dates: List[str]) -> List[str]:
    return [weekday_label(date.fromisoformat(d)) for d in dates]


async def build_dashboard(
    manager: DataManager, recent_count: Optional[int] = None
) -> StoreResult[DashboardSummary]:
    """
    首页数据：今日统计、三个目标的完成度、最近运动、一周步数趋势

    Args:
        manager: 数据访问服务
        recent_count: 最近运动条数（默认settings.RECENT_ACTIVITIES_COUNT）
    """
    stats = await manager.get_today_stats()
    if not stats.success:
        return stats

    activities = await manager.get_activities()
    if not activities.success:
        return activities

    history = await manager.get_history()
    if not history.success:
        return history

    count = settings.RECENT_ACTIVITIES_COUNT if recent_count is None else recent_count
    today = stats.data
    summary = DashboardSummary(
        stats=today,
        steps=goal_progress(today.steps, settings.GOAL_STEPS),
        calories=goal_progress(today.calories_burned, settings.GOAL_CALORIES),
        water=goal_progress(today.water_intake, settings.GOAL_WATER),
        recent_activities=activities.data[:count],
        weekly_steps=TrendSeries(
            labels=history_labels(history.data.dates),
            values=history.data.steps,
        ),
    )
    return StoreResult.ok(summary)


async def build_meal_summary(manager: DataManager) -> StoreResult[MealSummary]:
    """今日餐食和总热量"""
    meals = await manager.get_meals()
    if not meals.success:
        return meals
    if meals.data.unrecognized:
        logger.info(f"{len(meals.data.unrecognized)} 条餐食的餐次无法识别，未计入总热量")
    return StoreResult.ok(
        MealSummary(meals=meals.data, total_calories=meals.data.total_calories)
    )


async def build_insights(manager: DataManager) -> StoreResult[InsightsSummary]:
    """趋势页：7天步数/卡路里及图表纵轴上限"""
    history = await manager.get_history()
    if not history.success:
        return history
    data = history.data
    return StoreResult.ok(
        InsightsSummary(
            labels=history_labels(data.dates),
            steps=data.steps,
            calories=data.calories,
            steps_max=chart_max(data.steps, STEPS_SCALE_FLOOR),
            calories_max=chart_max(data.calories, CALORIES_SCALE_FLOOR),
        )
    )
