"""
Pydantic Schemas
"""
from fittrack.schemas.user import User
from fittrack.schemas.stats import DailyStat, History
from fittrack.schemas.activity import Activity, ActivityCreate, ActivityUpdate, ActivityType
from fittrack.schemas.meal import Meal, MealCreate, MealBuckets, MealType
from fittrack.schemas.result import FailureKind, StoreFailure, StoreResult, ResetReport

__all__ = [
    "User",
    # 每日统计
    "DailyStat",
    "History",
    # 运动
    "Activity",
    "ActivityCreate",
    "ActivityUpdate",
    "ActivityType",
    # 餐食
    "Meal",
    "MealCreate",
    "MealBuckets",
    "MealType",
    # 结果
    "FailureKind",
    "StoreFailure",
    "StoreResult",
    "ResetReport",
]
