"""
数据访问层 - 展示层与远程存储之间的唯一中介

负责：按用户隔离所有查询、按本地日期分桶、首次读取时创建默认的每日统计、
汇总最近7天历史。所有操作返回 StoreResult，不向展示层抛出存储异常。
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import pytz
from pydantic import ValidationError

from fittrack.config import settings
from fittrack.integrations.base.store import (
    UNIQUE_VIOLATION_CODE,
    AuthProvider,
    NotFoundError,
    Order,
    RemoteStore,
    StoreError,
    eq,
    gte,
)
from fittrack.integrations.supabase.constants import (
    ACTIVITIES_TABLE,
    DAILY_STATS_TABLE,
    MEALS_TABLE,
)
from fittrack.schemas.activity import Activity, ActivityCreate, ActivityUpdate
from fittrack.schemas.common import INT_MAX, coerce_counter, coerce_int
from fittrack.schemas.meal import Meal, MealBuckets, MealCreate, MealType
from fittrack.schemas.result import FailureKind, ResetReport, StoreResult
from fittrack.schemas.stats import DailyStat, History
from fittrack.schemas.user import User
from fittrack.utils.datetime_helper import (
    get_local_date,
    get_local_tz,
    start_of_local_day,
    to_local_date,
    trailing_dates,
)

logger = logging.getLogger(__name__)

ResetHook = Callable[[], Union[None, Awaitable[None]]]

# 按删除顺序排列
RESET_TABLES = [ACTIVITIES_TABLE, MEALS_TABLE, DAILY_STATS_TABLE]


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'value'}: {e['msg']}" for e in error.errors()
    )


class DataManager:
    """数据访问服务（由组合根显式创建并注入存储与认证客户端）"""

    def __init__(
        self,
        store: RemoteStore,
        auth: AuthProvider,
        tz: Optional[pytz.BaseTzInfo] = None,
        on_reset: Optional[ResetHook] = None,
        history_days: Optional[int] = None,
        reset_retry_attempts: Optional[int] = None,
    ):
        self.store = store
        self.auth = auth
        self.tz = tz or get_local_tz()
        self.history_days = settings.HISTORY_DAYS if history_days is None else history_days
        if self.history_days < 1:
            raise ValueError(f"history_days 必须 >= 1: {self.history_days}")
        self.reset_retry_attempts = (
            settings.RESET_RETRY_ATTEMPTS if reset_retry_attempts is None else reset_retry_attempts
        )
        self.user: Optional[User] = None
        self._user_task: Optional[asyncio.Task] = None
        self._on_reset = on_reset

    # ===== 会话 =====

    async def init(self) -> Optional[User]:
        """
        解析当前用户

        同一时刻只发起一次认证请求，并发调用者共享同一个任务。

        Returns:
            当前用户；未登录时返回None
        """
        if self._user_task is None:
            self._user_task = asyncio.ensure_future(self.auth.get_current_user())
        try:
            self.user = await self._user_task
        except Exception as e:
            logger.error(f"解析用户失败: {str(e)}")
            self.user = None
        return self.user

    async def ensure_user(self) -> Optional[User]:
        """返回缓存的用户；尚未登录时重新解析（失败不缓存）"""
        if self.user is None:
            if self._user_task is not None and self._user_task.done():
                self._user_task = None
            await self.init()
        return self.user

    async def close(self):
        """释放存储与认证客户端"""
        await self.store.close()
        await self.auth.close()
        logger.debug("DataManager已关闭")

    def get_local_date(self, value: Any = None) -> str:
        """本地日期 YYYY-MM-DD（默认今天）"""
        return get_local_date(value, self.tz)

    def _unauthenticated(self, action: str) -> StoreResult:
        logger.debug(f"{action}: 未登录，跳过")
        return StoreResult.fail(FailureKind.UNAUTHENTICATED, "No user logged in")

    def _store_failure(self, action: str, error: StoreError) -> StoreResult:
        logger.error(f"{action}失败: {error.code} {error.message}")
        return StoreResult.fail(FailureKind.STORE_ERROR, error.message, code=error.code)

    def _invalid(self, action: str, message: str) -> StoreResult:
        logger.warning(f"{action}: 输入无效 - {message}")
        return StoreResult.fail(FailureKind.INVALID_INPUT, message)

    # ===== 每日统计 =====

    async def _get_or_create_stats(self, user: User, day: str) -> StoreResult[DailyStat]:
        filters = [eq("user_id", user.id), eq("date", day)]
        try:
            row = await self.store.select(DAILY_STATS_TABLE, filters, single=True)
            return StoreResult.ok(DailyStat.model_validate(row))
        except NotFoundError:
            logger.info(f"{day} 没有统计记录，创建默认记录: user={user.id}")
        except StoreError as e:
            return self._store_failure("获取统计", e)

        default = {
            "user_id": user.id,
            "date": day,
            "steps": 0,
            "calories_burned": 0,
            "water_intake": 0,
        }
        try:
            row = await self.store.insert(DAILY_STATS_TABLE, default)
        except StoreError as e:
            if e.code != UNIQUE_VIOLATION_CODE:
                return self._store_failure("创建统计", e)
            # 并发调用已经创建了当天记录
            try:
                row = await self.store.select(DAILY_STATS_TABLE, filters, single=True)
            except StoreError as retry_error:
                return self._store_failure("获取统计", retry_error)
        return StoreResult.ok(DailyStat.model_validate(row))

    async def get_today_stats(self) -> StoreResult[DailyStat]:
        """
        获取今天的统计，不存在时创建全0的默认记录

        Returns:
            今天的DailyStat
        """
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("获取今日统计")
        return await self._get_or_create_stats(user, self.get_local_date())

    async def _write_today(
        self, action: str, compute: Callable[[DailyStat], Dict[str, Any]]
    ) -> StoreResult[DailyStat]:
        """确保当天记录存在，再按 user_id + date 更新"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated(action)

        today = self.get_local_date()
        current = await self._get_or_create_stats(user, today)
        if not current.success:
            return current

        try:
            values = compute(current.data)
        except ValueError as e:
            return self._invalid(action, str(e))

        try:
            rows = await self.store.update(
                DAILY_STATS_TABLE, values, [eq("user_id", user.id), eq("date", today)]
            )
        except StoreError as e:
            return self._store_failure(action, e)

        if not rows:
            # 两次请求之间记录被删除（例如并发重置）
            logger.warning(f"{action}: {today} 的统计记录已不存在 user={user.id}")
            return StoreResult.fail(FailureKind.NOT_FOUND, f"Daily stats for {today} not found")
        return StoreResult.ok(DailyStat.model_validate(rows[0]))

    async def update_steps(self, steps: Any) -> StoreResult[DailyStat]:
        """设置今天的步数"""
        try:
            value = coerce_counter(steps)
        except ValueError as e:
            return self._invalid("更新步数", str(e))
        return await self._write_today("更新步数", lambda _: {"steps": value})

    async def update_calories(self, calories: Any) -> StoreResult[DailyStat]:
        """设置今天消耗的卡路里"""
        try:
            value = coerce_counter(calories)
        except ValueError as e:
            return self._invalid("更新卡路里", str(e))
        return await self._write_today("更新卡路里", lambda _: {"calories_burned": value})

    async def update_water(self, amount: Any) -> StoreResult[DailyStat]:
        """
        累加饮水量

        Args:
            amount: 增量(ml)，可以为负，但结果必须在 [0, INT_MAX] 内
        """
        try:
            delta = coerce_int(amount)
        except ValueError as e:
            return self._invalid("更新饮水", str(e))

        def compute(stats: DailyStat) -> Dict[str, Any]:
            total = stats.water_intake + delta
            if total < 0 or total > INT_MAX:
                raise ValueError(f"饮水量超出范围: {total}")
            return {"water_intake": total}

        return await self._write_today("更新饮水", compute)

    async def set_water(self, amount: Any) -> StoreResult[DailyStat]:
        """直接设置饮水量"""
        try:
            value = coerce_counter(amount)
        except ValueError as e:
            return self._invalid("设置饮水", str(e))
        return await self._write_today("设置饮水", lambda _: {"water_intake": value})

    # ===== 运动 =====

    async def get_activities(self) -> StoreResult[List[Activity]]:
        """所有运动记录（最新在前）"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("获取运动")

        try:
            rows = await self.store.select(
                ACTIVITIES_TABLE,
                [eq("user_id", user.id)],
                order=Order(column="created_at", ascending=False),
            )
        except StoreError as e:
            return self._store_failure("获取运动", e)
        return StoreResult.ok([Activity.model_validate(r) for r in rows])

    async def add_activity(self, activity: Union[ActivityCreate, Dict[str, Any]]) -> StoreResult[Activity]:
        """新增运动（type 统一为小写）"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("新增运动")

        try:
            payload = ActivityCreate.model_validate(activity)
        except ValidationError as e:
            return self._invalid("新增运动", _validation_message(e))

        row = {"user_id": user.id, **payload.model_dump(mode="json")}
        try:
            stored = await self.store.insert(ACTIVITIES_TABLE, row)
        except StoreError as e:
            return self._store_failure("新增运动", e)
        return StoreResult.ok(Activity.model_validate(stored))

    async def update_activity(
        self, activity_id: Any, updates: Union[ActivityUpdate, Dict[str, Any]]
    ) -> StoreResult[Activity]:
        """
        更新运动

        Args:
            activity_id: 运动ID
            updates: 要更新的字段（type 大小写不敏感，存储为小写）

        Returns:
            更新后的运动；不属于当前用户或不存在时为 not_found
        """
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("更新运动")

        try:
            values = ActivityUpdate.model_validate(updates).to_row()
        except ValidationError as e:
            return self._invalid("更新运动", _validation_message(e))
        if not values:
            return self._invalid("更新运动", "没有可更新的字段")

        try:
            rows = await self.store.update(
                ACTIVITIES_TABLE, values, [eq("id", activity_id), eq("user_id", user.id)]
            )
        except StoreError as e:
            return self._store_failure("更新运动", e)

        if not rows:
            return StoreResult.fail(FailureKind.NOT_FOUND, f"Activity {activity_id} not found")
        return StoreResult.ok(Activity.model_validate(rows[0]))

    async def delete_activity(self, activity_id: Any) -> StoreResult[Activity]:
        """删除运动（只能删除当前用户的记录）"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("删除运动")

        try:
            rows = await self.store.delete(
                ACTIVITIES_TABLE, [eq("id", activity_id), eq("user_id", user.id)]
            )
        except StoreError as e:
            return self._store_failure("删除运动", e)

        if not rows:
            return StoreResult.fail(FailureKind.NOT_FOUND, f"Activity {activity_id} not found")
        return StoreResult.ok(Activity.model_validate(rows[0]))

    # ===== 餐食 =====

    async def get_meals(self) -> StoreResult[MealBuckets]:
        """
        今天（本地零点之后）的餐食，按餐次分组

        无法识别的 meal_type 放入 unrecognized，不会混入三个餐次。
        """
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("获取餐食")

        since = start_of_local_day(tz=self.tz)
        try:
            rows = await self.store.select(
                MEALS_TABLE,
                [eq("user_id", user.id), gte("created_at", since)],
                order=Order(column="created_at", ascending=False),
            )
        except StoreError as e:
            return self._store_failure("获取餐食", e)

        buckets = MealBuckets()
        known = {t.value for t in MealType}
        for row in rows:
            meal = Meal.model_validate(row)
            if meal.meal_type in known:
                getattr(buckets, meal.meal_type).append(meal)
            else:
                logger.warning(f"未知的餐次类型: {meal.meal_type!r} (meal={meal.id})")
                buckets.unrecognized.append(meal)
        return StoreResult.ok(buckets)

    async def add_meal(
        self, meal_type: Union[MealType, str], meal: Union[MealCreate, Dict[str, Any]]
    ) -> StoreResult[Meal]:
        """新增餐食"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("新增餐食")

        try:
            kind = MealType(str(getattr(meal_type, "value", meal_type)).strip().lower())
        except ValueError:
            return self._invalid("新增餐食", f"未知的餐次类型: {meal_type!r}")
        try:
            payload = MealCreate.model_validate(meal)
        except ValidationError as e:
            return self._invalid("新增餐食", _validation_message(e))

        row = {
            "user_id": user.id,
            "name": payload.name,
            "calories": payload.calories,
            "meal_type": kind.value,
        }
        try:
            stored = await self.store.insert(MEALS_TABLE, row)
        except StoreError as e:
            return self._store_failure("新增餐食", e)
        return StoreResult.ok(Meal.model_validate(stored))

    async def remove_meal(self, meal_type: Any, meal_id: Any) -> StoreResult[Meal]:
        """删除餐食（meal_type 仅为接口对称，不参与过滤）"""
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("删除餐食")

        try:
            rows = await self.store.delete(
                MEALS_TABLE, [eq("id", meal_id), eq("user_id", user.id)]
            )
        except StoreError as e:
            return self._store_failure("删除餐食", e)

        if not rows:
            return StoreResult.fail(FailureKind.NOT_FOUND, f"Meal {meal_id} not found")
        return StoreResult.ok(Meal.model_validate(rows[0]))

    # ===== 历史 =====

    async def get_history(self) -> StoreResult[History]:
        """
        最近 history_days 天（以今天结尾）的步数和卡路里

        返回的数组长度固定，从旧到新，缺失的日期补0，与数据库行顺序无关。
        """
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("获取历史")

        days = [get_local_date(d) for d in trailing_dates(self.history_days, to_local_date(tz=self.tz))]
        try:
            rows = await self.store.select(
                DAILY_STATS_TABLE,
                [eq("user_id", user.id), gte("date", days[0])],
                order=Order(column="date", ascending=True),
            )
        except StoreError as e:
            return self._store_failure("获取历史", e)

        by_date = {str(r.get("date")): r for r in rows}
        history = History(dates=days)
        for day in days:
            stat = by_date.get(day)
            history.steps.append(int(stat.get("steps") or 0) if stat else 0)
            history.calories.append(int(stat.get("calories_burned") or 0) if stat else 0)
        return StoreResult.ok(history)

    # ===== 重置 =====

    async def reset_dashboard(self) -> StoreResult[ResetReport]:
        """
        删除当前用户的全部运动、餐食和每日统计

        三次删除互相独立；失败的表会重试 reset_retry_attempts 次，
        仍失败则返回 partial_failure，data 中列出已清空和失败的表。
        删除结束后调用 on_reset（展示层重新加载）。
        """
        user = await self.ensure_user()
        if user is None:
            return self._unauthenticated("重置")

        report = ResetReport()
        pending = list(RESET_TABLES)
        while pending and report.attempts <= self.reset_retry_attempts:
            report.attempts += 1
            failed: Dict[str, str] = {}
            for table in pending:
                try:
                    await self.store.delete(table, [eq("user_id", user.id)])
                    report.cleared.append(table)
                except StoreError as e:
                    logger.error(f"重置 {table} 失败 (第{report.attempts}次): {e.code} {e.message}")
                    failed[table] = e.message
            pending = [t for t in pending if t in failed]
            report.failed = failed

        logger.info(f"重置完成: user={user.id}, cleared={report.cleared}, failed={list(report.failed)}")
        await self._notify_reset()

        if report.failed:
            return StoreResult.fail(
                FailureKind.PARTIAL_FAILURE,
                f"Failed to clear: {', '.join(report.failed)}",
                data=report,
            )
        return StoreResult.ok(report)

    async def _notify_reset(self):
        if self._on_reset is None:
            return
        result = self._on_reset()
        if inspect.isawaitable(result):
            await result
