"""
数据访问层测试
"""
import asyncio
from datetime import timedelta

import pytest
from pydantic import ValidationError

from fittrack.config import Settings
from fittrack.integrations.base.store import NotFoundError, StoreError
from fittrack.integrations.supabase.constants import (
    ACTIVITIES_TABLE,
    DAILY_STATS_TABLE,
    MEALS_TABLE,
)
from fittrack.schemas.result import FailureKind
from fittrack.services.data_manager import DataManager
from fittrack.utils.datetime_helper import start_of_local_day, to_local_date

from tests.conftest import USER_A, USER_B, FakeAuth, InMemoryStore


def days_ago(manager: DataManager, n: int) -> str:
    return manager.get_local_date(to_local_date(tz=manager.tz) - timedelta(days=n))


class TestSession:
    async def test_init_caches_user(self, store, tz):
        auth = FakeAuth()
        manager = DataManager(store=store, auth=auth, tz=tz)
        assert await manager.init() == USER_A
        assert await manager.ensure_user() == USER_A
        assert auth.calls == 1

    async def test_concurrent_callers_share_one_request(self, store, tz):
        auth = FakeAuth()
        manager = DataManager(store=store, auth=auth, tz=tz)
        users = await asyncio.gather(*(manager.ensure_user() for _ in range(5)))
        assert users == [USER_A] * 5
        assert auth.calls == 1

    async def test_failed_resolution_retries_on_next_call(self, store, tz):
        auth = FakeAuth(users=[None, USER_A])
        manager = DataManager(store=store, auth=auth, tz=tz)
        assert await manager.ensure_user() is None
        assert await manager.ensure_user() == USER_A
        assert auth.calls == 2

    def test_history_window_must_be_positive(self, store, tz):
        with pytest.raises(ValueError):
            DataManager(store=store, auth=FakeAuth(), tz=tz, history_days=0)

    def test_history_days_setting_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(HISTORY_DAYS=0)

    async def test_close_releases_clients(self, store, tz):
        auth = FakeAuth()
        manager = DataManager(store=store, auth=auth, tz=tz)
        await manager.close()
        assert store.closed
        assert auth.closed


class TestUnauthenticated:
    @pytest.mark.parametrize(
        "call",
        [
            lambda m: m.get_today_stats(),
            lambda m: m.update_steps(100),
            lambda m: m.update_calories(100),
            lambda m: m.update_water(100),
            lambda m: m.set_water(100),
            lambda m: m.get_activities(),
            lambda m: m.add_activity({"name": "Run", "duration": 30, "calories": 300, "type": "morning"}),
            lambda m: m.update_activity(1, {"name": "Walk"}),
            lambda m: m.delete_activity(1),
            lambda m: m.get_meals(),
            lambda m: m.add_meal("lunch", {"name": "Salad", "calories": 400}),
            lambda m: m.remove_meal("lunch", 1),
            lambda m: m.get_history(),
            lambda m: m.reset_dashboard(),
        ],
    )
    async def test_no_store_call_without_user(self, anonymous_manager, store, call):
        result = await call(anonymous_manager)
        assert not result.success
        assert result.error.kind == FailureKind.UNAUTHENTICATED
        assert store.store_calls() == 0


class TestDailyStats:
    async def test_creates_default_once(self, manager, store):
        first = await manager.get_today_stats()
        second = await manager.get_today_stats()

        assert first.success and second.success
        assert first.data.steps == 0
        assert first.data.calories_burned == 0
        assert first.data.water_intake == 0
        assert first.data.date == manager.get_local_date()
        assert second.data.id == first.data.id
        assert len(store.tables[DAILY_STATS_TABLE]) == 1

    async def test_concurrent_default_creation_reads_winner(self, manager, store):
        results = await asyncio.gather(manager.get_today_stats(), manager.get_today_stats())
        assert all(r.success for r in results)
        assert results[0].data.id == results[1].data.id
        assert len(store.tables[DAILY_STATS_TABLE]) == 1
        assert store.calls.count(("insert", DAILY_STATS_TABLE)) == 2
        assert len(store.rejected) == 1

    async def test_unique_violation_rereads_existing_row(self, manager, store):
        store.tables[DAILY_STATS_TABLE].append(
            {"id": 77, "user_id": USER_A.id, "date": manager.get_local_date(),
             "steps": 1500, "calories_burned": 0, "water_intake": 0}
        )
        store.fail_next("select", DAILY_STATS_TABLE,
                        NotFoundError("no rows", code="PGRST116", status_code=406))
        result = await manager.get_today_stats()
        assert result.success
        assert result.data.id == 77
        assert result.data.steps == 1500
        assert len(store.rejected) == 1
        assert len(store.tables[DAILY_STATS_TABLE]) == 1

    async def test_update_of_vanished_row_is_not_found(self, tz):
        class VanishingStore(InMemoryStore):
            async def update(self, table, values, filters):
                await super().update(table, {}, filters)
                return []

        vanishing = VanishingStore()
        manager = DataManager(store=vanishing, auth=FakeAuth(), tz=tz)
        result = await manager.update_steps(42)
        assert not result.success
        assert result.error.kind == FailureKind.NOT_FOUND
        assert vanishing.tables[DAILY_STATS_TABLE][0]["steps"] == 0

    async def test_store_error_is_reported(self, manager, store):
        store.fail_next("select", DAILY_STATS_TABLE, StoreError("permission denied", code="42501"))
        result = await manager.get_today_stats()
        assert not result.success
        assert result.error.kind == FailureKind.STORE_ERROR
        assert result.error.code == "42501"
        assert ("insert", DAILY_STATS_TABLE) not in store.calls

    async def test_water_is_additive_then_absolute(self, manager):
        await manager.update_water(500)
        result = await manager.update_water(300)
        assert result.data.water_intake == 800

        result = await manager.set_water(300)
        assert result.data.water_intake == 300
        assert (await manager.get_today_stats()).data.water_intake == 300

    async def test_update_steps_and_calories_coerce_to_int(self, manager):
        await manager.update_steps("8500")
        result = await manager.update_calories(412.9)
        assert result.data.steps == 8500
        assert result.data.calories_burned == 412

    async def test_non_numeric_input_is_rejected(self, manager, store):
        result = await manager.update_steps("lots")
        assert not result.success
        assert result.error.kind == FailureKind.INVALID_INPUT
        assert store.store_calls() == 0

    async def test_water_cannot_go_negative(self, manager):
        await manager.set_water(200)
        result = await manager.update_water(-300)
        assert result.error.kind == FailureKind.INVALID_INPUT
        assert (await manager.get_today_stats()).data.water_intake == 200

    async def test_update_is_scoped_to_user_and_date(self, manager, store):
        yesterday = days_ago(manager, 1)
        store.tables[DAILY_STATS_TABLE].append(
            {"id": 99, "user_id": USER_A.id, "date": yesterday,
             "steps": 1234, "calories_burned": 0, "water_intake": 0}
        )
        await manager.update_steps(42)
        rows = {r["date"]: r for r in store.tables[DAILY_STATS_TABLE]}
        assert rows[yesterday]["steps"] == 1234
        assert rows[manager.get_local_date()]["steps"] == 42


class TestActivities:
    async def test_newest_first(self, manager):
        for name in ("Run", "Swim", "Bike"):
            await manager.add_activity({"name": name, "duration": "30", "calories": 200, "type": "Evening"})
        result = await manager.get_activities()
        assert [a.name for a in result.data] == ["Bike", "Swim", "Run"]
        assert all(a.type == "evening" for a in result.data)

    async def test_empty_is_success(self, manager):
        result = await manager.get_activities()
        assert result.success
        assert result.data == []

    async def test_update_normalizes_type(self, manager):
        added = await manager.add_activity({"name": "Yoga", "duration": 45, "calories": 150, "type": "evening"})
        result = await manager.update_activity(added.data.id, {"type": "Morning"})
        assert result.success
        assert result.data.type == "morning"
        assert result.data.name == "Yoga"

        activities = await manager.get_activities()
        assert activities.data[0].type == "morning"

    async def test_update_rejects_unknown_type(self, manager):
        added = await manager.add_activity({"name": "Yoga", "duration": 45, "calories": 150, "type": "evening"})
        result = await manager.update_activity(added.data.id, {"type": "midnight"})
        assert result.error.kind == FailureKind.INVALID_INPUT

    async def test_update_error_is_returned(self, manager, store):
        added = await manager.add_activity({"name": "Yoga", "duration": 45, "calories": 150, "type": "evening"})
        store.fail_next("update", ACTIVITIES_TABLE, StoreError("check constraint", code="23514"))
        result = await manager.update_activity(added.data.id, {"name": "Pilates"})
        assert not result.success
        assert result.error.kind == FailureKind.STORE_ERROR
        assert result.error.code == "23514"

    async def test_delete_is_scoped_to_owner(self, store, tz):
        owner = DataManager(store=store, auth=FakeAuth(users=[USER_A]), tz=tz)
        intruder = DataManager(store=store, auth=FakeAuth(users=[USER_B]), tz=tz)
        added = await owner.add_activity({"name": "Run", "duration": 30, "calories": 300, "type": "morning"})

        result = await intruder.delete_activity(added.data.id)
        assert result.error.kind == FailureKind.NOT_FOUND

        remaining = await owner.get_activities()
        assert [a.id for a in remaining.data] == [added.data.id]

    async def test_delete_own_activity(self, manager):
        added = await manager.add_activity({"name": "Run", "duration": 30, "calories": 300, "type": "morning"})
        result = await manager.delete_activity(added.data.id)
        assert result.success
        assert (await manager.get_activities()).data == []


class TestMeals:
    async def test_buckets_and_unrecognized(self, manager, store):
        await manager.add_meal("breakfast", {"name": "Oats", "calories": 300})
        await manager.add_meal("Lunch", {"name": "Salad", "calories": "450"})
        await manager.add_meal("dinner", {"name": "Pasta", "calories": 700})
        store.tables[MEALS_TABLE].append(
            {"id": 500, "user_id": USER_A.id, "name": "Chips", "calories": 200,
             "meal_type": "snack", "created_at": start_of_local_day(tz=manager.tz) + timedelta(minutes=1)}
        )

        result = await manager.get_meals()
        assert result.success
        buckets = result.data
        assert [m.name for m in buckets.breakfast] == ["Oats"]
        assert [m.name for m in buckets.lunch] == ["Salad"]
        assert [m.name for m in buckets.dinner] == ["Pasta"]
        assert [m.name for m in buckets.unrecognized] == ["Chips"]
        assert buckets.total_calories == 1450

    async def test_only_today(self, manager, store):
        store.tables[MEALS_TABLE].append(
            {"id": 501, "user_id": USER_A.id, "name": "Late snack", "calories": 200,
             "meal_type": "dinner", "created_at": start_of_local_day(tz=manager.tz) - timedelta(minutes=1)}
        )
        result = await manager.get_meals()
        assert result.data.dinner == []

    async def test_add_rejects_unknown_type(self, manager, store):
        result = await manager.add_meal("brunch", {"name": "Eggs", "calories": 300})
        assert result.error.kind == FailureKind.INVALID_INPUT
        assert store.tables[MEALS_TABLE] == []

    async def test_remove_ignores_type_but_scopes_user(self, store, tz):
        owner = DataManager(store=store, auth=FakeAuth(users=[USER_A]), tz=tz)
        intruder = DataManager(store=store, auth=FakeAuth(users=[USER_B]), tz=tz)
        added = await owner.add_meal("lunch", {"name": "Soup", "calories": 250})

        assert (await intruder.remove_meal("lunch", added.data.id)).error.kind == FailureKind.NOT_FOUND
        assert (await owner.remove_meal("dinner", added.data.id)).success
        assert store.tables[MEALS_TABLE] == []


class TestHistory:
    @pytest.mark.parametrize("records", [0, 3, 30])
    async def test_always_seven_days(self, manager, store, records):
        for n in range(records):
            store.tables[DAILY_STATS_TABLE].append(
                {"id": n + 1, "user_id": USER_A.id, "date": days_ago(manager, n * 2),
                 "steps": 1000 + n, "calories_burned": 100 + n, "water_intake": 0}
            )
        result = await manager.get_history()
        assert len(result.data.steps) == 7
        assert len(result.data.calories) == 7
        assert result.data.dates[-1] == manager.get_local_date()

    async def test_right_aligned_with_zero_fill(self, manager, store):
        store.tables[DAILY_STATS_TABLE].extend([
            {"id": 1, "user_id": USER_A.id, "date": manager.get_local_date(),
             "steps": 9000, "calories_burned": 400, "water_intake": 0},
            {"id": 2, "user_id": USER_A.id, "date": days_ago(manager, 6),
             "steps": 3000, "calories_burned": 150, "water_intake": 0},
            {"id": 3, "user_id": USER_B.id, "date": days_ago(manager, 3),
             "steps": 7777, "calories_burned": 777, "water_intake": 0},
            {"id": 4, "user_id": USER_A.id, "date": days_ago(manager, 10),
             "steps": 5555, "calories_burned": 555, "water_intake": 0},
        ])
        result = await manager.get_history()
        assert result.data.steps == [3000, 0, 0, 0, 0, 0, 9000]
        assert result.data.calories == [150, 0, 0, 0, 0, 0, 400]
        assert result.data.dates == [days_ago(manager, n) for n in range(6, -1, -1)]


class TestReset:
    async def _seed(self, manager):
        await manager.get_today_stats()
        await manager.add_activity({"name": "Run", "duration": 30, "calories": 300, "type": "morning"})
        await manager.add_meal("lunch", {"name": "Soup", "calories": 250})

    async def test_clears_everything_and_reloads(self, store, tz):
        reloads = []
        manager = DataManager(store=store, auth=FakeAuth(), tz=tz, on_reset=lambda: reloads.append(True))
        await self._seed(manager)

        result = await manager.reset_dashboard()
        assert result.success
        assert result.data.cleared == [ACTIVITIES_TABLE, MEALS_TABLE, DAILY_STATS_TABLE]
        assert all(not store.tables[t] for t in result.data.cleared)
        assert reloads == [True]

    async def test_only_user_rows_are_deleted(self, store, tz):
        owner = DataManager(store=store, auth=FakeAuth(users=[USER_A]), tz=tz)
        other = DataManager(store=store, auth=FakeAuth(users=[USER_B]), tz=tz)
        await self._seed(owner)
        await self._seed(other)

        await owner.reset_dashboard()
        assert len((await other.get_activities()).data) == 1

    async def test_transient_failure_is_retried(self, store, tz):
        manager = DataManager(store=store, auth=FakeAuth(), tz=tz, reset_retry_attempts=1)
        await self._seed(manager)
        store.fail_next("delete", MEALS_TABLE, StoreError("timeout"))

        result = await manager.reset_dashboard()
        assert result.success
        assert result.data.attempts == 2
        assert not store.tables[MEALS_TABLE]

    async def test_partial_failure_is_reported(self, store, tz):
        reloads = []
        manager = DataManager(store=store, auth=FakeAuth(), tz=tz,
                              on_reset=lambda: reloads.append(True), reset_retry_attempts=1)
        await self._seed(manager)
        store.fail_next("delete", MEALS_TABLE, StoreError("permission denied"), times=2)

        result = await manager.reset_dashboard()
        assert not result.success
        assert result.error.kind == FailureKind.PARTIAL_FAILURE
        assert result.data.cleared == [ACTIVITIES_TABLE, DAILY_STATS_TABLE]
        assert result.data.failed == {MEALS_TABLE: "permission denied"}
        assert len(store.tables[MEALS_TABLE]) == 1
        assert reloads == [True]

    async def test_async_reset_hook_is_awaited(self, store, tz):
        reloads = []

        async def reload():
            reloads.append(True)

        manager = DataManager(store=store, auth=FakeAuth(), tz=tz, on_reset=reload)
        await manager.reset_dashboard()
        assert reloads == [True]
