"""
测试夹具：内存中的远程存储和认证
"""
import asyncio
import copy
import itertools
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
import pytz

from fittrack.integrations.base.store import (
    UNIQUE_VIOLATION_CODE,
    AuthProvider,
    Filter,
    NotFoundError,
    Order,
    RemoteStore,
    Row,
    StoreError,
)
from fittrack.integrations.supabase.constants import (
    ACTIVITIES_TABLE,
    DAILY_STATS_TABLE,
    MEALS_TABLE,
    NOT_FOUND_CODE,
)
from fittrack.schemas.user import User
from fittrack.services.data_manager import DataManager

USER_A = User(id="user-a", email="a@example.com")
USER_B = User(id="user-b", email="b@example.com")


class InMemoryStore(RemoteStore):
    """按PostgREST语义工作的内存存储"""

    def __init__(self):
        self.tables: Dict[str, List[Row]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[Tuple[str, str], List[StoreError]] = defaultdict(list)
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)
        self.rejected: List[Tuple[str, Row]] = []
        self.closed = False

    def fail_next(self, method: str, table: str, error: StoreError, times: int = 1):
        """让接下来 times 次 method/table 调用失败"""
        self.failures[(method, table)].extend([error] * times)

    async def _maybe_fail(self, method: str, table: str):
        self.calls.append((method, table))
        # 每次调用都让出事件循环，模拟网络往返
        await asyncio.sleep(0)
        pending = self.failures.get((method, table))
        if pending:
            raise pending.pop(0)

    def _matching(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        return [row for row in self.tables[table] if all(f.matches(row) for f in filters)]

    async def select(self, table, filters, order: Optional[Order] = None, single=False):
        await self._maybe_fail("select", table)
        rows = self._matching(table, filters)
        if order is not None:
            rows = sorted(rows, key=lambda r: r[order.column], reverse=not order.ascending)
        if single:
            if not rows:
                raise NotFoundError("JSON object requested, multiple (or no) rows returned",
                                    code=NOT_FOUND_CODE, status_code=406)
            return copy.deepcopy(rows[0])
        return copy.deepcopy(rows)

    async def insert(self, table, row):
        await self._maybe_fail("insert", table)
        if table == DAILY_STATS_TABLE and self._matching(
            table,
            [Filter(column="user_id", op="eq", value=row["user_id"]),
             Filter(column="date", op="eq", value=row["date"])],
        ):
            self.rejected.append((table, dict(row)))
            raise StoreError("duplicate key value violates unique constraint",
                             code=UNIQUE_VIOLATION_CODE, status_code=409)
        stored = dict(row)
        stored.setdefault("id", next(self._ids))
        if table in (ACTIVITIES_TABLE, MEALS_TABLE):
            stored.setdefault(
                "created_at", datetime.now(timezone.utc) + timedelta(milliseconds=next(self._ticks))
            )
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    async def update(self, table, values, filters):
        await self._maybe_fail("update", table)
        rows = self._matching(table, filters)
        for row in rows:
            row.update(values)
        return copy.deepcopy(rows)

    async def delete(self, table, filters):
        await self._maybe_fail("delete", table)
        rows = self._matching(table, filters)
        self.tables[table] = [r for r in self.tables[table] if r not in rows]
        return copy.deepcopy(rows)

    async def close(self):
        self.closed = True

    def store_calls(self) -> int:
        return len(self.calls)


class FakeAuth(AuthProvider):
    """返回固定用户的认证"""

    def __init__(self, users: Sequence[Optional[User]] = (USER_A,)):
        self._users = list(users)
        self.calls = 0
        self.closed = False

    async def get_current_user(self):
        index = min(self.calls, len(self._users) - 1)
        self.calls += 1
        return self._users[index]

    async def sign_out(self):
        return True

    async def close(self):
        self.closed = True


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def tz():
    return pytz.timezone("America/New_York")


@pytest.fixture
def manager(store, tz) -> DataManager:
    return DataManager(store=store, auth=FakeAuth(), tz=tz)


@pytest.fixture
def anonymous_manager(store, tz) -> DataManager:
    return DataManager(store=store, auth=FakeAuth(users=[None]), tz=tz)
