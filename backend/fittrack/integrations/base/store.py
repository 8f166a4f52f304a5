"""
远程存储与认证的抽象接口

数据访问层只依赖这里的契约：带过滤的查询、可区分"不存在"的单行查询、
返回写入行的插入、带过滤的更新和删除。
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel

from fittrack.schemas.user import User

Row = Dict[str, Any]


# Postgres唯一约束冲突
UNIQUE_VIOLATION_CODE = "23505"


class StoreError(Exception):
    """远程存储错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class NotFoundError(StoreError):
    """单行查询没有结果"""
    pass


class Filter(BaseModel):
    """过滤条件（列 运算符 值）"""

    column: str
    op: str
    value: Any

    def matches(self, row: Row) -> bool:
        """在内存中判断一行是否满足条件"""
        current = row.get(self.column)
        if self.op == "eq":
            return current == self.value
        if self.op == "gte":
            return current is not None and current >= self.value
        raise ValueError(f"不支持的运算符: {self.op}")


class Order(BaseModel):
    """排序"""

    column: str
    ascending: bool = True


def eq(column: str, value: Any) -> Filter:
    return Filter(column=column, op="eq", value=value)


def gte(column: str, value: Any) -> Filter:
    return Filter(column=column, op="gte", value=value)


class RemoteStore(ABC):
    """远程存储接口"""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Sequence[Filter],
        order: Optional[Order] = None,
        single: bool = False,
    ) -> Any:
        """
        查询

        Args:
            table: 表名
            filters: 过滤条件（AND）
            order: 排序
            single: 是否只取一行

        Returns:
            single=True 时返回一行，否则返回行列表

        Raises:
            NotFoundError: single=True 且没有匹配行
            StoreError: 其他错误
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """插入一行并返回存储后的行"""
        pass

    @abstractmethod
    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> List[Row]:
        """按条件更新，返回更新后的行"""
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        """按条件删除，返回被删除的行"""
        pass

    async def close(self):
        """释放连接"""
        pass


class AuthProvider(ABC):
    """认证接口"""

    @abstractmethod
    async def get_current_user(self) -> Optional[User]:
        """
        获取当前登录用户

        Returns:
            用户；未登录或失败时返回None（不抛异常）
        """
        pass

    @abstractmethod
    async def sign_out(self) -> bool:
        """退出登录"""
        pass

    async def close(self):
        """释放连接"""
        pass
