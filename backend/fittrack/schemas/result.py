"""
数据访问结果类型

数据访问层从不向展示层抛出异常，而是返回 StoreResult：
success=True 时 data 为结果（可能为空列表）；失败时 error 说明原因。
"""
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class FailureKind(str, Enum):
    """失败类型"""
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"
    INVALID_INPUT = "invalid_input"
    PARTIAL_FAILURE = "partial_failure"


class StoreFailure(BaseModel):
    """失败详情"""

    kind: FailureKind
    message: str
    code: Optional[str] = None


class StoreResult(BaseModel, Generic[T]):
    """操作结果"""

    success: bool
    data: Optional[T] = None
    error: Optional[StoreFailure] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "StoreResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: str,
        code: Optional[str] = None,
        data: Optional[T] = None,
    ) -> "StoreResult[T]":
        return cls(
            success=False,
            data=data,
            error=StoreFailure(kind=kind, message=message, code=code),
        )


class ResetReport(BaseModel):
    """重置结果"""

    cleared: List[str] = []
    failed: Dict[str, str] = {}
    attempts: int = 0
