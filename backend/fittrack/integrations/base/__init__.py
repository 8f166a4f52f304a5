"""
远程存储抽象接口
"""
from fittrack.integrations.base.store import (
    AuthProvider,
    Filter,
    NotFoundError,
    Order,
    RemoteStore,
    StoreError,
    eq,
    gte,
)

__all__ = [
    "AuthProvider",
    "Filter",
    "NotFoundError",
    "Order",
    "RemoteStore",
    "StoreError",
    "eq",
    "gte",
]
