"""
组合根 - 创建存储客户端和数据访问服务
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fittrack.integrations.supabase.client import SupabaseAuth, SupabaseClient
from fittrack.services.data_manager import DataManager, ResetHook

logger = logging.getLogger(__name__)


def create_store(access_token: Optional[str] = None) -> SupabaseClient:
    """创建Supabase REST客户端"""
    return SupabaseClient(access_token=access_token)


def create_auth(access_token: Optional[str] = None) -> SupabaseAuth:
    """创建Supabase认证客户端"""
    return SupabaseAuth(access_token=access_token)


@asynccontextmanager
async def open_data_manager(
    access_token: Optional[str] = None,
    on_reset: Optional[ResetHook] = None,
) -> AsyncIterator[DataManager]:
    """
    打开一个数据访问会话

    创建DataManager并等待一次 init()（就绪后再交给调用方），退出时关闭客户端。

    Args:
        access_token: 用户的Supabase access token
        on_reset: 重置后回调（展示层重新加载）
    """
    manager = DataManager(
        store=create_store(access_token),
        auth=create_auth(access_token),
        on_reset=on_reset,
    )
    try:
        user = await manager.init()
        if user is None:
            logger.info("会话未登录，所有操作将返回 unauthenticated")
        yield manager
    finally:
        await manager.close()
