"""
数据访问会话管理
"""

from fittrack.store.session import create_auth, create_store, open_data_manager

__all__ = ["create_auth", "create_store", "open_data_manager"]
