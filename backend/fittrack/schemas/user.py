"""
用户Schema
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """认证用户（其余认证字段原样保留）"""

    model_config = ConfigDict(extra="allow")

    id: str
    email: Optional[str] = None
