"""
Supabase客户端（PostgREST + GoTrue），基于httpx
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
import httpx

from fittrack.config import settings
from fittrack.integrations.base.store import (
    AuthProvider,
    Filter,
    NotFoundError,
    Order,
    RemoteStore,
    Row,
    StoreError,
)
from fittrack.integrations.supabase.constants import (
    AUTH_LOGOUT_PATH,
    AUTH_USER_PATH,
    NOT_FOUND_CODE,
    REST_PATH,
    SINGLE_OBJECT_MEDIA_TYPE,
)
from fittrack.schemas.user import User

logger = logging.getLogger(__name__)


def _render_value(value: Any) -> str:
    """把过滤值转换为PostgREST查询参数"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def build_params(
    filters: Sequence[Filter], order: Optional[Order] = None, select: Optional[str] = None
) -> List[Tuple[str, str]]:
    """
    构造PostgREST查询参数

    例如 [eq("user_id", "u1")] + Order("date") ->
    [("select", "*"), ("user_id", "eq.u1"), ("order", "date.asc")]
    """
    params: List[Tuple[str, str]] = []
    if select:
        params.append(("select", select))
    for f in filters:
        params.append((f.column, f"{f.op}.{_render_value(f.value)}"))
    if order is not None:
        direction = "asc" if order.ascending else "desc"
        params.append(("order", f"{order.column}.{direction}"))
    return params


def _error_from_response(response: httpx.Response) -> StoreError:
    """把PostgREST错误响应转换为StoreError"""
    code = None
    message = response.text or f"HTTP {response.status_code}"
    details = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        message = body.get("message") or message
        details = body.get("details")

    single = response.request.headers.get("Accept") == SINGLE_OBJECT_MEDIA_TYPE
    not_found = code == NOT_FOUND_CODE or (single and response.status_code == 406)
    error_class = NotFoundError if not_found else StoreError
    return error_class(message, code=code, status_code=response.status_code, details=details)


class SupabaseClient(RemoteStore):
    """Supabase REST客户端（行级权限由access token决定）"""

    def __init__(
        self,
        access_token: Optional[str] = None,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (url or settings.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.SUPABASE_ANON_KEY
        self.access_token = access_token
        # trust_env=False: 忽略代理环境变量，直连Supabase
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.SUPABASE_TIMEOUT, trust_env=False
        )

    async def close(self):
        """关闭HTTP客户端"""
        await self.http_client.aclose()

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }
        headers.update(extra)
        return headers

    async def _make_request(
        self,
        method: str,
        table: str,
        params: Sequence[Tuple[str, str]],
        headers: Dict[str, str],
        json: Any = None,
    ) -> Any:
        """
        发送REST请求

        Args:
            method: HTTP方法
            table: 表名
            params: 查询参数
            headers: 请求头
            json: 请求体

        Returns:
            响应JSON（无内容时为None）

        Raises:
            NotFoundError: 单行查询没有结果
            StoreError: 其他错误
        """
        url = f"{self.base_url}{REST_PATH}/{table}"
        try:
            response = await self.http_client.request(
                method, url, params=list(params), headers=headers, json=json
            )
        except httpx.HTTPError as e:
            logger.error(f"Supabase请求异常: {method} {table} - {str(e)}")
            raise StoreError(f"请求异常: {str(e)}")

        if response.is_error:
            error = _error_from_response(response)
            if isinstance(error, NotFoundError):
                logger.debug(f"Supabase无结果: {method} {table}")
            else:
                logger.error(
                    f"Supabase请求失败: {method} {table} - "
                    f"{response.status_code} {error.code} {error.message}"
                )
            raise error

        return response.json() if response.content else None

    async def select(
        self,
        table: str,
        filters: Sequence[Filter],
        order: Optional[Order] = None,
        single: bool = False,
    ) -> Any:
        headers = self._headers(Accept=SINGLE_OBJECT_MEDIA_TYPE) if single else self._headers()
        data = await self._make_request(
            "GET", table, build_params(filters, order, select="*"), headers
        )
        if single:
            return data
        return data or []

    async def insert(self, table: str, row: Row) -> Row:
        data = await self._make_request(
            "POST", table, [], self._headers(Prefer="return=representation"), json=row
        )
        if isinstance(data, list):
            if not data:
                raise StoreError(f"插入 {table} 未返回数据")
            return data[0]
        return data

    async def update(self, table: str, values: Row, filters: Sequence[Filter]) -> List[Row]:
        data = await self._make_request(
            "PATCH",
            table,
            build_params(filters),
            self._headers(Prefer="return=representation"),
            json=values,
        )
        return data or []

    async def delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        data = await self._make_request(
            "DELETE", table, build_params(filters), self._headers(Prefer="return=representation")
        )
        return data or []


class SupabaseAuth(AuthProvider):
    """Supabase认证客户端"""

    def __init__(
        self,
        access_token: Optional[str] = None,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (url or settings.SUPABASE_URL).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.SUPABASE_ANON_KEY
        self.access_token = access_token
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.SUPABASE_TIMEOUT, trust_env=False
        )

    async def close(self):
        """关闭HTTP客户端"""
        await self.http_client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token}",
        }

    async def get_current_user(self) -> Optional[User]:
        """
        获取当前登录用户

        Returns:
            用户；未登录或请求失败时返回None
        """
        if not self.access_token:
            logger.info("没有access token，视为未登录")
            return None

        try:
            response = await self.http_client.get(
                f"{self.base_url}{AUTH_USER_PATH}", headers=self._headers()
            )
            response.raise_for_status()
            user = User.model_validate(response.json())
            logger.info(f"获取用户成功: {user.id}")
            return user

        except httpx.HTTPStatusError as e:
            logger.error(f"获取用户失败: {e.response.status_code} {e.response.text}")
            return None
        except Exception as e:
            logger.error(f"获取用户异常: {str(e)}")
            return None

    async def sign_out(self) -> bool:
        """
        退出登录

        Returns:
            是否成功（失败只记录日志）
        """
        if not self.access_token:
            return True

        try:
            response = await self.http_client.post(
                f"{self.base_url}{AUTH_LOGOUT_PATH}", headers=self._headers()
            )
            response.raise_for_status()
            self.access_token = None
            logger.info("已退出登录")
            return True
        except httpx.HTTPError as e:
            logger.error(f"退出登录失败: {str(e)}")
            return False
