"""
日期时间辅助函数

所有"今天"都按本地时区（settings.TZ）计算，而不是UTC。
"""
from datetime import datetime, date, time, timedelta
from typing import List, Optional, Union
import pytz

from fittrack.config import settings

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def get_local_tz(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """获取本地时区（默认使用配置中的TZ）"""
    return pytz.timezone(name or settings.TZ)


def now_local(tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """获取当前本地时间"""
    return datetime.now(tz or get_local_tz())


def to_local_date(
    value: Optional[Union[datetime, date]] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> date:
    """
    取本地日历日期

    naive datetime 视为本地墙钟时间；aware datetime 先转换到本地时区。
    """
    tz = tz or get_local_tz()
    if value is None:
        return now_local(tz).date()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def get_local_date(
    value: Optional[Union[datetime, date]] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> str:
    """
    本地日期字符串

    Args:
        value: 时间点（默认当前时间）
        tz: 本地时区（默认settings.TZ）

    Returns:
        YYYY-MM-DD 格式的日期
    """
    d = to_local_date(value, tz)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def start_of_local_day(
    value: Optional[Union[datetime, date]] = None,
    tz: Optional[pytz.BaseTzInfo] = None,
) -> datetime:
    """本地零点（带时区）"""
    tz = tz or get_local_tz()
    d = to_local_date(value, tz)
    return tz.localize(datetime.combine(d, time.min))


def trailing_dates(days: int, today: date) -> List[date]:
    """以today结尾的连续days天（从旧到新）"""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def weekday_label(d: date) -> str:
    """星期缩写（Mon..Sun）"""
    return WEEKDAY_LABELS[d.weekday()]
