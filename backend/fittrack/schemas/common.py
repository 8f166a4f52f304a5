"""
通用校验工具
"""
import math
from typing import Any

# Postgres int4 上限
INT_MAX = 2_147_483_647


def coerce_int(value: Any) -> int:
    """
    把输入转换为整数

    int直接通过；float截断小数；数字字符串（"12"、"12.7"）解析后截断。
    布尔值、非数字、NaN、无穷大一律拒绝。

    Raises:
        ValueError: 不是数字
    """
    if isinstance(value, bool):
        raise ValueError(f"不是数字: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"不是数字: {value!r}")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"不是数字: {value!r}")
        if math.isnan(number) or math.isinf(number):
            raise ValueError(f"不是数字: {value!r}")
        return int(number)
    raise ValueError(f"不是数字: {value!r}")


def coerce_counter(value: Any) -> int:
    """转换为 [0, INT_MAX] 范围内的计数值"""
    number = coerce_int(value)
    if number < 0:
        raise ValueError(f"不能为负数: {number}")
    if number > INT_MAX:
        raise ValueError(f"超出范围: {number}")
    return number
