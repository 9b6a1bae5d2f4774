from __future__ import annotations

import re
from typing import Any


_CONTROL_RE = re.compile(r"[\r\n\t]+")


def _sanitize_text(text: str, *, max_len: int) -> str:
    """把异常文本压缩成更适合日志/落盘的短字符串（避免换行、控制字符、超长）。"""
    if max_len <= 0:
        return ""
    cleaned = _CONTROL_RE.sub(" ", text).strip()
    if len(cleaned) > max_len:
        return f"{cleaned[:max_len]}…"
    return cleaned


def exception_summary(exc: BaseException, *, max_len: int = 200) -> str:
    """生成对外更安全的异常摘要：默认仅保留异常类型 + 截断后的消息。"""
    name = type(exc).__name__
    msg = _sanitize_text(str(exc), max_len=max_len)
    return f"{name}: {msg}" if msg else name


def safe_str(value: Any, *, max_len: int = 200) -> str:
    """把任意值转换为适合对外/日志展示的短文本。"""
    return _sanitize_text(str(value), max_len=max_len)


class WeatherDiaryError(Exception):
    """业务异常基类。

    说明：
    - 核心逻辑只抛出这些异常，不直接拼装 HTTP 响应；
    - 由 main.py 里的 exception handler 统一翻译成状态码（status_code）和稳定的错误码（code）。
    """

    status_code = 500
    code = "INTERNAL_ERROR"


class MalformedInputError(WeatherDiaryError):
    """请求参数格式错误（例如日期不是 YYYY-MM-DD）。"""

    status_code = 400
    code = "MALFORMED_INPUT"


class InvalidRangeError(WeatherDiaryError):
    """日期范围非法：开始日期晚于结束日期。"""

    status_code = 400
    code = "INVALID_RANGE"


class NotFoundError(WeatherDiaryError):
    status_code = 404
    code = "NOT_FOUND"


class WeatherFetchError(WeatherDiaryError):
    """调用天气接口失败（网络异常 / 返回无法解析 / 缺少字段）。"""

    status_code = 502
    code = "WEATHER_FETCH_FAILED"


class WeatherNetworkError(WeatherFetchError):
    """天气接口网络层失败（超时、连接失败等）。"""


class StorageError(WeatherDiaryError):
    """数据库写入/连接失败。"""

    status_code = 500
    code = "STORAGE_ERROR"
