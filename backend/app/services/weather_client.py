"""OpenWeatherMap 当前天气客户端

说明：
- 接口：`{OPENWEATHERMAP_BASE_URL}?q={WEATHER_CITY}&appid={OPENWEATHERMAP_KEY}`
- 位置与密钥都来自配置；调用方不传任何参数，拿到的永远是“今天”的实时天气。
- 不论 HTTP 状态码是多少，都会完整读取响应体再统一解析：
  错误响应（例如 401 的 `{"cod":401,"message":"Invalid API key"}`）同样走解析流程，
  因为缺少 main/weather 字段而以 WeatherFetchError 失败。
- 不做重试：失败直接抛给调用方（创建日记时返回 502；定时任务只写日志）。
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Callable

import httpx

from ..config import Settings, settings
from ..schemas import WeatherSnapshot
from ..utils.errors import WeatherFetchError, WeatherNetworkError, safe_str

logger = logging.getLogger(__name__)


def parse_weather_data(raw: str, *, on_date: date) -> WeatherSnapshot:
    """解析 OpenWeatherMap 的 JSON 文本，取出 main.temp / weather[0].main / weather[0].icon。"""
    try:
        data: Any = json.loads(raw)
    except ValueError as e:
        raise WeatherFetchError(f"天气接口返回非 JSON: {safe_str(raw)}") from e

    if not isinstance(data, dict):
        raise WeatherFetchError("天气接口返回非 JSON 对象")

    main = data.get("main")
    weather_list = data.get("weather")
    if (
        not isinstance(main, dict)
        or not isinstance(weather_list, list)
        or not weather_list
        or not isinstance(weather_list[0], dict)
    ):
        upstream_msg = data.get("message")
        detail = f"（上游信息: {safe_str(upstream_msg)}）" if upstream_msg else ""
        raise WeatherFetchError(f"天气接口返回缺少 main/weather 字段{detail}")

    first = weather_list[0]
    temp = main.get("temp")
    condition = first.get("main")
    icon = first.get("icon")

    # bool 是 int 的子类，这里要单独排除
    if isinstance(temp, bool) or not isinstance(temp, (int, float)):
        raise WeatherFetchError(f"天气接口返回的 main.temp 不是数字: {safe_str(temp)}")
    if not isinstance(condition, str) or not condition.strip():
        raise WeatherFetchError("天气接口返回缺少 weather[0].main")
    if not isinstance(icon, str) or not icon.strip():
        raise WeatherFetchError("天气接口返回缺少 weather[0].icon")

    return WeatherSnapshot(
        date=on_date,
        condition=condition.strip(),
        icon=icon.strip(),
        temperature=float(temp),
    )


class WeatherClient:
    """天气接口客户端"""

    def __init__(
        self,
        config: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.config = config or settings
        # transport 主要给测试注入 httpx.MockTransport
        self._transport = transport
        self._today = today or self._local_today

    def _local_today(self) -> date:
        return datetime.now(self.config.tzinfo).date()

    def _build_params(self, api_key: str) -> dict[str, str]:
        params = {"q": self.config.weather_city, "appid": api_key}
        if self.config.weather_units:
            params["units"] = self.config.weather_units
        return params

    async def _get_weather_text(self) -> str:
        api_key = self.config.openweathermap_key
        if not api_key:
            raise WeatherFetchError("未配置 OPENWEATHERMAP_KEY，无法请求天气接口")

        timeout = float(self.config.weather_http_timeout_seconds)
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                trust_env=bool(self.config.weather_http_trust_env),
                transport=self._transport,
            ) as client:
                resp = await client.get(
                    self.config.openweathermap_base_url,
                    params=self._build_params(api_key),
                )
                body = resp.text
        except httpx.TimeoutException as e:
            raise WeatherNetworkError(f"天气接口超时（{timeout:g}s 无响应）") from e
        except httpx.RequestError as e:
            raise WeatherNetworkError(f"天气接口网络异常: {safe_str(e)}") from e

        if resp.status_code != 200:
            # 非 200 的响应体同样交给解析流程，这里只留一条日志
            logger.warning(
                "[WEATHER] Upstream returned HTTP %s city=%s body=%s",
                resp.status_code,
                self.config.weather_city,
                safe_str(body),
            )
        return body

    async def fetch_current_weather(self) -> WeatherSnapshot:
        """请求实时天气并解析为 WeatherSnapshot（日期为配置时区下的“今天”）。"""
        body = await self._get_weather_text()
        snapshot = parse_weather_data(body, on_date=self._today())
        logger.info(
            "[WEATHER] Fetched live weather date=%s condition=%s temp=%s",
            snapshot.date,
            snapshot.condition,
            snapshot.temperature,
        )
        return snapshot
