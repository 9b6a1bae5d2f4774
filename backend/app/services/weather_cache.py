"""天气缓存（date_weather 表）

查询策略：
- 同一天可能有多条记录（表上没有唯一约束），统一按 id 升序取第一条；
- 缓存未命中时调用 WeatherClient 取实时天气，但**不写回**缓存。
  写入只发生在每日定时任务里（见 DiaryService.save_today_weather）。

已知限制：天气接口只能拿到“今天”的天气，所以对过去日期的未命中，
返回的其实是今天的实时天气。
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DateWeather
from ..schemas import WeatherSnapshot
from ..utils.errors import StorageError, exception_summary
from .weather_client import WeatherClient

logger = logging.getLogger(__name__)


class WeatherCache:
    """按日期读写天气记录"""

    def __init__(self, db: AsyncSession, client: WeatherClient):
        self.db = db
        self.client = client

    async def find_all_by_date(self, day: date) -> list[DateWeather]:
        try:
            result = await self.db.execute(
                select(DateWeather)
                .where(DateWeather.date == day)
                .order_by(DateWeather.id.asc())
            )
        except SQLAlchemyError as e:
            raise StorageError(f"查询天气失败: {exception_summary(e)}") from e
        return list(result.scalars().all())

    async def find_first_by_date(self, day: date) -> WeatherSnapshot | None:
        rows = await self.find_all_by_date(day)
        if not rows:
            return None
        return rows[0].to_snapshot()

    async def get_weather(self, day: date) -> WeatherSnapshot:
        """缓存命中返回第一条记录；未命中返回实时天气（不持久化）。"""
        cached = await self.find_first_by_date(day)
        if cached is not None:
            return cached

        logger.info("[WEATHER] Cache miss date=%s, falling back to live weather", day)
        return await self.client.fetch_current_weather()

    async def save(self, snapshot: WeatherSnapshot) -> DateWeather:
        """插入一条天气记录（只 flush，不提交；事务由调用方负责）。"""
        row = DateWeather.from_snapshot(snapshot)
        self.db.add(row)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"写入天气失败: {exception_summary(e)}") from e
        return row
