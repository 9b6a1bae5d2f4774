"""日记业务服务

职责：
- 组合 DiaryStore / WeatherCache / WeatherClient 实现日记的增删改查；
- 每个写操作是一个独立事务：成功提交一次，失败整体回滚；
- 提供每日天气刷新任务的主体（save_today_weather），这是唯一写 date_weather 的入口。
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, settings
from ..models import DateWeather, Diary
from ..schemas import WeatherSnapshot
from ..utils.errors import StorageError, exception_summary
from .diary_store import DiaryStore, ensure_valid_range
from .weather_cache import WeatherCache
from .weather_client import WeatherClient

logger = logging.getLogger(__name__)


class DiaryService:
    """日记业务服务"""

    def __init__(
        self,
        db: AsyncSession,
        weather_client: WeatherClient | None = None,
        config: Settings | None = None,
    ):
        self.db = db
        self.config = config or settings
        self.weather_client = weather_client or WeatherClient(self.config)
        self.store = DiaryStore(db)
        self.weather_cache = WeatherCache(db, self.weather_client)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"提交事务失败: {exception_summary(e)}") from e

    async def get_date_weather(self, day: date) -> WeatherSnapshot:
        """取某天的天气：优先用缓存第一条；没有则直接请求实时天气。

        注意：这里故意绕开 WeatherCache.get_weather 的回退逻辑并且不写回缓存，
        创建日记时拿到的实时天气只会被拷贝进日记本身。
        """
        cached = await self.weather_cache.find_first_by_date(day)
        if cached is not None:
            return cached
        return await self.weather_client.fetch_current_weather()

    async def create_diary(self, day: date, text: str) -> Diary:
        logger.info("[DIARY] Creating diary date=%s", day)
        try:
            weather = await self.get_date_weather(day)
            diary = Diary.with_weather(day, text, weather)
            await self.store.create(diary)
        except Exception:
            await self.db.rollback()
            raise
        await self._commit()
        logger.info("[DIARY] Diary created id=%s date=%s", diary.id, day)
        return diary

    async def read_diary(self, day: date) -> list[Diary]:
        return await self.store.find_by_date(day)

    async def read_diaries(self, start: date, end: date) -> list[Diary]:
        # 先校验范围，再访问数据库
        ensure_valid_range(start, end)
        return await self.store.find_by_date_range(start, end)

    async def update_diary(self, day: date, text: str) -> Diary:
        try:
            diary = await self.store.update_first_by_date(day, text)
        except Exception:
            await self.db.rollback()
            raise
        await self._commit()
        logger.info("[DIARY] Diary updated id=%s date=%s", diary.id, day)
        return diary

    async def delete_diary(self, day: date) -> int:
        try:
            deleted = await self.store.delete_all_by_date(day)
        except Exception:
            await self.db.rollback()
            raise
        await self._commit()
        logger.info("[DIARY] Diaries deleted date=%s count=%s", day, deleted)
        return deleted

    async def get_weather(self, day: date) -> WeatherSnapshot:
        return await self.weather_cache.get_weather(day)

    async def save_today_weather(self) -> DateWeather:
        """每日刷新任务主体：取实时天气并写入 date_weather（全部成功或全部回滚）。"""
        try:
            snapshot = await self.weather_client.fetch_current_weather()
            row = await self.weather_cache.save(snapshot)
        except Exception:
            await self.db.rollback()
            raise
        await self._commit()
        logger.info(
            "[REFRESH] Weather saved date=%s condition=%s icon=%s temp=%s",
            snapshot.date,
            snapshot.condition,
            snapshot.icon,
            snapshot.temperature,
        )
        return row
