from __future__ import annotations

import sys
import unittest
from datetime import date
from pathlib import Path
from typing import cast

from typing_extensions import override
from unittest.mock import AsyncMock

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeMeta
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from backend.app.config import Settings
from backend.app.database import Base as _Base  # pyright: ignore[reportAny]
from backend.app.models import DateWeather, Diary
from backend.app.schemas import WeatherSnapshot
from backend.app.services import DiaryService, DiaryStore
from backend.app.utils.errors import (
    InvalidRangeError,
    NotFoundError,
    StorageError,
    WeatherFetchError,
)

Base = cast(DeclarativeMeta, _Base)

LIVE = WeatherSnapshot(date=date(2023, 9, 23), condition="Clouds", icon="04d", temperature=18.25)


class FakeWeatherClient:
    """记录调用次数的天气客户端替身。"""

    def __init__(self, snapshot: WeatherSnapshot = LIVE, error: Exception | None = None):
        self.snapshot = snapshot
        self.error = error
        self.calls = 0

    async def fetch_current_weather(self) -> WeatherSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot


class ForbiddenWeatherClient:
    """一旦被调用就让测试失败：用于验证缓存命中时不会请求天气接口。"""

    async def fetch_current_weather(self) -> WeatherSnapshot:
        raise AssertionError("weather API must not be called when a cached record exists")


class DiaryServiceTests(unittest.IsolatedAsyncioTestCase):
    engine: AsyncEngine | None = None
    session_factory: async_sessionmaker[AsyncSession] | None = None

    @override
    async def asyncSetUp(self):
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        self.config = Settings(openweathermap_key="test-key")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @override
    async def asyncTearDown(self):
        if self.engine is not None:
            await self.engine.dispose()

    def _service(self, session: AsyncSession, client=None) -> DiaryService:
        return DiaryService(session, weather_client=client or FakeWeatherClient(), config=self.config)

    async def _count(self, model) -> int:
        assert self.session_factory is not None
        async with self.session_factory() as session:
            return int(await session.scalar(select(func.count()).select_from(model)) or 0)

    async def _seed_weather(self, *rows: WeatherSnapshot) -> None:
        assert self.session_factory is not None
        async with self.session_factory() as session:
            session.add_all([DateWeather.from_snapshot(r) for r in rows])
            await session.commit()

    async def test_create_then_read_returns_text_and_weather(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            await self._service(session).create_diary(date(2023, 9, 23), "Sunny day")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diary(date(2023, 9, 23))

        self.assertEqual([d.text for d in diaries], ["Sunny day"])
        self.assertIsNotNone(diaries[0].weather)
        self.assertEqual(diaries[0].weather, LIVE)

    async def test_create_without_cached_weather_calls_api_once_and_leaves_weather_table(self):
        assert self.session_factory is not None
        client = FakeWeatherClient()

        async with self.session_factory() as session:
            await self._service(session, client).create_diary(date(2023, 9, 23), "Sunny day")

        self.assertEqual(client.calls, 1)
        self.assertEqual(await self._count(DateWeather), 0)

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diary(date(2023, 9, 23))
        self.assertEqual(len(diaries), 1)
        self.assertEqual(diaries[0].weather_condition, "Clouds")
        self.assertEqual(diaries[0].weather_temperature, 18.25)

    async def test_create_uses_cached_weather_without_network(self):
        cached = WeatherSnapshot(date=date(2023, 9, 23), condition="Rain", icon="10d", temperature=12.0)
        await self._seed_weather(cached)

        assert self.session_factory is not None
        async with self.session_factory() as session:
            await self._service(session, ForbiddenWeatherClient()).create_diary(date(2023, 9, 23), "wet")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diary(date(2023, 9, 23))
        self.assertEqual(diaries[0].weather, cached)

    async def test_get_date_weather_prefers_lowest_id_duplicate(self):
        first = WeatherSnapshot(date=date(2023, 9, 23), condition="Mist", icon="50d", temperature=9.0)
        second = WeatherSnapshot(date=date(2023, 9, 23), condition="Clear", icon="01d", temperature=25.0)
        await self._seed_weather(first, second)

        assert self.session_factory is not None
        async with self.session_factory() as session:
            service = self._service(session, ForbiddenWeatherClient())
            got = await service.get_date_weather(date(2023, 9, 23))
            again = await service.get_date_weather(date(2023, 9, 23))

        self.assertEqual(got, first)
        self.assertEqual(again, first)

    async def test_create_fails_and_writes_nothing_when_weather_fetch_fails(self):
        assert self.session_factory is not None
        client = FakeWeatherClient(error=WeatherFetchError("boom"))

        async with self.session_factory() as session:
            with self.assertRaises(WeatherFetchError):
                await self._service(session, client).create_diary(date(2023, 9, 23), "lost")

        self.assertEqual(await self._count(Diary), 0)
        self.assertEqual(await self._count(DateWeather), 0)

    async def test_read_diaries_is_inclusive_on_both_ends(self):
        assert self.session_factory is not None
        days = [date(2023, 9, 18), date(2023, 9, 19), date(2023, 9, 20), date(2023, 9, 21), date(2023, 9, 22)]
        async with self.session_factory() as session:
            service = self._service(session)
            for day in days:
                await service.create_diary(day, f"entry {day.isoformat()}")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diaries(date(2023, 9, 19), date(2023, 9, 21))

        self.assertEqual(
            [d.date for d in diaries],
            [date(2023, 9, 19), date(2023, 9, 20), date(2023, 9, 21)],
        )

    async def test_read_diaries_single_day_range(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            await self._service(session).create_diary(date(2023, 9, 19), "only")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diaries(date(2023, 9, 19), date(2023, 9, 19))
        self.assertEqual([d.text for d in diaries], ["only"])

    async def test_read_diaries_rejects_reversed_range_before_storage(self):
        db = AsyncMock()
        service = DiaryService(db, weather_client=ForbiddenWeatherClient(), config=self.config)

        with self.assertRaises(InvalidRangeError):
            await service.read_diaries(date(2023, 9, 20), date(2023, 9, 19))

        db.execute.assert_not_awaited()

    async def test_update_changes_only_the_first_entry(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            service = self._service(session)
            await service.create_diary(date(2023, 9, 23), "morning")
            await service.create_diary(date(2023, 9, 23), "evening")

        async with self.session_factory() as session:
            await self._service(session).update_diary(date(2023, 9, 23), "rewritten")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diary(date(2023, 9, 23))

        self.assertEqual([d.text for d in diaries], ["rewritten", "evening"])

    async def test_update_keeps_weather_snapshot(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            await self._service(session).create_diary(date(2023, 9, 23), "before")

        async with self.session_factory() as session:
            await self._service(session).update_diary(date(2023, 9, 23), "after")

        async with self.session_factory() as session:
            diaries = await self._service(session).read_diary(date(2023, 9, 23))
        self.assertEqual(diaries[0].weather, LIVE)

    async def test_update_missing_date_raises_not_found(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            with self.assertRaises(NotFoundError):
                await self._service(session).update_diary(date(2023, 9, 23), "nobody home")

    async def test_delete_removes_all_entries_of_one_date_only(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            service = self._service(session)
            for text in ("a", "b", "c"):
                await service.create_diary(date(2023, 9, 23), text)
            await service.create_diary(date(2023, 9, 24), "next day")

        async with self.session_factory() as session:
            deleted = await self._service(session).delete_diary(date(2023, 9, 23))
        self.assertEqual(deleted, 3)

        async with self.session_factory() as session:
            service = self._service(session)
            self.assertEqual(await service.read_diary(date(2023, 9, 23)), [])
            remaining = await service.read_diary(date(2023, 9, 24))
        self.assertEqual([d.text for d in remaining], ["next day"])

    async def test_delete_without_entries_is_noop(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            deleted = await self._service(session).delete_diary(date(2023, 9, 23))
        self.assertEqual(deleted, 0)

    async def test_delete_does_not_touch_weather_table(self):
        cached = WeatherSnapshot(date=date(2023, 9, 23), condition="Rain", icon="10d", temperature=12.0)
        await self._seed_weather(cached)

        assert self.session_factory is not None
        async with self.session_factory() as session:
            await self._service(session).create_diary(date(2023, 9, 23), "x")
        async with self.session_factory() as session:
            await self._service(session).delete_diary(date(2023, 9, 23))

        self.assertEqual(await self._count(DateWeather), 1)

    async def test_save_today_weather_inserts_exactly_one_row(self):
        assert self.session_factory is not None
        today = WeatherSnapshot(date=date(2026, 10, 19), condition="Clear", icon="01d", temperature=21.5)

        async with self.session_factory() as session:
            await self._service(session, FakeWeatherClient(today)).save_today_weather()

        async with self.session_factory() as session:
            rows = (await session.execute(select(DateWeather))).scalars().all()

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].to_snapshot(), today)

    async def test_save_today_weather_writes_nothing_on_failure(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            with self.assertRaises(WeatherFetchError):
                await self._service(
                    session, FakeWeatherClient(error=WeatherFetchError("down"))
                ).save_today_weather()

        self.assertEqual(await self._count(DateWeather), 0)


class DiaryStoreTests(unittest.IsolatedAsyncioTestCase):
    engine: AsyncEngine | None = None
    session_factory: async_sessionmaker[AsyncSession] | None = None

    @override
    async def asyncSetUp(self):
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        self.engine = engine
        self.session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @override
    async def asyncTearDown(self):
        if self.engine is not None:
            await self.engine.dispose()

    async def test_constraint_violation_raises_storage_error(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            store = DiaryStore(session)
            broken = Diary(
                date=date(2023, 9, 23),
                text="no weather",
                weather_date=date(2023, 9, 23),
                weather_condition=None,
                weather_icon="01d",
                weather_temperature=1.0,
            )
            with self.assertRaises(StorageError):
                await store.create(broken)

    async def test_find_by_date_range_rejects_reversed_range(self):
        assert self.session_factory is not None
        async with self.session_factory() as session:
            with self.assertRaises(InvalidRangeError):
                await DiaryStore(session).find_by_date_range(date(2023, 9, 20), date(2023, 9, 19))


if __name__ == "__main__":
    unittest.main()
