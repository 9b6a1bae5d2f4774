"""日记存储（diary 表）

约定：
- 同一天可以有多条日记；“第一条”统一指 id 最小（最早写入）的那条。
- 这里只 flush 不 commit，事务边界由 DiaryService 控制。
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Diary
from ..utils.errors import InvalidRangeError, NotFoundError, StorageError, exception_summary


def ensure_valid_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidRangeError(f"开始日期 {start.isoformat()} 晚于结束日期 {end.isoformat()}")


class DiaryStore:
    """日记的增删改查"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, entry: Diary) -> None:
        self.db.add(entry)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"写入日记失败: {exception_summary(e)}") from e

    async def find_by_date(self, day: date) -> list[Diary]:
        try:
            result = await self.db.execute(
                select(Diary).where(Diary.date == day).order_by(Diary.id.asc())
            )
        except SQLAlchemyError as e:
            raise StorageError(f"查询日记失败: {exception_summary(e)}") from e
        return list(result.scalars().all())

    async def find_by_date_range(self, start: date, end: date) -> list[Diary]:
        """返回 [start, end] 闭区间内的日记，按 (date, id) 排序。"""
        ensure_valid_range(start, end)
        try:
            result = await self.db.execute(
                select(Diary)
                .where(Diary.date >= start, Diary.date <= end)
                .order_by(Diary.date.asc(), Diary.id.asc())
            )
        except SQLAlchemyError as e:
            raise StorageError(f"查询日记失败: {exception_summary(e)}") from e
        return list(result.scalars().all())

    async def update_first_by_date(self, day: date, text: str) -> Diary:
        """修改当天第一条日记的内容；当天没有日记时抛 NotFoundError。"""
        try:
            result = await self.db.execute(
                select(Diary).where(Diary.date == day).order_by(Diary.id.asc()).limit(1)
            )
            diary = result.scalars().first()
            if diary is None:
                raise NotFoundError(f"{day.isoformat()} 没有日记")

            diary.text = text
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"更新日记失败: {exception_summary(e)}") from e
        return diary

    async def delete_all_by_date(self, day: date) -> int:
        """删除当天全部日记，返回删除条数（没有也不报错）。"""
        try:
            result = await self.db.execute(delete(Diary).where(Diary.date == day))
        except SQLAlchemyError as e:
            raise StorageError(f"删除日记失败: {exception_summary(e)}") from e
        return int(result.rowcount or 0)
