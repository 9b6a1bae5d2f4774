"""Shared route dependencies"""

from __future__ import annotations

from datetime import date

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db, get_readonly_db
from ..services import DiaryService
from ..utils.errors import MalformedInputError


def parse_date_yyyy_mm_dd(value: str | None, field_name: str) -> date:
    text = "" if value is None else str(value).strip()
    if not text:
        raise MalformedInputError(f"{field_name} is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise MalformedInputError(f"{field_name} must be YYYY-MM-DD") from e


async def read_text_body(request: Request) -> str:
    """读取原始请求体作为日记内容（text/plain，不做 JSON 解析）。"""
    raw = await request.body()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInputError("request body must be UTF-8 text") from e


def get_diary_service(db: AsyncSession = Depends(get_db)) -> DiaryService:
    return DiaryService(db)


def get_readonly_diary_service(db: AsyncSession = Depends(get_readonly_db)) -> DiaryService:
    return DiaryService(db)
