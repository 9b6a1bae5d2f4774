"""Weather lookup API"""

from fastapi import APIRouter, Depends, Query

from ..schemas import WeatherSnapshot
from ..services import DiaryService
from .deps import get_readonly_diary_service, parse_date_yyyy_mm_dd

router = APIRouter(tags=["weather"])


@router.get("/read/weather", response_model=WeatherSnapshot)
async def read_weather(
    date: str = Query(..., description="查询日期（YYYY-MM-DD）", examples=["2023-09-23"]),
    service: DiaryService = Depends(get_readonly_diary_service),
):
    """获取某一天的天气：有缓存用缓存，没有则返回实时天气（不写入缓存）"""
    day = parse_date_yyyy_mm_dd(date, "date")
    return await service.get_weather(day)
