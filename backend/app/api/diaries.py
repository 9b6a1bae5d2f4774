"""Diary CRUD API"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, Response

from ..schemas import DiaryResponse
from ..services import DiaryService
from .deps import (
    get_diary_service,
    get_readonly_diary_service,
    parse_date_yyyy_mm_dd,
    read_text_body,
)

router = APIRouter(tags=["diaries"])


@router.post("/create/diary")
async def create_diary(
    request: Request,
    date: str = Query(..., description="日记日期（YYYY-MM-DD）", examples=["2023-09-23"]),
    service: DiaryService = Depends(get_diary_service),
):
    """写一篇日记，并附上当天的天气"""
    day = parse_date_yyyy_mm_dd(date, "date")
    text = await read_text_body(request)
    await service.create_diary(day, text)
    return Response(status_code=200)


@router.get("/read/diary", response_model=list[DiaryResponse])
async def read_diary(
    date: str = Query(..., description="查询日期（YYYY-MM-DD）", examples=["2023-09-23"]),
    service: DiaryService = Depends(get_readonly_diary_service),
):
    """获取某一天的全部日记"""
    day = parse_date_yyyy_mm_dd(date, "date")
    return await service.read_diary(day)


@router.get("/read/diaries", response_model=list[DiaryResponse])
async def read_diaries(
    start_date: str = Query(..., alias="startDate", examples=["2023-09-23"]),
    end_date: str = Query(..., alias="endDate", examples=["2023-09-24"]),
    service: DiaryService = Depends(get_readonly_diary_service),
):
    """获取日期区间（两端都包含）内的全部日记"""
    start = parse_date_yyyy_mm_dd(start_date, "startDate")
    end = parse_date_yyyy_mm_dd(end_date, "endDate")
    return await service.read_diaries(start, end)


@router.put("/update/diary")
async def update_diary(
    request: Request,
    date: str = Query(..., description="日记日期（YYYY-MM-DD）", examples=["2023-09-23"]),
    service: DiaryService = Depends(get_diary_service),
):
    """修改某一天的第一篇日记"""
    day = parse_date_yyyy_mm_dd(date, "date")
    text = await read_text_body(request)
    await service.update_diary(day, text)
    return Response(status_code=200)


@router.delete("/delete/diary")
async def delete_diary(
    date: str = Query(..., description="日记日期（YYYY-MM-DD）", examples=["2023-09-23"]),
    service: DiaryService = Depends(get_diary_service),
):
    """删除某一天的全部日记"""
    day = parse_date_yyyy_mm_dd(date, "date")
    await service.delete_diary(day)
    return Response(status_code=200)
