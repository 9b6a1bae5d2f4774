from pydantic import BaseModel
from datetime import datetime, date

from .weather import WeatherSnapshot


class DiaryResponse(BaseModel):
    """日记响应模型"""
    id: int
    date: date
    text: str
    weather: WeatherSnapshot
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
