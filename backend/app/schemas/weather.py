from pydantic import BaseModel
from datetime import date


class WeatherSnapshot(BaseModel):
    """某一天的天气快照（不可变）

    - 来自 OpenWeatherMap 的实时结果，或 date_weather 表里缓存的记录。
    - 写入日记时按值拷贝，之后不会再变化。
    """
    date: date
    condition: str
    icon: str
    temperature: float

    class Config:
        from_attributes = True
        frozen = True
