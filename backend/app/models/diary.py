from datetime import date as date_type

from sqlalchemy import Column, Integer, String, DateTime, Text, Date, Float
from sqlalchemy.sql import func
from ..database import Base
from ..schemas.weather import WeatherSnapshot


class Diary(Base):
    """日记表 - 存储日记内容及写入时的天气快照

    天气以“值拷贝”的方式内嵌（weather_* 字段），不引用 date_weather：
    删除日记不会影响天气表，天气表也不会反向修改已有日记。
    """
    __tablename__ = "diary"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    text = Column(Text, nullable=False, default="")
    weather_date = Column(Date, nullable=False)
    weather_condition = Column(String(50), nullable=False)
    weather_icon = Column(String(20), nullable=False)
    weather_temperature = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @classmethod
    def with_weather(cls, date: date_type, text: str, weather: WeatherSnapshot) -> "Diary":
        """构造一条新日记，并把天气快照按值拷贝进来。"""
        return cls(
            date=date,
            text=text,
            weather_date=weather.date,
            weather_condition=weather.condition,
            weather_icon=weather.icon,
            weather_temperature=weather.temperature,
        )

    @property
    def weather(self) -> WeatherSnapshot:
        return WeatherSnapshot(
            date=self.weather_date,
            condition=self.weather_condition,
            icon=self.weather_icon,
            temperature=self.weather_temperature,
        )
