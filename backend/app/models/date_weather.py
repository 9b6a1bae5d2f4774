from sqlalchemy import Column, Integer, String, DateTime, Date, Float
from sqlalchemy.sql import func
from ..database import Base
from ..schemas.weather import WeatherSnapshot


class DateWeather(Base):
    """天气表 - 每天一条当日天气（只由每日定时任务写入）。

    说明：
    - date 没有唯一约束，重复写入是可能的；查询时按 id 升序取第一条。
    - 记录写入后不会被修改，也没有删除入口。
    """
    __tablename__ = "date_weather"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    condition = Column(String(50), nullable=False)  # 例如 Clear / Clouds / Rain
    icon = Column(String(20), nullable=False)
    temperature = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @classmethod
    def from_snapshot(cls, snapshot: WeatherSnapshot) -> "DateWeather":
        return cls(
            date=snapshot.date,
            condition=snapshot.condition,
            icon=snapshot.icon,
            temperature=snapshot.temperature,
        )

    def to_snapshot(self) -> WeatherSnapshot:
        return WeatherSnapshot.model_validate(self)
