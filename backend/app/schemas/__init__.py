from .diary import DiaryResponse
from .weather import WeatherSnapshot

__all__ = [
    "DiaryResponse",
    "WeatherSnapshot",
]
