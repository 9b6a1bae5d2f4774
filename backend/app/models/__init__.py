from .diary import Diary
from .date_weather import DateWeather

__all__ = [
    "Diary",
    "DateWeather",
]
