from .weather_client import WeatherClient
from .weather_cache import WeatherCache
from .diary_store import DiaryStore
from .diary_service import DiaryService

__all__ = ["WeatherClient", "WeatherCache", "DiaryStore", "DiaryService"]
