from .diaries import router as diaries_router
from .weather import router as weather_router

__all__ = [
    "diaries_router",
    "weather_router",
]
