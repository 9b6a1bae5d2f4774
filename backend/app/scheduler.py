"""Scheduler for the daily weather refresh"""
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Settings, settings
from . import database
from .services import DiaryService, WeatherClient

logger = logging.getLogger(__name__)


class WeatherRefreshScheduler:
    """每日天气刷新定时任务调度器"""

    def __init__(self, config: Settings | None = None, weather_client: WeatherClient | None = None):
        self.config = config or settings
        self.weather_client = weather_client
        # 关键约束：
        # - max_instances=1：避免刷新任务重入（上一次未完成时不并发启动下一次）
        # - coalesce=True：如果发生 misfire，则合并为一次执行（避免堆积）
        self.scheduler = AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1},
            timezone=self.config.tzinfo,
        )

    async def refresh_weather(self) -> bool:
        """抓取今天的天气并写入 date_weather。

        没有调用方在等待结果：失败只记日志，不向外抛出，下一次定时触发即是唯一的重试。
        """
        logger.info("[REFRESH] Starting daily weather refresh...")

        async with database.AsyncSessionLocal() as db:
            service = DiaryService(
                db,
                weather_client=self.weather_client or WeatherClient(self.config),
                config=self.config,
            )
            try:
                await service.save_today_weather()
            except Exception as e:
                logger.exception("[REFRESH] Weather refresh failed: %s", e)
                return False

        logger.info("[REFRESH] Daily weather refresh completed")
        return True

    def start(self):
        """启动定时任务

        WEATHER_REFRESH_ON_STARTUP=true 时，把 cron 任务的首次运行时间设为“现在”，
        而不是另起一个后台任务：这样首次刷新同样受 max_instances=1 约束，
        不会与 cron 触发的刷新并发执行。
        """
        if not self.config.weather_refresh_enabled:
            logger.info("[SCHEDULER] Weather refresh disabled")
            return

        if getattr(self.scheduler, "running", False):
            logger.info("[SCHEDULER] Scheduler already running")
            return

        hour = int(self.config.weather_refresh_hour)
        minute = int(self.config.weather_refresh_minute)
        job_kwargs = {}
        if self.config.weather_refresh_on_startup:
            job_kwargs["next_run_time"] = datetime.now(self.config.tzinfo)
            logger.info("[SCHEDULER] Initial weather refresh scheduled to run now")

        self.scheduler.add_job(
            self.refresh_weather,
            trigger=CronTrigger(hour=hour, minute=minute, timezone=self.config.tzinfo),
            id="refresh_weather",
            name=f"Save today's weather daily at {hour:02d}:{minute:02d}",
            replace_existing=True,
            **job_kwargs,
        )

        self.scheduler.start()
        logger.info(
            "[SCHEDULER] Scheduler started: weather refresh daily at %02d:%02d (%s)",
            hour,
            minute,
            self.config.timezone,
        )

    def shutdown(self):
        """关闭定时任务"""
        if not getattr(self.scheduler, "running", False):
            return
        self.scheduler.shutdown(wait=False)
        logger.info("[SCHEDULER] Scheduler stopped")


# 全局调度器实例
scheduler = WeatherRefreshScheduler()
