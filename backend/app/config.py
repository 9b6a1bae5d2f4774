from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_APP_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _APP_DIR.parent
_REPO_ROOT = _BACKEND_DIR.parent

_DEFAULT_REFRESH_HOUR = 1
_DEFAULT_REFRESH_MINUTE = 0


def _load_root_dotenv() -> None:
    """
    统一从仓库根目录读取 `.env`（并保证其优先级最高）。

    说明：
    - 启动脚本通常会 `cd backend`，导致工具默认只会找子目录下的 `.env`。
    - 这里显式加载：先加载 `backend/.env`，再加载根目录 `.env`，并且 `override=True`，确保根目录 `.env` 优先。
    """

    backend_env = _BACKEND_DIR / ".env"
    root_env = _REPO_ROOT / ".env"

    for env_file in (backend_env, root_env):
        if env_file.exists():
            load_dotenv(env_file, override=True, encoding="utf-8")


class Settings(BaseSettings):
    """Application settings"""

    # Server（供 run.py 使用）
    backend_host: str = "0.0.0.0"
    backend_port: int = 8080
    backend_reload: bool = True

    # Database
    # 优先使用 DATABASE_URL；不配置时再使用 SQLITE_DB_PATH 生成 sqlite URL
    database_url: str | None = None
    sqlite_db_path: str = "weather_diary.db"

    # API
    # 默认不加前缀：/create/diary、/read/diary 等路径直接挂在根上
    api_prefix: str = ""
    debug: bool = True
    # 是否输出 SQLAlchemy 的 SQL 日志；排查 SQL/事务时再临时打开
    sql_echo: bool = False

    # CORS
    # - 逗号分隔（例如：http://localhost:3000,http://127.0.0.1:3000）
    # - 默认 "*" 表示允许所有来源（此时会强制关闭 allow_credentials）
    cors_allow_origins: str = "*"
    cors_allow_credentials: bool = False
    cors_allow_methods: str = "*"
    cors_allow_headers: str = "*"

    # OpenWeatherMap
    # - OPENWEATHERMAP_KEY 是唯一必填的密钥，启动时校验（见 require_weather_key）
    # - 位置固定为 WEATHER_CITY；WEATHER_UNITS 不配置时沿用接口默认单位（开尔文）
    openweathermap_key: str | None = None
    openweathermap_base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_city: str = "seoul"
    weather_units: str | None = None
    weather_http_timeout_seconds: float = 5.0
    weather_http_trust_env: bool = True

    # Weather refresh（每日定时把“今天的天气”写入 date_weather 表）
    # - TIMEZONE 同时决定 cron 的触发时区与“今天”的日期
    weather_refresh_enabled: bool = True
    weather_refresh_hour: int = _DEFAULT_REFRESH_HOUR
    weather_refresh_minute: int = _DEFAULT_REFRESH_MINUTE
    weather_refresh_on_startup: bool = False
    timezone: str = "Asia/Seoul"

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        name = (value or "").strip()
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"未知的时区: {value!r}") from e
        return name

    @model_validator(mode="after")
    def _build_database_url_if_missing(self) -> "Settings":
        if self.database_url and self.database_url.strip():
            return self

        db_path = Path(self.sqlite_db_path)
        if not db_path.is_absolute():
            db_path = (_REPO_ROOT / db_path).resolve()

        # SQLAlchemy 在 Windows 下推荐使用形如：sqlite+aiosqlite:///C:/path/to/db 的写法
        self.database_url = f"sqlite+aiosqlite:///{db_path.as_posix()}"
        return self

    @model_validator(mode="after")
    def _normalize_weather(self) -> "Settings":
        if not 0 <= int(self.weather_refresh_hour) <= 23:
            self.weather_refresh_hour = _DEFAULT_REFRESH_HOUR
        if not 0 <= int(self.weather_refresh_minute) <= 59:
            self.weather_refresh_minute = _DEFAULT_REFRESH_MINUTE

        if self.weather_http_timeout_seconds <= 0:
            self.weather_http_timeout_seconds = 5.0

        self.weather_city = (self.weather_city or "").strip() or "seoul"
        self.weather_units = (self.weather_units or "").strip() or None

        key = (self.openweathermap_key or "").strip()
        self.openweathermap_key = key or None
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def require_weather_key(self) -> str:
        """返回 OPENWEATHERMAP_KEY；未配置时直接报错（服务启动时调用）。"""
        if not self.openweathermap_key:
            raise RuntimeError("缺少天气接口密钥：请在 .env 中配置 OPENWEATHERMAP_KEY")
        return self.openweathermap_key

    model_config = SettingsConfigDict(
        case_sensitive=False
    )


_load_root_dotenv()
settings = Settings()
