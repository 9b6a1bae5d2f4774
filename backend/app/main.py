"""FastAPI application entry point"""
import logging
import uuid
from importlib.metadata import PackageNotFoundError, version

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import (
    http_exception_handler as fastapi_http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .config import settings
from .database import engine, init_db
from .api import diaries_router, weather_router
from .scheduler import scheduler
from .utils.errors import WeatherDiaryError, exception_summary, safe_str

logger = logging.getLogger(__name__)

# 默认降低 SQLAlchemy 的日志噪声；排查 SQL 时再用 SQL_ECHO=true 打开
if not settings.sql_echo:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

try:
    APP_VERSION = version("weather-diary")
except PackageNotFoundError:
    # 未 pip install 时（直接在源码目录运行）
    APP_VERSION = "0.1.0"

app = FastAPI(
    title="Weather Diary API",
    description="Date-keyed diary with daily weather snapshots",
    version=APP_VERSION,
)


def _csv_or_wildcard(value: str) -> list[str]:
    items = [v.strip() for v in (value or "").split(",") if v.strip()]
    return ["*"] if not items or "*" in items else items


# CORS：来源为 "*" 时浏览器不允许携带凭证，强制关闭 allow_credentials
cors_origins = _csv_or_wildcard(settings.cors_allow_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"] and bool(settings.cors_allow_credentials),
    allow_methods=_csv_or_wildcard(settings.cors_allow_methods),
    allow_headers=_csv_or_wildcard(settings.cors_allow_headers),
)


def _request_id_from(request: Request) -> str:
    """透传合法的 X-Request-Id（≤64 个可打印字符），否则生成新的。"""
    incoming = (request.headers.get("x-request-id") or "").strip()
    if incoming and len(incoming) <= 64 and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """为每个请求确定 request id，并写入响应头；异常路径由 exception handler 补齐。"""
    rid = _request_id_from(request)
    request.state.request_id = rid

    response = await call_next(request)
    response.headers["X-Request-Id"] = rid
    return response


def _rid(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def _error_response(request: Request, payload: dict[str, object], status_code: int) -> JSONResponse:
    rid = _rid(request)
    if rid:
        payload["request_id"] = rid
    headers = {"X-Request-Id": rid} if rid else None
    return JSONResponse(payload, status_code=status_code, headers=headers)


@app.exception_handler(HTTPException)
async def http_exception_handler_with_request_id(request: Request, exc: HTTPException):
    response = await fastapi_http_exception_handler(request, exc)
    if rid := _rid(request):
        response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler_with_request_id(request: Request, exc: RequestValidationError):
    response = await request_validation_exception_handler(request, exc)
    if rid := _rid(request):
        response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(WeatherDiaryError)
async def weather_diary_error_handler(request: Request, exc: WeatherDiaryError):
    """把业务异常翻译成 HTTP 状态码 + 稳定错误码。"""
    if exc.status_code >= 500:
        logger.error("[ERROR] request_id=%s %s", _rid(request) or "-", exception_summary(exc), exc_info=exc)
    return _error_response(request, {"detail": exc.code, "message": safe_str(exc)}, exc.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] request_id=%s", _rid(request) or "-")
    # debug 时给一个可读摘要，否则不泄露内部细节
    detail = exception_summary(exc, max_len=200) if settings.debug else "INTERNAL_ERROR"
    return _error_response(request, {"detail": detail}, 500)


app.include_router(diaries_router, prefix=settings.api_prefix)
app.include_router(weather_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def startup_event():
    """Initialize database and start the weather refresh scheduler"""
    # 天气接口密钥是唯一必填配置，缺失时直接启动失败
    settings.require_weather_key()
    await init_db()
    logger.info("[STARTUP] Database initialized")
    # WEATHER_REFRESH_ON_STARTUP 的首次刷新也由调度器触发，见 WeatherRefreshScheduler.start
    scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop scheduler on shutdown"""
    scheduler.shutdown()


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Weather Diary API", "version": APP_VERSION}


@app.get("/health")
async def health_check():
    """Health check endpoint（包含 DB 可用性探测）。"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("[HEALTH] Database check failed: %s", exception_summary(e))
        raise HTTPException(status_code=503, detail="DB_UNAVAILABLE") from e

    return {"status": "healthy", "db": "ok"}
