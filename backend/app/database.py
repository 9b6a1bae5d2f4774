from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import event, text
from .config import settings

# 针对 SQLite 做一些“更像生产”的默认优化：
# - busy_timeout：降低并发写入下的 “database is locked”
# - WAL：提升并发读写能力（尤其是定时刷新 + 前端查询并行）
_is_sqlite = str(settings.database_url or "").startswith("sqlite")
_connect_args = {"timeout": 30} if _is_sqlite else {}

# Create async engine (supports both SQLite and PostgreSQL)
engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args,
)

# 只有 SQLite 才需要 PRAGMA；PostgreSQL 会忽略
if _is_sqlite:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA busy_timeout=30000;")
        cursor.close()

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()


async def get_db():
    """Dependency for getting database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_readonly_db():
    """只读会话：请求结束时一律回滚，绝不提交（用于查询类接口）。"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


async def init_db():
    """Initialize database tables"""
    # 确保所有模型都已被导入，从而注册到 Base.metadata
    # （否则单独运行 init_db.py 时可能出现“没有建表”的情况）
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await _ensure_schema(conn)


async def _ensure_schema(conn) -> None:
    """补齐按日期查询用到的复合索引。

    说明：
    - 本项目未引入 Alembic，表结构由 create_all 生成；这里只做索引层面的兜底。
    - IF NOT EXISTS 同时兼容 SQLite / PostgreSQL。
    """
    # 日记：按日期查询 / 范围查询，并以 id 作为同一天内的稳定顺序
    await conn.execute(
        text("CREATE INDEX IF NOT EXISTS idx_diary_date_id ON diary (date, id)")
    )
    # 天气：同一天可能存在多条记录，始终取 id 最小的一条
    await conn.execute(
        text("CREATE INDEX IF NOT EXISTS idx_date_weather_date_id ON date_weather (date, id)")
    )
