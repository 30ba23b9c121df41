"""
Flow Puzzle - Database Setup

SQLAlchemy async configuration and the shared Redis client.
"""

import json
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .config import settings


logger = logging.getLogger(__name__)


# ============================================
# POSTGRESQL
# ============================================

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncSession:
    """Request-scoped DB session; commits on success."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Creates missing tables."""
    from . import models  # noqa: F401  registers tables on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ============================================
# REDIS
# ============================================

redis_pool = None


async def get_redis():
    """Shared Redis client, created on first use."""
    global redis_pool

    if redis_pool is None:
        redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )

    return redis_pool


async def close_redis():
    global redis_pool

    if redis_pool:
        await redis_pool.aclose()
        redis_pool = None


# ============================================
# JSON CACHE
# ============================================

async def cache_get_json(redis, key: str):
    """Cached JSON value, or None when missing or Redis is unreachable."""
    try:
        raw = await redis.get(key)
    except RedisError as exc:
        logger.warning("[Cache] get %s failed: %s", key, exc)
        return None
    if raw is None:
        return None
    return json.loads(raw)


async def cache_set_json(redis, key: str, value, ttl_seconds: int) -> None:
    try:
        await redis.set(key, json.dumps(value), ex=ttl_seconds)
    except RedisError as exc:
        logger.warning("[Cache] set %s failed: %s", key, exc)
