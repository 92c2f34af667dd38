from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from app.db.session import dispose_engine

T = TypeVar("T")
logger = structlog.get_logger(__name__)


async def _run_with_fresh_db_pool(awaitable: Awaitable[T], job_name: str) -> T:
    # Each asyncio.run gets a new loop; pooled asyncpg connections cannot cross loops.
    await dispose_engine()
    try:
        return await awaitable
    except Exception:
        logger.exception("async_job_failed", job=job_name)
        raise
    finally:
        await dispose_engine()


def run_async_job(awaitable: Awaitable[T], *, job_name: str = "job") -> T:
    return asyncio.run(_run_with_fresh_db_pool(awaitable, job_name))
