from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import select

from app.core.config import get_settings
from app.db.models.commission_tiers import CommissionTier
from app.db.session import SessionLocal
from app.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _check_result(error: str | None = None, **extra: Any) -> dict[str, Any]:
    if error is not None:
        return {"status": "failed", "error": error}
    return {"status": "ok", **extra}


async def _check_database() -> dict[str, Any]:
    # The ledger cannot price a sale without a base tier.
    try:
        async with SessionLocal() as session:
            base_tier_id = await session.scalar(
                select(CommissionTier.id).where(CommissionTier.min_sales == 0).limit(1)
            )
    except Exception:
        logger.exception("health_database_check_failed")
        return _check_result("database_unavailable")
    if base_tier_id is None:
        return _check_result("base_tier_missing")
    return _check_result()


async def _check_redis() -> dict[str, Any]:
    client = Redis.from_url(get_settings().redis_url)
    try:
        if await client.ping() is not True:
            return _check_result("redis_unexpected_ping")
        return _check_result()
    except Exception:
        logger.exception("health_redis_check_failed")
        return _check_result("redis_unavailable")
    finally:
        await client.aclose()


def _ping_celery_workers() -> dict[str, Any]:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        replies = (inspector.ping() if inspector is not None else None) or {}
    except Exception:
        logger.exception("health_celery_check_failed")
        return _check_result("celery_unavailable")
    if not replies:
        return _check_result("celery_no_workers")
    return _check_result(workers=len(replies))


async def _collect_checks() -> dict[str, dict[str, Any]]:
    database, redis, celery = await asyncio.gather(
        _check_database(),
        _check_redis(),
        asyncio.to_thread(_ping_celery_workers),
    )
    return {"database": database, "redis": redis, "celery": celery}


def _checks_response(checks: dict[str, dict[str, Any]], *, ok_label: str, failed_label: str) -> JSONResponse:
    healthy = all(check.get("status") == "ok" for check in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": ok_label if healthy else failed_label, "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/health")
async def health() -> JSONResponse:
    return _checks_response(await _collect_checks(), ok_label="ok", failed_label="degraded")


@router.get("/ready")
async def ready() -> JSONResponse:
    return _checks_response(await _collect_checks(), ok_label="ready", failed_label="not_ready")
