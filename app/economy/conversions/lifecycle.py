from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.conversions import Conversion
from app.db.repo.audit_logs_repo import AuditLogsRepo
from app.db.repo.conversions_repo import ConversionsRepo
from app.economy.cashback.service import CashbackService
from app.economy.commissions.errors import NotFoundError
from app.economy.conversions.rules import ensure_transition
from app.economy.conversions.types import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PAID

logger = structlog.get_logger(__name__)


async def _load_for_update(session: AsyncSession, conversion_id: int) -> Conversion:
    conversion = await ConversionsRepo.get_by_id_for_update(session, conversion_id)
    if conversion is None:
        raise NotFoundError("conversion", conversion_id)
    return conversion


async def _write_audit(
    session: AsyncSession,
    *,
    conversion: Conversion,
    admin_id: int | None,
    action: str,
    old_status: str,
    reason: str | None = None,
) -> None:
    new_values: dict[str, object] = {"status": conversion.status}
    if reason is not None:
        new_values["reason"] = reason
    await AuditLogsRepo.create(
        session,
        admin_id=admin_id,
        action=action,
        entity_type="conversion",
        entity_id=str(conversion.id),
        old_values={"status": old_status},
        new_values=new_values,
    )


async def confirm_locked(
    session: AsyncSession,
    conversion: Conversion,
    *,
    admin_id: int | None,
    now_utc: datetime,
) -> Conversion:
    old_status = conversion.status
    ensure_transition(conversion_id=conversion.id, current_status=old_status, target_status=STATUS_CONFIRMED)
    conversion.status = STATUS_CONFIRMED
    conversion.confirmed_at = now_utc
    await _write_audit(
        session,
        conversion=conversion,
        admin_id=admin_id,
        action="conversion.confirmed",
        old_status=old_status,
    )
    await session.flush()
    return conversion


async def pay_locked(
    session: AsyncSession,
    conversion: Conversion,
    *,
    admin_id: int | None,
    now_utc: datetime,
) -> Conversion:
    old_status = conversion.status
    ensure_transition(conversion_id=conversion.id, current_status=old_status, target_status=STATUS_PAID)
    conversion.status = STATUS_PAID
    conversion.paid_at = now_utc
    await _write_audit(
        session,
        conversion=conversion,
        admin_id=admin_id,
        action="conversion.paid",
        old_status=old_status,
    )
    await session.flush()
    return conversion


async def cancel_locked(
    session: AsyncSession,
    conversion: Conversion,
    *,
    admin_id: int | None,
    reason: str,
) -> Conversion:
    old_status = conversion.status
    ensure_transition(conversion_id=conversion.id, current_status=old_status, target_status=STATUS_CANCELLED)
    conversion.status = STATUS_CANCELLED

    if conversion.buyer_user_id is not None and conversion.buyer_share > 0:
        await CashbackService.clawback(
            session,
            user_id=conversion.buyer_user_id,
            amount=conversion.buyer_share,
            conversion_id=conversion.id,
            reason=reason,
        )

    await _write_audit(
        session,
        conversion=conversion,
        admin_id=admin_id,
        action="conversion.cancelled",
        old_status=old_status,
        reason=reason,
    )
    await session.flush()
    logger.info(
        "conversion_cancelled",
        conversion_id=conversion.id,
        previous_status=old_status,
        buyer_share=str(conversion.buyer_share),
    )
    return conversion


async def confirm_conversion(
    session: AsyncSession,
    conversion_id: int,
    *,
    admin_id: int | None,
    now_utc: datetime,
) -> Conversion:
    conversion = await _load_for_update(session, conversion_id)
    return await confirm_locked(session, conversion, admin_id=admin_id, now_utc=now_utc)


async def pay_conversion(
    session: AsyncSession,
    conversion_id: int,
    *,
    admin_id: int | None,
    now_utc: datetime,
) -> Conversion:
    conversion = await _load_for_update(session, conversion_id)
    return await pay_locked(session, conversion, admin_id=admin_id, now_utc=now_utc)


async def cancel_conversion(
    session: AsyncSession,
    conversion_id: int,
    *,
    admin_id: int | None,
    reason: str,
) -> Conversion:
    conversion = await _load_for_update(session, conversion_id)
    return await cancel_locked(session, conversion, admin_id=admin_id, reason=reason)
