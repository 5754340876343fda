"""Daily scan that nudges factories about stalled purchase orders."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError
from ..models import PurchaseOrder, Supplier
from ..schemas import ReminderScanResult, WeComSendRequest, WeComSendResponse
from ..services import factory_records
from ..services.factory_reminders import ACTIVE_REMINDER_STATUSES, recently_messaged, reminder_for
from ..services.po_transitions import now_utc
from ..services.supplier_health import is_deliverable
from .factory_outbound import PURCHASE_ORDER_ENTITY, send_factory_message_use_case

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderHooks:
    list_candidates: Callable[[Session, tuple[str, ...]], list[PurchaseOrder]] = (
        factory_records.list_reminder_candidates
    )
    get_suppliers_by_ids: Callable[[Session, list[UUID]], dict[UUID, Supplier]] = (
        factory_records.get_suppliers_by_ids
    )
    send: Callable[..., WeComSendResponse] = send_factory_message_use_case
    now_utc: Callable[[], datetime] = now_utc


def run_factory_reminder_scan_use_case(
    *,
    db: Session,
    hooks: ReminderHooks = ReminderHooks(),
    quiet_hours: int | None = None,
) -> ReminderScanResult:
    now = hooks.now_utc()
    today = now.date()
    quiet = settings.FACTORY_REMINDER_QUIET_HOURS if quiet_hours is None else quiet_hours

    candidates = hooks.list_candidates(db, ACTIVE_REMINDER_STATUSES)
    supplier_ids = list({po.supplier_id for po in candidates if po.supplier_id})
    suppliers = hooks.get_suppliers_by_ids(db, supplier_ids)
    logger.info(f"⏰ Reminder scan: {len(candidates)} active POs across {len(suppliers)} suppliers")

    reminders: list[dict[str, str]] = []
    errors: list[dict[str, str]] = []

    for po in candidates:
        supplier = suppliers.get(po.supplier_id)
        if supplier is None or not is_deliverable(supplier):
            continue
        if recently_messaged(po, now=now, quiet_hours=quiet):
            logger.info(f"⏭️ Skipping {po.po_number}: factory contacted within {quiet}h")
            continue

        due = reminder_for(po, today=today)
        if due is None:
            continue

        try:
            result = hooks.send(
                db=db,
                request=WeComSendRequest(
                    supplier_id=supplier.id,
                    message_type=due.kind,
                    entity_type=PURCHASE_ORDER_ENTITY,
                    entity_id=po.id,
                    metadata=due.metadata,
                ),
            )
        except DomainError as exc:
            logger.error(f"❌ Reminder {due.kind.value} for {po.po_number} rejected: {exc}")
            errors.append({"po_number": po.po_number, "error": exc.message})
            continue

        if result.success:
            reminders.append({"po_number": po.po_number, "message_type": due.kind.value})
        else:
            errors.append({"po_number": po.po_number, "error": result.error_message or "Unknown error"})

    logger.info(f"✅ Reminder scan done: {len(reminders)} sent, {len(errors)} errors")
    return ReminderScanResult(
        reminders_sent=len(reminders),
        reminders=reminders,
        errors_count=len(errors),
        errors=errors,
        checked_at=now,
    )
