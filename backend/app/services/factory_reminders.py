"""Which reminder (if any) a purchase order is due for today."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .wecom_templates import MessageKind

ACTIVE_REMINDER_STATUSES: tuple[str, ...] = (
    "pending",
    "confirmed",
    "in_production",
    "production_complete",
)

CONFIRMATION_REMINDER_DAYS = 3
START_REMINDER_DAYS = 2
PROGRESS_CHECK_DAYS = 7
DEADLINE_WARNING_DAYS = 7


@dataclass(frozen=True)
class ReminderDue:
    kind: MessageKind
    metadata: dict[str, object]


def _as_date(value: date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _days_since(value: date | datetime | None, today: date) -> int | None:
    ref = _as_date(value)
    if ref is None:
        return None
    return (today - ref).days


def recently_messaged(po, *, now: datetime, quiet_hours: int) -> bool:
    """True when the factory heard from us (or we from them) inside the quiet window."""
    window_start = now - timedelta(hours=quiet_hours)
    for ts in (po.last_factory_message_at, po.last_factory_reply_at):
        if ts is not None and ts > window_start:
            return True
    return False


def reminder_for(po, *, today: date) -> ReminderDue | None:
    """First matching rule for the order's status; at most one reminder per order."""
    status = (po.status or "").strip().lower()
    base: dict[str, object] = {
        "po_number": po.po_number,
        "total_value": float(po.total_value) if po.total_value is not None else None,
        "currency": po.currency,
        "delivery_date": po.delivery_date.isoformat() if po.delivery_date else None,
    }

    if status == "pending":
        days = _days_since(po.created_at, today)
        if days is not None and days >= CONFIRMATION_REMINDER_DAYS:
            return ReminderDue(MessageKind.PRODUCTION_REMINDER, {**base, "days_since_created": days})
        return None

    if status == "confirmed":
        days = _days_since(po.factory_confirmed_at, today)
        if days is not None and days >= START_REMINDER_DAYS:
            return ReminderDue(MessageKind.PRODUCTION_START_REMINDER, {**base, "days_since_confirmed": days})
        return None

    if status == "in_production":
        delivery_gap = _days_since(po.delivery_date, today)
        if delivery_gap is not None and delivery_gap > 0:
            return ReminderDue(MessageKind.PRODUCTION_OVERDUE, {**base, "days_overdue": delivery_gap})
        if delivery_gap is not None and 0 < -delivery_gap <= DEADLINE_WARNING_DAYS:
            return ReminderDue(
                MessageKind.PRODUCTION_DEADLINE_WARNING,
                {**base, "days_remaining": -delivery_gap},
            )
        days = _days_since(po.production_started_at, today)
        if days is not None and days >= PROGRESS_CHECK_DAYS:
            return ReminderDue(MessageKind.PRODUCTION_PROGRESS_CHECK, {**base, "days_in_production": days})
        return None

    if status == "production_complete" and (po.factory_qc_status or "") == "passed":
        return ReminderDue(MessageKind.SHIPPING_REMINDER, {**base, "qc_status": "已通过"})

    return None
