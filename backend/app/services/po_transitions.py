"""Purchase-order lifecycle rules for factory-reported events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .factory_grammar import FactoryAction, ParsedEvent


PO_STATUS_SEQUENCE: tuple[str, ...] = (
    "draft",
    "pending",
    "confirmed",
    "in_production",
    "production_complete",
    "shipped",
    "delivered",
)
_TERMINAL_STATUSES: set[str] = {"delivered", "cancelled"}

_ACTION_TARGET_STATUS: dict[FactoryAction, str] = {
    FactoryAction.PRODUCTION_START: "in_production",
    FactoryAction.PRODUCTION_COMPLETE: "production_complete",
    FactoryAction.SHIPPED: "shipped",
}
_ACTION_MILESTONE_FIELD: dict[FactoryAction, str] = {
    FactoryAction.CONFIRMED: "factory_confirmed_at",
    FactoryAction.PRODUCTION_START: "production_started_at",
    FactoryAction.PRODUCTION_COMPLETE: "production_completed_at",
    FactoryAction.SHIPPED: "shipped_at",
}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PurchaseOrderUpdate:
    """Partial update implied by one factory event."""

    status: str | None = None
    milestone_field: str | None = None
    milestone_value: object = None
    extra: dict[str, object] = field(default_factory=dict)

    def field_values(self) -> dict[str, object]:
        values: dict[str, object] = {}
        if self.milestone_field:
            values[self.milestone_field] = self.milestone_value
        values.update(self.extra)
        return values


@dataclass(frozen=True)
class AppliedUpdate:
    """What actually changed on the order."""

    old_status: str | None
    new_status: str | None
    status_changed: bool
    fields: dict[str, object]


def status_rank(status: str | None) -> int:
    try:
        return PO_STATUS_SEQUENCE.index((status or "").strip().lower())
    except ValueError:
        return -1


def is_forward_transition(*, current_status: str | None, target_status: str) -> bool:
    """True when `target_status` is strictly ahead of `current_status` in the lifecycle."""
    current = (current_status or "").strip().lower()
    if current in _TERMINAL_STATUSES:
        return False
    return status_rank(target_status) > status_rank(current)


def transition_for(event: ParsedEvent, *, at: datetime | None = None) -> PurchaseOrderUpdate:
    """Map a recognized event to the order update it implies."""
    ts = at or now_utc()
    action = event.action
    milestone_field = _ACTION_MILESTONE_FIELD.get(action)
    milestone_value: object = ts if milestone_field else None
    extra: dict[str, object] = {}

    if action == FactoryAction.QC_PASS:
        milestone_field, milestone_value = "factory_qc_status", "passed"
    elif action == FactoryAction.QC_FAIL:
        milestone_field = "factory_qc_status"
        milestone_value = f"failed: {event.reason}" if event.reason else "failed"
    elif action == FactoryAction.SHIPPED and event.tracking_number:
        extra["factory_tracking_number"] = event.tracking_number
    elif action == FactoryAction.DELAY:
        extra["delay_days"] = event.days
        extra["delay_reason"] = event.reason

    return PurchaseOrderUpdate(
        status=_ACTION_TARGET_STATUS.get(action),
        milestone_field=milestone_field,
        milestone_value=milestone_value,
        extra=extra,
    )


def apply_purchase_order_update(po, update: PurchaseOrderUpdate, *, at: datetime | None = None) -> AppliedUpdate:
    """Write `update` onto `po`, never moving status backward.

    Milestone fields are written even when the status write is skipped; the
    inbound-activity timestamp is always refreshed.
    """
    ts = at or now_utc()
    old_status = po.status
    status_changed = False

    if update.status and is_forward_transition(current_status=old_status, target_status=update.status):
        po.status = update.status
        status_changed = True

    fields = update.field_values()
    for name, value in fields.items():
        setattr(po, name, value)
    po.last_factory_reply_at = ts

    return AppliedUpdate(
        old_status=old_status,
        new_status=po.status,
        status_changed=status_changed,
        fields=fields,
    )
