"""WeCom integration health for a supplier.

Three states with explicit transitions::

    unconfigured --success--> active --failure--> failed --success--> active
          ^                                                              |
          +------------------------ configure --------------------------+
"""

from __future__ import annotations

from datetime import datetime, timezone

UNCONFIGURED = "unconfigured"
ACTIVE = "active"
FAILED = "failed"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_integration_status(status: str | None) -> str:
    if not status:
        return UNCONFIGURED
    status = status.strip().lower()
    if status in {UNCONFIGURED, ACTIVE, FAILED}:
        return status
    return UNCONFIGURED


def configure_integration(supplier, *, webhook_url: str | None) -> str:
    """New or cleared endpoint: forget previous outcomes until the next send."""
    supplier.wecom_webhook_url = (webhook_url or "").strip() or None
    supplier.wecom_integration_status = UNCONFIGURED
    supplier.wecom_error_count = 0
    supplier.wecom_last_error = None
    return supplier.wecom_integration_status


def record_delivery_success(supplier, *, is_test: bool, at: datetime | None = None) -> str:
    supplier.wecom_integration_status = ACTIVE
    supplier.wecom_error_count = 0
    supplier.wecom_last_error = None
    if is_test:
        supplier.wecom_last_test = at or now_utc()
    return supplier.wecom_integration_status


def record_delivery_failure(supplier, *, error: str) -> str:
    supplier.wecom_integration_status = FAILED
    supplier.wecom_error_count = int(supplier.wecom_error_count or 0) + 1
    supplier.wecom_last_error = error
    return supplier.wecom_integration_status


def is_deliverable(supplier) -> bool:
    """Reminder scans skip suppliers without an endpoint or in failed state."""
    if not supplier.wecom_webhook_url:
        return False
    return normalize_integration_status(supplier.wecom_integration_status) != FAILED
