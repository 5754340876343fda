from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

from app.services.supplier_health import (
    configure_integration,
    is_deliverable,
    normalize_integration_status,
    record_delivery_failure,
    record_delivery_success,
)

AT = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _supplier(**overrides):
    values = {
        "wecom_webhook_url": "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=abc",
        "wecom_integration_status": "unconfigured",
        "wecom_error_count": 0,
        "wecom_last_error": None,
        "wecom_last_test": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_failures_accumulate_and_success_resets() -> None:
    supplier = _supplier()

    record_delivery_failure(supplier, error="boom")
    record_delivery_failure(supplier, error="boom again")

    assert supplier.wecom_integration_status == "failed"
    assert supplier.wecom_error_count == 2
    assert supplier.wecom_last_error == "boom again"

    record_delivery_success(supplier, is_test=False, at=AT)

    assert supplier.wecom_integration_status == "active"
    assert supplier.wecom_error_count == 0
    assert supplier.wecom_last_error is None
    assert supplier.wecom_last_test is None


def test_successful_test_send_records_last_test() -> None:
    supplier = _supplier()

    record_delivery_success(supplier, is_test=True, at=AT)

    assert supplier.wecom_last_test == AT


def test_failure_keeps_last_test_time() -> None:
    supplier = _supplier(wecom_integration_status="active", wecom_last_test=AT)

    record_delivery_failure(supplier, error="x")

    assert supplier.wecom_last_test == AT


def test_configure_resets_health() -> None:
    supplier = _supplier(wecom_integration_status="failed", wecom_error_count=4, wecom_last_error="x")

    configure_integration(supplier, webhook_url="  https://example.test/hook  ")

    assert supplier.wecom_webhook_url == "https://example.test/hook"
    assert supplier.wecom_integration_status == "unconfigured"
    assert supplier.wecom_error_count == 0
    assert supplier.wecom_last_error is None


def test_configure_with_blank_url_clears_endpoint() -> None:
    supplier = _supplier()

    configure_integration(supplier, webhook_url="   ")

    assert supplier.wecom_webhook_url is None
    assert is_deliverable(supplier) is False


def test_deliverable_requires_url_and_non_failed_state() -> None:
    assert is_deliverable(_supplier()) is True
    assert is_deliverable(_supplier(wecom_integration_status="active")) is True
    assert is_deliverable(_supplier(wecom_integration_status="failed")) is False
    assert is_deliverable(_supplier(wecom_webhook_url=None)) is False


def test_unknown_status_normalizes_to_unconfigured() -> None:
    assert normalize_integration_status(None) == "unconfigured"
    assert normalize_integration_status("ACTIVE") == "active"
    assert normalize_integration_status("weird") == "unconfigured"
