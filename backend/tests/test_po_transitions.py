from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.services.factory_grammar import parse_factory_message
from app.services.po_transitions import (
    apply_purchase_order_update,
    is_forward_transition,
    transition_for,
)

AT = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _po(status: str):
    return SimpleNamespace(
        status=status,
        factory_confirmed_at=None,
        production_started_at=None,
        production_completed_at=None,
        factory_qc_status=None,
        shipped_at=None,
        factory_tracking_number=None,
        delay_days=None,
        delay_reason=None,
        last_factory_reply_at=None,
    )


def _apply(po, content: str):
    event = parse_factory_message(content)
    return apply_purchase_order_update(po, transition_for(event, at=AT), at=AT)


@pytest.mark.parametrize(
    ("current", "target", "expected"),
    [
        ("draft", "in_production", True),
        ("confirmed", "in_production", True),
        ("in_production", "in_production", False),
        ("shipped", "in_production", False),
        ("production_complete", "shipped", True),
        ("delivered", "shipped", False),
        ("cancelled", "in_production", False),
        ("cancelled", "shipped", False),
        (None, "shipped", True),
    ],
)
def test_forward_transition_rule(current, target, expected) -> None:
    assert is_forward_transition(current_status=current, target_status=target) is expected


def test_production_start_moves_confirmed_order_forward() -> None:
    po = _po("confirmed")

    applied = _apply(po, "PRODUCTION_START PO-2024-001")

    assert applied.status_changed is True
    assert applied.old_status == "confirmed"
    assert po.status == "in_production"
    assert po.production_started_at == AT
    assert po.last_factory_reply_at == AT


def test_late_production_start_keeps_status_but_records_timestamp() -> None:
    po = _po("shipped")

    applied = _apply(po, "PRODUCTION_START PO-2024-001")

    assert applied.status_changed is False
    assert po.status == "shipped"
    assert po.production_started_at == AT


def test_confirmed_only_sets_confirmation_time() -> None:
    po = _po("pending")

    _apply(po, "CONFIRMED PO-2024-001")

    assert po.status == "pending"
    assert po.factory_confirmed_at == AT


def test_shipped_records_tracking_number() -> None:
    po = _po("production_complete")

    _apply(po, "SHIPPED PO-2024-001 SF1234567890")

    assert po.status == "shipped"
    assert po.shipped_at == AT
    assert po.factory_tracking_number == "SF1234567890"


def test_shipped_without_tracking_leaves_existing_tracking_number() -> None:
    po = _po("production_complete")
    po.factory_tracking_number = "EXISTING"

    _apply(po, "SHIPPED PO-2024-001")

    assert po.factory_tracking_number == "EXISTING"


def test_qc_results_do_not_change_status() -> None:
    passed = _po("production_complete")
    failed = _po("production_complete")

    _apply(passed, "QC_PASS PO-1")
    _apply(failed, "QC_FAIL PO-1 尺寸偏差")

    assert passed.status == "production_complete"
    assert passed.factory_qc_status == "passed"
    assert failed.factory_qc_status == "failed: 尺寸偏差"


def test_qc_fail_without_reason() -> None:
    po = _po("in_production")

    _apply(po, "QC_FAIL PO-1")

    assert po.factory_qc_status == "failed"


def test_delay_records_days_and_reason() -> None:
    po = _po("in_production")

    _apply(po, "DELAY PO-2024-001 5 原材料延迟")

    assert po.status == "in_production"
    assert po.delay_days == 5
    assert po.delay_reason == "原材料延迟"


def test_cancelled_order_is_never_revived() -> None:
    po = _po("cancelled")

    applied = _apply(po, "SHIPPED PO-1 SF1")

    assert applied.status_changed is False
    assert po.status == "cancelled"
    assert po.shipped_at == AT
