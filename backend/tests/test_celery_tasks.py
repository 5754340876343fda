from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app import celery_app
from app.domain_errors import supplier_not_found
from app.schemas import ReminderScanResult, WeComSendResponse


class _SessionStub:
    def __init__(self) -> None:
        self.rollback_calls = 0
        self.close_calls = 0

    def rollback(self) -> None:
        self.rollback_calls += 1

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def session(monkeypatch):
    db = _SessionStub()
    monkeypatch.setattr(celery_app, "SessionLocal", lambda: db)
    return db


def test_send_task_validates_payload_and_closes_session(session, monkeypatch) -> None:
    seen = []
    message_id = uuid4()

    def _send(*, db, request):
        seen.append(request)
        return WeComSendResponse(success=True, message_id=message_id)

    monkeypatch.setattr(celery_app, "send_factory_message_use_case", _send)
    supplier_id = uuid4()

    result = celery_app.send_factory_message({"supplier_id": str(supplier_id), "message_type": "po_created"})

    assert result["success"] is True
    assert result["message_id"] == str(message_id)
    assert seen[0].supplier_id == supplier_id
    assert session.close_calls == 1
    assert session.rollback_calls == 0


def test_send_task_reports_domain_rejection_without_raising(session, monkeypatch) -> None:
    def _missing(*, db, request):
        raise supplier_not_found()

    monkeypatch.setattr(celery_app, "send_factory_message_use_case", _missing)

    result = celery_app.send_factory_message({"supplier_id": str(uuid4()), "message_type": "test"})

    assert result == {"success": False, "error_message": "Supplier not found", "code": "SUPPLIER_NOT_FOUND"}
    assert session.close_calls == 1


def test_send_task_rolls_back_and_reraises_unexpected_errors(session, monkeypatch) -> None:
    def _explode(*, db, request):
        raise RuntimeError("db down")

    monkeypatch.setattr(celery_app, "send_factory_message_use_case", _explode)

    with pytest.raises(RuntimeError, match="db down"):
        celery_app.send_factory_message({"supplier_id": str(uuid4()), "message_type": "test"})

    assert session.rollback_calls == 1
    assert session.close_calls == 1


def test_reminder_scan_task_returns_summary(session, monkeypatch) -> None:
    checked_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    monkeypatch.setattr(
        celery_app,
        "run_factory_reminder_scan_use_case",
        lambda *, db: ReminderScanResult(
            reminders_sent=0, reminders=[], errors_count=0, errors=[], checked_at=checked_at
        ),
    )

    result = celery_app.run_factory_reminder_scan()

    assert result["reminders_sent"] == 0
    assert session.close_calls == 1


def test_beat_schedule_runs_reminder_scan() -> None:
    entry = celery_app.celery_app.conf.beat_schedule["factory-reminder-scan-daily"]

    assert entry["task"] == "run_factory_reminder_scan"
