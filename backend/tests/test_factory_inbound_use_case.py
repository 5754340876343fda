from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.domain_errors import DomainError
from app.models import FactoryMessage, Notification, TeamNote
from app.schemas import WeComInboundRequest
from app.use_cases import factory_inbound
from app.use_cases.factory_inbound import InboundHooks, receive_factory_message_use_case

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
TOKEN = "factory-token"


class _SessionStub:
    def __init__(self) -> None:
        self.added: list[object] = []
        self.flush_calls = 0
        self.commit_calls = 0
        self.rollback_calls = 0

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def flush(self) -> None:
        self.flush_calls += 1

    def commit(self) -> None:
        self.commit_calls += 1

    def rollback(self) -> None:
        self.rollback_calls += 1

    def of_type(self, model) -> list:
        return [item for item in self.added if isinstance(item, model)]


def _supplier():
    return SimpleNamespace(id=uuid4(), supplier_name="Shenzhen Widgets", wecom_webhook_token=TOKEN)


def _member(role: str, *, is_active: bool = True):
    return SimpleNamespace(id=uuid4(), role=role, is_active=is_active)


def _po(status: str, *, team=()):
    return SimpleNamespace(
        id=uuid4(),
        po_number="PO-2024-001",
        status=status,
        assigned_team=[member.id for member in team],
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


def _hooks(*, supplier, po=None, team=(), author_id=None, prior=None) -> InboundHooks:
    return InboundHooks(
        get_supplier=lambda _db, supplier_id: supplier if supplier and supplier.id == supplier_id else None,
        find_purchase_order_by_number=lambda _db, number: po if po and po.po_number == number else None,
        get_team_members=lambda _db, _po: list(team),
        get_system_author_id=lambda _db: author_id,
        find_prior_inbound_message=lambda _db, **_kwargs: prior,
        now_utc=lambda: NOW,
    )


def _request(supplier, content: str, **overrides) -> WeComInboundRequest:
    values = {"supplier_id": supplier.id, "token": TOKEN, "content": content, "from_user": "factory-bot"}
    values.update(overrides)
    return WeComInboundRequest(**values)


def test_confirmed_sets_confirmation_time_and_mentions_purchasing() -> None:
    supplier = _supplier()
    purchaser = _member("purchase_manager")
    logistics = _member("logistics")
    po = _po("pending", team=[purchaser, logistics])
    author_id = uuid4()
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "CONFIRMED PO-2024-001"),
        hooks=_hooks(supplier=supplier, po=po, team=[purchaser, logistics], author_id=author_id),
    )

    assert result.success is True
    assert result.processed is True
    assert result.action == "CONFIRMED"
    assert result.po_id == po.id
    assert po.status == "pending"
    assert po.factory_confirmed_at == NOW
    assert po.last_factory_reply_at == NOW

    [message] = db.of_type(FactoryMessage)
    [note] = db.of_type(TeamNote)
    assert message.direction == "inbound"
    assert message.status == "delivered"
    assert message.parsed_action == "CONFIRMED"
    assert message.purchase_order_id == po.id
    assert message.team_note_id == note.id
    assert message.processed_at == NOW
    assert note.author_id == author_id
    assert note.source_message_id == message.id
    assert note.is_supplier_visible is True
    assert note.mentions == [purchaser.id]
    assert "工厂确认" in note.content

    [notification] = db.of_type(Notification)
    assert notification.user_id == purchaser.id
    assert notification.type == "wecom"
    assert notification.title == "工厂消息: CONFIRMED"
    assert notification.entity_id == po.id
    assert notification.action_url.endswith(f"/dashboard/purchase-orders/{po.id}")
    assert db.commit_calls == 2


def test_shipped_moves_status_and_records_tracking() -> None:
    supplier = _supplier()
    po = _po("production_complete")
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "SHIPPED PO-2024-001 SF1234567890"),
        hooks=_hooks(supplier=supplier, po=po),
    )

    assert result.processed is True
    assert po.status == "shipped"
    assert po.shipped_at == NOW
    assert po.factory_tracking_number == "SF1234567890"
    [note] = db.of_type(TeamNote)
    assert "SF1234567890" in note.content
    assert note.mentions is None
    assert db.of_type(Notification) == []


def test_qc_fail_records_reason_and_alerts_quality_production_and_project() -> None:
    supplier = _supplier()
    team = [
        _member("quality_team"),
        _member("production_manager"),
        _member("project_manager"),
        _member("sales_manager"),
        _member("quality_team", is_active=False),
    ]
    po = _po("production_complete", team=team)
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "QC_FAIL PO-2024-001 broken zipper"),
        hooks=_hooks(supplier=supplier, po=po, team=team),
    )

    assert result.processed is True
    assert po.status == "production_complete"
    assert po.factory_qc_status == "failed: broken zipper"
    [note] = db.of_type(TeamNote)
    assert note.mentions == [team[0].id, team[1].id, team[2].id]
    assert len(db.of_type(Notification)) == 3


def test_unrecognized_text_is_kept_but_not_processed() -> None:
    supplier = _supplier()
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "HELLO"),
        hooks=_hooks(supplier=supplier),
    )

    assert result.success is True
    assert result.processed is False
    assert result.action is None
    [message] = db.of_type(FactoryMessage)
    assert message.parsed_action is None
    assert message.message_type == "unknown"
    assert message.status == "read"
    assert message.content == "HELLO"
    assert db.of_type(TeamNote) == []


def test_unknown_order_number_is_recorded_without_processing() -> None:
    supplier = _supplier()
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "CONFIRMED PO-9999"),
        hooks=_hooks(supplier=supplier, po=None),
    )

    assert result.processed is False
    assert result.action == "CONFIRMED"
    assert result.po_number == "PO-9999"
    assert result.po_id is None
    [message] = db.of_type(FactoryMessage)
    assert message.status == "read"
    assert message.purchase_order_id is None
    assert db.of_type(TeamNote) == []


def test_late_event_keeps_status_but_still_notes_the_team() -> None:
    supplier = _supplier()
    po = _po("shipped")
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "PRODUCTION_START PO-2024-001"),
        hooks=_hooks(supplier=supplier, po=po),
    )

    assert result.processed is True
    assert po.status == "shipped"
    assert po.production_started_at == NOW
    assert len(db.of_type(TeamNote)) == 1


def test_invalid_token_is_rejected_before_anything_is_written() -> None:
    supplier = _supplier()
    db = _SessionStub()

    with pytest.raises(DomainError, match="Invalid token") as exc:
        receive_factory_message_use_case(
            db=db,
            request=_request(supplier, "CONFIRMED PO-2024-001", token="wrong"),
            hooks=_hooks(supplier=supplier),
        )

    assert exc.value.http_status == 401
    assert exc.value.code == "INVALID_TOKEN"
    assert db.added == []
    assert db.commit_calls == 0


def test_supplier_without_token_never_authenticates() -> None:
    supplier = _supplier()
    supplier.wecom_webhook_token = None
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        receive_factory_message_use_case(
            db=db,
            request=_request(supplier, "CONFIRMED PO-2024-001"),
            hooks=_hooks(supplier=supplier),
        )

    assert exc.value.http_status == 401


def test_unknown_supplier_is_not_found() -> None:
    supplier = _supplier()
    db = _SessionStub()

    with pytest.raises(DomainError, match="Supplier not found") as exc:
        receive_factory_message_use_case(
            db=db,
            request=_request(supplier, "CONFIRMED PO-2024-001"),
            hooks=_hooks(supplier=None),
        )

    assert exc.value.http_status == 404
    assert exc.value.code == "SUPPLIER_NOT_FOUND"
    assert db.added == []


def test_redelivered_message_is_recorded_but_not_applied_again() -> None:
    supplier = _supplier()
    po = _po("production_complete")
    prior = SimpleNamespace(id=uuid4(), purchase_order_id=po.id, status="delivered")
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "SHIPPED PO-2024-001 SF1", msg_id="wx-msg-1"),
        hooks=_hooks(supplier=supplier, po=po, prior=prior),
    )

    assert result.duplicate is True
    assert result.processed is False
    assert po.status == "production_complete"
    assert po.shipped_at is None
    [message] = db.of_type(FactoryMessage)
    assert message.external_message_id == "wx-msg-1"
    assert message.status == "read"
    assert message.meta_data["duplicate_of"] == str(prior.id)
    assert message.purchase_order_id == po.id
    assert db.of_type(TeamNote) == []


def test_processing_failure_still_acknowledges_receipt() -> None:
    supplier = _supplier()
    po = _po("confirmed")
    db = _SessionStub()

    def _broken_team_lookup(_db, _po):
        raise RuntimeError("team lookup failed")

    hooks = _hooks(supplier=supplier, po=po)
    hooks = InboundHooks(
        get_supplier=hooks.get_supplier,
        find_purchase_order_by_number=hooks.find_purchase_order_by_number,
        get_team_members=_broken_team_lookup,
        get_system_author_id=hooks.get_system_author_id,
        find_prior_inbound_message=hooks.find_prior_inbound_message,
        now_utc=hooks.now_utc,
    )

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "PRODUCTION_START PO-2024-001"),
        hooks=hooks,
    )

    assert result.success is True
    assert result.processed is False
    assert result.po_id == po.id
    assert db.rollback_calls == 1
    [message] = db.of_type(FactoryMessage)
    assert message.status == "read"
    assert message.purchase_order_id == po.id
    assert db.commit_calls == 2


def test_redelivery_of_unprocessed_message_is_applied() -> None:
    supplier = _supplier()
    po = _po("production_complete")
    prior = SimpleNamespace(id=uuid4(), purchase_order_id=po.id, status="read")
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "SHIPPED PO-2024-001 SF1", msg_id="wx-1"),
        hooks=_hooks(supplier=supplier, po=po, prior=prior),
    )

    assert result.duplicate is False
    assert result.processed is True
    assert po.status == "shipped"
    assert po.factory_tracking_number == "SF1"
    [message] = db.of_type(FactoryMessage)
    assert message.status == "delivered"
    assert "duplicate_of" not in message.meta_data
    assert len(db.of_type(TeamNote)) == 1


def test_oversized_delay_is_recorded_as_unrecognized() -> None:
    supplier = _supplier()
    po = _po("in_production")
    content = "DELAY PO-2024-001 " + "9" * 5000 + " flood"
    db = _SessionStub()

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, content),
        hooks=_hooks(supplier=supplier, po=po),
    )

    assert result.success is True
    assert result.processed is False
    assert po.delay_days is None
    [message] = db.of_type(FactoryMessage)
    assert message.content == content
    assert message.parsed_action is None
    assert message.status == "read"


def test_parser_failure_still_records_receipt(monkeypatch) -> None:
    supplier = _supplier()
    db = _SessionStub()

    def _broken_parser(_content):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(factory_inbound, "parse_factory_message", _broken_parser)

    result = receive_factory_message_use_case(
        db=db,
        request=_request(supplier, "CONFIRMED PO-2024-001"),
        hooks=_hooks(supplier=supplier),
    )

    assert result.success is True
    assert result.processed is False
    assert result.action is None
    [message] = db.of_type(FactoryMessage)
    assert message.status == "read"
    assert message.content == "CONFIRMED PO-2024-001"
