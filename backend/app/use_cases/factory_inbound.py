"""Inbound factory replies: authenticate, record, parse, apply, announce."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, supplier_not_found
from ..models import FactoryMessage, Notification, PurchaseOrder, Supplier, TeamNote, User
from ..schemas import WeComInboundRequest, WeComInboundResponse
from ..security import tokens_match
from ..services import factory_records
from ..services.factory_event_notes import format_event_note, notification_title, resolve_mentions
from ..services.factory_grammar import ParsedEvent, parse_factory_message
from ..services.po_transitions import apply_purchase_order_update, now_utc, transition_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InboundHooks:
    """Record-store collaborators; tests swap these for in-memory fakes."""

    get_supplier: Callable[[Session, UUID], Supplier | None] = factory_records.get_supplier
    find_purchase_order_by_number: Callable[[Session, str], PurchaseOrder | None] = (
        factory_records.find_purchase_order_by_number
    )
    get_team_members: Callable[[Session, PurchaseOrder], list[User]] = factory_records.get_team_members
    get_system_author_id: Callable[[Session], UUID | None] = factory_records.get_system_author_id
    find_prior_inbound_message: Callable[..., FactoryMessage | None] = factory_records.find_prior_inbound_message
    now_utc: Callable[[], datetime] = now_utc


@dataclass
class _Outcome:
    processed: bool = False
    duplicate: bool = False
    po: PurchaseOrder | None = None


def _authenticate(*, db: Session, request: WeComInboundRequest, hooks: InboundHooks) -> Supplier:
    supplier = hooks.get_supplier(db, request.supplier_id)
    if not supplier:
        logger.warning(f"❌ Inbound WeCom message for unknown supplier {request.supplier_id}")
        raise supplier_not_found()
    if not tokens_match(supplier.wecom_webhook_token, request.token):
        logger.warning(f"❌ Invalid WeCom token for supplier {supplier.id}")
        raise DomainError(
            code="INVALID_TOKEN",
            http_status=401,
            message="Invalid token",
        )
    return supplier


def _parse_safely(content: str) -> ParsedEvent | None:
    """Parse a reply; a parser failure degrades to an unrecognized reply so receipt is never lost."""
    try:
        return parse_factory_message(content)
    except Exception as exc:
        logger.error(f"❌ Could not parse factory message, keeping it unrecognized: {exc}", exc_info=True)
        return None


def _record_receipt(
    *,
    db: Session,
    supplier: Supplier,
    request: WeComInboundRequest,
    event: ParsedEvent | None,
    received_at: datetime,
) -> FactoryMessage:
    parsed_data: dict[str, object] = {"from_user": request.from_user, "timestamp": request.timestamp}
    if event is not None:
        parsed_data.update(event.as_parsed_data())
    message = FactoryMessage(
        id=uuid4(),
        direction="inbound",
        supplier_id=supplier.id,
        message_type=event.action.value if event else "unknown",
        content=request.content,
        status="pending",
        parsed_action=event.action.value if event else None,
        parsed_data=parsed_data,
        external_message_id=request.msg_id,
        retry_count=0,
        meta_data={
            "raw_content": request.content,
            "from_user": request.from_user,
            "received_at": received_at.isoformat(),
        },
    )
    db.add(message)
    db.commit()
    return message


def _apply_event(
    *,
    db: Session,
    supplier: Supplier,
    message: FactoryMessage,
    event: ParsedEvent,
    po: PurchaseOrder,
    hooks: InboundHooks,
    at: datetime,
) -> None:
    update = transition_for(event, at=at)
    applied = apply_purchase_order_update(po, update, at=at)
    if applied.status_changed:
        logger.info(f"📦 PO {po.po_number}: {applied.old_status} -> {applied.new_status} ({event.action.value})")
    elif update.status:
        logger.info(
            f"⏭️ PO {po.po_number}: status {applied.old_status} kept, {event.action.value} is not a forward move"
        )

    mentions = resolve_mentions(event, hooks.get_team_members(db, po))
    note = TeamNote(
        id=uuid4(),
        purchase_order_id=po.id,
        author_id=hooks.get_system_author_id(db),
        content=format_event_note(event, supplier_name=supplier.supplier_name),
        mentions=mentions or None,
        is_supplier_visible=True,
        source_message_id=message.id,
    )
    db.add(note)
    db.flush()

    action_url = f"{settings.FRONTEND_BASE_URL}/dashboard/purchase-orders/{po.id}"
    for user_id in mentions:
        db.add(
            Notification(
                id=uuid4(),
                user_id=user_id,
                type="wecom",
                title=notification_title(event),
                message=f"{supplier.supplier_name} - {event.po_number}",
                entity_type="purchase_order",
                entity_id=po.id,
                action_url=action_url,
            )
        )

    message.status = "delivered"
    message.purchase_order_id = po.id
    message.team_note_id = note.id
    message.processed_at = at


def _process(
    *,
    db: Session,
    supplier: Supplier,
    message: FactoryMessage,
    event: ParsedEvent | None,
    request: WeComInboundRequest,
    hooks: InboundHooks,
    at: datetime,
    outcome: _Outcome,
) -> None:
    if event is None:
        logger.info(f"📩 Unrecognized factory message {message.id} kept for review")
        return

    if request.msg_id:
        prior = hooks.find_prior_inbound_message(
            db,
            supplier_id=supplier.id,
            external_message_id=request.msg_id,
            exclude_id=message.id,
        )
        if prior is not None and prior.status == "delivered":
            logger.info(f"⏭️ Duplicate factory message {request.msg_id} (first seen as {prior.id})")
            outcome.duplicate = True
            message.meta_data = {**(message.meta_data or {}), "duplicate_of": str(prior.id)}
            message.purchase_order_id = prior.purchase_order_id
            return

    po = hooks.find_purchase_order_by_number(db, event.po_number)
    if po is None:
        logger.info(f"🔎 PO not found for factory message {message.id}: {event.po_number}")
        return
    outcome.po = po

    _apply_event(db=db, supplier=supplier, message=message, event=event, po=po, hooks=hooks, at=at)
    outcome.processed = True


def receive_factory_message_use_case(
    *,
    db: Session,
    request: WeComInboundRequest,
    hooks: InboundHooks = InboundHooks(),
) -> WeComInboundResponse:
    """Handle one factory reply.

    Authentication failures raise before anything is written. Once authenticated the
    message is committed as ``pending`` first, so receipt survives any later failure;
    processing errors are logged and reported as ``processed=False``.
    """
    supplier = _authenticate(db=db, request=request, hooks=hooks)
    event = _parse_safely(request.content)
    at = hooks.now_utc()

    logger.info(
        f"📨 Factory message from supplier {supplier.id}: "
        f"action={event.action.value if event else None} po={event.po_number if event else None}"
    )
    message = _record_receipt(db=db, supplier=supplier, request=request, event=event, received_at=at)

    outcome = _Outcome()
    try:
        _process(
            db=db,
            supplier=supplier,
            message=message,
            event=event,
            request=request,
            hooks=hooks,
            at=at,
            outcome=outcome,
        )
        if not outcome.processed:
            message.status = "read"
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"❌ Failed to process factory message {message.id}: {exc}", exc_info=True)
        outcome.processed = False
        message.status = "read"
        if outcome.po is not None:
            message.purchase_order_id = outcome.po.id
        db.commit()

    return WeComInboundResponse(
        success=True,
        message_id=message.id,
        processed=outcome.processed,
        action=event.action.value if event else None,
        po_number=event.po_number if event else None,
        po_id=outcome.po.id if outcome.po is not None else None,
        duplicate=outcome.duplicate,
    )
