"""Outbound factory notifications: compose, record, deliver, track health."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..domain_errors import DomainError, purchase_order_not_found, supplier_not_found
from ..models import FactoryMessage, PurchaseOrder, Supplier
from ..schemas import WeComSendRequest, WeComSendResponse
from ..services import factory_records
from ..services.po_transitions import now_utc
from ..services.supplier_health import record_delivery_failure, record_delivery_success
from ..services.wecom_client import WeComWebhookClient
from ..services.wecom_templates import MessageKind, render_message

logger = logging.getLogger(__name__)

PURCHASE_ORDER_ENTITY = "purchase_order"


@dataclass(frozen=True)
class OutboundHooks:
    get_supplier: Callable[[Session, UUID], Supplier | None] = factory_records.get_supplier
    get_purchase_order: Callable[[Session, UUID], PurchaseOrder | None] = factory_records.get_purchase_order
    make_client: Callable[[], WeComWebhookClient] = WeComWebhookClient
    now_utc: Callable[[], datetime] = now_utc


def _money(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def purchase_order_projection(po: PurchaseOrder) -> dict[str, Any]:
    """Read-only view of an order for templating (JSON-safe)."""
    order = po.order
    return {
        "po_number": po.po_number,
        "total_value": _money(po.total_value),
        "currency": po.currency,
        "delivery_date": po.delivery_date.isoformat() if po.delivery_date else None,
        "payment_terms": po.payment_terms,
        "notes": po.notes,
        "order": (
            {"order_number": order.order_number, "project_title": order.project_title}
            if order is not None
            else None
        ),
        "items": [
            {
                "product_name": item.product_name,
                "product_name_cn": item.product_name_cn,
                "quantity": item.quantity,
                "unit_price": _money(item.unit_price),
                "specifications": item.specifications,
            }
            for item in (po.items or [])
        ],
    }


def build_template_context(po: PurchaseOrder | None, metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Order projection first, caller metadata on top.

    Payment figures supplied by the caller must win over the order's stored
    total, which may be stale.
    """
    context: dict[str, Any] = purchase_order_projection(po) if po is not None else {}
    for key, value in (metadata or {}).items():
        if value is not None:
            context[key] = value
    return context


def _resolve_purchase_order(
    *, db: Session, request: WeComSendRequest, hooks: OutboundHooks
) -> PurchaseOrder | None:
    if request.entity_type != PURCHASE_ORDER_ENTITY or not request.entity_id:
        return None
    po = hooks.get_purchase_order(db, request.entity_id)
    if po is None:
        raise purchase_order_not_found()
    return po


def send_factory_message_use_case(
    *,
    db: Session,
    request: WeComSendRequest,
    hooks: OutboundHooks = OutboundHooks(),
) -> WeComSendResponse:
    """Render and deliver one message to a supplier's WeCom group.

    Missing supplier/endpoint raise DomainError. Delivery failures never raise:
    they end up on the message record, the supplier's health and the result.
    """
    supplier = hooks.get_supplier(db, request.supplier_id)
    if not supplier:
        raise supplier_not_found()
    if not supplier.wecom_webhook_url:
        raise DomainError(
            code="WEBHOOK_NOT_CONFIGURED",
            http_status=400,
            message="No WeCom webhook configured for this supplier",
        )

    kind = MessageKind(request.message_type)
    po = _resolve_purchase_order(db=db, request=request, hooks=hooks)
    at = hooks.now_utc()

    if request.content:
        content = request.content
    else:
        context = build_template_context(po, request.metadata)
        content = render_message(kind, supplier_name=supplier.supplier_name, context=context, today=at.date())

    message = FactoryMessage(
        id=uuid4(),
        direction="outbound",
        supplier_id=supplier.id,
        purchase_order_id=po.id if po is not None else None,
        message_type=kind.value,
        content=content,
        status="pending",
        retry_count=0,
        meta_data={
            **(request.metadata or {}),
            "entity_type": request.entity_type,
            "entity_id": str(request.entity_id) if request.entity_id else None,
            "formatted_at": at.isoformat(),
        },
    )
    db.add(message)
    db.commit()
    logger.info(f"📤 Sending {kind.value} message {message.id} to supplier {supplier.id}")

    try:
        result = hooks.make_client().send_markdown(supplier.wecom_webhook_url, content)

        message.status = "sent" if result.success else "failed"
        message.retry_count = result.retry_count
        message.provider_response = result.response
        message.provider_message_id = result.provider_message_id

        if result.success:
            record_delivery_success(supplier, is_test=kind == MessageKind.TEST, at=at)
        else:
            record_delivery_failure(supplier, error=result.error_message or "Unknown error")
            logger.warning(
                f"⚠️ Supplier {supplier.id} WeCom delivery failed "
                f"({supplier.wecom_error_count} consecutive): {result.error_message}"
            )

        if po is not None:
            po.last_factory_message_at = at
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(f"❌ Unexpected error delivering message {message.id}: {exc}", exc_info=True)
        error_message = str(exc) or "Unknown error"
        message.status = "failed"
        message.provider_response = {"error": error_message}
        record_delivery_failure(supplier, error=error_message)
        if po is not None:
            po.last_factory_message_at = at
        db.commit()
        return WeComSendResponse(
            success=False,
            message_id=message.id,
            provider_response={},
            error_message=error_message,
            retry_count=message.retry_count or 0,
        )

    return WeComSendResponse(
        success=result.success,
        message_id=message.id,
        provider_response=result.response,
        error_message=None if result.success else result.error_message,
        retry_count=result.retry_count,
    )
