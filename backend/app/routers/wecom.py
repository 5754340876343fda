"""
WeCom factory messaging routes.
- Inbound callback from the factory chat relay (supplier token auth)
- Outbound sends, settings, history and reminder trigger (internal API key)
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from ..config import settings
from ..database import get_db
from ..domain_errors import DomainError, purchase_order_not_found, supplier_not_found
from ..models import FactoryMessage, PurchaseOrder, Supplier
from ..problem_details import build_webhook_error_response
from ..schemas import (
    FactoryMessageResponse,
    ReminderScanResult,
    WeComInboundRequest,
    WeComInboundResponse,
    WeComSendRequest,
    WeComSendResponse,
    WeComSettingsResponse,
    WeComSettingsUpdate,
)
from ..security import require_internal_api_key
from ..services.wecom_templates import MessageKind
from ..use_cases.factory_inbound import receive_factory_message_use_case
from ..use_cases.factory_outbound import send_factory_message_use_case
from ..use_cases.factory_reminders import run_factory_reminder_scan_use_case
from ..use_cases.supplier_integration import (
    get_integration_settings_use_case,
    update_integration_settings_use_case,
)

router = APIRouter(prefix="/wecom", tags=["wecom"])
internal = [Depends(require_internal_api_key)]
logger = logging.getLogger(__name__)


def _unexpected_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc) or "Unknown error"})


@router.post("/receive", response_model=WeComInboundResponse)
def receive_factory_message(
    payload: WeComInboundRequest,
    db: Session = Depends(get_db),
):
    """
    Factory reply callback.

    404 unknown supplier, 401 bad token. Everything that passes auth is recorded and
    answered with 200; `processed` tells whether the order was updated.
    """
    try:
        return receive_factory_message_use_case(db=db, request=payload)
    except DomainError as exc:
        return build_webhook_error_response(exc)
    except Exception as exc:
        logger.error(f"❌ WeCom receive error: {exc}", exc_info=True)
        return _unexpected_error(exc)


@router.post("/send", response_model=WeComSendResponse, dependencies=internal)
def send_factory_message(
    payload: WeComSendRequest,
    db: Session = Depends(get_db),
):
    """
    Send a templated (or literal) message to a supplier's WeCom group.

    Delivery outcome is always a 200 with `success`; only a missing supplier (404) or
    missing webhook (400) are reported as errors.
    """
    try:
        return send_factory_message_use_case(db=db, request=payload)
    except DomainError as exc:
        return build_webhook_error_response(exc)
    except Exception as exc:
        logger.error(f"❌ WeCom send error: {exc}", exc_info=True)
        return _unexpected_error(exc)


@router.post("/suppliers/{supplier_id}/test", response_model=WeComSendResponse, dependencies=internal)
def test_supplier_webhook(
    supplier_id: UUID,
    db: Session = Depends(get_db),
):
    """Connectivity test; refreshes the supplier's last successful test time."""
    return send_factory_message_use_case(
        db=db,
        request=WeComSendRequest(supplier_id=supplier_id, message_type=MessageKind.TEST),
    )


@router.get("/suppliers/{supplier_id}/settings", response_model=WeComSettingsResponse, dependencies=internal)
def get_supplier_settings(
    supplier_id: UUID,
    db: Session = Depends(get_db),
):
    return get_integration_settings_use_case(db=db, supplier_id=supplier_id)


@router.put("/suppliers/{supplier_id}/settings", response_model=WeComSettingsResponse, dependencies=internal)
def update_supplier_settings(
    supplier_id: UUID,
    data: WeComSettingsUpdate,
    db: Session = Depends(get_db),
):
    return update_integration_settings_use_case(db=db, supplier_id=supplier_id, data=data)


@router.get(
    "/suppliers/{supplier_id}/messages",
    response_model=list[FactoryMessageResponse],
    dependencies=internal,
)
def list_supplier_messages(
    supplier_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Latest messages exchanged with a supplier, newest first."""
    if not db.query(Supplier.id).filter(Supplier.id == supplier_id).first():
        raise supplier_not_found()
    return (
        db.query(FactoryMessage)
        .filter(FactoryMessage.supplier_id == supplier_id)
        .order_by(FactoryMessage.created_at.desc())
        .limit(limit or settings.FACTORY_MESSAGE_HISTORY_LIMIT)
        .all()
    )


@router.get(
    "/purchase-orders/{po_id}/messages",
    response_model=list[FactoryMessageResponse],
    dependencies=internal,
)
def list_purchase_order_messages(
    po_id: UUID,
    db: Session = Depends(get_db),
):
    """Full factory conversation about one purchase order, newest first."""
    if not db.query(PurchaseOrder.id).filter(PurchaseOrder.id == po_id).first():
        raise purchase_order_not_found()
    return (
        db.query(FactoryMessage)
        .filter(FactoryMessage.purchase_order_id == po_id)
        .order_by(FactoryMessage.created_at.desc())
        .all()
    )


@router.post("/reminders/run", response_model=ReminderScanResult, dependencies=internal)
def run_reminders_now(db: Session = Depends(get_db)):
    """Run the reminder scan immediately (normally driven by Celery beat)."""
    return run_factory_reminder_scan_use_case(db=db)
