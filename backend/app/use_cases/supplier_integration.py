"""Supplier WeCom integration settings."""
from __future__ import annotations

import logging
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import supplier_not_found
from ..models import Supplier
from ..schemas import WeComSettingsResponse, WeComSettingsUpdate
from ..security import generate_webhook_token
from ..services import factory_records
from ..services.supplier_health import configure_integration, normalize_integration_status

logger = logging.getLogger(__name__)


def inbound_webhook_url() -> str:
    return f"{settings.API_BASE_URL}/api/v1/wecom/receive"


def to_settings_response(supplier: Supplier) -> WeComSettingsResponse:
    return WeComSettingsResponse(
        supplier_id=supplier.id,
        webhook_url=supplier.wecom_webhook_url,
        webhook_token=supplier.wecom_webhook_token,
        integration_status=normalize_integration_status(supplier.wecom_integration_status),
        error_count=int(supplier.wecom_error_count or 0),
        last_error=supplier.wecom_last_error,
        last_test=supplier.wecom_last_test,
        inbound_url=inbound_webhook_url(),
    )


def get_integration_settings_use_case(
    *,
    db: Session,
    supplier_id: UUID,
    get_supplier: Callable[[Session, UUID], Supplier | None] = factory_records.get_supplier,
) -> WeComSettingsResponse:
    supplier = get_supplier(db, supplier_id)
    if not supplier:
        raise supplier_not_found()
    return to_settings_response(supplier)


def update_integration_settings_use_case(
    *,
    db: Session,
    supplier_id: UUID,
    data: WeComSettingsUpdate,
    get_supplier: Callable[[Session, UUID], Supplier | None] = factory_records.get_supplier,
) -> WeComSettingsResponse:
    """Set the outbound webhook and make sure the inbound token exists.

    Health is reset: the next send decides whether the endpoint works.
    """
    supplier = get_supplier(db, supplier_id)
    if not supplier:
        raise supplier_not_found()

    configure_integration(supplier, webhook_url=data.webhook_url)
    if data.rotate_token or not supplier.wecom_webhook_token:
        supplier.wecom_webhook_token = generate_webhook_token()
        logger.info(f"🔑 Issued new inbound WeCom token for supplier {supplier.id}")

    db.commit()
    logger.info(f"✅ Updated WeCom settings for supplier {supplier.id}")
    return to_settings_response(supplier)
