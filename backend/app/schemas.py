"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Optional
from datetime import datetime
from uuid import UUID

from .services.wecom_templates import MessageKind


# Inbound (factory -> system)
class WeComInboundRequest(BaseModel):
    """Callback body posted by the factory chat relay."""
    supplier_id: UUID
    token: str = Field(min_length=1)
    content: str
    from_user: Optional[str] = None
    timestamp: Optional[str | int] = None
    # Provider message id, used to drop redelivered callbacks.
    msg_id: Optional[str] = Field(default=None, max_length=128)


class WeComInboundResponse(BaseModel):
    success: bool = True
    message_id: Optional[UUID] = None
    processed: bool
    action: Optional[str] = None
    po_number: Optional[str] = None
    po_id: Optional[UUID] = None
    duplicate: bool = False


# Outbound (internal caller -> system -> factory)
class WeComSendRequest(BaseModel):
    supplier_id: UUID
    message_type: MessageKind
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    content: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("content")
    @classmethod
    def _blank_content_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value


class WeComSendResponse(BaseModel):
    success: bool
    message_id: Optional[UUID] = None
    provider_response: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    retry_count: int = 0


# Supplier integration settings
class WeComSettingsUpdate(BaseModel):
    webhook_url: Optional[str] = Field(default=None, max_length=2048)
    rotate_token: bool = False

    @field_validator("webhook_url")
    @classmethod
    def _validate_webhook_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not value.startswith(("https://", "http://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return value


class WeComSettingsResponse(BaseModel):
    supplier_id: UUID
    webhook_url: Optional[str] = None
    webhook_token: Optional[str] = None
    integration_status: str
    error_count: int
    last_error: Optional[str] = None
    last_test: Optional[datetime] = None
    inbound_url: str


class FactoryMessageResponse(BaseModel):
    id: UUID
    direction: str
    supplier_id: UUID
    purchase_order_id: Optional[UUID] = None
    message_type: str
    content: str
    status: str
    parsed_action: Optional[str] = None
    parsed_data: Optional[dict[str, Any]] = None
    retry_count: int = 0
    provider_response: Optional[dict[str, Any]] = None
    provider_message_id: Optional[str] = None
    team_note_id: Optional[UUID] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ReminderScanResult(BaseModel):
    success: bool = True
    reminders_sent: int
    reminders: list[dict[str, str]]
    errors_count: int
    errors: list[dict[str, str]]
    checked_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
