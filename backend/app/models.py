"""SQLAlchemy models for the factory messaging integration."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Date, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint, Index, ARRAY
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


USER_ROLES = (
    'super_admin', 'admin', 'purchase_manager', 'project_manager', 'quality_team',
    'production_manager', 'logistics', 'customer_service', 'sales_manager',
)

PURCHASE_ORDER_STATUSES = (
    'draft', 'pending', 'confirmed', 'in_production', 'production_complete',
    'shipped', 'delivered', 'cancelled',
)

INTEGRATION_STATUSES = ('unconfigured', 'active', 'failed')

MESSAGE_STATUSES = ('pending', 'sent', 'failed', 'delivered', 'read')


class User(Base):
    """Internal staff member (owned by the account service, read-only here)."""
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name='chk_user_role'),
    )


class Supplier(Base):
    """Manufacturing supplier with its WeCom group-bot integration state."""
    __tablename__ = "suppliers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    supplier_name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=True)

    # Outbound: group-bot webhook (https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=...)
    wecom_webhook_url = Column(Text, nullable=True)
    # Inbound: shared secret the factory relay presents on every callback
    wecom_webhook_token = Column(String(128), nullable=True)

    # Integration health (advisory, last-write-wins)
    wecom_integration_status = Column(String(20), nullable=False, default='unconfigured')
    wecom_error_count = Column(Integer, nullable=False, default=0)
    wecom_last_error = Column(Text, nullable=True)
    wecom_last_test = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            wecom_integration_status.in_(INTEGRATION_STATUSES),
            name='chk_supplier_wecom_status'
        ),
        CheckConstraint(wecom_error_count >= 0, name='chk_supplier_wecom_error_count'),
    )

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")


class SalesOrder(Base):
    """Customer order a purchase order is sourced for."""
    __tablename__ = "sales_orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(100), unique=True, nullable=False, index=True)
    project_title = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PurchaseOrder(Base):
    """Purchase order placed with a factory (subset used by the integration)."""
    __tablename__ = "purchase_orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    po_number = Column(String(100), unique=True, nullable=False, index=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=True, index=True)
    order_id = Column(UUID(as_uuid=True), ForeignKey("sales_orders.id"), nullable=True, index=True)
    status = Column(String(30), nullable=False, default='draft', index=True)

    total_value = Column(Numeric(14, 2), nullable=True)
    currency = Column(String(3), nullable=False, default='CNY')
    delivery_date = Column(Date, nullable=True, index=True)
    payment_terms = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Staff working this order; mentions are resolved against it.
    assigned_team = Column(ARRAY(UUID(as_uuid=True)), nullable=False, default=list)

    # Factory milestones
    factory_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    production_started_at = Column(DateTime(timezone=True), nullable=True)
    production_completed_at = Column(DateTime(timezone=True), nullable=True)
    factory_qc_status = Column(String(500), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    factory_tracking_number = Column(String(255), nullable=True)
    delay_days = Column(Integer, nullable=True)
    delay_reason = Column(Text, nullable=True)

    last_factory_reply_at = Column(DateTime(timezone=True), nullable=True)  # inbound
    last_factory_message_at = Column(DateTime(timezone=True), nullable=True)  # outbound

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(PURCHASE_ORDER_STATUSES), name='chk_po_status'),
    )

    supplier = relationship("Supplier", back_populates="purchase_orders")
    order = relationship("SalesOrder")
    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.position",
    )


class PurchaseOrderItem(Base):
    """Line item of a purchase order."""
    __tablename__ = "purchase_order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    purchase_order_id = Column(
        UUID(as_uuid=True),
        ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    product_name = Column(String(255), nullable=False)
    product_name_cn = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False)
    specifications = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(quantity > 0, name='chk_po_item_quantity_positive'),
    )

    purchase_order = relationship("PurchaseOrder", back_populates="items")


class FactoryMessage(Base):
    """
    One communication attempt with a factory chat (inbound or outbound).
    Created before delivery/processing, finalized once; never deleted.
    """
    __tablename__ = "wecom_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    direction = Column(String(10), nullable=False)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_order_id = Column(
        UUID(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=True, index=True
    )
    message_type = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default='pending', index=True)

    # Inbound only
    parsed_action = Column(String(50), nullable=True)
    parsed_data = Column(JSONB, nullable=True)
    external_message_id = Column(String(128), nullable=True)  # provider msg id (dedup key)
    team_note_id = Column(UUID(as_uuid=True), ForeignKey("team_notes.id"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    # Outbound only
    retry_count = Column(Integer, nullable=False, default=0)
    provider_response = Column(JSONB, nullable=True)
    provider_message_id = Column(String(128), nullable=True)

    meta_data = Column(JSONB, default={})  # 'metadata' is reserved by SQLAlchemy
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(direction.in_(['inbound', 'outbound']), name='chk_wecom_message_direction'),
        CheckConstraint(status.in_(MESSAGE_STATUSES), name='chk_wecom_message_status'),
        Index('idx_wecom_messages_external', 'supplier_id', 'external_message_id',
              postgresql_where=(external_message_id != None)),
    )


class TeamNote(Base):
    """Team-visible note on a purchase order, generated from a factory event."""
    __tablename__ = "team_notes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    purchase_order_id = Column(
        UUID(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=False, index=True
    )
    author_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)  # NULL = system
    content = Column(Text, nullable=False)
    mentions = Column(ARRAY(UUID(as_uuid=True)), nullable=True)
    is_supplier_visible = Column(Boolean, nullable=False, default=True)
    # use_alter: wecom_messages.team_note_id points back here
    source_message_id = Column(
        UUID(as_uuid=True),
        ForeignKey("wecom_messages.id", use_alter=True, name="fk_team_notes_source_message"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class Notification(Base):
    """Per-user in-app notification (fan-out of a team note mention)."""
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False, default='wecom')
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    entity_type = Column(String(30), nullable=True)
    entity_id = Column(UUID(as_uuid=True), nullable=True)
    action_url = Column(Text, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        Index('idx_notifications_unread', 'user_id', 'created_at',
              postgresql_where=(is_read == False)),  # noqa: E712
    )
