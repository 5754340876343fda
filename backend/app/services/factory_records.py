"""Record-store lookups used by the factory messaging use-cases."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from ..models import FactoryMessage, PurchaseOrder, Supplier, User

SYSTEM_AUTHOR_ROLES: tuple[str, ...] = ("super_admin", "admin")


def get_supplier(db: Session, supplier_id: UUID) -> Supplier | None:
    return db.query(Supplier).filter(Supplier.id == supplier_id).first()


def get_suppliers_by_ids(db: Session, supplier_ids: list[UUID]) -> dict[UUID, Supplier]:
    if not supplier_ids:
        return {}
    rows = db.query(Supplier).filter(Supplier.id.in_(supplier_ids)).all()
    return {supplier.id: supplier for supplier in rows}


def get_purchase_order(db: Session, po_id: UUID) -> PurchaseOrder | None:
    return (
        db.query(PurchaseOrder)
        .options(selectinload(PurchaseOrder.items), selectinload(PurchaseOrder.order))
        .filter(PurchaseOrder.id == po_id)
        .first()
    )


def find_purchase_order_by_number(db: Session, po_number: str) -> PurchaseOrder | None:
    """Exact, case-sensitive match on the external order number."""
    return db.query(PurchaseOrder).filter(PurchaseOrder.po_number == po_number).first()


def get_team_members(db: Session, po: PurchaseOrder) -> list[User]:
    team_ids = list(po.assigned_team or [])
    if not team_ids:
        return []
    return db.query(User).filter(User.id.in_(team_ids)).all()


def get_system_author_id(db: Session) -> UUID | None:
    """First active super admin (then admin) used as the author of generated notes."""
    for role in SYSTEM_AUTHOR_ROLES:
        row = (
            db.query(User.id)
            .filter(User.role == role, User.is_active == True)  # noqa: E712
            .order_by(User.created_at)
            .first()
        )
        if row:
            return row[0]
    return None


def find_prior_inbound_message(
    db: Session,
    *,
    supplier_id: UUID,
    external_message_id: str,
    exclude_id: UUID,
) -> FactoryMessage | None:
    """Earlier copy of the same provider message that was actually applied.

    Copies that ended unprocessed (``read``) or are still in flight do not count,
    so a failed delivery can be reprocessed by its redelivery.
    """
    return (
        db.query(FactoryMessage)
        .filter(
            FactoryMessage.supplier_id == supplier_id,
            FactoryMessage.direction == "inbound",
            FactoryMessage.external_message_id == external_message_id,
            FactoryMessage.status == "delivered",
            FactoryMessage.id != exclude_id,
        )
        .order_by(FactoryMessage.created_at)
        .first()
    )


def list_reminder_candidates(db: Session, statuses: tuple[str, ...]) -> list[PurchaseOrder]:
    return (
        db.query(PurchaseOrder)
        .filter(
            PurchaseOrder.status.in_(statuses),
            PurchaseOrder.supplier_id.isnot(None),
        )
        .order_by(PurchaseOrder.created_at)
        .all()
    )
