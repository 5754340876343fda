"""Seed database with a demo supplier, team and purchase orders."""
from app.database import SessionLocal
from app.models import PurchaseOrder, PurchaseOrderItem, SalesOrder, Supplier, User
from app.security import generate_webhook_token
from datetime import date, timedelta
from decimal import Decimal
import uuid

def seed():
    """Seed database with demo data."""
    db = SessionLocal()

    try:
        # Create users
        users_data = [
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000101'), 'name': 'System Admin', 'role': 'super_admin'},
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000102'), 'name': '王采购', 'role': 'purchase_manager'},
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000103'), 'name': '李项目', 'role': 'project_manager'},
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000104'), 'name': '张质检', 'role': 'quality_team'},
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000105'), 'name': '陈物流', 'role': 'logistics'},
            {'id': uuid.UUID('00000000-0000-0000-0000-000000000106'), 'name': '赵客服', 'role': 'customer_service'},
        ]

        users = []
        for user_data in users_data:
            user = User(**user_data, is_active=True)
            db.add(user)
            users.append(user)

        # Create supplier (webhook left empty; configure via PUT /wecom/suppliers/{id}/settings)
        supplier = Supplier(
            id=uuid.UUID('00000000-0000-0000-0000-000000000201'),
            supplier_name="深圳示范家具厂",
            contact_person="刘经理",
            wecom_webhook_token=generate_webhook_token(),
        )
        db.add(supplier)

        order = SalesOrder(
            id=uuid.UUID('00000000-0000-0000-0000-000000000301'),
            order_number="SO-2026-001",
            project_title="Hotel Lobby Refurbishment",
        )
        db.add(order)
        db.flush()

        today = date.today()
        team = [user.id for user in users[1:]]

        purchase_orders_data = [
            {
                'po_number': 'PO-2026-001',
                'status': 'pending',
                'total_value': Decimal('12000.00'),
                'currency': 'CNY',
                'delivery_date': today + timedelta(days=45),
                'payment_terms': '30% deposit, 70% before shipment',
            },
            {
                'po_number': 'PO-2026-002',
                'status': 'in_production',
                'total_value': Decimal('5000.00'),
                'currency': 'USD',
                'delivery_date': today + timedelta(days=5),
                'payment_terms': '100% before shipment',
            },
        ]

        for po_data in purchase_orders_data:
            po = PurchaseOrder(
                supplier_id=supplier.id,
                order_id=order.id,
                assigned_team=team,
                **po_data
            )
            db.add(po)
            db.flush()
            db.add(PurchaseOrderItem(
                purchase_order_id=po.id,
                position=1,
                product_name="Lounge chair",
                product_name_cn="休闲椅",
                quantity=24,
                unit_price=Decimal('250.00'),
            ))

        db.commit()
        print("✅ Database seeded successfully!")
        print(f"\nDemo supplier: {supplier.supplier_name} ({supplier.id})")
        print(f"  inbound token: {supplier.wecom_webhook_token}")
        print("  purchase orders: PO-2026-001 (pending), PO-2026-002 (in_production)")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
