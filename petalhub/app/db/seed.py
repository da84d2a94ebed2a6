from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from petalhub.app.db.session import SessionLocal, init_db, transaction
from petalhub.app.db.models.models_v1 import User, Product, PricingTier
from petalhub.app.db.models.core_types import Role

DEMO_USERS = [
    ("employee@petalhub.local", "Demo Employee", Role.employee),
    ("customer@petalhub.local", "Floristería Demo", Role.customer),
    ("supplier@petalhub.local", "Flores del Campo SAS", Role.supplier),
]

# sku, name, base_price, stock, [(min_qty, percent_off)]
DEMO_PRODUCTS = [
    ("ROSE-RED-001", "Rosa Roja Premium", Decimal("2.50"), 1000, [(50, Decimal("10")), (100, Decimal("15"))]),
    ("CARN-WHT-001", "Clavel Blanco", Decimal("1.20"), 800, [(100, Decimal("5"))]),
    ("LILY-ORG-001", "Lirio Naranja", Decimal("3.75"), 300, []),
]


def run_seed():
    init_db()
    db = SessionLocal()
    try:
        with transaction(db):
            users = {}
            for email, name, role in DEMO_USERS:
                user = db.scalar(select(User).where(User.email == email))
                if not user:
                    user = User(email=email, name=name, role=role, is_active=True)
                    db.add(user)
                    db.flush()
                users[role] = user

            supplier = users[Role.supplier]
            for sku, name, base_price, stock, tiers in DEMO_PRODUCTS:
                if db.scalar(select(Product).where(Product.sku == sku)):
                    continue
                product = Product(
                    sku=sku,
                    name=name,
                    base_price=base_price,
                    stock=stock,
                    supplier_id=supplier.id,
                )
                product.pricing_tiers = [PricingTier(min_qty=q, percent_off=p) for q, p in tiers]
                db.add(product)

        print(
            "SEED OK: employee=%s customer=%s supplier=%s products=%s"
            % (users[Role.employee].id, users[Role.customer].id, supplier.id, len(DEMO_PRODUCTS))
        )
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
