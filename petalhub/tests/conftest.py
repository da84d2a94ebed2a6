from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from petalhub.app.db.base import Base
from petalhub.app.db.session import create_engine_from_url
from petalhub.app.db.models.core_types import Role
from petalhub.services import orders as orders_svc
from petalhub.services import products as products_svc
from petalhub.services import users as users_svc


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Session DB isolée par test.

    Base SQLite en mémoire (StaticPool : une seule connexion partagée),
    schéma créé depuis les métadonnées et détruit à la fin du test.
    """
    engine = create_engine_from_url("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def catalog(db_session):
    """
    Annuaire + catalogue minimal :
    - rose   (supplier) 2.50, palier 50 -> 10 %
    - carnation (supplier) 2.00, sans palier
    - lily   (supplier_b) 3.75, sans palier
    """
    employee = users_svc.create_user(db_session, email="staff@petalhub.test", name="Staff", role=Role.employee)
    customer = users_svc.create_user(db_session, email="ana@shop.test", name="Ana Flores", role=Role.customer)
    other_customer = users_svc.create_user(db_session, email="luis@shop.test", name="Luis Ramos", role=Role.customer)
    supplier = users_svc.create_user(db_session, email="farm@supplier.test", name="Finca Norte", role=Role.supplier)
    supplier_b = users_svc.create_user(db_session, email="valle@supplier.test", name="Valle Sur", role=Role.supplier)

    rose = products_svc.create_product(
        db_session, sku="ROSE-RED-001", name="Rosa Roja", base_price=Decimal("2.50"), stock=500, supplier_id=supplier.id
    )
    products_svc.set_pricing_tiers(db_session, rose.id, [(50, Decimal("10"))])
    carnation = products_svc.create_product(
        db_session, sku="CARN-WHT-001", name="Clavel Blanco", base_price=Decimal("2.00"), stock=100, supplier_id=supplier.id
    )
    lily = products_svc.create_product(
        db_session, sku="LILY-ORG-001", name="Lirio Naranja", base_price=Decimal("3.75"), stock=40, supplier_id=supplier_b.id
    )

    return SimpleNamespace(
        employee=employee,
        customer=customer,
        other_customer=other_customer,
        supplier=supplier,
        supplier_b=supplier_b,
        rose=rose,
        carnation=carnation,
        lily=lily,
    )


@pytest.fixture()
def make_order(db_session):
    """Construit une commande pour `customer` et la pousse jusqu'à `status` (draft | pending | validated)."""

    def _make(customer, lines, status="draft"):
        order = orders_svc.create_order(db_session, customer_id=customer.id)
        for product, qty in lines:
            orders_svc.add_item(db_session, order.id, product.id, qty)
        if status in ("pending", "validated"):
            orders_svc.submit(db_session, order.id, caller_id=customer.id, caller_role=Role.customer)
        if status == "validated":
            orders_svc.approve(db_session, order.id)
        return orders_svc.get_order(db_session, order.id)

    return _make


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient

    from petalhub.app.api.deps import get_db
    from petalhub.app.main import app

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
