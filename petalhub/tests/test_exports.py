import io
from decimal import Decimal

import pandas as pd
import pytest

from petalhub.app.db.models.core_types import Role
from petalhub.services import orders as orders_svc
from petalhub.services import products as products_svc
from petalhub.services.consolidation import consolidate
from petalhub.services.errors import NotFound
from petalhub.services.exports import (
    SALES_REPORT_COLUMNS,
    export_consolidated_order,
    export_order,
    export_product_sales_report,
    fmt_unit_price,
    money,
    order_number,
    product_sales_report_csv,
    render_consolidated_order_pdf,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("135"), "135.00"),
        (Decimal("2.125"), "2.13"),
        (Decimal("2.124999"), "2.12"),
        (Decimal("0.005"), "0.01"),
        (Decimal("0"), "0.00"),
    ],
)
def test_money_rounds_half_up_to_cents(value, expected):
    assert money(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("2.250000"), "2.25"),
        (Decimal("2"), "2.00"),
        (Decimal("2.125000"), "2.125"),
        (Decimal("1.326733"), "1.326733"),
    ],
)
def test_unit_price_keeps_significant_decimals(value, expected):
    assert fmt_unit_price(value) == expected


def test_order_number_format():
    assert order_number("ORD", 7) == "ORD-000007"
    assert order_number("CON", 123456) == "CON-123456"


def test_export_order_shape(db_session, catalog, make_order):
    order = make_order(catalog.customer, [(catalog.rose, 60), (catalog.carnation, 5)], status="pending")

    export = export_order(db_session, order.id)

    assert export["exportType"] == "ORDER"
    assert export["exportDate"]
    data = export["data"]
    assert data["orderId"] == order.id
    assert data["orderNumber"] == order_number("ORD", order.id)
    assert data["status"] == "PENDING_VALIDATION"
    assert data["consolidatedAt"] is None
    assert data["customer"] == {"name": "Ana Flores", "email": "ana@shop.test", "role": "CUSTOMER"}
    assert data["totals"] == {"subtotal": "145.00", "discount": "0.00", "total": "145.00"}

    # lignes triées par nom de produit
    assert [i["product"]["name"] for i in data["items"]] == ["Clavel Blanco", "Rosa Roja"]
    rose_line = data["items"][1]
    assert rose_line == {
        "product": {"sku": "ROSE-RED-001", "name": "Rosa Roja", "supplier": "Finca Norte"},
        "qty": 60,
        "unitPrice": "2.25",
        "lineTotal": "135.00",
    }


def test_export_unknown_order(db_session, catalog):
    with pytest.raises(NotFound):
        export_order(db_session, 999_999)


def test_export_consolidated_order_shape(db_session, catalog, make_order):
    make_order(catalog.customer, [(catalog.carnation, 10), (catalog.rose, 60)], status="validated")
    make_order(catalog.other_customer, [(catalog.carnation, 20)], status="validated")
    c = next(c for c in consolidate(db_session).consolidated_orders if c.supplier_id == catalog.supplier.id)

    export = export_consolidated_order(db_session, c.id)

    assert export["exportType"] == "CONSOLIDATED_ORDER"
    data = export["data"]
    assert data["orderNumber"] == order_number("CON", c.id)
    assert data["supplier"] == {"name": "Finca Norte", "email": "farm@supplier.test"}
    assert data["items"] == [
        {
            "product": {"sku": "CARN-WHT-001", "name": "Clavel Blanco", "basePrice": "2.00"},
            "totalQty": 30,
            "unitPrice": "2.00",
            "lineTotal": "60.00",
        },
        {
            "product": {"sku": "ROSE-RED-001", "name": "Rosa Roja", "basePrice": "2.50"},
            "totalQty": 60,
            "unitPrice": "2.25",
            "lineTotal": "135.00",
        },
    ]
    assert data["totals"] == {"totalItems": 2, "grandTotal": "195.00"}


def test_sales_report_counts_completed_orders_only(db_session, catalog, make_order):
    done = make_order(catalog.customer, [(catalog.rose, 60), (catalog.lily, 2)], status="validated")
    orders_svc.complete(db_session, done.id)
    make_order(catalog.other_customer, [(catalog.rose, 100)], status="validated")
    make_order(catalog.other_customer, [(catalog.lily, 3)], status="pending")

    report = export_product_sales_report(db_session)

    assert report["exportType"] == "PRODUCT_SALES_REPORT"
    rows = {r["sku"]: r for r in report["data"]["products"]}
    assert rows["ROSE-RED-001"]["totalQtySold"] == 60
    assert rows["ROSE-RED-001"]["totalRevenue"] == "135.00"
    assert rows["ROSE-RED-001"]["currentStock"] == 440
    assert rows["LILY-ORG-001"]["totalQtySold"] == 2
    assert rows["LILY-ORG-001"]["totalRevenue"] == "7.50"
    assert rows["CARN-WHT-001"]["totalQtySold"] == 0
    assert rows["CARN-WHT-001"]["totalRevenue"] == "0.00"
    assert report["data"]["summary"] == {"totalProducts": 3, "totalRevenue": "142.50"}


def test_sales_report_includes_consolidated_orders(db_session, catalog, make_order):
    make_order(catalog.customer, [(catalog.carnation, 10)], status="validated")
    consolidate(db_session)

    rows = {r["sku"]: r for r in export_product_sales_report(db_session)["data"]["products"]}
    assert rows["CARN-WHT-001"]["totalQtySold"] == 10
    # consolidation ne décrémente pas le stock
    assert rows["CARN-WHT-001"]["currentStock"] == 100


def test_sales_report_csv(db_session, catalog, make_order):
    done = make_order(catalog.customer, [(catalog.rose, 60)], status="validated")
    orders_svc.complete(db_session, done.id)

    csv_text = product_sales_report_csv(db_session)

    frame = pd.read_csv(io.StringIO(csv_text), dtype=str)
    assert list(frame.columns) == SALES_REPORT_COLUMNS
    assert list(frame["name"]) == ["Clavel Blanco", "Lirio Naranja", "Rosa Roja"]
    rose = frame[frame["sku"] == "ROSE-RED-001"].iloc[0]
    assert rose["totalQtySold"] == "60"
    assert rose["totalRevenue"] == "135.00"


def test_purchase_order_pdf(db_session, catalog, make_order):
    make_order(catalog.customer, [(catalog.carnation, 10)], status="validated")
    c = consolidate(db_session).consolidated_orders[0]

    pdf = render_consolidated_order_pdf(db_session, c.id)

    assert isinstance(pdf, bytes)
    assert pdf.startswith(b"%PDF")


def test_sales_summary_adds_up_rounded_rows(db_session, catalog):
    """
    GIVEN deux produits à 0.01 avec un palier 1 -> 50 %, 1 unité vendue chacun
    THEN chaque ligne affiche 0.01 et le résumé 0.02 (somme des lignes affichées)
    """
    order = orders_svc.create_order(db_session, customer_id=catalog.customer.id)
    for sku in ("PETAL-A", "PETAL-B"):
        p = products_svc.create_product(
            db_session, sku=sku, name=sku, base_price=Decimal("0.01"), stock=5, supplier_id=catalog.supplier.id
        )
        products_svc.set_pricing_tiers(db_session, p.id, [(1, Decimal("50"))])
        orders_svc.add_item(db_session, order.id, p.id, 1)
    orders_svc.submit(db_session, order.id, caller_id=catalog.customer.id, caller_role=Role.customer)
    orders_svc.approve(db_session, order.id)
    orders_svc.complete(db_session, order.id)

    report = export_product_sales_report(db_session)

    rows = {r["sku"]: r for r in report["data"]["products"]}
    assert rows["PETAL-A"]["totalRevenue"] == "0.01"
    assert rows["PETAL-B"]["totalRevenue"] == "0.01"
    assert report["data"]["summary"]["totalRevenue"] == "0.02"
