"""
Exports (lecture seule) pour le reporting aval.

Toutes les projections dérivent des entités commandes / consolidations ;
l'arrondi des montants (2 décimales, half-up) n'a lieu qu'ici.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

import pandas as pd
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from petalhub.app.db.models.models_v1 import Order, OrderItem, Product
from petalhub.app.db.models.core_types import OrderStatus
from petalhub.app.db.session import transaction
from petalhub.services.consolidation import get_consolidated
from petalhub.services.errors import NotFound

CENT = Decimal("0.01")
MICRO = Decimal("0.000001")

SALES_REPORT_COLUMNS = [
    "sku",
    "name",
    "supplier",
    "basePrice",
    "currentStock",
    "totalQtySold",
    "totalRevenue",
]


# ---------- Formatting ----------
def money(value) -> str:
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def fmt_unit_price(value) -> str:
    """Prix unitaire : au moins 2 décimales, sans perdre les décimales utiles (max 6)."""
    d = Decimal(value).quantize(MICRO, rounding=ROUND_HALF_UP).normalize()
    if d.as_tuple().exponent > -2:
        d = d.quantize(CENT)
    return format(d, "f")


def order_number(prefix: str, entity_id: int) -> str:
    return f"{prefix}-{int(entity_id):06d}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _export_date() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------- Projections ----------
def export_order(db: Session, order_id: int) -> dict:
    with transaction(db):
        order = (
            db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(
                    selectinload(Order.customer),
                    selectinload(Order.items).selectinload(OrderItem.product).selectinload(Product.supplier),
                )
            )
            .scalars()
            .first()
        )
        if not order:
            raise NotFound("Order not found")

        items = sorted(order.items, key=lambda i: (i.product.name, i.product_id))
        return {
            "exportType": "ORDER",
            "exportDate": _export_date(),
            "data": {
                "orderId": order.id,
                "orderNumber": order_number("ORD", order.id),
                "status": order.status.value,
                "createdAt": _iso(order.created_at),
                "updatedAt": _iso(order.updated_at),
                "consolidatedAt": _iso(order.consolidated_at),
                "customer": {
                    "name": order.customer.name,
                    "email": order.customer.email,
                    "role": order.customer.role.value,
                },
                "currency": order.currency,
                "totals": {
                    "subtotal": money(order.subtotal),
                    "discount": money(order.discount),
                    "total": money(order.total),
                },
                "items": [
                    {
                        "product": {
                            "sku": i.product.sku,
                            "name": i.product.name,
                            "supplier": i.product.supplier.name,
                        },
                        "qty": i.qty,
                        "unitPrice": fmt_unit_price(i.unit_price),
                        "lineTotal": money(i.line_total),
                    }
                    for i in items
                ],
            },
        }


def export_consolidated_order(db: Session, consolidated_id: int) -> dict:
    with transaction(db):
        consolidated = get_consolidated(db, consolidated_id)

        items = sorted(consolidated.items, key=lambda i: (i.product.name, i.product_id))
        grand_total = sum((Decimal(i.line_total) for i in items), Decimal("0"))
        return {
            "exportType": "CONSOLIDATED_ORDER",
            "exportDate": _export_date(),
            "data": {
                "consolidatedOrderId": consolidated.id,
                "orderNumber": order_number("CON", consolidated.id),
                "createdAt": _iso(consolidated.created_at),
                "supplier": {
                    "name": consolidated.supplier.name,
                    "email": consolidated.supplier.email,
                },
                "items": [
                    {
                        "product": {
                            "sku": i.product.sku,
                            "name": i.product.name,
                            "basePrice": money(i.product.base_price),
                        },
                        "totalQty": i.total_qty,
                        "unitPrice": fmt_unit_price(i.unit_price),
                        "lineTotal": money(i.line_total),
                    }
                    for i in items
                ],
                "totals": {
                    "totalItems": len(items),
                    "grandTotal": money(grand_total),
                },
            },
        }


def export_product_sales_report(db: Session) -> dict:
    """Ventes par produit : seules les lignes des commandes COMPLETED comptent."""
    with transaction(db):
        products = (
            db.execute(select(Product).options(selectinload(Product.supplier)).order_by(Product.name, Product.id))
            .scalars()
            .all()
        )
        sold_rows = db.execute(
            select(OrderItem.product_id, OrderItem.qty, OrderItem.line_total)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status == OrderStatus.completed)
        ).all()

    qty_sold: dict[int, int] = {}
    revenue: dict[int, Decimal] = {}
    for product_id, qty, line_total in sold_rows:
        qty_sold[product_id] = qty_sold.get(product_id, 0) + int(qty)
        revenue[product_id] = revenue.get(product_id, Decimal("0")) + Decimal(line_total)

    report = [
        {
            "sku": p.sku,
            "name": p.name,
            "supplier": p.supplier.name,
            "basePrice": money(p.base_price),
            "currentStock": p.stock,
            "totalQtySold": qty_sold.get(p.id, 0),
            "totalRevenue": money(revenue.get(p.id, Decimal("0"))),
        }
        for p in products
    ]
    # somme des montants déjà arrondis par produit : le résumé recoupe les lignes
    total_revenue = sum((Decimal(row["totalRevenue"]) for row in report), Decimal("0"))

    return {
        "exportType": "PRODUCT_SALES_REPORT",
        "exportDate": _export_date(),
        "data": {
            "products": report,
            "summary": {
                "totalProducts": len(report),
                "totalRevenue": money(total_revenue),
            },
        },
    }


# ---------- Renderings ----------
def product_sales_report_frame(db: Session) -> pd.DataFrame:
    report = export_product_sales_report(db)
    return pd.DataFrame(report["data"]["products"], columns=SALES_REPORT_COLUMNS)


def product_sales_report_csv(db: Session) -> str:
    return product_sales_report_frame(db).to_csv(index=False)


def _latin1(text: str) -> str:
    # Polices PDF de base : latin-1 uniquement
    return str(text).encode("latin-1", "replace").decode("latin-1")


def render_consolidated_order_pdf(db: Session, consolidated_id: int) -> bytes:
    """Bon de commande fournisseur (PDF) pour une consolidation."""
    export = export_consolidated_order(db, consolidated_id)
    data = export["data"]

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, "PURCHASE ORDER", new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.ln(6)

    pdf.set_font("Helvetica", size=11)
    pdf.cell(0, 8, _latin1(f"Order number: {data['orderNumber']}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(0, 8, _latin1(f"Date: {data['createdAt']}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(
        0,
        8,
        _latin1(f"Supplier: {data['supplier']['name']} <{data['supplier']['email']}>"),
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(4)

    widths = (35, 70, 20, 30, 35)
    headers = ("SKU", "Product", "Qty", "Unit price", "Line total")
    pdf.set_font("Helvetica", "B", 10)
    for w, h in zip(widths, headers):
        pdf.cell(w, 8, h, border=1)
    pdf.ln()

    pdf.set_font("Helvetica", size=10)
    for item in data["items"]:
        row = (
            item["product"]["sku"],
            item["product"]["name"],
            str(item["totalQty"]),
            item["unitPrice"],
            item["lineTotal"],
        )
        for w, value in zip(widths, row):
            pdf.cell(w, 8, _latin1(value), border=1)
        pdf.ln()

    pdf.ln(4)
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 8, _latin1(f"Grand total: {data['totals']['grandTotal']}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    return bytes(pdf.output())
