from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from petalhub.app.api.deps import Caller, get_db, require_permissions
from petalhub.app.db.models.core_types import Permission, Role
from petalhub.services import consolidation as consolidation_svc
from petalhub.services import exports as exports_svc

router = APIRouter(prefix="/exports")


def _ensure_supplier_owns(db: Session, consolidated_id: int, caller: Caller) -> None:
    if caller.role != Role.supplier:
        return
    c = consolidation_svc.get_consolidated(db, consolidated_id)
    if c.supplier_id != caller.id:
        raise HTTPException(status_code=403, detail="Can only export own consolidated orders")


@router.get("/orders/{order_id}")
def export_order(
    order_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.export_read)),
):
    if caller.role == Role.supplier:
        raise HTTPException(status_code=403, detail="Suppliers can only export consolidated orders")
    return exports_svc.export_order(db, order_id)


@router.get("/consolidated-orders/{consolidated_id}")
def export_consolidated_order(
    consolidated_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.export_read)),
):
    _ensure_supplier_owns(db, consolidated_id, caller)
    return exports_svc.export_consolidated_order(db, consolidated_id)


@router.get("/consolidated-orders/{consolidated_id}/pdf")
def export_consolidated_order_pdf(
    consolidated_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.export_read)),
):
    _ensure_supplier_owns(db, consolidated_id, caller)
    pdf_bytes = exports_svc.render_consolidated_order_pdf(db, consolidated_id)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="purchase_order_{consolidated_id}.pdf"'},
    )


@router.get("/product-sales")
def export_product_sales(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.export_read)),
):
    return exports_svc.export_product_sales_report(db)


@router.get("/product-sales.csv")
def export_product_sales_csv(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.export_read)),
):
    return Response(
        content=exports_svc.product_sales_report_csv(db),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="product_sales.csv"'},
    )
