from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from petalhub.app.api.deps import Caller, get_db, require_permissions, require_roles
from petalhub.app.db.models.core_types import Permission, Role
from petalhub.app.schemas.consolidation import ConsolidatedOrderRead, ConsolidationRunRead
from petalhub.services import consolidation as consolidation_svc

router = APIRouter(prefix="/consolidation")


@router.post("/run", status_code=201)
def run_consolidation(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_permissions(Permission.consolidate_create)),
):
    result = consolidation_svc.consolidate(db)
    return ConsolidationRunRead(
        consolidated_orders=[ConsolidatedOrderRead.model_validate(c) for c in result.consolidated_orders],
        orders_processed=result.orders_processed,
    )


@router.get("")
def list_consolidated(
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_roles(Role.employee, Role.supplier)),
):
    # Un fournisseur ne voit que ses propres consolidations
    supplier_id = caller.id if caller.role == Role.supplier else None
    rows = consolidation_svc.list_consolidated(db, supplier_id=supplier_id)
    return [ConsolidatedOrderRead.model_validate(c) for c in rows]


@router.get("/{consolidated_id}")
def get_consolidated(
    consolidated_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_roles(Role.employee, Role.supplier)),
):
    c = consolidation_svc.get_consolidated(db, consolidated_id)
    if caller.role == Role.supplier and c.supplier_id != caller.id:
        raise HTTPException(status_code=403, detail="Can only read own consolidated orders")
    return ConsolidatedOrderRead.model_validate(c)
