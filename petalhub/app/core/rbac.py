from __future__ import annotations

from petalhub.app.db.models.core_types import Permission, Role

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.customer: frozenset(
        {
            Permission.product_read,
            Permission.order_create,
            Permission.order_submit,
            Permission.order_delete,
        }
    ),
    Role.employee: frozenset(
        {
            Permission.user_create,
            Permission.product_read,
            Permission.product_manage,
            Permission.pricing_manage,
            Permission.order_create,
            Permission.order_submit,
            Permission.order_delete,
            Permission.order_review,
            Permission.order_approve,
            Permission.order_decline,
            Permission.order_complete,
            Permission.consolidate_create,
            Permission.export_read,
        }
    ),
    Role.supplier: frozenset(
        {
            Permission.product_read,
            Permission.consolidate_read_own,
            Permission.export_read,
        }
    ),
}


def has_permissions(role: Role, *required: Permission) -> bool:
    granted = ROLE_PERMISSIONS.get(Role(role), frozenset())
    return all(p in granted for p in required)
