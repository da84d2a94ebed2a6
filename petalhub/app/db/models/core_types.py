import enum

class Role(str, enum.Enum):
    customer = "CUSTOMER"
    employee = "EMPLOYEE"
    supplier = "SUPPLIER"

class OrderStatus(str, enum.Enum):
    draft = "DRAFT"
    pending_validation = "PENDING_VALIDATION"
    validated = "VALIDATED"
    completed = "COMPLETED"
    declined = "DECLINED"

class Permission(str, enum.Enum):
    user_create = "user:create"
    product_read = "product:read"
    product_manage = "product:manage"
    pricing_manage = "pricing:manage"
    order_create = "order:create"
    order_submit = "order:submit"
    order_delete = "order:delete"
    order_review = "order:review"
    order_approve = "order:approve"
    order_decline = "order:decline"
    order_complete = "order:complete"
    consolidate_create = "consolidate:create"
    consolidate_read_own = "consolidate:read_own"
    export_read = "export:read"
