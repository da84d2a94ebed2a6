"""Errors raised by the order core.

Every failure the core reports is one of these; none of them is fatal to the
process. The transport decides how each maps to a response.
"""

from __future__ import annotations


class PetalHubError(Exception):
    """Base exception for all order-core errors."""

    code = "error"


class InvalidArgument(PetalHubError):
    """Malformed input, e.g. a negative price or an unknown customer."""

    code = "invalid_argument"


class NotFound(PetalHubError):
    """A referenced entity does not exist."""

    code = "not_found"


class InvalidState(PetalHubError):
    """The operation is illegal for the entity's current status."""

    code = "invalid_state"


class Forbidden(PetalHubError):
    """The caller does not own the entity or lacks the role for the action."""

    code = "forbidden"


class InsufficientStock(PetalHubError):
    """Fulfillment is blocked because a product does not have enough stock."""

    code = "insufficient_stock"

    def __init__(self, product_id: int, product_name: str, available: int, required: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient stock for product {product_name}. "
            f"Available: {available}, Required: {required}"
        )


class StoreTimeout(PetalHubError):
    """The store did not answer within the unit-of-work deadline."""

    code = "timeout"

    def __init__(self, timeout_ms: int | None = None, detail: str | None = None):
        self.timeout_ms = timeout_ms
        msg = "Store unavailable"
        if timeout_ms is not None:
            msg = f"Store unavailable within {timeout_ms} ms"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
