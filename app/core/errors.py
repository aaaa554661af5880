# app/core/errors.py
"""
Error taxonomy for the cart / order core.

Every error carries a stable `code`, the HTTP status it maps to and whether
the caller may retry. Messages are safe to show to clients; storage details
never end up in them.
"""

from typing import Any


class ShopError(Exception):
    code = "ERROR"
    status_code = 400
    retryable = False
    default_message = "Request failed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ShopError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(ShopError):
    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ShopError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not allowed to access this resource"


class NotFound(ShopError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class InsufficientStock(ShopError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409
    default_message = "Not enough stock available"

    def __init__(
        self,
        product_name: str | None = None,
        available: int | None = None,
        requested: int | None = None,
        product_id: str | None = None,
        message: str | None = None,
    ):
        if message is not None:
            msg = message
        elif product_name is not None and available is not None:
            msg = (
                f'Insufficient stock for product "{product_name}". '
                f"Available: {available}, requested: {requested}"
            )
        elif product_name is not None:
            msg = f'Insufficient stock for product "{product_name}"'
        else:
            msg = None
        details = {}
        if product_id is not None:
            details["product_id"] = product_id
        super().__init__(msg, **details)


class EmptyCartError(ShopError):
    code = "EMPTY_CART"
    status_code = 400
    default_message = "Cart is empty. Add products before placing an order."


class InvalidStateError(ShopError):
    code = "INVALID_STATE"
    status_code = 409
    default_message = "Invalid order status transition"

    def __init__(self, from_status: str | None = None, to_status: str | None = None):
        if from_status and to_status:
            msg = f'Cannot change order status from "{from_status}" to "{to_status}"'
        else:
            msg = None
        super().__init__(msg)


class Conflict(ShopError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists"


class Unavailable(ShopError):
    code = "UNAVAILABLE"
    status_code = 503
    retryable = True
    default_message = "Service temporarily unavailable, please retry"


class Internal(ShopError):
    code = "INTERNAL"
    status_code = 500
    default_message = "Internal server error"
