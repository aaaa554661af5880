# app/core/validators.py
"""
Input validation shared by every service entry point.

Checks here run before any storage access: a malformed identifier or amount
must never reach a query. `check_*` functions return a `Validated` result;
`require_*` helpers unwrap it and raise `ValidationError`.
"""

import re
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Generic, TypeVar

from app.core.errors import ValidationError

T = TypeVar("T")

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

CENT = Decimal("0.01")

# Largest value a NUMERIC(10, 2) column holds
MAX_AMOUNT = Decimal("99999999.99")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Validated(Generic[T]):
    """Outcome of a single check: either a parsed value or an error message."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self, field: str) -> T:
        if self.error is not None:
            raise ValidationError(f"Invalid {field}: {self.error}", field=field)
        return self.value  # type: ignore[return-value]


def money(value: Decimal | int | float | str) -> Decimal:
    """Quantize an amount to cents."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ---- checks ----


def check_uuid(value: Any) -> Validated[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return Validated(value=value)
    if not isinstance(value, str) or not UUID_PATTERN.match(value):
        return Validated(error="must be a UUID (8-4-4-4-12 hex)")
    return Validated(value=uuid.UUID(value))


def check_quantity(value: Any, allow_zero_or_negative: bool = False) -> Validated[int]:
    # bool is an int subclass; True must not count as a quantity of 1
    if isinstance(value, bool) or not isinstance(value, int):
        return Validated(error="must be an integer")
    if value <= 0 and not allow_zero_or_negative:
        return Validated(error="must be greater than zero")
    return Validated(value=value)


def check_amount(value: Any, allow_zero: bool = True) -> Validated[Decimal]:
    if isinstance(value, bool) or value is None:
        return Validated(error="must be a number")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return Validated(error="must be a number")
    if not amount.is_finite():
        return Validated(error="must be a finite number")
    if amount < 0 or (amount == 0 and not allow_zero):
        return Validated(
            error="cannot be negative" if allow_zero else "must be greater than zero"
        )
    if amount > MAX_AMOUNT:
        return Validated(error=f"must be at most {MAX_AMOUNT}")
    try:
        return Validated(value=money(amount))
    except InvalidOperation:
        return Validated(error="must be a number with at most 2 decimal places")


def check_choice(value: Any, allowed: tuple[str, ...] | list[str]) -> Validated[str]:
    if not isinstance(value, str) or value not in allowed:
        return Validated(error=f"must be one of {', '.join(allowed)}")
    return Validated(value=value)


# ---- require helpers ----


def require_uuid(value: Any, field: str = "id") -> uuid.UUID:
    return check_uuid(value).unwrap(field)


def require_quantity(value: Any, field: str = "quantity") -> int:
    return check_quantity(value).unwrap(field)


def require_amount(value: Any, field: str, allow_zero: bool = True) -> Decimal:
    return check_amount(value, allow_zero=allow_zero).unwrap(field)


def require_choice(value: Any, allowed: tuple[str, ...] | list[str], field: str) -> str:
    return check_choice(value, allowed).unwrap(field)


def require_pagination(page: Any, limit: Any) -> tuple[int, int]:
    """Validate 1-based page / page size and return (offset, limit)."""
    page = check_quantity(page).unwrap("page")
    limit = check_quantity(limit).unwrap("limit")
    if limit > MAX_PAGE_SIZE:
        raise ValidationError(
            f"Invalid limit: must be at most {MAX_PAGE_SIZE}", field="limit"
        )
    return (page - 1) * limit, limit


def require_offset_limit(offset: Any, limit: Any) -> tuple[int, int]:
    """Validate a raw offset / limit window."""
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationError(
            "Invalid offset: must be a non-negative integer", field="offset"
        )
    limit = check_quantity(limit).unwrap("limit")
    if limit > MAX_PAGE_SIZE:
        raise ValidationError(
            f"Invalid limit: must be at most {MAX_PAGE_SIZE}", field="limit"
        )
    return offset, limit


def require_storable(amount: Decimal, field: str) -> Decimal:
    """Reject a computed subtotal or total the money columns cannot hold."""
    if amount > MAX_AMOUNT:
        raise ValidationError(
            f"Invalid {field}: must be at most {MAX_AMOUNT}", field=field
        )
    return amount
