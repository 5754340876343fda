"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def supplier_not_found() -> DomainError:
    return DomainError(
        code="SUPPLIER_NOT_FOUND",
        http_status=404,
        message="Supplier not found",
    )


def purchase_order_not_found() -> DomainError:
    return DomainError(
        code="PURCHASE_ORDER_NOT_FOUND",
        http_status=404,
        message="Purchase order not found",
    )
