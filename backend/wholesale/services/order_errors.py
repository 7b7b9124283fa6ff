# Overview: Typed errors raised while validating and applying wholesale orders.

"""
Order error taxonomy.

All of these are expected user-input conditions: the catalog is left
untouched, the caller receives the typed error and re-prompts. None of
them is logged as a system failure.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order validation/application errors."""

    code = "ORDER_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class EmptyOrderError(OrderError):
    code = "EMPTY_ORDER"

    def __init__(self):
        super().__init__("At least one product must be added to the order")


class UnknownTemplateError(OrderError):
    code = "UNKNOWN_TEMPLATE"

    def __init__(self, template_id):
        super().__init__(f"Product template {template_id!r} not found", {"template_id": template_id})
        self.template_id = template_id


class UnknownBatchError(OrderError):
    code = "UNKNOWN_BATCH"

    def __init__(self, batch_id):
        super().__init__(f"Product batch {batch_id!r} not found", {"batch_id": batch_id})
        self.batch_id = batch_id


class BatchTemplateMismatchError(OrderError):
    code = "BATCH_TEMPLATE_MISMATCH"

    def __init__(self, batch_id, template_id, batch_template_id):
        super().__init__(
            f"Batch {batch_id!r} does not belong to template {template_id!r}",
            {
                "batch_id": batch_id,
                "template_id": template_id,
                "batch_template_id": batch_template_id,
            },
        )


class BatchInactiveError(OrderError):
    code = "BATCH_INACTIVE"

    def __init__(self, batch_id):
        super().__init__(f"Batch {batch_id!r} is not active", {"batch_id": batch_id})
        self.batch_id = batch_id


class InsufficientStockError(OrderError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, batch_id, requested: int, available: int):
        super().__init__(
            f"Not enough stock for batch {batch_id!r}. Requested: {requested}, available: {available}",
            {"batch_id": batch_id, "requested": requested, "available": available},
        )
        self.batch_id = batch_id
        self.requested = requested
        self.available = available


class InvalidQuantityError(OrderError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity, line_index: int | None = None):
        super().__init__(
            "Quantity must be a positive integer",
            {"quantity": quantity, "line_index": line_index},
        )


class UnknownDispensaryError(OrderError):
    code = "UNKNOWN_DISPENSARY"

    def __init__(self, dispensary_id):
        super().__init__(f"Dispensary {dispensary_id!r} not found", {"dispensary_id": dispensary_id})
