# Overview: Service-layer operations for wholesale orders; validation, pricing and stock decrements.

"""
Wholesale order computation and placement.

compute_order is pure with respect to the catalog: it validates the line
items against live batch stock and prices them, returning the pending
stock-decrement map. Nothing is written until apply_stock_decrements runs.

Validation order (first failure wins, catalog untouched):
1. empty order
2. every line: unknown template, unknown batch, batch/template mismatch,
   inactive batch
3. every line: requested quantity (summed per batch across lines) > live stock
4. every line: quantity not a positive integer

Each step covers all lines before the next one starts.

Prices, product name, METRC id and potency are frozen into the computed
lines at computation time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..extensions import db
from ..models import Dispensary, WholesaleOrder, WholesaleOrderLine
from ..models.orders import (
    PAYMENT_PENDING,
    PAYMENT_PAID,
    PAYMENT_PARTIALLY_PAID,
    PAYMENT_OVERDUE,
    PAYMENT_CANCELLED,
)
from ..validation import NotFoundError, enforce_rules_order
from wholesale.time_utils import utcnow
from .catalog_store import CatalogStore, SqlCatalogStore
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .identifier_service import timestamp_order_id
from .order_errors import (
    OrderError,
    EmptyOrderError,
    UnknownTemplateError,
    UnknownBatchError,
    BatchTemplateMismatchError,
    BatchInactiveError,
    InsufficientStockError,
    InvalidQuantityError,
    UnknownDispensaryError,
)


@dataclass(frozen=True)
class OrderLineItem:
    """One template/batch/quantity tuple requested by the order form."""
    template_id: str
    batch_id: str
    quantity: int


@dataclass(frozen=True)
class ComputedOrderLine:
    template_id: str
    batch_id: str
    product_name: str
    batch_metrc_package_id: str
    quantity: int
    unit_price_cents: int
    subtotal_cents: int
    thc_percentage_at_sale: float | None
    cbd_percentage_at_sale: float | None

    def to_dict(self) -> dict:
        return {
            "template_id": self.template_id,
            "batch_id": self.batch_id,
            "product_name": self.product_name,
            "batch_metrc_package_id": self.batch_metrc_package_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "thc_percentage_at_sale": self.thc_percentage_at_sale,
            "cbd_percentage_at_sale": self.cbd_percentage_at_sale,
        }


@dataclass(frozen=True)
class ComputedOrder:
    order_id: str
    lines: list[ComputedOrderLine]
    total_amount_cents: int
    # batch_id -> quantity to subtract when the order is committed
    stock_decrements: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "lines": [line.to_dict() for line in self.lines],
            "total_amount_cents": self.total_amount_cents,
            "stock_decrements": dict(self.stock_decrements),
        }


class PaymentStatusError(Exception):
    """Raised for an illegal payment status transition."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# Pending may move anywhere; Paid and Cancelled are terminal.
PAYMENT_STATUS_TRANSITIONS = {
    PAYMENT_PENDING: {PAYMENT_PAID, PAYMENT_PARTIALLY_PAID, PAYMENT_OVERDUE, PAYMENT_CANCELLED},
    PAYMENT_PARTIALLY_PAID: {PAYMENT_PAID, PAYMENT_OVERDUE, PAYMENT_CANCELLED},
    PAYMENT_OVERDUE: {PAYMENT_PAID, PAYMENT_PARTIALLY_PAID, PAYMENT_CANCELLED},
    PAYMENT_PAID: set(),
    PAYMENT_CANCELLED: set(),
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _is_identifier(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def parse_line_items(raw_lines) -> list[OrderLineItem]:
    """
    Build OrderLineItem objects from JSON-ish dicts.

    Only the shape is checked here; quantities are validated by compute_order.
    """
    if not isinstance(raw_lines, list):
        raise EmptyOrderError()
    items = []
    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise InvalidQuantityError(None, len(items))
        items.append(OrderLineItem(
            template_id=raw.get("template_id"),
            batch_id=raw.get("batch_id"),
            quantity=raw.get("quantity"),
        ))
    return items


def compute_order(
    line_items: list[OrderLineItem],
    store: CatalogStore,
    *,
    order_id_factory=timestamp_order_id,
) -> ComputedOrder:
    """
    Validate line items against live stock and price them.

    Raises an OrderError subclass on the first failing check. Never
    mutates the catalog.
    """
    if not line_items:
        raise EmptyOrderError()

    resolved = []
    for item in line_items:
        template_id, batch_id = item.template_id, item.batch_id
        template = store.get_template(template_id) if _is_identifier(template_id) else None
        if template is None:
            raise UnknownTemplateError(template_id)

        batch = store.get_batch(batch_id) if _is_identifier(batch_id) else None
        if batch is None:
            raise UnknownBatchError(batch_id)
        if batch.template_id != template_id:
            raise BatchTemplateMismatchError(batch.id, template_id, batch.template_id)
        if not batch.is_active:
            raise BatchInactiveError(batch.id)
        resolved.append((template, batch, item.quantity))

    # Live stock, cumulative for repeated batches
    requested_by_batch: dict = {}
    for index, (_, batch, quantity) in enumerate(resolved):
        if not _is_number(quantity):
            raise InvalidQuantityError(quantity, index)
        requested = requested_by_batch.get(batch.id, 0) + quantity
        if requested > batch.current_stock_quantity:
            raise InsufficientStockError(batch.id, requested, batch.current_stock_quantity)
        requested_by_batch[batch.id] = requested

    for index, (_, _, quantity) in enumerate(resolved):
        if not _is_positive_int(quantity):
            raise InvalidQuantityError(quantity, index)

    lines = []
    for template, batch, quantity in resolved:
        unit_price_cents = batch.wholesale_price_cents
        lines.append(ComputedOrderLine(
            template_id=template.id,
            batch_id=batch.id,
            product_name=template.name,
            batch_metrc_package_id=batch.metrc_package_id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            subtotal_cents=quantity * unit_price_cents,
            thc_percentage_at_sale=batch.thc_percentage,
            cbd_percentage_at_sale=batch.cbd_percentage,
        ))

    return ComputedOrder(
        order_id=order_id_factory(),
        lines=lines,
        total_amount_cents=sum(line.subtotal_cents for line in lines),
        stock_decrements=requested_by_batch,
    )


def apply_stock_decrements(computed: ComputedOrder, store: CatalogStore) -> dict:
    """
    Apply a computed order's decrement map, all or nothing.

    Each decrement is re-validated against live stock by the store's
    compare-and-decrement. On failure, decrements already applied are
    handed back to store.restore_stock in reverse order and the
    OrderError propagates.

    Returns {batch_id: remaining_stock}.
    """
    applied: list[tuple] = []
    remaining = {}
    try:
        for batch_id, quantity in computed.stock_decrements.items():
            remaining[batch_id] = store.decrement_stock(batch_id, quantity)
            applied.append((batch_id, quantity))
    except OrderError:
        for batch_id, quantity in reversed(applied):
            store.restore_stock(batch_id, quantity)
        raise
    return remaining


def place_order(
    *,
    line_items: list[OrderLineItem],
    dispensary_id: str,
    sales_associate_id: int,
    payment_method: str,
    payment_terms: str,
    payment_status: str = PAYMENT_PENDING,
    ordered_at: datetime | None = None,
    notes: str | None = None,
    shipment_date=None,
    tracking_number: str | None = None,
    metrc_manifest_id: str | None = None,
    order_id_factory=timestamp_order_id,
) -> WholesaleOrder:
    """
    Validate, price and persist an order together with its stock decrements.

    One write transaction: the order, its lines and every batch decrement
    commit together or not at all. Stock is re-read under the write lock,
    so of two placements that jointly oversubscribe a batch only one
    succeeds; the other raises InsufficientStockError.
    """
    enforce_rules_order({
        "payment_method": payment_method,
        "payment_terms": payment_terms,
        "payment_status": payment_status,
    })

    def _op():
        begin_write_transaction()
        try:
            if not db.session.get(Dispensary, dispensary_id):
                raise UnknownDispensaryError(dispensary_id)

            store = SqlCatalogStore(lock_rows=True)
            computed = compute_order(line_items, store, order_id_factory=order_id_factory)

            order = WholesaleOrder(
                id=computed.order_id,
                ordered_at=ordered_at or utcnow(),
                dispensary_id=dispensary_id,
                sales_associate_id=sales_associate_id,
                total_amount_cents=computed.total_amount_cents,
                payment_method=payment_method,
                payment_terms=payment_terms,
                payment_status=payment_status,
                notes=notes,
                shipment_date=shipment_date,
                tracking_number=tracking_number,
                metrc_manifest_id=metrc_manifest_id,
            )
            db.session.add(order)
            for number, line in enumerate(computed.lines, start=1):
                db.session.add(WholesaleOrderLine(
                    order_id=order.id,
                    line_number=number,
                    template_id=line.template_id,
                    batch_id=line.batch_id,
                    product_name=line.product_name,
                    batch_metrc_package_id=line.batch_metrc_package_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    subtotal_cents=line.subtotal_cents,
                    thc_percentage_at_sale=line.thc_percentage_at_sale,
                    cbd_percentage_at_sale=line.cbd_percentage_at_sale,
                ))
            db.session.flush()

            apply_stock_decrements(computed, store)
            db.session.commit()
        except OrderError:
            db.session.rollback()
            raise
        return order

    return run_with_retry(_op)


def get_order(order_id: str) -> WholesaleOrder:
    order = db.session.get(WholesaleOrder, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def update_payment_status(order_id: str, new_status: str) -> WholesaleOrder:
    """Move an order's payment status along an allowed transition."""
    enforce_rules_order({"payment_status": new_status})

    def _op():
        order = lock_for_update(
            db.session.query(WholesaleOrder).filter_by(id=order_id)
        ).first()
        if order is None:
            raise NotFoundError("Order not found")

        current = order.payment_status
        if new_status == current:
            return order
        if new_status not in PAYMENT_STATUS_TRANSITIONS.get(current, set()):
            db.session.rollback()
            raise PaymentStatusError(
                f"Cannot change payment status from {current} to {new_status}",
                details={"from": current, "to": new_status},
            )

        order.payment_status = new_status
        db.session.commit()
        return order

    return run_with_retry(_op)
