# Overview: Service-layer operations for order reporting, CSV export and the dashboard.

from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta

from sqlalchemy import or_

from wholesale.extensions import db
from wholesale.models import (
    Dispensary,
    ProductTemplate,
    User,
    WholesaleOrder,
    WholesaleOrderLine,
)
from wholesale.models.orders import PAYMENT_STATUSES
from wholesale.time_utils import parse_iso_datetime, to_utc_z


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


CSV_HEADER = [
    "OrderID",
    "OrderDate",
    "DispensaryName",
    "TotalAmount",
    "PaymentMethod",
    "PaymentTerms",
    "PaymentStatus",
    "SalesAssociate",
    "MetrcID",
    "ShipmentDate",
    "ProductsOrdered(ID|Name|Qty|Price|Subtotal)",
]


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Parse an inclusive report range.

    A date-only end ("2024-05-31") covers that whole day.
    """
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 dates")
    if end_dt is not None and len(end.strip()) == 10:
        end_dt = end_dt + timedelta(days=1) - timedelta(microseconds=1)
    if start_dt and end_dt and end_dt < start_dt:
        raise ReportError("end must not be before start")
    return start_dt, end_dt


def _cents_to_amount(cents: int) -> str:
    return f"{cents / 100:.2f}"


def filter_orders(
    *,
    search: str | None = None,
    dispensary_id: str | None = None,
    template_id: str | None = None,
    sales_associate_id: int | None = None,
    payment_status: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> list[WholesaleOrder]:
    """Orders matching every supplied filter, newest first."""
    if payment_status and payment_status not in PAYMENT_STATUSES:
        raise ReportError(f"payment_status must be one of: {', '.join(PAYMENT_STATUSES)}")
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(WholesaleOrder)

    if dispensary_id:
        query = query.filter(WholesaleOrder.dispensary_id == dispensary_id)
    if sales_associate_id:
        query = query.filter(WholesaleOrder.sales_associate_id == sales_associate_id)
    if payment_status:
        query = query.filter(WholesaleOrder.payment_status == payment_status)
    if start_dt:
        query = query.filter(WholesaleOrder.ordered_at >= start_dt)
    if end_dt:
        query = query.filter(WholesaleOrder.ordered_at <= end_dt)
    if template_id:
        query = query.filter(
            WholesaleOrder.lines.any(WholesaleOrderLine.template_id == template_id)
        )
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            WholesaleOrder.id.ilike(like),
            WholesaleOrder.metrc_manifest_id.ilike(like),
            WholesaleOrder.dispensary.has(Dispensary.name.ilike(like)),
            WholesaleOrder.sales_associate.has(User.username.ilike(like)),
            WholesaleOrder.lines.any(WholesaleOrderLine.product_name.ilike(like)),
        ))

    return query.order_by(WholesaleOrder.ordered_at.desc(), WholesaleOrder.id.desc()).all()


def orders_report(**filters) -> dict:
    orders = filter_orders(**filters)
    return {
        "orders": [order.to_dict() for order in orders],
        "count": len(orders),
        "total_revenue_cents": sum(order.total_amount_cents for order in orders),
    }


def orders_csv(**filters) -> str:
    """CSV export of the filtered orders, one row per order."""
    orders = filter_orders(**filters)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for order in orders:
        products = ";".join(
            f"{line.template_id}|{line.product_name}|{line.quantity}|"
            f"{_cents_to_amount(line.unit_price_cents)}|{_cents_to_amount(line.subtotal_cents)}"
            for line in order.lines
        )
        writer.writerow([
            order.id,
            order.ordered_at.date().isoformat(),
            order.dispensary.name if order.dispensary else "N/A",
            _cents_to_amount(order.total_amount_cents),
            order.payment_method,
            order.payment_terms,
            order.payment_status,
            order.sales_associate.username if order.sales_associate else "",
            order.metrc_manifest_id or "",
            order.shipment_date.isoformat() if order.shipment_date else "",
            products,
        ])
    return buffer.getvalue()


def dashboard_summary(*, recent_limit: int = 5) -> dict:
    """Headline numbers plus revenue per calendar day (ascending)."""
    rows = db.session.query(WholesaleOrder.ordered_at, WholesaleOrder.total_amount_cents).all()

    revenue_by_day: dict[str, int] = {}
    for ordered_at, total in rows:
        day = ordered_at.date().isoformat()
        revenue_by_day[day] = revenue_by_day.get(day, 0) + (total or 0)

    recent = (
        db.session.query(WholesaleOrder)
        .order_by(WholesaleOrder.ordered_at.desc(), WholesaleOrder.id.desc())
        .limit(recent_limit)
        .all()
    )

    return {
        "total_revenue_cents": sum(total or 0 for _, total in rows),
        "order_count": len(rows),
        "active_product_count": db.session.query(ProductTemplate).filter(
            ProductTemplate.is_active.is_(True)
        ).count(),
        "dispensary_count": db.session.query(Dispensary).count(),
        "revenue_by_day": [
            {"date": day, "revenue_cents": revenue_by_day[day]}
            for day in sorted(revenue_by_day)
        ],
        "recent_orders": [
            {
                "id": order.id,
                "ordered_at": to_utc_z(order.ordered_at),
                "dispensary_name": order.dispensary.name if order.dispensary else None,
                "total_amount_cents": order.total_amount_cents,
                "payment_status": order.payment_status,
            }
            for order in recent
        ],
    }
