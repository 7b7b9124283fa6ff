# Overview: Service-layer operations for natural-language sales and business insights.

"""
Insights requests.

Mode A (sales Q&A) filters orders to a date window and product category,
aggregates the matching lines per template and only then calls the
gateway. An empty aggregate never reaches the gateway; a canned answer is
returned instead.

Mode B (business analysis) sends a full snapshot of catalog, orders and
dispensaries with an optional focus string.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Dispensary, ProductBatch, ProductTemplate, WholesaleOrder
from ..validation import ValidationError
from wholesale.time_utils import parse_iso_datetime, to_iso_date, to_utc_z, utcnow
from .insights_schemas import AggregatedSale, SalesInsightsResult
from .llm_gateway import InsightsError, InsightsGateway
from .rollup_service import rollups_by_template

NO_DATA_SUMMARY = (
    "No relevant sales data found for the selected filters. "
    "Please try expanding your date range or changing the product category."
)
TOP_PRODUCTS_LIMIT = 5


def get_gateway() -> InsightsGateway:
    gateway = current_app.extensions.get("insights_gateway")
    if gateway is None:
        raise InsightsError(
            InsightsError.GATEWAY_NOT_CONFIGURED,
            "Insights service is not configured",
        )
    return gateway


def _parse_bound(value, *, end_of_day: bool) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError("date_range bounds must be ISO-8601 dates")
    if end_of_day and isinstance(value, str) and len(value.strip()) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def resolve_window(date_from=None, date_to=None, *, now: datetime | None = None) -> tuple[datetime, datetime]:
    """[from or now - default window, to or now]."""
    now = now or utcnow()
    window_days = current_app.config.get("INSIGHTS_DEFAULT_WINDOW_DAYS", 60)
    start = _parse_bound(date_from, end_of_day=False) or now - timedelta(days=window_days)
    end = _parse_bound(date_to, end_of_day=True) or now
    if end < start:
        raise ValidationError("date_range.to must not be before date_range.from")
    return start, end


def filter_orders_for_insights(
    orders: list[WholesaleOrder],
    templates: list[ProductTemplate],
    *,
    start: datetime,
    end: datetime,
    product_category: str | None = None,
) -> tuple[list[WholesaleOrder], set[str]]:
    """
    Orders inside [start, end] with at least one line from a matching template.

    Returns the orders and the set of matching template ids.
    """
    relevant_ids = {
        t.id for t in templates
        if not product_category or t.product_category == product_category
    }
    matched = [
        order for order in orders
        if start <= order.ordered_at <= end
        and any(line.template_id in relevant_ids for line in order.lines)
    ]
    return matched, relevant_ids


def aggregate_sales_by_template(
    orders: list[WholesaleOrder],
    templates: list[ProductTemplate],
    relevant_ids: set[str],
) -> list[AggregatedSale]:
    """Sum matching line quantities per template, in first-seen order."""
    by_id = {t.id: t for t in templates}
    totals: dict[str, int] = {}
    for order in orders:
        for line in order.lines:
            if line.template_id not in relevant_ids or line.template_id not in by_id:
                continue
            totals[line.template_id] = totals.get(line.template_id, 0) + line.quantity

    return [
        AggregatedSale(
            product_template_id=template_id,
            product_name=by_id[template_id].name,
            strain_type=by_id[template_id].strain_type,
            total_quantity_sold=quantity,
        )
        for template_id, quantity in totals.items()
    ]


def _top_products(result: SalesInsightsResult) -> SalesInsightsResult:
    chart = sorted(result.top_products_chart_data, key=lambda item: item.value, reverse=True)
    return result.model_copy(update={"top_products_chart_data": chart[:TOP_PRODUCTS_LIMIT]})


def generate_sales_insights(
    *,
    question: str,
    date_from=None,
    date_to=None,
    product_category: str | None = None,
    now: datetime | None = None,
) -> dict:
    if not question or not str(question).strip():
        raise ValidationError("question is required")

    start, end = resolve_window(date_from, date_to, now=now)
    templates = db.session.query(ProductTemplate).all()
    orders = (
        db.session.query(WholesaleOrder)
        .filter(WholesaleOrder.ordered_at >= start, WholesaleOrder.ordered_at <= end)
        .order_by(WholesaleOrder.ordered_at.asc())
        .all()
    )
    matched, relevant_ids = filter_orders_for_insights(
        orders, templates, start=start, end=end, product_category=product_category
    )
    sales_data = aggregate_sales_by_template(matched, templates, relevant_ids)

    if not sales_data:
        return SalesInsightsResult(summary=NO_DATA_SUMMARY).to_dict()

    result = get_gateway().answer_sales_question(str(question).strip(), sales_data)
    if result is None:
        raise InsightsError(InsightsError.EMPTY_RESPONSE, "AI failed to generate insights.")
    return _top_products(result).to_dict()


def build_business_snapshot() -> dict:
    templates = db.session.query(ProductTemplate).order_by(ProductTemplate.name.asc()).all()
    batches = db.session.query(ProductBatch).all()
    rollups = rollups_by_template([t.id for t in templates], batches)
    orders = db.session.query(WholesaleOrder).order_by(WholesaleOrder.ordered_at.asc()).all()
    dispensaries = db.session.query(Dispensary).order_by(Dispensary.name.asc()).all()

    return {
        "generated_at": to_utc_z(utcnow()),
        "products": [
            {
                "id": t.id,
                "name": t.name,
                "strain_type": t.strain_type,
                "product_category": t.product_category,
                "is_active": t.is_active,
                "rollup": rollups[t.id].to_dict(),
                "batches": [
                    {
                        "id": b.id,
                        "metrc_package_id": b.metrc_package_id,
                        "current_stock_quantity": b.current_stock_quantity,
                        "wholesale_price_cents": b.wholesale_price_cents,
                        "expiration_date": to_iso_date(b.expiration_date),
                        "is_active": b.is_active,
                    }
                    for b in batches if b.template_id == t.id
                ],
            }
            for t in templates
        ],
        "orders": [
            {
                "id": o.id,
                "ordered_at": to_utc_z(o.ordered_at),
                "dispensary_id": o.dispensary_id,
                "total_amount_cents": o.total_amount_cents,
                "payment_terms": o.payment_terms,
                "payment_status": o.payment_status,
                "lines": [
                    {"template_id": line.template_id, "quantity": line.quantity}
                    for line in o.lines
                ],
            }
            for o in orders
        ],
        "dispensaries": [
            {"id": d.id, "name": d.name, "license_number": d.license_number}
            for d in dispensaries
        ],
    }


def generate_business_insights(*, focus: str | None = None) -> dict:
    focus = focus.strip() if isinstance(focus, str) and focus.strip() else None
    gateway = get_gateway()
    result = gateway.analyze_business(build_business_snapshot(), focus)
    if result is None:
        raise InsightsError(InsightsError.EMPTY_RESPONSE, "AI failed to generate insights.")
    return result.to_dict()
