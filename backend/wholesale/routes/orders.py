# Overview: Flask API routes for wholesale orders; parses input and returns JSON responses.

"""
Wholesale order routes.

- POST /api/orders/preview  validates and prices an order, writes nothing
- POST /api/orders          places it (order + lines + stock decrements)
- PATCH /api/orders/<id>/payment-status moves the payment status
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_permission
from ..services import order_service
from ..services.catalog_store import SqlCatalogStore
from ..services.order_errors import InsufficientStockError, OrderError
from ..services.order_service import PaymentStatusError
from ..services.reporting_service import ReportError, filter_orders
from ..validation import NotFoundError, ValidationError
from wholesale.time_utils import parse_iso_date, parse_iso_datetime

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_error_response(e: OrderError):
    status = 409 if isinstance(e, InsufficientStockError) else 400
    return e.to_dict(), status


def _optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@orders_bp.post("/preview")
@require_auth
@require_permission("CREATE_ORDER")
def preview_order_route():
    """Computed lines and total against live stock, without placing the order."""
    payload = request.get_json(silent=True) or {}
    try:
        line_items = order_service.parse_line_items(payload.get("lines"))
        computed = order_service.compute_order(line_items, SqlCatalogStore())
    except OrderError as e:
        return _order_error_response(e)
    return computed.to_dict()


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def place_order_route():
    """
    Place a wholesale order.

    Body:
    {
      "dispensary_id": "disp001",
      "payment_method": "ACH",
      "payment_terms": "Net 30",
      "payment_status": "Pending",          (optional)
      "lines": [{"template_id": "...", "batch_id": "...", "quantity": 10}],
      "notes", "shipment_date", "tracking_number", "metrc_manifest_id", "ordered_at"   (optional)
    }
    """
    payload = request.get_json(silent=True) or {}

    dispensary_id = _optional_text(payload, "dispensary_id")
    if not dispensary_id:
        return {"error": "dispensary_id is required"}, 400

    try:
        ordered_at = parse_iso_datetime(payload.get("ordered_at")) if payload.get("ordered_at") else None
        shipment_date = parse_iso_date(payload.get("shipment_date")) if payload.get("shipment_date") else None
    except (TypeError, ValueError):
        return {"error": "ordered_at and shipment_date must be ISO-8601"}, 400

    try:
        line_items = order_service.parse_line_items(payload.get("lines"))
        order = order_service.place_order(
            line_items=line_items,
            dispensary_id=dispensary_id,
            sales_associate_id=g.current_user.id,
            payment_method=payload.get("payment_method"),
            payment_terms=payload.get("payment_terms"),
            payment_status=payload.get("payment_status") or "Pending",
            ordered_at=ordered_at,
            notes=_optional_text(payload, "notes"),
            shipment_date=shipment_date,
            tracking_number=_optional_text(payload, "tracking_number"),
            metrc_manifest_id=_optional_text(payload, "metrc_manifest_id"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except OrderError as e:
        return _order_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return {"error": "Internal server error"}, 500

    current_app.logger.info(
        "order placed id=%s dispensary=%s total_cents=%s user=%s",
        order.id, order.dispensary_id, order.total_amount_cents, g.current_user.username,
    )
    return order.to_dict(), 201


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_route():
    try:
        orders = filter_orders(
            search=request.args.get("search") or None,
            dispensary_id=request.args.get("dispensary_id") or None,
            payment_status=request.args.get("payment_status") or None,
            start=request.args.get("start") or None,
            end=request.args.get("end") or None,
        )
    except ReportError as e:
        return {"error": str(e)}, 400
    return {"orders": [o.to_dict(include_lines=False) for o in orders], "count": len(orders)}


@orders_bp.get("/<order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_route(order_id: str):
    try:
        return order_service.get_order(order_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@orders_bp.patch("/<order_id>/payment-status")
@require_auth
@require_permission("UPDATE_PAYMENT_STATUS")
def update_payment_status_route(order_id: str):
    payload = request.get_json(silent=True) or {}
    new_status = payload.get("payment_status")
    if not new_status:
        return {"error": "payment_status is required"}, 400

    try:
        order = order_service.update_payment_status(order_id, new_status)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except PaymentStatusError as e:
        return {"error": str(e), "details": e.details}, 409
    return order.to_dict()
