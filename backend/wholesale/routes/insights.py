# Overview: Flask API routes for natural-language sales and business insights.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import insights_service
from ..services.llm_gateway import InsightsError
from ..validation import ValidationError

insights_bp = Blueprint("insights", __name__, url_prefix="/api/insights")


def _insights_error_response(e: InsightsError):
    status = 503 if e.code == InsightsError.GATEWAY_NOT_CONFIGURED else 502
    current_app.logger.warning("insights request failed code=%s", e.code)
    return jsonify(e.to_dict()), status


@insights_bp.post("/sales")
@require_auth
@require_permission("USE_INSIGHTS")
def sales_insights_route():
    """
    Answer a question about sales in a date window.

    Body:
    {
      "question": "What were my best sellers?",
      "date_range": {"from": "2024-05-01", "to": "2024-05-31"},   (optional, default last 60 days)
      "product_category": "Flower"                                 (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    date_range = payload.get("date_range") or {}
    if not isinstance(date_range, dict):
        return jsonify({"error": "date_range must be an object"}), 400

    try:
        result = insights_service.generate_sales_insights(
            question=payload.get("question"),
            date_from=date_range.get("from"),
            date_to=date_range.get("to"),
            product_category=payload.get("product_category") or None,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsightsError as e:
        return _insights_error_response(e)
    return jsonify(result), 200


@insights_bp.post("/business")
@require_auth
@require_permission("USE_INSIGHTS")
def business_insights_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = insights_service.generate_business_insights(focus=payload.get("focus"))
    except InsightsError as e:
        return _insights_error_response(e)
    return jsonify(result), 200
