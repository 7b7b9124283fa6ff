from flask import Blueprint, Response, jsonify, request

from wholesale.decorators import require_auth, require_permission
from wholesale.services import reporting_service
from wholesale.time_utils import utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _report_filters() -> dict:
    return {
        "search": request.args.get("search") or None,
        "dispensary_id": request.args.get("dispensary_id") or None,
        "template_id": request.args.get("template_id") or None,
        "sales_associate_id": request.args.get("sales_associate_id", type=int),
        "payment_status": request.args.get("payment_status") or None,
        "start": request.args.get("start") or None,
        "end": request.args.get("end") or None,
    }


@reports_bp.get("/orders")
@require_auth
@require_permission("VIEW_REPORTS")
def orders_report():
    try:
        report = reporting_service.orders_report(**_report_filters())
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/orders.csv")
@require_auth
@require_permission("EXPORT_REPORTS")
def orders_csv():
    try:
        body = reporting_service.orders_csv(**_report_filters())
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400

    filename = f"wholesale_orders_report_{utcnow().date().isoformat()}.csv"
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_bp.get("/dashboard")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard():
    recent = request.args.get("recent", default=5, type=int)
    return jsonify(reporting_service.dashboard_summary(recent_limit=max(1, min(recent, 50)))), 200
