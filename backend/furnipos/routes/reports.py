# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_permission
from ..errors import ServiceError
from ..permissions import Permissions
from ..services import reporting_service
from ..validation import optional_int


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales-summary")
@require_auth
@require_permission(Permissions.REPORT_ALL)
def sales_summary_route():
    try:
        report = reporting_service.sales_summary(
            request.args.get("date_from"),
            request.args.get("date_to"),
        )
        return jsonify(report), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/inventory-valuation")
@require_auth
@require_permission(Permissions.REPORT_ALL)
def inventory_valuation_route():
    try:
        warehouse_id = optional_int(request.args.get("warehouse_id"), "warehouse_id")
        return jsonify(reporting_service.inventory_valuation(warehouse_id)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
