from flask import Blueprint, g, jsonify

from ..decorators import require_tenant
from ..services import reporting_service
from .common import date_range_from_args, scope_from_args


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/warehouse-valuation")
@require_tenant
def warehouse_valuation():
    return jsonify({"warehouses": reporting_service.warehouse_valuation(g.tenant, scope_from_args())}), 200


@reports_bp.get("/stock-valuation")
@require_tenant
def stock_valuation():
    return jsonify(reporting_service.stock_valuation_totals(g.tenant, scope_from_args())), 200


@reports_bp.get("/stock-flow")
@require_tenant
def stock_flow():
    return jsonify({"flow": reporting_service.get_stock_flow_data(g.tenant, scope_from_args())}), 200


@reports_bp.get("/sales-summary")
@require_tenant
def sales_summary():
    start, end = date_range_from_args()
    return jsonify(reporting_service.sales_summary(g.tenant, scope_from_args(), start, end)), 200


@reports_bp.get("/purchase-summary")
@require_tenant
def purchase_summary():
    start, end = date_range_from_args()
    return jsonify(reporting_service.purchase_summary(g.tenant, scope_from_args(), start, end)), 200
