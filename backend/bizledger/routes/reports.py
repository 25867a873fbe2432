# Overview: Flask API routes for reporting views; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..services import reporting_service
from ..time_utils import today_utc
from ..validation import parse_optional_date, parse_optional_int, parse_range_args, require_json_object


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/inventory-stats")
@require_tenant
def inventory_stats_route():
    return jsonify(reporting_service.inventory_stats(tenant_id=g.tenant_id)), 200


@reports_bp.get("/sales-summary")
@require_tenant
def sales_summary_route():
    return jsonify(reporting_service.sales_summary(tenant_id=g.tenant_id, **parse_range_args(request.args))), 200


@reports_bp.get("/packaging")
@require_tenant
def packaging_report_route():
    return jsonify(reporting_service.packaging_report(tenant_id=g.tenant_id, **parse_range_args(request.args))), 200


@reports_bp.post("/snapshots")
@require_tenant
def generate_snapshots_route():
    """Body: {"date": "YYYY-MM-DD"?, "item_id"?, "skip_existing"?}; date defaults to today (UTC)."""
    data = require_json_object(request.get_json(silent=True))
    day = parse_optional_date(data.get("date"), "date") or today_utc()
    snapshots = with_retry(lambda: reporting_service.generate_daily_snapshots(
        tenant_id=g.tenant_id,
        day=day,
        item_id=parse_optional_int(data.get("item_id"), "item_id"),
        skip_existing=bool(data.get("skip_existing", False)),
    ))
    return jsonify({"snapshots": [s.to_dict() for s in snapshots]}), 201


@reports_bp.get("/snapshots")
@require_tenant
def list_snapshots_route():
    snapshots = reporting_service.list_snapshots(
        tenant_id=g.tenant_id,
        day=parse_optional_date(request.args.get("date"), "date"),
        item_id=parse_optional_int(request.args.get("item_id"), "item_id"),
    )
    return jsonify({"snapshots": [s.to_dict() for s in snapshots]}), 200


@reports_bp.get("/ledger-audit")
@require_tenant
def ledger_audit_route():
    return jsonify(reporting_service.ledger_consistency_audit(tenant_id=g.tenant_id)), 200
