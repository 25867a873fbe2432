# Overview: Flask API routes for construction sites; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..services import reporting_service, site_service
from ..validation import clean_text, parse_non_negative_int, require_fields, require_json_object


sites_bp = Blueprint("sites", __name__, url_prefix="/api/sites")


@sites_bp.post("/")
@require_tenant
def create_site_route():
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "name", "project_code")

    site = with_retry(lambda: site_service.create_site(
        tenant_id=g.tenant_id,
        name=clean_text(data.get("name"), "name", max_length=255, required=True),
        project_code=clean_text(data.get("project_code"), "project_code", max_length=64, required=True),
        budget_cents=parse_non_negative_int(data.get("budget_cents", 0), "budget_cents"),
        status=(data.get("status") or "ACTIVE").upper(),
    ))
    return jsonify({"site": site.to_dict()}), 201


@sites_bp.get("/")
@require_tenant
def list_sites_route():
    sites = site_service.list_sites(tenant_id=g.tenant_id, status=request.args.get("status") or None)
    return jsonify({"sites": [s.to_dict() for s in sites]}), 200


@sites_bp.get("/<int:site_id>")
@require_tenant
def site_summary_route(site_id: int):
    return jsonify(reporting_service.site_budget_summary(tenant_id=g.tenant_id, site_id=site_id)), 200
