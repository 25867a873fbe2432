# Overview: Flask API routes for internal use and stock adjustments; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..services import adjustment_service, internal_use_service
from ..validation import (
    clean_text,
    parse_int,
    parse_optional_datetime,
    parse_optional_int,
    parse_page_args,
    parse_range_args,
    require_fields,
    require_json_object,
)


internal_use_bp = Blueprint("internal_use", __name__, url_prefix="/api/internal-use")
adjustments_bp = Blueprint("stock_adjustments", __name__, url_prefix="/api/stock-adjustments")


# =============================================================================
# INTERNAL USE
# =============================================================================

def _internal_use_filters() -> dict:
    return {
        "tenant_id": g.tenant_id,
        "item_id": parse_optional_int(request.args.get("item_id"), "item_id"),
        "site_id": parse_optional_int(request.args.get("site_id"), "site_id"),
        "search": request.args.get("search") or None,
        **parse_range_args(request.args),
    }


@internal_use_bp.post("/")
@require_tenant
def create_internal_use_route():
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "item_id", "quantity", "reason")

    record = with_retry(lambda: internal_use_service.create_internal_use(
        tenant_id=g.tenant_id,
        item_id=parse_int(data.get("item_id"), "item_id"),
        quantity=data.get("quantity"),
        reason=clean_text(data.get("reason"), "reason", max_length=255, required=True),
        site_id=parse_optional_int(data.get("site_id"), "site_id"),
        notes=clean_text(data.get("notes"), "notes"),
        used_at=parse_optional_datetime(data.get("used_at"), "used_at"),
        actor_user_id=g.user_id,
    ))
    return jsonify({"record": record.to_dict()}), 201


@internal_use_bp.get("/")
@require_tenant
def list_internal_use_route():
    result = internal_use_service.list_internal_uses(
        **_internal_use_filters(),
        **parse_page_args(request.args),
    )
    result["items"] = [r.to_dict() for r in result["items"]]
    return jsonify(result), 200


@internal_use_bp.get("/totals")
@require_tenant
def internal_use_totals_route():
    return jsonify(internal_use_service.internal_use_totals(**_internal_use_filters())), 200


@internal_use_bp.get("/<int:record_id>")
@require_tenant
def get_internal_use_route(record_id: int):
    record = internal_use_service.get_internal_use(tenant_id=g.tenant_id, record_id=record_id)
    return jsonify({"record": record.to_dict()}), 200


@internal_use_bp.delete("/<int:record_id>")
@require_tenant
def delete_internal_use_route(record_id: int):
    result = with_retry(lambda: internal_use_service.delete_internal_use(
        tenant_id=g.tenant_id, record_id=record_id, actor_user_id=g.user_id
    ))
    return jsonify(result), 200


# =============================================================================
# STOCK ADJUSTMENTS
# =============================================================================

def _adjustment_filters() -> dict:
    return {
        "tenant_id": g.tenant_id,
        "item_id": parse_optional_int(request.args.get("item_id"), "item_id"),
        "adjustment_type": (request.args.get("type") or "").lower() or None,
        "search": request.args.get("search") or None,
        **parse_range_args(request.args),
    }


@adjustments_bp.post("/")
@require_tenant
def create_adjustment_route():
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "item_id", "quantity", "adjustment_type")

    adjustment = with_retry(lambda: adjustment_service.create_stock_adjustment(
        tenant_id=g.tenant_id,
        item_id=parse_int(data.get("item_id"), "item_id"),
        quantity=data.get("quantity"),
        adjustment_type=data.get("adjustment_type"),
        reason=clean_text(data.get("reason"), "reason", max_length=255),
        notes=clean_text(data.get("notes"), "notes"),
        adjusted_at=parse_optional_datetime(data.get("adjusted_at"), "adjusted_at"),
        actor_user_id=g.user_id,
    ))
    return jsonify({"adjustment": adjustment.to_dict()}), 201


@adjustments_bp.get("/")
@require_tenant
def list_adjustments_route():
    result = adjustment_service.list_stock_adjustments(
        **_adjustment_filters(),
        **parse_page_args(request.args),
    )
    result["items"] = [a.to_dict() for a in result["items"]]
    return jsonify(result), 200


@adjustments_bp.get("/totals")
@require_tenant
def adjustment_totals_route():
    return jsonify(adjustment_service.adjustment_totals(**_adjustment_filters())), 200


@adjustments_bp.get("/<int:adjustment_id>")
@require_tenant
def get_adjustment_route(adjustment_id: int):
    adjustment = adjustment_service.get_stock_adjustment(tenant_id=g.tenant_id, adjustment_id=adjustment_id)
    return jsonify({"adjustment": adjustment.to_dict()}), 200


@adjustments_bp.delete("/<int:adjustment_id>")
@require_tenant
def delete_adjustment_route(adjustment_id: int):
    result = with_retry(lambda: adjustment_service.delete_stock_adjustment(
        tenant_id=g.tenant_id, adjustment_id=adjustment_id, actor_user_id=g.user_id
    ))
    return jsonify(result), 200
