# Overview: Flask API routes for inventory items; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..services import inventory_service, reporting_service
from ..validation import (
    clean_text,
    parse_bool,
    parse_int,
    parse_non_negative_int,
    parse_optional_int,
    parse_page_args,
    require_fields,
    require_json_object,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

_INT_FIELDS = ("price_cents", "cost_price_cents", "min_stock_level", "packaging_deposit_cents")


@inventory_bp.post("/")
@require_tenant
def create_item_route():
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "sku", "name")

    min_level = parse_optional_int(data.get("min_stock_level"), "min_stock_level")
    item = with_retry(lambda: inventory_service.create_item(
        tenant_id=g.tenant_id,
        sku=clean_text(data.get("sku"), "sku", max_length=64, required=True),
        name=clean_text(data.get("name"), "name", max_length=255, required=True),
        unit=clean_text(data.get("unit"), "unit", max_length=32) or "pcs",
        description=clean_text(data.get("description"), "description"),
        category=clean_text(data.get("category"), "category", max_length=128),
        price_cents=parse_non_negative_int(data.get("price_cents", 0), "price_cents"),
        cost_price_cents=parse_non_negative_int(data.get("cost_price_cents", 0), "cost_price_cents"),
        min_stock_level=min_level,
        max_stock_level=parse_optional_int(data.get("max_stock_level"), "max_stock_level"),
        quantity=parse_non_negative_int(data.get("quantity", 0), "quantity"),
        status_override=data.get("status_override"),
        is_reusable_packaging=parse_bool(data.get("is_reusable_packaging", False), "is_reusable_packaging"),
        packaging_item_id=parse_optional_int(data.get("packaging_item_id"), "packaging_item_id"),
        packaging_deposit_cents=parse_non_negative_int(
            data.get("packaging_deposit_cents", 0), "packaging_deposit_cents"
        ),
        actor_user_id=g.user_id,
    ))
    return jsonify({"item": item.to_dict()}), 201


@inventory_bp.get("/")
@require_tenant
def list_items_route():
    result = inventory_service.list_items(
        tenant_id=g.tenant_id,
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
        category=request.args.get("category") or None,
        **parse_page_args(request.args),
    )
    result["items"] = [item.to_dict() for item in result["items"]]
    return jsonify(result), 200


@inventory_bp.get("/<int:item_id>")
@require_tenant
def get_item_route(item_id: int):
    item = inventory_service.get_item(tenant_id=g.tenant_id, item_id=item_id)
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.patch("/<int:item_id>")
@require_tenant
def update_item_route(item_id: int):
    data = require_json_object(request.get_json(silent=True))

    changes = dict(data)
    for field in _INT_FIELDS:
        if field in changes:
            changes[field] = parse_int(changes[field], field)
    if "max_stock_level" in changes:
        changes["max_stock_level"] = parse_optional_int(changes["max_stock_level"], "max_stock_level")
    if "packaging_item_id" in changes:
        changes["packaging_item_id"] = parse_optional_int(changes["packaging_item_id"], "packaging_item_id")
    if "is_reusable_packaging" in changes:
        changes["is_reusable_packaging"] = parse_bool(changes["is_reusable_packaging"], "is_reusable_packaging")

    item = with_retry(lambda: inventory_service.update_item(
        tenant_id=g.tenant_id,
        item_id=item_id,
        changes=changes,
        actor_user_id=g.user_id,
    ))
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.delete("/<int:item_id>")
@require_tenant
def delete_item_route(item_id: int):
    with_retry(lambda: inventory_service.delete_item(tenant_id=g.tenant_id, item_id=item_id))
    return jsonify({"deleted": True, "item_id": item_id}), 200


@inventory_bp.post("/<int:item_id>/status-override")
@require_tenant
def status_override_route(item_id: int):
    """Body: {"override": "on-order" | "discontinued" | null}"""
    data = require_json_object(request.get_json(silent=True))
    item = with_retry(lambda: inventory_service.set_status_override(
        tenant_id=g.tenant_id,
        item_id=item_id,
        override=data.get("override"),
        actor_user_id=g.user_id,
    ))
    return jsonify({"item": item.to_dict()}), 200


@inventory_bp.get("/<int:item_id>/ledger")
@require_tenant
def item_ledger_route(item_id: int):
    limit = parse_optional_int(request.args.get("limit"), "limit") or 100
    entries = reporting_service.item_ledger_history(
        tenant_id=g.tenant_id, item_id=item_id, limit=min(limit, 1000)
    )
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200
