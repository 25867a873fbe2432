# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..errors import ValidationFailed
from ..services import purchase_order_service
from ..validation import (
    clean_text,
    parse_int,
    parse_non_negative_int,
    parse_optional_datetime,
    parse_page_args,
    require_fields,
    require_json_object,
)


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.post("/")
@require_tenant
def create_purchase_order_route():
    """
    Body:
        {"supplier_name": "...", "items": [{"item_id": 1, "quantity": 10, "unit_cost_cents": 250?}],
         "expected_date"?, "notes"?}
    """
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "supplier_name", "items")
    if not isinstance(data.get("items"), list):
        raise ValidationFailed("items must be a list")

    items = []
    for raw in data["items"]:
        raw = require_json_object(raw)
        line = {"item_id": parse_int(raw.get("item_id"), "item_id"), "quantity": raw.get("quantity")}
        if raw.get("unit_cost_cents") is not None:
            line["unit_cost_cents"] = parse_non_negative_int(raw["unit_cost_cents"], "unit_cost_cents")
        items.append(line)

    po = with_retry(lambda: purchase_order_service.create_purchase_order(
        tenant_id=g.tenant_id,
        supplier_name=clean_text(data.get("supplier_name"), "supplier_name", max_length=255, required=True),
        items=items,
        expected_date=parse_optional_datetime(data.get("expected_date"), "expected_date"),
        notes=clean_text(data.get("notes"), "notes"),
        actor_user_id=g.user_id,
    ))
    return jsonify({"purchase_order": po.to_dict()}), 201


@purchase_orders_bp.get("/")
@require_tenant
def list_purchase_orders_route():
    result = purchase_order_service.list_purchase_orders(
        tenant_id=g.tenant_id,
        status=request.args.get("status") or None,
        supplier=request.args.get("supplier") or None,
        **parse_page_args(request.args),
    )
    result["items"] = [po.to_dict(include_lines=False) for po in result["items"]]
    return jsonify(result), 200


@purchase_orders_bp.get("/<int:po_id>")
@require_tenant
def get_purchase_order_route(po_id: int):
    po = purchase_order_service.get_purchase_order(tenant_id=g.tenant_id, purchase_order_id=po_id)
    return jsonify({"purchase_order": po.to_dict()}), 200


@purchase_orders_bp.post("/<int:po_id>/status")
@require_tenant
def update_purchase_order_status_route(po_id: int):
    """Body: {"status": "ORDERED" | "SHIPPED" | "COMPLETED" | "CANCELLED"}"""
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "status")

    po = with_retry(lambda: purchase_order_service.update_purchase_order_status(
        tenant_id=g.tenant_id,
        purchase_order_id=po_id,
        status=str(data.get("status")),
        actor_user_id=g.user_id,
    ))
    return jsonify({"purchase_order": po.to_dict()}), 200
