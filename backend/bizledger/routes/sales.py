# Overview: Flask API routes for sales, payments and returns; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..errors import ValidationFailed
from ..services import sales_service
from ..validation import (
    clean_text,
    parse_int,
    parse_non_negative_int,
    parse_optional_datetime,
    parse_optional_int,
    parse_page_args,
    parse_positive_int,
    parse_range_args,
    require_fields,
    require_json_object,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _parse_lines(raw_items, *, with_price: bool) -> list:
    if not isinstance(raw_items, list):
        raise ValidationFailed("items must be a list")
    lines = []
    for raw in raw_items:
        raw = require_json_object(raw)
        line = {
            "item_id": parse_int(raw.get("item_id"), "item_id"),
            "quantity": raw.get("quantity"),
        }
        if with_price and raw.get("unit_price_cents") is not None:
            line["unit_price_cents"] = parse_non_negative_int(raw["unit_price_cents"], "unit_price_cents")
        lines.append(line)
    return lines


@sales_bp.post("/")
@require_tenant
def create_sale_route():
    """
    Body:
        {"items": [{"item_id": 1, "quantity": 2, "unit_price_cents": 500?}],
         "customer_id"?, "tax_cents"?, "discount_cents"?, "amount_paid_cents"?,
         "payment_method"?, "notes"?, "sale_date"?}
    """
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "items")
    lines = _parse_lines(data.get("items"), with_price=True)

    sale = with_retry(lambda: sales_service.create_sale(
        tenant_id=g.tenant_id,
        items=lines,
        customer_id=parse_optional_int(data.get("customer_id"), "customer_id"),
        tax_cents=parse_non_negative_int(data.get("tax_cents", 0), "tax_cents"),
        discount_cents=parse_non_negative_int(data.get("discount_cents", 0), "discount_cents"),
        amount_paid_cents=parse_non_negative_int(data.get("amount_paid_cents", 0), "amount_paid_cents"),
        payment_method=(clean_text(data.get("payment_method"), "payment_method", max_length=32) or "CASH").upper(),
        notes=clean_text(data.get("notes"), "notes"),
        sale_date=parse_optional_datetime(data.get("sale_date"), "sale_date"),
        actor_user_id=g.user_id,
    ))
    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("/")
@require_tenant
def list_sales_route():
    result = sales_service.list_sales(
        tenant_id=g.tenant_id,
        payment_status=(request.args.get("payment_status") or "").upper() or None,
        customer_id=parse_optional_int(request.args.get("customer_id"), "customer_id"),
        **parse_range_args(request.args),
        **parse_page_args(request.args),
    )
    result["items"] = [sale.to_dict(include_lines=False) for sale in result["items"]]
    return jsonify(result), 200


@sales_bp.get("/<int:sale_id>")
@require_tenant
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(tenant_id=g.tenant_id, sale_id=sale_id)
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.delete("/<int:sale_id>")
@require_tenant
def delete_sale_route(sale_id: int):
    result = with_retry(lambda: sales_service.delete_sale(
        tenant_id=g.tenant_id, sale_id=sale_id, actor_user_id=g.user_id
    ))
    return jsonify(result), 200


@sales_bp.post("/<int:sale_id>/payments")
@require_tenant
def record_payment_route(sale_id: int):
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "amount_cents")
    amount = parse_int(data.get("amount_cents"), "amount_cents")

    sale = with_retry(lambda: sales_service.record_payment(
        tenant_id=g.tenant_id, sale_id=sale_id, amount_cents=amount, actor_user_id=g.user_id
    ))
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<int:sale_id>/returns")
@require_tenant
def process_return_route(sale_id: int):
    """Body: {"items": [{"item_id": 1, "quantity": 1}]}"""
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "items")
    lines = _parse_lines(data.get("items"), with_price=False)

    sale = with_retry(lambda: sales_service.process_return(
        tenant_id=g.tenant_id, sale_id=sale_id, returned_items=lines, actor_user_id=g.user_id
    ))
    return jsonify({"sale": sale.to_dict()}), 200


@sales_bp.post("/<int:sale_id>/items/<int:item_id>/return-packaging")
@require_tenant
def return_packaging_route(sale_id: int, item_id: int):
    """Body: {"quantity": 2}"""
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "quantity")
    quantity = parse_positive_int(data.get("quantity"), "quantity")

    sale = with_retry(lambda: sales_service.return_packaging(
        tenant_id=g.tenant_id, sale_id=sale_id, item_id=item_id, quantity=quantity, actor_user_id=g.user_id
    ))
    return jsonify({"sale": sale.to_dict()}), 200
