# Overview: Flask API routes for customers and their balances; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant, with_retry
from ..services import customer_service
from ..validation import clean_text, parse_int, parse_page_args, require_fields, require_json_object


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
@require_tenant
def create_customer_route():
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "name")

    customer = with_retry(lambda: customer_service.create_customer(
        tenant_id=g.tenant_id,
        name=clean_text(data.get("name"), "name", max_length=255, required=True),
        email=clean_text(data.get("email"), "email", max_length=255),
        phone=clean_text(data.get("phone"), "phone", max_length=32),
        address=clean_text(data.get("address"), "address"),
    ))
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/")
@require_tenant
def list_customers_route():
    result = customer_service.list_customers(
        tenant_id=g.tenant_id,
        search=request.args.get("search") or None,
        with_balance=request.args.get("with_balance", "").lower() in ("1", "true", "yes"),
        **parse_page_args(request.args),
    )
    result["items"] = [c.to_dict() for c in result["items"]]
    return jsonify(result), 200


@customers_bp.get("/<int:customer_id>")
@require_tenant
def get_customer_route(customer_id: int):
    customer = customer_service.get_customer(tenant_id=g.tenant_id, customer_id=customer_id)
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.post("/<int:customer_id>/payments")
@require_tenant
def record_customer_payment_route(customer_id: int):
    """Payment against the running balance, not a specific sale."""
    data = require_json_object(request.get_json(silent=True))
    require_fields(data, "amount_cents")
    amount = parse_int(data.get("amount_cents"), "amount_cents")

    customer = with_retry(lambda: customer_service.record_customer_payment(
        tenant_id=g.tenant_id, customer_id=customer_id, amount_cents=amount, actor_user_id=g.user_id
    ))
    return jsonify({"customer": customer.to_dict()}), 200
