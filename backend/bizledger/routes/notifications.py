# Overview: Flask API routes for the notification feed; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant
from ..services import alert_service
from ..validation import parse_optional_int


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("/")
@require_tenant
def list_notifications_route():
    limit = parse_optional_int(request.args.get("limit"), "limit") or 50
    notifications = alert_service.list_notifications(
        tenant_id=g.tenant_id,
        unread_only=request.args.get("unread", "").lower() in ("1", "true", "yes"),
        limit=min(limit, 500),
    )
    return jsonify({"notifications": [n.to_dict() for n in notifications]}), 200


@notifications_bp.post("/<int:notification_id>/read")
@require_tenant
def mark_read_route(notification_id: int):
    notification = alert_service.mark_notification_read(
        tenant_id=g.tenant_id, notification_id=notification_id
    )
    return jsonify({"notification": notification.to_dict()}), 200
