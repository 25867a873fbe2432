# Overview: Service-layer operations for stock alerts and the notification feed.

from __future__ import annotations

import logging

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..models import Notification
from ..time_utils import utcnow
from .status_service import ALERT_LOW_STOCK, ALERT_OUT_OF_STOCK


logger = logging.getLogger(__name__)

PRIORITY_HIGH = "high"
PRIORITY_CRITICAL = "critical"

_ALERT_TITLES = {
    ALERT_LOW_STOCK: ("Low Stock Alert", PRIORITY_HIGH),
    ALERT_OUT_OF_STOCK: ("Out of Stock Alert", PRIORITY_CRITICAL),
}


def build_stock_alert_message(kind: str, *, name: str, sku: str, quantity: int, context: str | None = None) -> str:
    due = f" due to {context}" if context else ""
    if kind == ALERT_OUT_OF_STOCK:
        return f"{name} (SKU: {sku}) is now out of stock{due}."
    return f"{name} (SKU: {sku}) is running low{due}. Quantity: {quantity}."


def emit_stock_alert(session, *, tenant_id: int, kind: str, item, quantity: int, context: str | None = None) -> Notification:
    """
    Write one stock alert into the caller's transaction.

    No commit here: the alert is part of the same unit of work as the stock
    move, so if this raises the stock move is rolled back with it.
    """
    if kind not in _ALERT_TITLES:
        raise ValidationFailed(f"Unknown alert kind: {kind}")

    title, priority = _ALERT_TITLES[kind]
    notification = Notification(
        tenant_id=tenant_id,
        kind=kind,
        title=title,
        message=build_stock_alert_message(
            kind, name=item.name, sku=item.sku, quantity=quantity, context=context
        ),
        priority=priority,
        link=f"/inventory/{item.id}",
        related_item_id=item.id,
    )
    session.add(notification)
    session.flush()

    logger.info("Stock alert %s for item %s (tenant %s, qty %s)", kind, item.id, tenant_id, quantity)
    return notification


# =============================================================================
# NOTIFICATION FEED
# =============================================================================

def list_notifications(*, tenant_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.tenant_id == tenant_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.id.desc()).limit(limit).all()


def mark_notification_read(*, tenant_id: int, notification_id: int) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, Notification.tenant_id == tenant_id)
        .first()
    )
    if not notification:
        raise NotFound("Notification not found", {"notification_id": notification_id})

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return notification
