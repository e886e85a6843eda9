# Overview: Service-layer operations for notifications; encapsulates business logic and database work.

"""
Notification Service

Notifications are written by other services (low-stock alerts from the
inventory processor, order updates from the order service) inside the
caller's unit of work: the add_* helpers flush but never commit, so an alert
is persisted only if the stock change that caused it is.

Visibility: a user sees notifications addressed to them plus broadcasts
(user_id IS NULL).
"""

from flask import current_app

from ..extensions import db
from ..models import Notification, InventoryItem, NOTIFICATION_TYPES


class NotificationNotFoundError(Exception):
    """Raised when a notification does not exist or is not visible to the user."""
    pass


def add_notification(
    *,
    title: str,
    message: str,
    type: str = "system",
    user_id: int | None = None,
) -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type}")

    notification = Notification(
        title=title,
        message=message,
        type=type,
        user_id=user_id,
        is_read=False,
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def add_low_stock_alert(item: InventoryItem, stock_level: int) -> Notification:
    """Broadcast a low_stock notification for item at stock_level."""
    current_app.logger.info(
        "Low stock alert: item %s (%s) at %d, reorder point %d",
        item.id, item.name, stock_level, item.reorder_point,
    )
    return add_notification(
        title="Low Stock Alert",
        message=(
            f"{item.name} ({item.serial_number or 'No S/N'}) is below reorder point. "
            f"Current stock: {stock_level}"
        ),
        type="low_stock",
    )


def crossed_reorder_point(previous_stock: int | None, new_stock: int, reorder_point: int) -> bool:
    """
    Edge trigger for low-stock alerts.

    True only on the transition into low stock. previous_stock=None means the
    item is new, so being at or under the reorder point counts as a crossing.
    """
    if new_stock > reorder_point:
        return False
    return previous_stock is None or previous_stock > reorder_point


def _visible_to(user_id: int):
    return db.or_(Notification.user_id.is_(None), Notification.user_id == user_id)


def list_notifications(user_id: int, limit: int = 50) -> list[Notification]:
    return (
        db.session.query(Notification)
        .filter(_visible_to(user_id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def count_unread(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(_visible_to(user_id), Notification.is_read.is_(False))
        .count()
    )


def _get_visible(notification_id: int, user_id: int) -> Notification:
    notification = (
        db.session.query(Notification)
        .filter(Notification.id == notification_id, _visible_to(user_id))
        .first()
    )
    if not notification:
        raise NotificationNotFoundError(f"Notification {notification_id} not found")
    return notification


def mark_read(notification_id: int, user_id: int) -> Notification:
    notification = _get_visible(notification_id, user_id)
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    """Mark every unread visible notification read. Returns the number updated."""
    updated = (
        db.session.query(Notification)
        .filter(_visible_to(user_id), Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(notification_id: int, user_id: int) -> None:
    notification = _get_visible(notification_id, user_id)
    db.session.delete(notification)
    db.session.commit()
