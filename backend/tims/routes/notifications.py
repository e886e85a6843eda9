from __future__ import annotations

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth
from ..services import notification_service
from ..services.notification_service import NotificationNotFoundError

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _not_found():
    return jsonify({"error": "Notification not found"}), 404


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    limit = current_app.config.get("NOTIFICATION_LIST_LIMIT", 50)
    notifications = notification_service.list_notifications(g.current_user.id, limit=limit)
    return jsonify({
        "count": len(notifications),
        "notifications": [n.to_dict() for n in notifications],
    })


@notifications_bp.route("/unread", methods=["GET"])
@require_auth
def unread_count():
    return jsonify({"unread_count": notification_service.count_unread(g.current_user.id)})


@notifications_bp.route("/<int:notification_id>/read", methods=["PUT"])
@require_auth
def mark_read(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.current_user.id)
    except NotificationNotFoundError:
        return _not_found()
    return jsonify({
        "message": "Notification marked as read",
        "notification": notification.to_dict(),
    })


@notifications_bp.route("/read/all", methods=["PUT"])
@require_auth
def mark_all_read():
    updated = notification_service.mark_all_read(g.current_user.id)
    return jsonify({"message": "All notifications marked as read", "updated": updated})


@notifications_bp.route("/<int:notification_id>", methods=["DELETE"])
@require_auth
def delete_notification(notification_id: int):
    try:
        notification_service.delete_notification(notification_id, g.current_user.id)
    except NotificationNotFoundError:
        return _not_found()
    return jsonify({"message": "Notification deleted successfully"})
