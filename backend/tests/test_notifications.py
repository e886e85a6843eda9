"""
Notification feed tests: visibility, unread counts, mark-read and delete.
"""

import pytest

from tims.models import Notification
from tims.services import notification_service


def _add(db_session, title, user_id=None, is_read=False, type="system"):
    n = Notification(title=title, message=f"{title} body", type=type, user_id=user_id, is_read=is_read)
    db_session.add(n)
    db_session.commit()
    return n


class TestNotificationFeed:

    def test_feed_shows_broadcasts_and_own(self, client, db_session, staff_user, manager_user, staff_headers):
        _add(db_session, "Broadcast")
        _add(db_session, "Mine", user_id=staff_user.id)
        _add(db_session, "Not mine", user_id=manager_user.id)

        resp = client.get("/api/notifications", headers=staff_headers)
        assert resp.status_code == 200
        titles = {n["title"] for n in resp.json["notifications"]}
        assert titles == {"Broadcast", "Mine"}
        assert resp.json["count"] == 2

    def test_feed_newest_first_and_limited(self, app, client, db_session, staff_headers):
        for i in range(5):
            _add(db_session, f"N{i}")

        old_limit = app.config["NOTIFICATION_LIST_LIMIT"]
        app.config["NOTIFICATION_LIST_LIMIT"] = 3
        try:
            resp = client.get("/api/notifications", headers=staff_headers)
        finally:
            app.config["NOTIFICATION_LIST_LIMIT"] = old_limit

        assert [n["title"] for n in resp.json["notifications"]] == ["N4", "N3", "N2"]

    def test_unread_count(self, client, db_session, staff_user, manager_user, staff_headers):
        _add(db_session, "Unread broadcast")
        _add(db_session, "Read broadcast", is_read=True)
        _add(db_session, "Unread mine", user_id=staff_user.id)
        _add(db_session, "Unread other", user_id=manager_user.id)

        resp = client.get("/api/notifications/unread", headers=staff_headers)
        assert resp.json == {"unread_count": 2}

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/notifications").status_code == 401


class TestMarkRead:

    def test_mark_one_read(self, client, db_session, staff_headers):
        n = _add(db_session, "Alert")

        resp = client.put(f"/api/notifications/{n.id}/read", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["notification"]["is_read"] is True

        resp = client.get("/api/notifications/unread", headers=staff_headers)
        assert resp.json["unread_count"] == 0

    def test_cannot_touch_other_users_notification(self, client, db_session, manager_user, staff_headers):
        n = _add(db_session, "Private", user_id=manager_user.id)

        assert client.put(f"/api/notifications/{n.id}/read", headers=staff_headers).status_code == 404
        assert client.delete(f"/api/notifications/{n.id}", headers=staff_headers).status_code == 404

        db_session.refresh(n)
        assert n.is_read is False

    def test_mark_missing_is_404(self, client, staff_headers):
        assert client.put("/api/notifications/9999/read", headers=staff_headers).status_code == 404

    def test_mark_all_read(self, client, db_session, staff_user, manager_user, staff_headers):
        _add(db_session, "A")
        _add(db_session, "B", user_id=staff_user.id)
        other = _add(db_session, "C", user_id=manager_user.id)

        resp = client.put("/api/notifications/read/all", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json["updated"] == 2

        db_session.expire_all()
        assert db_session.get(Notification, other.id).is_read is False


class TestDelete:

    def test_delete_own(self, client, db_session, staff_user, staff_headers):
        n = _add(db_session, "Mine", user_id=staff_user.id)
        n_id = n.id

        resp = client.delete(f"/api/notifications/{n_id}", headers=staff_headers)
        assert resp.status_code == 200
        assert db_session.get(Notification, n_id) is None


class TestNotificationService:

    def test_add_notification_rejects_unknown_type(self, db_session):
        with pytest.raises(ValueError, match="unknown notification type"):
            notification_service.add_notification(title="x", message="y", type="sms")
