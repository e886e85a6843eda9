"""
Health/version endpoints, app-level error handling and Flask CLI commands.
"""

from tims.extensions import db
from tims.models import User, SessionToken


class TestHealth:

    def test_degraded_without_admin(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_healthy_with_admin(self, client, admin_user):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["auth"]["details"]["active_admins"] == 1
        assert resp.json["timestamp"].endswith("Z")

    def test_version(self, client, db_session):
        resp = client.get("/api/version")
        assert resp.status_code == 200
        assert resp.json["api_version"]


class TestErrorHandling:

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json == {"error": "Route not found"}

    def test_wrong_method_is_json_405(self, client, staff_headers):
        resp = client.patch("/api/inventory", headers=staff_headers)
        assert resp.status_code == 405
        assert "error" in resp.json

    def test_cors_header_for_dashboard_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


class TestCli:

    def test_system_init_creates_admin_once(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Created user: admin" in result.output
        assert db_session.query(User).filter_by(username="admin", role="admin").count() == 1

        result = runner.invoke(args=["system", "init"])
        assert "already exists" in result.output
        assert db_session.query(User).count() == 1

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create",
            "--username", "noc1",
            "--email", "noc1@tims.local",
            "--full-name", "NOC Operator",
            "--password", "NocOperator#1",
            "--role", "manager",
        ])
        assert result.exit_code == 0
        assert "PASS Created user: noc1" in result.output

        result = runner.invoke(args=["users", "list"])
        assert "noc1" in result.output
        assert "manager" in result.output

    def test_users_create_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "noc2",
            "--email", "noc2@tims.local",
            "--full-name", "NOC Operator",
            "--password", "weak",
            "--role", "staff",
        ])
        assert "FAIL Password validation failed" in result.output
        assert db_session.query(User).count() == 0

    def test_sessions_cleanup(self, app, db_session, staff_user):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["sessions", "cleanup", "--retention-days", "30"])
        assert result.exit_code == 0
        assert "Deleted 0 sessions" in result.output
        assert db_session.query(SessionToken).count() == 0

    def test_reset_db(self, app, db_session, staff_user):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "reset-db", "--yes"])
        assert result.exit_code == 0
        db.session.remove()
        assert db.session.query(User).count() == 0
