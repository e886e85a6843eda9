# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/tims/routes/auth.py
"""
Authentication API routes

- Token-based sessions (see session_service.py)
- Account creation is admin-only (POST /api/auth/register or `flask users create`)
- Password change revokes every other session of the user
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_role


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Exchange username (or email) and password for a bearer token.

    The token comes back once; clients send it as "Authorization: Bearer ...".
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username and password required"}), 400

    try:
        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        _session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Server error during login"}), 500

    return jsonify({
        "message": "Login successful",
        "token": token,
        "user": user.to_dict(),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return jsonify({"message": "Logged out"})


@auth_bp.post("/register")
@require_auth
@require_role("admin")
def register_route():
    """
    Create a user account (admin only).

    Request body: {username, password, email, full_name, role}
    """
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.create_user(
            username=data.get("username"),
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            role=data.get("role", "staff"),
        )
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "User registered successfully",
        "user": user.to_dict(),
    }), 201


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return jsonify({"user": g.current_user.to_dict()})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}

    try:
        user = auth_service.update_profile(
            g.current_user.id,
            email=data.get("email"),
            full_name=data.get("full_name"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "message": "Profile updated successfully",
        "user": user.to_dict(),
    })


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")

    if not current_password or not new_password:
        return jsonify({"error": "current_password and new_password are required"}), 400

    try:
        auth_service.change_password(g.current_user.id, current_password, new_password)
    except PermissionError as e:
        return jsonify({"error": str(e)}), 401
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400

    session_service.revoke_all_user_sessions(
        g.current_user.id,
        reason="Password changed",
        keep_session_id=g.session_context.session.id,
    )
    return jsonify({"message": "Password changed successfully"})


@auth_bp.get("/users")
@require_auth
@require_role("admin")
def list_users_route():
    return jsonify({"users": [u.to_dict() for u in auth_service.list_users()]})
