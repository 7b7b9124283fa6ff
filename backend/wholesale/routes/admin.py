# Overview: Flask API routes for user administration.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..extensions import db
from ..models import User
from ..services import auth_service, session_service
from ..services.auth_service import PasswordValidationError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    users = db.session.query(User).order_by(User.username.asc()).all()
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@admin_bp.post("/users")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("username"),
            data.get("password"),
            role=data.get("role") or "sales_representative",
            email=data.get("email"),
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"user": user.to_dict()}), 201


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    if "is_active" not in data:
        return jsonify({"error": "is_active is required"}), 400
    try:
        user = auth_service.set_user_active(user_id, bool(data["is_active"]))
    except ValueError as e:
        return jsonify({"error": str(e)}), 404
    if not user.is_active:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
    return jsonify({"user": user.to_dict()}), 200
