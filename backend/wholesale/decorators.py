# Overview: Request and capability decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import user_has_permission
from .services import session_service


def bearer_token() -> str | None:
    """The token from "Authorization: Bearer <token>", or None."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def require_auth(f):
    """
    Resolve the bearer token to a live session.

    On success g.current_user and g.session_context are set. Missing,
    unknown, expired, idle or revoked tokens and deactivated users get 401.
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if context is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        return f(*args, **kwargs)

    return wrapper


def require_permission(permission_code: str):
    """403 unless the current user's role holds permission_code. Stack under require_auth."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if not user_has_permission(user, permission_code):
                current_app.logger.info(
                    "permission denied user=%s role=%s capability=%s path=%s",
                    user.username, user.role, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return wrapper
    return decorator
