# Overview: Request, ownership and plan decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.limit_service import PlanLimitError, check_limit, check_feature


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, or the token is invalid, expired,
    revoked or belongs to a deactivated account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_owner(f):
    """
    Require the <user_id> path segment to be the authenticated user.

    Must be stacked under @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "current_user"):
            return jsonify({"error": "Authentication required"}), 401
        if kwargs.get("user_id") != g.current_user.id:
            return jsonify({"error": "Access denied"}), 403
        return f(*args, **kwargs)

    return decorated_function


def enforce_plan_limit(resource):
    """Reject with 403 before the view runs when the plan's limit for `resource` is reached."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401
            try:
                check_limit(g.current_user.id, resource)
            except PlanLimitError as e:
                return jsonify({"error": str(e), "details": e.details}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_feature(feature):
    """Reject with 403 when the caller's plan does not include `feature`."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401
            try:
                check_feature(g.current_user.id, feature)
            except PlanLimitError as e:
                return jsonify({"error": str(e), "details": e.details}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator
