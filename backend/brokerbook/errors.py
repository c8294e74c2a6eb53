# Overview: Maps service-layer exceptions to JSON error responses.

from flask import jsonify

from .services.auth_service import AuthError, PasswordValidationError
from .services.limit_service import PlanLimitError
from .services.subscription_service import SubscriptionError
from .validation import ConflictError, NotFoundError, ValidationError

# Expected failures a route answers directly; anything else is a 500
SERVICE_ERRORS = (
    ValidationError,
    NotFoundError,
    ConflictError,
    PlanLimitError,
    SubscriptionError,
    AuthError,
    PasswordValidationError,
)


def error_response(exc: Exception):
    body = {"error": str(exc)}
    details = getattr(exc, "details", None)
    if details:
        body["details"] = details

    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, ConflictError):
        status = 409
    elif isinstance(exc, PlanLimitError):
        status = 403
    elif isinstance(exc, (SubscriptionError, AuthError)):
        status = exc.status_code
    else:
        status = 400
    return jsonify(body), status
