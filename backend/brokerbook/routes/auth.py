# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/brokerbook/routes/auth.py
"""
Authentication API routes

- Signup with emailed OTP verification
- Login / logout with bearer session tokens
- Forgot password via emailed OTP, then set-new-password
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..errors import SERVICE_ERRORS, error_response
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _client_info():
    return request.headers.get("User-Agent"), request.remote_addr


@auth_bp.post("/signup")
def signup_route():
    """Create an unverified account and email a verification code."""
    data = request.get_json(silent=True) or {}
    try:
        user, otp_sent = auth_service.signup(
            name=data.get("name"),
            email=data.get("email"),
            phone=data.get("phone"),
            password=data.get("password"),
        )
        return jsonify({
            "user": user.to_dict(),
            "otp_sent": otp_sent,
            "message": "Account created. Verify the OTP sent to your email.",
        }), 201
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/signup/otp/verify")
def verify_signup_otp_route():
    data = request.get_json(silent=True) or {}
    try:
        user, token = auth_service.verify_signup_otp(data.get("email"), data.get("otp"), *_client_info())
        return jsonify({"user": user.to_dict(), "token": token, "message": "Email verified"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to verify signup OTP")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/signup/otp/resend")
def resend_signup_otp_route():
    data = request.get_json(silent=True) or {}
    try:
        otp_sent = auth_service.resend_signup_otp(data.get("email"))
        return jsonify({"otp_sent": otp_sent, "message": "OTP re-sent"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to resend signup OTP")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email + password and create a session token.

    Token must be included in the Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid email or password"}), 401

        session, token = session_service.create_session(user, *_client_info())

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization").split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/forgot-password")
def forgot_password_route():
    data = request.get_json(silent=True) or {}
    try:
        otp_sent = auth_service.request_password_reset(data.get("email"))
        return jsonify({"otp_sent": otp_sent, "message": "OTP sent"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to start password reset")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/forgot-password/otp/resend")
def resend_reset_otp_route():
    return forgot_password_route()


@auth_bp.post("/forgot-password/otp/verify")
def verify_reset_otp_route():
    """Exchange a reset OTP for a session allowed to set a new password."""
    data = request.get_json(silent=True) or {}
    try:
        user, token = auth_service.verify_password_reset_otp(data.get("email"), data.get("otp"), *_client_info())
        return jsonify({"user": user.to_dict(), "token": token}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to verify password reset OTP")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/set-new-password")
@require_auth
def set_new_password_route():
    data = request.get_json(silent=True) or {}
    try:
        auth_service.set_new_password(
            g.current_user,
            data.get("password"),
            data.get("confirm_password"),
            keep_session_id=g.session_context.session.id,
        )
        return jsonify({"message": "Password updated"}), 200
    except SERVICE_ERRORS as e:
        return error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set new password")
        return jsonify({"error": "Internal server error"}), 500
