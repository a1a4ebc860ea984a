# backend/marketledger/routes/auth.py
"""
Authentication API routes

- Self-registration for sellers and customers (admins via CLI only)
- Token-based sessions; logout revokes the token and resets the user's
  cached permissions
- Role assignment for admins holding MANAGE_PERMISSIONS
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service, session_service, permission_service, subscription_service
from ..services.auth_service import PasswordValidationError
from ..decorators import require_auth, require_permission


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

SELF_SERVICE_ROLES = {"seller", "customer"}


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/register")
def register_route():
    """
    Create a seller or customer account.

    Request body:
    {
        "email": "shop@example.com",
        "password": "Password123!",
        "full_name": "Shop Owner",
        "account_type": "seller"   (seller | customer)
    }

    Sellers are onboarded with a subscription and its free period.
    """
    try:
        data = request.get_json(silent=True) or {}
        account_type = data.get("account_type") or "customer"
        if account_type not in SELF_SERVICE_ROLES:
            return jsonify({"error": "account_type must be seller or customer"}), 400
        if not data.get("email") or not data.get("password"):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.create_user(
            email=data["email"],
            password=data["password"],
            full_name=data.get("full_name"),
            role_name=account_type,
        )
        payload = {"user": user.to_dict(), "account_type": account_type}
        if account_type == "seller":
            payload["subscription"] = subscription_service.ensure_subscription(user.id).to_dict()

        return jsonify(payload), 201

    except (PasswordValidationError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be sent as `Authorization: Bearer <token>` on protected routes.
    Failed attempts are written to security_events.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                reason=f"Invalid credentials for {email}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "roles": permission_service.get_user_role_names(user.id),
            "permissions": sorted(permission_service.get_user_permissions(user.id)),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the session token and clear the cached permission set."""
    try:
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        context = session_service.validate_session(token)
        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        if context:
            permission_service.log_security_event(
                user_id=context.user.id,
                event_type="LOGOUT",
                success=True,
                resource=request.path,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user, roles and permission set (for UI gating)."""
    context = g.session_context
    return jsonify({
        "user": context.user.to_dict(),
        "roles": context.roles,
        "permissions": sorted(context.permissions),
        "is_super_admin": context.is_super_admin,
    }), 200


@auth_bp.post("/users/<int:user_id>/roles")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def assign_role_route(user_id: int):
    """
    Assign a role to a user.

    Request body: {"role": "support_agent"}
    """
    try:
        data = request.get_json(silent=True) or {}
        role_name = data.get("role")
        if not role_name:
            return jsonify({"error": "role required"}), 400

        auth_service.assign_role(user_id, role_name)
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="ROLE_ASSIGNED",
            success=True,
            resource=request.path,
            action=role_name,
            reason=f"Role {role_name} assigned to user {user_id}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"user_id": user_id, "roles": permission_service.get_user_role_names(user_id)}), 200

    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to assign role")
        return jsonify({"error": "Internal server error"}), 500
