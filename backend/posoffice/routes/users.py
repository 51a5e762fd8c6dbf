# Overview: Flask API routes for users; login/logout/me and owner-managed accounts.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability, require_roles
from ..extensions import db
from ..permissions import Capability, Role
from ..responses import success
from ..services import auth_service, session_service, user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.post("/login")
def login():
    """
    Body: {email, password}

    Returns {token, user} and sets the session cookie (http-only).
    401 on wrong credentials, 403 on an inactive account.
    """
    data = request.get_json(silent=True) or {}
    user = auth_service.authenticate(db.session, data.get("email"), data.get("password"))

    _, token = session_service.create_session(
        db.session,
        user,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    current_app.logger.info("User %s logged in", user.id)

    response, status = success("Login successful", {"token": token, "user": user.to_dict()})
    response.set_cookie(
        current_app.config["SESSION_COOKIE_NAME"],
        token,
        httponly=True,
        samesite="Lax",
        secure=request.is_secure,
        max_age=int(current_app.config["SESSION_TTL_HOURS"]) * 3600,
    )
    return response, status


@users_bp.post("/logout")
@require_auth
def logout():
    session_service.revoke_session(db.session, g.session_token)
    response, status = success("Logout successful")
    response.delete_cookie(current_app.config["SESSION_COOKIE_NAME"])
    return response, status


@users_bp.get("/me")
@require_auth
def me():
    return success("User retrieved successfully", g.current_user.to_dict())


@users_bp.get("")
@require_auth
@require_capability(Capability.MANAGE_USERS)
def list_users():
    users = user_service.list_users(db.session)
    return success("Users retrieved successfully", [u.to_dict() for u in users])


@users_bp.post("")
@require_auth
@require_capability(Capability.MANAGE_USERS)
def create_user():
    user = user_service.create_user(db.session, request.get_json(silent=True))
    current_app.logger.info("User %s created by %s", user.id, g.current_user.id)
    return success("User created successfully", user.to_dict(), status=201)


@users_bp.get("/<int:user_id>")
@require_auth
@require_capability(Capability.MANAGE_USERS)
def get_user(user_id: int):
    user = user_service.get_user(db.session, user_id)
    return success("User retrieved successfully", user.to_dict())


@users_bp.put("/<int:user_id>")
@require_auth
@require_capability(Capability.MANAGE_USERS)
def update_user(user_id: int):
    user = user_service.update_user(
        db.session,
        user_id,
        request.get_json(silent=True),
        actor_id=g.current_user.id,
    )
    current_app.logger.info("User %s updated by %s", user.id, g.current_user.id)
    return success("User updated successfully", user.to_dict())



@users_bp.post("/<int:user_id>/revoke-sessions")
@require_auth
@require_roles(Role.OWNER)
def revoke_user_sessions(user_id: int):
    """
    Force-logout: revoke every live session the user holds.

    The account stays active; the user can log in again.
    """
    user = user_service.get_user(db.session, user_id)
    revoked_count = session_service.revoke_all_user_sessions(
        db.session, user.id, "Revoked by owner"
    )
    current_app.logger.info(
        "Revoked %s sessions of user %s by %s", revoked_count, user.id, g.current_user.id
    )
    return success("Sessions revoked", {"sessionsRevoked": revoked_count})
