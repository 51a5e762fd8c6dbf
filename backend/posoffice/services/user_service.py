# Overview: Service-layer operations for user accounts; owner-managed CRUD and owner bootstrap.

from __future__ import annotations

from ..errors import ConstraintViolationError, NotFoundError, ValidationError
from ..models import User
from ..permissions import Role
from ..validation import ModelValidationPolicy, enforce_phone, validate_payload
from .auth_service import hash_password
from .concurrency import UnitOfWork
from .session_service import revoke_all_user_sessions

USER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "email": "email",
        "role": "role",
        "phone": "phone",
        "isActive": "is_active",
    },
    required_on_create={"name", "email", "role"},
)


def _validated(payload: dict, partial: bool) -> tuple[dict, str | None]:
    """Split the password out (it is not a column) and validate the rest."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    fields = dict(payload)
    password = fields.pop("password", None)
    if not partial and password in (None, ""):
        raise ValidationError("Missing required fields: password")

    patch = validate_payload(model=User, payload=fields, policy=USER_POLICY, partial=partial)

    if "email" in patch:
        email = patch["email"].lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("email must be a valid email address")
        patch["email"] = email
    if "role" in patch:
        role = Role.parse(patch["role"])
        if role is None:
            raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")
        patch["role"] = role.value
    if "phone" in patch:
        enforce_phone(patch["phone"], "phone")

    return patch, password


def _ensure_unique_email(session, email: str, exclude_id: int | None = None) -> None:
    query = session.query(User.id).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ConstraintViolationError("Email already registered", details={"email": email})


def list_users(session) -> list[User]:
    return session.query(User).order_by(User.id.asc()).all()


def get_user(session, user_id: int) -> User:
    user = session.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


def create_user(session, payload: dict) -> User:
    patch, password = _validated(payload, partial=False)
    password_hash = hash_password(password)

    with UnitOfWork(session, label="create user"):
        _ensure_unique_email(session, patch["email"])
        user = User(password_hash=password_hash, **patch)
        if user.is_active is None:
            user.is_active = True
        session.add(user)
    return user


def update_user(session, user_id: int, payload: dict, *, actor_id: int | None = None) -> User:
    """
    Patch an account.

    Deactivating the account or changing its password revokes every
    session it holds. An owner cannot deactivate or demote themselves.
    """
    patch, password = _validated(payload, partial=True)
    password_hash = hash_password(password) if password not in (None, "") else None

    with UnitOfWork(session, label="update user"):
        user = get_user(session, user_id)

        if actor_id is not None and user.id == actor_id:
            if patch.get("is_active") is False:
                raise ValidationError("You cannot deactivate your own account")
            if "role" in patch and patch["role"] != user.role:
                raise ValidationError("You cannot change your own role")

        if "email" in patch:
            _ensure_unique_email(session, patch["email"], exclude_id=user.id)

        deactivating = user.is_active and patch.get("is_active") is False
        for key, value in patch.items():
            setattr(user, key, value)
        if password_hash is not None:
            user.password_hash = password_hash

        if deactivating:
            revoke_all_user_sessions(session, user.id, "Account deactivated", commit=False)
        elif password_hash is not None:
            revoke_all_user_sessions(session, user.id, "Password changed", commit=False)
    return user


def ensure_owner(session, *, name: str, email: str, password: str, phone: str | None = None) -> tuple[User, bool]:
    """
    Seed the bootstrap owner account if no user has that email.

    Returns (user, created). Idempotent.
    """
    email = email.strip().lower()
    existing = session.query(User).filter(User.email == email).first()
    if existing is not None:
        return existing, False

    with UnitOfWork(session, label="seed owner"):
        owner = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=Role.OWNER.value,
            phone=phone,
            is_active=True,
        )
        session.add(owner)
    return owner, True
