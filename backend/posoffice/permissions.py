"""
Role and capability definitions.

WHY: Centralized, closed definitions keep authorization checks typed.
Roles are a fixed enum; each role maps to a static capability set.

DESIGN PRINCIPLES:
- Capabilities are granular (one area of action per capability)
- Default role mappings follow principle of least privilege
- Owner has all capabilities
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    CASHIER = "cashier"

    @classmethod
    def parse(cls, value) -> "Role | None":
        try:
            return cls(value)
        except ValueError:
            return None


class Capability(str, Enum):
    # CATALOG
    VIEW_CATALOG = "VIEW_CATALOG"
    MANAGE_CATALOG = "MANAGE_CATALOG"
    MANAGE_SUPPLIERS = "MANAGE_SUPPLIERS"

    # PURCHASES
    MANAGE_PURCHASES = "MANAGE_PURCHASES"

    # SALES
    CREATE_SALE = "CREATE_SALE"
    VIEW_OWN_SALES = "VIEW_OWN_SALES"
    MANAGE_SALES = "MANAGE_SALES"

    # REPORTS
    VIEW_REPORTS = "VIEW_REPORTS"

    # USERS
    MANAGE_USERS = "MANAGE_USERS"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    # Owner gets ALL capabilities
    Role.OWNER: frozenset(Capability),
    Role.CASHIER: frozenset({
        Capability.VIEW_CATALOG,
        Capability.CREATE_SALE,
        Capability.VIEW_OWN_SALES,
    }),
}


@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    role: Role | None
    required: tuple[str, ...]
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


def capabilities_for(role: Role) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(role, frozenset())


def authorize(role: Role | str | None, capability: Capability) -> AuthorizationResult:
    """Check a single capability against the role's static capability set."""
    resolved = role if isinstance(role, Role) else Role.parse(role)
    if resolved is None:
        return AuthorizationResult(False, None, (capability.value,), "Forbidden: role not found")
    if capability not in capabilities_for(resolved):
        return AuthorizationResult(
            False,
            resolved,
            (capability.value,),
            f"Forbidden: {resolved.value} lacks {capability.value}",
        )
    return AuthorizationResult(True, resolved, (capability.value,))


def authorize_roles(role: Role | str | None, allowed_roles) -> AuthorizationResult:
    """Role-set form: allowed when the role is one of allowed_roles."""
    allowed = tuple(r if isinstance(r, Role) else Role(r) for r in allowed_roles)
    required = tuple(r.value for r in allowed)
    resolved = role if isinstance(role, Role) else Role.parse(role)
    if resolved is None:
        return AuthorizationResult(False, None, required, "Forbidden: role not found")
    if allowed and resolved not in allowed:
        return AuthorizationResult(False, resolved, required, "Forbidden: insufficient rights")
    return AuthorizationResult(True, resolved, required)
