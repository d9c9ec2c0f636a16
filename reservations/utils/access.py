"""
Role-based access policy.

Every operation declares one required capability: ``admin``,
``adminOrDirector`` or ``any``. Whether a role may perform it is decided by
``is_permitted`` alone; there are no per-user permission lists.
"""

from typing import Optional

from fastapi import Depends

from reservations.utils.auth import get_current_user
from reservations.utils.errors import AuthorizationError

ADMIN = "admin"
ADMIN_OR_DIRECTOR = "adminOrDirector"
ANY = "any"

CAPABILITY_ROLES = {
    ADMIN: frozenset({"admin"}),
    ADMIN_OR_DIRECTOR: frozenset({"admin", "director"}),
    ANY: frozenset({"guest", "director", "admin"}),
}


def role_of(actor: Optional[dict]) -> str:
    """Anonymous callers act as guests."""
    if not actor:
        return "guest"
    return actor.get("role") or "guest"


def is_permitted(role: str, capability: str) -> bool:
    return role in CAPABILITY_ROLES.get(capability, frozenset())


def ensure_permitted(actor: Optional[dict], capability: str) -> None:
    if not is_permitted(role_of(actor), capability):
        raise AuthorizationError(f"Forbidden - {capability} access required")


def is_owner(actor: Optional[dict], appointment) -> bool:
    return bool(actor) and appointment.created_by is not None and appointment.created_by == actor["id"]


def ensure_owner_or_staff(actor: Optional[dict], appointment) -> None:
    """Creators manage their own appointments; admins and directors manage all."""
    if is_owner(actor, appointment) or is_permitted(role_of(actor), ADMIN_OR_DIRECTOR):
        return
    raise AuthorizationError("Forbidden - You can only manage your own appointments")


def require(capability: str):
    """Dependency returning the authenticated user once ``capability`` is checked."""

    def dependency(current_user: dict = Depends(get_current_user)) -> dict:
        ensure_permitted(current_user, capability)
        return current_user

    return dependency
