from types import SimpleNamespace

import pytest

from reservations.utils.access import (
    ensure_owner_or_staff,
    ensure_permitted,
    is_permitted,
    role_of,
)
from reservations.utils.errors import AuthorizationError


@pytest.mark.parametrize(
    "role, capability, allowed",
    [
        ("guest", "any", True),
        ("guest", "adminOrDirector", False),
        ("guest", "admin", False),
        ("director", "any", True),
        ("director", "adminOrDirector", True),
        ("director", "admin", False),
        ("admin", "any", True),
        ("admin", "adminOrDirector", True),
        ("admin", "admin", True),
        ("admin", "superuser", False),
        ("janitor", "any", False),
    ],
)
def test_capability_matrix(role, capability, allowed):
    assert is_permitted(role, capability) is allowed


def test_anonymous_callers_are_guests():
    assert role_of(None) == "guest"
    ensure_permitted(None, "any")
    with pytest.raises(AuthorizationError):
        ensure_permitted(None, "adminOrDirector")


def test_owner_or_staff():
    appointment = SimpleNamespace(created_by=1)
    ensure_owner_or_staff({"id": 1, "role": "guest"}, appointment)
    ensure_owner_or_staff({"id": 2, "role": "director"}, appointment)
    with pytest.raises(AuthorizationError):
        ensure_owner_or_staff({"id": 2, "role": "guest"}, appointment)
    with pytest.raises(AuthorizationError):
        ensure_owner_or_staff(None, SimpleNamespace(created_by=None))
