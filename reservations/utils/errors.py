"""Exceptions raised by the scheduling core.

Routers never catch these; ``reservations.main`` registers handlers that turn
each one into a JSON response with the matching HTTP status.
"""

from typing import Dict, List, Optional


class ReservationError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail}


class ValidationError(ReservationError):
    """Malformed or missing input, reported per field."""

    status_code = 400

    def __init__(self, errors: Dict[str, str], detail: str = "Invalid booking request"):
        super().__init__(detail)
        self.errors = errors

    def to_dict(self) -> dict:
        return {"detail": self.detail, "errors": self.errors}


class ConflictError(ReservationError):
    """One or more rooms are already taken for the requested interval."""

    status_code = 409

    def __init__(self, conflicts: List[dict]):
        names = ", ".join(sorted({c["room_name"] for c in conflicts}))
        super().__init__(f"Room is already booked for this time slot: {names}")
        self.conflicts = conflicts

    def to_dict(self) -> dict:
        return {"detail": self.detail, "conflicts": self.conflicts}


class AuthorizationError(ReservationError):
    status_code = 403

    def __init__(self, detail: str = "Not authorized to perform this action"):
        super().__init__(detail)


class NotFoundError(ReservationError):
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[int] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class InvalidTransitionError(ReservationError):
    status_code = 409

    def __init__(self, current: str, attempted: str):
        super().__init__(f"Cannot {attempted} an appointment that is {current}")
        self.current = current
        self.attempted = attempted

    def to_dict(self) -> dict:
        return {"detail": self.detail, "current_status": self.current, "attempted": self.attempted}


class StorageError(ReservationError):
    status_code = 500

    def __init__(self, detail: str = "Could not save changes"):
        super().__init__(detail)
