"""
Error taxonomy for the back office.

Services raise these instead of returning ``False``/``None`` on failure, so
callers can tell a missing row from a constraint violation from a lost
database connection. The HTTP layer maps each kind to a status code.
"""
from typing import Optional


class PrisonError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str, *, entity: Optional[str] = None, identifier: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.identifier = identifier


class NotFoundError(PrisonError):
    """Requested row does not exist."""

    status_code = 404

    def __init__(self, entity: str, identifier: str):
        super().__init__(f"{entity} not found: {identifier}", entity=entity, identifier=identifier)


class ValidationError(PrisonError):
    """Input rejected before touching the database."""

    status_code = 400


class ConstraintViolationError(PrisonError):
    """A relational or domain constraint would be broken."""

    status_code = 409


class DuplicateRecordError(ConstraintViolationError):
    """Unique key already taken."""


class CellCapacityError(ConstraintViolationError):
    """Occupancy change would leave 0 <= occupancy <= capacity."""

    def __init__(self, cell_number: str, reason: str):
        super().__init__(f"Cell {cell_number}: {reason}", entity="Cell", identifier=cell_number)


class InvalidTransitionError(PrisonError):
    """Status change not allowed from the current state."""

    status_code = 409

    def __init__(self, entity: str, identifier: Optional[str], current: str, target: str):
        super().__init__(
            f"{entity} {identifier or ''} cannot move from '{current}' to '{target}'".replace("  ", " "),
            entity=entity,
            identifier=identifier,
        )
        self.current = current
        self.target = target


class AuthenticationError(PrisonError):
    """Credentials missing or wrong."""

    status_code = 401


class PermissionDeniedError(PrisonError):
    """Authenticated, but not allowed."""

    status_code = 403


class ConnectivityError(PrisonError):
    """Database unreachable, timed out or the connection dropped."""

    status_code = 503
