"""
Failure taxonomy shared by every app.

Each failure is a DRF APIException carrying a stable machine code, so views
never translate errors by hand: the exception handler below renders them as
    {"error": <code>, "detail": <message>, ...extra fields}
Persistence failures never expose driver text, only a correlation id that
matches the ERROR log line.
"""

import logging
import uuid
from contextlib import contextmanager

from django.db import DatabaseError, OperationalError, transaction
from django.http import Http404
from rest_framework import exceptions, status

logger = logging.getLogger("supplytrack.errors")

# PostgreSQL SQLSTATEs that mean "another writer got there first"
SERIALIZATION_SQLSTATES = {"40001", "40P01"}


def new_correlation_id():
    return uuid.uuid4().hex[:16]


class TrackingError(exceptions.APIException):
    """Base class; keyword arguments become extra fields in the response body."""

    def __init__(self, detail=None, **extra):
        super().__init__(detail=detail)
        self.extra = extra


# ── Identity ──────────────────────────────────────────────────────────────────
class Unauthenticated(TrackingError, exceptions.AuthenticationFailed):
    default_detail = "Missing, invalid or expired credential."
    default_code   = "unauthenticated"


class AccountInactive(TrackingError, exceptions.AuthenticationFailed):
    default_detail = "This account has been deactivated."
    default_code   = "account_inactive"


class Forbidden(TrackingError, exceptions.PermissionDenied):
    default_detail = "Your role is not allowed to perform this action."
    default_code   = "forbidden"

    def __init__(self, required_roles):
        roles = sorted(str(r) for r in required_roles)
        super().__init__(
            f"Access denied. Required roles: {', '.join(roles)}",
            required_roles=roles,
        )


# ── Lookup ────────────────────────────────────────────────────────────────────
class NotFound(TrackingError, exceptions.NotFound):
    """Absent, or present but not visible to the caller. The two are indistinguishable."""
    default_detail = "Shipment not found."
    default_code   = "not_found"


class ConsumerNotFound(TrackingError):
    status_code    = status.HTTP_404_NOT_FOUND
    default_detail = "Consumer not found."
    default_code   = "consumer_not_found"


# ── State machine ─────────────────────────────────────────────────────────────
class InvalidTransition(TrackingError):
    status_code    = status.HTTP_409_CONFLICT
    default_detail = "This status change is not allowed."
    default_code   = "invalid_transition"


class TerminalState(InvalidTransition):
    default_detail = "Shipment is in a terminal state."
    default_code   = "terminal_state"


class NotAssigned(TrackingError):
    status_code    = status.HTTP_403_FORBIDDEN
    default_detail = "You are not the driver assigned to this shipment."
    default_code   = "not_assigned"


class DriverUnavailable(TrackingError):
    status_code    = status.HTTP_409_CONFLICT
    default_detail = "Driver not found or inactive."
    default_code   = "driver_unavailable"


class Conflict(TrackingError):
    status_code    = status.HTTP_409_CONFLICT
    default_detail = "Shipment was changed by another request. Reload and retry."
    default_code   = "conflict"


# ── Input ─────────────────────────────────────────────────────────────────────
class InvalidCoordinates(TrackingError):
    status_code    = status.HTTP_400_BAD_REQUEST
    default_detail = "Latitude must be within ±90 and longitude within ±180."
    default_code   = "invalid_coordinates"


# ── Persistence ───────────────────────────────────────────────────────────────
class PersistenceTimeout(TrackingError):
    status_code    = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage is temporarily unavailable. Please retry."
    default_code   = "timeout"

    def __init__(self, correlation_id=None):
        super().__init__(correlation_id=correlation_id or new_correlation_id())


def _sqlstate(exc):
    cause = exc.__cause__
    return getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)


@contextmanager
def atomic_unit(label):
    """
    One all-or-nothing write. Any failure inside rolls the whole unit back;
    lock/statement timeouts surface as PersistenceTimeout and serialization
    failures as Conflict.
    """
    try:
        with transaction.atomic():
            yield
    except OperationalError as exc:
        if _sqlstate(exc) in SERIALIZATION_SQLSTATES:
            logger.info("Serialization failure during %s, reporting conflict", label)
            raise Conflict() from exc
        correlation_id = new_correlation_id()
        logger.error("Persistence failure during %s [%s]: %s", label, correlation_id, exc)
        raise PersistenceTimeout(correlation_id=correlation_id) from exc


# ── DRF exception handler ─────────────────────────────────────────────────────
_CODE_ALIASES = {
    "not_authenticated":     "unauthenticated",
    "authentication_failed": "unauthenticated",
    "token_not_valid":       "unauthenticated",
    "permission_denied":     "forbidden",
}


def exception_handler(exc, context):
    # rest_framework.views reads DEFAULT_AUTHENTICATION_CLASSES at import time,
    # which points back at the gate module that imports this one
    from rest_framework.views import exception_handler as drf_exception_handler

    if isinstance(exc, Http404):
        exc = NotFound()
    elif isinstance(exc, DatabaseError):
        correlation_id = new_correlation_id()
        logger.error("Unhandled database error [%s]", correlation_id, exc_info=exc)
        exc = PersistenceTimeout(correlation_id=correlation_id)

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {"error": "invalid", "detail": response.data}
        return response

    codes = exc.get_codes()
    code  = codes if isinstance(codes, str) else exc.default_code
    detail = response.data.get("detail", exc.default_detail) if isinstance(response.data, dict) else response.data
    body = {"error": _CODE_ALIASES.get(code, code), "detail": detail}
    body.update(getattr(exc, "extra", {}))
    response.data = body
    return response
