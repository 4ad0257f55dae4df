from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional, Type


class AppointmentError(Exception):
    """Base class for the scheduling error taxonomy.

    ``kind`` is the stable identifier sent over the wire, ``status_code`` the
    HTTP status the API answers with.
    """
    kind = "appointment_error"
    status_code = 400
    default_message = "Appointment request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PastDateError(AppointmentError):
    kind = "past_date"
    status_code = 400
    default_message = "Appointment time must be in the future"


class SlotUnavailableError(AppointmentError):
    kind = "slot_unavailable"
    status_code = 409
    default_message = "This time slot is not available"


class ConflictError(AppointmentError):
    kind = "conflict"
    status_code = 409
    default_message = "The appointment was changed by another request"


class InvalidTransitionError(AppointmentError):
    kind = "invalid_transition"
    status_code = 409
    default_message = "This status change is not allowed"


class ForbiddenError(AppointmentError):
    kind = "forbidden"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(AppointmentError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


ERROR_KINDS: Dict[str, Type[AppointmentError]] = {
    cls.kind: cls
    for cls in (
        PastDateError,
        SlotUnavailableError,
        ConflictError,
        InvalidTransitionError,
        ForbiddenError,
        NotFoundError,
    )
}


# Client-side failures. These never come out of the server.

class TransportError(Exception):
    """The server was unreachable or answered with something unreadable."""
    kind = "transport"

    def __init__(self, message: str = "Unable to reach the appointments server"):
        self.message = message
        super().__init__(message)


class RequestTimeoutError(TransportError):
    kind = "timeout"

    def __init__(self, message: str = "The appointments server did not answer in time"):
        super().__init__(message)


class ActionInFlightError(Exception):
    kind = "in_flight"

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        self.message = f"An update for appointment {appointment_id} is already in progress"
        super().__init__(self.message)


class SessionClosedError(Exception):
    kind = "session_closed"

    def __init__(self, message: str = "The session has been closed"):
        self.message = message
        super().__init__(message)


def error_from_payload(payload: Dict[str, Any]) -> Exception:
    """Rebuild a domain error from the ``error`` member of an API envelope."""
    kind = payload.get("kind")
    message = payload.get("message")
    cls = ERROR_KINDS.get(kind)
    if cls is None:
        return TransportError(f"Unexpected error from server: {kind or 'unknown'}: {message}")
    return cls(message)


def create_error_response(kind: str, message: str) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": {"kind": kind, "message": message},
    }


async def appointment_error_handler(request: Request, exc: AppointmentError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.kind, exc.message),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("unauthorized", "Authentication required")
        )
    kind = "unauthorized" if exc.status_code == 401 else "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(kind, str(exc.detail))
    )
