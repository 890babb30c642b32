"""Error kinds raised by the booking services.

Each carries the HTTP status the API layer answers with; ``main.py`` installs
a single handler for :class:`FrontdeskError`.
"""


class FrontdeskError(Exception):
    status_code: int = 400
    kind: str = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FrontdeskError):
    """Malformed or out-of-range input (dates, guest counts)."""
    kind = "validation_error"


class CapacityExceeded(FrontdeskError):
    kind = "capacity_exceeded"


class RoomUnavailable(FrontdeskError):
    """A blocking booking overlaps the requested dates."""
    status_code = 409
    kind = "room_unavailable"


class NotFound(FrontdeskError):
    status_code = 404
    kind = "not_found"


class IllegalTransition(FrontdeskError):
    """The booking status does not allow the requested change."""
    status_code = 409
    kind = "illegal_transition"


class TooEarly(FrontdeskError):
    kind = "too_early"


class IllegalOperation(FrontdeskError):
    status_code = 409
    kind = "illegal_operation"
