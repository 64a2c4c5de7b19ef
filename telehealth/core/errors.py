"""Domain errors raised by the booking services.

Routes never translate these one by one; ``telehealth.main`` registers a single
handler that renders ``status_code`` and ``detail``.
"""


class TelehealthError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(TelehealthError):
    """Malformed input or a request the current state does not allow."""

    status_code = 400


class AuthorizationError(TelehealthError):
    """Wrong role, or the caller is not a participant."""

    status_code = 403


class NotFoundError(TelehealthError):
    """Unknown doctor, appointment, window or payment."""

    status_code = 404


class ConflictError(TelehealthError):
    """The slot or window overlaps something already stored."""

    status_code = 409


class ExternalServiceError(TelehealthError):
    """The payment or video provider failed."""

    status_code = 502
