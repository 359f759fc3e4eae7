# shortlet/core/errors.py
"""
Error taxonomy shared by the booking core and the HTTP layer.

Every error carries a machine-readable ``kind`` and the HTTP status it maps
to; ``shortlet.main`` renders them as ``{"error": {"kind", "message"}}``.
"""


class ShortletError(Exception):
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class NotFound(ShortletError):
    kind = "not_found"
    status_code = 404


class InvalidArgument(ShortletError):
    kind = "invalid_argument"
    status_code = 400


class InvalidState(ShortletError):
    kind = "invalid_state"
    status_code = 400


class InvalidTransition(ShortletError):
    kind = "invalid_transition"
    status_code = 400


class Conflict(ShortletError):
    kind = "conflict"
    status_code = 409


class Forbidden(ShortletError):
    kind = "forbidden"
    status_code = 403


class AuthError(ShortletError):
    kind = "auth_error"
    status_code = 401


class Unavailable(ShortletError):
    kind = "unavailable"
    status_code = 503
