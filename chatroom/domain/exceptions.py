# chatroom/domain/exceptions.py


class ChatError(Exception):
    """Base class for errors that are reported to the caller.

    Each subclass carries a stable machine-readable ``kind`` and the HTTP
    status it maps to; ``message`` is safe to show to the user.
    """

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class UnauthenticatedError(ChatError):
    kind = "unauthenticated"
    status_code = 401


class ForbiddenError(ChatError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(ChatError):
    kind = "not_found"
    status_code = 404


class ConflictError(ChatError):
    kind = "conflict"
    status_code = 409


class InvalidArgumentError(ChatError):
    kind = "invalid_argument"
    status_code = 400


class InvalidStateError(ChatError):
    kind = "invalid_state"
    status_code = 400


class InternalError(ChatError):
    pass
