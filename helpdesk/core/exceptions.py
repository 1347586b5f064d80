"""Application exception classes and handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    category: str = "error"

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Base authentication error."""

    category = "authentication"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


class TokenExpiredError(AppException):
    """Token has expired."""

    category = "authentication"

    def __init__(self) -> None:
        super().__init__(
            message="Token has expired",
            code="TOKEN_EXPIRED",
            status_code=401,
        )


class InvalidTokenError(AppException):
    """Token is invalid."""

    category = "authentication"

    def __init__(self) -> None:
        super().__init__(
            message="Invalid token",
            code="INVALID_TOKEN",
            status_code=401,
        )


class TokenRevokedError(AppException):
    """Token was revoked before it expired."""

    category = "authentication"

    def __init__(self) -> None:
        super().__init__(
            message="Token has been revoked",
            code="TOKEN_BLACKLISTED",
            status_code=401,
        )


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Insufficient permissions."""

    category = "authorization"

    def __init__(
        self,
        message: str = "Insufficient permissions",
        code: str = "AUTHORIZATION_ERROR",
    ) -> None:
        super().__init__(message=message, code=code, status_code=403)


class UnknownRoleError(AuthorizationError):
    """Token carries a role this service does not know."""

    def __init__(self) -> None:
        super().__init__(message="Unknown role", code="UNKNOWN_ROLE")


class NotBoundAgentError(AuthorizationError):
    """Caller is not the agent bound to the session."""

    def __init__(self) -> None:
        super().__init__(
            message="Agent is not assigned to this session",
            code="NOT_BOUND_AGENT",
        )


# --- Conflict (409): re-read state before retrying ---


class ConflictError(AppException):
    """Session state changed under the caller."""

    category = "conflict"

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message=message, code=code, status_code=409)


class AlreadyAssignedError(ConflictError):
    """Session is no longer waiting for an agent."""

    def __init__(self) -> None:
        super().__init__(
            message="Session is not waiting for an agent",
            code="ALREADY_ASSIGNED",
        )


class StaleStateError(ConflictError):
    """A concurrent operation won the race for this session."""

    def __init__(self, message: str = "Session was modified concurrently") -> None:
        super().__init__(message=message, code="STALE_STATE")


class SessionClosedError(ConflictError):
    """Session is closed and accepts no further changes."""

    def __init__(self) -> None:
        super().__init__(message="Session is closed", code="SESSION_CLOSED")


class InvalidTransitionError(ConflictError):
    """Requested transition is not allowed from the current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            message=f"Cannot move session from '{current}' to '{target}'",
            code="INVALID_TRANSITION",
        )


# --- Capacity (409): retry assignment later ---


class CapacityError(AppException):
    """Agent capacity is exhausted for now."""

    category = "capacity"

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message=message, code=code, status_code=409)


class AgentAtCapacityError(CapacityError):
    """Agent has no spare chat slots."""

    def __init__(self) -> None:
        super().__init__(
            message="Agent is at maximum concurrent chats",
            code="AGENT_AT_CAPACITY",
        )


class AgentOfflineError(CapacityError):
    """Agent is not online."""

    def __init__(self) -> None:
        super().__init__(message="Agent is offline", code="AGENT_OFFLINE")


class NoAgentAvailableError(CapacityError):
    """No online agent can take the session."""

    def __init__(self) -> None:
        super().__init__(
            message="No agent is available for this category",
            code="NO_AGENT_AVAILABLE",
        )


# --- Not Found (404) ---


class NotFoundError(AppException):
    """Identifier does not exist."""

    category = "not_found"

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message=message, code=code, status_code=404)


class SessionNotFoundError(NotFoundError):
    """Support session not found."""

    def __init__(self) -> None:
        super().__init__(message="Session not found", code="UNKNOWN_SESSION")


class AgentNotFoundError(NotFoundError):
    """Support agent not found."""

    def __init__(self) -> None:
        super().__init__(message="Agent not found", code="UNKNOWN_AGENT")


class QuickReplyNotFoundError(NotFoundError):
    """Quick reply not found."""

    def __init__(self) -> None:
        super().__init__(message="Quick reply not found", code="UNKNOWN_QUICK_REPLY")


# --- Validation (422): rejected before any mutation ---


class InvalidInputError(AppException):
    """Request is well-formed but semantically invalid."""

    category = "validation"

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message=message, code=code, status_code=422)


class InvalidPriorityError(InvalidInputError):
    """Unknown priority value."""

    def __init__(self, value: object) -> None:
        super().__init__(
            message=f"Invalid priority: {value!r}",
            code="INVALID_PRIORITY",
        )


class EmptyMessageBodyError(InvalidInputError):
    """Message body is blank."""

    def __init__(self) -> None:
        super().__init__(message="Message body is empty", code="EMPTY_MESSAGE_BODY")


class MessageTooLongError(InvalidInputError):
    """Message body exceeds the configured maximum."""

    def __init__(self, limit: int) -> None:
        super().__init__(
            message=f"Message body exceeds {limit} characters",
            code="MESSAGE_TOO_LONG",
        )


class RatingOutOfRangeError(InvalidInputError):
    """Rating outside 1..5."""

    def __init__(self) -> None:
        super().__init__(
            message="Rating must be between 1 and 5",
            code="RATING_OUT_OF_RANGE",
        )


class RatingNotAllowedError(InvalidInputError):
    """Only the customer may rate a session."""

    def __init__(self) -> None:
        super().__init__(
            message="Only the customer can leave a rating or feedback",
            code="RATING_NOT_ALLOWED",
        )


# --- Timeout (504) ---


class PollTimeoutError(AppException):
    """Poll did not complete in time."""

    category = "timeout"

    def __init__(self) -> None:
        super().__init__(
            message="Poll timed out, retry later",
            code="POLL_TIMEOUT",
            status_code=504,
        )


# --- Programming errors ---


class CapacityInvariantError(RuntimeError):
    """Agent load left the range [0, max_concurrent_chats]."""


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "message": exc.message,
            "code": exc.code,
            "category": exc.category,
        },
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request schema failures in the common error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "status": 422,
            "message": f"{location}: {detail}" if location else detail,
            "code": "VALIDATION_ERROR",
            "category": "validation",
        },
    )
