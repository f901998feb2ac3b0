# app/core/exceptions.py

from enum import Enum

from fastapi import status


class ErrorCode(str, Enum):
    """Closed set of error codes that may appear in a response envelope."""
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal"


# Base Exception
class BaseAPIException(Exception):
    """
    Base class for all typed service failures.

    Handled failures default to HTTP 200 with ``success: 0`` in the envelope;
    only transport-level problems carry a 4xx/5xx status.
    """
    def __init__(self, code: ErrorCode, detail: str, status_code: int = status.HTTP_200_OK):
        super().__init__(detail)
        self.code = code
        self.detail = detail
        self.status_code = status_code


# Request Exceptions
class InvalidRequestException(BaseAPIException):
    """Exception raised when input data is invalid."""
    def __init__(self, detail="Invalid request"):
        super().__init__(ErrorCode.INVALID_REQUEST, detail)

class RateLimitedException(BaseAPIException):
    """Exception raised when a caller exceeds an allowed request rate."""
    def __init__(self, detail="Too many requests"):
        super().__init__(ErrorCode.RATE_LIMITED, detail, status.HTTP_429_TOO_MANY_REQUESTS)


# Authentication & Authorization Exceptions
class InvalidCredentialsException(BaseAPIException):
    """Exception raised when login credentials are invalid."""
    def __init__(self, detail="Invalid username or password"):
        super().__init__(ErrorCode.UNAUTHORIZED, detail)

class WrongRoomPasswordException(BaseAPIException):
    """Exception raised when a password-gated room is joined with a bad password."""
    def __init__(self, detail="Room password is incorrect"):
        super().__init__(ErrorCode.UNAUTHORIZED, detail)

class InvalidTokenException(BaseAPIException):
    """Exception raised when a token is missing, malformed or no longer active."""
    def __init__(self, detail="Invalid token"):
        super().__init__(ErrorCode.UNAUTHORIZED, detail, status.HTTP_401_UNAUTHORIZED)

class TokenExpiredException(BaseAPIException):
    """Exception raised when a token has expired."""
    def __init__(self, detail="Token has expired"):
        super().__init__(ErrorCode.UNAUTHORIZED, detail, status.HTTP_401_UNAUTHORIZED)

class ForbiddenException(BaseAPIException):
    """Exception raised when the actor lacks the role an operation requires."""
    def __init__(self, detail="Access denied"):
        super().__init__(ErrorCode.FORBIDDEN, detail)


# Not Found Exceptions
class UserNotFoundException(BaseAPIException):
    def __init__(self, detail="User not found"):
        super().__init__(ErrorCode.NOT_FOUND, detail)

class RoomNotFoundException(BaseAPIException):
    def __init__(self, detail="Room not found"):
        super().__init__(ErrorCode.NOT_FOUND, detail)

class MembershipNotFoundException(BaseAPIException):
    def __init__(self, detail="Membership not found"):
        super().__init__(ErrorCode.NOT_FOUND, detail)

class InviteNotFoundException(BaseAPIException):
    def __init__(self, detail="Invite not found"):
        super().__init__(ErrorCode.NOT_FOUND, detail)


# Conflict Exceptions
class ConflictException(BaseAPIException):
    """Exception raised when a request collides with existing state."""
    def __init__(self, detail="Resource conflict"):
        super().__init__(ErrorCode.CONFLICT, detail)

class AlreadyMemberException(ConflictException):
    def __init__(self, detail="User is already a member of the room"):
        super().__init__(detail)

class DuplicateInviteException(ConflictException):
    def __init__(self, detail="A pending invite already exists for this user"):
        super().__init__(detail)

class UsernameTakenException(ConflictException):
    def __init__(self, detail="Username already exists"):
        super().__init__(detail)

class IllegalStateTransitionException(ConflictException):
    """Exception raised when an entity is moved to a state it cannot reach."""
    def __init__(self, detail="Illegal state transition"):
        super().__init__(detail)


# Database & System Exceptions
class ConstraintViolationException(ConflictException):
    """Exception raised when a unique or foreign-key constraint rejects a write."""
    def __init__(self, detail="Constraint violation"):
        super().__init__(detail)

class ConnectionFailureException(BaseAPIException):
    """Exception raised when a database connection cannot be obtained or is lost."""
    def __init__(self, detail="Database connection failed"):
        super().__init__(ErrorCode.INTERNAL, detail, status.HTTP_500_INTERNAL_SERVER_ERROR)

class SyntaxFailureException(BaseAPIException):
    """Exception raised when the database rejects a statement as malformed."""
    def __init__(self, detail="Malformed database statement"):
        super().__init__(ErrorCode.INTERNAL, detail, status.HTTP_500_INTERNAL_SERVER_ERROR)

class InternalServerErrorException(BaseAPIException):
    """Exception raised for internal server errors."""
    def __init__(self, detail="Internal server error"):
        super().__init__(ErrorCode.INTERNAL, detail, status.HTTP_500_INTERNAL_SERVER_ERROR)
