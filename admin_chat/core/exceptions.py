from typing import Any, Optional

from fastapi import HTTPException, status


# Server-side (dashboard routes)

class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedException(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


# Client-side (chat widget)

class ChatClientError(Exception):
    """Base class for errors raised by the chat client services."""


class ApiRequestError(ChatClientError):
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class FileValidationError(ChatClientError):
    def __init__(self, file_name: str, reason: str):
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


class UploadError(ChatClientError):
    def __init__(self, file_name: str, message: str):
        super().__init__(message)
        self.file_name = file_name
        self.message = message


class TransportError(ChatClientError):
    """Raised when a send could not be completed on either delivery path."""
