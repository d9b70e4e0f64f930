"""
Typed client errors.
Every non-2xx response maps to an ApiError subclass; transport failures to NetworkError.
"""

from typing import Dict, Optional, Type

import httpx


class ClientError(Exception):
    """Base class for all client-side failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NetworkError(ClientError):
    """The server could not be reached (connection refused, DNS, timeout)"""


class ApiError(ClientError):
    """The server answered with an error status"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self):
        return f"{self.message} (HTTP {self.status_code})"


class ValidationError(ApiError):
    pass


class AuthenticationError(ApiError):
    pass


class PermissionDeniedError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    pass


class ServerError(ApiError):
    pass


_STATUS_ERRORS: Dict[int, Type[ApiError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: PermissionDeniedError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def _extract_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        return message if isinstance(message, str) else None
    return None


def error_from_response(response: httpx.Response) -> ApiError:
    """Build the typed error for an error response."""
    message = _extract_message(response) or f"Request failed with status {response.status_code}"
    if response.status_code >= 500:
        return ServerError(message, response.status_code)
    error_cls = _STATUS_ERRORS.get(response.status_code, ApiError)
    return error_cls(message, response.status_code)
