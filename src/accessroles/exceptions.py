"""Unified exception hierarchy for accessroles.

All errors raised by the package inherit from AccessRolesError. This module provides:
- Base exception hierarchy with stable error codes
- HTTP and gRPC status mapping
- gRPC error handler decorator for servicers that expose the gateway

Usage in adapters:
    from accessroles.exceptions import (
        AccessRolesError,
        ValidationError,
        get_http_status,
        grpc_error_handler,
    )
"""

from __future__ import annotations

import functools
import logging
from http import HTTPStatus
from typing import Any

__all__ = [
    # Base hierarchy
    "AccessRolesError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ResourceNotFoundError",
    "AccessDeniedError",
    "RootAclError",
    "StoreError",
    # Protocol helpers
    "get_http_status",
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class AccessRolesError(Exception):
    """Base exception for accessroles.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "VALIDATION_ERROR").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(AccessRolesError):
    """Invalid or missing configuration (e.g. unreadable role matrix)."""

    code: str = "CONFIGURATION_ERROR"


class ValidationError(AccessRolesError):
    """Malformed ACL payload. Never retried."""

    code: str = "VALIDATION_ERROR"
    message: str = "Invalid access role assignments"


class NotFoundError(AccessRolesError):
    """No direct ACL exists at the addressed node."""

    code: str = "ACL_NOT_FOUND"
    message: str = "No access roles are attached to this resource"


class ResourceNotFoundError(AccessRolesError):
    """The resource itself is gone. Only ever reported to superusers."""

    code: str = "RESOURCE_NOT_FOUND"
    message: str = "Resource not found"


class AccessDeniedError(AccessRolesError):
    """The decision engine denied the requested action."""

    code: str = "PERMISSION_DENIED"
    message: str = "Access denied"


class RootAclError(AccessDeniedError):
    """Access roles cannot be managed on the repository root."""

    code: str = "ROOT_ACL_FORBIDDEN"
    message: str = "Access roles cannot be managed on the repository root"


class StoreError(AccessRolesError):
    """Backing store failure (transaction, connection, corrupt record)."""

    code: str = "STORE_ERROR"


# ---- Status Mapping ---------------------------------------------------------

_HTTP_STATUS = {
    "VALIDATION_ERROR": HTTPStatus.BAD_REQUEST,
    "ACL_NOT_FOUND": HTTPStatus.NOT_FOUND,
    "RESOURCE_NOT_FOUND": HTTPStatus.NOT_FOUND,
    "PERMISSION_DENIED": HTTPStatus.FORBIDDEN,
    "ROOT_ACL_FORBIDDEN": HTTPStatus.FORBIDDEN,
    "CONFIGURATION_ERROR": HTTPStatus.INTERNAL_SERVER_ERROR,
    "STORE_ERROR": HTTPStatus.SERVICE_UNAVAILABLE,
}


def get_http_status(error: AccessRolesError) -> HTTPStatus:
    """Map AccessRolesError to the HTTP status an adapter should render."""
    return _HTTP_STATUS.get(error.code, HTTPStatus.INTERNAL_SERVER_ERROR)


def get_grpc_status_code(error: AccessRolesError) -> int:
    """Map AccessRolesError to gRPC status code.

    Returns grpc.StatusCode value for the given error type.
    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "VALIDATION_ERROR": grpc.StatusCode.INVALID_ARGUMENT,
        "ACL_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "RESOURCE_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "ROOT_ACL_FORBIDDEN": grpc.StatusCode.PERMISSION_DENIED,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "STORE_ERROR": grpc.StatusCode.UNAVAILABLE,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for unary gRPC service methods with proper error handling.

    Catches AccessRolesError and sets appropriate gRPC status codes.
    Logs errors and ensures consistent error response format.

    Usage:
        @grpc_error_handler
        async def SetAccessRoles(self, request, context):
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except AccessRolesError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            logger.error(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e)}: {e}",
            )
            return

    return wrapper
