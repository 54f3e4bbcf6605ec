"""gRPC binding for access role management.

Messages are JSON documents, so the service is registered through a generic
handler and needs no generated stubs:

    GetAccessRoles     {"path": "/a/b", "effective": false}    → {"path": ..., "roles": {...} | null}
    SetAccessRoles     {"path": "/a/b", "roles": {"alice": ["admin"]}} → {"path": ..., "created": true}
    DeleteAccessRoles  {"path": "/a/b"}                       → {"path": ..., "deleted": true}

Caller identity comes from invocation metadata (``x-principal``,
``x-principal-groups``, ``x-superuser``, ``x-request-id``). Failures abort
the call with the status from :func:`accessroles.exceptions.get_grpc_status_code`
and an ``error-code`` trailer.

Usage:
    server = grpc.aio.server()
    add_access_roles_servicer(AccessRolesServicer(roles.gateway), server)
"""

from __future__ import annotations

import logging
from typing import Any

import grpc
import grpc.aio
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError, grpc_error_handler
from .gateway import AccessRolesGateway
from .model import Action
from .transport import request_from_grpc_context

logger = logging.getLogger(__name__)

SERVICE_NAME = "accessroles.AccessRoles"

_MESSAGE = TypeAdapter(dict[str, Any])


def _parse_message(raw: bytes) -> dict[str, Any]:
    try:
        message = _MESSAGE.validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed request: {e.errors()[0]['msg']}") from e
    if not isinstance(message.get("path"), str):
        raise ValidationError("Request must name a resource path")
    return message


def _serialize(message: dict[str, Any]) -> bytes:
    return _MESSAGE.dump_json(message)


class AccessRolesServicer:
    """Unary RPCs over :class:`AccessRolesGateway`.

    Request bodies arrive as raw bytes and are parsed inside the handler, so
    a malformed body is reported as ``INVALID_ARGUMENT`` like any other
    validation failure.
    """

    def __init__(self, gateway: AccessRolesGateway) -> None:
        self._gateway = gateway

    @grpc_error_handler
    async def GetAccessRoles(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        message = _parse_message(request)
        access = request_from_grpc_context(context, message["path"], Action.READ)
        roles = self._gateway.get_acl(access, effective=bool(message.get("effective", False)))
        return {"path": access.resource, "roles": roles}

    @grpc_error_handler
    async def SetAccessRoles(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        message = _parse_message(request)
        access = request_from_grpc_context(context, message["path"], Action.MANAGE_ACL)
        update = self._gateway.set_acl(access, message.get("roles") or {})
        return {"path": update.path, "created": update.created}

    @grpc_error_handler
    async def DeleteAccessRoles(self, request: bytes, context: grpc.aio.ServicerContext) -> dict[str, Any]:
        message = _parse_message(request)
        access = request_from_grpc_context(context, message["path"], Action.MANAGE_ACL)
        return {"path": access.resource, "deleted": self._gateway.delete_acl(access)}


_RPC_NAMES = ("GetAccessRoles", "SetAccessRoles", "DeleteAccessRoles")


def add_access_roles_servicer(servicer: AccessRolesServicer, server: grpc.aio.Server) -> None:
    """Register ``servicer`` on ``server`` under :data:`SERVICE_NAME`."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            response_serializer=_serialize,
        )
        for name in _RPC_NAMES
    }
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),))
    logger.info("Registered %s (%s)", SERVICE_NAME, ", ".join(_RPC_NAMES))


__all__ = ["SERVICE_NAME", "AccessRolesServicer", "add_access_roles_servicer"]
