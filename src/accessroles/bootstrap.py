"""Process startup: wire configuration, role matrix, store and services.

Usage::

    from accessroles import bootstrap

    roles = bootstrap()            # reads the environment
    roles.endpoint.post(request, body)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import AccessRolesConfig, StoreBackend, load_config_from_env
from .engine import DecisionEngine
from .gateway import AccessRolesGateway
from .grpc_service import AccessRolesServicer
from .hierarchy import HierarchyView, InMemoryRepository
from .logging import setup_logging
from .roles import DEFAULT_ROLE_MATRIX, RoleMatrix, init_role_matrix
from .store import AclStore, InMemoryAclStore
from .transport import AccessRolesEndpoint

logger = logging.getLogger(__name__)


@dataclass
class AccessRoles:
    """Wired access-roles services for one process."""

    config: AccessRolesConfig
    hierarchy: HierarchyView
    store: AclStore
    role_matrix: RoleMatrix
    engine: DecisionEngine
    gateway: AccessRolesGateway
    endpoint: AccessRolesEndpoint
    servicer: AccessRolesServicer


def load_role_matrix(config: AccessRolesConfig) -> RoleMatrix:
    """Build the role matrix named by ``config`` (inline, file, or default)."""
    if config.role_matrix is not None:
        return RoleMatrix(config.role_matrix)
    if config.role_matrix_path:
        return RoleMatrix.from_file(config.role_matrix_path)
    return DEFAULT_ROLE_MATRIX


def create_store(config: AccessRolesConfig) -> AclStore:
    if config.store_backend == StoreBackend.REDIS:
        from .redis_store import RedisAclStore

        return RedisAclStore.from_url(config.redis_url, prefix=config.redis_prefix)
    return InMemoryAclStore()


def bootstrap(
    config: AccessRolesConfig | None = None,
    *,
    hierarchy: HierarchyView | None = None,
    store: AclStore | None = None,
    configure_logging: bool = True,
) -> AccessRoles:
    """Initialize logging, install the role matrix and build the services.

    Args:
        config: Configuration (if None, loads from environment).
        hierarchy: Hierarchy view of the repository. Defaults to an
            ``InMemoryRepository`` bound to the store.
        store: ACL store. Defaults to the backend named in ``config``.
        configure_logging: Set up root logging from ``config``.

    Raises:
        ConfigurationError: The role matrix cannot be loaded.
    """
    if config is None:
        config = load_config_from_env()
    if configure_logging:
        setup_logging(config)

    matrix = init_role_matrix(load_role_matrix(config))

    if store is None:
        store = create_store(config)
    if hierarchy is None:
        hierarchy = InMemoryRepository(store)

    engine = DecisionEngine(hierarchy, store, matrix, everyone=config.everyone_principal)
    gateway = AccessRolesGateway(hierarchy, store, engine, idempotent_delete=config.idempotent_delete)
    endpoint = AccessRolesEndpoint(gateway, engine, hierarchy, acl_subpath=config.acl_subpath)
    servicer = AccessRolesServicer(gateway)

    logger.info(
        "Access roles ready (store=%s, roles=%s, idempotent_delete=%s)",
        config.store_backend,
        sorted(matrix.roles),
        config.idempotent_delete,
    )
    return AccessRoles(
        config=config,
        hierarchy=hierarchy,
        store=store,
        role_matrix=matrix,
        engine=engine,
        gateway=gateway,
        endpoint=endpoint,
        servicer=servicer,
    )


__all__ = ["AccessRoles", "bootstrap", "create_store", "load_role_matrix"]
