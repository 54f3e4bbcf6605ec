from .config import AccessRolesConfig, LogLevel, StoreBackend, load_config_from_env
from .exceptions import (
    AccessDeniedError,
    AccessRolesError,
    ConfigurationError,
    NotFoundError,
    ResourceNotFoundError,
    RootAclError,
    StoreError,
    ValidationError,
)
from .model import (
    EVERYONE,
    AccessControlList,
    AccessRequest,
    Action,
    Decision,
    ExistenceState,
    PrincipalClass,
)
from .paths import ROOT_PATH
from .roles import (
    DEFAULT_ROLE_MATRIX,
    RoleMatrix,
    get_role_matrix,
    init_role_matrix,
    reset_role_matrix,
)
from .hierarchy import HierarchyView, InMemoryRepository
from .store import AclStore, InMemoryAclStore
from .resolver import AclResolver, Resolution
from .engine import AccessDecision, DecisionEngine, DecisionReason
from .gateway import AccessRolesGateway, AclUpdate
from .transport import (
    AccessRolesEndpoint,
    Response,
    request_from_grpc_context,
    request_from_metadata,
)
from .grpc_service import AccessRolesServicer, add_access_roles_servicer
from .bootstrap import AccessRoles, bootstrap
from .logging import (
    safe_preview,
    AccessRolesFormatter,
    RequestLoggerAdapter,
    setup_logging,
    get_request_logger,
)

__all__ = [
    'AccessRolesConfig',
    'LogLevel',
    'StoreBackend',
    'load_config_from_env',
    'AccessRolesError',
    'AccessDeniedError',
    'ConfigurationError',
    'NotFoundError',
    'ResourceNotFoundError',
    'RootAclError',
    'StoreError',
    'ValidationError',
    'EVERYONE',
    'ROOT_PATH',
    'AccessControlList',
    'AccessRequest',
    'Action',
    'Decision',
    'ExistenceState',
    'PrincipalClass',
    'DEFAULT_ROLE_MATRIX',
    'RoleMatrix',
    'get_role_matrix',
    'init_role_matrix',
    'reset_role_matrix',
    'HierarchyView',
    'InMemoryRepository',
    'AclStore',
    'InMemoryAclStore',
    'AclResolver',
    'Resolution',
    'AccessDecision',
    'DecisionEngine',
    'DecisionReason',
    'AccessRolesGateway',
    'AclUpdate',
    'AccessRolesEndpoint',
    'Response',
    'request_from_grpc_context',
    'request_from_metadata',
    'AccessRolesServicer',
    'add_access_roles_servicer',
    'AccessRoles',
    'bootstrap',
    'safe_preview',
    'AccessRolesFormatter',
    'RequestLoggerAdapter',
    'setup_logging',
    'get_request_logger',
]
