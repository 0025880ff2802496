"""
The main certsub module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the project's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from certsub._cogs.clients.auth import (
    APIContext,
)
from certsub._cogs.clients.errors import (
    APIError,
    APIClientError,
    APIServerError,
    APINotFoundError,
    APIConflictError,
    APIForbiddenError,
    APIUnauthorizedError,
)
from certsub._cogs.configs.configuration import (
    ProviderSettings,
    APISettings,
    NetworkingSettings,
)
from certsub._cogs.configs.statefiles import (
    ConfigurationError,
    ResourceRecord,
    State,
    load_config,
    load_state,
    save_state,
)
from certsub._cogs.helpers.typedefs import (
    Logger,
)
from certsub._cogs.helpers.versions import (
    version as __version__,
)
from certsub._cogs.structs.credentials import (
    ConnectionInfo,
    LoginError,
    login_via_env,
)
from certsub._core.actions.application import (
    apply,
    apply_plan,
    destroy,
    import_resource,
)
from certsub._core.actions.planning import (
    Action,
    Plan,
    plan,
    plan_resource,
    refresh_all,
    refresh_resource,
)
from certsub._core.engines.loggers import (
    LogFormat,
    configure,
)
from certsub._core.resources.data import (
    ResourceData,
    ResourceDiff,
)
from certsub._core.resources.definitions import (
    Resource,
)
from certsub._core.resources.diagnostics import (
    Diagnostic,
    DiagnosticError,
    DiagnosticErrors,
    Diagnostics,
    Severity,
)
from certsub._core.resources.subscription import (
    RESOURCE as TLS_SUBSCRIPTION,
)

__all__ = [
    'APIContext',
    'APIError', 'APIClientError', 'APIServerError', 'APINotFoundError',
    'APIConflictError', 'APIForbiddenError', 'APIUnauthorizedError',
    'ProviderSettings', 'APISettings', 'NetworkingSettings',
    'ConfigurationError', 'ResourceRecord', 'State', 'load_config', 'load_state', 'save_state',
    'Logger',
    'ConnectionInfo', 'LoginError', 'login_via_env',
    'apply', 'apply_plan', 'destroy', 'import_resource',
    'Action', 'Plan', 'plan', 'plan_resource', 'refresh_all', 'refresh_resource',
    'LogFormat', 'configure',
    'ResourceData', 'ResourceDiff',
    'Resource',
    'Diagnostic', 'DiagnosticError', 'DiagnosticErrors', 'Diagnostics', 'Severity',
    'TLS_SUBSCRIPTION',
]
