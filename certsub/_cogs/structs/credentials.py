"""
Authentication-related structures.

Unlike in other places, the API key is never logged or reported:
the ``repr()`` of the credentials hides it.
"""
import dataclasses
import os
from typing import Mapping, Optional

from certsub._cogs.configs import configuration

API_KEY_ENV = 'FASTLY_API_KEY'
API_URL_ENV = 'FASTLY_API_URL'


class LoginError(Exception):
    """ Raised when the provider cannot authenticate to the API. """


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """
    A single endpoint with the credentials to use.
    """
    server: str
    api_key: str = dataclasses.field(repr=False)


def login_via_env(
        *,
        settings: configuration.ProviderSettings,
        api_key: Optional[str] = None,
        server: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
) -> ConnectionInfo:
    """
    Build the credentials from the explicit values or the environment.

    The explicit values (e.g. from CLI options) take precedence
    over the environment variables, which take precedence over the settings.
    """
    environ = os.environ if environ is None else environ
    api_key = api_key or environ.get(API_KEY_ENV)
    server = server or environ.get(API_URL_ENV) or settings.api.server
    if not api_key:
        raise LoginError(f"No API key is provided: set {API_KEY_ENV} or use --api-key.")
    return ConnectionInfo(server=server, api_key=api_key)
