"""
All configuration flags, options, settings to fine-tune the provider.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).
"""
import dataclasses
from typing import Iterable, Optional, Union

DEFAULT_SERVER = 'https://api.fastly.com'


@dataclasses.dataclass
class APISettings:

    server: str = DEFAULT_SERVER
    """
    The root URL of the Fastly API. All endpoints are relative to it.
    Overridden by the credentials if they specify their own server
    (e.g. via ``FASTLY_API_URL``).
    """

    user_agent: Optional[str] = None
    """
    An extra product token for the ``User-Agent`` header, e.g. ``"ci/1.0"``.
    It is appended after the provider's own token, which is always sent.
    """


@dataclasses.dataclass
class NetworkingSettings:

    request_timeout: Optional[float] = 5 * 60  # == aiohttp.client.DEFAULT_TIMEOUT
    """
    A timeout for the whole request-response cycle, in seconds.
    """

    connect_timeout: Optional[float] = None
    """
    A timeout for establishing a connection, in seconds.
    """

    error_backoffs: Union[float, Iterable[float]] = (1, 1, 2, 3, 5, 8)
    """
    Backoffs (in seconds) for retrying the failed API requests.

    Only the connection errors, timeouts, and the server-side errors (HTTP 5xx)
    are retried. Client-side errors (HTTP 4xx) are escalated immediately.
    A single number means one retry. An empty sequence means no retries.
    """


@dataclasses.dataclass
class ProviderSettings:
    api: APISettings = dataclasses.field(default_factory=APISettings)
    networking: NetworkingSettings = dataclasses.field(default_factory=NetworkingSettings)
