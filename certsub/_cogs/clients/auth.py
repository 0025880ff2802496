from typing import Dict, List, Optional

import aiohttp

from certsub._cogs.configs import configuration
from certsub._cogs.helpers import versions
from certsub._cogs.structs import credentials

JSONAPI_MEDIA_TYPE = 'application/vnd.api+json'


class APIContext:
    """
    A container for an aiohttp session and the environment info.

    The context is created once per provider invocation and is passed
    explicitly to every resource handler and API call -- there is no
    global or contextual client. The handlers use it only for requests.

    The context is an async context manager that closes the session on exit::

        async with APIContext(info, settings=settings) as context:
            await subscription.read(data, context=context, ...)
    """

    # The main contained object used by the API methods.
    session: aiohttp.ClientSession

    # Contextual information for URL building.
    server: str

    # List of open responses.
    responses: List[aiohttp.ClientResponse]

    def __init__(
            self,
            info: credentials.ConnectionInfo,
            *,
            settings: Optional[configuration.ProviderSettings] = None,
            session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__()
        settings = settings if settings is not None else configuration.ProviderSettings()
        self.session = session if session is not None else self.make_aiohttp_session(info)

        # It is a good practice to self-identify a bit, even with a user-provided session.
        if self.session.headers.get('User-Agent') is None:
            user_agent = f'certsub/{versions.version or "unknown"}'
            if settings.api.user_agent:
                user_agent = f'{user_agent} {settings.api.user_agent}'
            self.session.headers['User-Agent'] = user_agent

        self.server = info.server
        self.responses = []

    async def __aenter__(self) -> "APIContext":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def make_aiohttp_session(self, info: credentials.ConnectionInfo) -> aiohttp.ClientSession:
        headers: Dict[str, str] = {
            'Fastly-Key': info.api_key,
            'Accept': JSONAPI_MEDIA_TYPE,
        }

        return aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=0,
            ),
            headers=headers,
        )

    def flush_closed_responses(self) -> None:
        # There's no point keeping references to already closed responses.
        self.responses[:] = [_response for _response in self.responses if not _response.closed]

    def add_response(self, response: aiohttp.ClientResponse) -> None:
        # Keep track of responses so they can be closed later when the session is closed.
        self.flush_closed_responses()
        if not response.closed:
            self.responses.append(response)

    def close_open_responses(self) -> None:
        for response in self.responses:
            if not response.closed:
                response.close()
        self.responses.clear()

    async def close(self) -> None:
        # Close all open responses that use this session before closing the session itself.
        self.close_open_responses()
        await self.session.close()
