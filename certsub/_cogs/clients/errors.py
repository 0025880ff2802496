"""
Fastly API errors.

The underlying client library (now, ``aiohttp``) can be replaced in the future.
We cannot rely on embedding its exceptions all over the code in the provider.
Hence, we have our own hierarchy of exceptions for the API errors.

Low-level errors, such as the network connectivity issues, SSL/HTTPS issues,
etc, are escalated from the client library as is, since they are related not
to the domain of the API, but rather to the networking and encryption.

The original errors of the client library are chained as the causes of our own
specialised errors -- for better explainability of errors in the stack traces.

Some selected statuses are made into their own classes, so that they could be
intercepted and handled in other places: e.g. the "not found" on reading
a subscription is not an error, but an indication of its external deletion.

The Fastly API responds with errors in two formats: the legacy one
(``{"msg": ..., "detail": ...}``) for the older endpoints, and the JSON:API one
(``{"errors": [{"title": ..., "detail": ..., "status": ...}]}``) for the TLS
endpoints. Both are supported. Anything else is ignored as not informative.
"""
import collections.abc
import json
from typing import Any, Collection, Mapping, Optional

import aiohttp
from typing_extensions import TypedDict


class RawErrorObject(TypedDict, total=False):
    title: str
    detail: str
    status: str
    code: str


class RawError(TypedDict, total=False):
    msg: str
    detail: str
    errors: Collection[RawErrorObject]


class APIError(Exception):

    def __init__(
            self,
            payload: Optional[RawError],
            *,
            status: int,
    ) -> None:
        message = _extract_message(payload) if payload else None
        super().__init__(message or f"HTTP {status}")
        self._status = status
        self._payload = payload

    @property
    def status(self) -> int:
        return self._status

    @property
    def message(self) -> Optional[str]:
        return _extract_message(self._payload) if self._payload else None

    @property
    def details(self) -> Optional[str]:
        if not self._payload:
            return None
        errors = list(self._payload.get('errors') or [])
        if errors:
            return errors[0].get('detail')
        return self._payload.get('detail')


class APIClientError(APIError):
    pass


class APIUnauthorizedError(APIClientError):
    pass


class APIForbiddenError(APIClientError):
    pass


class APINotFoundError(APIClientError):
    pass


class APIConflictError(APIClientError):
    pass


class APIServerError(APIError):
    pass


def _extract_message(payload: Mapping[str, Any]) -> Optional[str]:
    errors = list(payload.get('errors') or [])
    if errors:
        title = errors[0].get('title')
        detail = errors[0].get('detail')
        return f"{title}: {detail}" if title and detail else title or detail
    return payload.get('msg') or payload.get('detail')


async def check_response(
        response: aiohttp.ClientResponse,
) -> None:
    """
    Check for specialised API errors, and raise with extended information.
    """
    if response.status >= 400:

        # Read the response's body before it is closed by raise_for_status().
        payload: Optional[RawError]
        try:
            payload = await response.json(content_type=None)
        except (json.JSONDecodeError, aiohttp.ContentTypeError, aiohttp.ClientConnectionError):
            payload = None

        # Better be safe: who knows which sensitive information can be dumped otherwise.
        if not isinstance(payload, collections.abc.Mapping):
            payload = None
        elif not payload.get('errors') and not payload.get('msg') and not payload.get('detail'):
            payload = None

        cls = (
            APIUnauthorizedError if response.status == 401 else
            APIForbiddenError if response.status == 403 else
            APINotFoundError if response.status == 404 else
            APIConflictError if response.status == 409 else
            APIClientError if 400 <= response.status < 500 else
            APIServerError if 500 <= response.status < 600 else
            APIError
        )

        # Raise the provider-specific error while keeping the original error in scope.
        # This call also closes the response's body, so it cannot be read afterwards.
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError as e:
            raise cls(payload, status=response.status) from e


async def parse_response(
        response: aiohttp.ClientResponse,
) -> Any:
    """
    Check the response for errors, and either raise or returned the parsed data.
    """
    await check_response(response)
    payload = await response.json(content_type=None)
    return payload
