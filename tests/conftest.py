import io
import logging
import sys
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import aresponses as aresponses_module
import pytest

from certsub._cogs.clients.auth import APIContext
from certsub._cogs.configs.configuration import ProviderSettings
from certsub._cogs.structs.credentials import ConnectionInfo
from certsub._core.engines.loggers import ResourcePrefixingTextFormatter, configure


@pytest.fixture()
def settings():
    settings = ProviderSettings()
    settings.networking.error_backoffs = []  # no retries, unless a test wants them.
    return settings


@pytest.fixture()
def logger():
    return logging.getLogger('certsub.tests')


#
# Mocks for the Fastly API. Reasons:
# 1. We do not test aiohttp, we test the layers on top of it,
#    so everything low-level should be mocked and assumed to be functional.
# 2. No external calls must be made under any circumstances.
#    The unit-tests must be fully isolated from the environment.
#

@pytest.fixture()
def hostname():
    """ A fake hostname to be used in all aiohttp/aresponses tests. """
    return 'fake-host'


@pytest.fixture()
async def aresponses():
    # Same as the plugin's fixture, but on the test's own running loop.
    async with aresponses_module.ResponsesMockServer() as server:
        yield server


@pytest.fixture()
async def context(hostname, settings):
    info = ConnectionInfo(server=f'https://{hostname}', api_key='fake-key')
    async with APIContext(info, settings=settings) as context:
        yield context


@pytest.fixture()
def resp_mocker():
    """
    A factory of server-side callbacks for `aresponses` with mocking/spying.

    The value of the fixture is a function, which return a coroutine mock.
    That coroutine mock should be passed to `aresponses.add` as a response
    callback function. When called, it calls the mock defined by the function's
    arguments (specifically, return_value or side_effects).

    The received requests are kept in the mock's ``received`` list, with their
    bodies parsed (if JSON) -- so that they could be asserted later.

    Sample usage::

        def test_me(resp_mocker):
            response = aiohttp.web.json_response({'a': 'b'})
            callback = resp_mocker(return_value=response)
            aresponses.add(hostname, '/path/', 'get', callback)
            do_something()
            assert callback.called
            assert callback.call_count == 1
            assert callback.received[0]['data'] == {...}
    """
    def resp_maker(*args: Any, **kwargs: Any) -> AsyncMock:
        actual_response = Mock(*args, **kwargs)
        received: List[Dict[str, Any]] = []

        async def resp_mock_effect(request):
            text = await request.text()
            received.append(dict(
                method=request.method,
                path=request.path,
                query=dict(request.query),
                headers=dict(request.headers),
                data=await request.json() if text else None,
            ))
            return actual_response()

        mock = AsyncMock(side_effect=resp_mock_effect)
        mock.received = received
        return mock
    return resp_maker


#
# Helpers for the logging checks.
#

@pytest.fixture()
def logstream(caplog):
    """ Prefixing is done at the final output. We have to intercept it. """

    logger = logging.getLogger()
    handlers = list(logger.handlers)

    # Setup all log levels of sub-libraries. A side-effect: the handlers are also added.
    configure(verbose=True)

    # Remove any stream handlers added in the step above. But keep the caplog's handlers.
    for handler in list(logger.handlers):
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stderr:
            logger.removeHandler(handler)

    # Inject our stream-intercepting handler.
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(ResourcePrefixingTextFormatter('prefix %(message)s'))
    logger.addHandler(handler)

    try:
        with caplog.at_level(logging.DEBUG):
            yield stream
    finally:
        logger.removeHandler(handler)
        logger.handlers[:] = handlers  # undo `configure()`


#
# Fake JSON:API documents of the Fastly TLS API.
#

def _make_subscription_document(
        *,
        id: str = 'sub1',
        state: str = 'issued',
        certificate_authority: str = 'lets-encrypt',
        domains: List[str] = ('example.com',),
        common_name: Optional[str] = 'example.com',
        configuration_id: Optional[str] = 'cfg1',
        certificate_ids: List[str] = ('cert1',),
        authorizations: List[List[Dict[str, Any]]] = (),
) -> Dict[str, Any]:
    relationships: Dict[str, Any] = {
        'tls_domains': {'data': [{'type': 'tls_domain', 'id': domain} for domain in domains]},
        'tls_certificates': {'data': [{'type': 'tls_certificate', 'id': cid} for cid in certificate_ids]},
        'tls_authorizations': {'data': [
            {'type': 'tls_authorization', 'id': f'auth{idx}'} for idx, _ in enumerate(authorizations)
        ]},
        'common_name': {'data': {'type': 'tls_domain', 'id': common_name} if common_name else None},
        'tls_configuration': {'data': {'type': 'tls_configuration', 'id': configuration_id}
                              if configuration_id else None},
    }
    return {
        'data': {
            'type': 'tls_subscription',
            'id': id,
            'attributes': {
                'certificate_authority': certificate_authority,
                'state': state,
                'created_at': '2021-02-03T04:05:06.000Z',
                'updated_at': '2021-02-04T04:05:06.000Z',
            },
            'relationships': relationships,
        },
        'included': [
            {'type': 'tls_authorization', 'id': f'auth{idx}', 'attributes': {'challenges': challenges}}
            for idx, challenges in enumerate(authorizations)
        ],
    }


def _make_domains_document(
        activations: Dict[str, Optional[List[str]]],
) -> Dict[str, Any]:
    """
    Domains with the activations' configurations, in the given order:
    ``{domain: [config_id, ...]}``; ``None`` for no relationship at all.
    """
    data: List[Dict[str, Any]] = []
    included: List[Dict[str, Any]] = []
    for domain, configuration_ids in activations.items():
        relationships: Dict[str, Any] = {}
        if configuration_ids is not None:
            identifiers = []
            for configuration_id in configuration_ids:
                activation_id = f'act-{domain}-{configuration_id}'
                identifiers.append({'type': 'tls_activation', 'id': activation_id})
                included.append({
                    'type': 'tls_activation',
                    'id': activation_id,
                    'attributes': {'created_at': '2021-02-03T04:05:06Z'},
                    'relationships': {'tls_configuration': {'data': {
                        'type': 'tls_configuration', 'id': configuration_id}}},
                })
            relationships['tls_activations'] = {'data': identifiers}
        data.append({'type': 'tls_domain', 'id': domain, 'relationships': relationships})
    return {'data': data, 'included': included}


@pytest.fixture()
def subscription_document():
    return _make_subscription_document


@pytest.fixture()
def domains_document():
    return _make_domains_document


@pytest.fixture()
def dns_challenge():
    def fn(name: str = '_acme-challenge.example.com', values=('abc.fastly-validations.com',)):
        return {'type': 'managed-dns', 'record_type': 'CNAME', 'record_name': name, 'values': list(values)}
    return fn


@pytest.fixture()
def http_challenge():
    def fn(name: str = 'example.com', type='managed-http-a', values=('151.101.1.1', '151.101.65.1')):
        return {'type': type, 'record_type': 'A', 'record_name': name, 'values': list(values)}
    return fn
