import aiohttp.web

from certsub._cogs.clients.domains import list_domains


async def test_listing_with_all_filters(
        resp_mocker, aresponses, hostname, context, settings, logger, domains_document):

    mock = resp_mocker(return_value=aiohttp.web.json_response(domains_document({
        'example.com': ['cfg1', 'cfg2'],
        'www.example.com': None,
    })))
    aresponses.add(hostname, '/tls/domains', 'get', mock)

    domains = await list_domains(
        certificate_id='cert1',
        include='tls_activations',
        sort='tls_activations.created_at',
        context=context, settings=settings, logger=logger,
    )

    assert mock.call_count == 1
    assert mock.received[0]['query'] == {
        'filter[tls_certificates.id]': 'cert1',
        'include': 'tls_activations',
        'sort': 'tls_activations.created_at',
    }
    assert [domain.id for domain in domains] == ['example.com', 'www.example.com']
    assert [a.configuration_id for a in domains[0].activations] == ['cfg1', 'cfg2']
    assert domains[1].activations is None


async def test_listing_without_filters(
        resp_mocker, aresponses, hostname, context, settings, logger):

    mock = resp_mocker(return_value=aiohttp.web.json_response({'data': []}))
    aresponses.add(hostname, '/tls/domains', 'get', mock)

    domains = await list_domains(context=context, settings=settings, logger=logger)

    assert domains == []
    assert mock.received[0]['query'] == {}
