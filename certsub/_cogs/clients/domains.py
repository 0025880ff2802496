from typing import List, Optional

from certsub._cogs.clients import api, auth
from certsub._cogs.configs import configuration
from certsub._cogs.helpers import typedefs
from certsub._cogs.structs import bodies

DOMAINS_URL = '/tls/domains'


async def list_domains(
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        certificate_id: Optional[str] = None,
        include: Optional[str] = None,
        sort: Optional[str] = None,
        logger: typedefs.Logger,
) -> List[bodies.Domain]:
    """
    List the TLS domains, optionally filtered by the certificate they are on.

    With ``include="tls_activations"``, every domain carries its activations
    (``None`` for the domains that have no activations relationship at all).
    The order of the activations is as the API sorts them by ``sort``.
    """
    params = {}
    if certificate_id:
        params['filter[tls_certificates.id]'] = certificate_id
    if include:
        params['include'] = include
    if sort:
        params['sort'] = sort
    rsp = await api.get(
        url=DOMAINS_URL,
        params=params or None,
        context=context,
        settings=settings,
        logger=logger,
    )
    return bodies.parse_domains(rsp)
