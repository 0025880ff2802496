"""
The TLS subscriptions endpoints of the Fastly API.

All the calls accept and return the parsed structures (`bodies.Subscription`),
never the raw JSON:API documents -- those are built and parsed here.
"""
import urllib.parse
from typing import Collection, Dict, Optional

from certsub._cogs.clients import api, auth
from certsub._cogs.configs import configuration
from certsub._cogs.helpers import typedefs
from certsub._cogs.structs import bodies

SUBSCRIPTIONS_URL = '/tls/subscriptions'


def _subscription_url(id: str) -> str:
    return f'{SUBSCRIPTIONS_URL}/{urllib.parse.quote(id, safe="")}'


def _force_params(force: bool) -> Optional[Dict[str, str]]:
    return {'force': 'true'} if force else None


def build_subscription_body(
        *,
        id: Optional[str] = None,
        certificate_authority: Optional[str] = None,
        domains: Collection[str],
        common_name: Optional[str] = None,
        configuration_id: Optional[str] = None,
) -> bodies.RawDocument:
    attributes: Dict[str, object] = {}
    if certificate_authority is not None:
        attributes['certificate_authority'] = certificate_authority

    relationships: Dict[str, object] = {
        'tls_domains': {
            'data': [bodies.build_identifier('tls_domain', domain) for domain in domains],
        },
    }
    if common_name:
        relationships['common_name'] = {
            'data': bodies.build_identifier('tls_domain', common_name),
        }
    if configuration_id:
        relationships['tls_configuration'] = {
            'data': bodies.build_identifier('tls_configuration', configuration_id),
        }

    data: Dict[str, object] = {'type': 'tls_subscription'}
    if id is not None:
        data['id'] = id
    if attributes:
        data['attributes'] = attributes
    data['relationships'] = relationships
    return bodies.RawDocument(data=data)


async def create_subscription(
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        certificate_authority: str,
        domains: Collection[str],
        common_name: Optional[str] = None,
        configuration_id: Optional[str] = None,
        logger: typedefs.Logger,
) -> bodies.Subscription:
    """
    Create a new subscription. The certificate is ordered asynchronously.
    """
    body = build_subscription_body(
        certificate_authority=certificate_authority,
        domains=domains,
        common_name=common_name,
        configuration_id=configuration_id,
    )
    rsp = await api.post(
        url=SUBSCRIPTIONS_URL,
        payload=body,
        context=context,
        settings=settings,
        logger=logger,
    )
    return bodies.parse_subscription(rsp)


async def read_subscription(
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        id: str,
        include: Optional[str] = 'tls_authorizations',
        logger: typedefs.Logger,
) -> bodies.Subscription:
    """
    Read a subscription, by default with its authorizations (and challenges).

    Raises `errors.APINotFoundError` if the subscription does not exist.
    """
    rsp = await api.get(
        url=_subscription_url(id),
        params={'include': include} if include else None,
        context=context,
        settings=settings,
        logger=logger,
    )
    return bodies.parse_subscription(rsp)


async def update_subscription(
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        id: str,
        domains: Collection[str],
        common_name: Optional[str],
        configuration_id: Optional[str],
        force: bool = False,
        logger: typedefs.Logger,
) -> bodies.Subscription:
    """
    Replace the subscription's domains, common name, and configuration.

    All three must be sent together: the API does not guarantee to keep
    the omitted ones as they were. With ``force``, the change is applied
    even if some of the removed domains are still active.
    """
    body = build_subscription_body(
        id=id,
        domains=domains,
        common_name=common_name,
        configuration_id=configuration_id,
    )
    rsp = await api.patch(
        url=_subscription_url(id),
        params=_force_params(force),
        payload=body,
        context=context,
        settings=settings,
        logger=logger,
    )
    return bodies.parse_subscription(rsp)


async def delete_subscription(
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        id: str,
        force: bool = False,
        logger: typedefs.Logger,
) -> None:
    """
    Delete a subscription; with ``force``, even if it has active domains.
    """
    await api.delete(
        url=_subscription_url(id),
        params=_force_params(force),
        context=context,
        settings=settings,
        logger=logger,
    )
