"""
The TLS subscription resource: a certificate for a set of domains, managed by Fastly.

The subscription can be updated in place only while it is "issued" or "pending";
in the "processing" & "renewing" states, any change of the domains, common name,
or configuration requires a replacement (see `customize_diff`).
"""
from typing import Any, Dict, List, Optional, Tuple

from certsub._cogs.clients import auth, domains, errors, subscriptions
from certsub._cogs.configs import configuration
from certsub._cogs.helpers import typedefs
from certsub._cogs.structs import bodies
from certsub._core.resources import customdiff, data, definitions, diagnostics, schema, validation

TYPE_NAME = 'fastly_tls_subscription'

CERTIFICATE_AUTHORITIES = ['lets-encrypt', 'globalsign', 'certainly']
MUTABLE_STATES = ['issued', 'pending']

_DNS_CHALLENGE_SCHEMA: schema.Schema = {
    'record_name': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The name of the DNS record to add. For example `_acme-challenge.example.com`.",
    ),
    'record_type': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The type of DNS record to add, e.g. `A`, or `CNAME`.",
    ),
    'record_value': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The value to which the DNS record should point, e.g. `xxxxx.fastly-validations.com`.",
    ),
}

_HTTP_CHALLENGE_SCHEMA: schema.Schema = {
    'record_name': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The name of the DNS record to add. For example `example.com`.",
    ),
    'record_type': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The type of DNS record to add, e.g. `A`, or `CNAME`.",
    ),
    'record_values': schema.Field(
        schema.ValueType.SET, computed=True,
        elem=schema.Field(schema.ValueType.STRING, computed=True),
        description="A list with the value(s) to which the DNS record should point.",
    ),
}

SCHEMA: schema.Schema = {
    'certificate_authority': schema.Field(
        schema.ValueType.STRING, required=True, force_new=True,
        validate=validation.string_in_slice(CERTIFICATE_AUTHORITIES),
        description="The entity that issues and certifies the TLS certificates for the subscription. "
                    "Valid values are `lets-encrypt`, `globalsign` or `certainly`.",
    ),
    'certificate_id': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The certificate ID associated with the subscription.",
    ),
    'common_name': schema.Field(
        schema.ValueType.STRING, optional=True, computed=True,
        description="The common name associated with the subscription. "
                    "If not set on creation, the first domain is used. "
                    "If set, the domain must be included in `domains`.",
    ),
    'configuration_id': schema.Field(
        schema.ValueType.STRING, optional=True, computed=True,
        description="The ID of the set of TLS configuration options "
                    "that apply to the enabled domains on this subscription.",
    ),
    'created_at': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="Timestamp (GMT) when the subscription was created.",
    ),
    'domains': schema.Field(
        schema.ValueType.SET, required=True, min_items=1,
        elem=schema.Field(schema.ValueType.STRING, computed=True),
        description="List of domains on which to enable TLS.",
    ),
    'force_destroy': schema.Field(
        schema.ValueType.BOOL, optional=True, default=False,
        description="Force delete the subscription even if it has active domains. "
                    "Warning: this can disable production traffic if used incorrectly.",
    ),
    'force_update': schema.Field(
        schema.ValueType.BOOL, optional=True, default=False,
        description="Force update the subscription even if it has active domains. "
                    "Warning: this can disable production traffic if used incorrectly.",
    ),
    'managed_dns_challenge': schema.Field(
        schema.ValueType.MAP, computed=True,
        elem=schema.Field(schema.ValueType.STRING, computed=True),
        deprecated="Use 'managed_dns_challenges' attribute instead",
        description="The details required to configure DNS to respond to ACME DNS challenge "
                    "in order to verify domain ownership.",
    ),
    'managed_dns_challenges': schema.Field(
        schema.ValueType.SET, computed=True, elem=_DNS_CHALLENGE_SCHEMA,
        description="A list of options for configuring DNS to respond to ACME DNS challenge "
                    "in order to verify domain ownership.",
    ),
    'managed_http_challenges': schema.Field(
        schema.ValueType.SET, computed=True, elem=_HTTP_CHALLENGE_SCHEMA,
        description="A list of options for configuring DNS to respond to ACME HTTP challenge "
                    "in order to verify domain ownership.",
    ),
    'state': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="The current state of the subscription: "
                    "`pending`, `processing`, `issued`, or `renewing`.",
    ),
    'updated_at': schema.Field(
        schema.ValueType.STRING, computed=True,
        description="Timestamp (GMT) when the subscription was updated.",
    ),
}


async def create(
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    domain_names: List[str] = list(d.get('domains'))
    configuration_id, has_configuration = d.get_ok('configuration_id')
    common_name, has_common_name = d.get_ok('common_name')
    if has_common_name and common_name not in domain_names:
        raise diagnostics.DiagnosticError(
            f"domain specified as common_name ({common_name}) "
            f"must also be in domains ({' '.join(domain_names)})",
            attribute_path=('common_name',))

    subscription = await subscriptions.create_subscription(
        certificate_authority=d.get('certificate_authority'),
        domains=domain_names,
        common_name=common_name if has_common_name else None,
        configuration_id=configuration_id if has_configuration else None,
        context=context,
        settings=settings,
        logger=logger,
    )
    d.set_id(subscription.id)
    logger.info(f"TLS subscription is created with id {subscription.id!r}.")

    return await read(d, context=context, settings=settings, logger=logger)


async def read(
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    logger.debug(f"Refreshing TLS subscription ({d.id}).")
    try:
        subscription = await subscriptions.read_subscription(
            id=d.id,
            include='tls_authorizations',
            context=context,
            settings=settings,
            logger=logger,
        )
    except errors.APINotFoundError:
        id = d.id
        d.set_id('')
        return diagnostics.Diagnostics([
            diagnostics.warning(f"TLS subscription ({id}) not found - removing from state",
                                attribute_path=(id,)),
        ])

    # There is only one certificate per subscription, if any: the "pending" and "processing"
    # states of the new subscriptions have none yet.
    certificate_id = subscription.certificate_ids[0] if subscription.certificate_ids else ''
    dns_challenges, http_challenges = partition_challenges(subscription.authorizations)
    configuration_id = await resolve_configuration_id(
        subscription=subscription,
        certificate_id=certificate_id,
        context=context,
        settings=settings,
        logger=logger,
    )

    d.set('managed_dns_challenge', build_legacy_dns_challenge(subscription.authorizations))
    d.set('domains', subscription.domains)
    d.set('common_name', subscription.common_name)
    d.set('certificate_id', certificate_id)
    d.set('certificate_authority', subscription.certificate_authority)
    d.set('configuration_id', configuration_id)
    d.set('created_at', bodies.format_timestamp(subscription.created_at))
    d.set('updated_at', bodies.format_timestamp(subscription.updated_at))
    d.set('state', subscription.state)
    d.set('managed_dns_challenges', dns_challenges)
    d.set('managed_http_challenges', http_challenges)
    return diagnostics.Diagnostics()


async def update(
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    # Other fields, such as `force_update`, can trigger the update too, but they have
    # no counterpart in the API. Only the domains & the common name are worth a request.
    # All three (incl. the configuration) are sent: the API does not keep the omitted ones.
    if d.has_changes('domains', 'common_name'):
        await subscriptions.update_subscription(
            id=d.id,
            domains=list(d.get('domains')),
            common_name=d.get('common_name') or None,
            configuration_id=d.get('configuration_id') or None,
            force=d.get('force_update'),
            context=context,
            settings=settings,
            logger=logger,
        )
        logger.info("TLS subscription is updated.")

    return await read(d, context=context, settings=settings, logger=logger)


async def delete(
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    await subscriptions.delete_subscription(
        id=d.id,
        force=d.get('force_destroy'),
        context=context,
        settings=settings,
        logger=logger,
    )
    logger.info("TLS subscription is deleted.")
    return diagnostics.Diagnostics()


def partition_challenges(
        authorizations: Tuple[bodies.Authorization, ...],
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Split the challenges of all authorizations into the DNS and HTTP ones.

    Only the first value of a DNS challenge is used; HTTP challenges keep all.
    """
    dns_challenges: List[Dict[str, Any]] = []
    http_challenges: List[Dict[str, Any]] = []
    for authorization in authorizations:
        for challenge in authorization.challenges:
            if challenge.is_dns:
                if not challenge.values:
                    raise diagnostics.DiagnosticError(
                        "fastly API returned no record values for Managed DNS Challenges",
                        attribute_path=('managed_dns_challenges',))
                dns_challenges.append({
                    'record_type': challenge.record_type,
                    'record_name': challenge.record_name,
                    'record_value': challenge.values[0],
                })
            else:
                http_challenges.append({
                    'record_type': challenge.record_type,
                    'record_name': challenge.record_name,
                    'record_values': list(challenge.values),
                })
    return dns_challenges, http_challenges


def build_legacy_dns_challenge(
        authorizations: Tuple[bodies.Authorization, ...],
) -> Dict[str, str]:
    """
    Build the deprecated single-challenge map, from the first authorization only.

    For the multi-domain subscriptions, the challenges of all other domains
    are lost here. This is how this attribute has always worked, and it is kept
    so for backward compatibility; `managed_dns_challenges` has them all.
    """
    challenge_map: Dict[str, str] = {}
    for challenge in (authorizations[0].challenges if authorizations else ()):
        if challenge.is_dns:
            if not challenge.values:
                raise diagnostics.DiagnosticError(
                    "fastly API returned no record values for Managed DNS Challenge",
                    attribute_path=('managed_dns_challenge',))
            challenge_map = {
                'record_type': challenge.record_type,
                'record_name': challenge.record_name,
                'record_value': challenge.values[0],
            }
    return challenge_map


async def resolve_configuration_id(
        *,
        subscription: bodies.Subscription,
        certificate_id: str,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> Optional[str]:
    """
    Find the configuration actually used by the subscription's domains.

    The subscription's own configuration is not updated on renewals, while the
    renewed certificate can be activated with another configuration. So, the
    configuration of the earliest activation among the certificate's domains
    wins, as sorted by the API -- if there are any activations at all.
    """
    if not certificate_id:
        return subscription.configuration_id

    tls_domains = await domains.list_domains(
        certificate_id=certificate_id,
        include='tls_activations',
        sort='tls_activations.created_at',
        context=context,
        settings=settings,
        logger=logger,
    )
    for tls_domain in tls_domains:
        if tls_domain.activations:
            configuration_id = tls_domain.activations[0].configuration_id
            if configuration_id and configuration_id != subscription.configuration_id:
                logger.debug(f"TLS subscription's domain {tls_domain.id!r} is activated "
                             f"with another configuration: {configuration_id!r}.")
            return configuration_id or subscription.configuration_id
    return subscription.configuration_id


def is_state_immutable(d: data.ResourceDiff) -> bool:
    return d.get('state') not in MUTABLE_STATES


def validate_domains(value: Any) -> None:
    # The API accepts the uppercase letters, but silently converts them to lowercase.
    # This would cause the state mismatch and an endless diff, so we reject them explicitly.
    if any(validation.has_uppercase(domain) for domain in value or []):
        raise diagnostics.DiagnosticError(
            f"tls subscription 'domains' must not contain uppercase letters: {list(value)}",
            attribute_path=('domains',))


def validate_common_name(value: Any) -> None:
    if validation.has_uppercase(value or ''):
        raise diagnostics.DiagnosticError(
            f"tls subscription 'common_name' must not contain uppercase letters: {value}",
            attribute_path=('common_name',))


def set_new_computed(d: data.ResourceDiff) -> None:
    # The challenges depend on the domains, but are only known after the changes are applied.
    # Mark them as unknown, so that the dependent resources see them as changing.
    if d.has_change('domains'):
        d.set_new_computed('managed_dns_challenges')
        d.set_new_computed('managed_http_challenges')


customize_diff = customdiff.all_(
    customdiff.force_new_if('configuration_id', is_state_immutable),
    customdiff.force_new_if('domains', is_state_immutable),
    customdiff.force_new_if('common_name', is_state_immutable),
    customdiff.validate_value('domains', validate_domains),
    customdiff.validate_value('common_name', validate_common_name),
    set_new_computed,
)

RESOURCE = definitions.Resource(
    type_name=TYPE_NAME,
    schema=SCHEMA,
    create=create,
    read=read,
    update=update,
    delete=delete,
    import_state=definitions.import_passthrough,
    customize_diff=customize_diff,
)
