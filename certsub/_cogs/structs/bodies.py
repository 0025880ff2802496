"""
The JSON:API documents of the Fastly TLS API, raw and parsed.

The raw documents are typed loosely (as they come from the API), and are
only read via the parsing functions below. Everything beyond this module
works with the parsed frozen structures, never with the raw payloads.

The parsing is tolerant to absent & ``null`` fields: e.g. the subscriptions
in the "pending" state have no certificates, and the domains without
activations have no ``tls_activations`` relationship at all.
"""
import dataclasses
import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import iso8601
from typing_extensions import TypedDict

from certsub._cogs.structs import dicts

DNS_CHALLENGE_TYPE = 'managed-dns'


class RawIdentifier(TypedDict):
    type: str
    id: str


class RawResource(TypedDict, total=False):
    type: str
    id: str
    attributes: Dict[str, Any]
    relationships: Dict[str, Any]


class RawDocument(TypedDict, total=False):
    data: Any  # either a RawResource, or a list of them.
    included: List[RawResource]


@dataclasses.dataclass(frozen=True)
class Challenge:
    type: str
    record_type: str
    record_name: str
    values: Tuple[str, ...]

    @property
    def is_dns(self) -> bool:
        return self.type == DNS_CHALLENGE_TYPE


@dataclasses.dataclass(frozen=True)
class Authorization:
    id: str
    challenges: Tuple[Challenge, ...]


@dataclasses.dataclass(frozen=True)
class Subscription:
    id: str
    certificate_authority: str
    state: str
    domains: Tuple[str, ...]
    common_name: Optional[str] = None
    configuration_id: Optional[str] = None
    certificate_ids: Tuple[str, ...] = ()
    authorizations: Tuple[Authorization, ...] = ()
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


@dataclasses.dataclass(frozen=True)
class Activation:
    id: str
    configuration_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


@dataclasses.dataclass(frozen=True)
class Domain:
    id: str
    activations: Optional[Tuple[Activation, ...]] = None  # None if not included/absent.


def parse_subscription(document: RawDocument) -> Subscription:
    data: RawResource = document['data']
    included = _index_included(document)
    attrs = data.get('attributes') or {}
    authorizations = tuple(
        parse_authorization(raw)
        for raw in _related(data, 'tls_authorizations', included,
                            fallback_type='tls_authorization', document=document)
    )
    return Subscription(
        id=data['id'],
        certificate_authority=attrs.get('certificate_authority') or '',
        state=attrs.get('state') or '',
        domains=_related_ids(data, 'tls_domains'),
        common_name=_related_id(data, 'common_name'),
        configuration_id=_related_id(data, 'tls_configuration'),
        certificate_ids=_related_ids(data, 'tls_certificates'),
        authorizations=authorizations,
        created_at=parse_timestamp(attrs.get('created_at')),
        updated_at=parse_timestamp(attrs.get('updated_at')),
    )


def parse_authorization(raw: RawResource) -> Authorization:
    challenges = dicts.resolve(raw, 'attributes.challenges', []) or []
    return Authorization(
        id=raw.get('id', ''),
        challenges=tuple(
            Challenge(
                type=challenge.get('type') or '',
                record_type=challenge.get('record_type') or '',
                record_name=challenge.get('record_name') or '',
                values=tuple(challenge.get('values') or ()),
            )
            for challenge in challenges
        ),
    )


def parse_domains(document: RawDocument) -> List[Domain]:
    included = _index_included(document)
    domains: List[Domain] = []
    for data in document.get('data') or []:
        activations: Optional[Tuple[Activation, ...]]
        if dicts.resolve(data, 'relationships.tls_activations.data', None) is None:
            activations = None
        else:
            activations = tuple(
                parse_activation(raw)
                for raw in _related(data, 'tls_activations', included)
            )
        domains.append(Domain(id=data['id'], activations=activations))
    return domains


def parse_activation(raw: RawResource) -> Activation:
    return Activation(
        id=raw.get('id', ''),
        configuration_id=_related_id(raw, 'tls_configuration'),
        created_at=parse_timestamp(dicts.resolve(raw, 'attributes.created_at', None)),
    )


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    return iso8601.parse_date(value) if value else None


def format_timestamp(value: Optional[datetime.datetime]) -> str:
    """ Render a timestamp in RFC 3339, with ``Z`` for UTC. """
    if value is None:
        return ''
    text = value.replace(microsecond=0).isoformat()
    return text[:-6] + 'Z' if text.endswith('+00:00') else text


def build_identifier(type: str, id: str) -> RawIdentifier:
    return RawIdentifier(type=type, id=id)


def _index_included(document: RawDocument) -> Mapping[Tuple[str, str], RawResource]:
    return {(raw.get('type', ''), raw.get('id', '')): raw for raw in document.get('included') or []}


def _related_id(data: Mapping[str, Any], name: str) -> Optional[str]:
    identifier = dicts.resolve(data, ('relationships', name, 'data'), None)
    return identifier.get('id') if isinstance(identifier, Mapping) else None


def _related_ids(data: Mapping[str, Any], name: str) -> Tuple[str, ...]:
    identifiers = dicts.resolve(data, ('relationships', name, 'data'), None) or []
    return tuple(identifier['id'] for identifier in identifiers)


def _related(
        data: Mapping[str, Any],
        name: str,
        included: Mapping[Tuple[str, str], RawResource],
        *,
        fallback_type: Optional[str] = None,
        document: Optional[RawDocument] = None,
) -> List[RawResource]:
    """
    Resolve the related resources from the ``included`` section, in the relationship's order.

    If the relationship is not listed at all but the resources are included
    (seen in some API responses), all included resources of that type are used.
    """
    identifiers = dicts.resolve(data, ('relationships', name, 'data'), None)
    if identifiers is None and fallback_type is not None and document is not None:
        return [raw for raw in document.get('included') or [] if raw.get('type') == fallback_type]
    return [
        included.get((identifier.get('type', ''), identifier.get('id', '')),
                     RawResource(type=identifier.get('type', ''), id=identifier.get('id', '')))
        for identifier in identifiers or []
    ]
