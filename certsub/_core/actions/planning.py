"""
Refreshing and planning: what should be done to reach the desired configuration.

The planning itself makes no API calls: it compares the desired configuration
with the (refreshed) state. Only the refreshing reads the remote objects.
"""
import dataclasses
import enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from certsub._cogs.clients import auth
from certsub._cogs.configs import configuration, statefiles
from certsub._cogs.structs import diffs
from certsub._core.actions import invocation
from certsub._core.engines import loggers
from certsub._core.resources import data, definitions, diagnostics, schema


class Action(str, enum.Enum):
    NOOP = 'noop'
    CREATE = 'create'
    UPDATE = 'update'
    REPLACE = 'replace'
    DELETE = 'delete'

    def __str__(self) -> str:
        return str(self.value)


@dataclasses.dataclass(frozen=True)
class Plan:
    name: str
    action: Action
    id: str = ''
    config: Optional[Mapping[str, Any]] = None
    changes: diffs.Diff = ()
    requires_replace: FrozenSet[str] = frozenset()
    unknown: FrozenSet[str] = frozenset()
    diags: diagnostics.Diagnostics = dataclasses.field(default_factory=diagnostics.Diagnostics)

    @property
    def has_errors(self) -> bool:
        return self.diags.has_errors


def make_logger(resource: definitions.Resource, name: str, id: str = '') -> loggers.ResourceLogger:
    return loggers.ResourceLogger(type=resource.type_name, name=name, id=id)


async def refresh_resource(
        resource: definitions.Resource,
        name: str,
        record: statefiles.ResourceRecord,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
) -> Tuple[Optional[statefiles.ResourceRecord], diagnostics.Diagnostics]:
    """
    Re-read the remote object. Return the new record, or ``None`` if it is gone.

    On errors, the old record is returned unchanged.
    """
    logger = make_logger(resource, name, record.id)
    d = data.ResourceData(resource.schema, id=record.id, state=record.attributes)
    diags = await invocation.invoke(resource.read, d, context=context, settings=settings, logger=logger)
    if diags.has_errors:
        return record, diags
    elif not d.id:
        return None, diags
    else:
        return statefiles.ResourceRecord(id=d.id, attributes=d.attributes), diags


def plan_resource(
        resource: definitions.Resource,
        name: str,
        record: Optional[statefiles.ResourceRecord],
        config: Optional[Mapping[str, Any]],
) -> Plan:
    """
    Decide what to do with one resource, given its state and desired config.
    """
    logger = make_logger(resource, name, record.id if record else '')

    if config is None and record is None:
        return Plan(name=name, action=Action.NOOP)
    elif config is None:
        assert record is not None  # for type-checking
        return Plan(name=name, action=Action.DELETE, id=record.id)

    diags = diagnostics.Diagnostics()
    try:
        schema.validate_config(resource.schema, config)
    except diagnostics.DiagnosticErrors as e:
        diags.extend(e.diagnostics)
    except diagnostics.DiagnosticError as e:
        diags.append(e.diagnostic)
    if diags.has_errors:
        invocation.log_diagnostics(diags, logger=logger)
        return Plan(name=name, action=Action.NOOP, id=record.id if record else '',
                    config=config, diags=diags)

    prior_state = record.attributes if record is not None else {}
    old = data.plan_attributes(resource.schema, prior_state, None)
    new = data.plan_attributes(resource.schema, prior_state, config)
    settable = {key: new[key] for key, field in resource.schema.items() if field.settable}
    changes = diffs.diff(old if record is not None else None, settable)

    d = data.ResourceDiff(resource.schema, id=record.id if record else '', old=old, new=new)
    for key, field in resource.schema.items():
        if field.force_new:
            d.force_new(key)
    if resource.customize_diff is not None:
        try:
            resource.customize_diff(d)
        except diagnostics.DiagnosticErrors as e:
            diags.extend(e.diagnostics)
        except diagnostics.DiagnosticError as e:
            diags.append(e.diagnostic)

    unknown = set(d.unknown)
    if record is None:
        action = Action.CREATE
        unknown |= {key for key, field in resource.schema.items()
                    if field.computed and not (field.settable and config.get(key) is not None)}
    elif not changes:
        action = Action.NOOP
    elif d.requires_replace:
        action = Action.REPLACE
    else:
        action = Action.UPDATE

    invocation.log_diagnostics(diags, logger=logger)
    if action is not Action.NOOP:
        logger.debug(f"Planned to {action}: {changes!r}")
    return Plan(
        name=name,
        action=action if not diags.has_errors else Action.NOOP,
        id=record.id if record else '',
        config=config,
        changes=changes,
        requires_replace=frozenset(d.requires_replace),
        unknown=frozenset(unknown),
        diags=diags,
    )


async def plan(
        resource: definitions.Resource,
        state: statefiles.State,
        configs: Mapping[str, Mapping[str, Any]],
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        refresh: bool = True,
) -> Tuple[Dict[str, Plan], diagnostics.Diagnostics]:
    """
    Refresh the state (in place) and plan all the resources, both known and desired.
    """
    diags = diagnostics.Diagnostics()
    if refresh:
        diags.extend(await refresh_all(resource, state, context=context, settings=settings))

    plans: Dict[str, Plan] = {}
    for name in sorted(set(state.records) | set(configs)):
        plans[name] = plan_resource(resource, name, state.records.get(name), configs.get(name))
        diags.extend(plans[name].diags)
    return plans, diags


async def refresh_all(
        resource: definitions.Resource,
        state: statefiles.State,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
) -> diagnostics.Diagnostics:
    """
    Re-read all the resources in the state, and update the state in place.
    """
    diags = diagnostics.Diagnostics()
    for name, record in sorted(state.records.items()):
        new_record, resource_diags = await refresh_resource(
            resource, name, record, context=context, settings=settings)
        diags.extend(resource_diags)
        if new_record is None:
            del state.records[name]
        else:
            state.records[name] = new_record
    return diags
