"""
Application of the plans: the actual creation, update, deletion of the resources.

The state is updated in place after every resource, and persisted
via the ``persist`` callback (if provided) -- so that the progress is not lost
if some of the resources fail or the process is interrupted.
"""
from typing import Callable, Mapping, Optional, Tuple

from certsub._cogs.clients import auth
from certsub._cogs.configs import configuration, statefiles
from certsub._core.actions import invocation, planning
from certsub._core.resources import data, definitions, diagnostics

PersistFn = Callable[[statefiles.State], None]


async def apply_plan(
        resource: definitions.Resource,
        plan: planning.Plan,
        record: Optional[statefiles.ResourceRecord],
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
) -> Tuple[Optional[statefiles.ResourceRecord], diagnostics.Diagnostics]:
    """
    Apply one plan. Return the new record (``None`` if deleted) and the diagnostics.
    """
    logger = planning.make_logger(resource, plan.name, plan.id)
    diags = diagnostics.Diagnostics()

    if plan.has_errors:
        return record, diags

    if plan.action in [planning.Action.DELETE, planning.Action.REPLACE] and record is not None:
        logger.info(f"Deleting{' for replacement' if plan.action is planning.Action.REPLACE else ''}.")
        d = data.ResourceData(resource.schema, id=record.id, state=record.attributes)
        diags.extend(await invocation.invoke(resource.delete, d, context=context, settings=settings, logger=logger))
        if diags.has_errors:
            return record, diags
        record = None
        logger.set_id('')

    if plan.action in [planning.Action.CREATE, planning.Action.REPLACE]:
        logger.info("Creating.")
        d = data.ResourceData(resource.schema, config=plan.config)
        diags.extend(await invocation.invoke(resource.create, d, context=context, settings=settings, logger=logger))
        logger.set_id(d.id)

        # If the remote object is created, it must be tracked even if the rest has failed.
        record = statefiles.ResourceRecord(id=d.id, attributes=d.attributes) if d.id else None

    elif plan.action is planning.Action.UPDATE and record is not None:
        logger.info("Updating in place.")
        d = data.ResourceData(resource.schema, id=record.id, state=record.attributes, config=plan.config)
        diags.extend(await invocation.invoke(resource.update, d, context=context, settings=settings, logger=logger))
        if not diags.has_errors:
            record = statefiles.ResourceRecord(id=d.id, attributes=d.attributes) if d.id else None

    return record, diags


async def apply(
        resource: definitions.Resource,
        state: statefiles.State,
        plans: Mapping[str, planning.Plan],
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        persist: Optional[PersistFn] = None,
) -> diagnostics.Diagnostics:
    """
    Apply all the plans one by one, updating the state in place.
    """
    diags = diagnostics.Diagnostics()
    for name, plan in sorted(plans.items()):
        if plan.action is planning.Action.NOOP:
            continue
        record, resource_diags = await apply_plan(
            resource, plan, state.records.get(name), context=context, settings=settings)
        diags.extend(resource_diags)
        if record is None:
            state.records.pop(name, None)
        else:
            state.records[name] = record
        if persist is not None:
            persist(state)
    return diags


async def import_resource(
        resource: definitions.Resource,
        state: statefiles.State,
        name: str,
        id: str,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
) -> diagnostics.Diagnostics:
    """
    Start tracking an existing remote object under a name, by its id.
    """
    logger = planning.make_logger(resource, name, id)
    diags = diagnostics.Diagnostics()
    if name in state.records:
        diags.append(diagnostics.error(f"Resource {name!r} already exists in the state."))
    elif resource.import_state is None:
        diags.append(diagnostics.error(f"Resource type {resource.type_name!r} does not support import."))
    if diags.has_errors:
        invocation.log_diagnostics(diags, logger=logger)
        return diags

    assert resource.import_state is not None  # for type-checking
    d = data.ResourceData(resource.schema, id=id)
    diags.extend(await invocation.invoke(resource.import_state, d, context=context, settings=settings, logger=logger))
    if not diags.has_errors:
        diags.extend(await invocation.invoke(resource.read, d, context=context, settings=settings, logger=logger))
    if not diags.has_errors and not d.id:
        diags.append(diagnostics.error(f"Cannot import non-existent remote object ({id})."))
        invocation.log_diagnostics(diagnostics.Diagnostics(diags[-1:]), logger=logger)
    if not diags.has_errors:
        state.records[name] = statefiles.ResourceRecord(id=d.id, attributes=d.attributes)
        logger.info("Imported.")
    return diags


async def destroy(
        resource: definitions.Resource,
        state: statefiles.State,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        persist: Optional[PersistFn] = None,
) -> diagnostics.Diagnostics:
    """
    Delete all the resources in the state.
    """
    plans = {
        name: planning.plan_resource(resource, name, record, None)
        for name, record in state.records.items()
    }
    return await apply(resource, state, plans, context=context, settings=settings, persist=persist)
