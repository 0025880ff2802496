import asyncio
import dataclasses
import functools
import json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

import click

from certsub._cogs.clients import auth
from certsub._cogs.configs import configuration, statefiles
from certsub._cogs.structs import credentials
from certsub._core.actions import application, planning
from certsub._core.engines import loggers
from certsub._core.resources import diagnostics, schema, subscription

_T = TypeVar('_T')

DEFAULT_STATE_PATH = 'certsub.state.json'
DEFAULT_CONFIG_PATH = 'certsub.yaml'


@dataclasses.dataclass()
class CLIControls:
    """ Controls which are impossible to pass via CLI (used in tests and embedding). """
    settings: Optional[configuration.ProviderSettings] = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        else:
            name: str = super().convert(value, param, ctx)
            return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: Optional[bool] = None,
                log_refkey: Optional[str] = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


def api_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator for the commands that talk to the API and keep the state. """
    fn = click.option('-s', '--state', 'state_path', type=click.Path(dir_okay=False), default=DEFAULT_STATE_PATH)(fn)
    fn = click.option('--api-url', type=str, envvar=credentials.API_URL_ENV, show_envvar=True)(fn)
    fn = click.option('--api-key', type=str, envvar=credentials.API_KEY_ENV, show_envvar=True)(fn)
    return fn


@click.version_option(prog_name='certsub')
@click.group(name='certsub', context_settings=dict(
    auto_envvar_prefix='CERTSUB',
))
def main() -> None:
    pass


@main.command()
@logging_options
@api_options
@click.option('-c', '--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=DEFAULT_CONFIG_PATH)
@click.option('--refresh/--no-refresh', default=True)
@click.make_pass_decorator(CLIControls, ensure=True)
def plan(
        __controls: CLIControls,
        config_path: str,
        state_path: str,
        api_key: Optional[str],
        api_url: Optional[str],
        refresh: bool,
) -> None:
    """ Show what should be changed to reach the desired configuration. """
    settings = __controls.settings or configuration.ProviderSettings()
    configs = _load_config(config_path)
    state = _load_state(state_path)

    async def fn(context: auth.APIContext) -> diagnostics.Diagnostics:
        plans, diags = await planning.plan(subscription.RESOURCE, state, configs,
                                           context=context, settings=settings, refresh=refresh)
        _echo_plans(plans)
        return diags

    diags = _run(fn, settings=settings, api_key=api_key, api_url=api_url)
    _exit_on_errors(diags)


@main.command()
@logging_options
@api_options
@click.option('-c', '--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=DEFAULT_CONFIG_PATH)
@click.option('-y', '--yes', 'auto_approve', is_flag=True)
@click.make_pass_decorator(CLIControls, ensure=True)
def apply(
        __controls: CLIControls,
        config_path: str,
        state_path: str,
        api_key: Optional[str],
        api_url: Optional[str],
        auto_approve: bool,
) -> None:
    """ Create, update, or delete the subscriptions as configured. """
    settings = __controls.settings or configuration.ProviderSettings()
    configs = _load_config(config_path)
    state = _load_state(state_path)
    persist = functools.partial(statefiles.save_state, state_path)

    async def fn(context: auth.APIContext) -> diagnostics.Diagnostics:
        plans, diags = await planning.plan(subscription.RESOURCE, state, configs,
                                           context=context, settings=settings)
        persist(state)  # the refreshed state, even if nothing is applied.
        changing = _echo_plans(plans)
        if diags.has_errors or not changing:
            return diags
        if not auto_approve and not click.confirm("Apply these changes?"):
            raise click.Abort()
        diags.extend(await application.apply(subscription.RESOURCE, state, plans,
                                             context=context, settings=settings, persist=persist))
        return diags

    diags = _run(fn, settings=settings, api_key=api_key, api_url=api_url)
    _exit_on_errors(diags)


@main.command()
@logging_options
@api_options
@click.make_pass_decorator(CLIControls, ensure=True)
def refresh(
        __controls: CLIControls,
        state_path: str,
        api_key: Optional[str],
        api_url: Optional[str],
) -> None:
    """ Re-read the remote subscriptions into the state. """
    settings = __controls.settings or configuration.ProviderSettings()
    state = _load_state(state_path)

    async def fn(context: auth.APIContext) -> diagnostics.Diagnostics:
        diags = await planning.refresh_all(subscription.RESOURCE, state, context=context, settings=settings)
        statefiles.save_state(state_path, state)
        return diags

    diags = _run(fn, settings=settings, api_key=api_key, api_url=api_url)
    _exit_on_errors(diags)


@main.command('import')
@logging_options
@api_options
@click.argument('name')
@click.argument('id')
@click.make_pass_decorator(CLIControls, ensure=True)
def import_(
        __controls: CLIControls,
        name: str,
        id: str,
        state_path: str,
        api_key: Optional[str],
        api_url: Optional[str],
) -> None:
    """ Start tracking an existing subscription by its ID. """
    settings = __controls.settings or configuration.ProviderSettings()
    state = _load_state(state_path)

    async def fn(context: auth.APIContext) -> diagnostics.Diagnostics:
        diags = await application.import_resource(subscription.RESOURCE, state, name, id,
                                                  context=context, settings=settings)
        if not diags.has_errors:
            statefiles.save_state(state_path, state)
            click.echo(f"Imported {name!r} ({id}).")
        return diags

    diags = _run(fn, settings=settings, api_key=api_key, api_url=api_url)
    _exit_on_errors(diags)


@main.command()
@logging_options
@api_options
@click.option('-y', '--yes', 'auto_approve', is_flag=True)
@click.make_pass_decorator(CLIControls, ensure=True)
def destroy(
        __controls: CLIControls,
        state_path: str,
        api_key: Optional[str],
        api_url: Optional[str],
        auto_approve: bool,
) -> None:
    """ Delete all the subscriptions in the state. """
    settings = __controls.settings or configuration.ProviderSettings()
    state = _load_state(state_path)
    if not state.records:
        click.echo("Nothing to destroy.")
        return
    if not auto_approve:
        click.confirm(f"Delete {len(state.records)} subscription(s)?", abort=True)
    persist = functools.partial(statefiles.save_state, state_path)

    async def fn(context: auth.APIContext) -> diagnostics.Diagnostics:
        return await application.destroy(subscription.RESOURCE, state,
                                         context=context, settings=settings, persist=persist)

    diags = _run(fn, settings=settings, api_key=api_key, api_url=api_url)
    _exit_on_errors(diags)


@main.command('schema')
def schema_() -> None:
    """ Print the resource schema as JSON. """
    described = {
        'type': subscription.RESOURCE.type_name,
        'attributes': _describe_schema(subscription.RESOURCE.schema),
    }
    click.echo(json.dumps(described, indent=2, sort_keys=True))


def _describe_schema(fields: schema.Schema) -> Dict[str, Any]:
    described: Dict[str, Any] = {}
    for key, field in fields.items():
        info: Dict[str, Any] = {'type': field.type.value, 'description': field.description}
        for flag in ['required', 'optional', 'computed', 'force_new']:
            if getattr(field, flag):
                info[flag] = True
        if field.default is not None:
            info['default'] = field.default
        if field.min_items:
            info['min_items'] = field.min_items
        if field.deprecated:
            info['deprecated'] = field.deprecated
        if isinstance(field.elem, schema.Field):
            info['elem'] = {'type': field.elem.type.value}
        elif field.elem is not None:
            info['elem'] = _describe_schema(field.elem)
        described[key] = info
    return described


def _run(
        fn: Callable[[auth.APIContext], Awaitable[_T]],
        *,
        settings: configuration.ProviderSettings,
        api_key: Optional[str],
        api_url: Optional[str],
) -> _T:
    try:
        info = credentials.login_via_env(settings=settings, api_key=api_key, server=api_url)
    except credentials.LoginError as e:
        raise click.ClickException(str(e)) from e

    async def _with_context() -> _T:
        async with auth.APIContext(info, settings=settings) as context:
            return await fn(context)

    return asyncio.run(_with_context())


def _load_config(path: str) -> Mapping[str, Mapping[str, Any]]:
    try:
        return statefiles.load_config(path)
    except statefiles.ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def _load_state(path: str) -> statefiles.State:
    try:
        return statefiles.load_state(path)
    except statefiles.ConfigurationError as e:
        raise click.ClickException(str(e)) from e


_SYMBOLS = {
    planning.Action.CREATE: '+',
    planning.Action.UPDATE: '~',
    planning.Action.REPLACE: '-/+',
    planning.Action.DELETE: '-',
}


def _echo_plans(plans: Mapping[str, planning.Plan]) -> int:
    """ Print the plans; return the number of the resources to change. """
    changing = 0
    for name, plan in sorted(plans.items()):
        if plan.action is planning.Action.NOOP:
            continue
        changing += 1
        reason = f" (forced by: {', '.join(sorted(plan.requires_replace))})" if plan.requires_replace else ""
        click.echo(f"{_SYMBOLS[plan.action]:>3} {name}: {plan.action}{reason}")
        for op, field, old, new in plan.changes:
            if field:
                click.echo(f"      {'.'.join(field)}: {json.dumps(old)} -> {json.dumps(new)}")
            elif isinstance(new, dict):  # a creation: all values are new.
                for key, value in sorted(new.items()):
                    click.echo(f"      {key}: {json.dumps(value)}")
        for key in sorted(plan.unknown):
            click.echo(f"      {key}: (known after apply)")
    if not changing:
        click.echo("No changes.")
    return changing


def _exit_on_errors(diags: diagnostics.Diagnostics) -> None:
    for diag in diags.errors:
        click.echo(str(diag), err=True)
    if diags.has_errors:
        raise click.exceptions.Exit(1)
