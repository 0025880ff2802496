"""
Invocation of the resource handlers, with the errors converted to diagnostics.

The handlers raise errors as usual, and return only the warnings. Here, both
are turned into the diagnostics, which are logged and returned to the caller.
Errors of any other kinds (i.e. bugs) are escalated as is.
"""
import asyncio

import aiohttp

from certsub._cogs.clients import auth, errors
from certsub._cogs.configs import configuration
from certsub._cogs.helpers import typedefs
from certsub._core.resources import data, definitions, diagnostics


async def invoke(
        fn: definitions.ResourceFn,
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    try:
        result = await fn(d, context=context, settings=settings, logger=logger)
        diags = diagnostics.Diagnostics(result or [])
    except diagnostics.DiagnosticErrors as e:
        diags = diagnostics.Diagnostics(e.diagnostics)
    except diagnostics.DiagnosticError as e:
        diags = diagnostics.Diagnostics([e.diagnostic])
    except errors.APIError as e:
        diags = diagnostics.Diagnostics([
            diagnostics.Diagnostic(diagnostics.Severity.ERROR, f"API error (HTTP {e.status}): {e}",
                                   detail=e.details),
        ])
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        diags = diagnostics.Diagnostics([
            diagnostics.error(f"API request failed: {e!r}"),
        ])
    log_diagnostics(diags, logger=logger)
    return diags


def log_diagnostics(diags: diagnostics.Diagnostics, *, logger: typedefs.Logger) -> None:
    for diag in diags:
        if diag.severity == diagnostics.Severity.ERROR:
            logger.error(str(diag))
        else:
            logger.warning(str(diag))
