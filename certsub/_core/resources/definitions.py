import dataclasses
from typing import Optional

from typing_extensions import Protocol

from certsub._cogs.clients import auth
from certsub._cogs.configs import configuration
from certsub._cogs.helpers import typedefs
from certsub._core.resources import customdiff, data, diagnostics, schema


class ResourceFn(Protocol):
    async def __call__(
            self,
            d: data.ResourceData,
            *,
            context: auth.APIContext,
            settings: configuration.ProviderSettings,
            logger: typedefs.Logger,
    ) -> diagnostics.Diagnostics: ...


@dataclasses.dataclass(frozen=True)
class Resource:
    """
    A resource type: its schema, its CRUD handlers, and its diff customization.

    The import handler is optional; if absent, the resource cannot be imported.
    """
    type_name: str
    schema: schema.Schema
    create: ResourceFn
    read: ResourceFn
    update: ResourceFn
    delete: ResourceFn
    import_state: Optional[ResourceFn] = None
    customize_diff: Optional[customdiff.CustomizeDiffFunc] = None


async def import_passthrough(
        d: data.ResourceData,
        *,
        context: auth.APIContext,
        settings: configuration.ProviderSettings,
        logger: typedefs.Logger,
) -> diagnostics.Diagnostics:
    """ Import by the resource's id as is: the following read populates the rest. """
    return diagnostics.Diagnostics()
