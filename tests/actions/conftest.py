from unittest.mock import AsyncMock

import pytest

from certsub._core.resources.definitions import Resource
from certsub._core.resources.diagnostics import Diagnostics
from certsub._core.resources.schema import Field, ValueType

SCHEMA = {
    'name': Field(ValueType.STRING, required=True),
    'color': Field(ValueType.STRING, optional=True, force_new=True),
    'flag': Field(ValueType.BOOL, optional=True, default=False),
    'state': Field(ValueType.STRING, computed=True),
}


def _make_handler(id_to_set=None, **attributes):
    async def fn(d, *, context, settings, logger):
        if id_to_set is not None:
            d.set_id(id_to_set)
        for key, value in attributes.items():
            d.set(key, value)
        return Diagnostics()
    return AsyncMock(side_effect=fn)


@pytest.fixture()
def handlers():
    return dict(
        create=_make_handler('id-new', state='created'),
        read=_make_handler(state='read'),
        update=_make_handler(state='updated'),
        delete=_make_handler(),
        import_state=_make_handler(),
    )


@pytest.fixture()
def resource(handlers):
    return Resource(type_name='fake_resource', schema=SCHEMA, **handlers)


@pytest.fixture()
def context():
    return object()  # the fake handlers never use it.
