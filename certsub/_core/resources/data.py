"""
The resource data as seen by the handlers: the prior state, the planned values,
and the values written by the handlers themselves.

`ResourceData` is used in the CRUD handlers, and `ResourceDiff` in the diff
customization hooks -- the same way as the host runtime provides them.
"""
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from certsub._core.resources import schema


def plan_attributes(
        fields: schema.Schema,
        state: Mapping[str, Any],
        config: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Calculate the planned values of all fields from the config and the prior state.

    The user-provided values win. For the omitted values, the optional-computed
    fields keep their prior (computed) values, the optional ones fall back
    to their defaults. The computed-only fields keep their prior values
    (they are recalculated by the handlers later, if at all).
    Without the config (e.g. when deleting), the prior state is used as is.
    """
    planned: Dict[str, Any] = {}
    for key, field in fields.items():
        value = config.get(key) if config is not None and field.settable else None
        if config is None or not field.settable:
            planned[key] = schema.normalize(field, state.get(key))
        elif value is not None:
            planned[key] = schema.normalize(field, value)
        elif field.computed:
            planned[key] = schema.normalize(field, state.get(key))
        else:
            planned[key] = schema.normalize(field, field.default)
    return planned


class ResourceData:
    """
    The values of one resource for the handlers to read from and write to.

    Reading (`get`) returns the values written by the handlers (`set`),
    or the planned ones if not written yet. Changes (`has_change`) are
    always calculated between the prior state and the planned values,
    regardless of the writes.
    """

    def __init__(
            self,
            fields: schema.Schema,
            *,
            id: str = '',
            state: Optional[Mapping[str, Any]] = None,
            config: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__()
        self._schema = fields
        self._id = id
        self._prior = plan_attributes(fields, state or {}, None)
        self._planned = plan_attributes(fields, state or {}, config)
        self._written: Dict[str, Any] = {}

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, id: str) -> None:
        """ Set the id; an empty id means the resource is gone and will be removed. """
        self._id = id

    def get(self, key: str) -> Any:
        self._check_key(key)
        return self._written[key] if key in self._written else self._planned[key]

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        """ Get the value and whether it is set to a non-zero value. """
        value = self.get(key)
        return value, bool(value)

    def has_change(self, key: str) -> bool:
        self._check_key(key)
        return self._prior[key] != self._planned[key]

    def has_changes(self, *keys: str) -> bool:
        return any(self.has_change(key) for key in keys)

    def set(self, key: str, value: Any) -> None:
        self._check_key(key)
        self._written[key] = schema.normalize(self._schema[key], value)

    @property
    def attributes(self) -> Dict[str, Any]:
        """ The new state of the resource, as should be persisted. """
        return dict(self._planned, **self._written)

    def _check_key(self, key: str) -> None:
        if key not in self._schema:
            raise KeyError(f"Unknown attribute {key!r}.")


class ResourceDiff:
    """
    The planned change of one resource, for the diff customization hooks.

    The hooks can read the old & new values, and can mark the fields
    as requiring the replacement of the resource (`force_new`),
    or as unknown until applied (`set_new_computed`).
    """

    def __init__(
            self,
            fields: schema.Schema,
            *,
            id: str = '',
            old: Mapping[str, Any],
            new: Mapping[str, Any],
    ) -> None:
        super().__init__()
        self._schema = fields
        self._id = id
        self._old = dict(old)
        self._new = dict(new)
        self.requires_replace: Set[str] = set()
        self.unknown: Set[str] = set()

    @property
    def id(self) -> str:
        return self._id

    def get(self, key: str) -> Any:
        if key not in self._schema:
            raise KeyError(f"Unknown attribute {key!r}.")
        return self._new.get(key)

    def get_change(self, key: str) -> Tuple[Any, Any]:
        if key not in self._schema:
            raise KeyError(f"Unknown attribute {key!r}.")
        return self._old.get(key), self._new.get(key)

    def has_change(self, key: str) -> bool:
        old, new = self.get_change(key)
        return old != new

    def force_new(self, key: str) -> bool:
        """ Require the replacement if the field is changed. Return whether it is required. """
        if not self.has_change(key):
            return False
        self.requires_replace.add(key)
        return True

    def set_new_computed(self, key: str) -> None:
        if not self._schema[key].computed:
            raise ValueError(f"Only the computed attributes can be unknown, not {key!r}.")
        self.unknown.add(key)
