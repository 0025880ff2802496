"""
The declarative schemas of the resources: typed fields and their modes.

A field is either settable by the user (required or optional), or computed
by the provider (from the API responses), or both (optional & computed:
the user can set it, or the provider fills it if the user does not).

The values are kept in the state in their canonical JSON-compatible form
(see `normalize`): the sets are lists without duplicates, ordered by the
hash codes of their elements (`certsub._cogs.helpers.hashcode`), so that
the same sets are always persisted and compared the same way.
"""
import collections.abc
import dataclasses
import enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from certsub._cogs.helpers import hashcode
from certsub._cogs.structs import dicts
from certsub._core.resources import diagnostics

# Raises `diagnostics.DiagnosticError` if the value is invalid.
Validator = Callable[[Any, dicts.FieldPath], None]


class ValueType(enum.Enum):
    STRING = 'string'
    BOOL = 'bool'
    SET = 'set'
    MAP = 'map'


@dataclasses.dataclass(frozen=True)
class Field:
    type: ValueType
    description: str = ''
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    default: Any = None
    elem: Union[None, "Field", Mapping[str, "Field"]] = None
    min_items: int = 0
    validate: Optional[Validator] = None
    deprecated: Optional[str] = None

    def __post_init__(self) -> None:
        if self.required and (self.optional or self.computed or self.default is not None):
            raise TypeError("Required fields cannot be optional, computed, or have defaults.")
        if not self.required and not self.optional and not self.computed:
            raise TypeError("A field must be either required, optional, or computed.")

    @property
    def settable(self) -> bool:
        return self.required or self.optional

    @property
    def zero(self) -> Any:
        return (
            '' if self.type is ValueType.STRING else
            False if self.type is ValueType.BOOL else
            [] if self.type is ValueType.SET else
            {}
        )


Schema = Mapping[str, Field]


def normalize(field: Union[Field, Schema], value: Any) -> Any:
    """
    Convert a value to its canonical form as stored in the state.

    ``None`` is normalized to the field's zero value, so that the absent
    and empty values are not distinguished (e.g. ``""`` and no common name).
    """
    if not isinstance(field, Field):
        value = value if value is not None else {}
        return {key: normalize(subfield, value.get(key)) for key, subfield in field.items()}
    elif value is None:
        return field.zero
    elif field.type is ValueType.STRING:
        return str(value)
    elif field.type is ValueType.BOOL:
        return bool(value)
    elif field.type is ValueType.MAP:
        return {str(key): str(val) for key, val in dict(value).items()}
    elif field.type is ValueType.SET:
        elem = field.elem if field.elem is not None else Field(ValueType.STRING, computed=True)
        items: Dict[int, Any] = {}
        for item in value:
            item = normalize(elem, item)
            items.setdefault(set_hash(elem, item), item)
        return [items[key] for key in sorted(items)]
    else:
        raise TypeError(f"Unsupported field type: {field.type!r}")


def set_hash(elem: Union[Field, Schema], value: Any) -> int:
    """
    Calculate the identity of a set element (already normalized).

    The nested objects are hashed by their keys & values in the keys' order;
    the nested sets are rendered in their canonical order (i.e. pre-hashed).
    """
    if isinstance(elem, Field) and elem.type is not ValueType.SET:
        return hashcode.string(str(value))
    elif isinstance(elem, Field):
        return int(hashcode.strings(str(item) for item in value))
    else:
        return int(hashcode.strings(f'{key}={value[key]!r}' for key in sorted(elem)))


def zero_values(schema: Schema) -> Dict[str, Any]:
    return {key: field.zero for key, field in schema.items()}


def validate_config(schema: Schema, config: Mapping[str, Any]) -> None:
    """
    Check the user-provided config for the schema: fields, types, modes.

    All the problems are collected and raised at once
    (as `diagnostics.DiagnosticErrors`), so that the user could fix them
    all at once, not one by one.
    """
    problems: List[diagnostics.DiagnosticError] = []
    for key in sorted(set(config) - set(schema)):
        problems.append(diagnostics.DiagnosticError(
            f"An argument named {key!r} is not expected here.", attribute_path=(key,)))
    for key, field in schema.items():
        path = (key,)
        value = config.get(key)
        if value is None:
            if field.required:
                problems.append(diagnostics.DiagnosticError(
                    f"The argument {key!r} is required, but no definition was found.",
                    attribute_path=path))
            continue
        if not field.settable:
            problems.append(diagnostics.DiagnosticError(
                f"Computed attribute {key!r} cannot be set.", attribute_path=path))
            continue
        try:
            _check_type(field, value, path)
            if field.type is ValueType.SET and len(normalize(field, value)) < field.min_items:
                raise diagnostics.DiagnosticError(
                    f"Attribute {key!r} requires at least {field.min_items} item(s).",
                    attribute_path=path)
            if field.validate is not None:
                field.validate(value, path)
        except diagnostics.DiagnosticError as e:
            problems.append(e)
    if len(problems) == 1:
        raise problems[0]
    elif problems:
        raise diagnostics.DiagnosticErrors(problems)


def _check_type(field: Field, value: Any, path: dicts.FieldPath) -> None:
    ok = (
        isinstance(value, str) if field.type is ValueType.STRING else
        isinstance(value, bool) if field.type is ValueType.BOOL else
        isinstance(value, collections.abc.Mapping) if field.type is ValueType.MAP else
        isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(v, str) for v in value)
    )
    if not ok:
        raise diagnostics.DiagnosticError(
            f"Inappropriate value for attribute {'.'.join(path)!r}: "
            f"{field.type.value} required, got {value!r}.",
            attribute_path=path)
