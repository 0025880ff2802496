"""
Some basic dicts and field-in-a-dict manipulation helpers.
"""
import enum
from typing import Any, Iterable, Mapping, Optional, Tuple, TypeVar, Union

FieldPath = Tuple[str, ...]
FieldSpec = Union[None, str, FieldPath, Iterable[str]]

_T = TypeVar('_T')


class _UNSET(enum.Enum):
    token = enum.auto()


def parse_field(
        field: FieldSpec,
) -> FieldPath:
    """
    Convert any field into a tuple of nested sub-fields.

    Supported notations:

    * ``None`` (for root of a dict).
    * ``"field.subfield"``
    * ``("field", "subfield")``
    * ``["field", "subfield"]``
    """
    if field is None:
        return tuple()
    elif isinstance(field, str):
        return tuple(field.split('.'))
    elif isinstance(field, (list, tuple)):
        return tuple(field)
    else:
        raise ValueError(f"Field must be either a str, or a list/tuple. Got {field!r}")


def resolve(
        d: Optional[Mapping[Any, Any]],
        field: FieldSpec,
        default: Union[_T, _UNSET] = _UNSET.token,
) -> Union[Any, _T]:
    """
    Retrieve a nested sub-field from a dict.

    If ``default`` is provided, then all non-existent and non-mapping values
    (including explicit JSON ``null``s on the way) are treated as absent,
    and ``default`` is returned.

    Otherwise (with no default), attempts to get the inexistent keys will
    raise either a ``TypeError`` or ``KeyError``.
    """
    path = parse_field(field)
    try:
        result = d
        for key in path:
            if not isinstance(result, Mapping) and not isinstance(default, _UNSET):
                return default
            elif not isinstance(result, Mapping):
                raise TypeError(f"The structure is not a dict with field {key!r}: {result!r}")
            result = result[key]
        if result is None and not isinstance(default, _UNSET):
            return default
        return result
    except KeyError:
        if not isinstance(default, _UNSET):
            return default
        raise
