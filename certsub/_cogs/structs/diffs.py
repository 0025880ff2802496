"""
Changes between the prior attributes of a resource and its planned ones.

Only the planned attributes are scanned: the prior state also contains
the computed-only attributes, which are never planned, so they are ignored.
The set-typed attributes are stored as lists in a canonical order,
so they are compared as a whole, and an added/removed item is a change.
"""
import collections.abc
import enum
from typing import Any, Iterator, NamedTuple, Tuple

from certsub._cogs.structs import dicts


class DiffOperation(str, enum.Enum):
    ADD = 'add'
    CHANGE = 'change'
    REMOVE = 'remove'

    def __str__(self) -> str:
        return str(self.value)


class DiffItem(NamedTuple):
    operation: DiffOperation
    field: dicts.FieldPath
    old: Any
    new: Any


Diff = Tuple[DiffItem, ...]


def diff_iter(
        old: Any,
        new: Any,
        path: dicts.FieldPath = (),
) -> Iterator[DiffItem]:
    """
    Calculate the changes from the prior to the planned attributes.

    Yields the tuples of form ``(op, field, old, new)``, in the order
    of the field names. A resource that does not exist yet (``old is None``)
    yields one addition of all its planned attributes at the root field ``()``.
    """
    if old == new:  # incl. cases when both are None
        pass
    elif old is None:
        yield DiffItem(DiffOperation.ADD, path, old, new)
    elif new is None:
        yield DiffItem(DiffOperation.REMOVE, path, old, new)
    elif isinstance(old, collections.abc.Mapping) and isinstance(new, collections.abc.Mapping):
        for key in sorted(new):
            yield from diff_iter(old.get(key), new[key], path=path + (key,))
    else:
        yield DiffItem(DiffOperation.CHANGE, path, old, new)


def diff(
        old: Any,
        new: Any,
        path: dicts.FieldPath = (),
) -> Diff:
    return tuple(diff_iter(old, new, path=path))
