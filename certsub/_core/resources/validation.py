"""
Reusable value validators for the schema fields (see `schema.Field.validate`).
"""
from typing import Any, Collection

from certsub._cogs.structs import dicts
from certsub._core.resources import diagnostics, schema


def string_in_slice(valid: Collection[str], *, ignore_case: bool = False) -> schema.Validator:
    """ Accept only one of the listed values. """
    def validate(value: Any, path: dicts.FieldPath) -> None:
        candidates = [v.lower() for v in valid] if ignore_case else list(valid)
        if (value.lower() if ignore_case else value) not in candidates:
            raise diagnostics.DiagnosticError(
                f"expected {'.'.join(path)} to be one of {list(valid)!r}, got {value}",
                attribute_path=path)
    return validate


def has_uppercase(value: str) -> bool:
    return value != value.lower()
