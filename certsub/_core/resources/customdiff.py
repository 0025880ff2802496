"""
Combinators for the diff customization hooks, to declare them as a list of rules.

Usage::

    customize_diff = customdiff.all_(
        customdiff.force_new_if('domains', is_immutable),
        customdiff.validate_value('domains', validate_domains),
    )
"""
from typing import Any, Callable, List

from certsub._core.resources import data, diagnostics

CustomizeDiffFunc = Callable[[data.ResourceDiff], None]
ResourceConditionFunc = Callable[[data.ResourceDiff], bool]
ValueValidationFunc = Callable[[Any], None]


def all_(*fns: CustomizeDiffFunc) -> CustomizeDiffFunc:
    """
    Run all the hooks in order, even if some of them fail; raise all errors at once.
    """
    def customize(d: data.ResourceDiff) -> None:
        errors: List[diagnostics.DiagnosticError] = []
        for fn in fns:
            try:
                fn(d)
            except diagnostics.DiagnosticErrors as e:
                errors.extend(e.errors)
            except diagnostics.DiagnosticError as e:
                errors.append(e)
        if len(errors) == 1:
            raise errors[0]
        elif errors:
            raise diagnostics.DiagnosticErrors(errors)
    return customize


def force_new_if(key: str, condition: ResourceConditionFunc) -> CustomizeDiffFunc:
    """
    Require the replacement of the resource if the field changes and the condition is true.
    """
    def customize(d: data.ResourceDiff) -> None:
        if d.has_change(key) and condition(d):
            d.force_new(key)
    return customize


def validate_value(key: str, fn: ValueValidationFunc) -> CustomizeDiffFunc:
    """
    Validate the new (planned) value of the field, changed or not.
    """
    def customize(d: data.ResourceDiff) -> None:
        fn(d.get(key))
    return customize
