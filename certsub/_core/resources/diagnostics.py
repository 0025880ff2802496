"""
Diagnostics: the errors & warnings of the resource operations.

The warnings are returned by the handlers as values, and the operation goes on.
The errors are raised as `DiagnosticError` and abort the operation;
the remote API errors are raised as they are (see `certsub._cogs.clients.errors`).
Both kinds of errors are converted to the error diagnostics at the top level,
where the operations are invoked (see `certsub._core.actions.invocation`).
"""
import dataclasses
import enum
from typing import Iterable, List, Optional, Tuple


class Severity(str, enum.Enum):
    ERROR = 'error'
    WARNING = 'warning'

    def __str__(self) -> str:
        return str(self.value)


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    summary: str
    detail: Optional[str] = None
    attribute_path: Tuple[str, ...] = ()

    def __str__(self) -> str:
        where = f" (at {'.'.join(self.attribute_path)})" if self.attribute_path else ""
        detail = f": {self.detail}" if self.detail else ""
        return f"{self.severity.value.capitalize()}: {self.summary}{detail}{where}"


class Diagnostics(List[Diagnostic]):
    """ A list of diagnostics, as accumulated by one or several operations. """

    @property
    def has_errors(self) -> bool:
        return any(diag.severity == Severity.ERROR for diag in self)

    @property
    def errors(self) -> List[Diagnostic]:
        return [diag for diag in self if diag.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [diag for diag in self if diag.severity == Severity.WARNING]


class DiagnosticError(Exception):
    """ A fatal error of a resource operation, retries are useless. """

    def __init__(
            self,
            summary: str,
            *,
            detail: Optional[str] = None,
            attribute_path: Iterable[str] = (),
    ) -> None:
        super().__init__(summary)
        self.diagnostic = Diagnostic(
            severity=Severity.ERROR,
            summary=summary,
            detail=detail,
            attribute_path=tuple(attribute_path),
        )


class DiagnosticErrors(DiagnosticError):
    """ Several fatal errors at once, e.g. from the diff customization. """

    def __init__(self, errors: Iterable[DiagnosticError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(str(error) for error in self.errors))

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [error.diagnostic for error in self.errors]


def error(summary: str, *, attribute_path: Iterable[str] = ()) -> Diagnostic:
    return Diagnostic(Severity.ERROR, summary, attribute_path=tuple(attribute_path))


def warning(summary: str, *, attribute_path: Iterable[str] = ()) -> Diagnostic:
    return Diagnostic(Severity.WARNING, summary, attribute_path=tuple(attribute_path))
