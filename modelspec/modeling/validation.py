"""Validation rules shared by model definitions and model environments.

Every rule is a function returning a list of ValidationException: empty
when the rule holds, one entry per problem otherwise. Aggregating rules is
plain list concatenation, so a caller always sees every problem at once.
"""

from collections import Counter
from dataclasses import dataclass
import re
from typing import Generic, Iterable, TypeVar

from modelspec.domain.errors import AggregateValidationError, ValidationException


# Names may contain letters, digits, underscores and dashes.
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

VERSION_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)*$")

T = TypeVar("T")


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Either a valid value or the non-empty list of reasons it is invalid."""
    value: T | None = None
    errors: tuple[ValidationException, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> list[str]:
        return [error.message for error in self.errors]

    @classmethod
    def from_error(cls, error: AggregateValidationError) -> "ValidationResult[T]":
        return cls(value=None, errors=error.causes)

    def unwrap(self) -> T:
        """Return the value, or raise if validation failed."""
        if self.errors:
            raise AggregateValidationError(self.errors, "Validation failed.")
        return self.value


def check_name(name: str, *, subject: str) -> list[ValidationException]:
    """Check that a name is non-empty and uses only allowed characters."""
    if not name:
        return [ValidationException(f"The name of the {subject} cannot be the empty string.")]
    if not NAME_PATTERN.fullmatch(name):
        return [ValidationException(
            f'The name "{name}" is not valid. Names must match the regex "{NAME_PATTERN.pattern}".'
        )]
    return []


def check_version_string(version: str, *, subject: str) -> list[ValidationException]:
    """Check that a version string is dotted numeric (e.g. ``1.0.0``)."""
    if not VERSION_PATTERN.fullmatch(version or ""):
        return [ValidationException(
            f"{subject.capitalize()} version strings must match the regex "
            f'"{VERSION_PATTERN.pattern}" (1.0.0 would be valid). Got: "{version}"'
        )]
    return []


def check_unique(
    names: Iterable[str],
    *,
    what: str,
    where: str,
) -> list[ValidationException]:
    """Report each name that appears more than once, in first-seen order."""
    counts = Counter(names)
    return [
        ValidationException(
            f'The {what} "{name}" is used {count} times in the {where}; '
            f"{what}s must be unique."
        )
        for name, count in counts.items()
        if count > 1
    ]


def raise_if_invalid(
    errors: list[ValidationException],
    error_type: type[AggregateValidationError],
    summary: str,
) -> None:
    """Raise error_type carrying every collected error, if there are any."""
    if errors:
        raise error_type(errors, summary)
