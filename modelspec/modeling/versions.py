"""Protocol versions stamped on persisted configuration documents.

A protocol version looks like ``model_definition-0.1.0``: a protocol name,
then major, minor and revision numbers. Versions of the same protocol are
ordered by their numbers; versions of different protocols are not
comparable.
"""

from dataclasses import dataclass
import functools
import re

from modelspec.domain.errors import (
    InvalidVersionFormat,
    ValidationException,
    VersionUnsupported,
)


VERSION_PATTERN = re.compile(
    r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)-(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<revision>\d+))?$"
)


@functools.total_ordering
@dataclass(frozen=True)
class ProtocolVersion:
    """An ordered protocol version identifier."""
    name: str
    major: int
    minor: int = 0
    revision: int = 0

    @classmethod
    def parse(cls, text: str) -> "ProtocolVersion":
        """Parse a ``name-major[.minor[.revision]]`` string.

        Raises:
            InvalidVersionFormat: If text does not follow that form.
        """
        match = VERSION_PATTERN.fullmatch(text.strip()) if isinstance(text, str) else None
        if match is None:
            raise InvalidVersionFormat(
                f'"{text}" is not a valid protocol version. '
                "Expected the form name-major.minor.revision (e.g. model_definition-0.1.0)."
            )
        return cls(
            name=match.group("name"),
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            revision=int(match.group("revision") or 0),
        )

    @property
    def numbers(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.revision)

    def _check_comparable(self, other: "ProtocolVersion") -> None:
        if self.name != other.name:
            raise ValueError(
                f'Cannot compare versions of different protocols: "{self}" and "{other}"'
            )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ProtocolVersion):
            return NotImplemented
        self._check_comparable(other)
        return self.numbers < other.numbers

    def __str__(self) -> str:
        return f"{self.name}-{self.major}.{self.minor}.{self.revision}"


def compare(a: ProtocolVersion, b: ProtocolVersion) -> int:
    """Return -1, 0 or 1 as a is less than, equal to or greater than b."""
    if a == b:
        return 0
    return -1 if a < b else 1


def check_protocol_version(
    version: ProtocolVersion,
    minimum: ProtocolVersion,
    maximum: ProtocolVersion,
    *,
    subject: str,
) -> list[ValidationException]:
    """Check that a version lies within [minimum, maximum].

    Args:
        version: The version to check.
        minimum: Oldest supported version.
        maximum: Newest supported version.
        subject: What the version belongs to, e.g. "model definition".

    Returns:
        An empty list, or a single VersionUnsupported describing the problem.
    """
    if version.name != maximum.name:
        return [VersionUnsupported(
            f'The provided {subject} is of protocol "{version.name}", '
            f'but only "{maximum.name}" documents are supported.'
        )]
    if version > maximum:
        return [VersionUnsupported(
            f'"{maximum}" is the maximum protocol version supported. '
            f'The provided {subject} is of protocol version: "{version}"'
        )]
    if version < minimum:
        return [VersionUnsupported(
            f'"{minimum}" is the minimum protocol version supported. '
            f'The provided {subject} is of protocol version: "{version}"'
        )]
    return []


def require_supported(
    version: ProtocolVersion,
    minimum: ProtocolVersion,
    maximum: ProtocolVersion,
    *,
    subject: str,
) -> None:
    """Raise VersionUnsupported if version lies outside [minimum, maximum]."""
    errors = check_protocol_version(version, minimum, maximum, subject=subject)
    if errors:
        raise errors[0]


MIN_MODEL_DEF_VERSION = ProtocolVersion.parse("model_definition-0.1.0")
MAX_MODEL_DEF_VERSION = ProtocolVersion.parse("model_definition-0.1.0")
CURRENT_MODEL_DEF_VERSION = ProtocolVersion.parse("model_definition-0.1.0")

MIN_MODEL_ENV_VERSION = ProtocolVersion.parse("model_environment-0.1.0")
MAX_MODEL_ENV_VERSION = ProtocolVersion.parse("model_environment-0.1.0")
CURRENT_MODEL_ENV_VERSION = ProtocolVersion.parse("model_environment-0.1.0")
