"""Error vocabulary shared by the modeling, store and pipeline layers."""

from typing import Iterable


class ModelSpecError(Exception):
    """Base class for every error raised by modelspec."""


class MalformedDocument(ModelSpecError, ValueError):
    """A configuration document could not be parsed or does not fit its schema."""


class InvalidVersionFormat(MalformedDocument):
    """A protocol version string is not of the form ``name-major.minor.revision``."""


class ValidationException(ModelSpecError):
    """A single validation rule was violated."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))


class VersionUnsupported(ValidationException):
    """A protocol version falls outside the supported window."""


class TypeNotFound(ValidationException):
    """A named extractor or scorer could not be resolved by the registry."""

    def __init__(self, type_name: str) -> None:
        super().__init__(
            f'The class "{type_name}" could not be found. Please ensure that you have '
            "provided a valid class name and that the module defining it has been registered."
        )
        self.type_name = type_name


class AggregateValidationError(ModelSpecError):
    """Every rule violation found by one construction attempt.

    Attributes:
        causes: The individual rule violations, in the order they were found.
        summary: A fixed, human-readable headline for the failure.
    """

    def __init__(self, causes: Iterable[ValidationException], summary: str) -> None:
        self.causes: tuple[ValidationException, ...] = tuple(causes)
        self.summary = summary
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [self.summary]
        lines.extend(f"  - {cause.message}" for cause in self.causes)
        return "\n".join(lines)

    @property
    def messages(self) -> list[str]:
        return [cause.message for cause in self.causes]


class ModelDefinitionValidationException(AggregateValidationError):
    """Raised when a model definition fails one or more validation rules."""


class ModelEnvironmentValidationException(AggregateValidationError):
    """Raised when a model environment fails one or more validation rules."""


class UninitializedStateError(ModelSpecError, RuntimeError):
    """A phase read its key-value stores before the runner populated them."""


class KeyValueStoreNotFound(ModelSpecError, LookupError):
    """A phase asked for a key-value store name that was never bound."""

    def __init__(self, name: str, available: Iterable[str]) -> None:
        available = sorted(available)
        super().__init__(
            f"No key-value store named '{name}' is bound to this phase. Available: {available}"
        )
        self.name = name
        self.available = available


class BindingError(ModelSpecError, RuntimeError):
    """Key-value stores were bound to a phase instance more than once."""


class StoreUnavailable(ModelSpecError):
    """A key-value store described by a KVStoreSpec could not be opened."""


class ExecutionError(ModelSpecError):
    """A phase failed while the engine was running it."""
