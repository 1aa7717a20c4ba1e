"""Field selectors and the cross-phase field validator.

Extractors declare which tuple fields they read and write; scorers declare
which tuple fields they read. The declarations are class attributes, so
they can be inspected without constructing a phase instance.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

from modelspec.domain.entities import FieldBinding
from modelspec.domain.errors import ValidationException


class SelectorKind(str, Enum):
    """How a field selector picks its fields."""
    NAMES = "names"
    # Every field of the incoming tuple.
    ALL = "all"
    # Whatever the phase function returns, named after its inputs.
    RESULTS = "results"


@dataclass(frozen=True)
class FieldSelector:
    """A declaration of the tuple fields a phase reads or writes."""
    kind: SelectorKind
    names: tuple[str, ...] = ()

    @classmethod
    def of(cls, *names: str) -> "FieldSelector":
        return cls(SelectorKind.NAMES, tuple(names))

    @classmethod
    def coerce(cls, value: Any) -> "FieldSelector":
        """Turn a selector, a field name or a sequence of field names into a selector.

        Raises:
            TypeError: If value is none of those.
        """
        if isinstance(value, FieldSelector):
            return value
        if isinstance(value, str):
            return cls.of(value)
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return cls.of(*value)
        raise TypeError(f"Cannot interpret {value!r} as a field selector")

    @property
    def is_all(self) -> bool:
        return self.kind is SelectorKind.ALL

    @property
    def is_results(self) -> bool:
        return self.kind is SelectorKind.RESULTS

    def expand(self) -> tuple[str, ...]:
        """Return the concrete field names; ALL and RESULTS name none."""
        return self.names if self.kind is SelectorKind.NAMES else ()

    def __str__(self) -> str:
        if self.kind is SelectorKind.NAMES:
            return "(" + ", ".join(self.names) + ")"
        return self.kind.value.upper()


ALL = FieldSelector(SelectorKind.ALL)
RESULTS = FieldSelector(SelectorKind.RESULTS)


def fields(*names: str) -> FieldSelector:
    """Declare an explicit list of field names."""
    return FieldSelector.of(*names)


def declared_fields(cls: type, attribute: str) -> FieldSelector:
    """Read a field selector declared on a phase class.

    Raises:
        AttributeError: If the class does not declare the attribute.
        TypeError: If the declaration is not a usable selector.
    """
    return FieldSelector.coerce(getattr(cls, attribute))


def check_field_declarations(
    cls: type,
    attributes: Sequence[str],
    *,
    role: str,
) -> list[ValidationException]:
    """Check that a phase class declares usable field selectors."""
    errors = []
    for attribute in attributes:
        try:
            declared_fields(cls, attribute)
        except AttributeError:
            errors.append(ValidationException(
                f'The {role} class "{cls.__name__}" does not declare its {attribute}.'
            ))
        except TypeError as e:
            errors.append(ValidationException(
                f'The {role} class "{cls.__name__}" declares invalid {attribute}: {e}.'
            ))
    return errors


def check_extractor_input(extractor_class: type) -> list[ValidationException]:
    """Check that an extractor reads named fields, not ALL or RESULTS."""
    input_fields = declared_fields(extractor_class, "input_fields")
    if input_fields.is_all:
        return [ValidationException("Extractor uses ALL in its input fields, which is invalid.")]
    if input_fields.is_results:
        return [ValidationException("Extractor uses RESULTS in its input fields, which is invalid.")]
    return []


def check_scorer_input(scorer_class: type) -> list[ValidationException]:
    """Check that a scorer does not read RESULTS, which only describes outputs."""
    if declared_fields(scorer_class, "input_fields").is_results:
        return [ValidationException("Scorer uses RESULTS in its input fields, which is invalid.")]
    return []


def extractor_output_fields(extractor_class: type) -> frozenset[str]:
    """Return the set of field names an extractor produces.

    An extractor whose output is RESULTS passes its input names through, so
    its input names are its effective output.
    """
    output = declared_fields(extractor_class, "output_fields")
    if output.is_results:
        return frozenset(declared_fields(extractor_class, "input_fields").expand())
    return frozenset(output.expand())


def scorer_input_fields(scorer_class: type) -> tuple[str, ...]:
    """Return the ordered field names a scorer reads."""
    return declared_fields(scorer_class, "input_fields").expand()


def check_coverage(
    scorer_inputs: Iterable[str],
    extractor_outputs: frozenset[str],
) -> list[ValidationException]:
    """Report every scorer input that no extractor output provides.

    Errors follow the scorer's declared input order.
    """
    return [
        ValidationException(
            f'Scorer\'s input field "{name}" does not match any extractor output fields.'
        )
        for name in scorer_inputs
        if name not in extractor_outputs
    ]


def check_bindings_cover_inputs(
    extractor_class: type,
    field_bindings: Iterable[FieldBinding],
) -> list[ValidationException]:
    """Report every extractor input field that no field binding supplies."""
    bound = {binding.tuple_field_name for binding in field_bindings}
    return [
        ValidationException(
            f'Extractor\'s input field "{name}" is not bound to a store field by the '
            "extract environment's field bindings."
        )
        for name in declared_fields(extractor_class, "input_fields").expand()
        if name not in bound
    ]
