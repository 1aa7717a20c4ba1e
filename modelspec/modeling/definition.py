"""Model definitions: which extractor and scorer make up a model.

A ModelDefinition can be created programmatically::

    definition = ModelDefinition(
        name="name",
        version="1.0.0",
        extractor_class=MyExtractor,
        scorer_class=MyScorer,
    )

or loaded from JSON written in the following format::

    {
      "name" : "identifier-for-this-model",
      "version" : "1.0.0",
      "extractor_class" : "my_models.MyExtractor",
      "scorer_class" : "my_models.MyScorer",
      "protocol_version" : "model_definition-0.1.0"
    }

Class names in JSON are resolved through a TypeRegistry, so the classes
must have been registered before the definition is loaded.
"""

import dataclasses
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

from modelspec.domain.errors import (
    ModelDefinitionValidationException,
    TypeNotFound,
    ValidationException,
)
from modelspec.schemas.records import (
    ModelDefinitionRecord,
    decode_record,
    encode_record,
    parse_document,
)

from .fields import (
    check_coverage,
    check_extractor_input,
    check_field_declarations,
    check_scorer_input,
    extractor_output_fields,
    scorer_input_fields,
)
from .phases import Extractor, Scorer
from .registry import TypeRegistry, default_registry
from .validation import (
    ValidationResult,
    check_name,
    check_version_string,
    raise_if_invalid,
)
from .versions import (
    CURRENT_MODEL_DEF_VERSION,
    MAX_MODEL_DEF_VERSION,
    MIN_MODEL_DEF_VERSION,
    ProtocolVersion,
    check_protocol_version,
    require_supported,
)


logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = (
    "One or more errors occurred while validating your model definition. "
    "Please correct the problems in your model definition and try again."
)

SUBJECT = "model definition"


@dataclass(frozen=True)
class ModelDefinition:
    """Descriptor of the computational logic used by each phase of a model.

    Instances are always valid: every field is checked on construction and
    an invalid combination raises ModelDefinitionValidationException listing
    every problem found.
    """
    name: str
    version: str
    extractor_class: type
    scorer_class: type
    protocol_version: ProtocolVersion = CURRENT_MODEL_DEF_VERSION

    def __post_init__(self) -> None:
        errors = []
        if self.extractor_class is None:
            errors.append(ValidationException("An extractor class must be provided."))
        if self.scorer_class is None:
            errors.append(ValidationException("A scorer class must be provided."))
        errors.extend(validate_model_definition(
            self.name,
            self.version,
            self.extractor_class,
            self.scorer_class,
            self.protocol_version,
        ))
        raise_if_invalid(errors, ModelDefinitionValidationException, VALIDATION_MESSAGE)

    @classmethod
    def try_create(cls, **settings: Any) -> ValidationResult["ModelDefinition"]:
        """Create a model definition, returning errors instead of raising them."""
        try:
            return ValidationResult(value=cls(**settings))
        except ModelDefinitionValidationException as e:
            return ValidationResult.from_error(e)

    def to_json(self, registry: TypeRegistry = default_registry) -> str:
        """Serialize this model definition into a JSON string.

        Classes missing from the registry are registered under their
        qualified names, so the result can always be loaded back with
        from_json and the same registry.
        """
        record = ModelDefinitionRecord(
            name=self.name,
            version=self.version,
            extractor_class=registry.ensure_registered(self.extractor_class),
            scorer_class=registry.ensure_registered(self.scorer_class),
            protocol_version=str(self.protocol_version),
        )
        return encode_record(record)

    def with_new_settings(self, **overrides: Any) -> "ModelDefinition":
        """Create a new model definition with some settings replaced.

        Any setting not given keeps this definition's value. The protocol
        version is always carried over.

        Raises:
            ModelDefinitionValidationException: If the result is invalid.
            TypeError: If an unknown setting is given.
        """
        if "protocol_version" in overrides:
            raise TypeError("with_new_settings() does not accept protocol_version")
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_json(
        cls,
        json: str | bytes,
        registry: TypeRegistry = default_registry,
    ) -> "ModelDefinition":
        """Create a validated model definition from a JSON string.

        Raises:
            MalformedDocument: If the JSON cannot be parsed or misses fields.
            VersionUnsupported: If the protocol version is not supported.
            ModelDefinitionValidationException: If any field is invalid,
                including class names that the registry cannot resolve.
        """
        document = parse_document(json)
        if "protocol_version" in document:
            protocol = ProtocolVersion.parse(str(document["protocol_version"]))
            require_supported(
                protocol, MIN_MODEL_DEF_VERSION, MAX_MODEL_DEF_VERSION, subject=SUBJECT
            )
        record = decode_record(ModelDefinitionRecord, document)
        protocol = ProtocolVersion.parse(record.protocol_version)

        resolution_errors: list[ValidationException] = []
        extractor_class = _resolve(registry, record.extractor_class, resolution_errors)
        scorer_class = _resolve(registry, record.scorer_class, resolution_errors)
        if resolution_errors:
            errors = resolution_errors + validate_model_definition(
                record.name, record.version, extractor_class, scorer_class, protocol
            )
            raise ModelDefinitionValidationException(errors, VALIDATION_MESSAGE)

        return cls(
            name=record.name,
            version=record.version,
            extractor_class=extractor_class,
            scorer_class=scorer_class,
            protocol_version=protocol,
        )

    @classmethod
    def from_json_file(
        cls,
        path: Path | str,
        registry: TypeRegistry = default_registry,
    ) -> "ModelDefinition":
        """Create a validated model definition from a JSON file."""
        path = Path(path)
        logger.debug("Loading model definition from %s", path)
        return cls.from_json(path.read_bytes(), registry)


def _resolve(
    registry: TypeRegistry,
    name: str,
    errors: list[ValidationException],
) -> type | None:
    try:
        return registry.resolve(name)
    except TypeNotFound as e:
        errors.append(e)
        return None


def validate_model_definition(
    name: str,
    version: str,
    extractor_class: type | None,
    scorer_class: type | None,
    protocol_version: ProtocolVersion,
) -> list[ValidationException]:
    """Collect every validation error for a model definition's settings.

    Class checks are skipped for a class that is None. Checks that depend
    on a class being valid (instantiation, field declarations, field
    coverage) only run once the checks they depend on have passed.
    """
    errors = []
    errors += check_protocol_version(
        protocol_version, MIN_MODEL_DEF_VERSION, MAX_MODEL_DEF_VERSION, subject=SUBJECT
    )
    errors += check_name(name, subject=SUBJECT)
    errors += check_version_string(version, subject=SUBJECT)

    if extractor_class is None or scorer_class is None:
        return errors

    class_errors = (
        check_phase_class(extractor_class, Extractor, role="extractor")
        + check_phase_class(scorer_class, Scorer, role="scorer")
    )
    errors += class_errors
    if class_errors:
        return errors

    instantiation_errors = (
        check_instantiable(extractor_class, role="extractor")
        + check_instantiable(scorer_class, role="scorer")
    )
    errors += instantiation_errors
    if instantiation_errors:
        return errors

    declaration_errors = (
        check_field_declarations(
            extractor_class, ("input_fields", "output_fields"), role="extractor"
        )
        + check_field_declarations(scorer_class, ("input_fields",), role="scorer")
    )
    errors += declaration_errors
    if declaration_errors:
        return errors

    errors += check_extractor_input(extractor_class)
    errors += check_scorer_input(scorer_class)
    errors += check_coverage(
        scorer_input_fields(scorer_class),
        extractor_output_fields(extractor_class),
    )
    logger.debug("Validated model definition '%s' with %d error(s)", name, len(errors))
    return errors


def check_phase_class(cls: Any, capability: type, *, role: str) -> list[ValidationException]:
    """Check that cls is a class implementing the given phase capability."""
    if not isinstance(cls, type):
        return [ValidationException(f"The {role} {cls!r} is not a class.")]
    if not issubclass(cls, capability):
        return [ValidationException(
            f'The class "{cls.__module__}.{cls.__qualname__}" does not implement '
            f"the {capability.__name__} interface."
        )]
    return []


def check_instantiable(cls: type, *, role: str) -> list[ValidationException]:
    """Check that cls can be constructed without arguments."""
    try:
        cls()
    except Exception:
        logger.debug("Could not instantiate %s", cls, exc_info=True)
        return [ValidationException(
            f'Unable to create instance of {role} class "{cls.__qualname__}". Make sure '
            f"your {role} class is concrete and can be constructed without arguments."
        )]
    return []
