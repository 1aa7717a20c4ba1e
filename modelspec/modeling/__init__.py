"""Model definitions, model environments and the phase capabilities they name."""

from .definition import ModelDefinition, validate_model_definition
from .environment import (
    ExtractEnvironment,
    ModelEnvironment,
    ScoreEnvironment,
    validate_model_environment,
)
from .fields import (
    ALL,
    RESULTS,
    FieldSelector,
    check_bindings_cover_inputs,
    check_coverage,
    extractor_output_fields,
    fields,
    scorer_input_fields,
)
from .phases import (
    BoundPhase,
    Extractor,
    KeyValueStoreBinding,
    KeyValueStores,
    Scorer,
    bind_phase,
)
from .registry import TypeRegistry, default_registry, register
from .validation import ValidationResult
from .versions import (
    CURRENT_MODEL_DEF_VERSION,
    CURRENT_MODEL_ENV_VERSION,
    MAX_MODEL_DEF_VERSION,
    MAX_MODEL_ENV_VERSION,
    MIN_MODEL_DEF_VERSION,
    MIN_MODEL_ENV_VERSION,
    ProtocolVersion,
)

__all__ = [
    # Definitions and environments
    "ModelDefinition",
    "ModelEnvironment",
    "ExtractEnvironment",
    "ScoreEnvironment",
    "validate_model_definition",
    "validate_model_environment",
    "ValidationResult",
    # Phases
    "Extractor",
    "Scorer",
    "KeyValueStores",
    "KeyValueStoreBinding",
    "BoundPhase",
    "bind_phase",
    # Fields
    "ALL",
    "RESULTS",
    "FieldSelector",
    "fields",
    "check_coverage",
    "check_bindings_cover_inputs",
    "extractor_output_fields",
    "scorer_input_fields",
    # Registry
    "TypeRegistry",
    "default_registry",
    "register",
    # Versions
    "ProtocolVersion",
    "CURRENT_MODEL_DEF_VERSION",
    "MIN_MODEL_DEF_VERSION",
    "MAX_MODEL_DEF_VERSION",
    "CURRENT_MODEL_ENV_VERSION",
    "MIN_MODEL_ENV_VERSION",
    "MAX_MODEL_ENV_VERSION",
]
