import json
from typing import Any

from modelspec.api.dtos import ValidationResponse
from modelspec.domain.errors import (
    ModelDefinitionValidationException,
    ModelEnvironmentValidationException,
)
from modelspec.modeling.definition import ModelDefinition
from modelspec.modeling.environment import ModelEnvironment
from modelspec.modeling.registry import TypeRegistry


class ValidationService:
    """Service class that validates model configuration documents.

    Malformed documents and unsupported protocol versions are raised to
    the caller; rule violations are reported in the response.
    """

    def __init__(self, registry: TypeRegistry) -> None:
        self._registry = registry

    def validate_definition(self, document: dict[str, Any]) -> ValidationResponse:
        """Validate a model definition document."""
        try:
            definition = ModelDefinition.from_json(json.dumps(document), self._registry)
        except ModelDefinitionValidationException as e:
            return ValidationResponse(
                valid=False,
                kind="model_definition",
                name=document.get("name"),
                protocol_version=document.get("protocol_version"),
                errors=e.messages,
            )
        return ValidationResponse(
            valid=True,
            kind="model_definition",
            name=definition.name,
            protocol_version=str(definition.protocol_version),
        )

    def validate_environment(self, document: dict[str, Any]) -> ValidationResponse:
        """Validate a model environment document."""
        try:
            environment = ModelEnvironment.from_json(json.dumps(document))
        except ModelEnvironmentValidationException as e:
            return ValidationResponse(
                valid=False,
                kind="model_environment",
                name=document.get("name"),
                protocol_version=document.get("protocol_version"),
                errors=e.messages,
            )
        return ValidationResponse(
            valid=True,
            kind="model_environment",
            name=environment.name,
            protocol_version=str(environment.protocol_version),
        )
