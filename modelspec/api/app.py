"""FastAPI application for validating model configuration."""

import logging
from typing import Any

from fastapi import Body, FastAPI, HTTPException

from modelspec.api.config import app_config
from modelspec.api.service import ValidationService
from modelspec.domain.errors import MalformedDocument, VersionUnsupported
from modelspec.modeling.registry import default_registry

from .dtos import ValidationResponse


logging.basicConfig(level=app_config.log_level.upper())

app = FastAPI(
    title="Model Configuration API",
    description="API for validating model definitions and model environments",
    version="0.1.0",
)

# populate the registry and initialize the validation service
default_registry.load_modules(app_config.registry_modules)
service = ValidationService(default_registry)


def _validate(validator, document: dict[str, Any]) -> ValidationResponse:
    try:
        return validator(document)
    except VersionUnsupported as e:
        raise HTTPException(status_code=409, detail=e.message) from e
    except MalformedDocument as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.post("/validate/model-definition", response_model=ValidationResponse)
def validate_model_definition(document: dict[str, Any] = Body(...)) -> ValidationResponse:
    """Validate a model definition document."""
    return _validate(service.validate_definition, document)


@app.post("/validate/model-environment", response_model=ValidationResponse)
def validate_model_environment(document: dict[str, Any] = Body(...)) -> ValidationResponse:
    """Validate a model environment document."""
    return _validate(service.validate_environment, document)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
