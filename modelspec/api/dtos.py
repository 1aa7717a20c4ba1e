"""Data Transfer Objects for the validation API."""

from typing import Literal

from pydantic import BaseModel, Field


class ValidationResponse(BaseModel):
    """Outcome of validating one configuration document."""

    valid: bool
    kind: Literal["model_definition", "model_environment"]
    name: str | None = None
    protocol_version: str | None = None
    errors: list[str] = Field(
        default_factory=list, description="Every validation problem found, in order"
    )
