"""API module for the model configuration validation service."""

from .app import app
from .dtos import ValidationResponse

__all__ = [
    "app",
    "ValidationResponse",
]
