"""Versioned model definitions and environments for extract/score models."""

__version__ = "0.1.0"
