"""Versioned record schemas for model definitions and environments."""

from .records import (
    ColumnDefinitionRecord,
    ColumnFilterRecord,
    DataRequestRecord,
    ExtractEnvironmentRecord,
    FieldBindingRecord,
    KVStoreRecord,
    ModelDefinitionRecord,
    ModelEnvironmentRecord,
    PropertyRecord,
    ScoreEnvironmentRecord,
    decode_record,
    encode_record,
    parse_document,
)

__all__ = [
    "ColumnDefinitionRecord",
    "ColumnFilterRecord",
    "DataRequestRecord",
    "ExtractEnvironmentRecord",
    "FieldBindingRecord",
    "KVStoreRecord",
    "ModelDefinitionRecord",
    "ModelEnvironmentRecord",
    "PropertyRecord",
    "ScoreEnvironmentRecord",
    "decode_record",
    "encode_record",
    "parse_document",
]
