"""Versioned record schemas for persisted model configuration.

These pydantic models describe the JSON documents that model definitions
and model environments are stored as. They carry no behavior beyond
encoding and decoding; validation of their contents belongs to
ModelDefinition and ModelEnvironment.
"""

import json
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from modelspec.domain.entities import MAX_TIMESTAMP, FilterType, StoreType
from modelspec.domain.errors import MalformedDocument


class PropertyRecord(BaseModel):
    """A single name/value property."""

    model_config = {"frozen": True}

    name: str
    value: str


class ColumnFilterRecord(BaseModel):
    """Serialized form of a ColumnFilter."""

    model_config = {"frozen": True}

    filter_type: FilterType
    properties: list[PropertyRecord] = Field(default_factory=list)


class ColumnDefinitionRecord(BaseModel):
    """Serialized form of a ColumnSpec."""

    model_config = {"frozen": True}

    name: str
    max_versions: int = Field(default=1)
    filter: ColumnFilterRecord | None = Field(default=None)


class DataRequestRecord(BaseModel):
    """Serialized form of a DataRequest."""

    model_config = {"frozen": True}

    min_timestamp: int = Field(default=0)
    max_timestamp: int = Field(default=MAX_TIMESTAMP)
    column_definitions: list[ColumnDefinitionRecord] = Field(default_factory=list)


class KVStoreRecord(BaseModel):
    """Serialized form of a KVStoreSpec."""

    model_config = {"frozen": True}

    store_type: StoreType
    name: str
    properties: list[PropertyRecord] = Field(default_factory=list)


class FieldBindingRecord(BaseModel):
    """Serialized form of a FieldBinding."""

    model_config = {"frozen": True}

    tuple_field_name: str
    store_field_name: str


class ExtractEnvironmentRecord(BaseModel):
    """Serialized form of an ExtractEnvironment."""

    model_config = {"frozen": True}

    data_request: DataRequestRecord = Field(default_factory=DataRequestRecord)
    kv_stores: list[KVStoreRecord] = Field(default_factory=list)
    field_bindings: list[FieldBindingRecord] = Field(default_factory=list)


class ScoreEnvironmentRecord(BaseModel):
    """Serialized form of a ScoreEnvironment."""

    model_config = {"frozen": True}

    kv_stores: list[KVStoreRecord] = Field(default_factory=list)
    output_column: str


class ModelEnvironmentRecord(BaseModel):
    """Serialized form of a ModelEnvironment."""

    model_config = {"frozen": True}

    protocol_version: str
    name: str
    version: str
    model_table_uri: str
    extract_environment: ExtractEnvironmentRecord | None = Field(default=None)
    score_environment: ScoreEnvironmentRecord | None = Field(default=None)


class ModelDefinitionRecord(BaseModel):
    """Serialized form of a ModelDefinition."""

    model_config = {"frozen": True}

    name: str
    version: str
    extractor_class: str
    scorer_class: str
    protocol_version: str


RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_document(text: str | bytes) -> dict[str, Any]:
    """Parse raw JSON text into a document object.

    Raises:
        MalformedDocument: If the text is not JSON or is not a JSON object.
    """
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedDocument(f"Document is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise MalformedDocument(
            f"Document must be a JSON object, got {type(document).__name__}"
        )
    return document


def decode_record(record_type: type[RecordT], document: dict[str, Any]) -> RecordT:
    """Decode a parsed document against a record schema.

    Raises:
        MalformedDocument: If the document does not fit the schema.
    """
    try:
        return record_type.model_validate(document)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in e.errors()
        )
        raise MalformedDocument(
            f"Document does not match the {record_type.__name__} schema: {problems}"
        ) from e


def encode_record(record: BaseModel) -> str:
    """Encode a record as deterministic, indented JSON."""
    return record.model_dump_json(indent=2)
