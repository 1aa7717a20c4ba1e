"""Model environments: the runtime resources bound to each model phase.

A model environment names the table a model runs against and, for each
phase that is configured for a run, the resources it uses:

- the extract phase reads the columns of a data request, binds store
  columns to tuple fields and may use key-value stores;
- the score phase writes its result to an output column and may use
  key-value stores.

A phase environment left as None means that phase is not configured.
"""

import dataclasses
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any, Mapping, Sequence

from pydantic import AnyUrl, TypeAdapter, ValidationError

from modelspec.domain.entities import (
    ColumnAddress,
    ColumnFilter,
    ColumnSpec,
    DataRequest,
    FieldBinding,
    FilterType,
    KVStoreSpec,
)
from modelspec.domain.errors import (
    ModelEnvironmentValidationException,
    ValidationException,
)
from modelspec.schemas.records import (
    ColumnDefinitionRecord,
    ColumnFilterRecord,
    DataRequestRecord,
    ExtractEnvironmentRecord,
    FieldBindingRecord,
    KVStoreRecord,
    ModelEnvironmentRecord,
    PropertyRecord,
    ScoreEnvironmentRecord,
    decode_record,
    encode_record,
    parse_document,
)

from .validation import (
    ValidationResult,
    check_name,
    check_unique,
    check_version_string,
    raise_if_invalid,
)
from .versions import (
    CURRENT_MODEL_ENV_VERSION,
    MAX_MODEL_ENV_VERSION,
    MIN_MODEL_ENV_VERSION,
    ProtocolVersion,
    check_protocol_version,
    require_supported,
)


logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = (
    "One or more errors occurred while validating your model environment. "
    "Please correct the problems in your model environment and try again."
)

SUBJECT = "model environment"

_URL_ADAPTER = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class ExtractEnvironment:
    """Resources available to the extract phase."""
    data_request: DataRequest = field(default_factory=DataRequest)
    kv_stores: Sequence[KVStoreSpec] = ()
    field_bindings: Sequence[FieldBinding] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "kv_stores", tuple(self.kv_stores))
        object.__setattr__(self, "field_bindings", tuple(self.field_bindings))


@dataclass(frozen=True)
class ScoreEnvironment:
    """Resources available to the score phase."""
    output_column: str
    kv_stores: Sequence[KVStoreSpec] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "kv_stores", tuple(self.kv_stores))


@dataclass(frozen=True)
class ModelEnvironment:
    """Binds runtime resources to the extract and score phases of a model.

    Instances are always valid: every field is checked on construction and
    an invalid combination raises ModelEnvironmentValidationException listing
    every problem found.
    """
    name: str
    version: str
    model_table_uri: str
    extract_environment: ExtractEnvironment | None = None
    score_environment: ScoreEnvironment | None = None
    protocol_version: ProtocolVersion = CURRENT_MODEL_ENV_VERSION

    def __post_init__(self) -> None:
        errors = validate_model_environment(self)
        raise_if_invalid(errors, ModelEnvironmentValidationException, VALIDATION_MESSAGE)

    @classmethod
    def try_create(cls, **settings: Any) -> ValidationResult["ModelEnvironment"]:
        """Create a model environment, returning errors instead of raising them."""
        try:
            return ValidationResult(value=cls(**settings))
        except ModelEnvironmentValidationException as e:
            return ValidationResult.from_error(e)

    def to_json(self) -> str:
        """Serialize this model environment into a JSON string."""
        return encode_record(environment_to_record(self))

    def with_new_settings(self, **overrides: Any) -> "ModelEnvironment":
        """Create a new model environment with some settings replaced.

        Raises:
            ModelEnvironmentValidationException: If the result is invalid.
            TypeError: If an unknown setting is given.
        """
        if "protocol_version" in overrides:
            raise TypeError("with_new_settings() does not accept protocol_version")
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_json(cls, json: str | bytes) -> "ModelEnvironment":
        """Create a validated model environment from a JSON string.

        Raises:
            MalformedDocument: If the JSON cannot be parsed or misses fields.
            VersionUnsupported: If the protocol version is not supported.
            ModelEnvironmentValidationException: If any field is invalid.
        """
        document = parse_document(json)
        if "protocol_version" in document:
            protocol = ProtocolVersion.parse(str(document["protocol_version"]))
            require_supported(
                protocol, MIN_MODEL_ENV_VERSION, MAX_MODEL_ENV_VERSION, subject=SUBJECT
            )
        record = decode_record(ModelEnvironmentRecord, document)
        return environment_from_record(record)

    @classmethod
    def from_json_file(cls, path: Path | str) -> "ModelEnvironment":
        """Create a validated model environment from a JSON file."""
        path = Path(path)
        logger.debug("Loading model environment from %s", path)
        return cls.from_json(path.read_bytes())


def validate_model_environment(environment: ModelEnvironment) -> list[ValidationException]:
    """Collect every validation error for a model environment."""
    errors = []
    errors += check_protocol_version(
        environment.protocol_version,
        MIN_MODEL_ENV_VERSION,
        MAX_MODEL_ENV_VERSION,
        subject=SUBJECT,
    )
    errors += check_name(environment.name, subject=SUBJECT)
    errors += check_version_string(environment.version, subject=SUBJECT)
    errors += check_model_table_uri(environment.model_table_uri)
    if environment.extract_environment is not None:
        errors += check_extract_environment(environment.extract_environment)
    if environment.score_environment is not None:
        errors += check_score_environment(environment.score_environment)
    return errors


def check_model_table_uri(uri: str) -> list[ValidationException]:
    """Check that the model table URI is a syntactically valid URL."""
    try:
        _URL_ADAPTER.validate_python(uri)
    except ValidationError as e:
        reason = e.errors()[0]["msg"] if e.errors() else "invalid URL"
        return [ValidationException(f'The model table URI "{uri}" is not valid: {reason}.')]
    return []


def check_extract_environment(environment: ExtractEnvironment) -> list[ValidationException]:
    errors = check_data_request(environment.data_request)
    errors += check_kv_stores(environment.kv_stores, phase="extract")
    errors += check_field_bindings(environment.field_bindings)
    return errors


def check_score_environment(environment: ScoreEnvironment) -> list[ValidationException]:
    errors = []
    if not environment.output_column:
        errors.append(ValidationException("The score phase's output column cannot be empty."))
    else:
        try:
            address = ColumnAddress.parse(environment.output_column)
        except ValueError as e:
            errors.append(ValidationException(f"Invalid output column: {e}"))
        else:
            if not address.is_fully_qualified:
                errors.append(ValidationException(
                    f'The output column "{environment.output_column}" must name a '
                    "qualified column (family:qualifier)."
                ))
    errors += check_kv_stores(environment.kv_stores, phase="score")
    return errors


def check_data_request(request: DataRequest) -> list[ValidationException]:
    """Check a data request's time range and column definitions."""
    errors = []
    if request.min_timestamp < 0:
        errors.append(ValidationException(
            f"The data request's minimum timestamp must be non-negative, got {request.min_timestamp}."
        ))
    if request.min_timestamp >= request.max_timestamp:
        errors.append(ValidationException(
            f"The data request's minimum timestamp ({request.min_timestamp}) must be less "
            f"than its maximum timestamp ({request.max_timestamp})."
        ))
    for column in request.columns:
        errors += check_column_spec(column)
    return errors


def check_column_spec(column: ColumnSpec) -> list[ValidationException]:
    errors = []
    try:
        ColumnAddress.parse(column.name)
    except ValueError as e:
        errors.append(ValidationException(f"Invalid requested column: {e}"))
    if column.max_versions < 1:
        errors.append(ValidationException(
            f'The column "{column.name}" must request at least one version, '
            f"got max_versions={column.max_versions}."
        ))
    if column.filter is not None:
        errors += check_column_filter(column.name, column.filter)
    return errors


def check_column_filter(column_name: str, column_filter: ColumnFilter) -> list[ValidationException]:
    """Check that a column filter carries the properties its type needs."""
    properties = column_filter.properties
    if column_filter.filter_type is FilterType.REGEX_QUALIFIER:
        if "regex" not in properties:
            return [ValidationException(
                f'The REGEX_QUALIFIER filter on "{column_name}" needs a "regex" property.'
            )]
        try:
            re.compile(properties["regex"])
        except re.error as e:
            return [ValidationException(
                f'The REGEX_QUALIFIER filter on "{column_name}" has an invalid regex: {e}.'
            )]
    elif column_filter.filter_type is FilterType.COLUMN_RANGE:
        if "min_qualifier" not in properties and "max_qualifier" not in properties:
            return [ValidationException(
                f'The COLUMN_RANGE filter on "{column_name}" needs a "min_qualifier" '
                'or "max_qualifier" property.'
            )]
    return []


def check_kv_stores(stores: Sequence[KVStoreSpec], *, phase: str) -> list[ValidationException]:
    """Check that every store in a phase has a non-empty, unique name."""
    errors = [
        ValidationException(f"A key-value store in the {phase} phase has an empty name.")
        for store in stores
        if not store.name
    ]
    errors += check_unique(
        (store.name for store in stores if store.name),
        what="key-value store name",
        where=f"{phase} phase",
    )
    return errors


def check_field_bindings(bindings: Sequence[FieldBinding]) -> list[ValidationException]:
    """Check that field bindings name both sides and bind each tuple field once."""
    errors = []
    for binding in bindings:
        if not binding.tuple_field_name:
            errors.append(ValidationException(
                f'A field binding for store field "{binding.store_field_name}" '
                "has an empty tuple field name."
            ))
        if not binding.store_field_name:
            errors.append(ValidationException(
                f'The field binding for tuple field "{binding.tuple_field_name}" '
                "has an empty store field name."
            ))
    errors += check_unique(
        (binding.tuple_field_name for binding in bindings if binding.tuple_field_name),
        what="tuple field name",
        where="extract phase's field bindings",
    )
    return errors


def _properties_to_record(properties: Mapping[str, str]) -> list[PropertyRecord]:
    return [PropertyRecord(name=name, value=value) for name, value in properties.items()]


def _properties_from_record(properties: list[PropertyRecord]) -> dict[str, str]:
    return {prop.name: prop.value for prop in properties}


def _kv_store_to_record(store: KVStoreSpec) -> KVStoreRecord:
    return KVStoreRecord(
        store_type=store.store_type,
        name=store.name,
        properties=_properties_to_record(store.properties),
    )


def _kv_store_from_record(record: KVStoreRecord) -> KVStoreSpec:
    return KVStoreSpec(
        store_type=record.store_type,
        name=record.name,
        properties=_properties_from_record(record.properties),
    )


def environment_to_record(environment: ModelEnvironment) -> ModelEnvironmentRecord:
    """Convert a model environment into its versioned record."""
    extract = environment.extract_environment
    score = environment.score_environment

    extract_record = None
    if extract is not None:
        request = extract.data_request
        extract_record = ExtractEnvironmentRecord(
            data_request=DataRequestRecord(
                min_timestamp=request.min_timestamp,
                max_timestamp=request.max_timestamp,
                column_definitions=[
                    ColumnDefinitionRecord(
                        name=column.name,
                        max_versions=column.max_versions,
                        filter=None if column.filter is None else ColumnFilterRecord(
                            filter_type=column.filter.filter_type,
                            properties=_properties_to_record(column.filter.properties),
                        ),
                    )
                    for column in request.columns
                ],
            ),
            kv_stores=[_kv_store_to_record(store) for store in extract.kv_stores],
            field_bindings=[
                FieldBindingRecord(
                    tuple_field_name=binding.tuple_field_name,
                    store_field_name=binding.store_field_name,
                )
                for binding in extract.field_bindings
            ],
        )

    score_record = None
    if score is not None:
        score_record = ScoreEnvironmentRecord(
            kv_stores=[_kv_store_to_record(store) for store in score.kv_stores],
            output_column=score.output_column,
        )

    return ModelEnvironmentRecord(
        protocol_version=str(environment.protocol_version),
        name=environment.name,
        version=environment.version,
        model_table_uri=environment.model_table_uri,
        extract_environment=extract_record,
        score_environment=score_record,
    )


def environment_from_record(record: ModelEnvironmentRecord) -> ModelEnvironment:
    """Build and validate a model environment from its versioned record."""
    extract = None
    if record.extract_environment is not None:
        request = record.extract_environment.data_request
        extract = ExtractEnvironment(
            data_request=DataRequest(
                min_timestamp=request.min_timestamp,
                max_timestamp=request.max_timestamp,
                columns=[
                    ColumnSpec(
                        name=column.name,
                        max_versions=column.max_versions,
                        filter=None if column.filter is None else ColumnFilter(
                            filter_type=column.filter.filter_type,
                            properties=_properties_from_record(column.filter.properties),
                        ),
                    )
                    for column in request.column_definitions
                ],
            ),
            kv_stores=[_kv_store_from_record(store) for store in record.extract_environment.kv_stores],
            field_bindings=[
                FieldBinding(binding.tuple_field_name, binding.store_field_name)
                for binding in record.extract_environment.field_bindings
            ],
        )

    score = None
    if record.score_environment is not None:
        score = ScoreEnvironment(
            output_column=record.score_environment.output_column,
            kv_stores=[_kv_store_from_record(store) for store in record.score_environment.kv_stores],
        )

    return ModelEnvironment(
        name=record.name,
        version=record.version,
        model_table_uri=record.model_table_uri,
        extract_environment=extract,
        score_environment=score,
        protocol_version=ProtocolVersion.parse(record.protocol_version),
    )
