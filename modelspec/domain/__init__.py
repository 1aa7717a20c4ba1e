"""Domain layer: entities, protocols and errors."""

from .entities import (
    MAX_TIMESTAMP,
    Cell,
    CellSlice,
    ColumnAddress,
    ColumnFilter,
    ColumnSpec,
    DataRequest,
    FieldBinding,
    FilterType,
    KVStoreSpec,
    Phase,
    StoreType,
)

from .protocols import (
    ExecutionEngine,
    KeyValueStore,
    StoreOpener,
    TypeResolver,
)

from .errors import (
    AggregateValidationError,
    BindingError,
    ExecutionError,
    InvalidVersionFormat,
    KeyValueStoreNotFound,
    MalformedDocument,
    ModelDefinitionValidationException,
    ModelEnvironmentValidationException,
    ModelSpecError,
    StoreUnavailable,
    TypeNotFound,
    UninitializedStateError,
    ValidationException,
    VersionUnsupported,
)

__all__ = [
    "MAX_TIMESTAMP",
    "Cell",
    "CellSlice",
    "ColumnAddress",
    "ColumnFilter",
    "ColumnSpec",
    "DataRequest",
    "FieldBinding",
    "FilterType",
    "KVStoreSpec",
    "Phase",
    "StoreType",
    "ExecutionEngine",
    "KeyValueStore",
    "StoreOpener",
    "TypeResolver",
    "AggregateValidationError",
    "BindingError",
    "ExecutionError",
    "InvalidVersionFormat",
    "KeyValueStoreNotFound",
    "MalformedDocument",
    "ModelDefinitionValidationException",
    "ModelEnvironmentValidationException",
    "ModelSpecError",
    "StoreUnavailable",
    "TypeNotFound",
    "UninitializedStateError",
    "ValidationException",
    "VersionUnsupported",
]
