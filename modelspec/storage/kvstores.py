"""Key-value store readers and the opener that builds them from KVStoreSpecs.

Supports:
- AVRO_KV: an Avro file of key/value records, looked up by key
- AVRO_RECORD: an Avro file of records, looked up by one of their fields
- TABLE_BACKED: the most recent value of a table column, looked up by entity
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Mapping

import polars as pl

from modelspec.domain.entities import KVStoreSpec, StoreType
from modelspec.domain.errors import StoreUnavailable
from modelspec.domain.protocols import KeyValueStore

from .table import LocalTable


logger = logging.getLogger(__name__)

StoreFactory = Callable[[KVStoreSpec], KeyValueStore]


class InMemoryKeyValueStore:
    """A read-only key-value store held entirely in memory."""

    def __init__(self, data: Mapping[Any, Any], name: str = "") -> None:
        self._data = dict(data)
        self.name = name
        self.closed = False

    def get(self, key: Any, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data)

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"InMemoryKeyValueStore(name={self.name!r}, size={len(self._data)})"


def _require(spec: KVStoreSpec, name: str) -> str:
    try:
        return spec.properties[name]
    except KeyError:
        raise StoreUnavailable(
            f"Key-value store '{spec.name}' ({spec.store_type.value}) "
            f"is missing the required property '{name}'"
        ) from None


@dataclass
class KeyValueStoreOpener:
    """Opens the key-value stores described by KVStoreSpecs.

    Relative ``path`` properties resolve against store_root. Table-backed
    stores without a ``uri`` property read from table.
    """

    store_root: Path = field(default=Path("."))
    table: LocalTable | None = None
    _factories: dict[StoreType, StoreFactory] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.store_root = Path(self.store_root)
        self._factories = {
            StoreType.AVRO_KV: self._open_avro_kv,
            StoreType.AVRO_RECORD: self._open_avro_record,
            StoreType.TABLE_BACKED: self._open_table_backed,
        }

    def register(self, store_type: StoreType, factory: StoreFactory) -> None:
        """Replace how a store type is opened."""
        self._factories[StoreType(store_type)] = factory

    def open(self, spec: KVStoreSpec) -> KeyValueStore:
        """Open the store described by spec.

        Raises:
            StoreUnavailable: If the store cannot be opened.
        """
        factory = self._factories.get(spec.store_type)
        if factory is None:
            raise StoreUnavailable(f"No opener is registered for store type {spec.store_type.value}")
        store = factory(spec)
        logger.debug("Opened key-value store '%s' (%s)", spec.name, spec.store_type.value)
        return store

    def open_all(self, specs: Iterable[KVStoreSpec]) -> dict[str, KeyValueStore]:
        """Open every store in a phase, closing those already opened on failure."""
        opened: dict[str, KeyValueStore] = {}
        try:
            for spec in specs:
                opened[spec.name] = self.open(spec)
        except Exception:
            close_all(opened.values())
            raise
        return opened

    def _resolve_path(self, spec: KVStoreSpec) -> Path:
        path = Path(_require(spec, "path"))
        if not path.is_absolute():
            path = self.store_root / path
        if not path.exists():
            raise StoreUnavailable(f"Key-value store '{spec.name}' not found at {path}")
        return path

    def _read_avro(self, spec: KVStoreSpec, columns: Iterable[str]) -> pl.DataFrame:
        path = self._resolve_path(spec)
        try:
            frame = pl.read_avro(path)
        except Exception as e:
            raise StoreUnavailable(f"Could not read key-value store '{spec.name}' from {path}: {e}") from e
        missing = [column for column in columns if column not in frame.columns]
        if missing:
            raise StoreUnavailable(
                f"Key-value store '{spec.name}' has no field(s) {missing}; found {frame.columns}"
            )
        return frame

    def _open_avro_kv(self, spec: KVStoreSpec) -> KeyValueStore:
        key_field = spec.properties.get("key_field", "key")
        value_field = spec.properties.get("value_field", "value")
        frame = self._read_avro(spec, [key_field, value_field])
        data = dict(zip(frame[key_field].to_list(), frame[value_field].to_list()))
        return InMemoryKeyValueStore(data, name=spec.name)

    def _open_avro_record(self, spec: KVStoreSpec) -> KeyValueStore:
        key_field = _require(spec, "key_field")
        frame = self._read_avro(spec, [key_field])
        data = {row[key_field]: row for row in frame.iter_rows(named=True)}
        return InMemoryKeyValueStore(data, name=spec.name)

    def _open_table_backed(self, spec: KVStoreSpec) -> KeyValueStore:
        column = _require(spec, "column")
        if "uri" in spec.properties:
            try:
                table = LocalTable.from_uri(spec.properties["uri"])
            except ValueError as e:
                raise StoreUnavailable(f"Key-value store '{spec.name}': {e}") from e
        elif self.table is not None:
            table = self.table
        else:
            raise StoreUnavailable(
                f"Key-value store '{spec.name}' names no 'uri' and no table is available"
            )
        try:
            data = table.latest_values(column)
        except ValueError as e:
            raise StoreUnavailable(f"Key-value store '{spec.name}': {e}") from e
        return InMemoryKeyValueStore(data, name=spec.name)


def close_all(stores: Iterable[KeyValueStore]) -> None:
    """Close every store, logging rather than raising on failure."""
    for store in stores:
        try:
            store.close()
        except Exception:
            logger.warning("Failed to close key-value store %r", store, exc_info=True)
