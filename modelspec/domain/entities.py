"""Domain entities for model environments and the cells they read."""

from dataclasses import dataclass, field
from enum import Enum
import re
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence


# Largest timestamp a data request can name (max signed 64-bit integer).
MAX_TIMESTAMP = 2**63 - 1

FAMILY_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class Phase(str, Enum):
    """A stage of the model workflow."""
    EXTRACT = "extract"
    SCORE = "score"


class FilterType(str, Enum):
    """Column filters a data request can attach to a column."""
    AND = "AND"
    COLUMN_RANGE = "COLUMN_RANGE"
    OR = "OR"
    REGEX_QUALIFIER = "REGEX_QUALIFIER"


class StoreType(str, Enum):
    """Kinds of key-value store a phase can ask the runner to open."""
    AVRO_KV = "AVRO_KV"
    AVRO_RECORD = "AVRO_RECORD"
    TABLE_BACKED = "TABLE_BACKED"


@dataclass(frozen=True)
class ColumnAddress:
    """A ``family`` or ``family:qualifier`` column address."""
    family: str
    qualifier: str | None = None

    @classmethod
    def parse(cls, text: str) -> "ColumnAddress":
        """Parse a column address.

        Raises:
            ValueError: If the family is not a valid identifier or the
                qualifier is present but empty.
        """
        family, sep, qualifier = text.partition(":")
        if not FAMILY_PATTERN.match(family):
            raise ValueError(
                f'"{text}" is not a valid column name. Column families must match '
                f'the regex "{FAMILY_PATTERN.pattern}".'
            )
        if sep and not qualifier:
            raise ValueError(f'"{text}" names a column family but has an empty qualifier.')
        return cls(family=family, qualifier=qualifier if sep else None)

    @property
    def is_fully_qualified(self) -> bool:
        return self.qualifier is not None

    def contains(self, family: str, qualifier: str) -> bool:
        """Check if a cell's column falls under this address."""
        if family != self.family:
            return False
        return self.qualifier is None or self.qualifier == qualifier

    def __str__(self) -> str:
        if self.qualifier is None:
            return self.family
        return f"{self.family}:{self.qualifier}"


@dataclass(frozen=True)
class ColumnFilter:
    """A filter applied to the cells of a requested column."""
    filter_type: FilterType
    # Read-only; excluded from the hash.
    properties: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "filter_type", FilterType(self.filter_type))
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))


@dataclass(frozen=True)
class ColumnSpec:
    """A column requested by the extract phase."""
    name: str
    max_versions: int = 1
    filter: ColumnFilter | None = None


@dataclass(frozen=True)
class DataRequest:
    """The cells the extract phase reads from the model table."""
    min_timestamp: int = 0
    max_timestamp: int = MAX_TIMESTAMP
    columns: Sequence[ColumnSpec] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))

    @classmethod
    def create(cls, *column_names: str, max_versions: int = 1) -> "DataRequest":
        """Build a request for the named columns over the full time range."""
        return cls(columns=tuple(ColumnSpec(name, max_versions) for name in column_names))


@dataclass(frozen=True)
class KVStoreSpec:
    """Describes a key-value store the runner opens on behalf of a phase."""
    store_type: StoreType
    name: str
    # Read-only; excluded from the hash.
    properties: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "store_type", StoreType(self.store_type))
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))


@dataclass(frozen=True)
class FieldBinding:
    """Associates a tuple field with the store column that backs it."""
    tuple_field_name: str
    store_field_name: str


@dataclass(frozen=True)
class Cell:
    """A single timestamped value from the model table."""
    entity_id: str
    family: str
    qualifier: str
    timestamp: int
    value: Any

    @property
    def column(self) -> str:
        return f"{self.family}:{self.qualifier}"


@dataclass(frozen=True)
class CellSlice:
    """The cells bound to one tuple field, most recent first."""
    cells: tuple[Cell, ...] = ()

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def first_value(self) -> Any:
        """Return the most recent value in the slice.

        Raises:
            IndexError: If the slice is empty.
        """
        if not self.cells:
            raise IndexError("Cannot take the first value of an empty slice")
        return self.cells[0].value

    def values(self) -> list[Any]:
        return [cell.value for cell in self.cells]
