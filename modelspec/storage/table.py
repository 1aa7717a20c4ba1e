"""Parquet-backed cell table used by the local engine and table-backed stores.

A table is a long-format frame of cells, one row per timestamped value:

    entity_id | family | qualifier | timestamp | value

Values are stored as JSON text so that any JSON-representable value a
phase writes can be read back unchanged.
"""

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

import polars as pl
from pydantic import AnyUrl, TypeAdapter, ValidationError

from modelspec.domain.entities import (
    Cell,
    CellSlice,
    ColumnAddress,
    ColumnFilter,
    DataRequest,
    FilterType,
)


logger = logging.getLogger(__name__)

CELL_SCHEMA = {
    "entity_id": pl.Utf8,
    "family": pl.Utf8,
    "qualifier": pl.Utf8,
    "timestamp": pl.Int64,
    "value": pl.Utf8,
}

TRUE_VALUES = {"true", "1", "yes"}

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _flag(properties: dict[str, str], name: str, default: bool) -> bool:
    if name not in properties:
        return default
    return properties[name].strip().lower() in TRUE_VALUES


def filter_expression(column_filter: ColumnFilter) -> pl.Expr:
    """Translate a column filter into a polars predicate over qualifiers.

    REGEX_QUALIFIER keeps qualifiers fully matching ``regex``. COLUMN_RANGE
    keeps qualifiers between ``min_qualifier`` and ``max_qualifier``
    (inclusive unless ``include_min``/``include_max`` say otherwise). AND and
    OR combine whichever of those properties they carry.
    """
    properties = dict(column_filter.properties)
    qualifier = pl.col("qualifier")

    regex_criteria = []
    if "regex" in properties:
        regex_criteria.append(qualifier.str.contains(f"^(?:{properties['regex']})$"))

    range_criteria = []
    if "min_qualifier" in properties:
        low = properties["min_qualifier"]
        range_criteria.append(
            qualifier >= low if _flag(properties, "include_min", True) else qualifier > low
        )
    if "max_qualifier" in properties:
        high = properties["max_qualifier"]
        range_criteria.append(
            qualifier <= high if _flag(properties, "include_max", True) else qualifier < high
        )

    if column_filter.filter_type is FilterType.REGEX_QUALIFIER:
        criteria = regex_criteria
    elif column_filter.filter_type is FilterType.COLUMN_RANGE:
        criteria = range_criteria
    else:
        criteria = regex_criteria + range_criteria

    if not criteria:
        return pl.lit(True)
    if column_filter.filter_type is FilterType.OR:
        return pl.any_horizontal(criteria)
    return pl.all_horizontal(criteria)


def path_from_uri(uri: str) -> Path:
    """Return the local path named by a ``file://`` URI.

    Raises:
        ValueError: If the URI is not a valid file URI.
    """
    try:
        url = _URL_ADAPTER.validate_python(uri)
    except ValidationError as e:
        raise ValueError(f'"{uri}" is not a valid URI') from e
    if url.scheme != "file" or not url.path:
        raise ValueError(f'Only file:// URIs name local tables, got "{uri}"')
    return Path(url.path)


@dataclass
class LocalTable:
    """A cell table persisted as a single parquet file.

    Writes are buffered in memory and only reach disk on ``commit``.
    """

    path: Path
    _cells: pl.DataFrame = field(init=False)
    _pending: list[dict[str, Any]] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.path.exists():
            self._cells = pl.read_parquet(self.path).cast(CELL_SCHEMA)
            logger.debug("Loaded %d cells from %s", len(self._cells), self.path)
        else:
            self._cells = pl.DataFrame(schema=CELL_SCHEMA)

    @classmethod
    def from_uri(cls, uri: str) -> "LocalTable":
        """Open the table named by a ``file://`` URI."""
        return cls(path_from_uri(uri))

    @property
    def cells(self) -> pl.DataFrame:
        """All cells, including uncommitted writes."""
        self._flush()
        return self._cells

    def put(self, entity_id: str, column: str, value: Any, timestamp: int) -> None:
        """Buffer a write of value to a fully qualified column."""
        address = ColumnAddress.parse(column)
        if not address.is_fully_qualified:
            raise ValueError(f'Cannot write to "{column}": a qualifier is required')
        self._pending.append({
            "entity_id": str(entity_id),
            "family": address.family,
            "qualifier": address.qualifier,
            "timestamp": int(timestamp),
            "value": json.dumps(value),
        })

    def _flush(self) -> None:
        if self._pending:
            pending = pl.DataFrame(self._pending, schema=CELL_SCHEMA)
            self._cells = pl.concat([self._cells, pending], how="vertical")
            self._pending = []

    def read(self, request: DataRequest) -> dict[str, dict[str, CellSlice]]:
        """Read the cells a data request selects.

        Args:
            request: Time range and columns to read

        Returns:
            Mapping of entity_id -> requested column name -> cells, most
            recent first. Entities without any selected cell are omitted.
        """
        cells = self.cells
        in_range = cells.filter(
            (pl.col("timestamp") >= request.min_timestamp)
            & (pl.col("timestamp") < request.max_timestamp)
        )

        rows: dict[str, dict[str, list[Cell]]] = {}
        for column in request.columns:
            address = ColumnAddress.parse(column.name)
            selected = in_range.filter(pl.col("family") == address.family)
            if address.qualifier is not None:
                selected = selected.filter(pl.col("qualifier") == address.qualifier)
            if column.filter is not None:
                selected = selected.filter(filter_expression(column.filter))

            selected = (
                selected
                .sort("timestamp", descending=True)
                .group_by(["entity_id", "family", "qualifier"], maintain_order=True)
                .head(column.max_versions)
            )
            for row in selected.iter_rows(named=True):
                rows.setdefault(row["entity_id"], {}).setdefault(column.name, []).append(
                    _to_cell(row)
                )

        return {
            entity_id: {
                name: CellSlice(tuple(sorted(found, key=lambda c: c.timestamp, reverse=True)))
                for name, found in columns.items()
            }
            for entity_id, columns in sorted(rows.items())
        }

    def latest_values(self, column: str) -> dict[str, Any]:
        """Return the most recent value of a column for every entity."""
        address = ColumnAddress.parse(column)
        selected = self.cells.filter(pl.col("family") == address.family)
        if address.qualifier is not None:
            selected = selected.filter(pl.col("qualifier") == address.qualifier)
        latest = (
            selected
            .sort("timestamp", descending=True)
            .group_by("entity_id", maintain_order=True)
            .first()
        )
        return {
            row["entity_id"]: json.loads(row["value"])
            for row in latest.iter_rows(named=True)
        }

    def commit(self) -> Path:
        """Write every cell to the table's parquet file.

        Returns:
            Path to the written parquet file
        """
        cells = self.cells
        self.path.parent.mkdir(parents=True, exist_ok=True)
        cells.write_parquet(self.path)
        logger.info("Committed %d cells to %s", len(cells), self.path)
        return self.path


def _to_cell(row: dict[str, Any]) -> Cell:
    return Cell(
        entity_id=row["entity_id"],
        family=row["family"],
        qualifier=row["qualifier"],
        timestamp=row["timestamp"],
        value=json.loads(row["value"]),
    )
