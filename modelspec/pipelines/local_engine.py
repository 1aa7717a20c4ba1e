"""Single-process execution engine running bound phases over a LocalTable.

The extract phase reads the cells selected by the environment's data
request and calls the extractor once per entity. The score phase calls the
scorer once per extracted tuple and writes its result to the output column.
"""

from dataclasses import dataclass
import logging
import time
from typing import Any, Mapping, Sequence

from modelspec.domain.entities import (
    CellSlice,
    ColumnAddress,
    Phase,
)
from modelspec.domain.errors import ExecutionError
from modelspec.modeling.environment import ExtractEnvironment, ScoreEnvironment
from modelspec.modeling.fields import declared_fields
from modelspec.modeling.phases import BoundPhase, Extractor, Scorer
from modelspec.storage.table import LocalTable


logger = logging.getLogger(__name__)

ENTITY_ID = "entity_id"


def current_timestamp() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class LocalEngine:
    """Runs extract and score phases in-process against a LocalTable."""

    table: LocalTable
    write_timestamp: int | None = None

    def run(
        self,
        bound: BoundPhase,
        environment: ExtractEnvironment | ScoreEnvironment,
        tuples: Sequence[Mapping[str, Any]] = (),
    ) -> list[dict[str, Any]]:
        """Run one bound phase.

        Args:
            bound: The phase instance with its stores bound
            environment: The phase's environment
            tuples: Extracted tuples (score phase only)

        Returns:
            Extracted tuples for the extract phase; written rows for the
            score phase

        Raises:
            ExecutionError: If the phase function raises or returns the
                wrong number of values
        """
        if bound.phase is Phase.EXTRACT:
            return self._run_extract(bound.instance, environment)
        return self._run_score(bound.instance, environment, tuples)

    def commit(self) -> None:
        self.table.commit()

    def _run_extract(
        self,
        extractor: Extractor,
        environment: ExtractEnvironment,
    ) -> list[dict[str, Any]]:
        extractor_class = type(extractor)
        input_names = declared_fields(extractor_class, "input_fields").expand()
        output = declared_fields(extractor_class, "output_fields")
        output_names = input_names if output.is_results else output.expand()

        bindings = {
            binding.tuple_field_name: ColumnAddress.parse(binding.store_field_name)
            for binding in environment.field_bindings
        }
        unbound = [name for name in input_names if name not in bindings]
        if unbound:
            raise ExecutionError(f"Extractor input field(s) {unbound} have no field binding")

        rows = self.table.read(environment.data_request)
        logger.info("Extracting %d entities with %s", len(rows), extractor_class.__name__)

        tuples = []
        for entity_id, columns in rows.items():
            inputs = {name: _slice_for(columns, bindings[name]) for name in input_names}
            try:
                result = extractor.extract(**inputs)
            except Exception as e:
                raise ExecutionError(
                    f"Extract phase failed for entity '{entity_id}': {e}"
                ) from e
            values = _as_values(result, len(output_names), entity_id)
            tuples.append({ENTITY_ID: entity_id, **dict(zip(output_names, values))})
        return tuples

    def _run_score(
        self,
        scorer: Scorer,
        environment: ScoreEnvironment,
        tuples: Sequence[Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        selector = declared_fields(type(scorer), "input_fields")
        output_column = str(ColumnAddress.parse(environment.output_column))
        timestamp = self.write_timestamp if self.write_timestamp is not None else current_timestamp()
        logger.info("Scoring %d tuples with %s", len(tuples), type(scorer).__name__)

        written = []
        for row in tuples:
            entity_id = row[ENTITY_ID]
            if selector.is_all:
                inputs = {name: value for name, value in row.items() if name != ENTITY_ID}
            else:
                try:
                    inputs = {name: row[name] for name in selector.expand()}
                except KeyError as e:
                    raise ExecutionError(
                        f"Scorer input field {e} is missing from the tuple for entity '{entity_id}'"
                    ) from None
            try:
                score = scorer.score(**inputs)
            except Exception as e:
                raise ExecutionError(f"Score phase failed for entity '{entity_id}': {e}") from e
            self.table.put(entity_id, output_column, score, timestamp)
            written.append({ENTITY_ID: entity_id, "value": score})
        return written


def _slice_for(columns: Mapping[str, CellSlice], address: ColumnAddress) -> CellSlice:
    seen = set()
    cells = []
    for found in columns.values():
        for cell in found:
            key = (cell.family, cell.qualifier, cell.timestamp)
            if address.contains(cell.family, cell.qualifier) and key not in seen:
                seen.add(key)
                cells.append(cell)
    cells.sort(key=lambda c: c.timestamp, reverse=True)
    return CellSlice(tuple(cells))


def _as_values(result: Any, count: int, entity_id: str) -> tuple[Any, ...]:
    if count == 1:
        return (result,)
    if not isinstance(result, (tuple, list)) or len(result) != count:
        raise ExecutionError(
            f"Extractor returned {result!r} for entity '{entity_id}' "
            f"but declares {count} output fields"
        )
    return tuple(result)
