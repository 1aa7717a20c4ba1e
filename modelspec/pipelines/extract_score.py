"""Extract-score pipeline: runs a model definition within a model environment.

Orchestrates a complete run:
1. Cross-check the definition against the environment
2. Instantiate the extractor and scorer
3. Open each phase's key-value stores and bind them to the phase
4. Run the extract phase, then the score phase
5. Commit the scored output and close every opened store
"""

from dataclasses import dataclass
import logging
from pathlib import Path

from modelspec.domain.entities import Phase
from modelspec.domain.errors import AggregateValidationError, ValidationException
from modelspec.domain.protocols import ExecutionEngine, KeyValueStore, StoreOpener
from modelspec.modeling.definition import ModelDefinition
from modelspec.modeling.environment import ModelEnvironment
from modelspec.modeling.fields import check_bindings_cover_inputs
from modelspec.modeling.phases import bind_phase
from modelspec.modeling.registry import TypeRegistry, default_registry
from modelspec.storage.kvstores import KeyValueStoreOpener, close_all
from modelspec.storage.table import LocalTable

from .config import RunnerConfig, get_default_config
from .local_engine import LocalEngine


logger = logging.getLogger(__name__)

COMPATIBILITY_MESSAGE = (
    "The model definition cannot be run in this model environment. "
    "Please correct the problems below and try again."
)


@dataclass(frozen=True)
class ExtractScoreResult:
    """Summary of a completed extract-score run."""
    model_name: str
    tuples_extracted: int
    rows_scored: int


def check_compatibility(
    definition: ModelDefinition,
    environment: ModelEnvironment,
) -> list[ValidationException]:
    """Collect every reason a definition cannot run in an environment."""
    errors = []
    if environment.extract_environment is None:
        errors.append(ValidationException(
            "The model environment does not configure the extract phase."
        ))
    else:
        errors += check_bindings_cover_inputs(
            definition.extractor_class,
            environment.extract_environment.field_bindings,
        )
    if environment.score_environment is None:
        errors.append(ValidationException(
            "The model environment does not configure the score phase."
        ))
    return errors


@dataclass
class ExtractScorePipeline:
    """Pipeline running the extract and score phases of a model.

    The pipeline owns every key-value store it opens: stores are opened
    before a phase runs and closed once the run ends, whether or not it
    succeeded.
    """

    model_definition: ModelDefinition
    model_environment: ModelEnvironment
    engine: ExecutionEngine
    opener: StoreOpener

    def validate(self) -> "ExtractScorePipeline":
        """Check that the definition can run in the environment.

        Raises:
            AggregateValidationError: Listing every incompatibility found
        """
        errors = check_compatibility(self.model_definition, self.model_environment)
        if errors:
            raise AggregateValidationError(errors, COMPATIBILITY_MESSAGE)
        return self

    def run(self) -> ExtractScoreResult:
        """Execute the extract and score phases.

        Returns:
            ExtractScoreResult summarizing the run

        Raises:
            AggregateValidationError: If the definition cannot run here
            StoreUnavailable: If a key-value store cannot be opened
            ExecutionError: If a phase fails
        """
        self.validate()
        definition = self.model_definition
        extract_environment = self.model_environment.extract_environment
        score_environment = self.model_environment.score_environment

        opened: list[KeyValueStore] = []
        try:
            extract_stores = self.opener.open_all(extract_environment.kv_stores)
            opened.extend(extract_stores.values())
            score_stores = self.opener.open_all(score_environment.kv_stores)
            opened.extend(score_stores.values())

            extractor = bind_phase(Phase.EXTRACT, definition.extractor_class(), extract_stores)
            scorer = bind_phase(Phase.SCORE, definition.scorer_class(), score_stores)

            logger.info("Running extract phase of model '%s'", definition.name)
            tuples = self.engine.run(extractor, extract_environment)

            logger.info("Running score phase of model '%s'", definition.name)
            written = self.engine.run(scorer, score_environment, tuples)

            self.engine.commit()
        finally:
            close_all(opened)

        result = ExtractScoreResult(
            model_name=definition.name,
            tuples_extracted=len(tuples),
            rows_scored=len(written),
        )
        logger.info(
            "Model '%s' extracted %d tuples and scored %d rows",
            result.model_name, result.tuples_extracted, result.rows_scored,
        )
        return result


def create_local_pipeline(
    model_definition: ModelDefinition,
    model_environment: ModelEnvironment,
    config: RunnerConfig | None = None,
) -> ExtractScorePipeline:
    """Create a pipeline that runs against the local table named by the environment.

    The environment's model_table_uri must be a ``file://`` URI naming a
    parquet cell table.
    """
    config = config or get_default_config()
    table = LocalTable.from_uri(model_environment.model_table_uri)
    return ExtractScorePipeline(
        model_definition=model_definition,
        model_environment=model_environment,
        engine=LocalEngine(table, write_timestamp=config.engine.write_timestamp),
        opener=KeyValueStoreOpener(store_root=config.paths.store_root, table=table),
    )


def run_extract_score(
    model_definition_path: Path | str,
    model_environment_path: Path | str,
    config: RunnerConfig | None = None,
    registry: TypeRegistry = default_registry,
) -> ExtractScoreResult:
    """Load a model definition and environment from disk and run them locally.

    Args:
        model_definition_path: Path to the model definition JSON
        model_environment_path: Path to the model environment JSON
        config: Runner configuration (defaults if omitted)
        registry: Registry resolving the definition's class names

    Returns:
        ExtractScoreResult summarizing the run
    """
    config = config or get_default_config()
    registry.load_modules(config.registry.modules)

    definition = ModelDefinition.from_json_file(model_definition_path, registry)
    environment = ModelEnvironment.from_json_file(model_environment_path)

    return create_local_pipeline(definition, environment, config).run()
