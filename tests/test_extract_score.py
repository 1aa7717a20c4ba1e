"""Tests for the extract-score pipeline."""

import pytest

from modelspec.domain import DataRequest, FieldBinding, KVStoreSpec, StoreType
from modelspec.domain.errors import AggregateValidationError, ExecutionError, StoreUnavailable
from modelspec.modeling import ExtractEnvironment, ModelDefinition, ModelEnvironment, ScoreEnvironment
from modelspec.pipelines import (
    EngineConfig,
    RunnerConfig,
    create_local_pipeline,
    run_extract_score,
)
from modelspec.pipelines.extract_score import check_compatibility
from modelspec.storage import InMemoryKeyValueStore, LocalTable

from sample_phases import DoublingExtractor, FailingScorer, LookupExtractor, UpperCaseScorer


def make_definition(extractor_class=DoublingExtractor, scorer_class=UpperCaseScorer):
    return ModelDefinition(
        name="name",
        version="1.0.0",
        extractor_class=extractor_class,
        scorer_class=scorer_class,
    )


def make_environment(table_uri, extract_stores=(), field_bindings=None, **overrides):
    if field_bindings is None:
        field_bindings = [FieldBinding("field", "info:name")]
    settings = {
        "name": "myRunProfile",
        "version": "1.0.0",
        "model_table_uri": table_uri,
        "extract_environment": ExtractEnvironment(
            data_request=DataRequest.create("info:name"),
            kv_stores=extract_stores,
            field_bindings=field_bindings,
        ),
        "score_environment": ScoreEnvironment(output_column="info:out"),
    }
    settings.update(overrides)
    return ModelEnvironment(**settings)


class TestCompatibility:
    """Test checking a definition against an environment."""

    def test_compatible(self, table_uri):
        assert check_compatibility(make_definition(), make_environment(table_uri)) == []

    def test_missing_phase_environments(self, table_uri):
        environment = make_environment(table_uri, extract_environment=None, score_environment=None)

        errors = check_compatibility(make_definition(), environment)

        assert len(errors) == 2

    def test_unbound_extractor_input(self, table_uri):
        environment = make_environment(table_uri, field_bindings=[])

        errors = check_compatibility(make_definition(), environment)

        assert len(errors) == 1
        assert '"field"' in errors[0].message

    def test_pipeline_validate_raises(self, table_uri):
        environment = make_environment(table_uri, score_environment=None)
        pipeline = create_local_pipeline(make_definition(), environment)

        with pytest.raises(AggregateValidationError) as exc_info:
            pipeline.validate()

        assert exc_info.value.messages == [
            "The model environment does not configure the score phase."
        ]


class TestExtractScorePipeline:
    """Test complete runs against a local table."""

    def test_run_writes_scores(self, table_uri, table_path):
        pipeline = create_local_pipeline(make_definition(), make_environment(table_uri))

        result = pipeline.run()

        assert result.model_name == "name"
        assert result.tuples_extracted == 2
        assert result.rows_scored == 2
        assert LocalTable(table_path).latest_values("info:out") == {
            "e1": "FOOFOO",
            "e2": "BARBAR",
        }

    def test_run_uses_configured_write_timestamp(self, table_uri, table_path):
        config = RunnerConfig(engine=EngineConfig(write_timestamp=99))
        create_local_pipeline(make_definition(), make_environment(table_uri), config).run()

        cells = LocalTable(table_path).cells
        assert cells.filter(cells["qualifier"] == "out")["timestamp"].to_list() == [99, 99]

    def test_stores_are_bound_and_closed(self, table_uri, table_path):
        store = InMemoryKeyValueStore({"foo": "a foo", "bar": "a bar"}, name="labels")
        environment = make_environment(
            table_uri, extract_stores=[KVStoreSpec(StoreType.AVRO_KV, "labels")]
        )
        pipeline = create_local_pipeline(make_definition(extractor_class=LookupExtractor), environment)
        pipeline.opener.register(StoreType.AVRO_KV, lambda spec: store)

        pipeline.run()

        assert store.closed
        assert LocalTable(table_path).latest_values("info:out") == {
            "e1": "A FOO",
            "e2": "A BAR",
        }

    def test_table_backed_store_reads_model_table(self, table_uri, table_path):
        environment = make_environment(
            table_uri,
            extract_stores=[KVStoreSpec(StoreType.TABLE_BACKED, "labels", {"column": "info:name"})],
        )
        pipeline = create_local_pipeline(make_definition(extractor_class=LookupExtractor), environment)

        pipeline.run()

        # Names are absent from the store keyed by entity id.
        assert LocalTable(table_path).latest_values("info:out") == {
            "e1": "UNKNOWN",
            "e2": "UNKNOWN",
        }

    def test_stores_are_closed_when_a_phase_fails(self, table_uri, table_path):
        store = InMemoryKeyValueStore({}, name="labels")
        environment = make_environment(
            table_uri,
            score_environment=ScoreEnvironment(
                output_column="info:out",
                kv_stores=[KVStoreSpec(StoreType.AVRO_KV, "labels")],
            ),
        )
        pipeline = create_local_pipeline(make_definition(scorer_class=FailingScorer), environment)
        pipeline.opener.register(StoreType.AVRO_KV, lambda spec: store)

        with pytest.raises(ExecutionError):
            pipeline.run()

        assert store.closed
        assert LocalTable(table_path).latest_values("info:out") == {}

    def test_extract_stores_are_closed_when_a_score_store_is_unavailable(self, table_uri):
        store = InMemoryKeyValueStore({}, name="labels")
        environment = make_environment(
            table_uri,
            extract_stores=[KVStoreSpec(StoreType.AVRO_RECORD, "labels")],
            score_environment=ScoreEnvironment(
                output_column="info:out",
                kv_stores=[KVStoreSpec(StoreType.AVRO_KV, "missing", {"path": "missing.avro"})],
            ),
        )
        pipeline = create_local_pipeline(make_definition(extractor_class=LookupExtractor), environment)
        pipeline.opener.register(StoreType.AVRO_RECORD, lambda spec: store)

        with pytest.raises(StoreUnavailable):
            pipeline.run()

        assert store.closed

    def test_unavailable_store(self, table_uri):
        environment = make_environment(
            table_uri,
            extract_stores=[KVStoreSpec(StoreType.AVRO_KV, "labels", {"path": "missing.avro"})],
        )
        pipeline = create_local_pipeline(make_definition(extractor_class=LookupExtractor), environment)

        with pytest.raises(StoreUnavailable):
            pipeline.run()

    def test_table_uri_must_be_local(self):
        environment = make_environment("hbase://localhost:2181/default/table")

        with pytest.raises(ValueError):
            create_local_pipeline(make_definition(), environment)


class TestRunExtractScore:
    """Test running from definition and environment files."""

    def test_run_from_files(self, registry, definition_file, environment_file, table_path):
        result = run_extract_score(definition_file, environment_file, registry=registry)

        assert result.rows_scored == 2
        assert LocalTable(table_path).latest_values("info:out")["e1"] == "FOOFOO"
