"""
Pytest fixtures shared by the modelspec tests.
Provides sample phase classes, a populated registry and local tables.
"""

import json

import pytest

from modelspec.modeling import TypeRegistry
from modelspec.storage import LocalTable

import sample_phases


SAMPLE_CLASSES = [
    sample_phases.DoublingExtractor,
    sample_phases.PassThroughExtractor,
    sample_phases.SplittingExtractor,
    sample_phases.AllInputExtractor,
    sample_phases.LookupExtractor,
    sample_phases.AbstractExtractor,
    sample_phases.UpperCaseScorer,
    sample_phases.FieldScorer,
    sample_phases.AllFieldsScorer,
    sample_phases.TwoFieldScorer,
    sample_phases.UndeclaredScorer,
    sample_phases.FailingScorer,
]


@pytest.fixture
def registry():
    """A registry holding every sample phase class."""
    registry = TypeRegistry()
    for cls in SAMPLE_CLASSES:
        registry.register(cls)
    return registry


@pytest.fixture
def table_path(tmp_path):
    """A committed cell table with a name for two entities."""
    path = tmp_path / "table.parquet"
    table = LocalTable(path)
    table.put("e1", "info:name", "foo", 1)
    table.put("e2", "info:name", "bar", 1)
    table.commit()
    return path


@pytest.fixture
def table_uri(table_path):
    return table_path.as_uri()


@pytest.fixture
def definition_document(registry):
    """A valid model definition document."""
    return {
        "name": "name",
        "version": "1.0.0",
        "extractor_class": registry.name_of(sample_phases.DoublingExtractor),
        "scorer_class": registry.name_of(sample_phases.UpperCaseScorer),
        "protocol_version": "model_definition-0.1.0",
    }


@pytest.fixture
def environment_document(table_uri):
    """A valid model environment document bound to the sample table."""
    return {
        "protocol_version": "model_environment-0.1.0",
        "name": "myRunProfile",
        "version": "1.0.0",
        "model_table_uri": table_uri,
        "extract_environment": {
            "data_request": {
                "min_timestamp": 0,
                "column_definitions": [{"name": "info:name", "max_versions": 1}],
            },
            "kv_stores": [],
            "field_bindings": [
                {"tuple_field_name": "field", "store_field_name": "info:name"}
            ],
        },
        "score_environment": {
            "kv_stores": [],
            "output_column": "info:out",
        },
    }


@pytest.fixture
def definition_file(tmp_path, definition_document):
    path = tmp_path / "model-def.json"
    path.write_text(json.dumps(definition_document))
    return path


@pytest.fixture
def environment_file(tmp_path, environment_document):
    path = tmp_path / "model-env.json"
    path.write_text(json.dumps(environment_document))
    return path
