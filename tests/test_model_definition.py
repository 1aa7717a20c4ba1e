"""Tests for ModelDefinition construction, validation and JSON round trips."""

import dataclasses
import json

import pytest

from modelspec.domain.errors import (
    InvalidVersionFormat,
    MalformedDocument,
    ModelDefinitionValidationException,
    TypeNotFound,
    VersionUnsupported,
)
from modelspec.modeling import (
    RESULTS,
    Extractor,
    ModelDefinition,
    ProtocolVersion,
    Scorer,
    TypeRegistry,
    fields,
    validate_model_definition,
)

from sample_phases import (
    AbstractExtractor,
    AllFieldsScorer,
    AllInputExtractor,
    DoublingExtractor,
    FieldScorer,
    NotAPhase,
    PassThroughExtractor,
    SplittingExtractor,
    TwoFieldScorer,
    UndeclaredScorer,
    UpperCaseScorer,
)


class UnlistedExtractor(Extractor):
    input_fields = fields("field")
    output_fields = fields("feature")

    def extract(self, field):
        return field.first_value()


class UnlistedScorer(Scorer):
    input_fields = fields("feature")

    def score(self, feature):
        return feature


class ResultsInputExtractor(Extractor):
    input_fields = RESULTS
    output_fields = fields("feature")

    def extract(self, **inputs):
        return len(inputs)


class ResultsInputScorer(Scorer):
    input_fields = RESULTS

    def score(self, **inputs):
        return inputs


def make_definition(**overrides):
    settings = {
        "name": "name",
        "version": "1.0.0",
        "extractor_class": DoublingExtractor,
        "scorer_class": UpperCaseScorer,
    }
    settings.update(overrides)
    return ModelDefinition(**settings)


def validation_errors(**overrides):
    with pytest.raises(ModelDefinitionValidationException) as exc_info:
        make_definition(**overrides)
    return exc_info.value.messages


class TestModelDefinitionConstruction:
    """Test building model definitions programmatically."""

    def test_valid_definition(self):
        definition = make_definition()

        assert definition.name == "name"
        assert definition.version == "1.0.0"
        assert definition.extractor_class is DoublingExtractor
        assert definition.scorer_class is UpperCaseScorer
        assert str(definition.protocol_version) == "model_definition-0.1.0"

    def test_definition_is_immutable(self):
        definition = make_definition()

        with pytest.raises(dataclasses.FrozenInstanceError):
            definition.name = "other"

    def test_empty_name_reports_exactly_one_error(self):
        errors = validation_errors(name="")

        assert len(errors) == 1
        assert "cannot be the empty string" in errors[0]

    def test_invalid_name(self):
        errors = validation_errors(name="my model")

        assert len(errors) == 1
        assert '"my model"' in errors[0]

    def test_invalid_version(self):
        errors = validation_errors(version="1.0.x")

        assert len(errors) == 1
        assert "1.0.x" in errors[0]

    @pytest.mark.parametrize("name", ["in valid!", "valid\n"])
    def test_name_must_match_entirely(self, name):
        errors = validation_errors(name=name)

        assert len(errors) == 1
        assert "is not valid" in errors[0]

    @pytest.mark.parametrize("version", ["1.0.0-beta", "1.0.0\n"])
    def test_version_must_match_entirely(self, version):
        errors = validation_errors(version=version)

        assert len(errors) == 1
        assert "version strings must match" in errors[0]

    def test_independent_errors_are_all_reported(self):
        errors = validation_errors(
            name="",
            version="abc",
            protocol_version=ProtocolVersion.parse("model_definition-9.0.0"),
        )

        assert len(errors) == 3

    def test_unsupported_protocol_version(self):
        errors = validation_errors(
            protocol_version=ProtocolVersion.parse("model_definition-0.2.0")
        )

        assert len(errors) == 1
        assert "maximum protocol version" in errors[0]

    def test_missing_classes(self):
        errors = validation_errors(extractor_class=None, scorer_class=None)

        assert errors == [
            "An extractor class must be provided.",
            "A scorer class must be provided.",
        ]

    def test_summary_message(self):
        with pytest.raises(ModelDefinitionValidationException) as exc_info:
            make_definition(name="")

        assert exc_info.value.summary.startswith(
            "One or more errors occurred while validating your model definition."
        )


class TestPhaseClassRules:
    """Test the rules on extractor and scorer classes."""

    def test_extractor_must_implement_extractor(self):
        errors = validation_errors(extractor_class=NotAPhase)

        assert len(errors) == 1
        assert "does not implement the Extractor interface" in errors[0]

    def test_scorer_must_implement_scorer(self):
        errors = validation_errors(scorer_class=DoublingExtractor)

        assert len(errors) == 1
        assert "does not implement the Scorer interface" in errors[0]

    def test_both_class_errors_are_reported(self):
        errors = validation_errors(extractor_class=UpperCaseScorer, scorer_class=DoublingExtractor)

        assert len(errors) == 2

    def test_uninstantiable_extractor(self):
        errors = validation_errors(extractor_class=AbstractExtractor)

        assert len(errors) == 1
        assert errors[0].startswith(
            'Unable to create instance of extractor class "AbstractExtractor"'
        )

    def test_class_errors_skip_instantiation_checks(self):
        errors = validation_errors(extractor_class=AbstractExtractor, scorer_class=NotAPhase)

        assert len(errors) == 1
        assert "Scorer interface" in errors[0]

    def test_undeclared_input_fields(self):
        errors = validation_errors(scorer_class=UndeclaredScorer)

        assert len(errors) == 1
        assert "does not declare its input_fields" in errors[0]

    def test_extractor_cannot_read_all_fields(self):
        errors = validation_errors(extractor_class=AllInputExtractor)

        assert errors == ["Extractor uses ALL in its input fields, which is invalid."]

    def test_extractor_cannot_read_results(self):
        errors = validation_errors(extractor_class=ResultsInputExtractor)

        assert errors == ["Extractor uses RESULTS in its input fields, which is invalid."]

    def test_scorer_cannot_read_results(self):
        errors = validation_errors(scorer_class=ResultsInputScorer)

        assert errors == ["Scorer uses RESULTS in its input fields, which is invalid."]


class TestFieldCoverage:
    """Test that scorer inputs must be produced by the extractor."""

    def test_uncovered_scorer_input(self):
        errors = validation_errors(scorer_class=TwoFieldScorer)

        assert errors == [
            'Scorer\'s input field "missing" does not match any extractor output fields.'
        ]

    def test_results_output_exposes_input_names(self):
        definition = make_definition(
            extractor_class=PassThroughExtractor, scorer_class=FieldScorer
        )

        assert definition.extractor_class is PassThroughExtractor

    def test_results_output_does_not_expose_other_names(self):
        errors = validation_errors(extractor_class=PassThroughExtractor)

        assert len(errors) == 1
        assert '"feature"' in errors[0]

    def test_scorer_reading_all_fields_is_always_covered(self):
        make_definition(extractor_class=SplittingExtractor, scorer_class=AllFieldsScorer)

    def test_all_missing_fields_are_reported_in_scorer_order(self):
        errors = validation_errors(extractor_class=SplittingExtractor, scorer_class=TwoFieldScorer)

        assert len(errors) == 2
        assert '"feature"' in errors[0]
        assert '"missing"' in errors[1]


class TestTryCreate:
    """Test the non-raising constructor."""

    def test_valid(self):
        result = ModelDefinition.try_create(
            name="name",
            version="1.0.0",
            extractor_class=DoublingExtractor,
            scorer_class=UpperCaseScorer,
        )

        assert result.is_valid
        assert result.unwrap().name == "name"

    def test_invalid(self):
        result = ModelDefinition.try_create(
            name="",
            version="1.0.0",
            extractor_class=DoublingExtractor,
            scorer_class=UpperCaseScorer,
        )

        assert not result.is_valid
        assert result.value is None
        assert len(result.errors) == 1


class TestRevalidation:
    """Test that a valid definition stays valid when checked again."""

    def test_valid_definition_has_no_errors(self):
        definition = make_definition()

        errors = validate_model_definition(
            definition.name,
            definition.version,
            definition.extractor_class,
            definition.scorer_class,
            definition.protocol_version,
        )

        assert errors == []

    def test_no_overrides_gives_an_equal_definition(self):
        definition = make_definition()

        assert definition.with_new_settings() == definition


class TestWithNewSettings:
    """Test deriving modified definitions."""

    def test_overrides_and_keeps_the_rest(self):
        original = make_definition()
        updated = original.with_new_settings(name="other", version="2.0")

        assert updated.name == "other"
        assert updated.version == "2.0"
        assert updated.extractor_class is DoublingExtractor
        assert updated.protocol_version == original.protocol_version
        assert original.name == "name"

    def test_invalid_override_raises(self):
        with pytest.raises(ModelDefinitionValidationException):
            make_definition().with_new_settings(scorer_class=TwoFieldScorer)

    def test_protocol_version_cannot_be_overridden(self):
        with pytest.raises(TypeError):
            make_definition().with_new_settings(
                protocol_version=ProtocolVersion.parse("model_definition-0.1.0")
            )


class TestModelDefinitionJson:
    """Test JSON serialization and loading."""

    def test_round_trip(self, registry):
        definition = make_definition()

        assert ModelDefinition.from_json(definition.to_json(registry), registry) == definition

    def test_round_trip_with_unregistered_classes(self):
        registry = TypeRegistry()
        definition = make_definition(
            extractor_class=UnlistedExtractor, scorer_class=UnlistedScorer
        )

        loaded = ModelDefinition.from_json(definition.to_json(registry), registry)

        assert loaded == definition
        assert registry.resolve(registry.name_of(UnlistedScorer)) is UnlistedScorer

    def test_to_json_uses_registered_names(self, registry):
        document = json.loads(make_definition().to_json(registry))

        assert document == {
            "name": "name",
            "version": "1.0.0",
            "extractor_class": registry.name_of(DoublingExtractor),
            "scorer_class": registry.name_of(UpperCaseScorer),
            "protocol_version": "model_definition-0.1.0",
        }

    def test_to_json_is_deterministic(self, registry):
        definition = make_definition()

        assert definition.to_json(registry) == definition.to_json(registry)

    def test_from_json_document(self, registry, definition_document):
        definition = ModelDefinition.from_json(json.dumps(definition_document), registry)

        assert definition.extractor_class is DoublingExtractor
        assert definition.scorer_class is UpperCaseScorer

    def test_from_json_file(self, registry, definition_file):
        definition = ModelDefinition.from_json_file(definition_file, registry)

        assert definition.name == "name"

    def test_unknown_keys_are_ignored(self, registry, definition_document):
        definition_document["comment"] = "ignored"

        assert ModelDefinition.from_json(json.dumps(definition_document), registry).name == "name"

    def test_unregistered_class(self, registry, definition_document):
        definition_document["extractor_class"] = "nowhere.MissingExtractor"

        with pytest.raises(ModelDefinitionValidationException) as exc_info:
            ModelDefinition.from_json(json.dumps(definition_document), registry)

        causes = exc_info.value.causes
        assert len(causes) == 1
        assert isinstance(causes[0], TypeNotFound)
        assert causes[0].type_name == "nowhere.MissingExtractor"

    def test_unregistered_class_is_aggregated_with_other_errors(self, registry, definition_document):
        definition_document["scorer_class"] = "nowhere.MissingScorer"
        definition_document["name"] = ""

        with pytest.raises(ModelDefinitionValidationException) as exc_info:
            ModelDefinition.from_json(json.dumps(definition_document), registry)

        assert len(exc_info.value.causes) == 2

    def test_unsupported_version_is_rejected_before_schema(self, registry):
        document = {"protocol_version": "model_definition-0.2.0"}

        with pytest.raises(VersionUnsupported):
            ModelDefinition.from_json(json.dumps(document), registry)

    def test_invalid_version_format(self, registry, definition_document):
        definition_document["protocol_version"] = "v1"

        with pytest.raises(InvalidVersionFormat):
            ModelDefinition.from_json(json.dumps(definition_document), registry)

    def test_invalid_json(self, registry):
        with pytest.raises(MalformedDocument, match="not valid JSON"):
            ModelDefinition.from_json("{not json", registry)

    def test_undecodable_bytes(self, registry):
        with pytest.raises(MalformedDocument, match="not valid JSON"):
            ModelDefinition.from_json(b'{"name": "\xff"}', registry)

    def test_non_object_document(self, registry):
        with pytest.raises(MalformedDocument, match="JSON object"):
            ModelDefinition.from_json("[1, 2]", registry)

    def test_missing_field(self, registry, definition_document):
        del definition_document["scorer_class"]

        with pytest.raises(MalformedDocument, match="scorer_class"):
            ModelDefinition.from_json(json.dumps(definition_document), registry)
