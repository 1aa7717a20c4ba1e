"""Tests for shared validation rules and results."""

import pytest

from modelspec.domain.errors import (
    AggregateValidationError,
    ModelDefinitionValidationException,
    ValidationException,
)
from modelspec.modeling.validation import (
    ValidationResult,
    check_name,
    check_unique,
    check_version_string,
    raise_if_invalid,
)


class TestNameRule:
    """Test the name rule."""

    @pytest.mark.parametrize("name", ["name", "my-model_2", "ABC"])
    def test_valid_names(self, name):
        assert check_name(name, subject="model definition") == []

    def test_empty_name_reports_once(self):
        errors = check_name("", subject="model definition")

        assert len(errors) == 1
        assert "cannot be the empty string" in errors[0].message

    @pytest.mark.parametrize("name", ["has space", "dot.ted", "semi;colon", "in valid!", "valid\n"])
    def test_invalid_characters(self, name):
        errors = check_name(name, subject="model definition")

        assert len(errors) == 1
        assert name in errors[0].message


class TestVersionRule:
    """Test the version string rule."""

    @pytest.mark.parametrize("version", ["1", "1.0", "1.0.0", "10.20.30.40"])
    def test_valid_versions(self, version):
        assert check_version_string(version, subject="model definition") == []

    @pytest.mark.parametrize("version", ["", "1.", ".1", "1.0.x", "v1", "1.0.0-beta", "1.0.0\n"])
    def test_invalid_versions(self, version):
        errors = check_version_string(version, subject="model definition")

        assert len(errors) == 1
        assert errors[0].message.startswith("Model definition version strings")


class TestUniqueRule:
    """Test the uniqueness rule."""

    def test_unique_names_pass(self):
        assert check_unique(["a", "b"], what="name", where="phase") == []

    def test_one_error_per_duplicated_name(self):
        errors = check_unique(["a", "b", "a", "b", "a", "c"], what="name", where="phase")

        assert len(errors) == 2
        assert '"a" is used 3 times' in errors[0].message
        assert '"b" is used 2 times' in errors[1].message


class TestValidationResult:
    """Test the result type returned by try_create."""

    def test_valid_result(self):
        result = ValidationResult(value=42)

        assert result.is_valid
        assert result.unwrap() == 42

    def test_invalid_result(self):
        error = AggregateValidationError([ValidationException("bad")], "Failed.")
        result = ValidationResult.from_error(error)

        assert not result.is_valid
        assert result.messages == ["bad"]
        with pytest.raises(AggregateValidationError):
            result.unwrap()


class TestAggregation:
    """Test raising and rendering aggregated errors."""

    def test_no_errors_does_not_raise(self):
        raise_if_invalid([], ModelDefinitionValidationException, "summary")

    def test_raises_with_every_cause(self):
        errors = [ValidationException("first"), ValidationException("second")]

        with pytest.raises(ModelDefinitionValidationException) as exc_info:
            raise_if_invalid(errors, ModelDefinitionValidationException, "Summary.")

        assert exc_info.value.messages == ["first", "second"]
        assert str(exc_info.value) == "Summary.\n  - first\n  - second"

    def test_validation_exceptions_compare_by_type_and_message(self):
        assert ValidationException("x") == ValidationException("x")
        assert ValidationException("x") != ValidationException("y")
