"""Tests for JSON Schema validation."""

import json

import pytest

from omo_switch import ConfigFileError
from omo_switch.schema import ASSETS_DIR
from omo_switch.validator import PRESET_SCHEMA_FILE_NAME
from omo_switch.validator import SCHEMA_FILE_NAME
from omo_switch.validator import PresetValidator
from omo_switch.validator import Validator
from omo_switch.validator import load_schema

PROFILE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "agents": {"type": "object"},
        "disabled_hooks": {"type": "array", "items": {"type": "string"}},
    },
    "additionalProperties": False,
}


class TestValidator:
    """Test Validator class."""

    @pytest.fixture
    def schema_path(self, tmp_path):
        """Write a small profile schema."""
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(PROFILE_SCHEMA))
        return path

    def test_valid_document(self, schema_path):
        """Test a conforming document passes."""
        result = Validator(schema_path).validate({"agents": {}, "disabled_hooks": ["x"]})
        assert result.valid
        assert result.errors == []

    def test_errors_carry_paths(self, schema_path):
        """Test each failure is reported as '<path>: <message>'."""
        result = Validator(schema_path).validate({"disabled_hooks": ["ok", 3], "extra": True})
        assert not result.valid
        assert len(result.errors) == 2
        assert any(error.startswith("(root): ") for error in result.errors)
        assert any(error.startswith("/disabled_hooks/1: ") for error in result.errors)

    def test_missing_schema(self, tmp_path):
        """Test validation fails when the schema file does not exist."""
        result = Validator(tmp_path / "absent.json").validate({})
        assert not result.valid
        assert result.errors == ["Schema not found or not loaded"]

    def test_no_schema(self):
        """Test validation fails without a schema path."""
        assert not Validator().validate({}).valid

    def test_bundled_profile_schema(self):
        """Test the bundled profile schema accepts a typical config."""
        validator = Validator(ASSETS_DIR / SCHEMA_FILE_NAME)
        assert validator.validate({"agents": {"oracle": {"model": "gpt-5"}}}).valid
        assert not validator.validate({"agents": {"oracle": {"temperature": 5}}}).valid


class TestLoadSchema:
    """Test schema loading."""

    def test_unparseable(self, tmp_path):
        """Test a non-JSON schema file raises."""
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(ConfigFileError):
            load_schema(path)

    def test_invalid_schema(self, tmp_path):
        """Test a JSON document that is not a valid schema raises."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"type": 12}))
        with pytest.raises(ConfigFileError):
            load_schema(path)


class TestPresetValidator:
    """Test PresetValidator class."""

    @pytest.fixture
    def validator(self):
        """Validator over the bundled preset-mode schema."""
        return PresetValidator(ASSETS_DIR / PRESET_SCHEMA_FILE_NAME)

    def test_full_document(self, validator):
        """Test a full preset-mode document."""
        document = {"preset": "fast", "presets": {"fast": {"oracle": {"model": "m"}}}}
        assert validator.validate(document).valid

    def test_preset(self, validator):
        """Test single preset validation."""
        assert validator.validate_preset({"oracle": {"model": "m"}}).valid
        result = validator.validate_preset({"oracle": {"temperature": 1}})
        assert not result.valid
        assert result.errors[0].startswith("/oracle: ")

    def test_unknown_agent_rejected(self, validator):
        """Test presets only accept known agent names."""
        assert not validator.validate_preset({"nobody": {"model": "m"}}).valid

    def test_agent_config(self, validator):
        """Test single agent validation."""
        assert validator.validate_agent_config({"model": "m", "variant": "high"}).valid
        result = validator.validate_agent_config({})
        assert not result.valid
        assert result.errors[0].startswith("/: ")

    def test_fallbacks_without_definitions(self, tmp_path):
        """Test permissive preset and model-only agent rules without definitions."""
        path = tmp_path / "plain.json"
        path.write_text(json.dumps({"type": "object"}))
        validator = PresetValidator(path)

        assert validator.validate_preset({"anything": 1}).valid
        assert validator.validate_agent_config({"model": "m"}).valid
        assert not validator.validate_agent_config({"model": 1}).valid
