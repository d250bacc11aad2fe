"""JSON Schema validation of configuration documents."""

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from .exceptions import ConfigFileError
from .models import ValidationResult

logger = logging.getLogger(__name__)

SCHEMA_FILE_NAME = "oh-my-opencode.schema.json"
PRESET_SCHEMA_FILE_NAME = "oh-my-opencode-slim.schema.json"

_DRAFT_07 = "http://json-schema.org/draft-07/schema#"


def load_schema(schema_path: Path) -> dict[str, Any]:
    """Read and check a JSON Schema document.

    Raises:
        ConfigFileError: If the file is unreadable or not a valid schema
    """
    try:
        schema = json.loads(Path(schema_path).read_text(encoding="utf-8"))
        Draft7Validator.check_schema(schema)
    except (OSError, ValueError, SchemaError) as e:
        raise ConfigFileError(f"Failed to load schema {schema_path}: {e}") from e
    return schema


def _format_path(error: Any, root_label: str) -> str:
    if not error.absolute_path:
        return root_label
    return "/" + "/".join(str(part) for part in error.absolute_path)


def _run(validator: Draft7Validator, document: Any, root_label: str) -> ValidationResult:
    errors = sorted(validator.iter_errors(document), key=lambda e: list(map(str, e.absolute_path)))
    if not errors:
        return ValidationResult(valid=True)
    return ValidationResult(valid=False, errors=[f"{_format_path(e, root_label)}: {e.message}" for e in errors])


class Validator:
    """Validates configuration documents against a JSON Schema.

    Args:
        schema_path: Schema file; when missing every validation fails with
            a "Schema not found" error
    """

    def __init__(self, schema_path: Path | None = None):
        self._validator: Draft7Validator | None = None
        if schema_path is not None and Path(schema_path).exists():
            self._validator = Draft7Validator(load_schema(schema_path))

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate data, collecting every error as "<path>: <message>"."""
        if self._validator is None:
            return ValidationResult(valid=False, errors=["Schema not found or not loaded"])
        return _run(self._validator, data, "(root)")


class PresetValidator:
    """Validates preset-mode documents, single presets and single agents.

    Preset and agent validators are built from `definitions.presetConfig`
    and `definitions.agentConfig` of the full schema. Without them, any
    object is a valid preset and an agent only needs a string `model`.
    """

    def __init__(self, schema_path: Path):
        self.schema = load_schema(schema_path)
        definitions = self.schema.get("definitions", {})

        self._full = Draft7Validator(self.schema)

        preset_def = definitions.get("presetConfig")
        if preset_def is not None:
            preset_schema = {"$schema": _DRAFT_07, **preset_def, "definitions": definitions}
        else:
            preset_schema = {"type": "object", "additionalProperties": True}
        self._preset = Draft7Validator(preset_schema)

        agent_def = definitions.get("agentConfig")
        if agent_def is not None:
            agent_schema = {"$schema": _DRAFT_07, **agent_def, "definitions": definitions}
        else:
            agent_schema = {"type": "object", "properties": {"model": {"type": "string"}}, "required": ["model"]}
        self._agent = Draft7Validator(agent_schema)

    def validate(self, config: dict[str, Any]) -> ValidationResult:
        return _run(self._full, config, "/")

    def validate_preset(self, preset: dict[str, Any]) -> ValidationResult:
        return _run(self._preset, preset, "/")

    def validate_agent_config(self, agent: dict[str, Any]) -> ValidationResult:
        return _run(self._agent, agent, "/")
