"""Merged view of the applied global and project configurations."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import ConfigFileError
from .merge import deep_merge
from .merge import generate_diff_output
from .models import Mode
from .models import Scope
from .paths import find_existing_config_path
from .paths import get_preset_target_path
from .paths import get_project_target_path
from .utils import parse_jsonc

logger = logging.getLogger(__name__)


def _read_applied(path: Path | None) -> dict[str, Any] | None:
    if path is None or not path.exists():
        return None
    try:
        return parse_jsonc(path.read_text(encoding="utf-8"), path)
    except (OSError, ConfigFileError) as e:
        logger.warning(f"Ignoring unreadable applied config {path}: {e}")
        return None


def _project_target(project_root: Path | None) -> Path | None:
    if project_root is None:
        return None
    jsonc_target = get_project_target_path(project_root)
    for candidate in (jsonc_target, jsonc_target.with_suffix(".json")):
        if candidate.exists():
            return candidate
    return None


@dataclass
class MergedView:
    """Applied configurations of both scopes and their merge.

    Attributes:
        global_path: Applied user target, if any
        project_path: Applied project target, if any
        global_config: Parsed user target (None when absent or unparseable)
        project_config: Parsed project target (None when absent or unparseable)
    """

    global_path: Path | None
    project_path: Path | None
    global_config: dict[str, Any] | None
    project_config: dict[str, Any] | None

    @property
    def is_empty(self) -> bool:
        return self.global_config is None and self.project_config is None

    @property
    def merged(self) -> dict[str, Any]:
        return deep_merge(self.global_config or {}, self.project_config or {})

    def render(self, color: bool = False) -> str:
        """Annotated diff when both scopes are applied, else the single document."""
        if self.global_config is not None and self.project_config is not None:
            return generate_diff_output(self.global_config, self.merged, self.project_config, color=color)
        if self.project_config is not None:
            return "// Project config only (no global config applied)\n" + json.dumps(self.project_config, indent=2)
        if self.global_config is not None:
            return "// Global config only (no project config applied)\n" + json.dumps(self.global_config, indent=2)
        return ""


def _applied_paths(mode: Mode, project_root: Path | None) -> tuple[Path | None, Path | None]:
    if mode == Mode.PRESET:
        global_path = get_preset_target_path(Scope.USER)
        project_path = get_preset_target_path(Scope.PROJECT, project_root) if project_root is not None else None
        return global_path, project_path
    return find_existing_config_path(), _project_target(project_root)


def load_merged_view(project_root: Path | None = None, mode: Mode = Mode.PROFILE) -> MergedView:
    """Read the applied targets of both scopes.

    Args:
        project_root: Discovered project root, or None outside a project
        mode: Effective mode; selects profile targets or preset documents

    Returns:
        MergedView; unparseable targets are treated as not applied
    """
    global_path, project_path = _applied_paths(mode, project_root)
    global_config = _read_applied(global_path)
    project_config = _read_applied(project_path)
    return MergedView(
        global_path=global_path if global_config is not None else None,
        project_path=project_path if project_config is not None else None,
        global_config=global_config,
        project_config=project_config,
    )
