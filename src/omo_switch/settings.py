"""Global settings and mode resolution.

The active configuration type (profile mode vs preset mode) has two sources:
a global default in the store's `settings.json` and an optional per-project
override in `.omorc`. It is resolved once per invocation and passed to the
code that needs it.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigFileError
from .models import GlobalSettings
from .models import Mode
from .models import ProjectRc
from .models import StorePaths
from .paths import get_store_paths
from .project_store import load_project_rc
from .project_store import save_project_rc
from .utils import write_json_file

logger = logging.getLogger(__name__)


def resolve_mode(project_mode: Mode | None, global_mode: Mode | None) -> Mode:
    """Resolve the effective mode.

    Resolution order:
    1. Project override
    2. Global default
    3. Mode.PROFILE
    """
    if project_mode is not None:
        return project_mode
    if global_mode is not None:
        return global_mode
    return Mode.PROFILE


class SettingsManager:
    """Reads and writes the global settings file.

    Args:
        paths: Store locations (default: platform store root)
    """

    def __init__(self, paths: StorePaths | None = None):
        self.paths = paths or get_store_paths()

    def get_settings_path(self) -> Path:
        return self.paths.settings

    def load_settings(self) -> GlobalSettings:
        """Load global settings, falling back to defaults.

        Returns:
            Settings with defaults for anything missing or unreadable
        """
        data = self._read_settings_file(self.paths.settings)
        if not isinstance(data, dict):
            return GlobalSettings()

        try:
            return GlobalSettings(active_type=Mode(data.get("activeType", Mode.PROFILE.value)))
        except ValueError as e:
            logger.warning(f"Ignoring invalid activeType in settings: {e}")
            return GlobalSettings()

    def save_settings(self, settings: GlobalSettings) -> None:
        existing = self._read_settings_file(self.paths.settings)
        data = existing if isinstance(existing, dict) else {}
        data.update(settings.to_dict())
        self._write_settings_file(self.paths.settings, data)

    def set_active_mode(self, mode: Mode) -> None:
        """Persist the global default mode."""
        settings = self.load_settings()
        settings.active_type = mode
        self.save_settings(settings)
        logger.info(f"Set global type to '{mode.value}'")

    def get_project_mode(self, project_root: Path | None) -> Mode | None:
        if project_root is None:
            return None
        rc = load_project_rc(project_root)
        return rc.type if rc else None

    def get_effective_mode(self, project_root: Path | None = None) -> Mode:
        """Effective mode for an invocation (project override > global default)."""
        return resolve_mode(self.get_project_mode(project_root), self.load_settings().active_type)

    def is_project_override(self, project_root: Path | None = None) -> bool:
        return self.get_project_mode(project_root) is not None

    def set_project_mode(self, project_root: Path, mode: Mode | None) -> bool:
        """Set or clear the project-level type override.

        Args:
            project_root: Project root containing `.opencode/`
            mode: Mode to set, or None to clear the override

        Returns:
            True if the rc file changed
        """
        rc = load_project_rc(project_root) or ProjectRc()
        if rc.type == mode:
            return False

        rc.type = mode
        save_project_rc(project_root, rc)
        logger.info(f"Set project type to {mode.value if mode else None!r} in {project_root}")
        return True

    # ===== Private Helpers =====

    def _read_settings_file(self, path: Path) -> dict[str, Any] | None:
        """Read the settings file.

        The file is JSON; `yaml.safe_load` parses it and also tolerates a
        hand-edited file in plain YAML.

        Args:
            path: Path to the settings file

        Returns:
            Parsed mapping or None if the file doesn't exist or is unreadable
        """
        if not path.exists():
            return None

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
                return data if data else {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to read settings from {path}: {e}")
            return None

    def _write_settings_file(self, path: Path, data: dict[str, Any]) -> None:
        """Write the settings file as two-space indented JSON.

        Raises:
            ConfigFileError: If write fails
        """
        try:
            write_json_file(path, data)
        except OSError as e:
            raise ConfigFileError(f"Failed to write settings to {path}: {e}") from e
