"""Preset store for the slim configuration type.

In preset mode the external application reads one document per scope
(`oh-my-opencode-slim.json`) that holds every named preset under `presets`
and the active preset name under `preset`. The store edits that document in
place and leaves every other key untouched. The document is the live file
the application reads: every write is preceded by a backup, and a document
that cannot be parsed is never rewritten.
"""

import logging
from pathlib import Path
from typing import Any

from .exceptions import ProfileExistsError
from .exceptions import ProfileNotFoundError
from .models import Scope
from .models import StorePaths
from .paths import get_preset_target_path
from .paths import get_project_backups_path
from .paths import get_store_paths
from .store import copy_to_backup
from .utils import parse_jsonc
from .utils import write_json_file

logger = logging.getLogger(__name__)

PRESETS_KEY = "presets"
ACTIVE_KEY = "preset"


class PresetStore:
    """Manages named presets inside a scope's preset-mode document.

    Args:
        scope: USER or PROJECT
        project_root: Required for PROJECT scope
        store_paths: Global store locations, used for user-scope backups
        target_path: Override of the document location
    """

    def __init__(
        self,
        scope: Scope,
        project_root: Path | None = None,
        store_paths: StorePaths | None = None,
        target_path: Path | None = None,
    ):
        self.scope = scope
        self.project_root = Path(project_root) if project_root else None
        self.target_path = target_path or get_preset_target_path(scope, self.project_root)
        if scope == Scope.PROJECT and self.project_root is not None:
            self.backups_path = get_project_backups_path(self.project_root)
        else:
            self.backups_path = (store_paths or get_store_paths()).backups

    def get_target_path(self) -> Path:
        return self.target_path

    def load_config(self) -> dict[str, Any]:
        """Load the preset document.

        Returns:
            Parsed document, or {} when the file does not exist

        Raises:
            ConfigFileError: If the file exists but is not a JSON/JSONC object
        """
        if not self.target_path.exists():
            return {}
        return parse_jsonc(self.target_path.read_text(encoding="utf-8"), self.target_path)

    def save_config(self, config: dict[str, Any]) -> Path | None:
        """Back up the current document, then write config over it.

        Returns:
            Path of the backup, or None if there was no document yet
        """
        backup_path = self.create_backup()
        write_json_file(self.target_path, config)
        return backup_path

    def _presets(self, config: dict[str, Any]) -> dict[str, Any]:
        presets = config.get(PRESETS_KEY)
        return presets if isinstance(presets, dict) else {}

    # ===== Presets =====

    def list_presets(self) -> list[str]:
        return sorted(self._presets(self.load_config()))

    def get_preset(self, name: str) -> dict[str, Any] | None:
        return self._presets(self.load_config()).get(name)

    def get_preset_agent_count(self, name: str) -> int:
        preset = self.get_preset(name)
        return len(preset) if isinstance(preset, dict) else 0

    def add_preset(self, name: str, preset: dict[str, Any], force: bool = False) -> bool:
        """Add or replace a preset.

        Args:
            name: Preset name
            preset: Agent name -> agent config mapping
            force: Replace an existing preset with the same name

        Returns:
            True if created, False if replaced

        Raises:
            ProfileExistsError: If the preset exists and force is False
        """
        config = self.load_config()
        presets = self._presets(config)
        created = name not in presets
        if not created and not force:
            raise ProfileExistsError(f"Preset '{name}' already exists. Use --force to overwrite.")

        presets[name] = preset
        config[PRESETS_KEY] = presets
        self.save_config(config)
        logger.info(f"{'Added' if created else 'Updated'} {self.scope.value} preset '{name}'")
        return created

    def remove_preset(self, name: str) -> None:
        """Remove a preset, clearing the active selection if it pointed at it.

        Raises:
            ProfileNotFoundError: If the preset does not exist
        """
        config = self.load_config()
        presets = self._presets(config)
        if name not in presets:
            raise ProfileNotFoundError(name, self.scope.value)

        del presets[name]
        config[PRESETS_KEY] = presets
        if config.get(ACTIVE_KEY) == name:
            del config[ACTIVE_KEY]
        self.save_config(config)
        logger.info(f"Removed {self.scope.value} preset '{name}'")

    # ===== Active Preset =====

    def get_active_preset(self) -> str | None:
        active = self.load_config().get(ACTIVE_KEY)
        return active if isinstance(active, str) else None

    def set_active_preset(self, name: str | None) -> Path | None:
        """Set or clear the active preset.

        Returns:
            Backup of the document as it was before the change

        Raises:
            ProfileNotFoundError: If name is not a known preset
        """
        config = self.load_config()
        if name is None:
            config.pop(ACTIVE_KEY, None)
        elif name not in self._presets(config):
            raise ProfileNotFoundError(name, self.scope.value)
        else:
            config[ACTIVE_KEY] = name

        backup_path = self.save_config(config)
        logger.info(f"Set active {self.scope.value} preset to {name!r}")
        return backup_path

    def create_backup(self) -> Path | None:
        return copy_to_backup(self.target_path, self.backups_path)
