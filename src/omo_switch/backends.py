"""Mode backends sharing one interface over profiles and presets.

`ProfileBackend` manages whole configuration files (profile mode) through
the global and project stores. `PresetBackend` manages named presets inside
the preset-mode document. Commands pick one with `get_backend` after the mode
has been resolved, and never branch on the mode themselves.
"""

import json
import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Generic
from typing import TypeVar

from .backups import clean_old_backups
from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .exceptions import ProfileExistsError
from .exceptions import ProfileNotFoundError
from .exceptions import ProjectRootNotFoundError
from .models import Mode
from .models import ProjectRc
from .models import RawConfig
from .models import Scope
from .models import ValidationResult
from .paths import TARGET_BASENAME
from .paths import ensure_config_dir
from .paths import get_config_target_dir
from .presets import PresetStore
from .project_store import ProjectStoreManager
from .schema import ensure_schema_available
from .store import StoreManager
from .utils import JSON_EXTENSIONS
from .utils import parse_jsonc
from .validator import PresetValidator
from .validator import Validator

logger = logging.getLogger(__name__)

HEADER_TEMPLATE = "// Profile Name: {name}, edited by omo-switch"


@dataclass
class Entry:
    """One listed profile or preset."""

    id: str
    name: str
    scope: Scope
    active: bool = False
    updated_at: str | None = None
    config_exists: bool = True
    agent_count: int | None = None


@dataclass
class ApplyResult:
    """Outcome of activating a profile or preset.

    Attributes:
        id: Activated id
        name: Display name written into the target header
        scope: Scope whose target was written
        source: Scope the content came from
        target_path: File the external application reads
        backup_path: Backup of the previous target, if there was one
    """

    id: str
    name: str
    scope: Scope
    source: Scope
    target_path: Path
    backup_path: Path | None = None


ValidatorT = TypeVar("ValidatorT", Validator, PresetValidator)


def _raise_if_invalid(result: ValidationResult) -> None:
    if not result.valid:
        raise ConfigValidationError("Configuration validation failed", result.errors)


class ConfigBackend(ABC, Generic[ValidatorT]):
    """Operations every mode supports at one scope.

    Args:
        scope: Scope the backend reads and writes
        validator_factory: Builds the schema validator on first use; None
            disables validation
    """

    mode: Mode

    def __init__(self, scope: Scope, validator_factory: Callable[[], ValidatorT] | None = None):
        self.scope = scope
        self._validator_factory = validator_factory
        self._validator: ValidatorT | None = None

    @property
    def validator(self) -> ValidatorT | None:
        if self._validator is None and self._validator_factory is not None:
            self._validator = self._validator_factory()
        return self._validator

    @abstractmethod
    def list(self) -> list[Entry]:
        """List entries at this scope."""

    @abstractmethod
    def get(self, identifier: str) -> dict[str, Any]:
        """Parsed document for identifier.

        Raises:
            ProfileNotFoundError: If identifier does not exist
        """

    @abstractmethod
    def add(
        self,
        identifier: str,
        content: str,
        extension: str = ".json",
        name: str | None = None,
        force: bool = False,
        activate: bool = False,
    ) -> bool:
        """Validate and store raw content under identifier.

        Returns:
            True if created, False if an existing entry was replaced
        """

    @abstractmethod
    def get_active(self) -> str | None:
        """Active id at this scope, if any."""

    @abstractmethod
    def render(self, identifier: str) -> str:
        """Human-readable description followed by the stored content."""

    @abstractmethod
    def remove(self, identifier: str) -> None:
        """Delete identifier, clearing the active selection if it pointed at it."""

    @abstractmethod
    def activate(self, identifier: str) -> ApplyResult:
        """Make identifier the active entry and write the target file."""


class ProfileBackend(ConfigBackend[Validator]):
    """Profile mode: one file per profile, copied onto the target on apply.

    Project scope looks up project profiles first and falls back to the
    global store, so a global profile can be applied to a project.
    """

    mode = Mode.PROFILE

    def __init__(
        self,
        scope: Scope,
        store: StoreManager,
        project_store: ProjectStoreManager | None = None,
        validator_factory: Callable[[], Validator] | None = None,
    ):
        super().__init__(scope, validator_factory)
        if scope == Scope.PROJECT and project_store is None:
            raise ProjectRootNotFoundError("No .opencode/ directory found in parent directories.")
        self.store = store
        self.project_store = project_store

    # ===== Lookup =====

    def _find_project_id(self, identifier: str) -> str | None:
        if self.project_store is None:
            return None
        profile_ids = self.project_store.list_profiles()
        if identifier in profile_ids:
            return identifier

        lowered = identifier.lower()
        for profile_id in profile_ids:
            if profile_id.lower() == lowered:
                return profile_id
        return None

    def _locate(self, identifier: str) -> tuple[str, str, RawConfig, Scope]:
        """Find raw content for identifier.

        Returns:
            Tuple of (id, name, raw config, source scope)

        Raises:
            ProfileNotFoundError: If no scope knows the identifier
            ConfigFileError: If the index knows it but the file is missing
        """
        if self.scope == Scope.PROJECT:
            project_id = self._find_project_id(identifier)
            if project_id is not None:
                raw = self.project_store.get_profile_config_raw(project_id)
                if raw is not None:
                    profile = self.store.find_profile(project_id)
                    return project_id, profile.name if profile else project_id, raw, Scope.PROJECT

        self.store.sync_profiles()
        profile = self.store.find_profile(identifier)
        if profile is None:
            raise ProfileNotFoundError(identifier, self.scope.value)

        raw = self.store.get_profile_config_raw(profile.id)
        if raw is None:
            raise ConfigFileError(f"Profile '{identifier}' exists in index but config file is missing.")
        return profile.id, profile.name, raw, Scope.USER

    # ===== Interface =====

    def list(self) -> list[Entry]:
        if self.scope == Scope.PROJECT:
            active = self.project_store.get_active_profile_id()
            return [
                Entry(id=profile_id, name=profile_id, scope=Scope.PROJECT, active=profile_id == active)
                for profile_id in self.project_store.list_profiles()
            ]

        self.store.sync_profiles()
        index = self.store.load_index()
        return [
            Entry(
                id=profile.id,
                name=profile.name,
                scope=Scope.USER,
                active=profile.id == index.active_profile_id,
                updated_at=profile.updated_at,
                config_exists=self.store.config_exists(profile.id),
            )
            for profile in index.profiles
        ]

    def get(self, identifier: str) -> dict[str, Any]:
        _, _, raw, _ = self._locate(identifier)
        return parse_jsonc(raw.content, raw.path)

    def get_active(self) -> str | None:
        if self.scope == Scope.PROJECT:
            return self.project_store.get_active_profile_id()
        return self.store.get_active_profile_id()

    def render(self, identifier: str) -> str:
        profile_id, name, raw, source = self._locate(identifier)
        lines = [f"Profile: {name} ({profile_id}) [{source.value}]"]
        if source == Scope.USER:
            profile = self.store.find_profile(profile_id)
            lines.append(f"Created: {profile.created_at}")
            lines.append(f"Updated: {profile.updated_at}")
        else:
            lines.append(f"Project: {self.project_store.get_project_root()}")
        lines.append("-" * 40)
        lines.append(raw.content)
        return "\n".join(lines)

    def add(
        self,
        identifier: str,
        content: str,
        extension: str = ".json",
        name: str | None = None,
        force: bool = False,
        activate: bool = False,
    ) -> bool:
        if extension not in JSON_EXTENSIONS:
            raise ConfigFileError(f"Invalid file extension: {extension}. Only .json and .jsonc files are supported")

        config = parse_jsonc(content)
        if self.validator is not None:
            _raise_if_invalid(self.validator.validate(config))

        if self.scope == Scope.USER:
            self.store.ensure_directories()
            _, created = self.store.import_profile(
                identifier, name or identifier, content, extension, force=force, activate=activate
            )
            return created

        self.project_store.ensure_directories()
        created = not self.project_store.config_exists(identifier)
        if not created:
            if not force:
                raise ProfileExistsError(
                    f"Profile with id '{identifier}' already exists in project. Use --force to overwrite."
                )
            self.project_store.delete_profile_config(identifier)

        self.project_store.save_profile_config_raw(identifier, content, extension)
        if activate:
            self.project_store.set_active_profile(identifier)
        return created

    def remove(self, identifier: str) -> None:
        if self.scope == Scope.PROJECT:
            self.project_store.delete_profile(identifier)
        else:
            self.store.delete_profile(identifier)

    def activate(self, identifier: str) -> ApplyResult:
        """Apply a profile: validate, back up the target, write it, record it.

        Raises:
            ProfileNotFoundError: If the profile does not exist
            ConfigFileError: If the stored content is missing or unparseable
            ConfigValidationError: If the content fails validation; nothing
                is written in that case
        """
        profile_id, name, raw, source = self._locate(identifier)
        config = parse_jsonc(raw.content, raw.path)
        if self.validator is not None:
            _raise_if_invalid(self.validator.validate(config))

        if self.scope == Scope.PROJECT:
            self.project_store.ensure_directories()
            target_path = self.project_store.get_target_path()
            backup_path = self.project_store.create_backup(target_path)
            backups_dir = self.project_store.get_backups_path()
        else:
            target_dir = get_config_target_dir().dir
            target_path = target_dir / f"{TARGET_BASENAME}.jsonc"
            backup_path = None
            for extension in JSON_EXTENSIONS:
                existing = target_dir / f"{TARGET_BASENAME}{extension}"
                if existing.exists():
                    backup_path = self.store.create_backup(existing)
                    break
            backups_dir = self.store.get_backups_path()

        clean_old_backups(backups_dir)

        ensure_config_dir(target_path)
        header = HEADER_TEMPLATE.format(name=name)
        target_path.write_text(f"{header}\n{raw.content}", encoding="utf-8")

        if self.scope == Scope.PROJECT:
            rc = self.project_store.load_rc() or ProjectRc()
            rc.active_profile_id = profile_id
            self.project_store.save_rc(rc)
        else:
            self.store.set_active_profile(profile_id)

        logger.info(f"Applied profile '{profile_id}' from {source.value} scope to {target_path}")
        return ApplyResult(
            id=profile_id,
            name=name,
            scope=self.scope,
            source=source,
            target_path=target_path,
            backup_path=backup_path,
        )


class PresetBackend(ConfigBackend[PresetValidator]):
    """Preset mode: named presets inside the scope's preset document."""

    mode = Mode.PRESET

    def __init__(
        self, scope: Scope, presets: PresetStore, validator_factory: Callable[[], PresetValidator] | None = None
    ):
        super().__init__(scope, validator_factory)
        self.presets = presets

    def list(self) -> list[Entry]:
        active = self.presets.get_active_preset()
        return [
            Entry(
                id=name,
                name=name,
                scope=self.scope,
                active=name == active,
                agent_count=self.presets.get_preset_agent_count(name),
            )
            for name in self.presets.list_presets()
        ]

    def get(self, identifier: str) -> dict[str, Any]:
        preset = self.presets.get_preset(identifier)
        if preset is None:
            raise ProfileNotFoundError(identifier, self.scope.value)
        return preset

    def add(
        self,
        identifier: str,
        content: str,
        extension: str = ".json",
        name: str | None = None,
        force: bool = False,
        activate: bool = False,
    ) -> bool:
        preset = parse_jsonc(content)
        if self.validator is not None:
            _raise_if_invalid(self.validator.validate_preset(preset))

        created = self.presets.add_preset(identifier, preset, force=force)
        if activate:
            self.activate(identifier)
        return created

    def get_active(self) -> str | None:
        return self.presets.get_active_preset()

    def render(self, identifier: str) -> str:
        preset = self.get(identifier)
        return "\n".join(
            [
                f"Preset: {identifier} [{self.scope.value}]",
                f"Agents: {len(preset)}",
                "-" * 40,
                json.dumps(preset, indent=2, ensure_ascii=False),
            ]
        )

    def remove(self, identifier: str) -> None:
        self.presets.remove_preset(identifier)

    def activate(self, identifier: str) -> ApplyResult:
        if self.presets.get_preset(identifier) is None:
            raise ProfileNotFoundError(identifier, self.scope.value)
        config = self.presets.load_config()
        if self.validator is not None:
            _raise_if_invalid(self.validator.validate({**config, "preset": identifier}))

        backup_path = self.presets.set_active_preset(identifier)
        clean_old_backups(self.presets.backups_path)

        return ApplyResult(
            id=identifier,
            name=identifier,
            scope=self.scope,
            source=self.scope,
            target_path=self.presets.get_target_path(),
            backup_path=backup_path,
        )


def get_backend(
    mode: Mode,
    scope: Scope,
    project_root: Path | None = None,
    store: StoreManager | None = None,
    validate: bool = True,
    offline: bool = False,
) -> ConfigBackend:
    """Build the backend for a resolved mode and scope.

    Args:
        mode: Effective mode for this invocation
        scope: Target scope
        project_root: Project root, required for PROJECT scope
        store: Global store (default: platform store root)
        validate: Validate documents against the mode's schema
        offline: Never download schemas; use cache or bundled copies

    Raises:
        ProjectRootNotFoundError: If PROJECT scope is requested without a root
    """
    store = store or StoreManager()
    if scope == Scope.PROJECT and project_root is None:
        raise ProjectRootNotFoundError("No .opencode/ directory found in parent directories.")

    if mode == Mode.PRESET:
        factory = (lambda: PresetValidator(ensure_schema_available(store, Mode.PRESET, offline))) if validate else None
        presets = PresetStore(scope, project_root=project_root, store_paths=store.paths)
        return PresetBackend(scope, presets, validator_factory=factory)

    factory = (lambda: Validator(ensure_schema_available(store, Mode.PROFILE, offline))) if validate else None
    project_store = ProjectStoreManager(project_root) if project_root is not None else None
    return ProfileBackend(scope, store, project_store=project_store, validator_factory=factory)
