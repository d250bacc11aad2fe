"""Data models for omo-switch."""

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from typing import Any

STORE_VERSION = "1.0.0"


class Scope(Enum):
    """Storage scope enumeration.

    Determines which store (user-global or project-local) an operation targets.
    """

    USER = "user"
    PROJECT = "project"


class Mode(Enum):
    """Active configuration type.

    The on-disk values are the ones written to settings and `.omorc` files.
    """

    PROFILE = "omo"
    PRESET = "slim"


@dataclass
class Profile:
    """A named configuration document tracked by the global store index.

    Attributes:
        id: Unique slug-like identifier
        name: Display name, matched case-insensitively as a secondary key
        config: Parsed configuration document
        created_at: ISO-8601 creation timestamp
        updated_at: ISO-8601 timestamp of the last re-import
    """

    id: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "config": self.config,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            config=data.get("config") or {},
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class StoreIndex:
    """Index of the global store: known profiles and the active selection."""

    store_version: str = STORE_VERSION
    active_profile_id: str | None = None
    profiles: list[Profile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "storeVersion": self.store_version,
            "activeProfileId": self.active_profile_id,
            "profiles": [profile.to_dict() for profile in self.profiles],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreIndex":
        return cls(
            store_version=data.get("storeVersion", STORE_VERSION),
            active_profile_id=data.get("activeProfileId"),
            profiles=[Profile.from_dict(item) for item in data.get("profiles", [])],
        )

    def get(self, profile_id: str) -> Profile | None:
        """Get profile by exact id."""
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def ids(self) -> list[str]:
        return [profile.id for profile in self.profiles]


@dataclass
class ProjectRc:
    """Project run-control record stored in `.opencode/.omorc`.

    Attributes:
        active_profile_id: Id (file stem) of the active project profile
        type: Optional project-level mode override
    """

    active_profile_id: str | None = None
    type: Mode | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"activeProfileId": self.active_profile_id}
        if self.type is not None:
            data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectRc":
        raw_type = data.get("type")
        return cls(
            active_profile_id=data.get("activeProfileId"),
            type=Mode(raw_type) if raw_type is not None else None,
        )


@dataclass(frozen=True)
class RawConfig:
    """Literal text of a stored profile plus the file it was read from."""

    path: Path
    content: str


@dataclass
class SyncResult:
    """Outcome of reconciling the configs directory with the index."""

    added: list[str] = field(default_factory=list)
    existing: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StorePaths:
    """Paths making up the global store.

    Immutable configuration for where the global store lives. Callers inject
    these paths; `from_root` derives the standard layout under one directory.

    Attributes:
        root: Store root directory
        index: Index file (`index.json`)
        configs: Directory of raw profile files
        backups: Directory of timestamped backups
        cache: Directory of downloaded assets
        settings: Global settings file (`settings.json`)
    """

    root: Path
    index: Path
    configs: Path
    backups: Path
    cache: Path
    settings: Path

    @classmethod
    def from_root(cls, root: Path) -> "StorePaths":
        return cls(
            root=root,
            index=root / "index.json",
            configs=root / "configs",
            backups=root / "backups",
            cache=root / "cache",
            settings=root / "settings.json",
        )

    @property
    def cache_schema(self) -> Path:
        return self.cache / "schema"


@dataclass(frozen=True)
class ConfigTargetPath:
    """Target file the external application reads, and whether it is the preferred location."""

    path: Path
    is_preferred: bool


@dataclass(frozen=True)
class ConfigTargetDir:
    dir: Path
    is_preferred: bool


@dataclass
class GlobalSettings:
    """Contents of the global settings file."""

    active_type: Mode = Mode.PROFILE

    def to_dict(self) -> dict[str, Any]:
        return {"activeType": self.active_type.value}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
