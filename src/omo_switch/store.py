"""Global profile store.

Layout under the store root (see StorePaths):

    index.json          StoreIndex (profiles, active id)
    configs/<id>.jsonc  raw profile content (.jsonc preferred over .json)
    backups/            timestamped copies of overwritten targets
    cache/schema/       downloaded schema files plus meta.json
"""

import logging
import shutil
from pathlib import Path
from typing import Any

from .exceptions import ConfigFileError
from .exceptions import ProfileExistsError
from .exceptions import ProfileNotFoundError
from .models import Profile
from .models import RawConfig
from .models import StoreIndex
from .models import StorePaths
from .models import SyncResult
from .paths import get_store_paths
from .utils import JSON_EXTENSIONS
from .utils import backup_timestamp
from .utils import now_iso
from .utils import parse_jsonc
from .utils import read_json_file
from .utils import write_json_file

logger = logging.getLogger(__name__)

BACKUP_SEPARATOR = "__"


def resolve_config_file(configs_dir: Path, profile_id: str) -> Path | None:
    """Resolve `<configs_dir>/<id>.jsonc`, else `.json`, else None."""
    for extension in JSON_EXTENSIONS:
        candidate = configs_dir / f"{profile_id}{extension}"
        if candidate.exists():
            return candidate
    return None


def list_config_ids(configs_dir: Path) -> list[str]:
    """Unique file stems of the JSON/JSONC files in a configs directory, sorted."""
    if not configs_dir.is_dir():
        return []

    ids = {entry.stem for entry in configs_dir.iterdir() if entry.is_file() and entry.suffix in JSON_EXTENSIONS}
    return sorted(ids)


def copy_to_backup(source_path: Path, backups_dir: Path) -> Path | None:
    """Copy a file into backups_dir under a timestamp-prefixed name.

    Args:
        source_path: File about to be overwritten
        backups_dir: Destination directory (created if missing)

    Returns:
        Path of the backup, or None if the source does not exist or could
        not be copied
    """
    source_path = Path(source_path)
    if not source_path.exists():
        return None

    timestamp = backup_timestamp()
    backup_path = backups_dir / f"{timestamp}{BACKUP_SEPARATOR}{source_path.name}"
    counter = 1
    # Same millisecond: `<timestamp>-1__<name>`, `<timestamp>-2__<name>`, ...
    while backup_path.exists():
        backup_path = backups_dir / f"{timestamp}-{counter}{BACKUP_SEPARATOR}{source_path.name}"
        counter += 1

    try:
        backups_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, backup_path)
    except OSError as e:
        logger.warning(f"Failed to back up {source_path}: {e}")
        return None

    logger.info(f"Backed up {source_path} to {backup_path}")
    return backup_path


class StoreManager:
    """Manages the user-global profile store.

    The store is the only writer of its index file. Every mutation of the
    profile list or the active selection is persisted before returning; there
    is no in-process caching, each operation re-reads the index.

    Args:
        paths: Store locations (default: platform store root)
    """

    def __init__(self, paths: StorePaths | None = None):
        self.paths = paths or get_store_paths()

    # ===== Paths =====

    def get_index_path(self) -> Path:
        return self.paths.index

    def get_configs_path(self) -> Path:
        return self.paths.configs

    def get_backups_path(self) -> Path:
        return self.paths.backups

    def get_cache_path(self) -> Path:
        return self.paths.cache

    def get_cache_schema_path(self) -> Path:
        return self.paths.cache_schema

    def ensure_directories(self) -> None:
        """Create the store root and its subdirectories if missing."""
        for directory in (
            self.paths.root,
            self.paths.configs,
            self.paths.backups,
            self.paths.cache_schema,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    # ===== Index =====

    def load_index(self) -> StoreIndex:
        """Load the store index.

        A missing index is the normal first-use state and yields an empty
        index. A corrupt index is treated the same way.

        Returns:
            Parsed index or a fresh empty index
        """
        data = read_json_file(self.paths.index)
        if data is None:
            return StoreIndex()

        try:
            return StoreIndex.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed store index {self.paths.index}: {e}")
            return StoreIndex()

    def save_index(self, index: StoreIndex) -> None:
        write_json_file(self.paths.index, index.to_dict())
        logger.debug(f"Saved store index with {len(index.profiles)} profiles")

    def find_profile(self, identifier: str, index: StoreIndex | None = None) -> Profile | None:
        """Find a profile by exact id, else by case-insensitive name.

        Args:
            identifier: Profile id or display name
            index: Already loaded index (default: load from disk)

        Returns:
            Matching profile or None
        """
        if index is None:
            index = self.load_index()

        profile = index.get(identifier)
        if profile is not None:
            return profile

        lowered = identifier.lower()
        for profile in index.profiles:
            if profile.name.lower() == lowered:
                return profile
        return None

    def get_active_profile_id(self) -> str | None:
        return self.load_index().active_profile_id

    def set_active_profile(self, profile_id: str | None) -> None:
        """Record the active profile.

        Args:
            profile_id: Id to activate, or None to clear

        Raises:
            ProfileNotFoundError: If the id is not in the index
        """
        index = self.load_index()
        if profile_id is not None and index.get(profile_id) is None:
            raise ProfileNotFoundError(profile_id, "user")

        index.active_profile_id = profile_id
        self.save_index(index)
        logger.info(f"Set active user profile to {profile_id!r}")

    # ===== Raw Configs =====

    def get_profile_config_path(self, profile_id: str) -> Path | None:
        return resolve_config_file(self.paths.configs, profile_id)

    def config_exists(self, profile_id: str) -> bool:
        return self.get_profile_config_path(profile_id) is not None

    def get_profile_config_raw(self, profile_id: str) -> RawConfig | None:
        config_path = self.get_profile_config_path(profile_id)
        if config_path is None:
            return None
        return RawConfig(path=config_path, content=config_path.read_text(encoding="utf-8"))

    def get_profile_config(self, profile_id: str) -> dict[str, Any] | None:
        """Parsed profile document, or None when no config file exists.

        Raises:
            ConfigFileError: If the stored content is not valid JSON/JSONC
        """
        raw = self.get_profile_config_raw(profile_id)
        if raw is None:
            return None
        return parse_jsonc(raw.content, raw.path)

    def save_profile_config_raw(self, profile_id: str, content: str, extension: str) -> Path:
        """Write content verbatim to `<configs>/<id><extension>`."""
        config_path = self.paths.configs / f"{profile_id}{extension}"
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(content, encoding="utf-8")
        logger.info(f"Saved profile config {config_path}")
        return config_path

    def delete_profile_config(self, profile_id: str) -> bool:
        """Remove every dialect file stored for a profile.

        Returns:
            True if at least one file was removed
        """
        deleted = False
        for extension in JSON_EXTENSIONS:
            config_path = self.paths.configs / f"{profile_id}{extension}"
            if config_path.exists():
                config_path.unlink()
                deleted = True
        return deleted

    # ===== Profile Lifecycle =====

    def import_profile(
        self,
        profile_id: str,
        name: str,
        content: str,
        extension: str,
        force: bool = False,
        activate: bool = False,
    ) -> tuple[Profile, bool]:
        """Add or replace a profile from raw configuration text.

        Args:
            profile_id: Profile id
            name: Display name
            content: Raw JSON/JSONC text, stored verbatim
            extension: `.json` or `.jsonc`
            force: Replace an existing profile with the same id
            activate: Mark the profile active after import

        Returns:
            Tuple of (profile, created) where created is False on re-import

        Raises:
            ConfigFileError: If content is not parseable
            ProfileExistsError: If the id exists and force is False
        """
        config = parse_jsonc(content)
        index = self.load_index()
        timestamp = now_iso()

        profile = index.get(profile_id)
        created = profile is None
        if profile is None:
            profile = Profile(id=profile_id, name=name, config=config, created_at=timestamp, updated_at=timestamp)
            index.profiles.append(profile)
        elif not force:
            raise ProfileExistsError(f"Profile with id '{profile_id}' already exists. Use --force to overwrite.")
        else:
            profile.name = name
            profile.config = config
            profile.updated_at = timestamp

        if activate:
            index.active_profile_id = profile_id

        self.save_index(index)
        self.delete_profile_config(profile_id)
        self.save_profile_config_raw(profile_id, content, extension)

        logger.info(f"{'Added' if created else 'Updated'} user profile '{profile_id}'")
        return profile, created

    def delete_profile(self, profile_id: str) -> None:
        """Remove a profile's index entry and files.

        Clears the active reference when the deleted profile was active.

        Raises:
            ProfileNotFoundError: If the id is not in the index
        """
        index = self.load_index()
        profile = index.get(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id, "user")

        index.profiles.remove(profile)
        if index.active_profile_id == profile_id:
            index.active_profile_id = None

        self.save_index(index)
        self.delete_profile_config(profile_id)
        logger.info(f"Deleted user profile '{profile_id}'")

    def sync_profiles(self) -> SyncResult:
        """Add index entries for config files the index does not know about.

        The index is only written when at least one entry was added, so
        repeated calls without filesystem changes are no-ops.

        Returns:
            SyncResult with newly added and already indexed ids
        """
        index = self.load_index()
        known = set(index.ids())
        result = SyncResult()
        timestamp = now_iso()

        for profile_id in list_config_ids(self.paths.configs):
            if profile_id in known:
                result.existing.append(profile_id)
                continue
            index.profiles.append(Profile(id=profile_id, name=profile_id, created_at=timestamp, updated_at=timestamp))
            result.added.append(profile_id)

        if result.added:
            self.save_index(index)
            logger.info(f"Discovered {len(result.added)} untracked profile(s): {', '.join(result.added)}")

        return result

    # ===== Backups and Cache =====

    def create_backup(self, source_path: Path) -> Path | None:
        """Back up source_path into the store's backups directory.

        Returns:
            Backup path, or None when there is nothing to back up
        """
        return copy_to_backup(Path(source_path), self.paths.backups)

    def save_cache_file(self, cache_dir: Path, filename: str, content: str, meta: dict[str, Any]) -> Path:
        """Write a cached asset plus a `meta.json` provenance sidecar.

        Args:
            cache_dir: Directory to write into
            filename: Bare file name (no directory components)
            content: Asset content
            meta: Provenance fields, e.g. {"source": "bundled"}

        Returns:
            Path of the written asset

        Raises:
            ConfigFileError: If filename would escape cache_dir
        """
        cache_dir = Path(cache_dir)
        target = cache_dir / filename
        if Path(filename).name != filename or filename in ("", ".", ".."):
            raise ConfigFileError(f"Refusing to write cache file outside {cache_dir}: {filename}")

        cache_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        write_json_file(cache_dir / "meta.json", {**meta, "updatedAt": now_iso()})
        logger.info(f"Cached {target} ({meta.get('source', 'unknown')})")
        return target
