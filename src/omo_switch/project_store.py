"""Project-local profile store.

Profiles at project scope are identified solely by the file stem of their raw
config under `<project>/.opencode/omo-configs/`. There is no metadata index;
the active selection lives in the `.omorc` run-control record.
"""

import logging
from pathlib import Path

from .exceptions import ProfileNotFoundError
from .models import ProjectRc
from .models import RawConfig
from .paths import OPENCODE_DIR
from .paths import ensure_project_dirs
from .paths import get_project_backups_path
from .paths import get_project_configs_path
from .paths import get_project_rc_path
from .paths import get_project_target_path
from .store import copy_to_backup
from .store import list_config_ids
from .store import resolve_config_file
from .utils import JSON_EXTENSIONS
from .utils import read_json_file
from .utils import write_json_file

logger = logging.getLogger(__name__)

GITIGNORE_ENTRY = "backups/"


def load_project_rc(project_root: Path) -> ProjectRc | None:
    """Load `.omorc` if it exists.

    Returns:
        The rc record, or None when the file is absent or malformed
    """
    rc_path = get_project_rc_path(project_root)
    data = read_json_file(rc_path)
    if data is None:
        return None

    try:
        return ProjectRc.from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Ignoring malformed run-control file {rc_path}: {e}")
        return None


def save_project_rc(project_root: Path, rc: ProjectRc) -> None:
    write_json_file(get_project_rc_path(project_root), rc.to_dict())


class ProjectStoreManager:
    """Manages profiles stored inside a project's `.opencode/` directory.

    Args:
        project_root: Directory containing (or that will contain) `.opencode/`
    """

    def __init__(self, project_root: Path | str):
        self.project_root = Path(project_root)
        self.configs_path = get_project_configs_path(self.project_root)
        self.target_path = get_project_target_path(self.project_root)
        self.rc_path = get_project_rc_path(self.project_root)
        self.backups_path = get_project_backups_path(self.project_root)

    def get_project_root(self) -> Path:
        return self.project_root

    def get_configs_path(self) -> Path:
        return self.configs_path

    def get_target_path(self) -> Path:
        return self.target_path

    def get_rc_path(self) -> Path:
        return self.rc_path

    def get_backups_path(self) -> Path:
        return self.backups_path

    def ensure_directories(self) -> None:
        """Create the project directories and keep backups out of version control."""
        ensure_project_dirs(self.project_root)
        self.backups_path.mkdir(parents=True, exist_ok=True)
        self._ensure_gitignore()

    def _ensure_gitignore(self) -> None:
        gitignore = self.project_root / OPENCODE_DIR / ".gitignore"

        if not gitignore.exists():
            gitignore.write_text(f"{GITIGNORE_ENTRY}\n", encoding="utf-8")
            return

        content = gitignore.read_text(encoding="utf-8")
        if GITIGNORE_ENTRY in content.splitlines():
            return

        separator = "" if not content or content.endswith("\n") else "\n"
        gitignore.write_text(f"{content}{separator}{GITIGNORE_ENTRY}\n", encoding="utf-8")
        logger.debug(f"Added {GITIGNORE_ENTRY} to {gitignore}")

    # ===== Run Control =====

    def load_rc(self) -> ProjectRc | None:
        return load_project_rc(self.project_root)

    def save_rc(self, rc: ProjectRc) -> None:
        save_project_rc(self.project_root, rc)

    def get_active_profile_id(self) -> str | None:
        rc = self.load_rc()
        return rc.active_profile_id if rc else None

    def set_active_profile(self, profile_id: str | None) -> None:
        """Record the active project profile, preserving any type override.

        Raises:
            ProfileNotFoundError: If no config file exists for the id
        """
        if profile_id is not None and not self.config_exists(profile_id):
            raise ProfileNotFoundError(profile_id, "project")

        rc = self.load_rc() or ProjectRc()
        rc.active_profile_id = profile_id
        self.save_rc(rc)
        logger.info(f"Set active project profile to {profile_id!r} in {self.project_root}")

    # ===== Raw Configs =====

    def get_profile_config_path(self, profile_id: str) -> Path | None:
        return resolve_config_file(self.configs_path, profile_id)

    def config_exists(self, profile_id: str) -> bool:
        return self.get_profile_config_path(profile_id) is not None

    def get_profile_config_raw(self, profile_id: str) -> RawConfig | None:
        config_path = self.get_profile_config_path(profile_id)
        if config_path is None:
            return None
        return RawConfig(path=config_path, content=config_path.read_text(encoding="utf-8"))

    def save_profile_config_raw(self, profile_id: str, content: str, extension: str) -> Path:
        self.ensure_directories()
        config_path = self.configs_path / f"{profile_id}{extension}"
        config_path.write_text(content, encoding="utf-8")
        logger.info(f"Saved project profile config {config_path}")
        return config_path

    def list_profiles(self) -> list[str]:
        """Profile ids in this project; `a.json` and `a.jsonc` count once."""
        return list_config_ids(self.configs_path)

    def delete_profile_config(self, profile_id: str) -> bool:
        deleted = False
        for extension in JSON_EXTENSIONS:
            config_path = self.configs_path / f"{profile_id}{extension}"
            if config_path.exists():
                config_path.unlink()
                deleted = True
        return deleted

    def delete_profile(self, profile_id: str) -> None:
        """Delete a project profile and clear it from `.omorc` if active.

        Raises:
            ProfileNotFoundError: If no config file exists for the id
        """
        if not self.delete_profile_config(profile_id):
            raise ProfileNotFoundError(profile_id, "project")

        rc = self.load_rc()
        if rc is not None and rc.active_profile_id == profile_id:
            rc.active_profile_id = None
            self.save_rc(rc)

        logger.info(f"Deleted project profile '{profile_id}' from {self.project_root}")

    def create_backup(self, source_path: Path) -> Path | None:
        return copy_to_backup(Path(source_path), self.backups_path)
