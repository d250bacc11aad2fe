"""Path resolution for project roots, stores and target files.

Project roots are discovered by walking up from a start directory looking for
the `.opencode/` marker directory. Everything else here is a pure join off a
known root, kept in one place because the external application depends on
the exact file names.
"""

import logging
import os
import sys
from pathlib import Path

from .models import ConfigTargetDir
from .models import ConfigTargetPath
from .models import Scope
from .models import StorePaths

logger = logging.getLogger(__name__)

OPENCODE_DIR = ".opencode"
PROJECT_CONFIGS_DIR = "omo-configs"
PROJECT_TARGET_FILE = "oh-my-opencode.jsonc"
PROJECT_RC_FILE = ".omorc"
PROJECT_BACKUPS_DIR = "backups"

TARGET_BASENAME = "oh-my-opencode"
PRESET_TARGET_FILE = "oh-my-opencode-slim.json"
STORE_DIR_NAME = "omo-switch"


# ===== Project Root Discovery =====


def find_project_root(start_dir: Path | str | None = None) -> Path | None:
    """Walk up from start_dir looking for a `.opencode/` directory.

    Args:
        start_dir: Directory to start from (default: current working directory)

    Returns:
        The first ancestor (inclusive, up to and including the filesystem
        root) containing the marker directory, or None
    """
    current = Path(start_dir).resolve() if start_dir else Path.cwd()

    for candidate in (current, *current.parents):
        if (candidate / OPENCODE_DIR).is_dir():
            return candidate

    return None


def resolve_project_root(start_dir: Path | str | None = None) -> Path:
    """Same search as find_project_root, falling back to the start directory."""
    project_root = find_project_root(start_dir)
    if project_root is not None:
        return project_root
    return Path(start_dir).resolve() if start_dir else Path.cwd()


def get_project_configs_path(project_root: Path) -> Path:
    """Returns <project_root>/.opencode/omo-configs"""
    return Path(project_root) / OPENCODE_DIR / PROJECT_CONFIGS_DIR


def get_project_target_path(project_root: Path) -> Path:
    """Returns <project_root>/.opencode/oh-my-opencode.jsonc"""
    return Path(project_root) / OPENCODE_DIR / PROJECT_TARGET_FILE


def get_project_rc_path(project_root: Path) -> Path:
    """Returns <project_root>/.opencode/.omorc"""
    return Path(project_root) / OPENCODE_DIR / PROJECT_RC_FILE


def get_project_backups_path(project_root: Path) -> Path:
    return Path(project_root) / OPENCODE_DIR / PROJECT_BACKUPS_DIR


def ensure_project_dirs(project_root: Path) -> None:
    """Create `.opencode/` and `.opencode/omo-configs/` if missing."""
    get_project_configs_path(project_root).mkdir(parents=True, exist_ok=True)


# ===== User Locations =====


def _is_windows() -> bool:
    return sys.platform == "win32"


def _config_home() -> Path:
    """XDG config home on Unix, `%USERPROFILE%/.config` on Windows."""
    if _is_windows():
        return Path(os.environ.get("USERPROFILE") or Path.home()) / ".config"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"


def _windows_fallback_dir() -> Path:
    user_profile = Path(os.environ.get("USERPROFILE") or Path.home())
    app_data = os.environ.get("APPDATA")
    base = Path(app_data) if app_data else user_profile / "AppData" / "Roaming"
    return base / "opencode"


def get_store_paths() -> StorePaths:
    """Default location of the global store."""
    return StorePaths.from_root(_config_home() / STORE_DIR_NAME)


def get_opencode_config_dir() -> Path:
    """Preferred directory of the external application's user config."""
    return _config_home() / "opencode"


def _candidate_dirs() -> list[Path]:
    if _is_windows():
        return [get_opencode_config_dir(), _windows_fallback_dir()]
    return [get_opencode_config_dir()]


def find_existing_config_path() -> Path | None:
    """Find the applied user config.

    Priority: preferred directory before the Windows fallback directory, and
    within each directory `.jsonc` before `.json`.

    Returns:
        Path of the existing config or None if neither exists anywhere
    """
    for directory in _candidate_dirs():
        for extension in (".jsonc", ".json"):
            candidate = directory / f"{TARGET_BASENAME}{extension}"
            if candidate.exists():
                return candidate
    return None


def get_config_target_dir() -> ConfigTargetDir:
    """Directory for writing the user config; the caller decides the filename."""
    preferred = get_opencode_config_dir()
    existing = find_existing_config_path()
    if existing is not None:
        return ConfigTargetDir(dir=existing.parent, is_preferred=existing.parent == preferred)
    return ConfigTargetDir(dir=preferred, is_preferred=True)


def get_config_target_path() -> ConfigTargetPath:
    """Strict-dialect user target path.

    On Windows the fallback location is used only when a config already
    exists there and none exists at the preferred location.
    """
    preferred = get_opencode_config_dir() / f"{TARGET_BASENAME}.json"
    if not _is_windows():
        return ConfigTargetPath(path=preferred, is_preferred=True)

    fallback = _windows_fallback_dir() / f"{TARGET_BASENAME}.json"
    if preferred.exists() or not fallback.exists():
        return ConfigTargetPath(path=preferred, is_preferred=True)
    return ConfigTargetPath(path=fallback, is_preferred=False)


def ensure_config_dir(config_path: Path) -> None:
    Path(config_path).parent.mkdir(parents=True, exist_ok=True)


# ===== Preset Mode Targets =====


def get_preset_config_dir() -> Path:
    """User-scope directory of the preset-mode document."""
    return get_opencode_config_dir()


def get_preset_target_path(scope: Scope, project_root: Path | None = None) -> Path:
    """Target of the preset-mode document. Preset mode only uses `.json`.

    Args:
        scope: USER for the user config directory, PROJECT for `.opencode/`
        project_root: Required for PROJECT scope

    Raises:
        ValueError: If PROJECT scope is requested without a project root
    """
    if scope == Scope.USER:
        return get_preset_config_dir() / PRESET_TARGET_FILE
    if project_root is None:
        raise ValueError("project_root is required for project scope")
    return Path(project_root) / OPENCODE_DIR / PRESET_TARGET_FILE
