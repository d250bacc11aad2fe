"""omo-switch: profile and preset switching for oh-my-opencode.

This library manages named configuration documents across two scopes:
- User global (a store under ~/.config/omo-switch, applied to
  ~/.config/opencode/oh-my-opencode.jsonc)
- Project (documents under <project>/.opencode/omo-configs, applied to
  <project>/.opencode/oh-my-opencode.jsonc)

Two configuration types are supported. Profile mode ("omo") stores whole
configuration files and copies one onto the target on apply. Preset mode
("slim") keeps named presets inside a single document per scope and flips
its active pointer.

Public API:
    StoreManager: Global profile store (index, configs, backups, cache)
    ProjectStoreManager: Project-local profile store and `.omorc`
    PresetStore: Preset-mode document of one scope
    SettingsManager: Global type setting and mode resolution
    get_backend: Mode-agnostic add/list/apply/remove for one scope
    deep_merge, generate_diff_output: Merging and diffing documents
    Scope, Mode: Enums for scopes and configuration types

Example:
    ```python
    from pathlib import Path
    from omo_switch import Mode, Scope, StorePaths, StoreManager, get_backend

    store = StoreManager(StorePaths.from_root(Path("/tmp/omo-store")))
    backend = get_backend(Mode.PROFILE, Scope.USER, store=store)

    # Import a profile, then write it to the user target
    backend.add("dev", Path("dev.jsonc").read_text(), extension=".jsonc")
    result = backend.activate("dev")
    print(result.target_path, result.backup_path)
    ```
"""

from .backends import ApplyResult
from .backends import ConfigBackend
from .backends import Entry
from .backends import get_backend
from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .exceptions import OmoSwitchError
from .exceptions import ProfileExistsError
from .exceptions import ProfileNotFoundError
from .exceptions import ProjectRootNotFoundError
from .exceptions import SchemaUnavailableError
from .merge import deep_merge
from .merge import generate_diff_output
from .models import Mode
from .models import Profile
from .models import ProjectRc
from .models import Scope
from .models import StoreIndex
from .models import StorePaths
from .presets import PresetStore
from .project_store import ProjectStoreManager
from .settings import SettingsManager
from .settings import resolve_mode
from .store import StoreManager
from .views import MergedView
from .views import load_merged_view

__version__ = "0.1.0"

__all__ = [
    "StoreManager",
    "ProjectStoreManager",
    "PresetStore",
    "SettingsManager",
    "resolve_mode",
    "get_backend",
    "ConfigBackend",
    "Entry",
    "ApplyResult",
    "MergedView",
    "load_merged_view",
    "deep_merge",
    "generate_diff_output",
    "Scope",
    "Mode",
    "Profile",
    "StoreIndex",
    "ProjectRc",
    "StorePaths",
    "OmoSwitchError",
    "ConfigFileError",
    "ConfigValidationError",
    "ProfileNotFoundError",
    "ProfileExistsError",
    "ProjectRootNotFoundError",
    "SchemaUnavailableError",
]
