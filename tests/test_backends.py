"""Tests for the mode backends: add, list, apply and remove per scope."""

import json
import re
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from omo_switch import ConfigFileError
from omo_switch import ConfigValidationError
from omo_switch import Mode
from omo_switch import ProfileExistsError
from omo_switch import ProfileNotFoundError
from omo_switch import ProjectRc
from omo_switch import ProjectRootNotFoundError
from omo_switch import ProjectStoreManager
from omo_switch import Scope
from omo_switch import StoreManager
from omo_switch import StorePaths
from omo_switch import get_backend
from omo_switch.backends import PresetBackend
from omo_switch.backends import ProfileBackend
from omo_switch.project_store import save_project_rc
from omo_switch.validator import Validator

DEFAULT_CONFIG = '{\n  // default agents\n  "agents": {"oracle": {"model": "gpt-5"}},\n}\n'
BACKUP_NAME = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z__oh-my-opencode\.jsonc$")


@pytest.fixture
def store():
    """Global store in a temp directory."""
    with TemporaryDirectory() as tmpdir:
        yield StoreManager(StorePaths.from_root(Path(tmpdir) / "store"))


class TestProfileBackendUser:
    """Test profile mode at user scope."""

    @pytest.fixture
    def backend(self, store):
        return get_backend(Mode.PROFILE, Scope.USER, store=store)

    def test_factory_builds_profile_backend(self, backend):
        """Test the factory picks the profile backend for profile mode."""
        assert isinstance(backend, ProfileBackend)
        assert backend.scope == Scope.USER

    def test_add_and_list(self, backend):
        """Test adding a profile and listing it."""
        assert backend.add("default", DEFAULT_CONFIG, extension=".jsonc", name="Default")
        entries = backend.list()
        assert [(e.id, e.name, e.active) for e in entries] == [("default", "Default", False)]
        assert entries[0].config_exists

    def test_add_rejects_bad_extension(self, backend):
        """Test only JSON dialect extensions are accepted."""
        with pytest.raises(ConfigFileError):
            backend.add("x", "{}", extension=".yaml")

    def test_add_rejects_invalid(self, backend, store):
        """Test schema-invalid content is not stored."""
        with pytest.raises(ConfigValidationError) as exc_info:
            backend.add("bad", '{"agents": {"oracle": {"temperature": 9}}}')
        assert exc_info.value.errors
        assert store.load_index().profiles == []

    def test_add_existing_requires_force(self, backend):
        """Test a duplicate id needs force."""
        backend.add("default", "{}")
        with pytest.raises(ProfileExistsError):
            backend.add("default", "{}")
        assert backend.add("default", "{}", force=True) is False

    def test_get_by_name(self, backend):
        """Test lookup by display name."""
        backend.add("default", DEFAULT_CONFIG, extension=".jsonc", name="My Default")
        assert backend.get("my default") == {"agents": {"oracle": {"model": "gpt-5"}}}

    def test_get_unknown(self, backend):
        """Test lookup of an unknown profile."""
        with pytest.raises(ProfileNotFoundError):
            backend.get("ghost")

    def test_apply_writes_header_and_backs_up(self, backend, store, config_home):
        """Test applying writes the header plus raw content and backs up the old target."""
        backend.add("default", DEFAULT_CONFIG, extension=".jsonc", name="Default")
        target = config_home / "opencode" / "oh-my-opencode.jsonc"
        target.parent.mkdir(parents=True)
        target.write_text("// previous\n{}")

        result = backend.activate("default")

        assert result.target_path == target
        assert target.read_text() == "// Profile Name: Default, edited by omo-switch\n" + DEFAULT_CONFIG
        assert BACKUP_NAME.match(result.backup_path.name)
        assert result.backup_path.parent == store.get_backups_path()
        assert result.backup_path.read_text() == "// previous\n{}"
        assert store.get_active_profile_id() == "default"
        assert backend.get_active() == "default"

    def test_apply_first_time_has_no_backup(self, backend, config_home):
        """Test the first apply has nothing to back up."""
        backend.add("default", "{}")
        result = backend.activate("default")
        assert result.backup_path is None
        assert (config_home / "opencode" / "oh-my-opencode.jsonc").exists()

    def test_apply_backs_up_strict_target(self, backend, config_home):
        """Test an existing `.json` target is backed up when no `.jsonc` exists."""
        backend.add("default", "{}")
        legacy = config_home / "opencode" / "oh-my-opencode.json"
        legacy.parent.mkdir(parents=True)
        legacy.write_text("{}")

        result = backend.activate("default")

        assert result.backup_path.name.endswith("__oh-my-opencode.json")
        assert result.target_path.name == "oh-my-opencode.jsonc"

    def test_apply_missing_file(self, backend, store):
        """Test an indexed profile whose file vanished cannot be applied."""
        backend.add("default", "{}")
        store.delete_profile_config("default")
        with pytest.raises(ConfigFileError):
            backend.activate("default")

    def test_apply_invalid_stored_content(self, backend, store, config_home):
        """Test validation failure at apply time leaves the target alone."""
        store.save_profile_config_raw("broken", '{"agents": []}', ".json")
        with pytest.raises(ConfigValidationError):
            backend.activate("broken")
        assert not (config_home / "opencode" / "oh-my-opencode.jsonc").exists()

    def test_apply_picks_up_untracked_files(self, backend, store):
        """Test a config dropped into configs/ can be applied by id."""
        store.ensure_directories()
        (store.get_configs_path() / "manual.json").write_text("{}")
        assert backend.activate("manual").id == "manual"

    def test_remove_active(self, backend, store):
        """Test removing the active profile clears the selection."""
        backend.add("default", "{}", activate=True)
        backend.remove("default")
        assert backend.list() == []
        assert backend.get_active() is None

    def test_render(self, backend):
        """Test the description header precedes the raw content."""
        backend.add("default", DEFAULT_CONFIG, extension=".jsonc", name="Default")
        lines = backend.render("default").splitlines()
        assert lines[0] == "Profile: Default (default) [user]"
        assert lines[1].startswith("Created: ")
        assert lines[2].startswith("Updated: ")
        assert lines[3] == "-" * 40
        assert "\n".join(lines[4:]) == DEFAULT_CONFIG.rstrip("\n")

    def test_validation_disabled(self, store):
        """Test validate=False skips schema checks entirely."""
        backend = get_backend(Mode.PROFILE, Scope.USER, store=store, validate=False)
        assert backend.validator is None
        assert backend.add("loose", '{"agents": []}')

    def test_injected_validator_built_once(self, store):
        """Test the validator factory runs on first use and its errors block the add."""
        built = []

        def factory():
            built.append(True)
            return Validator(None)

        backend = ProfileBackend(Scope.USER, store, validator_factory=factory)
        assert built == []

        with pytest.raises(ConfigValidationError) as exc_info:
            backend.add("x", "{}")
        with pytest.raises(ConfigValidationError):
            backend.add("y", "{}")

        assert exc_info.value.errors == ["Schema not found or not loaded"]
        assert built == [True]
        assert not store.config_exists("x")


class TestProfileBackendProject:
    """Test profile mode at project scope."""

    @pytest.fixture
    def backend(self, store, project_root):
        return get_backend(Mode.PROFILE, Scope.PROJECT, project_root=project_root, store=store)

    def test_requires_project_root(self, store):
        """Test project scope without a root is rejected."""
        with pytest.raises(ProjectRootNotFoundError):
            get_backend(Mode.PROFILE, Scope.PROJECT, store=store)
        with pytest.raises(ProjectRootNotFoundError):
            ProfileBackend(Scope.PROJECT, store)

    def test_add_and_list(self, backend, project_root):
        """Test project profiles are listed by file stem."""
        backend.add("team", "{}", activate=True)
        assert (project_root / ".opencode" / "omo-configs" / "team.json").exists()
        assert [(e.id, e.active, e.scope) for e in backend.list()] == [("team", True, Scope.PROJECT)]

    def test_add_existing_requires_force(self, backend, project_root):
        """Test a duplicate project id needs force, and force swaps dialects."""
        backend.add("team", "{}")
        with pytest.raises(ProfileExistsError):
            backend.add("team", "{}")

        assert backend.add("team", '{"a": 1}', extension=".jsonc", force=True) is False
        configs = project_root / ".opencode" / "omo-configs"
        assert sorted(p.name for p in configs.iterdir()) == ["team.jsonc"]

    def test_apply_project_profile(self, backend, project_root):
        """Test applying writes the project target and records the rc."""
        backend.add("team", DEFAULT_CONFIG, extension=".jsonc")
        result = backend.activate("team")

        target = project_root / ".opencode" / "oh-my-opencode.jsonc"
        assert result.target_path == target
        assert result.source == Scope.PROJECT
        assert target.read_text().startswith("// Profile Name: team, edited by omo-switch\n")
        assert ProjectStoreManager(project_root).get_active_profile_id() == "team"

    def test_apply_backs_up_into_project(self, backend, project_root):
        """Test the previous project target is backed up under the project."""
        backend.add("team", "{}")
        backend.activate("team")
        result = backend.activate("team")

        assert result.backup_path.parent == project_root / ".opencode" / "backups"
        assert BACKUP_NAME.match(result.backup_path.name)
        assert "backups/" in (project_root / ".opencode" / ".gitignore").read_text()

    def test_apply_global_profile_to_project(self, backend, store, project_root):
        """Test a global profile can be applied at project scope."""
        store.import_profile("shared", "Shared", "{}", ".json")
        result = backend.activate("Shared")

        assert result.source == Scope.USER
        assert result.id == "shared"
        assert (project_root / ".opencode" / "oh-my-opencode.jsonc").read_text().startswith(
            "// Profile Name: Shared, edited by omo-switch"
        )

    def test_project_profile_shadows_global(self, backend, store):
        """Test a project profile wins over a global one with the same id."""
        store.import_profile("team", "Team", '{"from": "global"}', ".json")
        backend.add("team", '{"from": "project"}')
        assert backend.get("team") == {"from": "project"}

    def test_apply_preserves_type_override(self, backend, project_root):
        """Test apply keeps a project type override in `.omorc`."""
        save_project_rc(project_root, ProjectRc(type=Mode.PROFILE))
        backend.add("team", "{}")
        backend.activate("team")

        rc = json.loads((project_root / ".opencode" / ".omorc").read_text())
        assert rc == {"activeProfileId": "team", "type": "omo"}

    def test_remove(self, backend):
        """Test removing a project profile."""
        backend.add("team", "{}", activate=True)
        backend.remove("team")
        assert backend.list() == []
        assert backend.get_active() is None
        with pytest.raises(ProfileNotFoundError):
            backend.remove("team")

    def test_render_project(self, backend, project_root):
        """Test project profiles render with the project root."""
        backend.add("team", "{}")
        lines = backend.render("team").splitlines()
        assert lines[0] == "Profile: team (team) [project]"
        assert lines[1] == f"Project: {project_root}"


class TestPresetBackend:
    """Test preset mode."""

    FAST = '{"orchestrator": {"model": "haiku"}, "oracle": {"model": "sonnet"}}'

    @pytest.fixture
    def backend(self, store):
        return get_backend(Mode.PRESET, Scope.USER, store=store)

    def test_factory_builds_preset_backend(self, backend):
        """Test the factory picks the preset backend for preset mode."""
        assert isinstance(backend, PresetBackend)

    def test_add_list_activate(self, backend, config_home):
        """Test the full preset lifecycle at user scope."""
        assert backend.add("fast", self.FAST)
        assert [(e.id, e.agent_count, e.active) for e in backend.list()] == [("fast", 2, False)]

        result = backend.activate("fast")

        target = config_home / "opencode" / "oh-my-opencode-slim.json"
        assert result.target_path == target
        assert json.loads(target.read_text())["preset"] == "fast"
        assert backend.get_active() == "fast"

    def test_activate_backs_up_document(self, backend, store):
        """Test activation backs up the preset document first."""
        backend.add("fast", self.FAST)
        result = backend.activate("fast")
        assert result.backup_path.parent == store.get_backups_path()
        assert result.backup_path.name.endswith("__oh-my-opencode-slim.json")

    def test_add_with_activate(self, backend):
        """Test add can activate in the same call."""
        backend.add("fast", self.FAST, activate=True)
        assert backend.get_active() == "fast"

    def test_add_invalid_preset(self, backend):
        """Test presets are validated against the preset definition."""
        with pytest.raises(ConfigValidationError):
            backend.add("bad", '{"oracle": {"temperature": 1}}')
        assert backend.list() == []

    def test_activate_unknown(self, backend):
        """Test activating an unknown preset."""
        with pytest.raises(ProfileNotFoundError):
            backend.activate("ghost")

    def test_remove(self, backend):
        """Test removing the active preset clears the pointer."""
        backend.add("fast", self.FAST, activate=True)
        backend.remove("fast")
        assert backend.get_active() is None
        with pytest.raises(ProfileNotFoundError):
            backend.get("fast")

    def test_render(self, backend):
        """Test preset rendering."""
        backend.add("fast", self.FAST)
        lines = backend.render("fast").splitlines()
        assert lines[0] == "Preset: fast [user]"
        assert lines[1] == "Agents: 2"
        assert json.loads("\n".join(lines[3:])) == json.loads(self.FAST)

    def test_project_scope(self, store, project_root):
        """Test project presets edit the project document."""
        backend = get_backend(Mode.PRESET, Scope.PROJECT, project_root=project_root, store=store)
        backend.add("fast", self.FAST, activate=True)
        document = json.loads((project_root / ".opencode" / "oh-my-opencode-slim.json").read_text())
        assert document["preset"] == "fast"


class TestEndToEnd:
    """Add, list and apply a profile in one pass."""

    def test_add_list_apply_default(self, store, config_home):
        """Test the default profile lands on the target with a header and a backup."""
        target = config_home / "opencode" / "oh-my-opencode.jsonc"
        target.parent.mkdir(parents=True)
        target.write_text("{}")

        backend = get_backend(Mode.PROFILE, Scope.USER, store=store)
        backend.add("default", '{"a":1}', extension=".json")
        assert "default" in store.load_index().ids()
        assert [entry.id for entry in backend.list()] == ["default"]

        result = backend.activate("default")

        assert target.read_text() == '// Profile Name: default, edited by omo-switch\n{"a":1}'
        backups = list(store.get_backups_path().iterdir())
        assert [b.name for b in backups] == [result.backup_path.name]
        assert BACKUP_NAME.match(backups[0].name)
