"""Shared fixtures: every test runs against a throwaway config home."""

from pathlib import Path

import httpx
import pytest

from omo_switch import paths
from omo_switch import schema


@pytest.fixture(autouse=True)
def config_home(tmp_path_factory, monkeypatch):
    """Point XDG_CONFIG_HOME at a temporary directory and force Unix path rules."""
    home = tmp_path_factory.mktemp("config-home")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.setattr(paths, "_is_windows", lambda: False)
    return home


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """Fail every schema download so the bundled copy is used."""

    def fail_download(url, *args, **kwargs):
        raise httpx.ConnectError(f"network disabled in tests: {url}")

    monkeypatch.setattr(schema, "download_file", fail_download)


@pytest.fixture
def project_root(tmp_path) -> Path:
    """A project directory containing the `.opencode/` marker."""
    root = tmp_path / "project"
    (root / ".opencode").mkdir(parents=True)
    return root
