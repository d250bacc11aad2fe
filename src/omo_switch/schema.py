"""Schema provider: local cache, remote download, bundled fallback."""

import logging
from pathlib import Path
from typing import Any

import httpx

from .exceptions import SchemaUnavailableError
from .models import Mode
from .store import StoreManager
from .validator import PRESET_SCHEMA_FILE_NAME
from .validator import SCHEMA_FILE_NAME

logger = logging.getLogger(__name__)

SCHEMA_URL = "https://raw.githubusercontent.com/code-yeongyu/oh-my-opencode/master/assets/oh-my-opencode.schema.json"
DOWNLOAD_TIMEOUT = 30

ASSETS_DIR = Path(__file__).parent / "assets"

# Preset mode has no published schema URL; it always uses the bundled copy.
SCHEMA_SOURCES: dict[Mode, tuple[str, str | None]] = {
    Mode.PROFILE: (SCHEMA_FILE_NAME, SCHEMA_URL),
    Mode.PRESET: (PRESET_SCHEMA_FILE_NAME, None),
}


def download_file(url: str, store: StoreManager, cache_dir: Path, file_name: str, meta: dict[str, Any]) -> Path:
    """Download url into cache_dir/file_name with a provenance sidecar.

    Raises:
        httpx.HTTPError: On network failure or an error status
    """
    with httpx.Client(timeout=DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
        response = client.get(url)
        response.raise_for_status()

    return store.save_cache_file(cache_dir, file_name, response.text, {**meta, "url": url})


def read_bundled_asset(name: str) -> str | None:
    asset = ASSETS_DIR / name
    if not asset.is_file():
        return None
    return asset.read_text(encoding="utf-8")


def _use_bundled(store: StoreManager, file_name: str) -> Path:
    bundled = read_bundled_asset(file_name)
    if bundled is None:
        raise SchemaUnavailableError(f"No bundled schema available for {file_name}")
    return store.save_cache_file(store.get_cache_schema_path(), file_name, bundled, {"source": "bundled"})


def ensure_schema_available(store: StoreManager, mode: Mode = Mode.PROFILE, offline: bool = False) -> Path:
    """Return a path to the schema for mode, fetching it when not cached.

    Order: cached copy, download (unless offline), bundled fallback.

    Raises:
        SchemaUnavailableError: If no source produced a schema
    """
    file_name, url = SCHEMA_SOURCES[mode]
    schema_path = store.get_cache_schema_path() / file_name
    if schema_path.exists():
        return schema_path

    if url and not offline:
        try:
            return download_file(url, store, store.get_cache_schema_path(), file_name, {"source": "github"})
        except httpx.HTTPError as e:
            logger.warning(f"Schema download failed, using bundled copy: {e}")

    return _use_bundled(store, file_name)


def refresh_schema(store: StoreManager, mode: Mode = Mode.PROFILE, offline: bool = False) -> Path:
    """Re-fetch the schema for mode.

    Online, a download failure propagates. Offline, an existing cached copy
    is kept, otherwise the bundled copy is installed.
    """
    file_name, url = SCHEMA_SOURCES[mode]
    store.ensure_directories()
    schema_path = store.get_cache_schema_path() / file_name

    if offline or url is None:
        if offline and schema_path.exists():
            return schema_path
        return _use_bundled(store, file_name)

    return download_file(url, store, store.get_cache_schema_path(), file_name, {"source": "github"})
