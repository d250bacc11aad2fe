"""Utility functions for omo-switch."""

import json
import logging
import re
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Any

import json5

from .exceptions import ConfigFileError

logger = logging.getLogger(__name__)

JSON_EXTENSIONS = (".jsonc", ".json")


def now_iso(now: datetime | None = None) -> str:
    """Format a UTC timestamp as ISO-8601 with milliseconds and a `Z` suffix.

    Examples:
        >>> now_iso(datetime(2024, 1, 1, tzinfo=timezone.utc))
        '2024-01-01T00:00:00.000Z'
    """
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def backup_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe variant of `now_iso` (`:` and `.` replaced by `-`).

    Examples:
        >>> backup_timestamp(datetime(2024, 1, 1, 12, 30, 5, tzinfo=timezone.utc))
        '2024-01-01T12-30-05-000Z'
    """
    return now_iso(now).replace(":", "-").replace(".", "-")


def parse_jsonc(content: str, source: Path | str | None = None) -> dict[str, Any]:
    """Parse JSON or JSONC text into a document.

    Args:
        content: Raw file content (comments and trailing commas allowed)
        source: Optional path used in the error message

    Returns:
        Parsed document

    Raises:
        ConfigFileError: If the content is not parseable or not an object
    """
    try:
        data = json5.loads(content)
    except ValueError as e:
        where = f" {source}" if source else ""
        raise ConfigFileError(f"Failed to parse{where} as JSON/JSONC: {e}") from e

    if not isinstance(data, dict):
        where = f" {source}" if source else ""
        raise ConfigFileError(f"Configuration{where} must be a JSON object")
    return data


def read_json_file(path: Path) -> Any | None:
    """Read a strict JSON state file.

    Missing or unparseable files yield None so that a broken local state file
    never blocks the caller. Filesystem errors propagate.
    """
    if not path.exists():
        return None

    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        logger.warning(f"Failed to read {path}: {e}")
        return None


def write_json_file(path: Path, data: Any) -> None:
    """Write a JSON state file with two-space indentation, creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def derive_id_from_name(name: str) -> str:
    """Derive a slug-like profile id from a display name.

    Examples:
        >>> derive_id_from_name("My Fancy Profile!")
        'my-fancy-profile'
    """
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:50]
