"""Deep merge and structural diff of configuration documents.

Both functions share one classification boundary: only plain dictionaries
are merged (and diffed) key by key. Lists, scalars and None are atomic
values that the overriding side replaces outright.
"""

import copy
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import click

INLINE_WIDTH = 60
INDENT = "  "

_MISSING: Any = object()


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries with overlay precedence.

    Recursively merges nested dictionaries. Non-dict values in overlay
    completely replace corresponding values in base; lists are never merged
    element-wise. Every value in the result is a deep copy, so later
    mutation of either input cannot leak into the result.

    Args:
        base: Base dictionary
        overlay: Overlay dictionary (takes precedence)

    Returns:
        New merged dictionary (base and overlay are not modified)

    Examples:
        >>> base = {"a": 1, "b": {"c": 2, "d": 3}}
        >>> overlay = {"b": {"c": 20}, "e": 5}
        >>> deep_merge(base, overlay)
        {'a': 1, 'b': {'c': 20, 'd': 3}, 'e': 5}

        >>> deep_merge({"items": ["a", "b"]}, {"items": ["c"]})
        {'items': ['c']}
    """
    result: dict[str, Any] = {}

    for key, value in base.items():
        if key not in overlay:
            result[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(overlay[key], dict):
            # Both sides have a dict at this key - recurse
            result[key] = deep_merge(value, overlay[key])
        else:
            # Overlay wins - replace completely
            result[key] = copy.deepcopy(overlay[key])

    for key, value in overlay.items():
        if key not in base:
            result[key] = copy.deepcopy(value)

    return result


class DiffType(Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    MODIFIED = "modified"


@dataclass
class DiffLine:
    """Classification of one key of a merged document.

    Attributes:
        type: How the override side affected this key
        key: Key at its nesting level
        path: Dotted path from the document root
        base_value: Value on the base side (None when absent)
        override_value: Value on the override side (None when absent)
        merged_value: Value in the merged result
        children: Nested lines when both base and merged hold a dict here
    """

    type: DiffType
    key: str
    path: str
    base_value: Any = None
    override_value: Any = None
    merged_value: Any = None
    children: list["DiffLine"] | None = None


def _serialize(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def collect_diff_lines(
    base: dict[str, Any],
    merged: dict[str, Any],
    overrides: dict[str, Any],
    path_prefix: str = "",
) -> list[DiffLine]:
    """Classify every key of base, merged and overrides, sorted by key.

    Args:
        base: Lower-precedence document
        merged: Result of deep_merge(base, overrides)
        overrides: Higher-precedence document
        path_prefix: Dotted path of the current nesting level

    Returns:
        One DiffLine per key at this level, nested documents carrying children
    """
    lines: list[DiffLine] = []

    for key in sorted(set(base) | set(merged) | set(overrides)):
        path = f"{path_prefix}.{key}" if path_prefix else key
        base_value = base.get(key, _MISSING)
        merged_value = merged.get(key)
        override_value = overrides.get(key, _MISSING)
        in_base = base_value is not _MISSING
        in_override = override_value is not _MISSING

        line = DiffLine(
            type=DiffType.UNCHANGED,
            key=key,
            path=path,
            base_value=base_value if in_base else None,
            override_value=override_value if in_override else None,
            merged_value=merged_value,
        )

        if isinstance(base_value, dict) and isinstance(merged_value, dict):
            nested_overrides = override_value if isinstance(override_value, dict) else {}
            line.children = collect_diff_lines(base_value, merged_value, nested_overrides, path)
            if any(child.type != DiffType.UNCHANGED for child in line.children):
                line.type = DiffType.MODIFIED
        elif in_override and not in_base:
            line.type = DiffType.ADDED
        elif in_override and _serialize(base_value) != _serialize(override_value):
            line.type = DiffType.MODIFIED

        lines.append(line)

    return lines


def format_json_value(value: Any, indent_level: int) -> str:
    """Pretty-print a JSON value for diff output.

    Lists and dicts whose inline form is shorter than INLINE_WIDTH stay on one
    line; longer ones are broken over several lines indented one level
    deeper than indent_level.
    """
    if isinstance(value, list):
        if not value:
            return "[]"
        items = [format_json_value(item, indent_level + 1) for item in value]
        inline = ", ".join(items)
        if len(inline) < INLINE_WIDTH:
            return f"[{inline}]"
        inner = INDENT * (indent_level + 1)
        body = ",\n".join(f"{inner}{item}" for item in items)
        return f"[\n{body}\n{INDENT * indent_level}]"

    if isinstance(value, dict):
        if not value:
            return "{}"
        pairs = [f"{json.dumps(k, ensure_ascii=False)}: {format_json_value(v, indent_level + 1)}" for k, v in value.items()]
        inline = ", ".join(pairs)
        if len(inline) < INLINE_WIDTH:
            return f"{{ {inline} }}"
        inner = INDENT * (indent_level + 1)
        body = ",\n".join(f"{inner}{pair}" for pair in pairs)
        return f"{{\n{body}\n{INDENT * indent_level}}}"

    return json.dumps(value, ensure_ascii=False)


class _Palette:
    def __init__(self, color: bool):
        self.color = color

    def _style(self, text: str, fg: str) -> str:
        return click.style(text, fg=fg) if self.color else text

    def removed(self, text: str) -> str:
        return self._style(text, "red")

    def added(self, text: str) -> str:
        return self._style(text, "green")

    def note(self, text: str) -> str:
        return self._style(text, "bright_black")


def _format_diff_lines(
    lines: list[DiffLine],
    indent_level: int,
    palette: _Palette,
    base_label: str,
    override_label: str,
) -> list[str]:
    result: list[str] = []
    indent = INDENT * indent_level

    for position, line in enumerate(lines):
        comma = "" if position == len(lines) - 1 else ","
        key = json.dumps(line.key, ensure_ascii=False)

        if line.children and line.type == DiffType.MODIFIED:
            result.append(f"{indent}{key}: {{")
            result.extend(_format_diff_lines(line.children, indent_level + 1, palette, base_label, override_label))
            result.append(f"{indent}}}{comma}")
        elif line.type == DiffType.ADDED:
            value = format_json_value(line.merged_value, indent_level)
            result.append(palette.added(f"{indent}+ {key}: {value}{comma}") + palette.note(f" // [{override_label}]"))
        elif line.type == DiffType.MODIFIED:
            old = format_json_value(line.base_value, indent_level)
            new = format_json_value(line.merged_value, indent_level)
            result.append(palette.removed(f"{indent}- {key}: {old}") + palette.note(f" // [{base_label}]"))
            result.append(palette.added(f"{indent}+ {key}: {new}{comma}") + palette.note(f" // [{override_label}]"))
        else:
            value = format_json_value(line.merged_value, indent_level)
            result.append(f"{indent}{key}: {value}{comma}")

    return result


def generate_diff_output(
    base: dict[str, Any],
    merged: dict[str, Any],
    overrides: dict[str, Any],
    color: bool = False,
    base_label: str = "global",
    override_label: str = "project",
) -> str:
    """Render a merged document marking what the override side contributed.

    Added keys are prefixed with `+`, modified keys render twice: the
    superseded base value prefixed with `-` and the winning value prefixed
    with `+`. Both carry a `// [<side>]` annotation.

    Args:
        base: Lower-precedence document (e.g. the applied global config)
        merged: deep_merge(base, overrides)
        overrides: Higher-precedence document (e.g. the applied project config)
        color: Style lines with ANSI colors
        base_label: Annotation for the base side
        override_label: Annotation for the override side

    Returns:
        Multi-line text, deterministic for identical inputs
    """
    palette = _Palette(color)
    lines = [
        palette.note(f"// Merged configuration ({override_label} overrides {base_label})"),
        palette.note("// " + "-" * 50),
        "{",
    ]
    diff_lines = collect_diff_lines(base, merged, overrides)
    lines.extend(_format_diff_lines(diff_lines, 1, palette, base_label, override_label))
    lines.append("}")
    return "\n".join(lines)
