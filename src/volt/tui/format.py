"""Plain-text renderings of setting values for the content panel.

These return unstyled strings; callers escape them before embedding in
Rich markup.
"""

from __future__ import annotations

import json
from typing import Any

from ..schema import SettingType
from ..validator import is_number

CHECKED = "[✓]"
UNCHECKED = "[✗]"

# Identifying fields first, then the decision, then everything else.
_COLUMN_PRIORITY = {
    "tool": 0, "name": 0, "pattern": 0, "key": 0,
    "action": 1, "decision": 1, "type": 1,
}


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_value(setting_type: SettingType, value: Any) -> str:
    """One-line summary of *value* shaped by the setting's type."""
    if setting_type is SettingType.BOOLEAN:
        return CHECKED if value is True else UNCHECKED

    if setting_type in (SettingType.STRING, SettingType.STRING_ENUM):
        text = value if isinstance(value, str) else ""
        return f'"{text}"' if text else "(empty)"

    if setting_type is SettingType.NUMBER:
        return _format_number(value) if is_number(value) else "0"

    if setting_type is SettingType.ARRAY_STRING:
        items = value if isinstance(value, list) else []
        return "[" + ", ".join(v for v in items if isinstance(v, str)) + "]"

    if setting_type is SettingType.ARRAY_OBJECT:
        if not isinstance(value, list) or not value:
            return "[]"
        return f"[{len(value)} items]"

    if not isinstance(value, dict) or not value:
        return "{}"
    return f"{{{len(value)} keys}}"


def format_json_compact(value: Any) -> str:
    """Short rendering of an arbitrary JSON value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return CHECKED if value else UNCHECKED
    if isinstance(value, str):
        return f'"{value}"'
    if is_number(value):
        return json.dumps(value)
    if isinstance(value, list):
        return "[" + ", ".join(format_json_compact(v) for v in value) + "]"
    if isinstance(value, dict):
        return f"{{{len(value)} keys}}" if value else "{}"
    return str(value)


def format_cell(value: Any) -> str:
    """Table cell text: strings bare, everything else as JSON."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def collect_object_columns(items: list) -> list[str]:
    """Union of field names across *items*, identifying fields first.

    Returns an empty list unless every item is an object, in which case
    the caller should fall back to a plain list.
    """
    columns: list[str] = []
    for item in items:
        if not isinstance(item, dict):
            return []
        for key in item:
            if key not in columns:
                columns.append(key)
    # sort is stable, so first-seen order holds within a priority
    columns.sort(key=lambda name: _COLUMN_PRIORITY.get(name, 2))
    return columns
