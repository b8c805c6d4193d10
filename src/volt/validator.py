"""Type checks for candidate setting values.

``validate_value`` never raises and never touches the document: it returns
``None`` when the value is acceptable and a human-readable reason when it
is not. Keys outside the schema always pass.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from .schema import Schema, SettingType


_KIND_NAMES = {
    SettingType.BOOLEAN: "boolean",
    SettingType.STRING: "string",
    SettingType.STRING_ENUM: "string",
    SettingType.NUMBER: "number",
    SettingType.ARRAY_STRING: "array of strings",
    SettingType.ARRAY_OBJECT: "array of objects",
    SettingType.OBJECT: "object",
}


def describe_kind(setting_type: SettingType) -> str:
    """Name of the JSON kind a setting type expects, for messages."""
    return _KIND_NAMES[setting_type]


def is_number(value: Any) -> bool:
    # bool is an int subclass but a JSON boolean, not a number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _kind_ok(setting_type: SettingType, value: Any) -> bool:
    if setting_type is SettingType.BOOLEAN:
        return isinstance(value, bool)
    if setting_type in (SettingType.STRING, SettingType.STRING_ENUM):
        return isinstance(value, str)
    if setting_type is SettingType.NUMBER:
        return is_number(value)
    if setting_type is SettingType.ARRAY_STRING:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    if setting_type is SettingType.ARRAY_OBJECT:
        return isinstance(value, list) and all(isinstance(v, dict) for v in value)
    if setting_type is SettingType.OBJECT:
        return isinstance(value, dict)
    return False


def validate_value(schema: Schema, key: str, value: Any) -> Optional[str]:
    """Check *value* against the definition of *key*.

    Returns None if the value may be written, otherwise the rejection
    reason. Enum membership is checked against the named options only;
    the free-form Custom path never calls this check.
    """
    definition = schema.get(key)
    if definition is None:
        return None

    if not _kind_ok(definition.setting_type, value):
        return f"expected {describe_kind(definition.setting_type)} for key '{key}'"

    if definition.setting_type is SettingType.STRING_ENUM:
        options = definition.enum_options or ()
        if value not in options:
            return (
                f"invalid value '{value}' for '{key}', "
                f"expected one of: {', '.join(options)}"
            )

    return None


_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


def parse_number(text: str) -> Optional[int | float]:
    """Parse *text* as an integer, else a finite float; None if neither.

    Only ASCII decimal notation is accepted. Surrounding whitespace and
    digit separators are not.
    """
    if _INT_RE.fullmatch(text):
        return int(text)
    if not _FLOAT_RE.fullmatch(text):
        return None
    number = float(text)
    if not math.isfinite(number):
        return None
    return number
