"""The settings document: explicit user overrides layered over schema defaults.

Reads/writes Amp's settings.json (a flat JSON object of dotted keys).
Only keys the user set explicitly are stored; ``get`` falls back to the
schema default, and keys the schema does not know are carried through a
load/save cycle untouched.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import tempfile
from typing import Any, Iterator, Optional

from .errors import DocumentParseError
from .logging import get_logger, log_context
from .schema import Schema

_log = get_logger("volt.document")


def default_path() -> str:
    """Per-user location of Amp's settings file."""
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, "amp", "settings.json")


_LONE_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")


def dumps(values: dict[str, Any]) -> str:
    """Serialize the explicit mapping the way it is written to disk.

    Lone surrogates (valid in JSON escapes, not encodable as UTF-8) stay
    escaped so the text always encodes and reloads to the same values.
    """
    text = json.dumps(values, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    return _LONE_SURROGATE_RE.sub(lambda m: f"\\u{ord(m.group()):04x}", text)


class Document:
    """In-memory overlay of explicit settings over schema defaults."""

    def __init__(
        self,
        path: str,
        schema: Schema,
        values: Optional[dict[str, Any]] = None,
    ) -> None:
        self.path = path
        self.schema = schema
        self._values: dict[str, Any] = dict(values or {})
        self._dirty = False

    @classmethod
    def load(cls, path: str, schema: Schema) -> "Document":
        """Load *path*, treating a missing or blank file as an empty document.

        Raises DocumentParseError when the file is not UTF-8 or holds
        anything other than a JSON object; nothing is partially loaded in
        that case.
        """
        values: dict[str, Any] = {}
        if os.path.isfile(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    contents = f.read()
            except UnicodeDecodeError as e:
                raise DocumentParseError(path, str(e)) from e
            if contents.strip():
                try:
                    parsed = json.loads(contents)
                except json.JSONDecodeError as e:
                    raise DocumentParseError(path, str(e)) from e
                if not isinstance(parsed, dict):
                    raise DocumentParseError(
                        path, f"expected a JSON object, got {type(parsed).__name__}"
                    )
                values = parsed
        _log.info(
            "Loaded settings",
            extra={"context": log_context(path=path, keys=len(values))},
        )
        return cls(path, schema, values)

    # ─── Reads ────────────────────────────────────────────────────────

    def get(self, key: str) -> Any:
        """Explicit value, else the schema default, else None."""
        if key in self._values:
            return self._values[key]
        return self.schema.default_for(key)

    def get_raw(self, key: str, default: Any = None) -> Any:
        """Explicit value only; *default* when the key is not set."""
        return self._values.get(key, default)

    def is_set(self, key: str) -> bool:
        return key in self._values

    __contains__ = is_set

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def explicit(self) -> dict[str, Any]:
        """Shallow copy of every explicitly set key."""
        return dict(self._values)

    def unknown_keys(self) -> list[str]:
        """Explicit keys the schema does not know, in sorted order."""
        return sorted(k for k in self._values if self.schema.section_for_key(k) is None)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    # ─── Mutations ────────────────────────────────────────────────────

    def set(self, key: str, value: Any) -> None:
        """Store *value* for *key*. Callers validate first."""
        self._values[key] = value
        self._dirty = True

    def remove(self, key: str) -> bool:
        """Drop the explicit value for *key*; True if one was removed."""
        if key not in self._values:
            return False
        del self._values[key]
        self._dirty = True
        return True

    def save(self) -> None:
        """Write the explicit mapping to disk as formatted JSON.

        The bytes go to a temp file beside the target which then replaces
        it, so a failure at any point leaves the existing file as it was.
        I/O and serialization errors propagate unchanged and leave the
        dirty flag set.
        """
        data = dumps(self._values).encode("utf-8")
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=parent or ".", prefix=".settings-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            if os.path.exists(self.path):
                shutil.copymode(self.path, tmp_path)
            os.replace(tmp_path, self.path)
        except BaseException:
            os.unlink(tmp_path)
            raise
        self._dirty = False
        _log.info(
            "Saved settings",
            extra={"context": log_context(path=self.path, keys=len(self._values))},
        )
