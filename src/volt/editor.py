"""Hand-off to an external program for editing structured values.

An ``EditorRequest`` names the setting and, optionally, the element or
member inside it that the user is editing. The value travels to the
editor as a pretty-printed JSON temp file and comes back parsed;
``apply_editor_result`` then writes it through the document.
"""

from __future__ import annotations

import json
import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any, Optional

from .document import Document
from .errors import EditorError
from .logging import get_logger, log_context
from .validator import validate_value

_log = get_logger("volt.editor")


@dataclass
class EditorRequest:
    """One value out for editing.

    At most one of ``array_index`` / ``object_key`` is set. With neither,
    the edited value replaces the whole setting.
    """

    key: str
    value: Any
    array_index: Optional[int] = None
    object_key: Optional[str] = None

    def describe(self) -> str:
        if self.object_key is not None:
            return f"{self.key}.{self.object_key}"
        if self.array_index is not None:
            return f"{self.key}[{self.array_index}]"
        return self.key


def apply_editor_result(document: Document, request: EditorRequest, edited: Any) -> str:
    """Write *edited* back into *document* and return a status message.

    The merged whole value is validated before anything is written, so a
    rejection leaves the document untouched. An element index that no
    longer exists is reported and ignored.
    """
    current = document.get(request.key)

    if request.object_key is not None:
        merged: Any = dict(current) if isinstance(current, dict) else {}
        merged[request.object_key] = edited
    elif request.array_index is not None:
        items = list(current) if isinstance(current, list) else []
        if not 0 <= request.array_index < len(items):
            _log.warning(
                "Edited element vanished",
                extra={"context": log_context(key=request.key, index=request.array_index)},
            )
            return f"Item {request.array_index} of {request.key} no longer exists"
        items[request.array_index] = edited
        merged = items
    else:
        merged = edited

    reason = validate_value(document.schema, request.key, merged)
    if reason:
        _log.debug("Editor result rejected", extra={"context": log_context(
            key=request.key, reason=reason,
        )})
        return reason

    document.set(request.key, merged)
    return f"Updated {request.describe()}"


def editor_command(command: Optional[str] = None) -> list[str]:
    """Resolve the editor argv: *command*, then $EDITOR, $VISUAL, vi."""
    line = command or os.environ.get("EDITOR") or os.environ.get("VISUAL") or "vi"
    argv = shlex.split(line)
    if not argv:
        raise EditorError("editor command is empty")
    return argv


def edit_value_in_editor(value: Any, command: Optional[str] = None) -> Any:
    """Open *value* in an external editor and return what was saved.

    Blocks until the editor exits. Raises EditorError if the editor
    cannot be launched, exits non-zero, or leaves invalid JSON behind.
    """
    argv = editor_command(command)
    fd, path = tempfile.mkstemp(prefix="volt-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(value, indent=2, ensure_ascii=False) + "\n")

        try:
            result = subprocess.run(argv + [path])
        except OSError as e:
            raise EditorError(f"launching editor '{argv[0]}': {e}") from e
        if result.returncode != 0:
            raise EditorError(f"editor exited with status {result.returncode}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                edited = f.read()
        except OSError as e:
            raise EditorError(f"reading edited file: {e}") from e
        try:
            return json.loads(edited)
        except json.JSONDecodeError as e:
            raise EditorError(f"parsing edited JSON: {e}") from e
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
