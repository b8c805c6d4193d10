"""Multi-step input flows that build values before writing them.

Each step of each flow is its own frozen dataclass carrying exactly the
data collected so far, so a state can never hold a pending field that
belongs to a different flow. ``Wizard`` owns the current state plus the
text buffer and implements every transition:

    inline edit        EditingValue
    custom key         EnteringKeyName -> SelectingType -> EnteringCustomValue
    permission rule    EnteringPermissionTool -> SelectingPermissionLevel
                       [-> EnteringDelegateTo] -> ConfirmAdvancedEdit
    MCP permission     EnteringMcpMatchField -> EnteringMcpMatchValue
                       -> SelectingMcpPermissionLevel -> ConfirmMcpEdit
    MCP server         EnteringMcpServerName

A rejected commit leaves the state and buffer exactly as they were.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .document import Document
from .editor import EditorRequest
from .errors import WizardBusyError
from .logging import get_logger, log_context
from .schema import (
    CUSTOM_KEY_TYPES,
    MCP_PERMISSIONS_KEY,
    MCP_SERVERS_KEY,
    PERMISSIONS_KEY,
    CustomKeyType,
    SettingType,
)
from .validator import parse_number, validate_value

_log = get_logger("volt.wizard")

PERMISSION_LEVELS = ("ask", "allow", "reject", "delegate")
MCP_PERMISSION_LEVELS = ("allow", "reject")


# ─── States ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class EditingValue:
    """Typing a value for *key*; ``custom`` marks the free-form enum path."""

    key: str
    custom: bool = False


@dataclass(frozen=True)
class EnteringKeyName:
    pass


@dataclass(frozen=True)
class SelectingType:
    key: str
    cursor: int = 0


@dataclass(frozen=True)
class EnteringCustomValue:
    key: str
    value_type: CustomKeyType


@dataclass(frozen=True)
class EnteringPermissionTool:
    pass


@dataclass(frozen=True)
class SelectingPermissionLevel:
    tool: str
    cursor: int = 0


@dataclass(frozen=True)
class EnteringDelegateTo:
    tool: str


@dataclass(frozen=True)
class ConfirmAdvancedEdit:
    """A permission rule was appended at *index*; offer to open it."""

    index: int


@dataclass(frozen=True)
class EnteringMcpMatchField:
    pass


@dataclass(frozen=True)
class EnteringMcpMatchValue:
    field: str


@dataclass(frozen=True)
class SelectingMcpPermissionLevel:
    field: str
    value: str
    cursor: int = 0


@dataclass(frozen=True)
class ConfirmMcpEdit:
    index: int


@dataclass(frozen=True)
class EnteringMcpServerName:
    pass


WizardState = Union[
    Idle,
    EditingValue,
    EnteringKeyName,
    SelectingType,
    EnteringCustomValue,
    EnteringPermissionTool,
    SelectingPermissionLevel,
    EnteringDelegateTo,
    ConfirmAdvancedEdit,
    EnteringMcpMatchField,
    EnteringMcpMatchValue,
    SelectingMcpPermissionLevel,
    ConfirmMcpEdit,
    EnteringMcpServerName,
]

IDLE = Idle()

TEXT_STATES = (
    EditingValue,
    EnteringKeyName,
    EnteringCustomValue,
    EnteringPermissionTool,
    EnteringDelegateTo,
    EnteringMcpMatchField,
    EnteringMcpMatchValue,
    EnteringMcpServerName,
)
SELECT_STATES = (SelectingType, SelectingPermissionLevel, SelectingMcpPermissionLevel)
CONFIRM_STATES = (ConfirmAdvancedEdit, ConfirmMcpEdit)


def choices_for(state: WizardState) -> tuple[str, ...]:
    """Options a selection step moves its cursor over."""
    if isinstance(state, SelectingType):
        return tuple(t.label for t in CUSTOM_KEY_TYPES)
    if isinstance(state, SelectingPermissionLevel):
        return PERMISSION_LEVELS
    if isinstance(state, SelectingMcpPermissionLevel):
        return MCP_PERMISSION_LEVELS
    return ()


def _noop_report(message: str) -> None:
    pass


# ─── Driver ───────────────────────────────────────────────────────────────


class Wizard:
    """Drives one flow at a time against a document.

    ``report`` receives every user-facing message, rejections included.
    ``commit`` and ``confirm`` return an EditorRequest when the flow ends
    by handing a value to the external editor.
    """

    def __init__(
        self,
        document: Document,
        report: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.document = document
        self.schema = document.schema
        self.report = report or _noop_report
        self.state: WizardState = IDLE
        self.buffer = ""

    @property
    def is_active(self) -> bool:
        return not isinstance(self.state, Idle)

    @property
    def accepts_text(self) -> bool:
        return isinstance(self.state, TEXT_STATES)

    @property
    def is_selecting(self) -> bool:
        return isinstance(self.state, SELECT_STATES)

    @property
    def is_confirming(self) -> bool:
        return isinstance(self.state, CONFIRM_STATES)

    def choices(self) -> tuple[str, ...]:
        return choices_for(self.state)

    # ─── Entry points ─────────────────────────────────────────────────

    def _start(self, state: WizardState, buffer: str = "") -> None:
        if self.is_active:
            raise WizardBusyError(
                f"cannot start {type(state).__name__} while "
                f"{type(self.state).__name__} is active"
            )
        self._enter(state, buffer)

    def start_edit(self, key: str, initial: str = "", custom: bool = False) -> None:
        """Inline edit of a known setting, pre-filled with *initial*."""
        self._start(EditingValue(key, custom), initial)

    def start_custom_key(self) -> None:
        self._start(EnteringKeyName())

    def start_permission_rule(self) -> None:
        self._start(EnteringPermissionTool())

    def start_mcp_permission_rule(self) -> None:
        self._start(EnteringMcpMatchField())

    def start_mcp_server(self) -> None:
        self._start(EnteringMcpServerName())

    # ─── Input ────────────────────────────────────────────────────────

    def type_char(self, char: str) -> None:
        if self.accepts_text:
            self.buffer += char

    def backspace(self) -> None:
        if self.accepts_text:
            self.buffer = self.buffer[:-1]

    def cursor_up(self) -> None:
        self._move_cursor(-1)

    def cursor_down(self) -> None:
        self._move_cursor(1)

    def _move_cursor(self, step: int) -> None:
        state = self.state
        if not isinstance(state, SELECT_STATES):
            return
        last = len(choices_for(state)) - 1
        cursor = max(0, min(state.cursor + step, last))
        self.state = dataclasses.replace(state, cursor=cursor)

    def cancel(self) -> None:
        """Abandon the active flow and drop everything collected so far."""
        if self.is_active:
            _log.debug("Wizard cancelled", extra={"context": log_context(
                state=type(self.state).__name__,
            )})
        self._finish()

    # ─── Commit ───────────────────────────────────────────────────────

    def commit(self) -> Optional[EditorRequest]:
        """Complete the current step with the buffer or selected choice."""
        state = self.state
        if isinstance(state, EditingValue):
            return self._commit_value(state)
        if isinstance(state, EnteringKeyName):
            return self._commit_key_name()
        if isinstance(state, SelectingType):
            return self._commit_type(state)
        if isinstance(state, EnteringCustomValue):
            return self._commit_custom_value(state)
        if isinstance(state, EnteringPermissionTool):
            return self._commit_permission_tool()
        if isinstance(state, SelectingPermissionLevel):
            return self._commit_permission_level(state)
        if isinstance(state, EnteringDelegateTo):
            return self._commit_delegate_to(state)
        if isinstance(state, EnteringMcpMatchField):
            return self._commit_mcp_field()
        if isinstance(state, EnteringMcpMatchValue):
            return self._commit_mcp_value(state)
        if isinstance(state, SelectingMcpPermissionLevel):
            return self._commit_mcp_level(state)
        if isinstance(state, EnteringMcpServerName):
            return self._commit_mcp_server()
        if isinstance(state, CONFIRM_STATES):
            return self.confirm(True)
        return None

    def confirm(self, accept: bool) -> Optional[EditorRequest]:
        """Answer a confirm step: open the new record in the editor, or not."""
        state = self.state
        if isinstance(state, ConfirmAdvancedEdit):
            key = PERMISSIONS_KEY
        elif isinstance(state, ConfirmMcpEdit):
            key = MCP_PERMISSIONS_KEY
        else:
            return None
        self._finish()
        if not accept:
            return None
        items = self.document.get(key)
        if not isinstance(items, list) or not 0 <= state.index < len(items):
            return None
        return EditorRequest(key, items[state.index], array_index=state.index)

    # ─── Inline edit ──────────────────────────────────────────────────

    def _commit_value(self, state: EditingValue) -> Optional[EditorRequest]:
        key = state.key
        definition = self.schema.get(key)
        if definition is None:
            self._finish()
            return None

        if state.custom:
            if not self.buffer:
                return self._reject("Custom value cannot be empty")
            # free-form text skips the enum membership check
            self.document.set(key, self.buffer)
            self.report(f"Set {key} to custom value '{self.buffer}'")
            self._finish()
            return None

        setting_type = definition.setting_type
        if setting_type is SettingType.ARRAY_STRING:
            if self.buffer:
                return self._append_and_finish(key, self.buffer)
            self._finish()
            return None
        if setting_type is SettingType.ARRAY_OBJECT:
            if not self.buffer:
                self._finish()
                return None
            try:
                item = json.loads(self.buffer)
            except json.JSONDecodeError as e:
                return self._reject(f"Invalid JSON: {e}")
            if not isinstance(item, dict):
                return self._reject("Value must be a JSON object")
            return self._append_and_finish(key, item)

        value: Any
        if setting_type is SettingType.NUMBER:
            value = parse_number(self.buffer)
            if value is None:
                return self._reject("Invalid number")
        else:
            value = self.buffer

        reason = validate_value(self.schema, key, value)
        if reason:
            return self._reject(reason)
        self.document.set(key, value)
        self.report(f"Set {key}")
        self._finish()
        return None

    def _append_and_finish(self, key: str, item: Any) -> Optional[EditorRequest]:
        if self._append(key, item) is None:
            return None
        self.report(f"Added item to {key}")
        self._finish()
        return None

    def _append(self, key: str, item: Any) -> Optional[int]:
        """Append *item* to the array under *key*; its index, or None if rejected."""
        current = self.document.get(key)
        items = list(current) if isinstance(current, list) else []
        items.append(item)
        reason = validate_value(self.schema, key, items)
        if reason:
            self._reject(reason)
            return None
        self.document.set(key, items)
        return len(items) - 1

    # ─── Custom key ───────────────────────────────────────────────────

    def _commit_key_name(self) -> Optional[EditorRequest]:
        name = self.buffer.strip()
        if not name:
            return self._reject("Key name cannot be empty")
        if self.document.is_set(name):
            return self._reject(f"Key '{name}' already exists")
        if name in self.schema:
            return self._reject(f"'{name}' is a known setting; edit it in its own section")
        self._enter(SelectingType(name))
        return None

    def _commit_type(self, state: SelectingType) -> Optional[EditorRequest]:
        value_type = CUSTOM_KEY_TYPES[state.cursor]
        key = state.key
        if value_type is CustomKeyType.BOOLEAN:
            self.document.set(key, False)
        elif value_type is CustomKeyType.ARRAY:
            self.document.set(key, [])
        elif value_type is CustomKeyType.OBJECT:
            self._finish()
            return EditorRequest(key, {})
        else:
            self._enter(EnteringCustomValue(key, value_type))
            return None
        self.report(f"Added {key}")
        self._finish()
        return None

    def _commit_custom_value(self, state: EnteringCustomValue) -> Optional[EditorRequest]:
        value: Any = self.buffer
        if state.value_type is CustomKeyType.NUMBER:
            value = parse_number(self.buffer)
            if value is None:
                return self._reject("Invalid number")
        self.document.set(state.key, value)
        self.report(f"Added {state.key}")
        self._finish()
        return None

    # ─── Permission rule ──────────────────────────────────────────────

    def _commit_permission_tool(self) -> Optional[EditorRequest]:
        tool = self.buffer.strip()
        if not tool:
            return self._reject("Tool name cannot be empty")
        self._enter(SelectingPermissionLevel(tool))
        return None

    def _commit_permission_level(self, state: SelectingPermissionLevel) -> Optional[EditorRequest]:
        action = PERMISSION_LEVELS[state.cursor]
        if action == "delegate":
            self._enter(EnteringDelegateTo(state.tool))
            return None
        return self._add_permission({"tool": state.tool, "action": action})

    def _commit_delegate_to(self, state: EnteringDelegateTo) -> Optional[EditorRequest]:
        target = self.buffer.strip()
        if not target:
            return self._reject("Delegate target cannot be empty")
        return self._add_permission({"tool": state.tool, "action": "delegate", "to": target})

    def _add_permission(self, rule: dict[str, Any]) -> Optional[EditorRequest]:
        index = self._append(PERMISSIONS_KEY, rule)
        if index is None:
            return None
        self.report(f"Added {rule['action']} rule for {rule['tool']}")
        self._enter(ConfirmAdvancedEdit(index))
        return None

    # ─── MCP permission rule ──────────────────────────────────────────

    def _commit_mcp_field(self) -> Optional[EditorRequest]:
        field = self.buffer.strip()
        if not field:
            return self._reject("Match field cannot be empty")
        self._enter(EnteringMcpMatchValue(field))
        return None

    def _commit_mcp_value(self, state: EnteringMcpMatchValue) -> Optional[EditorRequest]:
        value = self.buffer.strip()
        if not value:
            return self._reject("Match value cannot be empty")
        self._enter(SelectingMcpPermissionLevel(state.field, value))
        return None

    def _commit_mcp_level(self, state: SelectingMcpPermissionLevel) -> Optional[EditorRequest]:
        action = MCP_PERMISSION_LEVELS[state.cursor]
        rule = {"matches": {state.field: state.value}, "action": action}
        index = self._append(MCP_PERMISSIONS_KEY, rule)
        if index is None:
            return None
        self.report(f"Added MCP {action} rule for {state.field}={state.value}")
        self._enter(ConfirmMcpEdit(index))
        return None

    # ─── MCP server ───────────────────────────────────────────────────

    def _commit_mcp_server(self) -> Optional[EditorRequest]:
        name = self.buffer.strip()
        if not name:
            return self._reject("Server name cannot be empty")
        servers = self.document.get(MCP_SERVERS_KEY)
        if isinstance(servers, dict) and name in servers:
            return self._reject(f"MCP server '{name}' already exists")
        self._finish()
        return EditorRequest(MCP_SERVERS_KEY, {}, object_key=name)

    # ─── Helpers ──────────────────────────────────────────────────────

    def _enter(self, state: WizardState, buffer: str = "") -> None:
        _log.debug("Wizard step", extra={"context": log_context(
            state=type(state).__name__,
        )})
        self.state = state
        self.buffer = buffer

    def _finish(self) -> None:
        self.state = IDLE
        self.buffer = ""

    def _reject(self, reason: str) -> None:
        _log.debug("Wizard input rejected", extra={"context": log_context(
            state=type(self.state).__name__, reason=reason,
        )})
        self.report(reason)
        return None
