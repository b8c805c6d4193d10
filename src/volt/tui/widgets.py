"""Widgets for the volt TUI.

Contains the _safe_action decorator, the key-capturing SettingsBody, and
the Static panels that render an EditorState as Rich markup.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Callable, Optional

from rich.markup import escape
from textual import events
from textual.containers import Horizontal
from textual.widgets import Static

from ..logging import get_logger, log_context
from ..navigator import Focus, KnownEntry, SubPanel
from ..schema import MCP_SERVERS_KEY, SECTIONS
from ..wizard import (
    ConfirmAdvancedEdit,
    ConfirmMcpEdit,
    EditingValue,
    EnteringCustomValue,
    EnteringDelegateTo,
    EnteringKeyName,
    EnteringMcpMatchField,
    EnteringMcpMatchValue,
    EnteringMcpServerName,
    EnteringPermissionTool,
    SelectingMcpPermissionLevel,
    SelectingPermissionLevel,
    SelectingType,
    Wizard,
    WizardState,
)
from .format import collect_object_columns, format_cell, format_json_compact, format_value

if TYPE_CHECKING:
    from ..state import EditorState

_log = get_logger("volt.tui.widgets")

ADD_SERVER_LABEL = "+ Add MCP server"
_MAX_CELL = 32


# ─── Safe action decorator ────────────────────────────────────────────────

def _safe_action(fn):
    """Decorator that catches exceptions in TUI handlers.

    Logs the traceback and shows the error on the status line instead of
    crashing the app.
    """

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except Exception as exc:
            err = f"{type(exc).__name__}: {str(exc)[:100]}"
            _log.error(
                "Error in %s: %s", fn.__name__, err,
                exc_info=True,
                extra={"context": log_context(action=fn.__name__)},
            )
            self.show_error(f"Error in {fn.__name__}: {err}")
    return wrapper


# ─── Key capture ──────────────────────────────────────────────────────────

class SettingsBody(Horizontal):
    """Focusable container that owns every key press.

    Keys are handed to *on_press* and never reach Textual's own bindings,
    so text typed into a wizard cannot trigger an action.
    """

    can_focus = True

    def __init__(self, on_press: Callable[[str, Optional[str]], None], **kwargs) -> None:
        super().__init__(**kwargs)
        self._on_press = on_press

    def on_key(self, event: events.Key) -> None:
        event.prevent_default()
        event.stop()
        character = event.character if event.is_printable else None
        self._on_press(event.key, character)


# ─── Markup helpers ───────────────────────────────────────────────────────

def _clip(text: str, width: int = _MAX_CELL) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"


def _row(text: str, selected: bool, cs: dict[str, str]) -> str:
    if selected:
        return f"[bold {cs['highlight_fg']} on {cs['highlight_bg']}]{text}[/]"
    return text


def _table(items: list, selected: Optional[int], cs: dict[str, str]) -> list[str]:
    """Rows of an array of values, as aligned columns when all are objects."""
    columns = collect_object_columns(items)
    if not columns:
        return [
            _row(" " + escape(format_json_compact(item)), i == selected, cs)
            for i, item in enumerate(items)
        ]

    cells = [[_clip(format_cell(item.get(col))) for col in columns] for item in items]
    widths = [
        max([len(col)] + [len(row[n]) for row in cells])
        for n, col in enumerate(columns)
    ]
    header = "  ".join(col.ljust(widths[n]) for n, col in enumerate(columns))
    lines = [f" [{cs['fg_dim']}]{escape(header)}[/]"]
    for i, row in enumerate(cells):
        text = "  ".join(cell.ljust(widths[n]) for n, cell in enumerate(row))
        if i == selected:
            lines.append(_row(" " + escape(text), True, cs))
        else:
            lines.append(f" [{cs['warning']}]{escape(text)}[/]")
    return lines


def _server_summary(config: object) -> str:
    if not isinstance(config, dict):
        return format_json_compact(config)
    for field in ("command", "url"):
        value = config.get(field)
        if isinstance(value, str) and value:
            args = config.get("args")
            if field == "command" and isinstance(args, list) and args:
                value += " " + " ".join(str(a) for a in args)
            return value
    return format_json_compact(config)


# ─── Panels ───────────────────────────────────────────────────────────────

class SectionSidebar(Static):
    """Section list, with the dirty marker in the title."""

    def show(self, state: "EditorState", cs: dict[str, str]) -> None:
        nav = state.navigator
        self.border_title = "Volt (modified)" if state.document.is_dirty else "Volt"
        self.set_class(nav.focus is Focus.SIDEBAR, "-focused")
        lines = []
        for i, section in enumerate(SECTIONS):
            label = f" {section.label} "
            if i == nav.section_index:
                if nav.focus is Focus.SIDEBAR:
                    lines.append(_row(label, True, cs))
                else:
                    lines.append(f"[bold {cs['accent']}]{label}[/]")
            else:
                lines.append(label)
        self.update("\n".join(lines))


class SettingsPanel(Static):
    """Rows of the selected section."""

    def show(self, state: "EditorState", cs: dict[str, str]) -> None:
        nav = state.navigator
        section = nav.current_section
        self.border_title = section.label
        self.set_class(nav.focus is Focus.CONTENT, "-focused")
        if section.is_single_key:
            lines = self._single_key_lines(state, cs)
        elif section.is_split_panel:
            lines = self._split_lines(state, cs)
        else:
            lines = self._entry_lines(state, cs)
        self.update("\n".join(lines))

    def _entry_lines(self, state: "EditorState", cs: dict[str, str]) -> list[str]:
        nav = state.navigator
        entries = nav.entries()
        if not entries:
            if nav.current_section.is_catch_all:
                return [f"[{cs['fg_dim']}]No custom keys. Press 'a' to add one.[/]"]
            return [f"[{cs['fg_dim']}]No settings in this section.[/]"]

        width = max(len(e.key) for e in entries)
        focused = nav.focus is Focus.CONTENT
        lines = []
        for i, entry in enumerate(entries):
            value = state.document.get(entry.key)
            if isinstance(entry, KnownEntry):
                shown = format_value(entry.definition.setting_type, value)
            else:
                shown = format_json_compact(value)
            marker = "●" if state.document.is_set(entry.key) else " "
            text = f"{marker} {entry.key.ljust(width)}  {shown}"
            if focused and i == nav.item_index:
                lines.append(_row(escape(text), True, cs))
            else:
                key_color = cs["accent"] if marker != " " else cs["fg"]
                lines.append(
                    f"[{key_color}]{escape(marker + ' ' + entry.key.ljust(width))}[/]"
                    f"  [{cs['warning']}]{escape(shown)}[/]"
                )
        return lines

    def _single_key_lines(self, state: "EditorState", cs: dict[str, str]) -> list[str]:
        nav = state.navigator
        definition = nav.section_setting()
        if definition is None:
            return [f"[{cs['fg_dim']}]No settings in this section.[/]"]
        items = nav.array_items(definition.key)
        if not items:
            return [f"[{cs['fg_dim']}]Empty. Press 'a' to add an item, 'e' to open in $EDITOR.[/]"]
        selected = nav.item_index if nav.focus is Focus.CONTENT else None
        return _table(items, selected, cs)

    def _split_lines(self, state: "EditorState", cs: dict[str, str]) -> list[str]:
        nav = state.navigator
        focused = nav.focus is Focus.CONTENT
        in_configs = focused and nav.sub_panel is SubPanel.CONFIGS
        in_permissions = focused and nav.sub_panel is SubPanel.PERMISSIONS

        lines = [f"[bold {cs['accent']}]Configs[/]"]
        servers = state.document.get(MCP_SERVERS_KEY)
        names = nav.server_names()
        width = max((len(n) for n in names), default=0)
        for i, name in enumerate(names):
            text = f" {name.ljust(width)}  {_clip(_server_summary(servers[name]), 60)}"
            lines.append(_row(escape(text), in_configs and i == nav.item_index, cs))
        add_row = f" {ADD_SERVER_LABEL}"
        if in_configs and nav.item_index == len(names):
            lines.append(_row(escape(add_row), True, cs))
        else:
            lines.append(f"[{cs['success']}]{escape(add_row)}[/]")

        lines.append("")
        lines.append(f"[bold {cs['accent']}]Permissions[/]")
        rules = nav.mcp_permissions()
        if not rules:
            empty = " No rules. Press 'a' to add one."
            lines.append(_row(escape(empty), in_permissions, cs) if in_permissions
                         else f"[{cs['fg_dim']}]{escape(empty)}[/]")
        else:
            selected = nav.permission_index if in_permissions else None
            lines.extend(_table(rules, selected, cs))
        return lines


def prompt_title(state: WizardState) -> str:
    """Heading of the prompt box for a wizard step."""
    if isinstance(state, EditingValue):
        if state.custom:
            return f"Custom value for {state.key}"
        return f"Edit {state.key}"
    if isinstance(state, EnteringKeyName):
        return "New key name"
    if isinstance(state, SelectingType):
        return f"Type for {state.key}"
    if isinstance(state, EnteringCustomValue):
        return f"{state.value_type.label} value for {state.key}"
    if isinstance(state, EnteringPermissionTool):
        return "Tool name (e.g. Bash, mcp__*)"
    if isinstance(state, SelectingPermissionLevel):
        return f"Permission for {state.tool}"
    if isinstance(state, EnteringDelegateTo):
        return f"Delegate {state.tool} to"
    if isinstance(state, (ConfirmAdvancedEdit, ConfirmMcpEdit)):
        return "Rule added"
    if isinstance(state, EnteringMcpMatchField):
        return "Match field (e.g. serverName)"
    if isinstance(state, EnteringMcpMatchValue):
        return f"Value to match for {state.field}"
    if isinstance(state, SelectingMcpPermissionLevel):
        return f"Action for {state.field}={state.value}"
    if isinstance(state, EnteringMcpServerName):
        return "MCP server name"
    return ""


class WizardPrompt(Static):
    """Input box for the active wizard step; hidden when idle."""

    def show(self, wizard: Wizard, cs: dict[str, str]) -> None:
        self.set_class(wizard.is_active, "-active")
        if not wizard.is_active:
            self.update("")
            return
        self.border_title = prompt_title(wizard.state)
        if wizard.is_confirming:
            self.border_subtitle = "y/Enter: yes · n/Esc: no"
            self.update("Open it in $EDITOR? [bold](y/n)[/]")
        elif wizard.is_selecting:
            self.border_subtitle = "↑↓: choose · Enter: confirm · Esc: cancel"
            cursor = getattr(wizard.state, "cursor", 0)
            self.update("\n".join(
                _row(f" ▸ {escape(choice)} ", True, cs) if i == cursor else f"   {escape(choice)}"
                for i, choice in enumerate(wizard.choices())
            ))
        else:
            self.border_subtitle = "Enter: confirm · Esc: cancel"
            self.update(f"{escape(wizard.buffer)}[reverse] [/]")


# ─── Help line ────────────────────────────────────────────────────────────

def help_text(state: "EditorState", keys: dict[str, str]) -> str:
    """Key hints for the current focus and section."""
    nav = state.navigator
    if nav.focus is Focus.SIDEBAR:
        return (
            f"↑↓: navigate | {keys['activate']}/{keys['toggleFocus']}: settings | "
            f"{keys['save']}: save | {keys['quit']}: quit | {state.document.path}"
        )
    section = nav.current_section
    back = f"{keys['toggleFocus']}: sidebar"
    if section.is_catch_all:
        return (
            f"{keys['activate']}: edit | {keys['add']}: add key | {keys['reset']}: remove | "
            f"{keys['externalEditor']}: $EDITOR | {back}"
        )
    if section.is_single_key or section.is_split_panel:
        return (
            f"{keys['activate']}: edit item | {keys['add']}: add | {keys['delete']}: delete | "
            f"{keys['externalEditor']}: $EDITOR | {keys['reset']}: reset | {back}"
        )
    entry = nav.selected_entry()
    if isinstance(entry, KnownEntry) and entry.definition.setting_type.is_array:
        return (
            f"{keys['activate']}: toggle/edit | {keys['add']}: add | {keys['delete']}: delete | "
            f"{keys['reset']}: reset | {keys['externalEditor']}: $EDITOR | {back}"
        )
    return (
        f"{keys['activate']}: toggle/edit | {keys['reset']}: reset | "
        f"{keys['externalEditor']}: $EDITOR | {back}"
    )
