"""Editor session state: one document, its navigator and its wizard.

Every key press ends up here, either as a named action (``perform``) or
as raw wizard input (``handle_wizard_key``). Both return an
EditorRequest when the press should open the external editor; the
caller fulfils it and hands the result to ``apply_editor_result`` or
``editor_failed``. Nothing in this module touches the terminal.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from . import editor
from .document import Document
from .editor import EditorRequest
from .logging import get_logger, log_context
from .navigator import Focus, KnownEntry, Navigator, SubPanel
from .schema import (
    CUSTOM_CHOICE,
    MCP_PERMISSIONS_KEY,
    MCP_SERVERS_KEY,
    SettingDef,
    SettingType,
)
from .validator import is_number, validate_value
from .wizard import Wizard

_log = get_logger("volt.state")

ACTIONS = (
    "cursorDown",
    "cursorUp",
    "activate",
    "toggleFocus",
    "add",
    "delete",
    "reset",
    "externalEditor",
    "save",
    "quit",
)


def _buffer_text(value: Any) -> str:
    """Pre-fill text for an inline edit of *value*."""
    if isinstance(value, str):
        return value
    if is_number(value):
        return json.dumps(value)
    return ""


class EditorState:
    """Everything the front end renders, and every mutation it can make."""

    def __init__(self, document: Document, confirm_quit_unsaved: bool = True) -> None:
        self.document = document
        self.schema = document.schema
        self.navigator = Navigator(document)
        self.wizard = Wizard(document, report=self.set_status)
        self.confirm_quit_unsaved = confirm_quit_unsaved
        self.status_message: Optional[str] = None
        self.should_quit = False
        self._quit_armed = False

    def set_status(self, message: str) -> None:
        self.status_message = message

    # ─── Dispatch ─────────────────────────────────────────────────────

    def perform(self, action: str) -> Optional[EditorRequest]:
        """Run a named direct action. Unknown names are ignored."""
        self.status_message = None
        if action != "quit":
            self._quit_armed = False
        nav = self.navigator
        key = nav.focused_key() if nav.focus is Focus.CONTENT else None
        _log.debug("Action", extra={"context": log_context(
            key=key or "", section=nav.current_section.label, action=action,
        )})
        if action == "cursorDown":
            nav.move_down()
        elif action == "cursorUp":
            nav.move_up()
        elif action == "toggleFocus":
            nav.toggle_focus()
        elif action == "activate":
            return self.activate()
        elif action == "externalEditor":
            return self.force_editor()
        elif action == "add":
            self.add_item()
        elif action == "delete":
            self.delete_item()
        elif action == "reset":
            self.reset_setting()
        elif action == "save":
            self.save()
        elif action == "quit":
            self.request_quit()
        return None

    def handle_wizard_key(self, key: str, character: Optional[str] = None) -> Optional[EditorRequest]:
        """Feed one key press to the active wizard.

        *key* is the key name (``enter``, ``escape``, ``up``...) and
        *character* the printable character it produced, if any.
        """
        wizard = self.wizard
        self.status_message = None
        request: Optional[EditorRequest] = None
        if wizard.is_confirming:
            if key == "enter" or character == "y":
                request = wizard.confirm(True)
            elif key == "escape" or character == "n":
                request = wizard.confirm(False)
        elif wizard.is_selecting:
            if key == "enter":
                request = wizard.commit()
            elif key == "escape":
                wizard.cancel()
            elif key == "up" or character == "k":
                wizard.cursor_up()
            elif key == "down" or character == "j":
                wizard.cursor_down()
        elif wizard.accepts_text:
            if key == "enter":
                request = wizard.commit()
            elif key == "escape":
                wizard.cancel()
            elif key == "backspace":
                wizard.backspace()
            elif character and character.isprintable():
                wizard.type_char(character)
        self.navigator.clamp()
        return request

    # ─── Direct actions ───────────────────────────────────────────────

    def activate(self) -> Optional[EditorRequest]:
        """Enter on the current row: toggle, cycle, edit inline or open."""
        nav = self.navigator
        if nav.focus is Focus.SIDEBAR:
            nav.toggle_focus()
            return None

        section = nav.current_section
        if section.is_single_key:
            definition = nav.section_setting()
            if definition is None:
                return None
            return self._element_request(definition.key, nav.item_index, "Press 'a' to add a rule.")

        if section.is_split_panel:
            if nav.sub_panel is SubPanel.PERMISSIONS:
                return self._element_request(
                    MCP_PERMISSIONS_KEY, nav.permission_index, "Press 'a' to add an MCP rule."
                )
            name = nav.selected_server()
            if name is None:
                self.wizard.start_mcp_server()
                return None
            servers = self.document.get(MCP_SERVERS_KEY)
            return EditorRequest(MCP_SERVERS_KEY, servers[name], object_key=name)

        entry = nav.selected_entry()
        if entry is None:
            return None
        if not isinstance(entry, KnownEntry):
            return EditorRequest(entry.key, self.document.get(entry.key))
        return self._activate_known(entry.definition)

    def _activate_known(self, definition: SettingDef) -> Optional[EditorRequest]:
        key = definition.key
        setting_type = definition.setting_type
        current = self.document.get(key)

        if setting_type is SettingType.BOOLEAN:
            toggled = current is not True
            self.document.set(key, toggled)
            self.set_status(f"{key} = {json.dumps(toggled)}")
        elif setting_type in (SettingType.STRING, SettingType.NUMBER):
            self.wizard.start_edit(key, _buffer_text(current))
        elif setting_type is SettingType.STRING_ENUM:
            self._cycle_enum(definition)
        elif setting_type is SettingType.OBJECT:
            return EditorRequest(key, current)
        elif setting_type is SettingType.ARRAY_OBJECT:
            return self._element_request(key, 0, "Empty array. Press 'a' to add an item.")
        elif setting_type is SettingType.ARRAY_STRING:
            self.set_status("Press 'a' to add, 'd' to delete items.")
        return None

    def _element_request(self, key: str, index: int, empty_hint: str) -> Optional[EditorRequest]:
        items = self.navigator.array_items(key)
        if not items:
            self.set_status(empty_hint)
            return None
        if not 0 <= index < len(items):
            return None
        return EditorRequest(key, items[index], array_index=index)

    def _cycle_enum(self, definition: SettingDef) -> None:
        key = definition.key
        options = definition.enum_options or ()
        choices = definition.cycle_choices()
        current = self.document.get(key)
        if current in options:
            choice = choices[(choices.index(current) + 1) % len(choices)]
        else:
            choice = choices[0]

        if choice == CUSTOM_CHOICE:
            self.wizard.start_edit(key, "", custom=True)
            self.set_status(f"Enter a custom value for {key}")
            return

        reason = validate_value(self.schema, key, choice)
        if reason:
            self.set_status(reason)
            return
        self.document.set(key, choice)
        self.set_status(f"{key} = {choice}")

    def add_item(self) -> None:
        """Start whichever add flow fits the focused section or setting."""
        nav = self.navigator
        if nav.focus is not Focus.CONTENT:
            return
        section = nav.current_section
        if section.is_catch_all:
            self.wizard.start_custom_key()
        elif section.is_single_key:
            self.wizard.start_permission_rule()
        elif section.is_split_panel:
            if nav.sub_panel is SubPanel.CONFIGS:
                self.wizard.start_mcp_server()
            else:
                self.wizard.start_mcp_permission_rule()
        else:
            definition = self._selected_definition()
            if definition is None or not definition.setting_type.is_array:
                self.set_status("Only list settings take new items.")
                return
            self.wizard.start_edit(definition.key)

    def delete_item(self) -> None:
        """Remove one element, server or rule from the focused setting."""
        nav = self.navigator
        if nav.focus is not Focus.CONTENT:
            return
        section = nav.current_section
        if section.is_single_key:
            definition = nav.section_setting()
            if definition is not None:
                self._delete_at(definition.key, nav.item_index)
        elif section.is_split_panel:
            if nav.sub_panel is SubPanel.CONFIGS:
                self._delete_server()
            else:
                self._delete_at(MCP_PERMISSIONS_KEY, nav.permission_index)
        else:
            definition = self._selected_definition()
            if definition is None or not definition.setting_type.is_array:
                self.set_status("Nothing to delete here.")
                return
            items = nav.array_items(definition.key)
            if not items:
                self.set_status("Array is already empty.")
                return
            items.pop()
            self.document.set(definition.key, items)
            self.set_status(f"Removed last item from {definition.key}")
        nav.clamp()

    def _delete_at(self, key: str, index: int) -> None:
        items = self.navigator.array_items(key)
        if not items:
            self.set_status("Array is already empty.")
            return
        index = min(index, len(items) - 1)
        items.pop(index)
        self.document.set(key, items)
        self.set_status(f"Removed item {index} from {key}")

    def _delete_server(self) -> None:
        name = self.navigator.selected_server()
        if name is None:
            self.set_status("Select a server to delete.")
            return
        servers = dict(self.document.get(MCP_SERVERS_KEY))
        del servers[name]
        self.document.set(MCP_SERVERS_KEY, servers)
        self.set_status(f"Removed MCP server {name}")

    def reset_setting(self) -> None:
        """Drop the explicit value behind the cursor."""
        nav = self.navigator
        if nav.focus is not Focus.CONTENT:
            return
        section = nav.current_section
        key = nav.focused_key()
        if key is None:
            return
        self.document.remove(key)
        if key in self.schema:
            self.set_status(f"Reset {key} to default")
        else:
            self.set_status(f"Removed {key}")
        if section.is_single_key:
            nav.item_index = 0
        nav.clamp()

    def force_editor(self) -> Optional[EditorRequest]:
        """Open the whole focused setting in the external editor."""
        nav = self.navigator
        if nav.focus is not Focus.CONTENT:
            return None
        key = nav.focused_key()
        if key is None:
            return None
        return EditorRequest(key, self.document.get(key))

    def save(self) -> bool:
        try:
            self.document.save()
        except (OSError, TypeError, ValueError) as e:
            _log.warning("Save failed", extra={"context": log_context(
                path=self.document.path, error=str(e),
            )})
            self.set_status(f"Save failed: {e}")
            return False
        self.set_status("Saved!")
        return True

    def request_quit(self) -> None:
        """Quit, asking for a second press first when changes are unsaved."""
        if self.document.is_dirty and self.confirm_quit_unsaved and not self._quit_armed:
            self._quit_armed = True
            self.set_status("Unsaved changes. Press quit again to discard them.")
            return
        self.should_quit = True

    # ─── Editor round trip ────────────────────────────────────────────

    def apply_editor_result(self, request: EditorRequest, edited: Any) -> None:
        self.set_status(editor.apply_editor_result(self.document, request, edited))
        self.navigator.clamp()

    def editor_failed(self, request: EditorRequest, error: Exception) -> None:
        """The edit is dropped; the document stays as it was."""
        _log.warning("Editor failed", extra={"context": log_context(
            key=request.key, error=str(error),
        )})
        self.set_status(f"Editor error: {error}")

    # ─── Helpers ──────────────────────────────────────────────────────

    def _selected_definition(self) -> Optional[SettingDef]:
        entry = self.navigator.selected_entry()
        if isinstance(entry, KnownEntry):
            return entry.definition
        return None
