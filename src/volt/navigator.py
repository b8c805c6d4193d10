"""Cursor and focus state across sections and their rows.

Rows are never cached: every query re-derives them from the document and
schema, so a mutation is visible on the next call without bookkeeping.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .document import Document
from .schema import (
    MCP_PERMISSIONS_KEY,
    MCP_SERVERS_KEY,
    SECTIONS,
    Section,
    SettingDef,
)


class Focus(Enum):
    SIDEBAR = "sidebar"
    CONTENT = "content"


class SubPanel(Enum):
    """Halves of the split-panel section."""

    CONFIGS = "configs"
    PERMISSIONS = "permissions"


@dataclass(frozen=True)
class KnownEntry:
    definition: SettingDef

    @property
    def key(self) -> str:
        return self.definition.key


@dataclass(frozen=True)
class UnknownEntry:
    key: str


SettingEntry = Union[KnownEntry, UnknownEntry]


def section_entries(document: Document, section: Section) -> list[SettingEntry]:
    """Rows of a section: schema settings, or unknown keys for the catch-all."""
    if section.is_catch_all:
        return [UnknownEntry(key) for key in document.unknown_keys()]
    return [KnownEntry(d) for d in document.schema.settings_for_section(section)]


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, list) else []


class Navigator:
    """Selection state for the sidebar, the content panel and its sub-panels.

    ``item_index`` is the row in a normal section, the element in a
    single-key section, or the Configs row in the split panel, where
    ``permission_index`` tracks the Permissions row.
    """

    def __init__(self, document: Document) -> None:
        self.document = document
        self.section_index = 0
        self.item_index = 0
        self.permission_index = 0
        self.focus = Focus.SIDEBAR
        self.sub_panel = SubPanel.CONFIGS

    # ─── Derived views ────────────────────────────────────────────────

    @property
    def current_section(self) -> Section:
        return SECTIONS[self.section_index]

    def entries(self) -> list[SettingEntry]:
        return section_entries(self.document, self.current_section)

    def selected_entry(self) -> Optional[SettingEntry]:
        """Row under the cursor in a normal or catch-all section."""
        entries = self.entries()
        if 0 <= self.item_index < len(entries):
            return entries[self.item_index]
        return None

    def section_setting(self) -> Optional[SettingDef]:
        """The sole setting behind a single-key section."""
        settings = self.document.schema.settings_for_section(self.current_section)
        return settings[0] if settings else None

    def array_items(self, key: str) -> list:
        return _as_list(self.document.get(key))

    def server_names(self) -> list[str]:
        servers = self.document.get(MCP_SERVERS_KEY)
        return list(servers) if isinstance(servers, dict) else []

    def mcp_permissions(self) -> list:
        return self.array_items(MCP_PERMISSIONS_KEY)

    def config_row_count(self) -> int:
        """Servers plus the trailing "add server" row."""
        return len(self.server_names()) + 1

    def selected_server(self) -> Optional[str]:
        """Server name under the Configs cursor; None on the add row."""
        names = self.server_names()
        if 0 <= self.item_index < len(names):
            return names[self.item_index]
        return None

    def on_add_server_row(self) -> bool:
        return (
            self.current_section.is_split_panel
            and self.sub_panel is SubPanel.CONFIGS
            and self.item_index == len(self.server_names())
        )

    def item_count(self) -> int:
        """Navigable rows in the current section (focused half when split)."""
        section = self.current_section
        if section.is_single_key:
            definition = self.section_setting()
            return len(self.array_items(definition.key)) if definition else 0
        if section.is_split_panel:
            if self.sub_panel is SubPanel.CONFIGS:
                return self.config_row_count()
            return len(self.mcp_permissions())
        return len(self.entries())

    def focused_key(self) -> Optional[str]:
        """Setting that section-wide actions (reset, $EDITOR) apply to."""
        section = self.current_section
        if section.is_single_key:
            definition = self.section_setting()
            return definition.key if definition else None
        if section.is_split_panel:
            if self.sub_panel is SubPanel.CONFIGS:
                return MCP_SERVERS_KEY
            return MCP_PERMISSIONS_KEY
        entry = self.selected_entry()
        return entry.key if entry else None

    # ─── Movement ─────────────────────────────────────────────────────

    def move_up(self) -> None:
        if self.focus is Focus.SIDEBAR:
            if self.section_index > 0:
                self.select_section(self.section_index - 1)
            return
        if self.current_section.is_split_panel:
            self._split_up()
            return
        if self.item_index > 0:
            self.item_index -= 1

    def move_down(self) -> None:
        if self.focus is Focus.SIDEBAR:
            if self.section_index < len(SECTIONS) - 1:
                self.select_section(self.section_index + 1)
            return
        if self.current_section.is_split_panel:
            self._split_down()
            return
        count = self.item_count()
        if count > 0 and self.item_index < count - 1:
            self.item_index += 1

    def _split_up(self) -> None:
        if self.sub_panel is SubPanel.PERMISSIONS:
            if self.permission_index > 0:
                self.permission_index -= 1
            else:
                self.sub_panel = SubPanel.CONFIGS
                self.item_index = max(len(self.server_names()) - 1, 0)
        elif self.item_index > 0:
            self.item_index -= 1

    def _split_down(self) -> None:
        if self.sub_panel is SubPanel.CONFIGS:
            if self.item_index < self.config_row_count() - 1:
                self.item_index += 1
            else:
                self.sub_panel = SubPanel.PERMISSIONS
                self.permission_index = 0
        else:
            count = len(self.mcp_permissions())
            if count > 0 and self.permission_index < count - 1:
                self.permission_index += 1

    def toggle_focus(self) -> None:
        self.focus = Focus.CONTENT if self.focus is Focus.SIDEBAR else Focus.SIDEBAR

    def select_section(self, index: int) -> None:
        """Jump to a section, resetting every row-level cursor."""
        index = max(0, min(index, len(SECTIONS) - 1))
        if index != self.section_index:
            self.section_index = index
            self.item_index = 0
            self.permission_index = 0
            self.sub_panel = SubPanel.CONFIGS

    def clamp(self) -> None:
        """Pull cursors back into range after rows were removed."""
        if self.current_section.is_split_panel:
            self.item_index = min(self.item_index, self.config_row_count() - 1)
            permissions = len(self.mcp_permissions())
            self.permission_index = min(self.permission_index, max(permissions - 1, 0))
            return
        count = self.item_count()
        self.item_index = min(self.item_index, max(count - 1, 0))
