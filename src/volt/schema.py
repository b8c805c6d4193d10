"""Known Amp settings, their types, defaults and section layout.

The catalog is a plain ``Schema`` value built by ``default_schema()`` and
handed to everything that needs default or type lookups; there is no
module-level registry to consult behind the caller's back.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional


class SettingType(Enum):
    """JSON shape a known setting must have."""

    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    STRING_ENUM = "enum"
    ARRAY_STRING = "array<string>"
    ARRAY_OBJECT = "array<object>"
    OBJECT = "object"

    @property
    def is_array(self) -> bool:
        return self in (SettingType.ARRAY_STRING, SettingType.ARRAY_OBJECT)


class Section(Enum):
    """Top-level groups shown in the sidebar, in display order."""

    GENERAL = "General"
    PERMISSIONS = "Permissions"
    TOOLS = "Tools"
    MCPS = "MCPs"
    ADVANCED = "Advanced"

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_single_key(self) -> bool:
        """The section holds one array setting whose elements are the rows."""
        return self is Section.PERMISSIONS

    @property
    def is_split_panel(self) -> bool:
        """The section renders as two sub-lists sharing one cursor."""
        return self is Section.MCPS

    @property
    def is_catch_all(self) -> bool:
        """Rows are user-set keys the schema does not know about."""
        return self is Section.ADVANCED


SECTIONS: tuple[Section, ...] = tuple(Section)


class CustomKeyType(Enum):
    """Value types offered when adding a key to the Advanced section."""

    BOOLEAN = "Boolean"
    STRING = "String"
    NUMBER = "Number"
    ARRAY = "Array"
    OBJECT = "Object"

    @property
    def label(self) -> str:
        return self.value


CUSTOM_KEY_TYPES: tuple[CustomKeyType, ...] = tuple(CustomKeyType)

# Label of the synthetic last enum choice that opens free-form editing.
CUSTOM_CHOICE = "Custom"

PERMISSIONS_KEY = "amp.permissions"
MCP_SERVERS_KEY = "amp.mcpServers"
MCP_PERMISSIONS_KEY = "amp.mcpPermissions"


@dataclass(frozen=True)
class SettingDef:
    """Definition of one known setting."""

    key: str
    setting_type: SettingType
    default: Any
    section: Section = Section.GENERAL
    enum_options: Optional[tuple[str, ...]] = None
    allows_custom: bool = False

    def cycle_choices(self) -> tuple[str, ...]:
        """Enum options in cycle order, with the synthetic Custom choice last."""
        options = self.enum_options or ()
        if self.allows_custom:
            return options + (CUSTOM_CHOICE,)
        return options


class Schema:
    """Immutable catalog of known settings, keyed by setting name."""

    def __init__(self, settings: Iterable[SettingDef]) -> None:
        self._settings: dict[str, SettingDef] = {}
        for definition in settings:
            if definition.key in self._settings:
                raise ValueError(f"duplicate setting key '{definition.key}'")
            if definition.section.is_catch_all:
                raise ValueError(
                    f"setting '{definition.key}' cannot live in the "
                    f"{definition.section.label} section"
                )
            if definition.setting_type is SettingType.STRING_ENUM and not definition.enum_options:
                raise ValueError(f"enum setting '{definition.key}' has no options")
            self._settings[definition.key] = definition

    def __iter__(self) -> Iterator[SettingDef]:
        return iter(self._settings.values())

    def __len__(self) -> int:
        return len(self._settings)

    def __contains__(self, key: object) -> bool:
        return key in self._settings

    def get(self, key: str) -> Optional[SettingDef]:
        return self._settings.get(key)

    def default_for(self, key: str) -> Any:
        """Deep copy of the default for *key*, or None for unknown keys."""
        definition = self._settings.get(key)
        if definition is None:
            return None
        return copy.deepcopy(definition.default)

    def section_for_key(self, key: str) -> Optional[Section]:
        """Section a known key is shown in; None for keys outside the schema."""
        definition = self._settings.get(key)
        return definition.section if definition else None

    def settings_for_section(self, section: Section) -> list[SettingDef]:
        return [d for d in self._settings.values() if d.section is section]


# ─── Amp catalog ───────────────────────────────────────────────────────────

THEME_OPTIONS = (
    "terminal",
    "dark",
    "light",
    "catppuccin-mocha",
    "solarized-dark",
    "solarized-light",
    "gruvbox-dark-hard",
    "nord",
)
LOAD_PROFILE_OPTIONS = ("always", "never", "daily")
UPDATE_MODE_OPTIONS = ("auto", "warn", "disabled")
DEEP_REASONING_OPTIONS = ("medium", "high", "xhigh")


def _bool(key: str, default: bool = True) -> SettingDef:
    return SettingDef(key, SettingType.BOOLEAN, default)


def _enum(key: str, options: tuple[str, ...], allows_custom: bool = False) -> SettingDef:
    return SettingDef(
        key, SettingType.STRING_ENUM, "",
        enum_options=options, allows_custom=allows_custom,
    )


AMP_SETTINGS: tuple[SettingDef, ...] = (
    # General
    _bool("amp.anthropic.thinking.enabled"),
    _bool("amp.showCosts"),
    _bool("amp.notifications.enabled"),
    _bool("amp.git.commit.ampThread.enabled"),
    _bool("amp.git.commit.coauthor.enabled"),
    _bool("amp.tab.clipboard.enabled"),
    SettingDef("amp.bitbucketToken", SettingType.STRING, ""),
    SettingDef("amp.skills.path", SettingType.STRING, ""),
    _enum("amp.terminal.theme", THEME_OPTIONS, allows_custom=True),
    _enum("amp.terminal.commands.nodeSpawn.loadProfile", LOAD_PROFILE_OPTIONS),
    _enum("amp.updates.mode", UPDATE_MODE_OPTIONS),
    _enum("amp.internal.deepReasoningEffort", DEEP_REASONING_OPTIONS),
    SettingDef("amp.defaultVisibility", SettingType.OBJECT, {}),
    SettingDef("amp.fuzzy.alwaysIncludePaths", SettingType.ARRAY_STRING, []),
    # Permissions
    SettingDef(PERMISSIONS_KEY, SettingType.ARRAY_OBJECT, [], section=Section.PERMISSIONS),
    # Tools
    SettingDef("amp.tools.disable", SettingType.ARRAY_STRING, [], section=Section.TOOLS),
    SettingDef("amp.tools.stopTimeout", SettingType.NUMBER, 300, section=Section.TOOLS),
    # MCPs
    SettingDef(MCP_SERVERS_KEY, SettingType.OBJECT, {}, section=Section.MCPS),
    SettingDef(MCP_PERMISSIONS_KEY, SettingType.ARRAY_OBJECT, [], section=Section.MCPS),
)


def default_schema() -> Schema:
    """The catalog of Amp settings volt knows how to edit."""
    return Schema(AMP_SETTINGS)
