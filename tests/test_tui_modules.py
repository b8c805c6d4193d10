"""Tests for the TUI helper modules: value formatting, themes, prompt titles and help text."""

from __future__ import annotations

import pytest

from volt.config import DEFAULT_CONFIG
from volt.document import Document
from volt.navigator import Focus
from volt.schema import SECTIONS, CustomKeyType, Section, SettingType, default_schema
from volt.state import EditorState
from volt.tui.format import (
    CHECKED,
    UNCHECKED,
    collect_object_columns,
    format_cell,
    format_json_compact,
    format_value,
)
from volt.tui.themes import COLOR_SCHEMES, DEFAULT_SCHEME, build_css, get_scheme
from volt.tui.widgets import help_text, prompt_title
from volt.wizard import (
    IDLE,
    ConfirmMcpEdit,
    EditingValue,
    EnteringCustomValue,
    SelectingMcpPermissionLevel,
    SelectingPermissionLevel,
)

KEYS = DEFAULT_CONFIG["keyBindings"]


# ---------------------------------------------------------------------------
# format_value
# ---------------------------------------------------------------------------

class TestFormatValue:
    def test_boolean(self):
        assert format_value(SettingType.BOOLEAN, True) == CHECKED
        assert format_value(SettingType.BOOLEAN, False) == UNCHECKED
        assert format_value(SettingType.BOOLEAN, "true") == UNCHECKED

    def test_strings(self):
        assert format_value(SettingType.STRING, "~/skills") == '"~/skills"'
        assert format_value(SettingType.STRING, "") == "(empty)"
        assert format_value(SettingType.STRING_ENUM, "nord") == '"nord"'
        assert format_value(SettingType.STRING_ENUM, None) == "(empty)"

    def test_number(self):
        assert format_value(SettingType.NUMBER, 300) == "300"
        assert format_value(SettingType.NUMBER, 30.0) == "30"
        assert format_value(SettingType.NUMBER, 2.5) == "2.5"
        assert format_value(SettingType.NUMBER, "x") == "0"

    def test_array_of_strings(self):
        assert format_value(SettingType.ARRAY_STRING, ["Bash", "Read"]) == "[Bash, Read]"
        assert format_value(SettingType.ARRAY_STRING, []) == "[]"

    def test_array_of_objects(self):
        assert format_value(SettingType.ARRAY_OBJECT, []) == "[]"
        assert format_value(SettingType.ARRAY_OBJECT, [{}, {}]) == "[2 items]"

    def test_object(self):
        assert format_value(SettingType.OBJECT, {}) == "{}"
        assert format_value(SettingType.OBJECT, {"a": 1, "b": 2}) == "{2 keys}"


class TestFormatJsonCompact:
    @pytest.mark.parametrize("value, expected", [
        (None, "null"),
        (True, CHECKED),
        ("x", '"x"'),
        (3, "3"),
        (1.5, "1.5"),
        ({}, "{}"),
        ({"a": 1}, "{1 keys}"),
        ([1, "a", None], '[1, "a", null]'),
    ])
    def test_values(self, value, expected):
        assert format_json_compact(value) == expected


class TestFormatCell:
    def test_values(self):
        assert format_cell(None) == ""
        assert format_cell("Bash") == "Bash"
        assert format_cell({"serverName": "ü"}) == '{"serverName": "ü"}'
        assert format_cell(False) == "false"


class TestObjectColumns:
    def test_identifying_fields_first(self):
        items = [
            {"action": "allow", "matches": {}, "tool": "Bash"},
            {"to": "helper", "action": "delegate", "tool": "*"},
        ]
        assert collect_object_columns(items) == ["tool", "action", "matches", "to"]

    def test_first_seen_order_within_priority(self):
        items = [{"zeta": 1, "alpha": 2}]
        assert collect_object_columns(items) == ["zeta", "alpha"]

    def test_non_objects_give_no_columns(self):
        assert collect_object_columns([{"tool": "x"}, "Read"]) == []

    def test_empty(self):
        assert collect_object_columns([]) == []


# ---------------------------------------------------------------------------
# Themes
# ---------------------------------------------------------------------------

class TestThemes:
    def test_all_schemes_have_same_keys(self):
        keys = set(COLOR_SCHEMES[DEFAULT_SCHEME])
        for name, scheme in COLOR_SCHEMES.items():
            assert set(scheme) == keys, name

    def test_unknown_scheme_falls_back(self):
        assert get_scheme("nope") == COLOR_SCHEMES[DEFAULT_SCHEME]

    def test_css_uses_scheme_colors(self):
        css = build_css("dracula")
        assert COLOR_SCHEMES["dracula"]["bg"] in css
        for selector in ("#sidebar", "#content", "#prompt.-active", "#status.-active"):
            assert selector in css


# ---------------------------------------------------------------------------
# Prompt titles and help text
# ---------------------------------------------------------------------------

class TestPromptTitle:
    def test_titles(self):
        assert prompt_title(EditingValue("amp.skills.path")) == "Edit amp.skills.path"
        assert prompt_title(EditingValue("amp.terminal.theme", custom=True)) == (
            "Custom value for amp.terminal.theme"
        )
        assert prompt_title(EnteringCustomValue("k", CustomKeyType.NUMBER)) == "Number value for k"
        assert prompt_title(SelectingPermissionLevel("Bash")) == "Permission for Bash"
        assert prompt_title(SelectingMcpPermissionLevel("serverName", "gh")) == (
            "Action for serverName=gh"
        )
        assert prompt_title(ConfirmMcpEdit(0)) == "Rule added"

    def test_idle_is_blank(self):
        assert prompt_title(IDLE) == ""


def make_state(values=None) -> EditorState:
    return EditorState(Document("/tmp/volt-test/settings.json", default_schema(), values))


def focus_on(state: EditorState, section: Section, index: int = 0) -> EditorState:
    state.navigator.select_section(SECTIONS.index(section))
    state.navigator.focus = Focus.CONTENT
    state.navigator.item_index = index
    return state


class TestHelpText:
    def test_sidebar_shows_path(self):
        text = help_text(make_state(), KEYS)
        assert "/tmp/volt-test/settings.json" in text
        assert "ctrl+s: save" in text

    def test_catch_all(self):
        text = help_text(focus_on(make_state(), Section.ADVANCED), KEYS)
        assert "a: add key" in text

    def test_array_setting_mentions_delete(self):
        state = focus_on(make_state(), Section.TOOLS, 0)
        assert "d: delete" in help_text(state, KEYS)

    def test_scalar_setting_omits_delete(self):
        state = focus_on(make_state(), Section.TOOLS, 1)
        assert "d: delete" not in help_text(state, KEYS)

    def test_custom_bindings(self):
        keys = dict(KEYS, add="n")
        state = focus_on(make_state(), Section.PERMISSIONS)
        assert "n: add" in help_text(state, keys)
