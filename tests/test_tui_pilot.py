"""Textual pilot tests for the volt TUI.

Drives VoltApp with real key presses. The external editor is replaced by
patching ``VoltApp._open_editor`` since the headless driver cannot hand
the terminal over to another program.
"""

import json
import unittest.mock as mock

import pytest

from volt.config import VoltConfig
from volt.document import Document
from volt.errors import EditorError
from volt.navigator import Focus, SubPanel
from volt.schema import MCP_SERVERS_KEY, PERMISSIONS_KEY, Section, default_schema
from volt.tui.app import VoltApp
from volt.tui.widgets import ADD_SERVER_LABEL, SectionSidebar, SettingsPanel, WizardPrompt


def make_app(tmp_path, values=None, config=None) -> VoltApp:
    """Create a VoltApp over a document stored under tmp_path."""
    doc = Document(str(tmp_path / "settings.json"), default_schema(), values)
    return VoltApp(doc, config=config)


def rendered(widget) -> str:
    return str(widget.render())


async def goto_section(pilot, app, section: Section) -> None:
    """From the sidebar, move down to *section* and focus its content."""
    nav = app.editor_state.navigator
    while nav.current_section is not section:
        await pilot.press("j")
    await pilot.press("enter")
    assert nav.focus is Focus.CONTENT


@pytest.mark.asyncio
async def test_app_starts(tmp_path):
    """App mounts with the sidebar focused and no prompt."""
    app = make_app(tmp_path)
    async with app.run_test():
        assert app.editor_state.navigator.focus is Focus.SIDEBAR
        assert not app.query_one(WizardPrompt).has_class("-active")
        assert "General" in rendered(app.query_one(SectionSidebar))


@pytest.mark.asyncio
async def test_sidebar_navigation(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await pilot.press("j", "j")
        assert app.editor_state.navigator.current_section is Section.TOOLS
        await pilot.press("k")
        assert app.editor_state.navigator.current_section is Section.PERMISSIONS
        await pilot.press("down")
        assert app.editor_state.navigator.current_section is Section.TOOLS


@pytest.mark.asyncio
async def test_toggle_boolean_marks_dirty(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.GENERAL)
        await pilot.press("j", "enter")
        doc = app.editor_state.document
        assert doc.get("amp.showCosts") is False
        assert doc.is_dirty
        assert app.query_one(SectionSidebar).border_title == "Volt (modified)"
        assert app.query_one("#status").has_class("-active")


@pytest.mark.asyncio
async def test_save_writes_file(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.GENERAL)
        await pilot.press("enter", "ctrl+s")
        assert app.editor_state.status_message == "Saved!"
        assert not app.editor_state.document.is_dirty
    with open(tmp_path / "settings.json", encoding="utf-8") as f:
        assert json.load(f) == {"amp.anthropic.thinking.enabled": False}


@pytest.mark.asyncio
async def test_wizard_swallows_action_keys(tmp_path):
    """Letters bound to actions are plain text while a prompt is open."""
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.TOOLS)
        await pilot.press("a")
        assert app.query_one(WizardPrompt).has_class("-active")
        await pilot.press("q", "d", "j", "backspace", "e", "enter")
        assert app.editor_state.document.get("amp.tools.disable") == ["qde"]
        assert not app.editor_state.should_quit
        assert not app.query_one(WizardPrompt).has_class("-active")


@pytest.mark.asyncio
async def test_escape_cancels_wizard(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.ADVANCED)
        await pilot.press("a", "x", "escape")
        assert not app.editor_state.wizard.is_active
        assert not app.editor_state.document.is_dirty


@pytest.mark.asyncio
async def test_permission_rule_flow(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.PERMISSIONS)
        await pilot.press("a", "B", "a", "s", "h", "enter")
        assert "allow" in rendered(app.query_one(WizardPrompt))
        await pilot.press("down", "enter", "n")
        assert app.editor_state.document.get(PERMISSIONS_KEY) == [
            {"tool": "Bash", "action": "allow"},
        ]
        panel = rendered(app.query_one(SettingsPanel))
        assert "tool" in panel and "Bash" in panel


@pytest.mark.asyncio
async def test_activate_opens_editor_and_applies(tmp_path):
    rules = [{"tool": "Bash", "action": "ask"}]
    app = make_app(tmp_path, {PERMISSIONS_KEY: rules})
    edited = {"tool": "Bash", "action": "reject"}
    with mock.patch.object(VoltApp, "_open_editor", return_value=edited) as opened:
        async with app.run_test() as pilot:
            await goto_section(pilot, app, Section.PERMISSIONS)
            await pilot.press("enter")
            opened.assert_called_once_with(rules[0])
            assert app.editor_state.document.get(PERMISSIONS_KEY) == [edited]
            assert app.editor_state.status_message == f"Updated {PERMISSIONS_KEY}[0]"


@pytest.mark.asyncio
async def test_editor_failure_keeps_document(tmp_path):
    app = make_app(tmp_path)
    failure = EditorError("editor exited with status 1")
    with mock.patch.object(VoltApp, "_open_editor", side_effect=failure):
        async with app.run_test() as pilot:
            await goto_section(pilot, app, Section.TOOLS)
            await pilot.press("e")
            assert app.editor_state.status_message == (
                "Editor error: editor exited with status 1"
            )
            assert not app.editor_state.document.is_dirty


@pytest.mark.asyncio
async def test_add_mcp_server(tmp_path):
    app = make_app(tmp_path)
    server = {"command": "npx", "args": ["-y", "server-github"]}
    with mock.patch.object(VoltApp, "_open_editor", return_value=server):
        async with app.run_test() as pilot:
            await goto_section(pilot, app, Section.MCPS)
            assert ADD_SERVER_LABEL in rendered(app.query_one(SettingsPanel))
            await pilot.press("enter", "g", "h", "enter")
            assert app.editor_state.document.get(MCP_SERVERS_KEY) == {"gh": server}
            assert "npx -y server-github" in rendered(app.query_one(SettingsPanel))


@pytest.mark.asyncio
async def test_split_panel_crossing(tmp_path):
    values = {
        MCP_SERVERS_KEY: {"gh": {"command": "npx"}},
        "amp.mcpPermissions": [{"matches": {"serverName": "gh"}, "action": "allow"}],
    }
    app = make_app(tmp_path, values)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.MCPS)
        nav = app.editor_state.navigator
        await pilot.press("j", "j")
        assert nav.sub_panel is SubPanel.PERMISSIONS
        await pilot.press("k")
        assert nav.sub_panel is SubPanel.CONFIGS
        assert nav.selected_server() == "gh"


@pytest.mark.asyncio
async def test_quit_clean(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await pilot.press("q")
        assert app.editor_state.should_quit


@pytest.mark.asyncio
async def test_quit_with_unsaved_changes_needs_second_press(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        await goto_section(pilot, app, Section.GENERAL)
        await pilot.press("enter", "q")
        assert not app.editor_state.should_quit
        assert "Unsaved changes" in app.editor_state.status_message
        await pilot.press("q")
        assert app.editor_state.should_quit


@pytest.mark.asyncio
async def test_custom_key_bindings(tmp_path):
    config = VoltConfig(expanded={"keyBindings": {"cursorDown": "n", "quit": "x"}})
    app = make_app(tmp_path, config=config)
    async with app.run_test() as pilot:
        await pilot.press("n")
        assert app.editor_state.navigator.section_index == 1
        await pilot.press("j")
        assert app.editor_state.navigator.section_index == 1
        await pilot.press("x")
        assert app.editor_state.should_quit


@pytest.mark.asyncio
async def test_unexpected_error_shown_not_raised(tmp_path):
    app = make_app(tmp_path)
    async with app.run_test() as pilot:
        with mock.patch.object(app.editor_state, "perform", side_effect=RuntimeError("boom")):
            await pilot.press("j")
        assert "RuntimeError: boom" in app.editor_state.status_message
