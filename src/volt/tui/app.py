"""Main TUI application for volt.

Contains VoltApp, the Textual App that renders an EditorState and feeds
it key presses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from rich.markup import escape
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.widgets import Static

from ..config import DEFAULT_CONFIG
from ..document import Document
from ..editor import EditorRequest, edit_value_in_editor
from ..errors import EditorError
from ..logging import get_logger, log_context
from ..state import EditorState
from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, build_css, get_scheme
from .widgets import (
    SectionSidebar,
    SettingsBody,
    SettingsPanel,
    WizardPrompt,
    _safe_action,
    help_text,
)

if TYPE_CHECKING:
    from ..config import VoltConfig

_log = get_logger("volt.tui")

# Always available in addition to the configured keys.
_FIXED_KEYS = {
    "down": "cursorDown",
    "up": "cursorUp",
    "tab": "toggleFocus",
    "shift+tab": "toggleFocus",
    "ctrl+c": "quit",
}


# ─── Main TUI App ───────────────────────────────────────────────────────────

class VoltApp(App):
    """Textual app for browsing and editing one Amp settings document."""

    CSS = build_css(DEFAULT_SCHEME)
    TITLE = "volt"
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        document: Document,
        config: Optional["VoltConfig"] = None,
        **kwargs,
    ) -> None:
        # Apply color scheme from config before the stylesheet is parsed
        scheme_name = config.color_scheme if config else DEFAULT_SCHEME
        if scheme_name not in COLOR_SCHEMES:
            scheme_name = DEFAULT_SCHEME
        self.__class__.CSS = build_css(scheme_name)
        self._color_scheme = scheme_name
        self._cs = get_scheme(scheme_name)  # shortcut for inline Rich markup

        super().__init__(**kwargs)
        self._config = config
        self._editor_command = config.editor if config else None
        self._keys = dict(config.key_bindings if config else DEFAULT_CONFIG["keyBindings"])
        self._key_actions = dict(_FIXED_KEYS)
        self._key_actions.update({key: action for action, key in self._keys.items()})
        self.editor_state = EditorState(
            document,
            confirm_quit_unsaved=config.confirm_quit_unsaved if config else True,
        )

    # ─── Widget composition ────────────────────────────────────────

    def compose(self) -> ComposeResult:
        with SettingsBody(self.handle_key_press, id="body"):
            yield SectionSidebar("", id="sidebar")
            yield SettingsPanel("", id="content")
        yield WizardPrompt("", id="prompt")
        yield Static("", id="help")
        yield Static("", id="status")

    def on_mount(self) -> None:
        self.sub_title = self.editor_state.document.path
        self.query_one("#body").focus()
        self._refresh_view()

    # ─── Key handling ──────────────────────────────────────────────

    @_safe_action
    def handle_key_press(self, key: str, character: Optional[str] = None) -> None:
        """Route one key to the active wizard, else to its bound action."""
        state = self.editor_state
        if state.wizard.is_active:
            request = state.handle_wizard_key(key, character)
        else:
            action = self._key_actions.get(key)
            if action is None:
                return
            request = state.perform(action)
        if request is not None:
            self._fulfil(request)
        self._refresh_view()
        if state.should_quit:
            self.exit()

    def _fulfil(self, request: EditorRequest) -> None:
        try:
            edited = self._open_editor(request.value)
        except EditorError as e:
            self.editor_state.editor_failed(request, e)
            return
        self.editor_state.apply_editor_result(request, edited)

    def _open_editor(self, value: Any) -> Any:
        """Run the external editor with the terminal handed over to it."""
        _log.info("Opening editor", extra={"context": log_context(
            command=self._editor_command or "",
        )})
        try:
            with self.suspend():
                return edit_value_in_editor(value, self._editor_command)
        except SuspendNotSupported as e:
            raise EditorError(f"cannot suspend the terminal: {e}") from e

    # ─── Rendering ─────────────────────────────────────────────────

    def _refresh_view(self) -> None:
        state = self.editor_state
        cs = self._cs
        self.query_one(SectionSidebar).show(state, cs)
        self.query_one(SettingsPanel).show(state, cs)
        self.query_one(WizardPrompt).show(state.wizard, cs)
        self.query_one("#help", Static).update(escape(help_text(state, self._keys)))
        status = self.query_one("#status", Static)
        status.set_class(bool(state.status_message), "-active")
        status.update(escape(state.status_message or ""))

    def show_error(self, message: str) -> None:
        """Surface an unexpected error on the status line."""
        self.editor_state.set_status(message)
        self._refresh_view()
