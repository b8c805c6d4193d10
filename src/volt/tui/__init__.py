"""volt TUI package.

Modules:
    themes  - Color schemes (Nord, Tokyo Night, Catppuccin, Dracula) and CSS generation
    format  - Plain-text value summaries for the content panel
    widgets - SettingsBody, the panels, _safe_action decorator
    app     - VoltApp (main Textual App)
"""

from .themes import COLOR_SCHEMES, DEFAULT_SCHEME, get_scheme, build_css
from .widgets import SettingsBody, SectionSidebar, SettingsPanel, WizardPrompt, _safe_action
from .app import VoltApp

__all__ = [
    "COLOR_SCHEMES",
    "DEFAULT_SCHEME",
    "get_scheme",
    "build_css",
    "SettingsBody",
    "SectionSidebar",
    "SettingsPanel",
    "WizardPrompt",
    "_safe_action",
    "VoltApp",
]
