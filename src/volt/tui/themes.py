"""Color schemes and CSS generation for the volt TUI.

Supports Nord (default), Tokyo Night, Catppuccin, and Dracula. Each scheme
maps semantic color names to hex values; ``build_css`` turns one into the
app stylesheet.
"""

from __future__ import annotations


# ─── Color Schemes ────────────────────────────────────────────────────────

COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "nord": {
        "bg": "#2e3440",
        "bg_alt": "#3b4252",
        "fg": "#eceff4",
        "fg_dim": "#616e88",
        "accent": "#88c0d0",
        "success": "#a3be8c",
        "warning": "#ebcb8b",
        "error": "#bf616a",
        "highlight_bg": "#434c5e",
        "highlight_fg": "#eceff4",
        "border": "#4c566a",
    },
    "tokyo-night": {
        "bg": "#1a1b26",
        "bg_alt": "#24283b",
        "fg": "#a9b1d6",
        "fg_dim": "#565f89",
        "accent": "#7aa2f7",
        "success": "#9ece6a",
        "warning": "#e0af68",
        "error": "#f7768e",
        "highlight_bg": "#292e42",
        "highlight_fg": "#c0caf5",
        "border": "#414868",
    },
    "catppuccin": {
        "bg": "#1e1e2e",
        "bg_alt": "#313244",
        "fg": "#cdd6f4",
        "fg_dim": "#585b70",
        "accent": "#89b4fa",
        "success": "#a6e3a1",
        "warning": "#f9e2af",
        "error": "#f38ba8",
        "highlight_bg": "#45475a",
        "highlight_fg": "#cdd6f4",
        "border": "#585b70",
    },
    "dracula": {
        "bg": "#282a36",
        "bg_alt": "#44475a",
        "fg": "#f8f8f2",
        "fg_dim": "#6272a4",
        "accent": "#8be9fd",
        "success": "#50fa7b",
        "warning": "#f1fa8c",
        "error": "#ff5555",
        "highlight_bg": "#44475a",
        "highlight_fg": "#f8f8f2",
        "border": "#6272a4",
    },
}

DEFAULT_SCHEME = "nord"


def get_scheme(name: str = DEFAULT_SCHEME) -> dict[str, str]:
    """Get a color scheme by name, with fallback to default."""
    return COLOR_SCHEMES.get(name, COLOR_SCHEMES[DEFAULT_SCHEME])


def build_css(scheme_name: str = DEFAULT_SCHEME) -> str:
    """Build the Textual CSS using a named color scheme."""
    s = get_scheme(scheme_name)
    return f"""
    Screen {{
        background: {s['bg']};
        color: {s['fg']};
        layout: vertical;
    }}

    /* ─── Sidebar + content ─────────────────────────────────── */

    #body {{
        layout: horizontal;
        height: 1fr;
        width: 1fr;
    }}

    #sidebar {{
        width: 22;
        height: 1fr;
        padding: 0 1;
        background: {s['bg_alt']};
        border: round {s['border']};
        border-title-color: {s['accent']};
    }}

    #sidebar.-focused {{
        border: round {s['accent']};
    }}

    #content {{
        width: 1fr;
        height: 1fr;
        padding: 0 1;
        border: round {s['border']};
        border-title-color: {s['accent']};
    }}

    #content.-focused {{
        border: round {s['accent']};
    }}

    /* ─── Wizard prompt ─────────────────────────────────────── */

    #prompt {{
        height: auto;
        margin: 0 1;
        padding: 0 1;
        background: {s['bg_alt']};
        border: round {s['warning']};
        border-title-color: {s['warning']};
        display: none;
    }}

    #prompt.-active {{
        display: block;
    }}

    /* ─── Bottom bar ────────────────────────────────────────── */

    #help {{
        height: 1;
        padding: 0 1;
        color: {s['fg_dim']};
    }}

    #status {{
        height: 1;
        padding: 0 1;
        color: {s['bg']};
        background: {s['warning']};
        display: none;
    }}

    #status.-active {{
        display: block;
    }}
    """
