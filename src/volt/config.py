"""Preferences for volt itself (not Amp's settings).

Reads/writes $XDG_CONFIG_HOME/volt/config.yml (or --config-file). The
file is created with defaults on first run and rewritten on every load,
so new default keys show up in it automatically.

Config strings can include shell variables like ${EDITOR} or
${VOLT_EDITOR:-nvim}, which are expanded at load time.

The config defines:
  - colorScheme: one of the built-in TUI color schemes
  - editor: command line used for structured values (empty: $EDITOR)
  - settingsPath: Amp settings file to open (empty: the default location)
  - confirmQuitUnsaved: require a second quit press when changes are unsaved
  - keyBindings: action -> key name for every direct action
"""

from __future__ import annotations

import copy
import os
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .logging import get_logger, log_context

_log = get_logger("volt.config")


def default_config_file() -> str:
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, "volt", "config.yml")


# Full default config: written on first run, used as fallback for missing keys
DEFAULT_CONFIG: dict[str, Any] = {
    "colorScheme": "nord",
    "editor": "",
    "settingsPath": "",
    "confirmQuitUnsaved": True,
    "keyBindings": {
        "cursorDown": "j",
        "cursorUp": "k",
        "activate": "enter",
        "toggleFocus": "tab",
        "add": "a",
        "delete": "d",
        "reset": "r",
        "externalEditor": "e",
        "save": "ctrl+s",
        "quit": "q",
    },
}

COLOR_SCHEME_NAMES = ("nord", "tokyo-night", "catppuccin", "dracula")


def _expand_env(value: str) -> str:
    """Expand shell-style ${VAR} and ${VAR:-default} in a string."""
    def _replacer(m: re.Match) -> str:
        var_expr = m.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.environ.get(var_name) or default
        return os.environ.get(var_expr, "")
    return re.sub(r"\$\{([^}]+)\}", _replacer, value)


def _expand_config(obj: Any) -> Any:
    """Recursively expand env vars in all string values."""
    if isinstance(obj, str):
        return _expand_env(obj)
    elif isinstance(obj, dict):
        return {k: _expand_config(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_config(v) for v in obj]
    return obj


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep-merge override into base. Override values win."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _closest_match(key: str, valid_keys: set[str], max_distance: int = 3) -> str | None:
    """Suggest the valid key nearest to *key*, or None if nothing is close."""
    best_match = None
    best_dist = max_distance + 1
    key_lower = key.lower()
    for candidate in sorted(valid_keys):
        cand_lower = candidate.lower()
        if key_lower == cand_lower:
            return candidate
        if abs(len(key_lower) - len(cand_lower)) > max_distance:
            continue
        dist = _edit_distance(key_lower, cand_lower)
        if dist < best_dist:
            best_dist = dist
            best_match = candidate
    return best_match if best_dist <= max_distance else None


def _edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    prev = list(range(len(a) + 1))
    for j in range(1, len(b) + 1):
        curr = [j] + [0] * len(a)
        for i in range(1, len(a) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[i] = min(curr[i - 1] + 1, prev[i] + 1, prev[i - 1] + cost)
        prev = curr
    return prev[len(a)]


def _unknown_key_warning(kind: str, key: str, known: set[str]) -> str:
    suggestion = _closest_match(key, known)
    hint = f" (did you mean '{suggestion}'?)" if suggestion else ""
    return f"Unknown {kind} '{key}'{hint}; expected one of: {', '.join(sorted(known))}"


@dataclass
class VoltConfig:
    """Parsed and expanded volt preferences."""

    raw: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    """The config as loaded from YAML (with env vars unexpanded)."""

    expanded: dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    """The config with all env vars expanded."""

    config_path: str = ""
    """Path to the config file."""

    validation_warnings: list[str] = field(default_factory=list)
    """Warnings from the last validation run."""

    @classmethod
    def reset(cls, config_path: Optional[str] = None) -> "VoltConfig":
        """Delete the config file and regenerate it with the defaults."""
        path = config_path or default_config_file()
        if os.path.isfile(path):
            os.unlink(path)
            _log.info("Deleted config", extra={"context": log_context(path=path)})
        return cls.load(path)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "VoltConfig":
        """Load config from file, creating it with defaults if not found.

        A file that cannot be read or parsed is reported as a warning and
        the defaults are used; it is never fatal.
        """
        path = config_path or default_config_file()
        raw = copy.deepcopy(DEFAULT_CONFIG)
        load_warnings: list[str] = []

        if os.path.isfile(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                load_warnings.append(f"Failed to load config from {path}: {e}")
                user_config = None
            if isinstance(user_config, dict):
                raw = _deep_merge(raw, user_config)
            elif user_config is not None:
                load_warnings.append(f"Ignoring {path}: top level is not a mapping")

        cfg = cls(raw=raw, expanded=_expand_config(raw), config_path=path)
        cfg._validate()
        cfg.validation_warnings[:0] = load_warnings
        for w in load_warnings:
            _log.warning(w)

        # Write back defaults + user values so every option is visible in the
        # file. Skipped when the file was unreadable, to leave it for the user.
        if not load_warnings:
            try:
                cfg.save()
            except OSError as e:
                _log.warning("Failed to write config", extra={"context": log_context(
                    path=path, error=str(e),
                )})
        return cfg

    def _validate(self) -> None:
        """Validate config structure and record warnings for issues."""
        warnings: list[str] = []

        known_top_level = set(DEFAULT_CONFIG)
        for key in self.raw:
            if key not in known_top_level:
                warnings.append(_unknown_key_warning("config key", key, known_top_level))

        scheme = self.raw.get("colorScheme")
        if scheme not in COLOR_SCHEME_NAMES:
            suggestion = _closest_match(str(scheme), set(COLOR_SCHEME_NAMES))
            hint = f" (did you mean '{suggestion}'?)" if suggestion else ""
            warnings.append(
                f"Unknown colorScheme '{scheme}'{hint}; using "
                f"'{DEFAULT_CONFIG['colorScheme']}'"
            )

        if not isinstance(self.raw.get("confirmQuitUnsaved"), bool):
            warnings.append("confirmQuitUnsaved must be true or false")

        for key in ("editor", "settingsPath"):
            if not isinstance(self.raw.get(key), str):
                warnings.append(f"{key} must be a string")

        known_actions = set(DEFAULT_CONFIG["keyBindings"])
        bindings = self.raw.get("keyBindings")
        if isinstance(bindings, dict):
            for action, key in bindings.items():
                if action not in known_actions:
                    warnings.append(
                        _unknown_key_warning("key binding action", str(action), known_actions)
                    )
                elif not isinstance(key, str) or not key:
                    warnings.append(f"keyBindings.{action} must be a key name")
        else:
            warnings.append("keyBindings must be a mapping of action to key")

        self.validation_warnings = warnings
        for w in warnings:
            _log.warning("Config warning", extra={"context": log_context(warning=w)})

    def save(self) -> None:
        """Write the raw config back to disk."""
        parent = os.path.dirname(self.config_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.raw, f, default_flow_style=False, sort_keys=False)
        self.expanded = _expand_config(self.raw)

    # ─── Accessors ──────────────────────────────────────────────────

    @property
    def color_scheme(self) -> str:
        scheme = self.expanded.get("colorScheme")
        return scheme if scheme in COLOR_SCHEME_NAMES else DEFAULT_CONFIG["colorScheme"]

    @property
    def editor(self) -> Optional[str]:
        """Editor command line, or None to fall back to $EDITOR."""
        command = self.expanded.get("editor")
        return command if isinstance(command, str) and command.strip() else None

    @property
    def settings_path(self) -> Optional[str]:
        path = self.expanded.get("settingsPath")
        if isinstance(path, str) and path.strip():
            return os.path.expanduser(path)
        return None

    @property
    def confirm_quit_unsaved(self) -> bool:
        value = self.expanded.get("confirmQuitUnsaved", True)
        return value if isinstance(value, bool) else True

    @property
    def key_bindings(self) -> dict[str, str]:
        """Action -> key mapping, defaults filled in for anything invalid."""
        defaults = DEFAULT_CONFIG["keyBindings"]
        user = self.expanded.get("keyBindings")
        merged = dict(defaults)
        if isinstance(user, dict):
            for action, key in user.items():
                if action in defaults and isinstance(key, str) and key:
                    merged[action] = key
        return merged
