"""volt: a terminal editor for Amp's settings.json.

Usage:
    volt                          Edit the default settings file
    volt --settings PATH          Edit a specific settings file
    volt --config-file PATH       Use an alternate preferences file
    volt --reset-config           Regenerate the preferences file with defaults
"""

from __future__ import annotations

import argparse
import os
import sys
from importlib import metadata
from typing import Optional

from .config import VoltConfig
from .document import Document, default_path
from .errors import DocumentParseError
from .logging import VOLT_LOG, get_logger, log_context
from .schema import default_schema

_log = get_logger("volt.main")


def _version() -> str:
    try:
        return metadata.version("volt")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="volt",
        description="volt: browse and edit Amp settings in the terminal",
    )
    parser.add_argument("--settings", metavar="PATH",
                        help="Settings file to edit (default: $XDG_CONFIG_HOME/amp/settings.json)")
    parser.add_argument("--config-file", metavar="PATH",
                        help="volt preferences file (default: $XDG_CONFIG_HOME/volt/config.yml)")
    parser.add_argument("--reset-config", action="store_true",
                        help="Delete and regenerate the preferences file with defaults")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    return parser


def resolve_settings_path(cli_path: Optional[str], config: VoltConfig) -> str:
    """CLI flag, then the preferences file, then the per-user default."""
    if cli_path:
        return os.path.expanduser(cli_path)
    return config.settings_path or default_path()


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if args.reset_config:
        config = VoltConfig.reset(args.config_file)
        print(f"  Config: reset {config.config_path}", flush=True)
    else:
        config = VoltConfig.load(args.config_file)
    for warning in config.validation_warnings:
        print(f"  Config WARNING: {warning}", file=sys.stderr, flush=True)

    path = resolve_settings_path(args.settings, config)
    try:
        document = Document.load(path, default_schema())
    except DocumentParseError as e:
        _log.error("Failed to load settings", extra={"context": log_context(path=path)})
        print(f"Error: {e}", file=sys.stderr, flush=True)
        sys.exit(1)
    except OSError as e:
        _log.error("Failed to read settings", extra={"context": log_context(path=path)})
        print(f"Error: reading {path}: {e}", file=sys.stderr, flush=True)
        sys.exit(1)

    # Imported late so --help and --version stay fast
    from .tui.app import VoltApp

    _log.info("Starting TUI", extra={"context": log_context(path=path, log=VOLT_LOG)})
    VoltApp(document, config=config).run()


if __name__ == "__main__":
    main()
