"""Tests for the volt logging module and the command-line entry point.

Logging tests cover:
- _JsonFormatter: structured JSON output with context and exception fields
- _make_handler: RotatingFileHandler creation
- get_logger(): level, propagation, idempotent handler registration
- log_context(): well-known fields plus extras

CLI tests cover:
- Argument parsing (--settings, --config-file, --reset-config, --version)
- Settings path resolution (flag, preferences file, default)
- Startup failures exit with status 1 before the TUI starts
- A readable document is handed to the TUI
"""

from __future__ import annotations

import json
import logging
import sys
import unittest.mock as mock
from logging.handlers import RotatingFileHandler

import pytest

from volt.__main__ import build_parser, main, resolve_settings_path
from volt.config import VoltConfig
from volt.logging import (
    BACKUP_COUNT,
    MAX_BYTES,
    VOLT_LOG,
    _JsonFormatter,
    _configured,
    _make_handler,
    get_logger,
    log_context,
)


# ===========================================================================
# Logging module tests
# ===========================================================================


class TestConstants:
    def test_rotation(self):
        assert MAX_BYTES == 5 * 1024 * 1024
        assert BACKUP_COUNT == 3

    def test_log_file_name(self):
        assert VOLT_LOG.endswith("volt.log")


class TestJsonFormatter:
    """Tests for the _JsonFormatter class."""

    def setup_method(self):
        self.fmt = _JsonFormatter()

    def _make_record(self, msg="test message", level=logging.INFO, name="volt.test", **kwargs):
        record = logging.LogRecord(
            name=name,
            level=level,
            pathname="test.py",
            lineno=42,
            msg=msg,
            args=(),
            exc_info=None,
        )
        for k, v in kwargs.items():
            setattr(record, k, v)
        return record

    def test_basic_json_output(self):
        parsed = json.loads(self.fmt.format(self._make_record("hello world")))
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "volt.test"
        assert parsed["message"] == "hello world"
        assert "T" in parsed["timestamp"]

    def test_context_included(self):
        record = self._make_record(context={"key": "amp.showCosts", "section": "General"})
        parsed = json.loads(self.fmt.format(record))
        assert parsed["context"] == {"key": "amp.showCosts", "section": "General"}

    def test_empty_context_not_included(self):
        parsed = json.loads(self.fmt.format(self._make_record(context={})))
        assert "context" not in parsed

    def test_exception_info_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = self._make_record(level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(self.fmt.format(record))
        assert "ValueError: boom" in parsed["exception"]

    def test_non_serializable_context(self):
        record = self._make_record(context={"path": object()})
        parsed = json.loads(self.fmt.format(record))
        assert parsed["context"]["path"].startswith("<object")

    def test_output_is_single_line(self):
        assert "\n" not in self.fmt.format(self._make_record("multi\nline"))


class TestMakeHandler:
    def test_creates_rotating_handler(self, tmp_path):
        handler = _make_handler(str(tmp_path / "x.log"), _JsonFormatter())
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == MAX_BYTES
            assert handler.backupCount == BACKUP_COUNT
            assert isinstance(handler.formatter, _JsonFormatter)
        finally:
            handler.close()

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "x.log"
        handler = _make_handler(str(path), _JsonFormatter())
        handler.close()
        assert path.parent.is_dir()


class TestGetLogger:
    """Tests for the get_logger() function."""

    def setup_method(self):
        self._saved_configured = _configured.copy()
        self._loggers: list[logging.Logger] = []

    def teardown_method(self):
        for logger in self._loggers:
            for h in logger.handlers[:]:
                h.close()
                logger.removeHandler(h)
        _configured.clear()
        _configured.update(self._saved_configured)

    def _get(self, name, path):
        logger = get_logger(name, str(path))
        self._loggers.append(logger)
        return logger

    def test_level_and_propagation(self, tmp_path):
        logger = self._get("volt.test.level", tmp_path / "l.log")
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_idempotent_handler_registration(self, tmp_path):
        path = tmp_path / "same.log"
        first = self._get("volt.test.idem", path)
        second = self._get("volt.test.idem", path)
        assert first is second
        assert len(first.handlers) == 1

    def test_writes_json_with_context(self, tmp_path):
        path = tmp_path / "ctx.log"
        logger = self._get("volt.test.write", path)
        logger.info("Saved", extra={"context": log_context(key="amp.showCosts")})
        for h in logger.handlers:
            h.flush()
        line = path.read_text().strip().splitlines()[-1]
        parsed = json.loads(line)
        assert parsed["message"] == "Saved"
        assert parsed["context"] == {"key": "amp.showCosts"}


class TestLogContext:
    def test_empty_context(self):
        assert log_context() == {}

    def test_well_known_fields(self):
        assert log_context(key="k", section="General", state="EditingValue") == {
            "key": "k",
            "section": "General",
            "state": "EditingValue",
        }

    def test_empty_strings_excluded(self):
        assert log_context(key="", section="") == {}

    def test_extra_kwargs(self):
        assert log_context(path="/x", index=2) == {"path": "/x", "index": 2}


# ===========================================================================
# CLI tests
# ===========================================================================


@pytest.fixture()
def isolated(tmp_path, monkeypatch):
    """Point every default location into tmp_path."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.settings is None
        assert args.config_file is None
        assert args.reset_config is False

    def test_flags(self):
        args = build_parser().parse_args(
            ["--settings", "s.json", "--config-file", "c.yml", "--reset-config"]
        )
        assert args.settings == "s.json"
        assert args.config_file == "c.yml"
        assert args.reset_config is True

    def test_version_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.startswith("volt ")


class TestResolveSettingsPath:
    def test_cli_flag_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        cfg = VoltConfig(expanded={"settingsPath": "/from/config.json"})
        assert resolve_settings_path("~/cli.json", cfg) == str(tmp_path / "cli.json")

    def test_config_value(self):
        cfg = VoltConfig(expanded={"settingsPath": "/from/config.json"})
        assert resolve_settings_path(None, cfg) == "/from/config.json"

    def test_default(self, isolated):
        assert resolve_settings_path(None, VoltConfig()) == str(
            isolated / "xdg" / "amp" / "settings.json"
        )


class TestMain:
    def test_malformed_settings_exit_1(self, isolated, capsys):
        settings = isolated / "settings.json"
        settings.write_text("{not json")
        with mock.patch("volt.tui.app.VoltApp") as app_cls:
            with pytest.raises(SystemExit) as exc_info:
                main(["--settings", str(settings)])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith(f"Error: parsing {settings}:")
        app_cls.assert_not_called()

    def test_non_utf8_settings_exit_1(self, isolated, capsys):
        settings = isolated / "settings.json"
        settings.write_bytes(b'{"a": "\xff"}')
        with mock.patch("volt.tui.app.VoltApp") as app_cls:
            with pytest.raises(SystemExit) as exc_info:
                main(["--settings", str(settings)])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith(f"Error: parsing {settings}:")
        app_cls.assert_not_called()

    def test_unreadable_settings_exit_1(self, isolated, capsys):
        settings = isolated / "settings.json"
        denied = PermissionError(13, "Permission denied")
        with mock.patch("volt.tui.app.VoltApp") as app_cls, \
                mock.patch("volt.__main__.Document.load", side_effect=denied):
            with pytest.raises(SystemExit) as exc_info:
                main(["--settings", str(settings)])
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert f"Error: reading {settings}" in err
        assert "Permission denied" in err
        app_cls.assert_not_called()

    def test_runs_tui_with_loaded_document(self, isolated):
        settings = isolated / "settings.json"
        settings.write_text('{"amp.showCosts": false}')
        with mock.patch("volt.tui.app.VoltApp") as app_cls:
            main(["--settings", str(settings)])
        document = app_cls.call_args.args[0]
        assert document.path == str(settings)
        assert document.get("amp.showCosts") is False
        assert isinstance(app_cls.call_args.kwargs["config"], VoltConfig)
        app_cls.return_value.run.assert_called_once_with()

    def test_missing_settings_open_empty(self, isolated):
        settings = isolated / "new" / "settings.json"
        with mock.patch("volt.tui.app.VoltApp") as app_cls:
            main(["--settings", str(settings)])
        assert app_cls.call_args.args[0].explicit() == {}

    def test_config_warnings_printed(self, isolated, capsys):
        config = isolated / "config.yml"
        config.write_text("colorScheme: drakula\n")
        with mock.patch("volt.tui.app.VoltApp"):
            main(["--config-file", str(config), "--settings", str(isolated / "s.json")])
        assert "Config WARNING: Unknown colorScheme 'drakula'" in capsys.readouterr().err

    def test_reset_config(self, isolated, capsys):
        config = isolated / "config.yml"
        config.write_text("colorScheme: dracula\n")
        with mock.patch("volt.tui.app.VoltApp") as app_cls:
            main(["--reset-config", "--config-file", str(config),
                  "--settings", str(isolated / "s.json")])
        assert f"Config: reset {config}" in capsys.readouterr().out
        assert app_cls.call_args.kwargs["config"].color_scheme == "nord"
