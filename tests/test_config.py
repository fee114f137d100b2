# Copyright (c) 2025 Stephen Clau

# This file is part of Logtail Viewer.

# Logtail Viewer is dual-licensed:

# 1. GNU Affero General Public License v3.0 (AGPL-3.0)
#    See LICENSE file for full terms

# 2. Commercial License
#    For proprietary use without AGPL requirements
#    Contact: licensing@laudiversified.com

# SPDX-License-Identifier: AGPL-3.0-only OR Commercial

"""
Tests for config.py.

Covers the Config dataclass validation, load_config() precedence
(logtail.yml < environment < overrides), validate_config() and the safe
conversion helpers.
"""

from pathlib import Path

import pytest
import yaml

from logtail_viewer.config import (
    Config,
    _expand_env_vars,
    _safe_bool,
    _safe_float,
    _safe_int,
    get_config_value,
    load_config,
    validate_config,
)


# ============================================================================
# Config dataclass
# ============================================================================

class TestConfig:
    """Test Config validation."""

    def test_defaults(self):
        config = Config(log_path=Path("app.log"))

        assert config.poll_interval == 0.1
        assert config.use_notifier is True
        assert config.max_lines is None
        assert config.settings_path == Path("settings.yml")
        assert config.crash_log_path == Path("crash.log")
        assert config.health_check_enabled is False
        assert config.log_level == "info"
        assert config.log_format == "console"

    def test_string_paths_converted(self):
        config = Config(log_path="app.log", settings_path="s.yml", crash_log_path="c.log")  # type: ignore[arg-type]

        assert isinstance(config.log_path, Path)
        assert isinstance(config.settings_path, Path)
        assert isinstance(config.crash_log_path, Path)

    def test_log_path_required(self):
        with pytest.raises(ValueError, match="log_path"):
            Config(log_path="")  # type: ignore[arg-type]

    @pytest.mark.parametrize("interval", [0, -0.5])
    def test_invalid_poll_interval(self, interval):
        with pytest.raises(ValueError, match="poll_interval"):
            Config(log_path=Path("a.log"), poll_interval=interval)

    def test_invalid_max_lines(self):
        with pytest.raises(ValueError, match="max_lines"):
            Config(log_path=Path("a.log"), max_lines=0)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            Config(log_path=Path("a.log"), log_level="verbose")

    def test_invalid_log_format(self):
        with pytest.raises(ValueError, match="log_format"):
            Config(log_path=Path("a.log"), log_format="xml")

    @pytest.mark.parametrize("port", [0, 70000])
    def test_invalid_port(self, port):
        with pytest.raises(ValueError, match="health_check_port"):
            Config(log_path=Path("a.log"), health_check_port=port)


# ============================================================================
# Helpers
# ============================================================================

class TestHelpers:
    """Test conversion and lookup helpers."""

    def test_safe_int(self):
        assert _safe_int(None, "x", 5) == 5
        assert _safe_int(7, "x", 5) == 7
        assert _safe_int("8", "x", 5) == 8
        with pytest.raises(ValueError):
            _safe_int("eight", "x", 5)
        with pytest.raises(ValueError):
            _safe_int(1.5, "x", 5)
        with pytest.raises(ValueError):
            _safe_int(True, "x", 5)

    def test_safe_float(self):
        assert _safe_float(None, "x", 0.1) == 0.1
        assert _safe_float(2, "x", 0.1) == 2.0
        assert _safe_float("0.25", "x", 0.1) == 0.25
        with pytest.raises(ValueError):
            _safe_float("fast", "x", 0.1)
        with pytest.raises(ValueError):
            _safe_float([1], "x", 0.1)

    @pytest.mark.parametrize("value,expected", [
        (None, True), (True, True), (False, False),
        ("yes", True), ("ON", True), ("1", True),
        ("no", False), ("off", False), ("0", False), ("False", False),
    ])
    def test_safe_bool(self, value, expected):
        assert _safe_bool(value, "x", True) is expected

    def test_safe_bool_invalid(self):
        with pytest.raises(ValueError):
            _safe_bool("maybe", "x", True)

    def test_expand_env_vars(self, monkeypatch):
        monkeypatch.setenv("LOG_ROOT", "/var/log/game")

        assert _expand_env_vars("${LOG_ROOT}/out.log") == "/var/log/game/out.log"
        assert _expand_env_vars("${NOT_SET_ANYWHERE_XYZ}/a") == "${NOT_SET_ANYWHERE_XYZ}/a"
        assert _expand_env_vars(42) == 42

    def test_get_config_value(self, monkeypatch):
        monkeypatch.setenv("SOME_VALUE", "from-env")
        monkeypatch.delenv("MISSING_VALUE", raising=False)

        assert get_config_value("SOME_VALUE") == "from-env"
        assert get_config_value("MISSING_VALUE", default="fallback") == "fallback"
        assert get_config_value("MISSING_VALUE") is None
        with pytest.raises(ValueError, match="MISSING_VALUE"):
            get_config_value("MISSING_VALUE", required=True)


# ============================================================================
# load_config()
# ============================================================================

class TestLoadConfig:
    """Test configuration precedence."""

    def test_no_log_path_anywhere(self, clean_env):
        with pytest.raises(ValueError, match="No log file configured"):
            load_config()

    def test_from_overrides_only(self, clean_env, tmp_path):
        config = load_config({"log_path": str(tmp_path / "a.log"), "poll_interval": 0.5})

        assert config.log_path == tmp_path / "a.log"
        assert config.poll_interval == 0.5

    def test_from_yaml_file(self, clean_env, tmp_path):
        (tmp_path / "logtail.yml").write_text(yaml.safe_dump({
            "log_path": "/var/log/game.log",
            "poll_interval": 0.2,
            "max_lines": 1000,
            "use_notifier": False,
            "health_check_enabled": True,
            "health_check_port": 9100,
        }))

        config = load_config()

        assert config.log_path == Path("/var/log/game.log")
        assert config.poll_interval == 0.2
        assert config.max_lines == 1000
        assert config.use_notifier is False
        assert config.health_check_enabled is True
        assert config.health_check_port == 9100

    def test_env_overrides_yaml(self, clean_env, tmp_path):
        (tmp_path / "logtail.yml").write_text("log_path: /from/yaml.log\nlog_level: debug\n")
        clean_env.setenv("LOGTAIL_PATH", "/from/env.log")

        config = load_config()

        assert config.log_path == Path("/from/env.log")
        assert config.log_level == "debug"

    def test_overrides_beat_env(self, clean_env):
        clean_env.setenv("LOGTAIL_PATH", "/from/env.log")
        clean_env.setenv("POLL_INTERVAL", "0.3")

        config = load_config({"log_path": "/from/cli.log", "poll_interval": None})

        assert config.log_path == Path("/from/cli.log")
        assert config.poll_interval == 0.3

    def test_env_var_expansion_in_path(self, clean_env):
        clean_env.setenv("GAME_DIR", "/games/kingdom")
        clean_env.setenv("LOGTAIL_PATH", "${GAME_DIR}/output.log")

        assert load_config().log_path == Path("/games/kingdom/output.log")

    def test_empty_yaml_is_fine(self, clean_env, tmp_path):
        (tmp_path / "logtail.yml").write_text("")

        config = load_config({"log_path": "a.log"})

        assert config.log_path == Path("a.log")

    def test_non_mapping_yaml_rejected(self, clean_env, tmp_path):
        (tmp_path / "logtail.yml").write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config({"log_path": "a.log"})

    def test_invalid_yaml_raises(self, clean_env, tmp_path):
        (tmp_path / "logtail.yml").write_text("log_path: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config()

    def test_invalid_env_number(self, clean_env):
        clean_env.setenv("POLL_INTERVAL", "soon")

        with pytest.raises(ValueError, match="poll_interval"):
            load_config({"log_path": "a.log"})


# ============================================================================
# validate_config()
# ============================================================================

class TestValidateConfig:
    """Test validate_config()."""

    def test_missing_file_is_valid(self, tmp_path):
        assert validate_config(Config(log_path=tmp_path / "later.log"))

    def test_missing_directory_is_valid(self, tmp_path):
        assert validate_config(Config(log_path=tmp_path / "nope" / "later.log"))

    def test_directory_as_log_path_is_invalid(self, tmp_path):
        assert not validate_config(Config(log_path=tmp_path))
