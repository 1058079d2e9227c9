"""Tests for the configuration module."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from geminibridge.config import (
    DEFAULT_MODEL,
    Config,
    clear_secret_cache,
    fetch_secret,
    get_config,
    load_config,
    reset_config,
)
from geminibridge.config.loader import dict_to_config, env_overrides, load_yaml_file
from geminibridge.config.merge import deep_merge, merge_configs
from geminibridge.config.schema import LoggingConfig
from geminibridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_user_config_path,
)
from geminibridge.logging import TRACE, VERBOSE, get_logger, resolve_level


class TestDeepMerge:
    """Test the deep merge algorithm."""

    def test_override_wins(self) -> None:
        assert deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        base = {"engine": {"model": "gemini-2.5-flash", "max_retries": 2}}
        result = deep_merge(base, {"engine": {"max_retries": 5}})
        assert result == {"engine": {"model": "gemini-2.5-flash", "max_retries": 5}}

    def test_none_does_not_override(self) -> None:
        assert deep_merge({"a": 1}, {"a": None}) == {"a": 1}

    def test_lists_replace(self) -> None:
        assert deep_merge({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}

    def test_inputs_not_mutated(self) -> None:
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_merge_configs_layers(self) -> None:
        result = merge_configs({"a": 1}, {}, {"a": 2, "b": 1}, {"b": 3})
        assert result == {"a": 2, "b": 3}

    def test_unset_env_values_keep_file_values(self) -> None:
        file_layer = {"logging": {"file": "/tmp/gb.log", "level": "DEBUG"}}
        env_layer = {"logging": {"file": None, "level": "WARNING"}, "extra": None}
        result = merge_configs(file_layer, None, env_layer)
        assert result == {"logging": {"file": "/tmp/gb.log", "level": "WARNING"}}
        assert "extra" not in result


class TestPaths:
    def test_project_path(self) -> None:
        path = get_project_config_path("/repo")
        assert path == Path("/repo") / ".gb" / "config.yaml"

    @pytest.mark.skipif(sys.platform == "win32", reason="XDG is Unix only")
    def test_user_path_honours_xdg(self, tmp_path) -> None:
        assert get_user_config_path() == tmp_path / "xdg" / "geminibridge" / "config.yaml"

    def test_paths_order(self) -> None:
        paths = get_config_paths("/repo")
        assert paths[-1] == get_project_config_path("/repo")
        assert get_config_paths()[-1] != paths[-1]


class TestDictToConfig:
    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert config.engine.model == DEFAULT_MODEL
        assert config.engine.max_turns_per_request == 100
        assert config.engine.max_session_turns == -1
        assert config.session.timeout == 6000.0
        assert config.session.continuation_attempts == 3
        assert config.session.continuation_prompt == "Continue."
        assert config.server.name == "gemini-cli"
        assert config.server.version == "1.0.0"

    def test_values_are_coerced(self) -> None:
        config = dict_to_config(
            {
                "engine": {"max_retries": "4", "retry_delay": 2},
                "session": {"timeout": "30"},
                "server": {"version": 2},
            }
        )
        assert config.engine.max_retries == 4
        assert config.engine.retry_delay == 2.0
        assert config.session.timeout == 30.0
        assert config.server.version == "2"

    def test_unknown_keys_kept_as_extra(self) -> None:
        config = dict_to_config({"plugins": {"x": 1}, "engine": "not a dict"})
        assert config.extra == {"plugins": {"x": 1}}
        assert config.engine.model == DEFAULT_MODEL


class TestLoading:
    def test_missing_yaml_is_empty(self, tmp_path) -> None:
        assert load_yaml_file(tmp_path / "nope.yaml") == {}

    def test_invalid_yaml_is_empty(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("engine: [unclosed", encoding="utf-8")
        assert load_yaml_file(path) == {}

    def test_non_mapping_yaml_is_empty(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert load_yaml_file(path) == {}

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("AGENT_MODEL", "gemini-2.5-pro")
        monkeypatch.setenv("GB_LOG_LEVEL", "DEBUG")
        overrides = env_overrides()
        assert overrides["engine"] == {"model": "gemini-2.5-pro"}
        assert overrides["logging"]["level"] == "DEBUG"

    def test_project_layer_and_env(self, tmp_path, monkeypatch) -> None:
        project = tmp_path / "proj"
        (project / ".gb").mkdir(parents=True)
        (project / ".gb" / "config.yaml").write_text(
            "engine:\n  model: from-project\n  max_retries: 7\n"
            "session:\n  timeout: 12\n",
            encoding="utf-8",
        )

        config = load_config(str(project))
        assert config.engine.model == "from-project"
        assert config.engine.max_retries == 7
        assert config.session.timeout == 12.0

        monkeypatch.setenv("AGENT_MODEL", "from-env")
        config = load_config(str(project))
        assert config.engine.model == "from-env"
        assert config.engine.max_retries == 7

    def test_user_layer(self, tmp_path) -> None:
        user_dir = tmp_path / "xdg" / "geminibridge"
        user_dir.mkdir(parents=True)
        (user_dir / "config.yaml").write_text(
            "server:\n  name: custom\n", encoding="utf-8"
        )
        assert load_config(reload=True).server.name == "custom"

    def test_caching(self, monkeypatch) -> None:
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("AGENT_MODEL", "changed")
        assert get_config() is first
        assert load_config(reload=True).engine.model == "changed"

        reset_config()
        assert get_config().engine.model == "changed"

    def test_default_config_object(self) -> None:
        assert Config().engine.model == DEFAULT_MODEL


class TestSecrets:
    def test_environment_wins(self, tmp_path, monkeypatch) -> None:
        secrets = tmp_path / "s.env"
        secrets.write_text("GEMINI_API_KEY=from-file\n", encoding="utf-8")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        assert fetch_secret("GEMINI_API_KEY", secrets_path=secrets) == "from-env"

    def test_reads_secrets_file(self, tmp_path) -> None:
        secrets = tmp_path / "s.env"
        secrets.write_text("GOOGLE_CLOUD_PROJECT=proj-1\n", encoding="utf-8")
        assert fetch_secret("GOOGLE_CLOUD_PROJECT", secrets_path=secrets) == "proj-1"

    def test_default_when_missing(self, tmp_path) -> None:
        assert fetch_secret("NOPE", "fallback", secrets_path=tmp_path / "x") == "fallback"

    def test_default_secrets_file_in_cwd(self, tmp_path) -> None:
        (tmp_path / ".env.secrets").write_text("GEMINI_API_KEY=k\n", encoding="utf-8")
        clear_secret_cache()
        assert fetch_secret("GEMINI_API_KEY") == "k"


class TestLoggingLevels:
    def test_default_is_info(self) -> None:
        assert resolve_level(None) == logging.INFO
        assert resolve_level(LoggingConfig()) == logging.INFO

    def test_named_levels(self) -> None:
        assert resolve_level(LoggingConfig(level="debug")) == logging.DEBUG
        assert resolve_level(LoggingConfig(level="trace")) == TRACE
        assert resolve_level(LoggingConfig(level="bogus")) == logging.INFO

    def test_verbose_overrides_level(self) -> None:
        config = LoggingConfig(level="ERROR", verbose=3)
        assert resolve_level(config) == VERBOSE

    def test_child_logger(self) -> None:
        assert get_logger("session").name == "geminibridge.session"
        assert get_logger().name == "geminibridge"
