"""Tests for configuration loading, migration and profiles."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from nisaba_bot.core.config import (
    CONFIG_VERSION,
    DEFAULT_ACKNOWLEDGEMENT,
    BotConfig,
    LoggingConfig,
    StorageConfig,
    find_config_file,
)
from nisaba_bot.core.exceptions import ConfigurationError, ProfileError


def write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoading:
    """Loading YAML and JSON documents."""

    def test_minimal_yaml_uses_defaults(self, tmp_path):
        path = write_yaml(tmp_path / "config.yaml", {"irc": {"server": "irc.test", "channel": "#x"}})

        config = BotConfig.from_file(path)

        assert config.version == CONFIG_VERSION
        assert config.irc.nickname == "Nisaba"
        assert config.irc.port == 6667
        assert config.irc.use_ssl is False
        assert config.api.url == "http://localhost:8080/v1/chat/completions"
        assert config.api.key == "null"
        assert config.api.mode == "chat"
        assert config.api.timeout is None
        assert config.chat.commands is True
        assert config.chat.message_size == 400
        assert config.chat.delay == 1.0
        assert config.chat.acknowledgement == DEFAULT_ACKNOWLEDGEMENT
        assert config.storage.transcript_file == "history.json"

    def test_json_document(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"irc": {"server": "irc.test", "channel": "#x"}, "api": {"mode": "query"}}),
            encoding="utf-8",
        )

        assert BotConfig.from_file(path).api.mode == "query"

    def test_env_vars_are_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LLM_TOKEN", "t0k3n")
        path = write_yaml(
            tmp_path / "config.yaml",
            {"irc": {"server": "irc.test", "channel": "#x"}, "api": {"key": "${LLM_TOKEN}"}},
        )

        assert BotConfig.from_file(path).api.key == "t0k3n"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            BotConfig.from_file(tmp_path / "absent.yaml")

    @pytest.mark.parametrize(
        "data",
        [
            {"irc": {"channel": "#x"}},
            {"irc": {"server": "  ", "channel": "#x"}},
            {"irc": {"server": "irc.test", "channel": "#x", "port": 0}},
            {"irc": {"server": "irc.test", "channel": "#x"}, "api": {"mode": "stream"}},
            {"irc": {"server": "irc.test", "channel": "#x"}, "chat": {"message_size": 0}},
            {"irc": {"server": "irc.test", "channel": "#x"}, "version": CONFIG_VERSION + 1},
        ],
    )
    def test_invalid_documents(self, tmp_path, data):
        path = write_yaml(tmp_path / "config.yaml", data)

        with pytest.raises(ConfigurationError):
            BotConfig.from_file(path)

    def test_unparsable_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("irc: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            BotConfig.from_file(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            BotConfig.from_file(path)


class TestLegacyMigration:
    """Flat documents without a version are moved into sections."""

    def test_flat_json_is_migrated(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "server": "irc.legacy",
                    "channel": "#old",
                    "nickname": "Sage",
                    "use_ssl": True,
                    "api_url": "http://llm.test/completion",
                    "api_mode": "query",
                    "commands": False,
                    "message_size": 120,
                }
            ),
            encoding="utf-8",
        )

        config = BotConfig.from_file(path)

        assert config.version == CONFIG_VERSION
        assert config.irc.server == "irc.legacy"
        assert config.irc.nickname == "Sage"
        assert config.irc.use_ssl is True
        assert config.api.url == "http://llm.test/completion"
        assert config.api.mode == "query"
        assert config.chat.commands is False
        assert config.chat.message_size == 120


class TestStorage:
    def test_resolves_into_existing_config_dir(self, tmp_path):
        storage = StorageConfig(config_dir=str(tmp_path))

        assert storage.transcript_path == tmp_path / "history.json"
        assert storage.options_profile_path("fast") == tmp_path / "options.fast.json"
        assert storage.profile_path("night") == tmp_path / "config.night.yaml"

    def test_falls_back_to_working_directory(self, tmp_path):
        storage = StorageConfig(config_dir=str(tmp_path / "missing"))

        assert storage.blocklist_path == Path("blocklist.txt")

    def test_pattern_needs_placeholder(self):
        with pytest.raises(ValidationError):
            StorageConfig(options_pattern="options.json")


class TestProfiles:
    """Overlaying a named profile onto the current configuration."""

    def test_profile_overlay(self, bot_config, config_dir):
        write_yaml(
            config_dir / "config.night.yaml",
            {
                "irc": {"server": "ignored.test"},
                "api": {"url": "http://night.test/v1/chat/completions"},
                "chat": {"delay": 2.5},
            },
        )

        config = bot_config.with_profile("night")

        assert config.api.url == "http://night.test/v1/chat/completions"
        assert config.chat.delay == 2.5
        assert config.chat.acknowledgement == "On it."
        assert config.irc.server == "irc.test"
        assert bot_config.chat.delay == 0.0

    def test_flat_profile_keys(self, bot_config, config_dir):
        write_yaml(config_dir / "config.flat.yaml", {"api_mode": "query", "server": "nope"})

        config = bot_config.with_profile("flat")

        assert config.api.mode == "query"
        assert config.irc.server == "irc.test"

    def test_missing_profile(self, bot_config):
        with pytest.raises(ProfileError) as exc_info:
            bot_config.with_profile("ghost")

        assert exc_info.value.profile == "ghost"

    def test_invalid_profile(self, bot_config, config_dir):
        write_yaml(config_dir / "config.bad.yaml", {"chat": {"message_size": -1}})

        with pytest.raises(ProfileError):
            bot_config.with_profile("bad")


class TestMisc:
    def test_logging_level_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_logging_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_find_config_file_prefers_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("", encoding="utf-8")

        assert find_config_file() == Path("config") / "config.yaml"

    def test_find_config_file_falls_back_to_json(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config.json").write_text("{}", encoding="utf-8")

        assert find_config_file() == Path("config.json")

    def test_to_dict(self, bot_config):
        data = bot_config.to_dict()

        assert data["irc"]["channel"] == "#test"
        assert data["chat"]["delay"] == 0.0
