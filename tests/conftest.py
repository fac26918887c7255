"""Test configuration hooks."""

import os
from pathlib import Path

import pytest

from nisaba_bot.core.config import BotConfig, ChatConfig, IRCConfig, StorageConfig


# Configure anyio to only use asyncio backend (skip trio tests)
@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep NISABA_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("NISABA_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config_dir(tmp_path) -> Path:
    """Directory holding the bot's side files for one test."""
    directory = tmp_path / "config"
    directory.mkdir()
    return directory


@pytest.fixture
def bot_config(config_dir) -> BotConfig:
    """Configuration rooted in a temporary directory with no reply delay."""
    return BotConfig(
        irc=IRCConfig(server="irc.test", channel="#test", nickname="Nisaba"),
        chat=ChatConfig(delay=0.0, acknowledgement="On it."),
        storage=StorageConfig(config_dir=str(config_dir)),
    )
