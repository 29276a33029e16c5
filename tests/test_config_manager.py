"""Tests for configuration manager."""

import asyncio
import json
import logging

import pytest

from toolsmithy.config import (
    ConfigManager,
    ConfigValidationError,
    LocalFileConfigProvider,
    Settings,
    get_default_config,
)
from toolsmithy.config.constants import DEFAULT_RATE_LIMIT_MAX
from toolsmithy.config.manager import create_config_manager, get_config_manager
from toolsmithy.agents.base_tool_agent import BaseToolAgent
from toolsmithy.config.schema import AppConfig, LifecycleConfig, deep_merge, validate_config
from toolsmithy.config.settings import settings
from toolsmithy.tools.invoker import CallableToolInvoker
from toolsmithy.utils.logger import configure_structlog

# =============================================================================
# Tests for deep_merge
# =============================================================================


def test_deep_merge_basic():
    """Test basic deep merge behavior."""
    base = {"a": 1, "b": {"c": 2, "d": 3}}
    updates = {"b": {"c": 10, "e": 5}}

    result = deep_merge(base, updates)

    assert result["a"] == 1
    assert result["b"]["c"] == 10
    assert result["b"]["d"] == 3
    assert result["b"]["e"] == 5


def test_deep_merge_none_preserves_value():
    """Test that None in updates preserves base value (skip behavior)."""
    base = {"lifecycle": {"cache_ttl": 300, "rate_limit_max": 100}}
    updates = {"lifecycle": {"cache_ttl": None, "rate_limit_max": 5}}

    result = deep_merge(base, updates)

    assert result["lifecycle"]["cache_ttl"] == 300
    assert result["lifecycle"]["rate_limit_max"] == 5


def test_deep_merge_does_not_mutate_inputs():
    base = {"agents": {"a": {"cache_ttl": 1}}}

    deep_merge(base, {"agents": {"a": {"cache_ttl": 2}}})

    assert base == {"agents": {"a": {"cache_ttl": 1}}}


# =============================================================================
# Tests for schema validation
# =============================================================================


def test_default_config_is_valid():
    validated = validate_config(get_default_config())

    assert validated["lifecycle"]["rate_limit_max"] == DEFAULT_RATE_LIMIT_MAX
    assert validated["agents"] == {}


@pytest.mark.parametrize(
    "config,fragment",
    [
        ({"lifecycle": {"rate_limit_max": "many"}}, "Expected integer at 'lifecycle.rate_limit_max'"),
        ({"lifecycle": {"cache_ttl": 0}}, "lifecycle.cache_ttl"),
        ({"agents": {"search": {"rate_limit_window": -1}}}, "agents.search.rate_limit_window"),
        ({"log_format": "xml"}, "log_format"),
    ],
)
def test_validate_config_reports_readable_errors(config, fragment):
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config(config)

    assert any(fragment in err for err in exc_info.value.errors)


def test_lifecycle_for_overlays_agent_overrides():
    app = AppConfig.model_validate(
        {
            "lifecycle": {"cache_ttl": 60, "rate_limit_max": 10},
            "agents": {"search_agent": {"rate_limit_max": 2, "tool_timeout": 0}},
        }
    )

    search = app.lifecycle_for("search_agent")
    other = app.lifecycle_for("other_agent")

    assert search == LifecycleConfig(cache_ttl=60, rate_limit_max=2, tool_timeout=0)
    assert other.rate_limit_max == 10
    assert other.tool_timeout == 30.0


# =============================================================================
# Tests for LocalFileConfigProvider
# =============================================================================


@pytest.mark.asyncio
async def test_provider_creates_missing_file_with_defaults(tmp_path):
    path = tmp_path / "nested" / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    config = await provider.load()

    assert path.exists()
    assert config["lifecycle"]["cache_ttl"] == 300.0
    assert json.loads(path.read_text())["log_level"] == "INFO"


@pytest.mark.asyncio
async def test_provider_skips_auto_create_when_disabled(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults={"agents": {}}, create_if_missing=False)

    assert await provider.load() == {"agents": {}}
    assert not path.exists()


@pytest.mark.asyncio
async def test_provider_merges_file_over_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"lifecycle": {"rate_limit_max": 7}}))
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    config = await provider.load()

    assert config["lifecycle"]["rate_limit_max"] == 7
    assert config["lifecycle"]["cache_ttl"] == 300.0


@pytest.mark.asyncio
async def test_provider_falls_back_to_last_valid_on_bad_json(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())
    await provider.save({"lifecycle": {"cache_ttl": 42}})

    path.write_text("{ not json")
    config = await provider.load()

    assert config["lifecycle"]["cache_ttl"] == 42


@pytest.mark.asyncio
async def test_provider_rejects_invalid_structure(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"lifecycle": {"rate_limit_max": 0}}))
    provider = LocalFileConfigProvider(path, defaults=get_default_config())

    with pytest.raises(ConfigValidationError):
        await provider.load()


@pytest.mark.asyncio
async def test_provider_refuses_to_save_invalid_config(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path)

    with pytest.raises(ConfigValidationError):
        await provider.save({"lifecycle": {"cache_ttl": -5}})
    assert not path.exists()


@pytest.mark.asyncio
async def test_invalid_file_change_is_ignored(tmp_path):
    path = tmp_path / "config.json"
    provider = LocalFileConfigProvider(path, defaults=get_default_config())
    await provider.load()
    received = []
    provider._callback = received.append

    path.write_text(json.dumps({"lifecycle": {"cache_ttl": "soon"}}))
    await provider._handle_file_change()
    path.write_text(json.dumps({"lifecycle": {"cache_ttl": 5}}))
    await provider._handle_file_change()

    assert len(received) == 1
    assert received[0]["lifecycle"]["cache_ttl"] == 5


# =============================================================================
# Tests for ConfigManager
# =============================================================================


@pytest.mark.asyncio
async def test_manager_update_persists_and_notifies(tmp_path):
    path = tmp_path / "config.json"
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))
    await manager.initialize()
    seen = []
    manager.register_change_callback(seen.append)

    await manager.set("agents", {"search_agent": {"cache_ttl": 10}})

    assert manager.loaded
    assert manager.get("agents") == {"search_agent": {"cache_ttl": 10}}
    assert manager.lifecycle_for("search_agent").cache_ttl == 10
    assert json.loads(path.read_text())["agents"]["search_agent"]["cache_ttl"] == 10
    assert seen and seen[-1]["agents"]["search_agent"]["cache_ttl"] == 10


@pytest.mark.asyncio
async def test_manager_callback_errors_are_contained(tmp_path):
    manager = ConfigManager(LocalFileConfigProvider(tmp_path / "config.json"))
    await manager.initialize()
    calls = []

    def broken(config):
        raise RuntimeError("listener failed")

    manager.register_change_callback(broken)
    manager.register_change_callback(calls.append)
    await manager.update({"log_level": "DEBUG"})

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_reload_from_provider_replaces_config(tmp_path):
    manager = ConfigManager(LocalFileConfigProvider(tmp_path / "config.json"))
    await manager.initialize()

    manager._on_config_changed({"lifecycle": {"rate_limit_max": 9}})

    assert manager.app_config().lifecycle.rate_limit_max == 9


def test_global_config_manager(tmp_path):
    created = create_config_manager(tmp_path / "config.json")

    assert get_config_manager() is created
    assert created.provider.defaults["lifecycle"]["rate_limit_max"] == DEFAULT_RATE_LIMIT_MAX
    settings.bind(None)


# =============================================================================
# Tests for Settings
# =============================================================================


def test_settings_defaults_without_manager(monkeypatch):
    for key in ("TOOLSMITHY_CACHE_TTL", "TOOLSMITHY_TOOL_TIMEOUT", "TOOLSMITHY_RATE_LIMIT_MAX"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings()

    assert settings.cache_ttl == 300.0
    assert settings.rate_limit_max == 100
    assert settings.tool_timeout == 30.0


def test_settings_env_fallback(monkeypatch):
    monkeypatch.setenv("TOOLSMITHY_RATE_LIMIT_MAX", "25")
    monkeypatch.setenv("TOOLSMITHY_TOOL_TIMEOUT", "0")
    monkeypatch.setenv("LOG_COLORS", "false")
    settings = Settings()

    assert settings.rate_limit_max == 25
    assert settings.tool_timeout is None
    assert settings.log_colors is False


@pytest.mark.asyncio
async def test_settings_prefer_manager_values(tmp_path, monkeypatch):
    monkeypatch.setenv("TOOLSMITHY_CACHE_TTL", "999")
    manager = ConfigManager(LocalFileConfigProvider(tmp_path / "config.json", defaults=get_default_config()))
    await manager.initialize()
    await manager.update(
        {"lifecycle": {"cache_ttl": 45}, "agents": {"lint_agent": {"rate_limit_max": 4}}}
    )
    settings = Settings(manager)

    assert settings.cache_ttl == 45
    lint = settings.lifecycle_for("lint_agent")
    assert lint.rate_limit_max == 4
    assert lint.cache_ttl == 45
    assert settings.lifecycle_for("unknown").rate_limit_max == 100


@pytest.mark.asyncio
async def test_file_edit_hot_reloads_config(tmp_path):
    """Editing the file on disk reaches change callbacks without restart."""
    path = tmp_path / "config.json"
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))
    await manager.initialize()
    seen = []
    manager.register_change_callback(seen.append)

    async def reloaded():
        # The first event may fire mid-write; wait for the final content
        while manager.get("lifecycle", {}).get("rate_limit_max") != 11:
            await asyncio.sleep(0.05)

    await manager.start_watching()
    try:
        await asyncio.sleep(0.1)
        path.write_text(json.dumps({"lifecycle": {"rate_limit_max": 11}}))
        await asyncio.wait_for(reloaded(), timeout=5.0)
    finally:
        await manager.stop_watching()

    assert seen
    assert manager.app_config().lifecycle.rate_limit_max == 11


@pytest.mark.asyncio
async def test_listeners_registered_early_see_initial_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"lifecycle": {"rate_limit_max": 8}}))
    manager = ConfigManager(LocalFileConfigProvider(path, defaults=get_default_config()))
    seen = []
    manager.register_change_callback(seen.append)

    await manager.initialize()

    assert seen[0]["lifecycle"]["rate_limit_max"] == 8


@pytest.mark.asyncio
async def test_global_manager_drives_agent_defaults_and_logging(tmp_path):
    manager = create_config_manager(tmp_path / "config.json")
    try:
        await manager.initialize()
        await manager.update(
            {"agents": {"lint_agent": {"rate_limit_max": 3, "tool_timeout": 0}}, "log_level": "DEBUG"}
        )

        agent = BaseToolAgent(CallableToolInvoker(lambda params: params), name="lint_agent")

        assert agent.lifecycle.rate_limiter.max_requests == 3
        assert agent.lifecycle.config.tool_timeout == 0
        assert logging.getLogger().level == logging.DEBUG
    finally:
        settings.bind(None)
        configure_structlog()
