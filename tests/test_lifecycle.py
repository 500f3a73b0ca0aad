"""Tests for plugin system startup."""

from unittest.mock import patch

import pytest

from plugin_lifecycle.core.config import Settings
from plugin_lifecycle.lifecycle import create_registry, start_plugin_system
from plugin_lifecycle.plugins import (
    DuplicateRegistrationError,
    InitializationError,
    PluginState,
)
from plugin_lifecycle.plugins.builtin import HomePlugin


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def mock_setup_logging():
    """Keep startup from replacing the root handlers pytest relies on."""
    with patch("plugin_lifecycle.lifecycle.setup_logging") as mock:
        yield mock


class TestCreateRegistry:
    def test_uses_settings(self):
        settings = Settings(
            _env_file=None,
            core_plugin_id="dashboard",
            plugin_initialize_timeout=1.5,
        )

        registry = create_registry(settings)

        assert registry.core_plugin_id == "dashboard"
        assert registry.active_plugin_ids == {"dashboard"}


class TestStartPluginSystem:
    @pytest.mark.asyncio
    async def test_registers_home_when_missing(self, settings, make_plugin):
        registry = await start_plugin_system(
            [make_plugin("mail")], initial_plugins=[], settings=settings
        )

        assert isinstance(registry.get_plugin("home"), HomePlugin)
        assert [p.id for p in registry.active_plugins] == ["home"]

    @pytest.mark.asyncio
    async def test_keeps_supplied_core_plugin(self, settings, make_plugin):
        home = make_plugin("home")

        registry = await start_plugin_system(
            [home], initial_plugins=[], settings=settings
        )

        assert registry.get_plugin("home") is home

    @pytest.mark.asyncio
    async def test_activates_initial_plugins(self, settings, make_plugin):
        registry = await start_plugin_system(
            [make_plugin("mail"), make_plugin("crm", dependencies=["mail"])],
            initial_plugins=["crm"],
            settings=settings,
        )

        assert registry.active_plugin_ids == {"home", "mail", "crm"}
        assert registry.get_plugin_state("crm") == PluginState.ACTIVE

    @pytest.mark.asyncio
    async def test_initial_plugins_from_yaml(
        self, settings, make_plugin, tmp_path, monkeypatch
    ):
        from plugin_lifecycle.core import defaults_loader

        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "defaults.yaml").write_text(
            "plugins:\n  initial: [mail]\n"
        )
        monkeypatch.setattr(defaults_loader, "get_project_root", lambda: tmp_path)

        registry = await start_plugin_system([make_plugin("mail")], settings=settings)

        assert registry.is_plugin_active("mail")

    @pytest.mark.asyncio
    async def test_duplicate_plugins_rejected(self, settings, make_plugin):
        with pytest.raises(DuplicateRegistrationError):
            await start_plugin_system(
                [make_plugin("mail"), make_plugin("mail")],
                initial_plugins=[],
                settings=settings,
            )

    @pytest.mark.asyncio
    async def test_initial_failure_propagates(self, settings, make_plugin):
        with pytest.raises(InitializationError):
            await start_plugin_system(
                [make_plugin("mail", fail_initialize=RuntimeError("no network"))],
                initial_plugins=["mail"],
                settings=settings,
            )


class TestStartupLogging:
    @pytest.mark.asyncio
    async def test_configures_logging_from_settings(self, mock_setup_logging):
        settings = Settings(_env_file=None, log_level="DEBUG", log_to_file=True)

        await start_plugin_system([], initial_plugins=[], settings=settings)

        mock_setup_logging.assert_called_once_with("DEBUG", True)

    @pytest.mark.asyncio
    async def test_logging_setup_can_be_skipped(self, settings, mock_setup_logging):
        await start_plugin_system(
            [], initial_plugins=[], settings=settings, configure_logging=False
        )

        mock_setup_logging.assert_not_called()
