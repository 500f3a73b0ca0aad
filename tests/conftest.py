import logging
import os
from typing import List, Optional

import pytest

# Set test environment variables
os.environ["LOG_LEVEL"] = "WARNING"

from plugin_lifecycle.core.config import get_settings
from plugin_lifecycle.core.defaults_loader import clear_cache
from plugin_lifecycle.plugins import AppPlugin, PluginMetadata, PluginRegistry


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture(autouse=True)
def _reset_config_caches():
    """Settings and YAML defaults are cached per process."""
    get_settings.cache_clear()
    clear_cache()
    yield
    get_settings.cache_clear()
    clear_cache()


class FakePlugin(AppPlugin):
    """Plugin that records its hook calls and can be told to fail."""

    def __init__(
        self,
        plugin_id: str,
        dependencies: Optional[List[str]] = None,
        fail_initialize: Optional[Exception] = None,
        fail_dispose: Optional[Exception] = None,
    ):
        self._metadata = PluginMetadata(
            id=plugin_id,
            name=plugin_id.title(),
            dependencies=list(dependencies or []),
        )
        self.fail_initialize = fail_initialize
        self.fail_dispose = fail_dispose
        self.initialize_calls = 0
        self.dispose_calls = 0

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.fail_initialize is not None:
            raise self.fail_initialize

    def dispose(self) -> None:
        self.dispose_calls += 1
        if self.fail_dispose is not None:
            raise self.fail_dispose


@pytest.fixture
def make_plugin():
    """Factory for FakePlugin instances."""
    return FakePlugin


@pytest.fixture
def registry():
    """A fresh registry with the default core plugin id."""
    return PluginRegistry()


@pytest.fixture
def app_registry(registry):
    """Registry holding home, mail and crm (crm depends on mail)."""
    registry.register_all(
        [
            FakePlugin("home"),
            FakePlugin("mail"),
            FakePlugin("crm", dependencies=["mail"]),
        ]
    )
    return registry
