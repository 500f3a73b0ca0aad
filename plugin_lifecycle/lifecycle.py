"""
Plugin system startup.

Builds the registry the application passes around:
- Logging (structlog + rotating files)
- Settings (core plugin id, timeout, strict activation)
- Registration of the application's plugins
- Activation of the initial plugin set from config/defaults.yaml
"""

import logging
from typing import Iterable, List, Optional

from .core.config import Settings, get_settings
from .core.defaults_loader import get_initial_plugins
from .plugins import CORE_PLUGIN_ID, AppPlugin, PluginRegistry
from .plugins.builtin import HomePlugin
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_registry(settings: Optional[Settings] = None) -> PluginRegistry:
    """Create an empty registry configured from settings."""
    settings = settings or get_settings()
    return PluginRegistry(
        core_plugin_id=settings.core_plugin_id,
        initialize_timeout=settings.plugin_initialize_timeout,
        strict_activation=settings.plugin_strict_activation,
    )


async def start_plugin_system(
    plugins: Iterable[AppPlugin],
    initial_plugins: Optional[List[str]] = None,
    settings: Optional[Settings] = None,
    configure_logging: bool = True,
) -> PluginRegistry:
    """
    Register the application's plugins and activate the initial set.

    Args:
        plugins: Every plugin the application ships
        initial_plugins: Ids to activate (defaults to ``plugins.initial``)
        settings: Settings to use (defaults to the cached settings)
        configure_logging: Set up logging from settings first. Pass False
            when the embedding application owns the logging setup.

    Returns:
        The ready registry

    Raises:
        DuplicateRegistrationError: If two plugins share an id
        InitializationError: If an initial plugin fails to initialize
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_to_file)

    registry = create_registry(settings)

    plugins = list(plugins)
    if settings.core_plugin_id == CORE_PLUGIN_ID and not any(
        plugin.id == settings.core_plugin_id for plugin in plugins
    ):
        plugins.insert(0, HomePlugin())

    registry.register_all(plugins)

    if initial_plugins is None:
        initial_plugins = get_initial_plugins()

    logger.info(
        f"Starting plugin system: {len(plugins)} plugins registered, "
        f"core={settings.core_plugin_id}, initial={initial_plugins}"
    )

    if initial_plugins:
        await registry.activate_plugins(initial_plugins)

    return registry
