"""
Plugin System.

Feature modules (mail, CRM, notes, ...) are plugins: they declare an id
and the plugins they depend on, and expose initialize/dispose hooks.
The registry resolves dependencies and drives the lifecycle.

Usage:
    from plugin_lifecycle.plugins import PluginRegistry

    registry = PluginRegistry()
    registry.register_all([HomePlugin(), MailPlugin(), CrmPlugin()])

    # Activates "mail" as well if "crm" depends on it
    await registry.activate_plugins(["crm"])

    for plugin in registry.active_plugins:
        ...

Plugin authors should subclass AppPlugin and implement ``metadata``.
"""

from .base import AppPlugin, PluginMetadata, PluginState
from .errors import (
    DisposalError,
    DuplicateRegistrationError,
    InitializationError,
    PluginError,
    PluginTimeoutError,
    RegistrationResult,
)
from .registry import CORE_PLUGIN_ID, PluginRegistry

__all__ = [
    "AppPlugin",
    "PluginMetadata",
    "PluginState",
    "PluginError",
    "DuplicateRegistrationError",
    "InitializationError",
    "PluginTimeoutError",
    "DisposalError",
    "RegistrationResult",
    "PluginRegistry",
    "CORE_PLUGIN_ID",
]
