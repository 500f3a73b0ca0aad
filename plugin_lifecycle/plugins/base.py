"""
Base classes for the plugin system.

Every feature module (mail, CRM, notes, ...) extends AppPlugin and
declares its identity and dependencies through PluginMetadata. The
registry only calls the lifecycle hooks; what a plugin does inside
them is its own business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class PluginState(Enum):
    """Plugin lifecycle states."""

    REGISTERED = "registered"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    ERROR = "error"
    DISPOSING = "disposing"
    DISPOSED = "disposed"


@dataclass
class PluginMetadata:
    """
    Static description of a plugin.

    Attributes:
        id: Unique, stable identifier (e.g., "mail", "crm")
        name: Human-readable label, used for diagnostics
        icon: Navigation icon name (e.g., "email"), never interpreted here
        description: Short human-readable description
        version: Semantic version string
        dependencies: Plugin ids that must be active along with this one
    """

    id: str
    name: str
    icon: str = "extension"
    description: str = ""
    version: str = "1.0.0"
    dependencies: List[str] = field(default_factory=list)


class AppPlugin(ABC):
    """
    Base class for all plugins.

    Lifecycle:
        1. register() - Plugin becomes known to the registry (registered)
        2. initialize() - Called when the plugin is activated
           (initializing -> active, or error)
        3. dispose() - Called when the plugin is deactivated
           (disposing -> disposed, or error)

    Example:
        class NotesPlugin(AppPlugin):
            @property
            def metadata(self) -> PluginMetadata:
                return PluginMetadata(
                    id="notes",
                    name="Notes",
                    icon="note_add",
                )

            async def initialize(self) -> None:
                await self.cache.warm_up()
    """

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        """Return plugin metadata. Must be implemented by subclasses."""
        pass

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def icon(self) -> str:
        return self.metadata.icon

    @property
    def dependencies(self) -> List[str]:
        """Plugin ids this plugin requires. Returns a copy."""
        return list(self.metadata.dependencies)

    # === Lifecycle Hooks ===

    async def initialize(self) -> None:
        """
        Called when the plugin is being activated.

        This is the place to open connections, warm caches or load
        preferences. Raising marks the plugin as errored and aborts the
        activation batch.
        """
        pass

    def dispose(self) -> None:
        """
        Called when the plugin is being deactivated.

        Release whatever initialize() acquired. Failures here are logged
        by the registry and never stop the deactivation.
        """
        pass

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"id={self.metadata.id!r} "
            f"name={self.metadata.name!r}>"
        )
