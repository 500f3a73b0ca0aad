"""
Errors raised by the plugin registry.

Registration and activation failures reach the caller. Disposal
failures are only logged; DisposalError exists so they can be
reported with the same shape as the others.
"""

from dataclasses import dataclass
from typing import Optional


class PluginError(Exception):
    """Base class for plugin registry errors."""

    def __init__(self, plugin_id: str, message: str):
        super().__init__(message)
        self.plugin_id = plugin_id


class DuplicateRegistrationError(PluginError, ValueError):
    """A plugin with the same id is already registered."""

    def __init__(self, plugin_id: str):
        super().__init__(
            plugin_id, f'Plugin with id "{plugin_id}" is already registered'
        )


class InitializationError(PluginError):
    """A plugin's initialize() hook failed."""

    def __init__(
        self,
        plugin_id: str,
        cause: BaseException,
        message: Optional[str] = None,
    ):
        super().__init__(
            plugin_id,
            message or f"Failed to initialize plugin {plugin_id}: {cause}",
        )
        self.cause = cause


class PluginTimeoutError(InitializationError):
    """A plugin's initialize() hook did not finish in time."""

    def __init__(self, plugin_id: str, timeout: float, cause: BaseException):
        super().__init__(
            plugin_id,
            cause,
            f"Plugin {plugin_id} did not initialize within {timeout}s",
        )
        self.timeout = timeout


class DisposalError(PluginError):
    """A plugin's dispose() hook failed. Logged, never raised."""

    def __init__(self, plugin_id: str, cause: BaseException):
        super().__init__(plugin_id, f"Failed to dispose plugin {plugin_id}: {cause}")
        self.cause = cause


@dataclass(frozen=True)
class RegistrationResult:
    """
    Outcome of PluginRegistry.try_register().

    Callers either branch on ``ok`` or call ``unwrap()`` to get the
    raising behavior of register().
    """

    plugin_id: str
    error: Optional[DuplicateRegistrationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Return the plugin id, or raise the registration error."""
        if self.error is not None:
            raise self.error
        return self.plugin_id
