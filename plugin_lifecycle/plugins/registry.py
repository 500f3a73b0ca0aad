"""
Plugin Registry for registering, activating and deactivating plugins.

The PluginRegistry tracks three pieces of state as one unit:
1. Available plugins - every plugin ever registered (id -> plugin)
2. Active plugin ids - what the navigation layer should show
3. Plugin states - lifecycle state per registered id

Activation resolves the transitive dependency closure of the requested
ids and initializes whatever is not active yet. Deactivation disposes a
single plugin. The core plugin is always active.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Set

from ..utils.logging import log_plugin_error, log_state_transition
from .base import AppPlugin, PluginState
from .errors import (
    DisposalError,
    DuplicateRegistrationError,
    InitializationError,
    PluginTimeoutError,
    RegistrationResult,
)

logger = logging.getLogger(__name__)

CORE_PLUGIN_ID = "home"


class PluginRegistry:
    """
    Registry of plugins and their activation state.

    The registry is built once by the application's composition root and
    handed to whoever needs it (bootstrap, navigation, settings screen).

    State is guarded by a single lock that is never held while a plugin
    hook runs, so a slow initialize() does not block queries or other
    activations.
    """

    def __init__(
        self,
        core_plugin_id: str = CORE_PLUGIN_ID,
        initialize_timeout: Optional[float] = None,
        strict_activation: bool = False,
    ):
        """
        Args:
            core_plugin_id: Id of the plugin that can never be deactivated
            initialize_timeout: Seconds to wait for initialize(); None waits forever
            strict_activation: If True, only plugins that reached ACTIVE are
                added to the active set. By default every id of the resolved
                closure is added, registered or not.
        """
        self._core_plugin_id = core_plugin_id
        self._initialize_timeout = initialize_timeout
        self._strict_activation = strict_activation

        self._available_plugins: Dict[str, AppPlugin] = {}
        self._active_plugin_ids: Set[str] = {core_plugin_id}
        self._plugin_states: Dict[str, PluginState] = {}
        self._plugin_errors: Dict[str, str] = {}

        self._lock = threading.RLock()
        # plugin_id -> event set when its in-flight initialize() finishes
        self._initializing: Dict[str, asyncio.Event] = {}

    @property
    def core_plugin_id(self) -> str:
        return self._core_plugin_id

    # ========================
    # Registration
    # ========================

    def try_register(self, plugin: AppPlugin) -> RegistrationResult:
        """
        Register a plugin without raising.

        Returns:
            RegistrationResult carrying a DuplicateRegistrationError if a
            plugin with the same id is already registered. The registry is
            left unmodified in that case.
        """
        plugin_id = plugin.id
        with self._lock:
            if plugin_id in self._available_plugins:
                logger.warning(f"Plugin already registered: {plugin_id}")
                return RegistrationResult(
                    plugin_id, DuplicateRegistrationError(plugin_id)
                )

            self._available_plugins[plugin_id] = plugin
            self._set_state(plugin_id, PluginState.REGISTERED)

        logger.info(f"Plugin registered: {plugin.name} ({plugin_id})")
        return RegistrationResult(plugin_id)

    def register(self, plugin: AppPlugin) -> None:
        """
        Register a plugin.

        Raises:
            DuplicateRegistrationError: If the id is already registered
        """
        self.try_register(plugin).unwrap()

    def register_all(self, plugins: Iterable[AppPlugin]) -> None:
        """
        Register plugins in order.

        Not atomic: if one fails, the ones before it stay registered and
        the error of the failing registration is raised.
        """
        for plugin in plugins:
            self.register(plugin)

    # ========================
    # Dependency resolution
    # ========================

    def resolve_dependencies(self, plugin_ids: Iterable[str]) -> Set[str]:
        """
        Compute the transitive dependency closure of plugin_ids.

        Unregistered ids are part of the result but contribute no
        dependencies. Cycles are harmless.
        """
        with self._lock:
            return set(self._resolve_order(plugin_ids))

    def _resolve_order(self, plugin_ids: Iterable[str]) -> List[str]:
        """Breadth-first closure, in discovery order. Caller holds the lock."""
        required: Dict[str, None] = {}
        to_process = deque(plugin_ids)

        while to_process:
            current = to_process.popleft()
            if current in required:
                continue
            required[current] = None

            plugin = self._available_plugins.get(current)
            if plugin is not None:
                to_process.extend(plugin.dependencies)

        return list(required)

    def _resolve_dependents(self, plugin_id: str) -> List[str]:
        """
        Active plugins that transitively depend on plugin_id.

        Post-order walk over reverse dependencies: every plugin comes
        before the plugins it depends on. Ties follow registration order.
        Caller holds the lock.
        """
        order: List[str] = []
        visited = {plugin_id}
        stack = [(plugin_id, iter(self._direct_dependents(plugin_id)))]

        while stack:
            current, children = stack[-1]
            for child in children:
                if child not in visited:
                    visited.add(child)
                    stack.append((child, iter(self._direct_dependents(child))))
                    break
            else:
                stack.pop()
                if current != plugin_id:
                    order.append(current)

        return order

    def _direct_dependents(self, plugin_id: str) -> List[str]:
        """Active plugins declaring plugin_id as a dependency. Caller holds the lock."""
        return [
            active_id
            for active_id, plugin in self._available_plugins.items()
            if active_id in self._active_plugin_ids
            and plugin_id in plugin.dependencies
        ]

    # ========================
    # Activation
    # ========================

    async def activate_plugins(self, plugin_ids: Iterable[str]) -> None:
        """
        Activate plugins along with everything they depend on.

        Plugins are initialized one after another. If one fails, the error
        propagates immediately: plugins initialized before it stay active,
        the ones after it are never attempted.

        Raises:
            InitializationError: If a plugin's initialize() fails
        """
        plugin_ids = list(plugin_ids)
        logger.info(f"Activating plugins: {plugin_ids}")

        with self._lock:
            required = self._resolve_order(plugin_ids)
            new_plugins = [
                pid for pid in required if pid not in self._active_plugin_ids
            ]

        initialized: List[str] = []
        try:
            for plugin_id in new_plugins:
                with self._lock:
                    registered = plugin_id in self._available_plugins
                    # ACTIVE but uncommitted: another batch initialized it
                    already_active = (
                        plugin_id in self._active_plugin_ids
                        or self._plugin_states.get(plugin_id) == PluginState.ACTIVE
                    )

                if not registered:
                    logger.warning(f"Plugin not found: {plugin_id}")
                    continue
                if already_active:
                    logger.debug(f"Plugin activated concurrently: {plugin_id}")
                    continue

                await self._initialize_plugin(plugin_id)
                initialized.append(plugin_id)
        except Exception:
            with self._lock:
                self._active_plugin_ids.update(initialized)
            raise

        with self._lock:
            if self._strict_activation:
                self._active_plugin_ids.update(
                    pid
                    for pid in required
                    if self._plugin_states.get(pid) == PluginState.ACTIVE
                )
            else:
                self._active_plugin_ids.update(required)
            total = len(self._active_plugin_ids)

        logger.info(f"Plugins activated. Total active: {total}")

    async def activate_plugin(self, plugin_id: str) -> None:
        """Activate a single plugin and its dependencies."""
        await self.activate_plugins([plugin_id])

    # ========================
    # Deactivation
    # ========================

    async def deactivate_plugin(self, plugin_id: str, cascade: bool = False) -> None:
        """
        Deactivate a plugin and dispose it.

        Deactivating the core plugin or a plugin that is not active is a
        logged no-op. Dispose failures are logged and never raised.

        Args:
            plugin_id: Plugin to deactivate
            cascade: Also deactivate active plugins that depend on it,
                dependents first. The core plugin is never cascaded.
        """
        if plugin_id == self._core_plugin_id:
            logger.warning(f"Cannot deactivate core plugin: {plugin_id}")
            return

        with self._lock:
            if plugin_id not in self._active_plugin_ids:
                logger.warning(f"Plugin is not active: {plugin_id}")
                return
            dependents = self._resolve_dependents(plugin_id) if cascade else []

        for dependent_id in dependents:
            await self.deactivate_plugin(dependent_id)

        logger.info(f"Deactivating plugin: {plugin_id}")

        with self._lock:
            plugin = self._available_plugins.get(plugin_id)
            if plugin is not None:
                if self._plugin_states.get(plugin_id) == PluginState.DISPOSING:
                    logger.debug(f"Plugin already disposing: {plugin_id}")
                    plugin = None
                else:
                    self._set_state(plugin_id, PluginState.DISPOSING)

        if plugin is not None:
            self._dispose_plugin(plugin)

        with self._lock:
            self._active_plugin_ids.discard(plugin_id)

        logger.info(f"Plugin deactivated: {plugin_id}")

    async def toggle_plugin(self, plugin_id: str) -> None:
        """
        Deactivate the plugin if it is active, otherwise activate it.

        Never cascades: turning a plugin off leaves its dependencies and
        dependents alone.
        """
        if self.is_plugin_active(plugin_id):
            await self.deactivate_plugin(plugin_id)
        else:
            await self.activate_plugin(plugin_id)

    # ========================
    # Queries
    # ========================

    @property
    def active_plugins(self) -> List[AppPlugin]:
        """Active plugin objects. Ids without a registered plugin are skipped."""
        with self._lock:
            return [
                self._available_plugins[pid]
                for pid in self._active_plugin_ids
                if pid in self._available_plugins
            ]

    @property
    def available_plugins(self) -> List[AppPlugin]:
        """All registered plugins, in registration order."""
        with self._lock:
            return list(self._available_plugins.values())

    @property
    def active_plugin_ids(self) -> Set[str]:
        """Copy of the active plugin ids."""
        with self._lock:
            return set(self._active_plugin_ids)

    def is_plugin_active(self, plugin_id: str) -> bool:
        with self._lock:
            return plugin_id in self._active_plugin_ids

    def get_plugin(self, plugin_id: str) -> Optional[AppPlugin]:
        """Get a registered plugin by id."""
        with self._lock:
            return self._available_plugins.get(plugin_id)

    def get_plugin_state(self, plugin_id: str) -> Optional[PluginState]:
        """Lifecycle state of a plugin, or None if it was never registered."""
        with self._lock:
            return self._plugin_states.get(plugin_id)

    def get_plugin_error(self, plugin_id: str) -> Optional[str]:
        """Message of the last failed hook, cleared once the plugin is active."""
        with self._lock:
            return self._plugin_errors.get(plugin_id)

    def get_plugin_status(self) -> Dict[str, Dict[str, Any]]:
        """
        Get status of all registered plugins.

        Returns:
            Dict of plugin_id -> status info
        """
        with self._lock:
            return {
                plugin_id: {
                    "name": plugin.name,
                    "icon": plugin.icon,
                    "state": self._plugin_states[plugin_id].value,
                    "active": plugin_id in self._active_plugin_ids,
                    "dependencies": plugin.dependencies,
                    "error": self._plugin_errors.get(plugin_id),
                }
                for plugin_id, plugin in self._available_plugins.items()
            }

    # ========================
    # Lifecycle helpers
    # ========================

    def _set_state(self, plugin_id: str, state: PluginState) -> None:
        """Record a state transition. Caller holds the lock."""
        previous = self._plugin_states.get(plugin_id)
        self._plugin_states[plugin_id] = state
        log_state_transition(plugin_id, previous, state)

    async def _initialize_plugin(self, plugin_id: str) -> None:
        """
        Run a plugin's initialize() hook.

        If another batch is already initializing the same plugin, wait for
        it and share its outcome instead of initializing twice.
        """
        with self._lock:
            plugin = self._available_plugins[plugin_id]
            in_flight = self._initializing.get(plugin_id)
            if in_flight is None:
                done = asyncio.Event()
                self._initializing[plugin_id] = done
                self._set_state(plugin_id, PluginState.INITIALIZING)

        if in_flight is not None:
            logger.debug(f"Waiting for in-flight initialization: {plugin.name}")
            await in_flight.wait()
            with self._lock:
                if self._plugin_states.get(plugin_id) != PluginState.ACTIVE:
                    raise InitializationError(
                        plugin_id,
                        RuntimeError(self._plugin_errors.get(plugin_id, "unknown error")),
                    )
            return

        try:
            logger.debug(f"Initializing plugin: {plugin.name}")
            await self._run_initialize(plugin)
        except InitializationError as e:
            with self._lock:
                self._plugin_errors[plugin_id] = str(e.cause)
                self._set_state(plugin_id, PluginState.ERROR)
            logger.error(f"Failed to initialize plugin {plugin.name}: {e.cause}")
            log_plugin_error(e, {"plugin_id": plugin_id, "hook": "initialize"})
            raise
        except asyncio.CancelledError:
            with self._lock:
                self._plugin_errors[plugin_id] = "initialization cancelled"
                self._set_state(plugin_id, PluginState.ERROR)
            raise
        else:
            with self._lock:
                self._plugin_errors.pop(plugin_id, None)
                self._set_state(plugin_id, PluginState.ACTIVE)
            logger.debug(f"Plugin initialized: {plugin.name}")
        finally:
            with self._lock:
                self._initializing.pop(plugin_id, None)
            done.set()

    async def _run_initialize(self, plugin: AppPlugin) -> None:
        """Await initialize(), wrapping any failure in InitializationError."""
        deadline = None
        try:
            if self._initialize_timeout is None:
                await plugin.initialize()
            else:
                async with asyncio.timeout(self._initialize_timeout) as deadline:
                    await plugin.initialize()
        except TimeoutError as e:
            # Only the registry's own deadline counts as a timeout
            if deadline is not None and deadline.expired():
                raise PluginTimeoutError(
                    plugin.id, self._initialize_timeout, e
                ) from e
            raise InitializationError(plugin.id, e) from e
        except Exception as e:
            raise InitializationError(plugin.id, e) from e

    def _dispose_plugin(self, plugin: AppPlugin) -> None:
        """
        Run a plugin's dispose() hook. The plugin is already DISPOSING.

        Failures leave the plugin in ERROR and are only logged.
        """
        plugin_id = plugin.id
        try:
            logger.debug(f"Disposing plugin: {plugin.name}")
            plugin.dispose()
        except Exception as e:
            error = DisposalError(plugin_id, e)
            with self._lock:
                self._plugin_errors[plugin_id] = str(e)
                self._set_state(plugin_id, PluginState.ERROR)
            logger.error(f"Failed to dispose plugin {plugin.name}: {e}", exc_info=True)
            log_plugin_error(error, {"plugin_id": plugin_id, "hook": "dispose"})
        else:
            with self._lock:
                self._set_state(plugin_id, PluginState.DISPOSED)
            logger.debug(f"Plugin disposed: {plugin.name}")
