"""Adapter Registry — Registration and construction of index adapters.

The registry maps adapter names to classes and creates initialized instances
from configuration. ``create_adapter`` is the single construction point used
by the HTTP service and the CLI; the resulting instance is injected into the
engine rather than shared globally.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from indexsync.adapters.base.adapter import AdapterHealth, IndexAdapter

if TYPE_CHECKING:
    from indexsync.config.settings import BackendSettings

logger = logging.getLogger(__name__)


class AdapterNotFoundError(Exception):
    """Raised when a requested adapter is not registered."""


# Maps adapter names to (module_path, class_name) for lazy import
BUILTIN_ADAPTERS: dict[str, tuple[str, str]] = {
    "elasticsearch": ("indexsync.adapters.elasticsearch.adapter", "ElasticsearchAdapter"),
    "opensearch": ("indexsync.adapters.opensearch.adapter", "OpenSearchAdapter"),
    "memory": ("indexsync.adapters.memory.adapter", "InMemoryIndexAdapter"),
}


class AdapterRegistry:
    """Registry for managing index adapter instances.

    Example:
        >>> registry = AdapterRegistry()
        >>> registry.register("memory", InMemoryIndexAdapter)
        >>> adapter = await registry.initialize_adapter("memory")
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[IndexAdapter]] = {}
        self._instances: dict[str, IndexAdapter] = {}

    def register(self, name: str, adapter_class: type[IndexAdapter]) -> None:
        """Register an adapter class.

        Args:
            name: Unique name for this adapter type.
            adapter_class: The adapter class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing adapter registration: %s", name)
        self._classes[name] = adapter_class
        logger.info("Registered adapter: %s", name)

    def register_builtin(self, name: str) -> None:
        """Import and register one of the built-in adapters by name."""
        if name not in BUILTIN_ADAPTERS:
            raise AdapterNotFoundError(
                f"Unknown built-in adapter '{name}'. Available adapters: {list(BUILTIN_ADAPTERS)}"
            )
        module_path, class_name = BUILTIN_ADAPTERS[name]
        module = importlib.import_module(module_path)
        self.register(name, getattr(module, class_name))

    async def initialize_adapter(self, name: str, **kwargs: Any) -> IndexAdapter:
        """Create and initialize an adapter instance.

        Args:
            name: The registered adapter name.
            **kwargs: Configuration parameters passed to the adapter constructor.

        Returns:
            The initialized adapter instance.

        Raises:
            AdapterNotFoundError: If no adapter is registered under this name.
        """
        if name not in self._classes:
            raise AdapterNotFoundError(
                f"No adapter registered with name '{name}'. "
                f"Available adapters: {list(self._classes.keys())}"
            )

        adapter = self._classes[name](**kwargs)
        await adapter.initialize()
        self._instances[name] = adapter
        logger.info("Initialized adapter: %s", name)
        return adapter

    def get(self, name: str) -> IndexAdapter:
        """Get an initialized adapter instance by name.

        Raises:
            AdapterNotFoundError: If the adapter is not initialized.
        """
        if name not in self._instances:
            raise AdapterNotFoundError(
                f"Adapter '{name}' is not initialized. Call initialize_adapter() first."
            )
        return self._instances[name]

    async def health_check_all(self) -> dict[str, AdapterHealth]:
        """Run health checks on all initialized adapters."""
        results: dict[str, AdapterHealth] = {}
        for name, adapter in self._instances.items():
            try:
                results[name] = await adapter.health_check()
            except Exception as e:
                results[name] = AdapterHealth(status="unhealthy", message=str(e))
        return results

    async def shutdown_all(self) -> None:
        """Gracefully shut down all initialized adapters."""
        for name, adapter in self._instances.items():
            try:
                await adapter.shutdown()
                logger.info("Shut down adapter: %s", name)
            except Exception:
                logger.warning("Error shutting down adapter: %s", name, exc_info=True)
        self._instances.clear()

    @property
    def registered_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._classes.keys())

    @property
    def active_adapters(self) -> list[str]:
        """List all initialized adapter names."""
        return list(self._instances.keys())


def adapter_kwargs(backend: BackendSettings) -> dict[str, Any]:
    """Constructor keyword arguments for the configured backend."""
    kwargs: dict[str, Any] = {"type_field": backend.type_field}
    if backend.adapter == "memory":
        return kwargs
    kwargs.update(
        hosts=backend.hosts or None,
        username=backend.username,
        password=backend.password,
        api_key=backend.api_key,
        verify_certs=backend.verify_certs,
        request_timeout=backend.request_timeout,
        refresh_on_write=backend.refresh_on_write,
    )
    kwargs.update(backend.extra)
    return kwargs


async def create_adapter(backend: BackendSettings, registry: AdapterRegistry | None = None) -> IndexAdapter:
    """Build and initialize the adapter named by ``backend.adapter``.

    Args:
        backend: Backend settings.
        registry: Registry to record the instance in (a fresh one if None).

    Returns:
        The initialized adapter.
    """
    registry = registry or AdapterRegistry()
    if backend.adapter not in registry.registered_adapters:
        registry.register_builtin(backend.adapter)
    return await registry.initialize_adapter(backend.adapter, **adapter_kwargs(backend))
