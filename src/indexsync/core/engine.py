"""IndexSync Engine — Model registration and the per-model handle.

The engine owns the injected collaborators and wires them together:

  register(name, schema, options)
      → MappingGenerator builds the mapping
      → adapter installs it into the target index
      → IndexSynchronizer subscribes to the store's lifecycle hooks
      → SearchableModel handle (save / remove / get / search)

A save or remove through the handle returns a ``PendingSync`` that resolves
to the completion signal once the index has caught up (or given up).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from indexsync.adapters.base.adapter import AdapterHealth, IndexAdapter
from indexsync.adapters.base.exceptions import AdapterError
from indexsync.core.mapping import MappingGenerator
from indexsync.core.search import SearchFacade
from indexsync.core.synchronizer import IndexSynchronizer
from indexsync.exceptions import ModelRegistrationError, UnknownModelError
from indexsync.models.mapping import TypeBinding
from indexsync.models.query import SearchOptions
from indexsync.models.schema import ModelOptions, SchemaDescription
from indexsync.store.base import DocumentStore
from indexsync.store.memory import InMemoryDocumentStore

if TYPE_CHECKING:
    from indexsync.config.settings import Settings
    from indexsync.models.results import SearchResults
    from indexsync.models.signals import SyncSignal

logger = logging.getLogger(__name__)

_IRREGULAR_PLURALS = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
    "goose": "geese",
}


def pluralize(word: str) -> str:
    """English plural of a lower-cased model name (``tweet`` → ``tweets``)."""
    word = word.lower()
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return f"{word}es"
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return f"{word[:-1]}ies"
    return f"{word}s"


@dataclass(frozen=True)
class PendingSync:
    """A store write whose index synchronization may still be in flight.

    ``await pending`` yields the completion signal.
    """

    document: dict[str, Any]
    completion: asyncio.Future[Any]

    def __await__(self) -> Generator[Any, None, SyncSignal]:
        return self.completion.__await__()

    @property
    def done(self) -> bool:
        return self.completion.done()


class SearchableModel:
    """Handle for one registered model.

    Attributes:
        binding: Index, type, hydration default and installed mapping.
        schema: The normalized schema description.
    """

    def __init__(self, engine: IndexSyncEngine, binding: TypeBinding, schema: SchemaDescription) -> None:
        self._engine = engine
        self.binding = binding
        self.schema = schema

    @property
    def name(self) -> str:
        return self.binding.model_name

    def __repr__(self) -> str:
        return f"SearchableModel({self.name!r}, index={self.binding.index!r}, type={self.binding.type!r})"

    async def save(self, document: dict[str, Any]) -> PendingSync:
        """Save ``document`` to the store; the result resolves to its ``IndexedSignal``.

        A missing primary key is assigned before the store sees the document.
        """
        record = dict(document)
        key = self.binding.primary_key
        if record.get(key) is None:
            record[key] = uuid.uuid4().hex

        doc_id = IndexSynchronizer.document_id(self.binding, record)
        completion = self._engine.synchronizer.expect("indexed", self.name, doc_id)
        try:
            saved = await self._engine.store.save(self.name, record)
        except BaseException:
            completion.cancel()
            raise
        return PendingSync(document=saved, completion=completion)

    async def remove(self, document_id: str) -> PendingSync | None:
        """Remove a record; the result resolves to its ``RemovedSignal``.

        Returns None when the store has no such record.
        """
        doc_id = str(document_id)
        completion = self._engine.synchronizer.expect("removed", self.name, doc_id)
        try:
            removed = await self._engine.store.remove(self.name, doc_id)
        except BaseException:
            completion.cancel()
            raise
        if removed is None:
            completion.cancel()
            return None
        return PendingSync(document=removed, completion=completion)

    async def get(self, document_id: str) -> dict[str, Any] | None:
        return await self._engine.store.get(self.name, str(document_id))

    async def search(
        self,
        query: str | dict[str, Any],
        options: SearchOptions | dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> SearchResults:
        """Search this model's documents.

        Options may be given as a ``SearchOptions``, a dict, or keyword
        arguments (``hydrate=True, size=5``).
        """
        if not isinstance(options, SearchOptions):
            options = SearchOptions.model_validate({**(options or {}), **kwargs})
        return await self._engine.search_facade.search(self.binding, query, options)

    async def refresh(self) -> None:
        """Make recent index writes for this model visible to search."""
        await self._engine.adapter.refresh(self.binding.index)


class IndexSyncEngine:
    """Registers searchable models and owns their collaborators.

    Args:
        adapter: Initialized index adapter.
        store: Primary document store (in-memory if None).
        settings: Application settings (defaults if None).
    """

    def __init__(
        self,
        adapter: IndexAdapter,
        store: DocumentStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        if settings is None:
            from indexsync.config.settings import Settings

            settings = Settings(_env_file=None)  # type: ignore[call-arg]
        self.settings = settings
        self.adapter = adapter
        self.store = store or InMemoryDocumentStore()
        self.mapping_generator = MappingGenerator()
        self.synchronizer = IndexSynchronizer(adapter, settings.sync)
        self.search_facade = SearchFacade(adapter, self.store)
        self._models: dict[str, SearchableModel] = {}

    async def register(
        self,
        name: str,
        schema: SchemaDescription | dict[str, Any],
        options: ModelOptions | dict[str, Any] | None = None,
        *,
        primary_key: str | None = None,
    ) -> SearchableModel:
        """Register a model: generate and install its mapping, then start syncing it.

        Raises:
            MappingGenerationError: If the schema is malformed.
            ModelRegistrationError: If the name is taken or the mapping
                cannot be installed.
        """
        if name in self._models:
            raise ModelRegistrationError(f"Model '{name}' is already registered")
        if not isinstance(options, ModelOptions):
            options = ModelOptions.model_validate(options or {})

        if isinstance(schema, SchemaDescription):
            description = schema
        else:
            description = SchemaDescription.from_dict(schema, primary_key)
        mapping, error = await self.mapping_generator.generate_mapping(description)
        if error is not None:
            raise error

        binding = TypeBinding(
            model_name=name,
            index=options.index or pluralize(name),
            type=options.type or name.lower(),
            hydrate=options.hydrate,
            primary_key=description.primary_key,
            mapping=mapping,
            always_indexed=tuple(options.always_indexed),
        )

        try:
            await self.adapter.create_mapping(binding.index, binding.type, binding.mapping)
        except AdapterError as e:
            raise ModelRegistrationError(f"Cannot install mapping for '{name}': {e}") from e

        self.synchronizer.attach(self.store, binding)
        model = SearchableModel(self, binding, description)
        self._models[name] = model
        logger.info(
            "Registered model '%s' → %s/%s (%d mapped fields, hydrate=%s)",
            name,
            binding.index,
            binding.type,
            len(mapping.properties),
            binding.hydrate,
        )
        return model

    async def register_configured(self) -> list[SearchableModel]:
        """Register every model declared in ``settings.models``."""
        registered = []
        for name, config in self.settings.models.items():
            registered.append(
                await self.register(name, config.fields, config.options, primary_key=config.primary_key)
            )
        return registered

    def model(self, name: str) -> SearchableModel:
        """Get a registered model by name.

        Raises:
            UnknownModelError: If no model is registered under ``name``.
        """
        try:
            return self._models[name]
        except KeyError:
            raise UnknownModelError(f"Model '{name}' is not registered") from None

    @property
    def models(self) -> dict[str, SearchableModel]:
        return dict(self._models)

    async def health_check(self) -> dict[str, AdapterHealth]:
        """Health of the injected adapter, keyed by adapter name."""
        try:
            health = await self.adapter.health_check()
        except Exception as e:
            health = AdapterHealth(status="unhealthy", message=str(e))
        return {self.adapter.name: health}

    async def shutdown(self) -> None:
        """Wait for in-flight sync work, then close the adapter."""
        await self.synchronizer.drain()
        for name in self._models:
            self.store.remove_hooks(name)
        self._models.clear()
        await self.adapter.shutdown()
        logger.info("IndexSync engine shut down")
