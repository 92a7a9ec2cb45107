"""
Entistore Entity Store - Singleton Entity State
===============================================

This module provides ``EntityStore``, a reactive container holding zero or one
record, and its factory ``create_entity_store``.

```python
from entistore import create_entity_store

session = create_entity_store(deep_merge=True)

session.set({"id": 1, "name": "Alice", "prefs": {"theme": "dark", "lang": "en"}})
session.update({"prefs": {"lang": "fr"}})
session.entity["prefs"]   # {"theme": "dark", "lang": "fr"}

session.clear()
session.loaded            # False
```

Without ``deep_merge`` an update overwrites top-level fields, so the same
update would replace ``prefs`` entirely.

Updating while no entity is set does nothing to the entity; the failed
precondition is logged and published through ``error``.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from .observable import BatchContext, ChangeEvent, StateObservable, Subscription
from .options import EntityStoreOptions, resolve_options
from .state import SingletonState
from .util.merge import deep_merge, shallow_merge

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_ENTITY_MESSAGE = "Cannot update: no entity is set."


class EntityStore(Generic[T]):
    """Reactive container for a single optional record."""

    def __init__(self, options: EntityStoreOptions[T]) -> None:
        self._deep_merge = options.deep_merge
        initial = options.initial_state
        self._observable: StateObservable[SingletonState[T]] = StateObservable(
            SingletonState(entity=initial, loaded=initial is not None),
            key=options.name or "entity",
        )
        logger.debug(
            "Created %s (deep_merge=%s, loaded=%s)",
            self._observable.key,
            self._deep_merge,
            initial is not None,
        )

    @property
    def name(self) -> str:
        return self._observable.key

    @property
    def deep_merge(self) -> bool:
        return self._deep_merge

    @property
    def entity(self) -> Optional[T]:
        return self._observable.get_state().entity

    @property
    def loaded(self) -> bool:
        return self._observable.get_state().loaded

    @property
    def loading(self) -> bool:
        return self._observable.get_state().loading

    @property
    def error(self) -> Optional[str]:
        return self._observable.get_state().error

    def get_state(self) -> SingletonState[T]:
        return self._observable.get_state()

    def subscribe(
        self,
        callback: Callable[[ChangeEvent], Any],
        keys: Optional[Iterable[str]] = None,
    ) -> Subscription:
        return self._observable.subscribe(callback, keys=keys)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self._observable.unsubscribe(subscription)

    def batch(self) -> BatchContext:
        return self._observable.batch()

    def set(self, entity: T) -> None:
        """Replace the entity wholesale."""
        self._observable.set_state(entity=entity, loaded=entity is not None, error=None)

    def update(self, patch: Mapping[str, Any]) -> None:
        """
        Merge ``patch`` into the current entity.

        The merge is recursive when the store was created with
        ``deep_merge=True`` and a top-level overwrite otherwise. With no
        entity present the entity is left alone and ``error`` is set.
        """

        def reduce(state: SingletonState[T]) -> SingletonState[T]:
            if state.entity is None:
                logger.warning("%s: update ignored, no entity is set", self.name)
                return replace(state, error=NO_ENTITY_MESSAGE)
            merge = deep_merge if self._deep_merge else shallow_merge
            return replace(
                state, entity=merge(state.entity, patch), loaded=True, error=None
            )

        self._observable.update_state(reduce)

    def clear(self) -> None:
        self._observable.set_state(entity=None, loaded=False, error=None)

    def set_error(self, error: Optional[str]) -> None:
        self._observable.set_state(error=error)

    def set_loading(self, loading: bool) -> None:
        self._observable.set_state(loading=loading)

    def __repr__(self) -> str:
        state = self.get_state()
        return (
            f"EntityStore({self.name!r}, entity={state.entity!r}, "
            f"loaded={state.loaded}, loading={state.loading}, error={state.error!r})"
        )


def create_entity_store(
    options: Optional[EntityStoreOptions[T]] = None, **kwargs: Any
) -> EntityStore[T]:
    """
    Create an independent singleton entity store.

    Args:
        options: A prepared ``EntityStoreOptions``.
        **kwargs: Alternatively ``initial_state``, ``deep_merge`` and ``name``.

    Raises:
        InvalidStoreOptions: If the configuration is invalid.
    """
    return EntityStore(resolve_options(EntityStoreOptions, options, kwargs))
