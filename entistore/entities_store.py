"""
Entistore Entities Store - Keyed Collection State
=================================================

This module provides ``EntitiesStore``, a reactive container for many records
of one type, each uniquely identified by a configurable field, together with
its factory ``create_entities_store``.

Basic Usage
-----------

```python
from entistore import create_entities_store

products = create_entities_store()

products.add({"id": 1, "name": "Laptop"})
products.add({"id": 1, "name": "Laptop"})   # rejected
print(products.error)                       # "Item with id=1 already exists."

products.update(1, {"name": "Tablet"})
products.find(1)                            # {"id": 1, "name": "Tablet"}

products.delete(1)
print(products.loaded)                      # False
```

Custom Identifier
-----------------

```python
inventory = create_entities_store(id_key="sku")
inventory.add({"sku": "A-1", "qty": 3})
```

Overriding Operations
---------------------

Any mutating operation can be replaced by a function that receives the
action's arguments plus the current state and returns the new entity sequence.
The store adopts the result as-is and marks itself loaded:

```python
def upsert(item, state):
    rest = [e for e in state.entities if e["id"] != item["id"]]
    return [*rest, item]

users = create_entities_store(add=upsert)
```

Overrides run while the store computes its next state, so they must be pure
and must not call the store's own actions: the returned sequence replaces
whatever such a call wrote in the meantime.

Subscriptions
-------------

```python
sub = products.subscribe(lambda event: print(event.new_state.entities))

with products.batch():
    products.add({"id": 2, "name": "Phone"})
    products.add({"id": 3, "name": "Watch"})
# subscriber runs once here

sub.unsubscribe()
```
"""

import logging
from dataclasses import replace
from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from . import reducers
from .identity import Identifier, IdentifierPolicy
from .observable import BatchContext, ChangeEvent, StateObservable, Subscription
from .options import EntitiesStoreOptions, Override, resolve_options
from .state import CollectionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntitiesStore(Generic[T]):
    """
    Reactive container for a keyed collection of records.

    The store exclusively owns its ``CollectionState``. Callers read it through
    the properties below or ``get_state()``, and change it only through the
    actions. Each action reads the current state, computes the next one and
    publishes it in a single atomic step.
    """

    def __init__(self, options: EntitiesStoreOptions[T]) -> None:
        self._policy = IdentifierPolicy(options.id_key)
        self._overrides = dict(options.overrides)
        self._observable: StateObservable[CollectionState[T]] = StateObservable(
            CollectionState(entities=tuple(options.initial_state)),
            key=options.name or f"entities[{options.id_key}]",
        )
        logger.debug(
            "Created %s with %d initial entities, overrides=%s",
            self._observable.key,
            len(self.entities),
            sorted(self._overrides),
        )

    # ==============================================================================================
    # State Access
    # ==============================================================================================

    @property
    def name(self) -> str:
        return self._observable.key

    @property
    def id_key(self) -> str:
        return self._policy.id_key

    @property
    def policy(self) -> IdentifierPolicy:
        return self._policy

    @property
    def entities(self) -> Tuple[T, ...]:
        return self._observable.get_state().entities

    @property
    def loaded(self) -> bool:
        return self._observable.get_state().loaded

    @property
    def loading(self) -> bool:
        return self._observable.get_state().loading

    @property
    def error(self) -> Optional[str]:
        return self._observable.get_state().error

    def get_state(self) -> CollectionState[T]:
        """Return the current immutable state snapshot."""
        return self._observable.get_state()

    def subscribe(
        self,
        callback: Callable[[ChangeEvent], Any],
        keys: Optional[Iterable[str]] = None,
    ) -> Subscription:
        """Subscribe to state changes; see ``StateObservable.subscribe``."""
        return self._observable.subscribe(callback, keys=keys)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self._observable.unsubscribe(subscription)

    def batch(self) -> BatchContext:
        """Group several actions into a single subscriber notification."""
        return self._observable.batch()

    # ==============================================================================================
    # Actions
    # ==============================================================================================

    def _adopt(self, state: CollectionState[T], entities: Sequence[T]) -> CollectionState[T]:
        return replace(state, entities=tuple(entities), loaded=True, error=None)

    def _override(self, operation: str) -> Optional[Override]:
        return self._overrides.get(operation)

    def add(self, item: T) -> None:
        """
        Add one record.

        By default the record is appended unless another record already has
        its identifier, in which case only ``error`` changes.
        """
        override = self._override("add")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(item, state))
            entities = reducers.add(state.entities, item, self._policy)
            if entities is state.entities:
                uid = self._policy.extract(item)
                logger.debug("%s: rejected duplicate %s=%r", self.name, self.id_key, uid)
                return replace(state, error=reducers.duplicate_message(self._policy, uid))
            return replace(state, entities=entities, loaded=True, error=None)

        self._observable.update_state(reduce)

    def add_many(self, items: Iterable[T]) -> None:
        """Append several records without checking for duplicates."""
        items = tuple(items)
        override = self._override("add_many")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(items, state))
            return replace(
                state,
                entities=reducers.add_many(state.entities, items),
                loaded=True,
                error=None,
            )

        self._observable.update_state(reduce)

    def update(self, uid: Identifier, patch: Mapping[str, Any]) -> None:
        """Shallow-merge ``patch`` into the record identified by ``uid``."""
        override = self._override("update")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(uid, patch, state))
            return replace(
                state,
                entities=reducers.update(state.entities, uid, patch, self._policy),
                error=None,
            )

        self._observable.update_state(reduce)

    def update_many(self, patches: Iterable[Mapping[str, Any]]) -> None:
        """Apply patches that each carry the identifier of their target record."""
        patches = tuple(patches)
        override = self._override("update_many")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(patches, state))
            return replace(
                state,
                entities=reducers.update_many(state.entities, patches, self._policy),
                error=None,
            )

        self._observable.update_state(reduce)

    def delete(self, uid: Identifier) -> None:
        """Remove the record identified by ``uid``; a missing one is a no-op."""
        override = self._override("delete")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(uid, state))
            entities = reducers.delete(state.entities, uid, self._policy)
            return replace(
                state,
                entities=entities,
                loaded=state.loaded and bool(entities),
                error=None,
            )

        self._observable.update_state(reduce)

    def delete_many(self, uids: Iterable[Identifier]) -> None:
        uids = tuple(uids)
        override = self._override("delete_many")

        def reduce(state: CollectionState[T]) -> CollectionState[T]:
            if override is not None:
                return self._adopt(state, override(uids, state))
            entities = reducers.delete_many(state.entities, uids, self._policy)
            return replace(
                state,
                entities=entities,
                loaded=state.loaded and bool(entities),
                error=None,
            )

        self._observable.update_state(reduce)

    def clear(self) -> None:
        """Drop every record and reset ``loaded`` and ``error``."""
        self._observable.set_state(entities=(), loaded=False, error=None)

    def replace_all(self, items: Iterable[T]) -> None:
        """Replace the whole collection, in the given order."""
        self._observable.set_state(entities=tuple(items), loaded=True, error=None)

    def find(self, uid: Identifier) -> Optional[T]:
        """Return the first record identified by ``uid``, or None."""
        return reducers.find(self.entities, uid, self._policy)

    def has(self, uid: Identifier) -> bool:
        return reducers.has(self.entities, uid, self._policy)

    def set_error(self, error: Optional[str]) -> None:
        self._observable.set_state(error=error)

    def set_loading(self, loading: bool) -> None:
        self._observable.set_state(loading=loading)

    # ==============================================================================================
    # Container Protocol
    # ==============================================================================================

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[T]:
        return iter(self.entities)

    def __contains__(self, uid: object) -> bool:
        return self.has(uid)

    def __repr__(self) -> str:
        state = self.get_state()
        return (
            f"EntitiesStore({self.name!r}, entities={len(state.entities)}, "
            f"loaded={state.loaded}, loading={state.loading}, error={state.error!r})"
        )


def create_entities_store(
    options: Optional[EntitiesStoreOptions[T]] = None, **kwargs: Any
) -> EntitiesStore[T]:
    """
    Create an independent keyed collection store.

    Args:
        options: A prepared ``EntitiesStoreOptions``.
        **kwargs: Alternatively, the option fields as keywords: ``id_key``,
            ``initial_state``, ``name``, ``overrides``, or override functions
            named after their operation (``add``, ``add_many``, ``update``,
            ``update_many``, ``delete``, ``delete_many``).

    Returns:
        A new ``EntitiesStore``. Every call returns a fresh, isolated store.

    Raises:
        InvalidStoreOptions: If the configuration is invalid.
    """
    return EntitiesStore(resolve_options(EntitiesStoreOptions, options, kwargs))
