"""
Entistore - Reactive Entity Stores
==================================

Generic reactive state containers for client applications:

- ``create_entities_store``: many records, uniquely identified by a field
- ``create_entity_store``: zero or one record, with optional deep-merge updates

Both stores publish immutable state snapshots through a ``StateObservable`` and
report recoverable failures through their ``error`` field instead of raising.
"""

from .entities_store import EntitiesStore, create_entities_store
from .entity_store import NO_ENTITY_MESSAGE, EntityStore, create_entity_store
from .errors import InvalidStoreOptions, MissingIdentifierError, StoreError
from .identity import DEFAULT_ID_KEY, IdentifierPolicy
from .observable import BatchContext, ChangeEvent, StateObservable, Subscription
from .options import OVERRIDABLE_OPERATIONS, EntitiesStoreOptions, EntityStoreOptions
from .state import CollectionState, SingletonState
from .util.merge import deep_merge, shallow_merge

__version__ = "0.1.0"

__all__ = [
    # Factories and stores
    "create_entities_store",
    "create_entity_store",
    "EntitiesStore",
    "EntityStore",
    # Configuration
    "EntitiesStoreOptions",
    "EntityStoreOptions",
    "OVERRIDABLE_OPERATIONS",
    "DEFAULT_ID_KEY",
    "IdentifierPolicy",
    # State and reactivity
    "CollectionState",
    "SingletonState",
    "StateObservable",
    "Subscription",
    "ChangeEvent",
    "BatchContext",
    # Helpers
    "deep_merge",
    "shallow_merge",
    "NO_ENTITY_MESSAGE",
    # Errors
    "StoreError",
    "InvalidStoreOptions",
    "MissingIdentifierError",
]
