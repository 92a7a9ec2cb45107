"""
Store State
===========

Immutable state snapshots published by the stores.

Snapshots are frozen dataclasses. Actions never mutate a snapshot; they build
a new one with ``dataclasses.replace`` and hand it to the store's
``StateObservable``.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CollectionState(Generic[T]):
    """
    State of a keyed collection store.

    Attributes:
        entities: Records in insertion order (or the order of the last
            ``replace_all``).
        loaded: True once a successful mutation or replace has happened since
            the last clear.
        loading: Caller-driven flag, never touched by the CRUD actions.
        error: Message describing the last recoverable failure, if any.
    """

    entities: Tuple[T, ...] = field(default_factory=tuple)
    loaded: bool = False
    loading: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class SingletonState(Generic[T]):
    """
    State of a singleton entity store.

    ``loaded`` is True exactly when ``entity`` is present.
    """

    entity: Optional[T] = None
    loaded: bool = False
    loading: bool = False
    error: Optional[str] = None
