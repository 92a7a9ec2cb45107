"""
Entistore Observable - Reactive State Holder
============================================

This module provides ``StateObservable``, the reactive primitive every store is
built on. It holds one immutable state snapshot, replaces it atomically and
notifies subscribers synchronously on the caller's thread.

Key Features:
- Atomic read-compute-replace through ``update_state``
- Top-level field merge through ``set_state``
- Subscriptions filtered by changed top-level fields
- Pause/resume/unsubscribe handles
- Batching of several replacements into a single notification
- Breadth-first notification delivery, so subscribers that write back into a
  store do not recurse

Usage:
    ```python
    from entistore.observable import StateObservable
    from entistore.state import CollectionState

    state = StateObservable(CollectionState())

    sub = state.subscribe(lambda event: print(event.changed))
    state.set_state(loading=True)           # prints frozenset({'loading'})

    with state.batch():
        state.set_state(loading=False)
        state.set_state(error="boom")       # nothing printed yet
    # prints frozenset({'loading', 'error'})

    sub.unsubscribe()
    ```

Snapshots must be dataclass instances; ``set_state`` relies on
``dataclasses.replace``.
"""

import dataclasses
import logging
import threading
import weakref
from collections import deque
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    Optional,
    TypeVar,
    Union,
)

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(frozen=True)
class ChangeEvent(Generic[S]):
    """
    A published state replacement.

    Attributes:
        old_state: Snapshot before the change (before the batch, when batched).
        new_state: Snapshot after the change.
        changed: Names of the top-level fields whose values differ.
    """

    old_state: S
    new_state: S
    changed: FrozenSet[str]

    def __repr__(self) -> str:
        return f"ChangeEvent(changed={sorted(self.changed)})"


def _changed_fields(old: Any, new: Any) -> FrozenSet[str]:
    # Identity only: an unchanged field of an immutable snapshot is the same object;
    # record values are never compared with __eq__
    if type(old) is not type(new):
        return frozenset(f.name for f in dataclasses.fields(new))
    return frozenset(
        f.name
        for f in dataclasses.fields(new)
        if getattr(old, f.name) is not getattr(new, f.name)
    )


class PropagationContext:
    """Delivers notifications breadth-first to prevent unbounded recursion."""

    _local = threading.local()

    @classmethod
    def _get_state(cls) -> dict:
        if not hasattr(cls._local, "state"):
            cls._local.state = {"is_propagating": False, "pending": deque()}
        return cls._local.state

    @classmethod
    def _enqueue_notification(
        cls, subscription: "Subscription", event: ChangeEvent
    ) -> None:
        cls._get_state()["pending"].append((subscription, event))

    @classmethod
    def _process_notifications(cls) -> None:
        state = cls._get_state()
        if state["is_propagating"]:
            return

        state["is_propagating"] = True
        drained = False
        try:
            while state["pending"]:
                subscription, event = state["pending"].popleft()
                subscription.notify(event)
            drained = True
        finally:
            if not drained:
                # Events left behind by an aborted delivery are dropped
                state["pending"].clear()
            state["is_propagating"] = False

    @classmethod
    def _reset_state(cls) -> None:
        """Reset the propagation state for testing."""
        cls._local.__dict__.clear()


class Subscription:
    """
    Represents a subscription to state changes.

    Provides methods to pause, resume, and unsubscribe.
    """

    def __init__(
        self,
        subscriber_id: int,
        callback: Callable[[ChangeEvent], Any],
        observable: "StateObservable",
        keys: Optional[FrozenSet[str]] = None,
    ):
        self.id = subscriber_id
        self.callback = callback
        self._observable_ref = weakref.ref(observable)
        self.keys = keys  # None means every field
        self.active = True

    def pause(self) -> None:
        """Stop receiving notifications until resumed."""
        self.active = False

    def resume(self) -> None:
        """Start receiving notifications again."""
        self.active = True

    def unsubscribe(self) -> bool:
        """Remove this subscription from its observable."""
        observable = self._observable_ref()
        if observable is None:
            return False
        return observable.unsubscribe(self.id)

    def matches(self, event: ChangeEvent) -> bool:
        """Check if this subscription is interested in the given event."""
        if self.keys is None:
            return True
        return not self.keys.isdisjoint(event.changed)

    def notify(self, event: ChangeEvent) -> None:
        if not self.active or not self.matches(event):
            return
        try:
            self.callback(event)
        except Exception:
            # A failing subscriber must not stop delivery to the others
            logger.exception("Error in subscription %s", self.id)

    def __repr__(self) -> str:
        state = "active" if self.active else "paused"
        return f"Subscription({self.id}, {state})"


class BatchContext:
    """Context manager deferring notifications until the outermost batch exits."""

    def __init__(self, observable: "StateObservable"):
        self.observable = observable

    def __enter__(self) -> "StateObservable":
        self.observable._begin_batch()
        return self.observable

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.observable._end_batch()
        return False


class StateObservable(Generic[S]):
    """
    Observable holder of one immutable state snapshot.

    Every replacement happens under an instance lock, so a reader never sees a
    half-computed state. Subscribers are called after the lock is released.
    """

    def __init__(self, initial_state: S, key: Optional[str] = None) -> None:
        if not dataclasses.is_dataclass(initial_state) or isinstance(
            initial_state, type
        ):
            raise TypeError(
                f"StateObservable requires a dataclass snapshot, got {initial_state!r}"
            )
        self._key = key or "<unnamed>"
        self._state = initial_state
        self._lock = threading.RLock()
        self._subscriptions: Dict[int, Subscription] = {}
        self._next_sub_id = 0
        self._batch_depth = 0
        self._batch_origin: Optional[S] = None

    @property
    def key(self) -> str:
        return self._key

    def get_state(self) -> S:
        """Return the current snapshot."""
        return self._state

    def set_state(self, **fields: Any) -> S:
        """Replace the given top-level fields and publish the new snapshot."""
        return self.update_state(lambda state: dataclasses.replace(state, **fields))

    def update_state(self, reducer: Callable[[S], Optional[S]]) -> S:
        """
        Atomically compute and publish a new snapshot.

        ``reducer`` receives the current snapshot and returns the next one, or
        None to leave the state as it is. Exceptions raised by the reducer
        propagate and nothing is published.

        Returns:
            The snapshot current after the call.
        """
        with self._lock:
            old_state = self._state
            new_state = reducer(old_state)
            if new_state is None or new_state is old_state:
                return old_state
            changed = _changed_fields(old_state, new_state)
            self._state = new_state
            if self._batch_depth:
                return new_state

        if changed:
            self._notify(ChangeEvent(old_state, new_state, changed))
        return new_state

    def subscribe(
        self,
        callback: Callable[[ChangeEvent], Any],
        keys: Optional[Iterable[str]] = None,
    ) -> Subscription:
        """
        Subscribe to state changes.

        Args:
            callback: Called with a ``ChangeEvent`` after each published change.
            keys: Optional top-level field names; the callback then only fires
                when at least one of them changed.

        Returns:
            Subscription handle that can pause, resume or unsubscribe.
        """
        with self._lock:
            sub_id = self._next_sub_id
            self._next_sub_id += 1
            keys_set = frozenset(keys) if keys is not None else None
            subscription = Subscription(sub_id, callback, self, keys_set)
            self._subscriptions[sub_id] = subscription
            return subscription

    def unsubscribe(self, subscription: Union[Subscription, int]) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the subscription was removed, False if it was not found.
        """
        sub_id = (
            subscription.id if isinstance(subscription, Subscription) else subscription
        )
        with self._lock:
            return self._subscriptions.pop(sub_id, None) is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def batch(self) -> BatchContext:
        """
        Context manager for batching several replacements.

        Subscribers receive a single event, comparing the snapshot from before
        the outermost batch with the final one, when that batch exits.
        """
        return BatchContext(self)

    def _begin_batch(self) -> None:
        with self._lock:
            if self._batch_depth == 0:
                self._batch_origin = self._state
            self._batch_depth += 1

    def _end_batch(self) -> None:
        with self._lock:
            self._batch_depth -= 1
            if self._batch_depth:
                return
            old_state = self._batch_origin
            self._batch_origin = None
            new_state = self._state
            changed = (
                _changed_fields(old_state, new_state)
                if new_state is not old_state
                else frozenset()
            )

        if changed:
            self._notify(ChangeEvent(old_state, new_state, changed))

    def _notify(self, event: ChangeEvent) -> None:
        # Fast snapshot of subscribers
        with self._lock:
            subscriptions = tuple(self._subscriptions.values())

        for subscription in subscriptions:
            PropagationContext._enqueue_notification(subscription, event)
        PropagationContext._process_notifications()

    def __repr__(self) -> str:
        return f"StateObservable({self._key!r}, {self._state!r})"
