"""
Store Options
=============

Configuration accepted by the store factories.

Options are plain dataclasses checked once, at construction time. Mistakes in
them are programmer errors and raise ``InvalidStoreOptions`` straight away
instead of surfacing later as odd store behaviour.

Collection stores take per-operation overrides. An override receives the
action's arguments followed by the current ``CollectionState`` and returns the
complete new entity sequence::

    def add_sorted(item, state):
        return sorted([*state.entities, item], key=lambda e: e["name"])

    options = EntitiesStoreOptions(overrides={"add": add_sorted})

Overriding an operation opts out of its default duplicate check and error
reporting; the store adopts whatever sequence comes back. Overrides must be
pure and must not call the store's own actions, whose effects the returned
sequence would overwrite.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, Sequence, TypeVar

from .errors import InvalidStoreOptions
from .identity import DEFAULT_ID_KEY

T = TypeVar("T")

# Operation name -> positional arguments the override receives before the state
OVERRIDABLE_OPERATIONS: Dict[str, Sequence[str]] = {
    "add": ("item",),
    "add_many": ("items",),
    "update": ("uid", "patch"),
    "update_many": ("patches",),
    "delete": ("uid",),
    "delete_many": ("uids",),
}

Override = Callable[..., Sequence[Any]]


@dataclass(frozen=True)
class EntitiesStoreOptions(Generic[T]):
    """
    Options for ``create_entities_store``.

    Attributes:
        id_key: Field holding each record's unique identifier.
        initial_state: Records the store starts with.
        overrides: Operation name to override function.
        name: Label used in logs and reprs.
    """

    id_key: str = DEFAULT_ID_KEY
    initial_state: Sequence[T] = ()
    overrides: Dict[str, Override] = field(default_factory=dict)
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id_key, str) or not self.id_key:
            raise InvalidStoreOptions(
                f"id_key must be a non-empty string, got {self.id_key!r}"
            )
        if isinstance(self.initial_state, (str, bytes)) or self.initial_state is None:
            raise InvalidStoreOptions(
                f"initial_state must be a sequence of records, got {self.initial_state!r}"
            )
        for operation, func in self.overrides.items():
            if operation not in OVERRIDABLE_OPERATIONS:
                raise InvalidStoreOptions(
                    f"Unknown operation {operation!r}; overridable operations are "
                    f"{', '.join(OVERRIDABLE_OPERATIONS)}"
                )
            if not callable(func):
                raise InvalidStoreOptions(
                    f"Override for {operation!r} must be callable, got {func!r}"
                )

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "EntitiesStoreOptions[T]":
        """
        Build options from flat keyword arguments.

        Override functions may be passed directly by operation name, e.g.
        ``from_kwargs(id_key="sku", add=my_add)``.
        """
        overrides = dict(kwargs.pop("overrides", None) or {})
        for operation in OVERRIDABLE_OPERATIONS:
            if operation in kwargs:
                overrides[operation] = kwargs.pop(operation)
        unknown = set(kwargs) - {"id_key", "initial_state", "name"}
        if unknown:
            raise InvalidStoreOptions(
                f"Unknown collection store option(s): {', '.join(sorted(unknown))}"
            )
        if kwargs.get("id_key", DEFAULT_ID_KEY) is None:
            kwargs["id_key"] = DEFAULT_ID_KEY
        if kwargs.get("initial_state", ()) is None:
            kwargs["initial_state"] = ()
        return cls(overrides=overrides, **kwargs)


@dataclass(frozen=True)
class EntityStoreOptions(Generic[T]):
    """
    Options for ``create_entity_store``.

    Attributes:
        initial_state: Record the store starts with, or None for empty.
        deep_merge: Merge ``update`` patches recursively instead of
            overwriting top-level fields.
        name: Label used in logs and reprs.
    """

    initial_state: Optional[T] = None
    deep_merge: bool = False
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.deep_merge, bool):
            raise InvalidStoreOptions(
                f"deep_merge must be a bool, got {self.deep_merge!r}"
            )

    @classmethod
    def from_kwargs(cls, **kwargs: Any) -> "EntityStoreOptions[T]":
        unknown = set(kwargs) - {"initial_state", "deep_merge", "name"}
        if unknown:
            raise InvalidStoreOptions(
                f"Unknown entity store option(s): {', '.join(sorted(unknown))}"
            )
        return cls(**kwargs)


def resolve_options(options_cls: type, options: Any, kwargs: Dict[str, Any]) -> Any:
    """Return ``options`` or build one from ``kwargs``; never both."""
    if options is None:
        return options_cls.from_kwargs(**kwargs)
    if kwargs:
        raise InvalidStoreOptions(
            "Pass either an options object or keyword options, not both"
        )
    if not isinstance(options, options_cls):
        raise InvalidStoreOptions(
            f"Expected {options_cls.__name__}, got {type(options).__name__}"
        )
    return options
