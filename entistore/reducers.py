"""
Collection Reducers
===================

Default add/update/delete semantics for keyed collections.

Every function here is pure: it takes the current entity tuple plus its input
and returns a new tuple, leaving its arguments untouched. An operation that
changes nothing returns the input tuple itself, so callers can detect a no-op
with ``is``. ``EntitiesStore`` calls these unless the caller configured an
override for the operation, and it adds the ``loaded``/``error`` bookkeeping
around them.

Under these defaults identifiers stay pairwise distinct, with two exceptions
the caller owns: ``add_many`` appends without a duplicate check, and the
initial state is taken as given.
"""

from typing import Any, Iterable, Mapping, Optional, Tuple, TypeVar

from .identity import Identifier, IdentifierPolicy
from .util.merge import shallow_merge

T = TypeVar("T")

Entities = Tuple[T, ...]


def duplicate_message(policy: IdentifierPolicy, uid: Identifier) -> str:
    """Error message published when ``add`` meets an existing identifier."""
    return f"Item with {policy.id_key}={uid} already exists."


def find(entities: Entities, uid: Identifier, policy: IdentifierPolicy) -> Optional[T]:
    """Return the first record whose identifier equals ``uid``, or None."""
    for entity in entities:
        if policy.matches(entity, uid):
            return entity
    return None


def has(entities: Entities, uid: Identifier, policy: IdentifierPolicy) -> bool:
    return any(policy.matches(entity, uid) for entity in entities)


def _keep_if_unchanged(entities: Entities, result: Entities) -> Entities:
    if len(result) == len(entities) and all(
        new is old for new, old in zip(result, entities)
    ):
        return entities
    return result


def add(entities: Entities, item: T, policy: IdentifierPolicy) -> Entities:
    """
    Append ``item`` unless a record with the same identifier exists.

    A rejected item yields ``entities`` itself.
    """
    if has(entities, policy.extract(item), policy):
        return entities
    return entities + (item,)


def add_many(entities: Entities, items: Iterable[T]) -> Entities:
    """Append every item. Duplicates are the caller's responsibility."""
    return entities + tuple(items)


def update(
    entities: Entities,
    uid: Identifier,
    patch: Mapping[str, Any],
    policy: IdentifierPolicy,
) -> Entities:
    """Shallow-merge ``patch`` into the record(s) identified by ``uid``."""
    result = tuple(
        shallow_merge(entity, patch) if policy.matches(entity, uid) else entity
        for entity in entities
    )
    return _keep_if_unchanged(entities, result)


def update_many(
    entities: Entities,
    patches: Iterable[Mapping[str, Any]],
    policy: IdentifierPolicy,
) -> Entities:
    """
    Apply identifier-tagged patches.

    Each record is merged with the first patch carrying its identifier.
    Records without a patch, and patches without a record, are ignored.
    """
    tagged = [(policy.extract(patch), patch) for patch in patches]

    def apply(entity: T) -> T:
        uid = policy.extract(entity)
        for patch_uid, patch in tagged:
            if policy.equals(patch_uid, uid):
                return shallow_merge(entity, patch)
        return entity

    return _keep_if_unchanged(entities, tuple(apply(entity) for entity in entities))


def delete(entities: Entities, uid: Identifier, policy: IdentifierPolicy) -> Entities:
    """Remove every record whose identifier equals ``uid``."""
    result = tuple(entity for entity in entities if not policy.matches(entity, uid))
    return _keep_if_unchanged(entities, result)


def delete_many(
    entities: Entities, uids: Iterable[Identifier], policy: IdentifierPolicy
) -> Entities:
    uids = tuple(uids)
    result = tuple(
        entity
        for entity in entities
        if not any(policy.equals(policy.extract(entity), uid) for uid in uids)
    )
    return _keep_if_unchanged(entities, result)
