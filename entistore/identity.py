"""
Identifier Policy
=================

Resolves which field of a record acts as its unique identifier inside a
collection store, and how identifiers compare.

The field defaults to ``"id"``. Pass ``id_key`` to use another field::

    policy = IdentifierPolicy()            # uses record["id"]
    sku_policy = IdentifierPolicy("sku")   # uses record["sku"]

    sku_policy.extract({"sku": "A-1", "name": "Lamp"})  # "A-1"

Identifiers are compared by strict value equality: ``1`` equals ``1.0`` but
not ``"1"``, and booleans never equal numbers.
"""

from typing import Any, Hashable, Mapping, Optional

from .errors import InvalidStoreOptions, MissingIdentifierError

DEFAULT_ID_KEY = "id"

Identifier = Hashable


class IdentifierPolicy:
    """Extracts and compares record identifiers for one configured field."""

    __slots__ = ("_id_key",)

    def __init__(self, id_key: Optional[str] = None) -> None:
        if id_key is None:
            id_key = DEFAULT_ID_KEY
        if not isinstance(id_key, str) or not id_key:
            raise InvalidStoreOptions(
                f"id_key must be a non-empty string, got {id_key!r}"
            )
        self._id_key = id_key

    @property
    def id_key(self) -> str:
        return self._id_key

    def extract(self, record: Any) -> Identifier:
        """Return the identifier of ``record``."""
        if isinstance(record, Mapping):
            try:
                return record[self._id_key]
            except KeyError:
                raise MissingIdentifierError(self._id_key, record) from None
        try:
            return getattr(record, self._id_key)
        except AttributeError:
            raise MissingIdentifierError(self._id_key, record) from None

    @staticmethod
    def equals(a: Identifier, b: Identifier) -> bool:
        """Strict value equality between two identifiers."""
        if isinstance(a, bool) != isinstance(b, bool):
            return False
        return a == b

    def matches(self, record: Any, uid: Identifier) -> bool:
        """True when ``record``'s identifier equals ``uid``."""
        return self.equals(self.extract(record), uid)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IdentifierPolicy):
            return NotImplemented
        return self._id_key == other._id_key

    def __hash__(self) -> int:
        return hash(self._id_key)

    def __repr__(self) -> str:
        return f"IdentifierPolicy({self._id_key!r})"
