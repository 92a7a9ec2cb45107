"""
Entistore Errors
================

Exception types raised by entistore.

Recoverable store failures (a duplicate identifier, an update against an empty
singleton) are never raised; they are published through the ``error`` field of
the store state. The exceptions below only signal programmer errors that should
surface while a store is being wired into an application.
"""


class StoreError(Exception):
    """Base class for all entistore exceptions."""

    pass


class InvalidStoreOptions(StoreError, ValueError):
    """Store configuration rejected at construction time."""

    pass


class MissingIdentifierError(StoreError, KeyError):
    """A record does not carry the configured identifier field."""

    def __init__(self, id_key: str, record: object) -> None:
        self.id_key = id_key
        self.record = record
        super().__init__(f"Record has no identifier field {id_key!r}: {record!r}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])
