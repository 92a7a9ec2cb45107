"""
Factory functions for entistore tests.

These factories keep record shapes and subscription tracking consistent
across the test suite.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    price: float = 0.0


@dataclass(frozen=True)
class Address:
    city: str
    street: str = ""


@dataclass(frozen=True)
class Customer:
    sku: str
    name: str
    address: Optional[Address] = None
    tags: tuple = ()
    meta: Dict[str, int] = field(default_factory=dict)


def laptop_and_phone():
    """Two product dicts with distinct ids, in insertion order."""
    return [{"id": 1, "name": "Laptop"}, {"id": 2, "name": "Phone"}]


def create_subscription_tracker():
    """Provides a helper for tracking subscription notifications

    Returns:
        Tracker: Object with record() method and events list
    """

    class Tracker:
        def __init__(self):
            self.events = []

        def record(self, event):
            self.events.append(event)

        @property
        def count(self):
            return len(self.events)

        @property
        def last(self):
            return self.events[-1] if self.events else None

    return Tracker()
