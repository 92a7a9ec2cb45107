"""
Shared pytest fixtures and configuration for entistore tests.
"""

import pytest

from entistore import create_entities_store, create_entity_store
from entistore.observable import PropagationContext
from tests.test_factories import laptop_and_phone


@pytest.fixture(autouse=True)
def reset_propagation_state():
    """Reset notification queues before each test to prevent state leakage."""
    PropagationContext._reset_state()


@pytest.fixture
def products():
    """Provide an empty product collection store."""
    return create_entities_store(initial_state=[])


@pytest.fixture
def stocked_products():
    """Provide a product store seeded with a laptop and a phone."""
    return create_entities_store(initial_state=laptop_and_phone())


@pytest.fixture
def user_store():
    """Provide an empty singleton store."""
    return create_entity_store(initial_state=None)
