"""
Shared test fixtures and helpers for the Authcraft test suite.
"""

import pytest
import pytest_asyncio

from authcraft import AuthEntity, MemoryEntityStore, capabilities
from authcraft.testing import FrozenClock, RecordingNotifier, RecordingSignIn

# Cheap Argon2 parameters; hashing cost is not under test.
FAST_HASHING = {"stretches": 1, "memory_cost": 8, "parallelism": 1}

STRONG_PASSWORD = "correct-horse-battery"


def make_entity_type(*names, **flat_options):
    """Fresh AuthEntity subclass bound with ``names`` and fast hashing."""
    options = {**FAST_HASHING, **flat_options}

    @capabilities(*names, **options)
    class User(AuthEntity):
        pass

    return User


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def user_type(clock):
    """Entity type with every capability, its recovery clock frozen."""
    entity_type = make_entity_type("all")
    entity_type.behavior("recoverable").use_clock(clock)
    return entity_type


@pytest.fixture
def store():
    return MemoryEntityStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def signer():
    return RecordingSignIn()


@pytest_asyncio.fixture
async def alice(user_type, store):
    """Persisted, confirmed user with a known password."""
    user = user_type(email="alice@example.com")
    user.set_password(STRONG_PASSWORD)
    user.confirm()
    return await store.create(user)
