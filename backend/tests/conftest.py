"""
Shared Test Fixtures - Conversation Context Engine
=================================================
Provides a fresh in-memory store per test and a few catalog entries.

Usage:
  pytest backend/tests -v
"""

from __future__ import annotations

import pytest

from context_engine.models.service import Service
from context_engine.services.memory_store import InMemoryStore

from factories import make_service


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def split_installation(store: InMemoryStore) -> Service:
    """HVAC installation service registered in the store."""
    return store.add_service(
        make_service("Instalação Split 9000 BTUs", category="Instalação", price=350.0, duration=120)
    )
