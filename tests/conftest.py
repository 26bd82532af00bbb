"""
Shared pytest fixtures and configuration for NormCache tests.
"""

import pytest

from normcache import InMemoryCache, Store
from tests.utils.documents import PERSON_QUERY, person


@pytest.fixture
def cache():
    """Provide a fresh InMemoryCache with the default configuration."""
    return InMemoryCache()


@pytest.fixture
def seeded_cache(cache):
    """A cache whose confirmed data holds Person:1 named Ann."""
    cache.write_query(PERSON_QUERY, person("Ann"))
    return cache


@pytest.fixture
def store():
    """Provide an empty Store."""
    return Store()
