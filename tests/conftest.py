"""Shared pytest fixtures.

Most behavioural tests run against both bundled stores: the in-memory
store exercises the bulk path transform, SQLite the per-descendant cascade.
"""

import pytest

from pathtreelib import InMemoryTreeStore, SQLiteTreeStore, Tree, TreeConfig
from pathtreelib.testing import TreeFixture


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        backend = InMemoryTreeStore()
    else:
        backend = SQLiteTreeStore(":memory:")
    yield backend
    backend.close()


@pytest.fixture
def memory_store():
    return InMemoryTreeStore()


@pytest.fixture
def tree(store):
    return Tree(store)


@pytest.fixture
def counted_tree(store):
    return Tree(store, TreeConfig.with_counter_cache())


@pytest.fixture
def fixture(tree):
    return TreeFixture(tree)
