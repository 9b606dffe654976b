# goals/conftest.py
import pytest
from goals.board import SalesBoard
from goals.rollover import AutoRolloverGuard
from goals.testing import DictCache, InMemoryEventStore


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def auto_cache():
    return DictCache()


@pytest.fixture
def board(store, auto_cache):
    return SalesBoard(store=store, auto_guard=AutoRolloverGuard(cache=auto_cache))
