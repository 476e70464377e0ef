"""
Shared pytest fixtures for taggable tests.

Uses mongomock so no MongoDB server is needed.
"""

import mongomock
import pytest

from taggable.config.config import TaggableConfig
from taggable.tags.models import TaggedCollection


@pytest.fixture
def mongo_db():
    """A fresh in-memory database per test."""
    client = mongomock.MongoClient()
    yield client["taggable_test"]
    client.close()


@pytest.fixture
def collection(mongo_db):
    return mongo_db["documents"]


@pytest.fixture
def make_tagged(collection):
    """Factory building a TaggedCollection on the test collection."""

    def _make(target=None, state=None, **config):
        return TaggedCollection(target if target is not None else collection, TaggableConfig(**config), state=state)

    return _make


@pytest.fixture
def tagged(make_tagged):
    """A TaggedCollection with the default configuration."""
    return make_tagged()


@pytest.fixture
def food_documents(tagged):
    """The three-document tag cloud example."""
    return [
        tagged.create(tags="food,ant,bee"),
        tagged.create(tags="juice,food,bee,zip"),
        tagged.create(tags="honey,strip,food"),
    ]
