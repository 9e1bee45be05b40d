"""Datastore implementations for event records."""

from durabus.datastores.base import Datastore
from durabus.datastores.inmemory import InMemoryDatastore
from durabus.datastores.redis import RedisDatastore

__all__ = ["Datastore", "InMemoryDatastore", "RedisDatastore"]
