"""Storage module: the local cell table and key-value store readers."""

from .kvstores import InMemoryKeyValueStore, KeyValueStoreOpener, close_all
from .table import LocalTable, path_from_uri

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStoreOpener",
    "LocalTable",
    "close_all",
    "path_from_uri",
]
