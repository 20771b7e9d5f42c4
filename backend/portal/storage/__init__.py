"""Key-value storage adapter."""
from portal.storage.kv import KeyValueStore, close_kv_store, get_kv_store

__all__ = ["KeyValueStore", "get_kv_store", "close_kv_store"]
