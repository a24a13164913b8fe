"""
spectap Resource Store

In-memory resource state for stateful mocking: collection path -> resource
id -> resource. Nothing is persisted; the store lives as long as the
server that owns it.
"""

import copy
from typing import Any, Dict, List, Optional


class ResourceStore:
    """
    Nested key-value store shared by the route handlers of one server.

    Example:
        store = ResourceStore()
        store.set('/users', '1', {'id': '1', 'name': 'Ada'})
        store.list('/users')   # [{'id': '1', 'name': 'Ada'}]
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    def collection(self, collection_path: str) -> Dict[str, Any]:
        """The id -> resource mapping for a collection, created on first use."""
        return self._data.setdefault(collection_path, {})

    def list(self, collection_path: str) -> List[Any]:
        """All resources in a collection, in insertion order."""
        return list(self.collection(collection_path).values())

    def get(self, collection_path: str, resource_id: str) -> Optional[Any]:
        return self.collection(collection_path).get(resource_id)

    def set(self, collection_path: str, resource_id: str, value: Any) -> None:
        self.collection(collection_path)[resource_id] = value

    def delete(self, collection_path: str, resource_id: str) -> bool:
        """Remove a resource. Returns False if it wasn't there."""
        collection = self.collection(collection_path)
        if resource_id not in collection:
            return False
        del collection[resource_id]
        return True

    def reset(self) -> None:
        """Drop every collection."""
        self._data.clear()

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Deep copy of the whole store, keyed by collection path then id."""
        return copy.deepcopy(self._data)
