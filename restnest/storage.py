"""
Storage contract for restnest.

An API only needs four operations from its store. Implementations are
expected to be safe for concurrent use; restnest adds no locking of its own
around storage calls.
"""

import threading
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Callable, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

FilterFunc = Callable[[T], bool]


class NotFoundError(Exception):
    """Raised by a storage backend when no resource exists for an ID."""

    pass


class Storage(ABC, Generic[T]):
    """
    Abstract base class for resource storage.

    ``get`` and ``delete`` must raise ``NotFoundError`` for unknown IDs; the
    handlers translate it into a 404. Any other exception becomes a 500.
    """

    @abstractmethod
    def get(self, id: str) -> T:
        """
        Get a resource by ID.

        Raises:
            NotFoundError: If no resource has this ID
        """
        pass

    @abstractmethod
    def get_all(self, filter: Optional[FilterFunc] = None) -> List[T]:
        """
        Get all resources, optionally keeping only those the filter accepts.

        Args:
            filter: Predicate applied to each stored resource
        """
        pass

    @abstractmethod
    def set(self, resource: T) -> None:
        """Create or overwrite the resource stored under its own ID."""
        pass

    @abstractmethod
    def delete(self, id: str) -> None:
        """
        Delete a resource.

        Raises:
            NotFoundError: If no resource has this ID
        """
        pass


class InMemoryStorage(Storage[T]):
    """
    In-memory storage using a Python dict.

    Stores all data in memory. Data is lost when the process ends.
    Useful for testing and examples.

    Values are deep-copied on the way in and out, so a handler mutating the
    resource it fetched does not change what is stored until it calls ``set``.

    Example:
        >>> storage = InMemoryStorage()
        >>> storage.set(widget)
        >>> storage.get(widget.get_id())
    """

    def __init__(self):
        self._storage: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, id: str) -> T:
        with self._lock:
            try:
                return deepcopy(self._storage[id])
            except KeyError:
                raise NotFoundError(f"Resource not found with id: {id}")

    def get_all(self, filter: Optional[FilterFunc] = None) -> List[T]:
        with self._lock:
            resources = [deepcopy(resource) for resource in self._storage.values()]

        if filter is None:
            return resources
        return [resource for resource in resources if filter(resource)]

    def set(self, resource: T) -> None:
        resource_id = resource.get_id()  # type: ignore[attr-defined]
        with self._lock:
            self._storage[resource_id] = deepcopy(resource)

    def delete(self, id: str) -> None:
        with self._lock:
            if id not in self._storage:
                raise NotFoundError(f"Resource not found with id: {id}")
            del self._storage[id]

    def clear(self) -> None:
        """Remove every stored resource."""
        with self._lock:
            self._storage.clear()

    def __len__(self):
        with self._lock:
            return len(self._storage)
