"""Document store port and an in-process implementation.

Collections hold flat key/value documents addressed by string identifiers.
Listeners registered with :meth:`DocumentStore.subscribe` receive the full
matching snapshot once on subscription and again after every write to the
collection, so handling the same snapshot twice is harmless.
"""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    """A snapshot of one stored document."""

    id: str
    data: Dict[str, Any]


SnapshotCallback = Callable[[List[Document]], None]


class Subscription:
    """Handle returned by ``subscribe``; releases its listener exactly once."""

    __slots__ = ("_release", "_active")

    def __init__(self, release: Callable[[], None]):
        self._release: Optional[Callable[[], None]] = release
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        release, self._release = self._release, None
        self._active = False
        if release is not None:
            release()

    def __call__(self) -> None:
        self.unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.unsubscribe()


class DocumentStore(Protocol):
    """Collection-style CRUD with equality queries and live snapshots."""

    def add(self, collection: str, data: Mapping[str, Any]) -> str:
        ...

    def set(
        self, collection: str, doc_id: str, data: Mapping[str, Any], merge: bool = False
    ) -> None:
        ...

    def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def query(self, collection: str, **equals: Any) -> List[Document]:
        ...

    def subscribe(
        self, collection: str, callback: SnapshotCallback, **equals: Any
    ) -> Subscription:
        ...


@dataclass
class _Listener:
    collection: str
    callback: SnapshotCallback
    equals: Dict[str, Any] = field(default_factory=dict)


class InMemoryDocumentStore:
    """Dictionary backed :class:`DocumentStore` used offline and in tests.

    Writes are last-write-wins; documents are deep-copied on the way in and
    out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._listeners: Dict[int, _Listener] = {}
        self._next_listener = 0
        self._lock = threading.RLock()

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    @staticmethod
    def _matches(data: Mapping[str, Any], equals: Mapping[str, Any]) -> bool:
        return all(data.get(key) == value for key, value in equals.items())

    def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(dict(data))
        self._notify(collection)
        return doc_id

    def set(
        self, collection: str, doc_id: str, data: Mapping[str, Any], merge: bool = False
    ) -> None:
        with self._lock:
            documents = self._collection(collection)
            if merge and doc_id in documents:
                documents[doc_id].update(copy.deepcopy(dict(data)))
            else:
                documents[doc_id] = copy.deepcopy(dict(data))
        self._notify(collection)

    def update(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            documents = self._collection(collection)
            if doc_id not in documents:
                raise KeyError(f"No document {collection}/{doc_id}")
            documents[doc_id].update(copy.deepcopy(dict(data)))
        self._notify(collection)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collection(collection).pop(doc_id, None)
        self._notify(collection)

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._collection(collection).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def query(self, collection: str, **equals: Any) -> List[Document]:
        with self._lock:
            return [
                Document(doc_id, copy.deepcopy(data))
                for doc_id, data in self._collection(collection).items()
                if self._matches(data, equals)
            ]

    def subscribe(
        self, collection: str, callback: SnapshotCallback, **equals: Any
    ) -> Subscription:
        with self._lock:
            key = self._next_listener
            self._next_listener += 1
            self._listeners[key] = _Listener(collection, callback, dict(equals))

        def release() -> None:
            with self._lock:
                self._listeners.pop(key, None)

        subscription = Subscription(release)
        try:
            callback(self.query(collection, **equals))
        except BaseException:
            subscription.unsubscribe()
            raise
        return subscription

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self, collection: str) -> None:
        with self._lock:
            listeners = [
                listener
                for listener in self._listeners.values()
                if listener.collection == collection
            ]
        for listener in listeners:
            snapshot = self.query(collection, **listener.equals)
            try:
                listener.callback(snapshot)
            except Exception:
                logger.exception("Snapshot listener for %r failed", collection)


__all__ = ["Document", "DocumentStore", "InMemoryDocumentStore", "Subscription"]
