from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

import pytest

from expiry_reconciler.core.exceptions import DocumentStoreError, KeySourceError, NotFoundError

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeKeySource:
    """In-memory Redis set store that records every call."""

    def __init__(self, sets: Optional[Dict[str, Set[str]]] = None) -> None:
        self.sets: Dict[str, Set[str]] = {name: set(members) for name, members in (sets or {}).items()}
        self.calls: List[tuple] = []
        self.fail_members = False
        self.fail_remove = False

    def members(self, set_name: str) -> List[str]:
        self.calls.append(("members", set_name))
        if self.fail_members:
            raise KeySourceError(f"error reading members of set {set_name}: connection refused")
        return sorted(self.sets.get(set_name, set()))

    def remove_members(self, set_name: str, keys: List[str]) -> int:
        self.calls.append(("remove_members", set_name, list(keys)))
        if self.fail_remove:
            raise KeySourceError(f"error removing members from set {set_name}: connection reset")
        current = self.sets.get(set_name, set())
        removed = len(current & set(keys))
        current.difference_update(keys)
        return removed


class FakeDocumentStore:
    """In-memory Firestore collections with injectable failures."""

    def __init__(self, collections: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None) -> None:
        self.collections = copy.deepcopy(collections or {})
        self.calls: List[tuple] = []
        self.fail_get: Set[str] = set()
        self.fail_update: Set[str] = set()
        self.on_get: Optional[Callable[[str], None]] = None

    def get_document(self, collection: str, key: str) -> Dict[str, Any]:
        self.calls.append(("get", collection, key))
        if self.on_get is not None:
            self.on_get(key)
        if key in self.fail_get:
            raise DocumentStoreError(f"error reading document {collection}/{key}: 503 unavailable", key=key)
        docs = self.collections.get(collection, {})
        if key not in docs:
            raise NotFoundError(f"document {collection}/{key} not found", key=key)
        return dict(docs[key])

    def merge_update(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        self.calls.append(("merge_update", collection, key, dict(fields)))
        if key in self.fail_update:
            raise DocumentStoreError(f"error updating document {collection}/{key}: 403 denied", key=key)
        self.collections.setdefault(collection, {}).setdefault(key, {}).update(fields)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def key_source() -> FakeKeySource:
    return FakeKeySource()


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW
