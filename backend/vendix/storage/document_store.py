"""
A small browser-style local document store.

One named store holds named collections. Each collection hands out
auto-incrementing integer keys and keeps secondary indexes (value -> ids) on
declared fields. The whole store is persisted as one JSON file, or kept only
in memory when no path is given.

Transactions are all-or-nothing: `DocumentStore.transaction()` serialises
writers on a re-entrant lock, snapshots the store on entry, restores the
snapshot if the block raises and writes the file once on success. Reads take
the same lock, so a reader never observes a half-applied transaction.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


class Collection:
    def __init__(self, name: str, indexes: Iterable[str] = ()):
        self.name = name
        self.rows: dict[int, dict] = {}
        self.next_id = 1
        self.indexes: dict[str, dict[Any, set[int]]] = {}
        for field in indexes:
            self.ensure_index(field)

    # -- indexes ----------------------------------------------------------

    def ensure_index(self, field: str) -> None:
        if field in self.indexes:
            return
        index: dict[Any, set[int]] = {}
        for key, doc in self.rows.items():
            index.setdefault(doc.get(field), set()).add(key)
        self.indexes[field] = index

    def _index_add(self, key: int, doc: Mapping[str, Any]) -> None:
        for field, index in self.indexes.items():
            index.setdefault(doc.get(field), set()).add(key)

    def _index_remove(self, key: int, doc: Mapping[str, Any]) -> None:
        for field, index in self.indexes.items():
            bucket = index.get(doc.get(field))
            if bucket is not None:
                bucket.discard(key)
                if not bucket:
                    del index[doc.get(field)]

    # -- writes -----------------------------------------------------------

    def add(self, doc: Mapping[str, Any]) -> int:
        key = self.next_id
        self.next_id += 1
        stored = dict(doc)
        stored["id"] = key
        self.rows[key] = stored
        self._index_add(key, stored)
        return key

    def put(self, doc: Mapping[str, Any]) -> int:
        """Insert or replace by the document's own id."""
        key = int(doc["id"])
        if key in self.rows:
            self._index_remove(key, self.rows[key])
        stored = dict(doc)
        self.rows[key] = stored
        self._index_add(key, stored)
        self.next_id = max(self.next_id, key + 1)
        return key

    def update(self, key: int, changes: Mapping[str, Any]) -> bool:
        current = self.rows.get(key)
        if current is None:
            return False
        self._index_remove(key, current)
        current.update({k: v for k, v in changes.items() if k != "id"})
        self._index_add(key, current)
        return True

    def delete(self, key: int) -> bool:
        current = self.rows.pop(key, None)
        if current is None:
            return False
        self._index_remove(key, current)
        return True

    def clear(self) -> int:
        count = len(self.rows)
        self.rows.clear()
        for index in self.indexes.values():
            index.clear()
        return count

    # -- reads ------------------------------------------------------------

    def get(self, key: int) -> dict | None:
        doc = self.rows.get(key)
        return dict(doc) if doc is not None else None

    def keys_where(self, field: str, value: Any) -> list[int]:
        if field in self.indexes:
            return sorted(self.indexes[field].get(value, ()))
        return sorted(k for k, d in self.rows.items() if d.get(field) == value)

    def where(self, field: str, value: Any) -> list[dict]:
        return [dict(self.rows[k]) for k in self.keys_where(field, value)]

    def count_where(self, field: str, value: Any) -> int:
        return len(self.keys_where(field, value))

    def all(self) -> list[dict]:
        return [dict(self.rows[k]) for k in sorted(self.rows)]

    def __len__(self) -> int:
        return len(self.rows)

    # -- persistence ------------------------------------------------------

    def to_state(self) -> dict:
        return {
            "next_id": self.next_id,
            "indexes": sorted(self.indexes),
            "rows": [self.rows[k] for k in sorted(self.rows)],
        }

    @classmethod
    def from_state(cls, name: str, state: Mapping[str, Any]) -> "Collection":
        coll = cls(name)
        for doc in state.get("rows", []):
            coll.rows[int(doc["id"])] = dict(doc)
        coll.next_id = max(int(state.get("next_id", 1)), max(coll.rows, default=0) + 1)
        for field in state.get("indexes", []):
            coll.ensure_index(field)
        return coll


class DocumentStore:
    def __init__(self, name: str, path: str | None = None):
        self.name = name
        self.path = None if path in (None, "", MEMORY) else path
        self.version = 0
        self.collections: dict[str, Collection] = {}
        self._lock = threading.RLock()
        self._depth = 0

    # -- lifecycle --------------------------------------------------------

    def load(self) -> None:
        """Read the store file if it exists (a missing file is an empty store)."""
        if self.path is None or not os.path.exists(self.path):
            return
        with self._lock:
            with open(self.path, "r", encoding="utf-8") as fh:
                state = json.load(fh)
            self._restore(state)
            logger.info("Document store %r loaded from %s (version %s)", self.name, self.path, self.version)

    def declare(self, version: int, schema: Mapping[str, Iterable[str]]) -> None:
        """
        Additive schema declaration: creates missing collections and missing
        secondary indexes. Existing collections, rows and indexes are kept.
        """
        with self.transaction():
            for name, indexes in schema.items():
                coll = self.collections.get(name)
                if coll is None:
                    self.collections[name] = Collection(name, indexes)
                    continue
                for field in indexes:
                    coll.ensure_index(field)
            self.version = max(self.version, version)

    def collection(self, name: str) -> Collection:
        try:
            return self.collections[name]
        except KeyError:
            raise KeyError(f"unknown collection: {name}") from None

    # -- transactions -----------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["DocumentStore"]:
        with self._lock:
            if self._depth:
                # nested scope joins the outer transaction
                yield self
                return
            snapshot = self._dump()
            self._depth += 1
            try:
                yield self
                self._flush()
            except BaseException:
                self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    @contextmanager
    def read(self) -> Iterator["DocumentStore"]:
        with self._lock:
            yield self

    # -- internals --------------------------------------------------------

    def _dump(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "collections": {
                name: copy.deepcopy(coll.to_state()) for name, coll in self.collections.items()
            },
        }

    def _restore(self, state: Mapping[str, Any]) -> None:
        self.version = int(state.get("version", 0))
        self.collections = {
            name: Collection.from_state(name, coll_state)
            for name, coll_state in state.get("collections", {}).items()
        }

    def _flush(self) -> None:
        if self.path is None:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".vendix-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._dump(), fh, separators=(",", ":"), ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
