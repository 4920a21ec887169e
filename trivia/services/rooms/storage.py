"""Shared document store.

`StorageClient` is the capability the room services are written against:
keyed documents, single-document atomic field updates and a subscription that
pushes the full document to every subscriber after each committed change.
There are no multi-document transactions.

`SqlDocumentStore` implements it on a single SQLAlchemy table. Every write is
an ``UPDATE ... WHERE path = :path AND version = :version``; a write computed
from a stale read affects no rows and is either retried on the fresh document
(plain field updates) or reported as a `WriteConflict` (compare-and-set
updates, where the caller derived the new values from a snapshot it read).
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import DocumentExists, DocumentNotFound, NetworkError, StorageWriteError, WriteConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    path: str
    data: Dict[str, Any]
    version: int


class ArrayUnion:
    """Append each item not already present in the array.

    With `key`, items are maps and presence is decided by that field alone, so
    a stale copy of an existing entry is not appended a second time.
    """

    def __init__(self, *items, key=None):
        self.items = list(items)
        self.key = key

    def apply(self, current):
        merged = list(current or [])
        for item in self.items:
            if self.key is None:
                present = item in merged
            else:
                present = any(isinstance(m, dict) and m.get(self.key) == item[self.key] for m in merged)
            if not present:
                merged.append(item)
        return merged


class _DeleteField:
    def __repr__(self):
        return 'DELETE_FIELD'


DELETE_FIELD = _DeleteField()


def apply_field_updates(document: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `document` with `fields` applied.

    Keys are dotted field paths (``answers.<uid>``); intermediate maps are
    created as needed. Values are either plain values or one of the field
    operations above.
    """
    result = copy.deepcopy(document)
    for field_path, value in fields.items():
        parts = field_path.split('.')
        parent = result
        for part in parts[:-1]:
            child = parent.get(part)
            if child is None:
                if value is DELETE_FIELD:
                    break
                child = parent[part] = {}
            elif not isinstance(child, dict):
                raise ValueError(f"Field '{part}' in '{field_path}' is not a map")
            parent = child
        else:
            leaf = parts[-1]
            if value is DELETE_FIELD:
                parent.pop(leaf, None)
            elif hasattr(value, 'apply'):
                parent[leaf] = value.apply(parent.get(leaf))
            else:
                parent[leaf] = copy.deepcopy(value)
    return result


class Subscription:
    def __init__(self, registry, path, callback):
        self._registry = registry
        self.path = path
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._registry.remove(self)


class SubscriptionRegistry:
    """In-process fan-out of snapshots to the subscribers of each path."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_path: Dict[str, List[Subscription]] = {}

    def add(self, path, callback) -> Subscription:
        sub = Subscription(self, path, callback)
        with self._lock:
            self._by_path.setdefault(path, []).append(sub)
        return sub

    def remove(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._by_path.get(sub.path, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._by_path.pop(sub.path, None)

    def count(self, path) -> int:
        with self._lock:
            return len(self._by_path.get(path, []))

    def publish(self, path, snapshot: Optional[Snapshot]) -> None:
        with self._lock:
            subs = list(self._by_path.get(path, []))
        for sub in subs:
            self.deliver(sub, snapshot)

    @staticmethod
    def deliver(sub: Subscription, snapshot: Optional[Snapshot]) -> None:
        if not sub.active:
            return
        payload = None
        if snapshot is not None:
            payload = Snapshot(snapshot.path, copy.deepcopy(snapshot.data), snapshot.version)
        try:
            sub.callback(payload)
        except Exception:
            logger.exception("[subscriber-error] path=%s", sub.path)


class StorageClient:
    """Document store capability injected into the room services."""

    def create(self, path: str, document: Dict[str, Any]) -> Snapshot:
        raise NotImplementedError

    def get(self, path: str) -> Optional[Snapshot]:
        raise NotImplementedError

    def update(self, path: str, fields: Dict[str, Any], expected_version: Optional[int] = None) -> Snapshot:
        raise NotImplementedError

    def delete(self, path: str, expected_version: Optional[int] = None) -> None:
        raise NotImplementedError

    def subscribe(self, path: str, callback: Callable[[Optional[Snapshot]], None]) -> Subscription:
        raise NotImplementedError

    def list_paths(self, prefix: str, updated_before: Optional[float] = None) -> List[str]:
        raise NotImplementedError


class SqlDocumentStore(StorageClient):
    def __init__(self, db, max_field_retries=10):
        self.db = db
        self.max_field_retries = max_field_retries
        self.subscriptions = SubscriptionRegistry()

    @property
    def _model(self):
        from trivia.models import RoomDocument
        return RoomDocument

    def create(self, path, document):
        now = time.time()
        row = self._model(path=path, data=json.dumps(document), version=1, created_at=now, updated_at=now)
        try:
            self.db.session.add(row)
            self.db.session.commit()
        except IntegrityError as exc:
            self.db.session.rollback()
            raise DocumentExists() from exc
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            logger.error("[store-create-failed] path=%s error=%s", path, exc)
            raise StorageWriteError() from exc
        snapshot = Snapshot(path, copy.deepcopy(document), 1)
        self.subscriptions.publish(path, snapshot)
        return snapshot

    def get(self, path):
        try:
            row = self.db.session.query(self._model.data, self._model.version).filter_by(path=path).first()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            logger.error("[store-read-failed] path=%s error=%s", path, exc)
            raise NetworkError() from exc
        if row is None:
            return None
        return Snapshot(path, json.loads(row.data), row.version)

    def update(self, path, fields, expected_version=None):
        attempts = 0
        while True:
            current = self.get(path)
            if current is None:
                raise DocumentNotFound()
            if expected_version is not None and current.version != expected_version:
                raise WriteConflict()
            data = apply_field_updates(current.data, fields)
            if self._swap(path, current.version, {'data': json.dumps(data)}):
                snapshot = Snapshot(path, data, current.version + 1)
                self.subscriptions.publish(path, snapshot)
                return snapshot
            if expected_version is not None:
                raise WriteConflict()
            attempts += 1
            if attempts > self.max_field_retries:
                logger.warning("[store-update-contended] path=%s attempts=%s", path, attempts)
                raise WriteConflict()

    def delete(self, path, expected_version=None):
        query = self._model.query.filter_by(path=path)
        if expected_version is not None:
            query = query.filter_by(version=expected_version)
        try:
            deleted = query.delete(synchronize_session=False)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StorageWriteError() from exc
        if not deleted:
            if expected_version is not None and self.get(path) is not None:
                raise WriteConflict()
            return
        self.subscriptions.publish(path, None)

    def subscribe(self, path, callback):
        sub = self.subscriptions.add(path, callback)
        self.subscriptions.deliver(sub, self.get(path))
        return sub

    def list_paths(self, prefix, updated_before=None):
        try:
            query = self.db.session.query(self._model.path).filter(self._model.path.startswith(prefix))
            if updated_before is not None:
                query = query.filter(self._model.updated_at < updated_before)
            rows = query.all()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            logger.error("[store-read-failed] prefix=%s error=%s", prefix, exc)
            raise NetworkError() from exc
        return [row.path for row in rows]

    def _swap(self, path, version, values):
        values = dict(values, version=version + 1, updated_at=time.time())
        try:
            changed = self._model.query.filter_by(path=path, version=version).update(
                values, synchronize_session=False
            )
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            logger.error("[store-update-failed] path=%s error=%s", path, exc)
            raise StorageWriteError() from exc
        return changed == 1
