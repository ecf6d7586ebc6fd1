"""Document store over a single SQLAlchemy table.

Documents are schemaless JSON maps addressed by ``(collection, doc_id)``.
Every committed write produces a :class:`ChangeEvent` carrying the document
state before and after the write; subscribers receive those events once the
transaction has committed, with at-least-once delivery.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fundingsync.models.document import Document


logger = logging.getLogger("fundingsync.store")


class DocumentStoreError(Exception):
    """Raised when the underlying database rejects a read or write."""


class DocumentNotFound(DocumentStoreError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document {collection}/{doc_id} does not exist.")
        self.collection = collection
        self.doc_id = doc_id


def server_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DocumentSnapshot:
    collection: str
    id: str
    data: dict[str, Any] | None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, key: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(key, default)


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    document_id: str
    before: dict[str, Any] | None
    after: dict[str, Any] | None

    @property
    def is_create(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_delete(self) -> bool:
        return self.before is not None and self.after is None


ChangeHandler = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class _WriteOp:
    kind: Literal["set", "update", "delete"]
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """Collects writes and applies them in one transaction on commit."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._ops: list[_WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> WriteBatch:
        self._ops.append(_WriteOp("set", collection, doc_id, copy.deepcopy(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> WriteBatch:
        self._ops.append(_WriteOp("update", collection, doc_id, copy.deepcopy(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self._ops.append(_WriteOp("delete", collection, doc_id))
        return self

    def commit(self) -> list[ChangeEvent]:
        if not self._ops:
            return []
        return self._store._commit(self._ops)


class DocumentStore:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        max_delivery_attempts: int = 3,
    ) -> None:
        self._session_factory = session_factory
        self._max_delivery_attempts = max(1, max_delivery_attempts)
        self._subscribers: dict[str, list[ChangeHandler]] = defaultdict(list)

    # ── reads ──

    def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        try:
            with self._session_factory() as db:
                row = self._load(db, collection, doc_id)
                data = copy.deepcopy(row.data) if row is not None else None
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Failed to read {collection}/{doc_id}.") from exc
        return DocumentSnapshot(collection=collection, id=doc_id, data=data)

    def query(self, collection: str, field_name: str, value: Any) -> list[DocumentSnapshot]:
        """Equality query on a top-level field. Returns every match, unpaginated."""
        stmt = (
            select(Document)
            .where(
                Document.collection == collection,
                Document.data[field_name].as_string() == str(value),
            )
            .order_by(Document.doc_id)
        )
        return self._fetch(stmt, collection)

    def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        stmt = select(Document).where(Document.collection == collection).order_by(Document.doc_id)
        return self._fetch(stmt, collection)

    # ── writes ──

    def set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        *,
        merge: bool = False,
    ) -> ChangeEvent:
        return self.batch().set(collection, doc_id, data, merge=merge).commit()[0]

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> ChangeEvent:
        return self.batch().update(collection, doc_id, fields).commit()[0]

    def delete(self, collection: str, doc_id: str) -> ChangeEvent | None:
        events = self.batch().delete(collection, doc_id).commit()
        return events[0] if events else None

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    # ── change notifications ──

    def subscribe(self, collection: str, handler: ChangeHandler) -> Callable[[], None]:
        self._subscribers[collection].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers[collection]:
                self._subscribers[collection].remove(handler)

        return unsubscribe

    # ── internals ──

    @staticmethod
    def _load(db: Session, collection: str, doc_id: str) -> Document | None:
        return db.scalar(
            select(Document).where(
                Document.collection == collection,
                Document.doc_id == doc_id,
            )
        )

    def _fetch(self, stmt, collection: str) -> list[DocumentSnapshot]:
        try:
            with self._session_factory() as db:
                rows = list(db.scalars(stmt).all())
                return [
                    DocumentSnapshot(collection=collection, id=row.doc_id, data=copy.deepcopy(row.data))
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise DocumentStoreError(f"Failed to read collection {collection}.") from exc

    def _apply(self, db: Session, op: _WriteOp) -> ChangeEvent | None:
        row = self._load(db, op.collection, op.doc_id)
        before = copy.deepcopy(row.data) if row is not None else None

        if op.kind == "delete":
            if row is None:
                return None
            db.delete(row)
            after = None
        elif op.kind == "update":
            if row is None:
                raise DocumentNotFound(op.collection, op.doc_id)
            after = {**row.data, **op.data}
            row.data = after
        elif op.merge and row is not None:
            after = {**row.data, **op.data}
            row.data = after
        else:
            after = dict(op.data)
            if row is None:
                db.add(Document(collection=op.collection, doc_id=op.doc_id, data=after))
            else:
                row.data = after

        db.flush()
        return ChangeEvent(
            collection=op.collection,
            document_id=op.doc_id,
            before=before,
            after=copy.deepcopy(after),
        )

    def _commit(self, ops: list[_WriteOp]) -> list[ChangeEvent]:
        events: list[ChangeEvent] = []
        with self._session_factory() as db:
            try:
                for op in ops:
                    event = self._apply(db, op)
                    if event is not None:
                        events.append(event)
                db.commit()
            except DocumentNotFound:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                raise DocumentStoreError(f"Batch of {len(ops)} write(s) was rolled back.") from exc

        self._publish(events)
        return events

    def _publish(self, events: list[ChangeEvent]) -> None:
        for event in events:
            for handler in list(self._subscribers.get(event.collection, ())):
                self._deliver(handler, event)

    def _deliver(self, handler: ChangeHandler, event: ChangeEvent) -> None:
        for attempt in range(1, self._max_delivery_attempts + 1):
            try:
                handler(event)
                return
            except Exception:
                if attempt < self._max_delivery_attempts:
                    logger.warning(
                        "Change handler failed for %s/%s (attempt %d/%d); redelivering.",
                        event.collection,
                        event.document_id,
                        attempt,
                        self._max_delivery_attempts,
                        exc_info=True,
                    )
                else:
                    logger.exception(
                        "Change handler failed for %s/%s after %d attempt(s); dropping event.",
                        event.collection,
                        event.document_id,
                        attempt,
                    )
