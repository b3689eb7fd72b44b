"""
Document store abstraction with in-memory, SQLAlchemy and Firestore backends.

Every backend stores schemaless JSON documents addressed by a collection path
(which may be nested, e.g. ``users/<uid>/notifications``) and a document id.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Literal, Optional, Protocol, Sequence

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from socializer.errors import InvalidRequestError, NotFoundError

FilterOp = Literal["==", "!=", "array-contains", "in", ">=", "<="]
WriteKind = Literal["set", "update", "delete", "array_union", "array_remove"]


@dataclass(frozen=True)
class Filter:
    field: str
    op: FilterOp
    value: Any


@dataclass
class StoredDocument:
    id: str
    data: dict


@dataclass
class WriteOp:
    """
    One write inside a batch.

    For ``array_union``/``array_remove`` the data maps field names to the
    list of values to add or remove.
    """

    kind: WriteKind
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    merge: bool = False


class DocumentStore(Protocol):
    """Interface for document access."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        ...

    def add(self, collection: str, data: dict) -> str:
        ...

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def array_union(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        ...

    def array_remove(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        ...

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> list[StoredDocument]:
        ...

    def list_collection(self, collection: str) -> list[StoredDocument]:
        ...

    def write_batch(self, ops: Sequence[WriteOp]) -> None:
        ...


def new_document_id() -> str:
    return uuid.uuid4().hex


def _matches(data: dict, flt: Filter) -> bool:
    if flt.field not in data:
        return False
    value = data[flt.field]
    try:
        if flt.op == "==":
            return value == flt.value
        if flt.op == "!=":
            return value != flt.value
        if flt.op == "array-contains":
            return isinstance(value, list) and flt.value in value
        if flt.op == "in":
            return value in flt.value
        if flt.op == ">=":
            return value >= flt.value
        if flt.op == "<=":
            return value <= flt.value
    except TypeError:
        # Mixed types never match a range filter.
        return False
    raise InvalidRequestError(f"Unsupported filter operator: {flt.op}")


def _run_query(
    docs: Iterable[StoredDocument],
    filters: Iterable[Filter],
    *,
    order_by: Optional[str],
    descending: bool,
    limit: Optional[int],
    start_after: Optional[StoredDocument],
) -> list[StoredDocument]:
    """Filter, order, page and limit documents the way Firestore does."""
    filters = list(filters)
    results = [d for d in docs if all(_matches(d.data, f) for f in filters)]

    if order_by:
        results = [d for d in results if d.data.get(order_by) is not None]

        def sort_key(doc: StoredDocument):
            return (doc.data[order_by], doc.id)

    else:

        def sort_key(doc: StoredDocument):
            return (doc.id,)

    results.sort(key=sort_key, reverse=descending)

    if start_after is not None:
        if order_by and start_after.data.get(order_by) is None:
            raise InvalidRequestError("Cursor document cannot be ordered")
        cursor = sort_key(start_after)
        if descending:
            results = [d for d in results if sort_key(d) < cursor]
        else:
            results = [d for d in results if sort_key(d) > cursor]

    if limit is not None:
        results = results[:limit]
    return results


def _apply_write(current: Optional[dict], op: WriteOp) -> Optional[dict]:
    """Return the new document body after applying `op` (None means deleted)."""
    if op.kind == "delete":
        return None
    if op.kind == "set":
        if op.merge and current is not None:
            merged = dict(current)
            merged.update(op.data)
            return merged
        return dict(op.data)
    if current is None:
        raise NotFoundError(f"Document {op.collection}/{op.doc_id} not found")
    updated = dict(current)
    if op.kind == "update":
        updated.update(op.data)
        return updated
    for field_name, values in op.data.items():
        existing = list(updated.get(field_name) or [])
        if op.kind == "array_union":
            for value in values:
                if value not in existing:
                    existing.append(value)
        else:
            existing = [item for item in existing if item not in values]
        updated[field_name] = existing
    return updated


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()

    def _docs(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        data = self._docs(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        self.write_batch([WriteOp("set", collection, doc_id, data, merge=merge)])

    def add(self, collection: str, data: dict) -> str:
        doc_id = new_document_id()
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self.write_batch([WriteOp("update", collection, doc_id, fields)])

    def delete(self, collection: str, doc_id: str) -> None:
        self._docs(collection).pop(doc_id, None)

    def array_union(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.write_batch(
            [WriteOp("array_union", collection, doc_id, {field_name: list(values)})]
        )

    def array_remove(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.write_batch(
            [WriteOp("array_remove", collection, doc_id, {field_name: list(values)})]
        )

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> list[StoredDocument]:
        docs = [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
        ]
        cursor = None
        if start_after is not None:
            cursor_data = self.get(collection, start_after)
            if cursor_data is None:
                raise InvalidRequestError(f"Unknown cursor: {start_after}")
            cursor = StoredDocument(id=start_after, data=cursor_data)
        return _run_query(
            docs,
            filters,
            order_by=order_by,
            descending=descending,
            limit=limit,
            start_after=cursor,
        )

    def list_collection(self, collection: str) -> list[StoredDocument]:
        return self.query(collection)

    def write_batch(self, ops: Sequence[WriteOp]) -> None:
        # Stage every write first so a failing op leaves the store untouched.
        staged: Dict[tuple[str, str], Optional[dict]] = {}
        for op in ops:
            key = (op.collection, op.doc_id)
            current = staged[key] if key in staged else self._docs(op.collection).get(key[1])
            staged[key] = _apply_write(copy.deepcopy(current), copy.deepcopy(op))
        for (collection, doc_id), data in staged.items():
            if data is None:
                self._docs(collection).pop(doc_id, None)
            else:
                self._docs(collection)[doc_id] = data


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation storing one JSON row per document.
    Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            return copy.deepcopy(row.data) if row else None

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        self.write_batch([WriteOp("set", collection, doc_id, data, merge=merge)])

    def add(self, collection: str, data: dict) -> str:
        doc_id = new_document_id()
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self.write_batch([WriteOp("update", collection, doc_id, fields)])

    def delete(self, collection: str, doc_id: str) -> None:
        self.write_batch([WriteOp("delete", collection, doc_id)])

    def array_union(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.write_batch(
            [WriteOp("array_union", collection, doc_id, {field_name: list(values)})]
        )

    def array_remove(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.write_batch(
            [WriteOp("array_remove", collection, doc_id, {field_name: list(values)})]
        )

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> list[StoredDocument]:
        # JSON filtering differs between dialects, so rows are filtered in Python.
        with self.Session() as session:
            rows = session.execute(
                select(DocumentRow).where(DocumentRow.collection == collection)
            ).scalars()
            docs = [StoredDocument(id=row.doc_id, data=copy.deepcopy(row.data)) for row in rows]
        cursor = None
        if start_after is not None:
            cursor = next((d for d in docs if d.id == start_after), None)
            if cursor is None:
                raise InvalidRequestError(f"Unknown cursor: {start_after}")
        return _run_query(
            docs,
            filters,
            order_by=order_by,
            descending=descending,
            limit=limit,
            start_after=cursor,
        )

    def list_collection(self, collection: str) -> list[StoredDocument]:
        return self.query(collection)

    def write_batch(self, ops: Sequence[WriteOp]) -> None:
        now = time.time()
        with self.Session() as session:
            rows: Dict[tuple[str, str], Optional[DocumentRow]] = {}
            for op in ops:
                key = (op.collection, op.doc_id)
                if key not in rows:
                    # Row lock so concurrent read-modify-write batches serialize.
                    rows[key] = session.get(DocumentRow, key, with_for_update=True)
                row = rows[key]
                current = copy.deepcopy(row.data) if row is not None else None
                data = _apply_write(current, op)
                if data is None:
                    if row is not None:
                        session.delete(row)
                    rows[key] = None
                elif row is None:
                    row = DocumentRow(
                        collection=op.collection,
                        doc_id=op.doc_id,
                        data=data,
                        updated_at=now,
                    )
                    session.add(row)
                    rows[key] = row
                else:
                    row.data = data
                    row.updated_at = now
            session.commit()


def _from_firestore(value: Any) -> Any:
    # Server timestamps come back as datetimes; documents carry epoch seconds.
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, dict):
        return {key: _from_firestore(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_firestore(item) for item in value]
    return value


class FirestoreDocumentStore:
    """Firestore implementation on top of the firebase-admin client."""

    def __init__(self, client=None):
        self._client = client or firestore.client()

    def _ref(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self._ref(collection, doc_id).get()
        return _from_firestore(snapshot.to_dict()) if snapshot.exists else None

    def set(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        self._ref(collection, doc_id).set(data, merge=merge)

    def add(self, collection: str, data: dict) -> str:
        _, ref = self._client.collection(collection).add(data)
        return ref.id

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        try:
            self._ref(collection, doc_id).update(fields)
        except google_exceptions.NotFound as exc:
            raise NotFoundError(f"Document {collection}/{doc_id} not found") from exc

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def array_union(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.update(collection, doc_id, {field_name: firestore.ArrayUnion(list(values))})

    def array_remove(
        self, collection: str, doc_id: str, field_name: str, values: Sequence[Any]
    ) -> None:
        self.update(collection, doc_id, {field_name: firestore.ArrayRemove(list(values))})

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> list[StoredDocument]:
        collection_ref = self._client.collection(collection)
        query = collection_ref
        for flt in filters:
            query = query.where(filter=FieldFilter(flt.field, flt.op, flt.value))
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        if start_after is not None:
            cursor = collection_ref.document(start_after).get()
            if not cursor.exists:
                raise InvalidRequestError(f"Unknown cursor: {start_after}")
            query = query.start_after(cursor)
        if limit is not None:
            query = query.limit(limit)
        return [
            StoredDocument(id=snapshot.id, data=_from_firestore(snapshot.to_dict() or {}))
            for snapshot in query.stream()
        ]

    def list_collection(self, collection: str) -> list[StoredDocument]:
        return self.query(collection)

    def write_batch(self, ops: Sequence[WriteOp]) -> None:
        batch = self._client.batch()
        for op in ops:
            ref = self._ref(op.collection, op.doc_id)
            if op.kind == "set":
                batch.set(ref, op.data, merge=op.merge)
            elif op.kind == "update":
                batch.update(ref, op.data)
            elif op.kind == "delete":
                batch.delete(ref)
            elif op.kind == "array_union":
                batch.update(
                    ref, {k: firestore.ArrayUnion(list(v)) for k, v in op.data.items()}
                )
            else:
                batch.update(
                    ref, {k: firestore.ArrayRemove(list(v)) for k, v in op.data.items()}
                )
        try:
            batch.commit()
        except google_exceptions.NotFound as exc:
            raise NotFoundError(str(exc)) from exc


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(Float, nullable=False)
