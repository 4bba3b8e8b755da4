"""In-memory asynchronous document store.

Reproduces the four primitives the storefront relies on from its hosted
document database:

- get/query: equality and inequality filters on dotted field paths,
  optional ordering and limit
- listen: full current result set pushed to the callback on every change
- transaction: reads then writes with an all-or-nothing commit; the
  transaction function is re-run when a document it read changed before commit
- batch: blind writes and deletes committed together

Collections are addressed by slash-separated paths (``user/u1/cart``).
Documents are plain dicts and are deep-copied on the way in and out.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, replace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from .errors import RemoteOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MISSING = object()


class DocumentStoreError(RemoteOperationError):
    """Failure reported by the document store."""


class TransactionConflict(DocumentStoreError):
    """A document read inside a transaction changed before commit."""


def get_field(data: Optional[dict], field_path: str) -> Any:
    """Resolve ``a.b.c`` inside nested dicts, MISSING when absent."""
    value: Any = data if data is not None else {}
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


@dataclass(frozen=True)
class DocumentSnapshot:
    id: str
    collection: str
    data: Optional[dict]

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, field_path: str, default: Any = None) -> Any:
        value = get_field(self.data, field_path)
        return default if value is MISSING else value


@dataclass(frozen=True)
class Filter:
    field_path: str
    op: str
    value: Any

    def matches(self, data: Optional[dict]) -> bool:
        actual = get_field(data, self.field_path)
        if self.op == "==":
            return (None if actual is MISSING else actual) == self.value
        # "!=" never matches documents that lack the field
        return actual is not MISSING and actual != self.value


@dataclass(frozen=True)
class Query:
    collection: str
    filters: Tuple[Filter, ...] = ()
    order: Optional[Tuple[str, bool]] = None
    limit_to: Optional[int] = None

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        if op not in ("==", "!="):
            raise ValueError(f"Unsupported operator: {op}")
        return replace(self, filters=self.filters + (Filter(field_path, op, value),))

    def order_by(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order=(field_path, descending))

    def limit(self, count: int) -> "Query":
        return replace(self, limit_to=count)

    def apply(self, docs: List[DocumentSnapshot]) -> List[DocumentSnapshot]:
        result = [d for d in docs if all(f.matches(d.data) for f in self.filters)]
        if self.order is not None:
            field_path, descending = self.order
            # documents without the ordering field are left out
            result = [
                d for d in result if get_field(d.data, field_path) not in (MISSING, None)
            ]
            result.sort(key=lambda d: get_field(d.data, field_path), reverse=descending)
        if self.limit_to is not None:
            result = result[: self.limit_to]
        return result


@dataclass(frozen=True)
class _Write:
    collection: str
    doc_id: str
    data: Optional[dict]  # None deletes the document


@dataclass
class _Document:
    data: dict
    version: int


SnapshotCallback = Callable[[Optional[Any], Optional[DocumentStoreError]], None]


@dataclass(eq=False)
class ListenerRegistration:
    store: "DocumentStore"
    callback: SnapshotCallback
    query: Optional[Query] = None
    document: Optional[Tuple[str, str]] = None
    active: bool = True

    @property
    def collection(self) -> str:
        return self.query.collection if self.query else self.document[0]

    def remove(self) -> None:
        self.active = False
        self.store._remove_listener(self)


class Transaction:
    """Buffered writes plus the versions of everything read."""

    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self.reads: Dict[Tuple[str, str], int] = {}
        self.collection_reads: Dict[str, int] = {}
        self.writes: List[_Write] = []

    def _check_read_allowed(self) -> None:
        if self.writes:
            raise DocumentStoreError(
                "Transactions require all reads to be executed before all writes."
            )

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        self._check_read_allowed()
        await self._store._network()
        snapshot = self._store._snapshot(collection, doc_id)
        self.reads[(collection, doc_id)] = self._store._document_version(
            collection, doc_id
        )
        return snapshot

    async def query(self, query: Union[Query, str]) -> List[DocumentSnapshot]:
        self._check_read_allowed()
        query = Query(query) if isinstance(query, str) else query
        await self._store._network()
        result = self._store._run_query(query)
        self.collection_reads[query.collection] = self._store._collection_version(
            query.collection
        )
        return result

    def set(self, collection: str, doc_id: str, data: dict) -> "Transaction":
        self.writes.append(_Write(collection, doc_id, copy.deepcopy(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "Transaction":
        self.writes.append(_Write(collection, doc_id, None))
        return self


class WriteBatch:
    def __init__(self, store: "DocumentStore") -> None:
        self._store = store
        self._writes: List[_Write] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, data: dict) -> "WriteBatch":
        self._writes.append(_Write(collection, doc_id, copy.deepcopy(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._writes.append(_Write(collection, doc_id, None))
        return self

    async def commit(self) -> None:
        if self._committed:
            raise DocumentStoreError(
                "A write batch can no longer be used after commit() has been called."
            )
        await self._store._network()
        self._store._commit(self._writes)
        self._committed = True


class DocumentStore:
    def __init__(self, max_attempts: int = 5) -> None:
        self.max_attempts = max_attempts
        self._collections: Dict[str, Dict[str, _Document]] = {}
        self._collection_versions: Dict[str, int] = {}
        self._listeners: List[ListenerRegistration] = []
        self._version = 0

    # ============ Internals ============

    async def _network(self) -> None:
        # every remote call is a suspension point
        await asyncio.sleep(0)

    def _document_version(self, collection: str, doc_id: str) -> int:
        doc = self._collections.get(collection, {}).get(doc_id)
        return doc.version if doc else 0

    def _collection_version(self, collection: str) -> int:
        return self._collection_versions.get(collection, 0)

    def _snapshot(self, collection: str, doc_id: str) -> DocumentSnapshot:
        doc = self._collections.get(collection, {}).get(doc_id)
        data = copy.deepcopy(doc.data) if doc else None
        return DocumentSnapshot(id=doc_id, collection=collection, data=data)

    def _read_collection(self, collection: str) -> List[DocumentSnapshot]:
        return [
            DocumentSnapshot(id=doc_id, collection=collection, data=copy.deepcopy(doc.data))
            for doc_id, doc in self._collections.get(collection, {}).items()
        ]

    def _run_query(self, query: Query) -> List[DocumentSnapshot]:
        return query.apply(self._read_collection(query.collection))

    def _commit(
        self,
        writes: List[_Write],
        reads: Optional[Dict[Tuple[str, str], int]] = None,
        collection_reads: Optional[Dict[str, int]] = None,
    ) -> None:
        """Validate read versions, then apply every write or none."""
        for (collection, doc_id), version in (reads or {}).items():
            if self._document_version(collection, doc_id) != version:
                raise TransactionConflict(f"Document {collection}/{doc_id} changed")
        for collection, version in (collection_reads or {}).items():
            if self._collection_version(collection) != version:
                raise TransactionConflict(f"Collection {collection} changed")

        self._version += 1
        touched: Set[Tuple[str, str]] = set()
        for write in writes:
            docs = self._collections.setdefault(write.collection, {})
            if write.data is None:
                docs.pop(write.doc_id, None)
            else:
                docs[write.doc_id] = _Document(copy.deepcopy(write.data), self._version)
            self._collection_versions[write.collection] = self._version
            touched.add((write.collection, write.doc_id))
        self._notify(touched)

    def _notify(self, touched: Set[Tuple[str, str]]) -> None:
        collections = {collection for collection, _ in touched}
        for listener in tuple(self._listeners):
            if not listener.active:
                continue
            if listener.query is not None and listener.collection in collections:
                self._deliver(listener)
            elif listener.document is not None and listener.document in touched:
                self._deliver(listener)

    def _deliver(self, listener: ListenerRegistration) -> None:
        try:
            if listener.query is not None:
                value: Any = self._run_query(listener.query)
            else:
                value = self._snapshot(*listener.document)
        except DocumentStoreError as e:
            listener.callback(None, e)
            return
        try:
            listener.callback(value, None)
        except Exception:
            logger.exception("Snapshot listener on %s failed", listener.collection)

    def _remove_listener(self, listener: ListenerRegistration) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ============ Public API ============

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]

    async def get(self, collection: str, doc_id: str) -> DocumentSnapshot:
        await self._network()
        return self._snapshot(collection, doc_id)

    async def query(self, query: Union[Query, str]) -> List[DocumentSnapshot]:
        query = Query(query) if isinstance(query, str) else query
        await self._network()
        return self._run_query(query)

    async def set(self, collection: str, doc_id: str, data: dict) -> None:
        await self._network()
        self._commit([_Write(collection, doc_id, copy.deepcopy(data))])

    async def add(self, collection: str, data: dict) -> str:
        doc_id = self.new_id()
        await self.set(collection, doc_id, data)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._network()
        self._commit([_Write(collection, doc_id, None)])

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    async def run_transaction(
        self, fn: Callable[[Transaction], Awaitable[T]]
    ) -> T:
        """
        Run ``fn`` and commit its writes atomically. When something it read
        changed in the meantime the function runs again with fresh reads.
        """
        for attempt in range(1, self.max_attempts + 1):
            transaction = Transaction(self)
            result = await fn(transaction)
            await self._network()
            try:
                self._commit(
                    transaction.writes, transaction.reads, transaction.collection_reads
                )
            except TransactionConflict as e:
                logger.debug(
                    "Transaction attempt %d/%d aborted: %s", attempt, self.max_attempts, e
                )
                continue
            return result
        raise DocumentStoreError("Transaction failed: too much contention")

    def listen(
        self, query: Union[Query, str], callback: SnapshotCallback
    ) -> ListenerRegistration:
        """Callback gets (list of snapshots, None) or (None, error); first call is immediate."""
        query = Query(query) if isinstance(query, str) else query
        registration = ListenerRegistration(store=self, callback=callback, query=query)
        self._listeners.append(registration)
        self._deliver(registration)
        return registration

    def listen_document(
        self, collection: str, doc_id: str, callback: SnapshotCallback
    ) -> ListenerRegistration:
        registration = ListenerRegistration(
            store=self, callback=callback, document=(collection, doc_id)
        )
        self._listeners.append(registration)
        self._deliver(registration)
        return registration
