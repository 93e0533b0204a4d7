"""Document store: collection-oriented persistence with change subscriptions.

The rest of the package depends only on ``DocumentStore``. Subscribers get
the full, ordered record list of a collection immediately on subscribe and
again after every write to that collection; there is no fine-grained diff.
"""
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from clinicflow import config
from clinicflow.database_models import Base, Record, create_db_engine
from clinicflow.logging_config import get_logger

logger = get_logger(__name__)

SnapshotCallback = Callable[[List[Dict[str, Any]]], None]


class StoreError(Exception):
    """Base class for document store errors."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the backing database cannot be reached or fails a write."""
    pass


class RecordNotFoundError(StoreError):
    """Raised when updating or deleting a key that does not exist."""

    def __init__(self, collection: str, key: str):
        super().__init__(f"{collection}/{key} not found")
        self.collection = collection
        self.key = key


class DuplicateRecordError(StoreError):
    """Raised when creating a record whose key is already taken."""

    def __init__(self, collection: str, key: str):
        super().__init__(f"{collection}/{key} already exists")
        self.collection = collection
        self.key = key


def order_records(
    records: List[Dict[str, Any]],
    order_by: Optional[str] = None,
    descending: bool = False
) -> List[Dict[str, Any]]:
    """Sort records by a field; records missing the field go last."""
    if not order_by:
        return records
    present = [r for r in records if r.get(order_by) is not None]
    missing = [r for r in records if r.get(order_by) is None]
    present.sort(key=lambda r: r[order_by], reverse=descending)
    return present + missing


class Subscription:
    """Handle returned by ``DocumentStore.subscribe``."""

    def __init__(self, store: "DocumentStore", collection: str, callback: SnapshotCallback,
                 order_by: Optional[str] = None, descending: bool = False):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.order_by = order_by
        self.descending = descending
        self.active = True

    def deliver(self, records: List[Dict[str, Any]]):
        if self.active:
            self.callback(order_records(list(records), self.order_by, self.descending))

    def cancel(self):
        """Stop receiving snapshots. Safe to call more than once."""
        if self.active:
            self.active = False
            self.store._remove_subscription(self)


class DocumentStore(ABC):
    """
    Persistence collaborator interface.

    Records are plain dicts. Each collection is keyed by its identifier
    field (see ``config.key_field``).
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._lock = threading.RLock()

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Return one record or None."""

    @abstractmethod
    def list(self, collection: str, order_by: Optional[str] = None,
             descending: bool = False) -> List[Dict[str, Any]]:
        """Return every record in a collection."""

    @abstractmethod
    def _insert(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def _replace(self, collection: str, key: str, data: Dict[str, Any], upsert: bool) -> None:
        pass

    @abstractmethod
    def _remove(self, collection: str, key: str) -> None:
        pass

    def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a new record, generating its key when absent.

        Raises:
            DuplicateRecordError: If the key is already used
            StoreUnavailableError: If the backend fails
        """
        field = config.key_field(collection)
        record = dict(data)
        if not record.get(field):
            record[field] = uuid.uuid4().hex
        key = str(record[field])
        with self._lock:
            self._insert(collection, key, record)
            logger.debug("record_created", collection=collection, key=key)
            self._publish(collection)
        return record

    def set(self, collection: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Write a record under ``key``, replacing any existing one."""
        record = dict(data)
        record[config.key_field(collection)] = key
        with self._lock:
            self._replace(collection, key, record, upsert=True)
            self._publish(collection)
        return record

    def update(self, collection: str, key: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge ``changes`` into an existing record.

        Raises:
            RecordNotFoundError: If no record has this key
        """
        with self._lock:
            current = self.get(collection, key)
            if current is None:
                raise RecordNotFoundError(collection, key)
            record = {**current, **changes}
            record[config.key_field(collection)] = key
            self._replace(collection, key, record, upsert=False)
            self._publish(collection)
        return record

    def delete(self, collection: str, key: str) -> None:
        """
        Remove a record permanently. No cascading cleanup.

        Raises:
            RecordNotFoundError: If no record has this key
        """
        with self._lock:
            self._remove(collection, key)
            logger.debug("record_deleted", collection=collection, key=key)
            self._publish(collection)

    def subscribe(self, collection: str, callback: SnapshotCallback,
                  order_by: Optional[str] = None, descending: bool = False) -> Subscription:
        """
        Receive the full record list of ``collection`` now and after every write.

        Returns:
            Subscription; call ``cancel()`` to stop delivery
        """
        subscription = Subscription(self, collection, callback, order_by, descending)
        with self._lock:
            self._subscriptions[collection].append(subscription)
            subscription.deliver(self.list(collection))
        return subscription

    def _remove_subscription(self, subscription: Subscription):
        with self._lock:
            subs = self._subscriptions.get(subscription.collection, [])
            if subscription in subs:
                subs.remove(subscription)

    def _publish(self, collection: str):
        """
        Deliver the current snapshot of ``collection`` to its subscribers.

        Callers hold ``_lock`` from the write through delivery, so snapshots
        reach subscribers in write order.
        """
        with self._lock:
            subscribers = list(self._subscriptions.get(collection, []))
            if not subscribers:
                return
            records = self.list(collection)
            for subscription in subscribers:
                try:
                    subscription.deliver(records)
                except Exception:
                    logger.exception("subscriber_failed", collection=collection)


class SQLDocumentStore(DocumentStore):
    """
    DocumentStore over a single SQLAlchemy ``records`` table.

    Pattern: Thin wrapper around SQLAlchemy, JSON document per row.
    """

    def __init__(self, database_url: str):
        """
        Initialize the store and create tables if needed.

        Args:
            database_url: SQLAlchemy connection string
        """
        super().__init__()
        self.engine = create_db_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            with self.SessionLocal() as db:
                row = db.get(Record, (collection, key))
                return dict(row.data) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not read {collection}/{key}: {e}") from e

    def list(self, collection: str, order_by: Optional[str] = None,
             descending: bool = False) -> List[Dict[str, Any]]:
        try:
            with self.SessionLocal() as db:
                rows = db.query(Record).filter(
                    Record.collection == collection
                ).order_by(Record.created_at).all()
                records = [dict(row.data) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not list {collection}: {e}") from e
        return order_records(records, order_by, descending)

    def _insert(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        try:
            with self.SessionLocal() as db:
                if db.get(Record, (collection, key)) is not None:
                    raise DuplicateRecordError(collection, key)
                db.add(Record(collection=collection, key=key, data=data))
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not create {collection}/{key}: {e}") from e

    def _replace(self, collection: str, key: str, data: Dict[str, Any], upsert: bool) -> None:
        try:
            with self.SessionLocal() as db:
                row = db.get(Record, (collection, key))
                if row is None:
                    if not upsert:
                        raise RecordNotFoundError(collection, key)
                    db.add(Record(collection=collection, key=key, data=data))
                else:
                    row.data = data
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not write {collection}/{key}: {e}") from e

    def _remove(self, collection: str, key: str) -> None:
        try:
            with self.SessionLocal() as db:
                row = db.get(Record, (collection, key))
                if row is None:
                    raise RecordNotFoundError(collection, key)
                db.delete(row)
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Could not delete {collection}/{key}: {e}") from e
