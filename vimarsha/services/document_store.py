"""
Document Store Client
Cloud Firestore access: get/create/set/update by key, queries and live subscriptions
"""

import logging
import uuid
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from vimarsha.exceptions import (
    DocumentExistsError,
    DocumentMissingError,
    TransientError,
)

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]


@dataclass
class Document:
    """One document: its key and its flat field map"""
    key: str
    data: Dict[str, Any] = field(default_factory=dict)


class Subscription:
    """Handle for a live query listener; ``cancel`` stops the push feed"""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._unsubscribe()


def _store_call(fn):
    """Translate Google API failures into the application's error taxonomy"""
    @wraps(fn)
    def wrapper(self, collection, *args, **kwargs):
        try:
            return fn(self, collection, *args, **kwargs)
        except google_exceptions.AlreadyExists as e:
            raise DocumentExistsError(f"{collection} document already exists") from e
        except google_exceptions.NotFound as e:
            raise DocumentMissingError(f"{collection} document does not exist") from e
        except (google_exceptions.GoogleAPIError, ConnectionError, TimeoutError) as e:
            logger.error(f"Store call {fn.__name__}({collection}) failed: {e}")
            raise TransientError() from e
    return wrapper


class FirestoreDocumentStore:
    """
    Document store backed by Cloud Firestore.

    Keys are opaque strings; documents are flat maps of primitive fields.
    The client is created once by the startup routine and passed in.
    """

    def __init__(self, client, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'FirestoreDocumentStore':
        """Create the Firebase app + Firestore client for this application"""
        cred_path = config.get('FIREBASE_CREDENTIALS')
        cred = credentials.Certificate(cred_path) if cred_path else credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(
            cred,
            {'projectId': config.get('FIREBASE_PROJECT_ID')},
            name=f"vimarsha-{uuid.uuid4().hex[:8]}",
        )
        logger.info(f"Firestore client created for project {config.get('FIREBASE_PROJECT_ID')}")
        return cls(firestore.client(app), timeout=config.get('REQUEST_TIMEOUT', 10.0))

    def _query(self, collection: str, filters: Iterable[Filter] = (),
               order_by: Optional[str] = None, descending: bool = False,
               limit: Optional[int] = None):
        query = self.client.collection(collection)
        for field_path, op, value in filters:
            query = query.where(filter=FieldFilter(field_path, op, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)
        return query

    @_store_call
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        """Fetch one document; ``None`` when it does not exist"""
        snapshot = self.client.collection(collection).document(key).get(timeout=self.timeout)
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    @_store_call
    def create(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """Create a document, failing if the key is already taken"""
        self.client.collection(collection).document(key).create(data, timeout=self.timeout)

    @_store_call
    def set(self, collection: str, key: str, data: Dict[str, Any], merge: bool = False) -> None:
        """Write a document, replacing it or merging into it"""
        self.client.collection(collection).document(key).set(data, merge=merge, timeout=self.timeout)

    @_store_call
    def update(self, collection: str, key: str, data: Dict[str, Any]) -> None:
        """Update fields of an existing document"""
        self.client.collection(collection).document(key).update(data, timeout=self.timeout)

    @_store_call
    def query(self, collection: str, filters: Iterable[Filter] = (),
              order_by: Optional[str] = None, descending: bool = False,
              limit: Optional[int] = None) -> List[Document]:
        """Run a query and return the matching documents"""
        query = self._query(collection, filters, order_by, descending, limit)
        return [Document(snap.id, snap.to_dict() or {}) for snap in query.stream(timeout=self.timeout)]

    @_store_call
    def subscribe(self, collection: str, callback: Callable[[List[Document]], None],
                  filters: Iterable[Filter] = (), order_by: Optional[str] = None,
                  descending: bool = False) -> Subscription:
        """
        Listen to a query; ``callback`` receives the full result set on every change.

        The listener runs on the client library's own thread. The returned
        subscription must be cancelled when the consumer goes away.
        """
        query = self._query(collection, filters, order_by, descending)

        def on_snapshot(snapshots, changes, read_time):
            callback([Document(snap.id, snap.to_dict() or {}) for snap in snapshots])

        watch = query.on_snapshot(on_snapshot)
        return Subscription(watch.unsubscribe)
