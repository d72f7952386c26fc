"""
Service handles for the managed backend.

The identity, store and storage clients are built once by the startup
routine and attached to the Flask app; views reach them through
``get_services()``. Tests build a ``Services`` with fakes instead.
"""
import logging
from dataclasses import dataclass

from flask import current_app

from vimarsha.services.document_store import FirestoreDocumentStore
from vimarsha.services.identity import IdentityClient
from vimarsha.services.live_feed import LiveFeedRegistry
from vimarsha.services.object_storage import CloudinaryStorage
from vimarsha.utils.threading_utils import SafeThreadExecutor

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'vimarsha'


@dataclass
class Services:
    identity: object
    store: object
    storage: object
    live_feed: LiveFeedRegistry
    executor: SafeThreadExecutor

    def close(self) -> None:
        self.live_feed.cancel_all()
        self.executor.shutdown(wait=False)


def build_services(identity, store, storage, max_workers: int = 2) -> Services:
    """Assemble a Services bundle around already-constructed clients"""
    return Services(
        identity=identity,
        store=store,
        storage=storage,
        live_feed=LiveFeedRegistry(store),
        executor=SafeThreadExecutor(max_workers=max_workers),
    )


def create_services(config) -> Services:
    """Construct the production clients from the application config"""
    identity = IdentityClient(
        api_key=config.get('FIREBASE_API_KEY', ''),
        timeout=config.get('REQUEST_TIMEOUT', 10.0),
    )
    store = FirestoreDocumentStore.from_config(config)
    storage = CloudinaryStorage.from_config(config)
    logger.info("Backend service clients created")
    return build_services(identity, store, storage)


def get_services() -> Services:
    """Service handles of the running app"""
    return current_app.extensions[EXTENSION_KEY]
