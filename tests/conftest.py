"""
Shared fixtures: in-memory backend fakes injected through create_app()
"""
import copy
import itertools

import pytest

from vimarsha.app import create_app
from vimarsha.config import TestingConfig
from vimarsha.exceptions import (
    AccountExistsError,
    DocumentExistsError,
    DocumentMissingError,
    InvalidCredentialsError,
    SessionExpiredError,
    TransientError,
    WeakPasswordError,
)
from vimarsha.services import build_services
from vimarsha.services.document_store import Document, Subscription
from vimarsha.services.identity import IdentitySession


class InMemoryStore:
    """Document store fake with the same contract as FirestoreDocumentStore"""

    def __init__(self):
        self.collections = {}
        self.calls = []
        self.unreachable = False
        self.listeners = []

    def _check(self, op, collection, key=None):
        self.calls.append((op, collection, key))
        if self.unreachable:
            raise TransientError()

    def _docs(self, collection):
        return self.collections.setdefault(collection, {})

    def seed(self, collection, key, data):
        self._docs(collection)[key] = copy.deepcopy(data)

    def raw(self, collection, key):
        return self._docs(collection).get(key)

    def get(self, collection, key):
        self._check('get', collection, key)
        data = self._docs(collection).get(key)
        return copy.deepcopy(data) if data is not None else None

    def create(self, collection, key, data):
        self._check('create', collection, key)
        if key in self._docs(collection):
            raise DocumentExistsError()
        self._docs(collection)[key] = copy.deepcopy(data)
        self._notify(collection)

    def set(self, collection, key, data, merge=False):
        self._check('set', collection, key)
        docs = self._docs(collection)
        if merge and key in docs:
            docs[key].update(copy.deepcopy(data))
        else:
            docs[key] = copy.deepcopy(data)
        self._notify(collection)

    def update(self, collection, key, data):
        self._check('update', collection, key)
        docs = self._docs(collection)
        if key not in docs:
            raise DocumentMissingError()
        docs[key].update(copy.deepcopy(data))
        self._notify(collection)

    def _run_query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        results = []
        for key, data in self._docs(collection).items():
            if all(op == '==' and data.get(field) == value for field, op, value in filters):
                results.append(Document(key, copy.deepcopy(data)))
        if order_by:
            results.sort(key=lambda d: str(d.data.get(order_by, '')), reverse=descending)
        return results[:limit] if limit else results

    def query(self, collection, filters=(), order_by=None, descending=False, limit=None):
        self._check('query', collection)
        return self._run_query(collection, filters, order_by, descending, limit)

    def subscribe(self, collection, callback, filters=(), order_by=None, descending=False):
        self._check('subscribe', collection)
        listener = (collection, callback, tuple(filters), order_by, descending)
        self.listeners.append(listener)
        callback(self._run_query(collection, filters, order_by, descending))
        return Subscription(lambda: self.listeners.remove(listener))

    def _notify(self, collection):
        for name, callback, filters, order_by, descending in list(self.listeners):
            if name == collection:
                callback(self._run_query(name, filters, order_by, descending))


class FakeIdentity:
    """Identity provider fake: accounts by email, tokens derived from the uid"""

    def __init__(self):
        self.accounts = {}
        self.revoked = set()
        self.reset_requests = []
        self.unreachable = False
        self._uids = itertools.count(1)

    def add_account(self, email, password, uid=None):
        uid = uid or f"user{next(self._uids):04d}abc"
        self.accounts[email] = (password, uid)
        return uid

    def _session(self, email, uid):
        return IdentitySession(uid=uid, email=email, id_token=f"token-{uid}", refresh_token=f"refresh-{uid}")

    def sign_in(self, email, password):
        if self.unreachable:
            raise TransientError()
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise InvalidCredentialsError()
        return self._session(email, account[1])

    def sign_up(self, email, password):
        if email in self.accounts:
            raise AccountExistsError()
        if len(password) < 6:
            raise WeakPasswordError()
        return self._session(email, self.add_account(email, password))

    def send_password_reset(self, email):
        if email not in self.accounts:
            raise InvalidCredentialsError()
        self.reset_requests.append(email)

    def verify(self, identity):
        if self.unreachable:
            raise TransientError()
        if identity.uid in self.revoked:
            raise SessionExpiredError()
        return identity


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def upload_image(self, file, subfolder, public_id=None):
        self.uploads.append((subfolder, public_id))
        return f"https://images.example/{subfolder}/{public_id}.jpg"

    def public_url(self, public_id):
        return f"https://images.example/{public_id}.jpg"


VENDOR_UID = "vendoruid001"
VENDOR_MID = "VENDORU"


def material_doc(**overrides):
    data = {
        'materialId': 'KZJ1701',
        'manufacturerId': VENDOR_MID,
        'manufacturerName': 'Bharat Forge',
        'fittingType': 'Elastic Rail Clip',
        'drawingNumber': 'RDSO/T-3701',
        'materialSpec': 'IS 3195',
        'weightKg': 0.9,
        'boardGauge': 'BG',
        'manufacturingDate': '2024-05-10',
        'expectedLifeYears': 12,
        'purchaseOrderNumber': 'PO-55',
        'batchNumber': 'B-09',
        'depotCode': 'KZJ',
        'udmLotNumber': 'UDM-2024-17',
        'installationStatus': 'Not Installed',
        'createdAt': '2024-05-10T08:00:00+00:00',
        'updatedAt': '2024-05-10T08:00:00+00:00',
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def services(identity, store, storage):
    bundle = build_services(identity, store, storage)
    yield bundle
    bundle.close()


@pytest.fixture
def app_bundle(services):
    return create_app(TestingConfig, services=services)


@pytest.fixture
def app(app_bundle):
    return app_bundle[0]


@pytest.fixture
def socketio(app_bundle):
    return app_bundle[1]


@pytest.fixture
def client(app):
    return app.test_client()


PROFILE_COLLECTIONS = {
    'vendor': 'users',
    'admin': 'users',
    'depot': 'trackStaff',
    'track': 'trackStaff',
}


@pytest.fixture
def login(client, identity, store):
    """
    Create an account + profile for a section and log in through the form.

    Returns the login response (a redirect to the role's home on success).
    """
    def _login(section, role, uid=None, email=None, password='secret123', emp_id='E100'):
        email = email or f"{role}@rail.example"
        uid = identity.add_account(email, password, uid=uid)
        store.seed(PROFILE_COLLECTIONS[section], uid, {
            'uid': uid, 'name': role.title(), 'email': email, 'empId': emp_id, 'role': role,
        })
        form = {'email': email, 'password': password, 'emp_id': emp_id}
        return client.post(f'/{section}/login', data=form)
    return _login


@pytest.fixture
def vendor_client(client, login):
    login('vendor', 'manufacturer', uid=VENDOR_UID)
    return client
