import pytest

from conftest import VENDOR_MID, VENDOR_UID, material_doc
from vimarsha.messages import AuthMessages
from vimarsha.services.live_feed import LiveFeedRegistry


def _events(socket_client, name):
    return [event['args'][0] for event in socket_client.get_received() if event['name'] == name]


# ---------------------------------------------------------------------------
# registry
# ---------------------------------------------------------------------------

def test_subscribe_and_cancel(store):
    registry = LiveFeedRegistry(store)
    pushed = []

    subscription = registry.subscribe('sid-1', 'materials', pushed.append)
    assert 'sid-1' in registry
    assert len(store.listeners) == 1
    assert pushed == [[]]

    assert registry.cancel('sid-1') is True
    assert not subscription.active
    assert store.listeners == []
    assert registry.cancel('sid-1') is False


def test_resubscribe_replaces_previous(store):
    registry = LiveFeedRegistry(store)
    first = registry.subscribe('sid-1', 'materials', lambda docs: None)
    registry.subscribe('sid-1', 'materials', lambda docs: None)

    assert not first.active
    assert len(registry) == 1
    assert len(store.listeners) == 1


def test_cancelled_feed_stops_pushing(store):
    registry = LiveFeedRegistry(store)
    pushed = []
    registry.subscribe('sid-1', 'materials', pushed.append)

    store.set('materials', 'KZJ1701', material_doc())
    assert len(pushed) == 2

    registry.cancel('sid-1')
    store.set('materials', 'KZJ1702', material_doc(materialId='KZJ1702'))
    assert len(pushed) == 2


def test_cancel_all(store):
    registry = LiveFeedRegistry(store)
    registry.subscribe('sid-1', 'materials', lambda docs: None)
    registry.subscribe('sid-2', 'faults', lambda docs: None)

    registry.cancel_all()
    assert len(registry) == 0
    assert store.listeners == []


# ---------------------------------------------------------------------------
# socket events
# ---------------------------------------------------------------------------

def test_subscribe_requires_login(app, socketio, client):
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('subscribe_materials')

    assert _events(socket_client, 'feed_error') == [{'error': AuthMessages.LOGIN_REQUIRED}]
    socket_client.disconnect()


def test_vendor_feed_is_scoped_and_live(app, socketio, vendor_client, store, services):
    store.seed('materials', 'KZJ1701', material_doc())
    store.seed('materials', 'SCB0101', material_doc(materialId='SCB0101', manufacturerId='OTHERID'))

    socket_client = socketio.test_client(app, flask_test_client=vendor_client)
    socket_client.emit('subscribe_materials')

    received = socket_client.get_received()
    names = [event['name'] for event in received]
    assert names == ['materials', 'subscribed']
    first = received[0]['args'][0]
    assert [m['materialId'] for m in first] == ['KZJ1701']
    assert len(services.live_feed) == 1

    store.set('materials', 'KZJ1702', material_doc(materialId='KZJ1702'))
    store.set('materials', 'SCB0102', material_doc(materialId='SCB0102', manufacturerId='OTHERID'))
    updates = _events(socket_client, 'materials')
    assert sorted(m['materialId'] for m in updates[0]) == ['KZJ1701', 'KZJ1702']
    assert all(m['manufacturerId'] == VENDOR_MID for batch in updates for m in batch)

    socket_client.disconnect()
    assert len(services.live_feed) == 0
    assert store.listeners == []


def test_unsubscribe(app, socketio, login, client, store, services):
    login('admin', 'admin')
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('subscribe_materials')
    assert len(services.live_feed) == 1

    socket_client.emit('unsubscribe_materials')
    assert len(services.live_feed) == 0
    socket_client.disconnect()


def _set_role(store, collection, uid, role):
    store.seed(collection, uid, dict(store.raw(collection, uid), role=role))


def _feed_events(app, socketio, client):
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('subscribe_materials')
    received = socket_client.get_received()
    socket_client.disconnect()
    return received


def test_admin_feed_is_unscoped(app, socketio, login, client, store):
    store.seed('materials', 'KZJ1701', material_doc())
    store.seed('materials', 'SCB0101', material_doc(materialId='SCB0101', manufacturerId='OTHERID'))
    login('admin', 'admin', uid='adminuid01')

    received = _feed_events(app, socketio, client)
    assert [event['name'] for event in received] == ['materials', 'subscribed']
    assert sorted(m['materialId'] for m in received[0]['args'][0]) == ['KZJ1701', 'SCB0101']


def test_demoted_admin_gets_only_own_materials(app, socketio, login, client, store):
    store.seed('materials', 'SCB0101', material_doc(materialId='SCB0101', manufacturerId='OTHERID'))
    login('admin', 'admin', uid='adminuid01')
    _set_role(store, 'users', 'adminuid01', 'manufacturer')

    received = _feed_events(app, socketio, client)
    assert [event['name'] for event in received] == ['materials', 'subscribed']
    assert received[0]['args'][0] == []


@pytest.mark.parametrize("role", ['depot', 'installation'])
def test_admin_moved_out_of_the_feed_sections(app, socketio, login, client, store, services, role):
    login('admin', 'admin', uid='adminuid01')
    _set_role(store, 'users', 'adminuid01', role)

    received = _feed_events(app, socketio, client)
    assert [event['name'] for event in received] == ['feed_error']
    assert received[0]['args'][0] == {'error': AuthMessages.ACCESS_DENIED}
    assert len(services.live_feed) == 0


@pytest.mark.parametrize("section, role", [
    ('depot', 'depot'),
    ('track', 'installation'),
    ('track', 'engineer'),
])
def test_field_staff_cannot_watch_the_feed(app, socketio, login, client, store, services, section, role):
    store.seed('materials', 'KZJ1701', material_doc())
    login(section, role)

    received = _feed_events(app, socketio, client)
    assert [event['name'] for event in received] == ['feed_error']
    assert received[0]['args'][0] == {'error': AuthMessages.ACCESS_DENIED}
    assert len(services.live_feed) == 0


def test_revoked_session_cannot_watch_the_feed(app, socketio, login, client, identity):
    login('vendor', 'manufacturer', uid=VENDOR_UID)
    identity.revoked.add(VENDOR_UID)

    received = _feed_events(app, socketio, client)
    assert received[0]['args'][0] == {'error': AuthMessages.SESSION_EXPIRED}


def test_denied_resubscribe_drops_running_feed(app, socketio, login, client, store, services):
    login('admin', 'admin', uid='adminuid01')
    socket_client = socketio.test_client(app, flask_test_client=client)
    socket_client.emit('subscribe_materials')
    assert len(services.live_feed) == 1

    _set_role(store, 'users', 'adminuid01', 'depot')
    socket_client.get_received()
    socket_client.emit('subscribe_materials')

    assert _events(socket_client, 'feed_error') == [{'error': AuthMessages.ACCESS_DENIED}]
    assert len(services.live_feed) == 0
    assert store.listeners == []
    socket_client.disconnect()
