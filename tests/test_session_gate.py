import pytest

from vimarsha.messages import AuthMessages, RegistrationMessages
from vimarsha.utils import auth_middleware
from vimarsha.utils.auth_middleware import GateResult, GateState

MARKER = '__session'


def _signed_in(client):
    with client.session_transaction() as sess:
        return 'identity' in sess


@pytest.mark.parametrize("path, login_path", [
    ('/vendor/dashboard', '/vendor/login'),
    ('/vendor/materials/new', '/vendor/login'),
    ('/admin/dashboard', '/admin/login'),
    ('/depot/dashboard', '/depot/login'),
    ('/depot/requests', '/depot/login'),
    ('/track/home', '/track/login'),
    ('/track/engineer/faults', '/track/login'),
    ('/track/profile', '/track/login'),
])
def test_protected_pages_redirect_without_session(client, store, path, login_path):
    response = client.get(path)

    assert response.status_code == 302
    assert response.headers['Location'].endswith(login_path)
    assert store.calls == []


def test_login_required_message(client):
    response = client.get('/depot/dashboard', follow_redirects=True)
    assert AuthMessages.LOGIN_REQUIRED.encode() in response.data


def test_marker_without_identity_is_rejected(client, store):
    client.set_cookie(MARKER, '1')
    response = client.get('/vendor/dashboard')

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/vendor/login')
    assert store.calls == []


def test_identity_without_marker_is_rejected(login, client):
    login('vendor', 'manufacturer')
    client.delete_cookie(MARKER)

    response = client.get('/vendor/dashboard')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/vendor/login')


@pytest.mark.parametrize("section, role, home", [
    ('vendor', 'manufacturer', '/vendor/dashboard'),
    ('admin', 'manufacturerAdmin', '/admin/dashboard'),
    ('admin', 'admin', '/admin/dashboard'),
    ('depot', 'depot', '/depot/dashboard'),
    ('track', 'installation', '/track/installation'),
    ('track', 'maintenance', '/track/home'),
    ('track', 'engineer', '/track/engineer'),
])
def test_login_lands_on_role_home(login, client, section, role, home):
    response = login(section, role)

    assert response.status_code == 302
    assert response.headers['Location'].endswith(home)
    assert client.get_cookie(MARKER) is not None
    assert client.get(home).status_code == 200


def test_login_page_redirects_when_signed_in(login, client):
    login('depot', 'depot')
    response = client.get('/depot/login')
    assert response.headers['Location'].endswith('/depot/dashboard')


def test_role_is_reread_on_every_entry(login, client, store):
    login('depot', 'depot', uid='depotuid01')
    assert client.get('/depot/dashboard').status_code == 200

    store.seed('trackStaff', 'depotuid01', {'uid': 'depotuid01', 'empId': 'E100', 'role': 'installation'})
    response = client.get('/depot/dashboard')

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/depot/login')
    assert not _signed_in(client)
    assert client.get_cookie(MARKER) is None


def test_access_denied_message(login, client, store):
    login('depot', 'depot', uid='depotuid01')
    store.seed('trackStaff', 'depotuid01', {'uid': 'depotuid01', 'role': 'engineer'})

    response = client.get('/depot/dashboard', follow_redirects=True)
    assert AuthMessages.ACCESS_DENIED.encode() in response.data


def test_wrong_section_signs_out(login, client):
    login('vendor', 'manufacturer')

    response = client.get('/depot/dashboard')
    assert response.headers['Location'].endswith('/depot/login')
    assert not _signed_in(client)


def test_narrowed_role_signs_out(login, client):
    login('track', 'maintenance')

    response = client.get('/track/engineer')
    assert response.headers['Location'].endswith('/track/login')
    assert not _signed_in(client)


def test_store_unreachable_keeps_session(login, client, store):
    login('depot', 'depot')
    store.unreachable = True

    response = client.get('/depot/dashboard')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/depot/login?retry=1')
    assert _signed_in(client)
    assert client.get_cookie(MARKER) is not None

    store.unreachable = False
    assert client.get('/depot/dashboard').status_code == 200


def test_identity_provider_unreachable(login, client, identity):
    login('vendor', 'manufacturer')
    identity.unreachable = True

    response = client.get('/vendor/dashboard')
    assert response.headers['Location'].endswith('/vendor/login?retry=1')

    page = client.get(response.headers['Location'])
    assert page.status_code == 200
    assert AuthMessages.VERIFY_FAILED.encode() in page.data
    assert _signed_in(client)


def test_revoked_session_is_signed_out(login, client, identity):
    login('vendor', 'manufacturer', uid='vendoruid001')
    identity.revoked.add('vendoruid001')

    response = client.get('/vendor/dashboard', follow_redirects=True)
    assert AuthMessages.SESSION_EXPIRED.encode() in response.data
    assert not _signed_in(client)
    assert client.get_cookie(MARKER) is None


def test_logout(login, client):
    login('track', 'engineer')

    response = client.get('/track/logout')
    assert response.headers['Location'].endswith('/track/login')
    assert client.get_cookie(MARKER) is None
    assert not _signed_in(client)
    assert client.get('/track/engineer').status_code == 302


def test_gate_result_settles_once():
    result = GateResult()
    assert result.state is GateState.CHECKING

    result.allow(profile=None, identity=None)
    assert result.state is GateState.ALLOWED
    with pytest.raises(RuntimeError):
        result.redirect(AuthMessages.ACCESS_DENIED)
    assert result.state is GateState.ALLOWED


def test_unsettled_gate_never_renders(login, client, monkeypatch):
    login('vendor', 'manufacturer')
    monkeypatch.setattr(auth_middleware, 'check_gate', lambda *args, **kwargs: GateResult())

    response = client.get('/vendor/dashboard')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/vendor/login')
    assert _signed_in(client)


# ---------------------------------------------------------------------------
# login checks
# ---------------------------------------------------------------------------

def _account(identity, store, collection, role, emp_id='E100', email='staff@rail.example'):
    uid = identity.add_account(email, 'secret123')
    store.seed(collection, uid, {'uid': uid, 'name': 'Staff', 'email': email, 'empId': emp_id, 'role': role})
    return uid


def test_login_bad_password(client, identity, store):
    _account(identity, store, 'users', 'manufacturer')
    response = client.post('/vendor/login', data={'email': 'staff@rail.example', 'password': 'wrong'})

    assert response.status_code == 401
    assert AuthMessages.INVALID_CREDENTIALS.encode() in response.data
    assert client.get_cookie(MARKER) is None


def test_login_missing_employee_id(client, identity, store):
    _account(identity, store, 'trackStaff', 'depot')
    response = client.post('/depot/login', data={'email': 'staff@rail.example', 'password': 'secret123'})

    assert response.status_code == 400
    assert RegistrationMessages.ALL_FIELDS_REQUIRED.encode() in response.data


def test_login_employee_id_mismatch(client, identity, store):
    _account(identity, store, 'trackStaff', 'depot', emp_id='E100')
    response = client.post('/depot/login', data={
        'email': 'staff@rail.example', 'password': 'secret123', 'emp_id': 'E999',
    })

    assert response.status_code == 403
    assert AuthMessages.EMPLOYEE_ID_MISMATCH.encode() in response.data
    assert not _signed_in(client)


def test_login_selected_role_mismatch(client, identity, store):
    _account(identity, store, 'trackStaff', 'maintenance')
    response = client.post('/track/login', data={
        'email': 'staff@rail.example', 'password': 'secret123', 'emp_id': 'E100', 'role': 'engineer',
    })

    assert response.status_code == 403
    assert b'You are registered as: maintenance' in response.data


def test_depot_officer_cannot_use_track_login(client, identity, store):
    _account(identity, store, 'trackStaff', 'depot')
    response = client.post('/track/login', data={
        'email': 'staff@rail.example', 'password': 'secret123', 'emp_id': 'E100',
    })
    assert response.status_code == 403


def test_vendor_cannot_use_admin_login(client, identity, store):
    _account(identity, store, 'users', 'manufacturer')
    response = client.post('/admin/login', data={'email': 'staff@rail.example', 'password': 'secret123'})
    assert response.status_code == 403


def test_track_login_without_profile(client, identity):
    identity.add_account('new@rail.example', 'secret123')
    response = client.post('/track/login', data={
        'email': 'new@rail.example', 'password': 'secret123', 'emp_id': 'E1',
    })

    assert response.status_code == 403
    assert AuthMessages.NOT_REGISTERED.encode() in response.data


def test_vendor_login_creates_missing_profile(client, identity, store):
    uid = identity.add_account('maker@rail.example', 'secret123')
    response = client.post('/vendor/login', data={'email': 'maker@rail.example', 'password': 'secret123'})

    assert response.headers['Location'].endswith('/vendor/dashboard')
    assert store.raw('users', uid)['role'] == 'manufacturer'
    assert store.raw('users', uid)['name'] == 'maker'


def test_login_store_unreachable(client, identity, store):
    _account(identity, store, 'users', 'manufacturer')
    store.unreachable = True

    response = client.post('/vendor/login', data={'email': 'staff@rail.example', 'password': 'secret123'})
    assert response.status_code == 503
    assert not _signed_in(client)
