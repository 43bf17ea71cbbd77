import pytest
from sqlmodel import Session

from petclinic import services
from petclinic.config import Settings
from petclinic.database import engine


def test_login_sets_session_and_logout_clears_it(client, account):
    username, password = account
    r = client.get('/login')
    assert r.status_code == 200
    assert r.template.name == 'login.html'
    # login
    r2 = client.post('/login', data={'username': username, 'password': password, 'next': '/'}, follow_redirects=False)
    assert r2.status_code == 302
    assert r2.headers['location'] == '/'
    assert 'Logged in as <b>vet</b>' in client.get('/').text
    # logout
    r3 = client.get('/logout', follow_redirects=False)
    assert r3.status_code == 302
    assert r3.headers['location'] == '/login'
    assert 'Log in' in client.get('/').text


def test_login_rejects_bad_password(client, account):
    username, _ = account
    r = client.post('/login', data={'username': username, 'password': 'wrong'})
    assert r.status_code == 401
    assert r.template.name == 'login.html'
    assert r.context['error'] == 'invalid username or password'


def test_login_ignores_external_next(client, account):
    username, password = account
    r = client.post(
        '/login',
        data={'username': username, 'password': password, 'next': '//evil.example/'},
        follow_redirects=False,
    )
    assert r.headers['location'] == '/'


def test_ensure_account_is_idempotent():
    with Session(engine) as session:
        auth = services.AuthService(session)
        first = auth.ensure_account('receptionist', 'pass123')
        second = auth.ensure_account('receptionist', 'other')
        assert first.id == second.id
        assert first.password_hash != 'pass123'
        assert auth.authenticate('receptionist', 'pass123').id == first.id
        assert auth.authenticate('receptionist', 'other') is None
        assert auth.authenticate('nobody', 'pass123') is None


def test_owner_page(client, owner_with_pet):
    owner_id, _ = owner_with_pet
    r = client.get(f'/owners/{owner_id}')
    assert r.status_code == 200
    assert r.template.name == 'owners/ownerDetails.html'
    assert 'Leo' in r.text
    assert client.get('/owners/99999').status_code == 404


def test_request_id_header(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID']
    r2 = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r2.headers['X-Request-ID'] == 'abc123'


def test_settings_refuse_default_secret_outside_dev(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.delenv('SESSION_SECRET', raising=False)
    monkeypatch.delenv('ALLOW_INSECURE_SESSION', raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv('SESSION_SECRET', 's3cret')
    assert Settings().SESSION_SECRET == 's3cret'
