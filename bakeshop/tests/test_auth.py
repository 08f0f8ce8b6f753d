import pytest
from itsdangerous import URLSafeTimedSerializer
from werkzeug.security import check_password_hash

from conftest import auth, register
from bakeshop import main


def test_register_returns_token_and_hashes_password(client, container):
    user = register(client, email='Carla@Example.com')
    assert user['email'] == 'carla@example.com'
    assert user['isAdmin'] is False
    assert 'password' not in user
    assert user['token']

    stored = container.user_repo.get_by_email('carla@example.com')
    assert stored['password'] != 'secret1'
    assert check_password_hash(stored['password'], 'secret1')


@pytest.mark.parametrize('body, message', [
    ({'name': 'A', 'email': 'a@example.com'}, 'Please provide name, email and password'),
    ({'name': 'A', 'email': 'not-an-email', 'password': 'secret1'}, 'Invalid email address'),
    ({'name': 'A', 'email': 'a@example.com', 'password': '123'}, 'Password must be at least 6 characters'),
])
def test_register_validation(client, body, message):
    r = client.post('/api/users', json=body)
    assert r.status_code == 400
    assert r.get_json()['message'] == message


def test_duplicate_email(client, customer):
    r = client.post('/api/users', json={'name': 'Ana', 'email': 'ANA@example.com', 'password': 'secret1'})
    assert r.status_code == 400
    assert r.get_json()['message'] == 'User already exists'


def test_self_registration_never_grants_admin(client):
    user = register(client, email='sneaky@example.com')
    r = client.post('/api/users', json={'name': 'X', 'email': 'x@example.com',
                                        'password': 'secret1', 'isAdmin': True})
    assert r.get_json()['isAdmin'] is False
    assert client.get('/api/users', headers=auth(user)).status_code == 403


def test_login(client, customer):
    ok = client.post('/api/users/login', json={'email': 'ana@example.com', 'password': 'secret1'})
    assert ok.status_code == 200
    assert ok.get_json()['id'] == customer['id']

    bad = client.post('/api/users/login', json={'email': 'ana@example.com', 'password': 'wrong!'})
    assert bad.status_code == 401
    assert bad.get_json()['message'] == 'Invalid email or password'


def test_missing_and_tampered_tokens(client, customer):
    r = client.get('/api/users/profile')
    assert r.status_code == 401
    assert r.get_json()['message'] == 'Not authorized, no token'

    r = client.get('/api/users/profile', headers={'Authorization': f"Bearer {customer['token']}x"})
    assert r.status_code == 401
    assert r.get_json()['message'] == 'Not authorized, token failed'

    forged = URLSafeTimedSerializer('another-secret', salt='bakeshop-auth').dumps({'id': customer['id']})
    r = client.get('/api/users/profile', headers={'Authorization': f'Bearer {forged}'})
    assert r.status_code == 401


def test_expired_token(client, customer, monkeypatch):
    monkeypatch.setattr(main, 'TOKEN_MAX_AGE', -1)
    r = client.get('/api/users/profile', headers=auth(customer))
    assert r.status_code == 401
    assert r.get_json()['message'] == 'Not authorized, token failed'


def test_token_of_deleted_user_fails(client, container, customer):
    users = container.user_repo.get_all()
    users.pop(str(customer['id']))
    container.user_repo.save_all(users)

    r = client.get('/api/users/profile', headers=auth(customer))
    assert r.status_code == 401


def test_profile(client, customer):
    r = client.get('/api/users/profile', headers=auth(customer))
    assert r.status_code == 200
    assert r.get_json()['email'] == 'ana@example.com'


def test_admin_status_is_reloaded_from_store(client, container, customer):
    assert client.get('/api/users', headers=auth(customer)).status_code == 403

    users = container.user_repo.get_all()
    users[str(customer['id'])]['isAdmin'] = True
    container.user_repo.save_all(users)

    # El mismo token ahora tiene acceso
    r = client.get('/api/users', headers=auth(customer))
    assert r.status_code == 200
    assert all('password' not in u for u in r.get_json())


def test_bootstrap_admin_from_environment(client, container, monkeypatch):
    monkeypatch.setenv('BAKESHOP_ADMIN_EMAIL', 'owner@example.com')
    monkeypatch.setenv('BAKESHOP_ADMIN_PASSWORD', 'ownerpass')

    created = main.bootstrap_admin()
    assert created['isAdmin'] is True
    assert main.bootstrap_admin() is None

    r = client.post('/api/users/login', json={'email': 'owner@example.com', 'password': 'ownerpass'})
    assert r.get_json()['isAdmin'] is True


def test_security_headers_and_errors_are_json(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.get_json()['status'] == 'OK'
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'
    assert r.headers['Access-Control-Allow-Origin'] == '*'

    missing = client.get('/api/nothing-here')
    assert missing.status_code == 404
    assert 'message' in missing.get_json()
