import os
import sys

import pytest

# El profiling escribe en logs/: se apaga antes de importar la app
os.environ.setdefault('BAKESHOP_PROFILING', '0')

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))

from bakeshop.app_container import AppContainer, get_container
from bakeshop.main import app

# Cabecera mínima de cada formato aceptado
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 32
JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 32


@pytest.fixture
def container(tmp_path):
    """Contenedor nuevo sobre un directorio de datos temporal."""
    AppContainer.reset_instance()
    c = get_container(str(tmp_path / 'data'), str(tmp_path / 'uploads'))
    yield c
    AppContainer.reset_instance()


@pytest.fixture
def client(container):
    app.config['TESTING'] = True
    with app.test_client() as c:
        yield c


def auth(user):
    return {'Authorization': f"Bearer {user['token']}"}


def register(client, name='Ana Cruz', email='ana@example.com', password='secret1'):
    r = client.post('/api/users', json={'name': name, 'email': email, 'password': password})
    assert r.status_code == 201, r.get_json()
    return r.get_json()


@pytest.fixture
def customer(client):
    return register(client)


@pytest.fixture
def other_customer(client):
    return register(client, name='Ben Reyes', email='ben@example.com')


@pytest.fixture
def admin(client, container):
    container.user_service.register('Admin', 'admin@example.com', 'adminpass', is_admin=True)
    r = client.post('/api/users/login', json={'email': 'admin@example.com', 'password': 'adminpass'})
    assert r.status_code == 200
    return r.get_json()


def make_product(container, name='Pan de sal', price=5.0, stock=5, category='popular'):
    return container.catalog_service.create_product({
        'name': name,
        'price': price,
        'stock': stock,
        'category': category,
        'imageUrl': '/uploads/pan.jpg',
    })


def order_body(*lines, total=None):
    """lines: (product, quantity)"""
    items = [{'product': {'id': p['id']}, 'quantity': q} for p, q in lines]
    if total is None:
        total = sum(p['price'] * q for p, q in lines)
    return {
        'items': items,
        'total': total,
        'shippingInfo': {'address': '12 Rizal St, Manila', 'contact': '0917 000 0000'},
    }


def place_order(client, user, *lines, headers=None):
    return client.post('/api/orders', json=order_body(*lines), headers={**auth(user), **(headers or {})})
