import pytest

from conftest import auth, make_product, place_order
from bakeshop.services.admin_service import ADMIN_TABS, AdminService


def test_tab_registry(client, admin):
    tabs = client.get('/api/admin/tabs', headers=auth(admin)).get_json()
    assert [t['name'] for t in tabs] == [
        'inventory', 'orders', 'payments', 'customers', 'logs', 'transactions'
    ]
    assert tabs[0]['filterField'] == 'category'


def test_pagination(client, container, admin):
    for i in range(25):
        make_product(container, name=f'Bread {i:02d}')

    first = client.get('/api/admin/tabs/inventory?perPage=10', headers=auth(admin)).get_json()
    assert (first['page'], first['perPage'], first['total'], first['totalPages']) == (1, 10, 25, 3)
    assert len(first['items']) == 10

    last = client.get('/api/admin/tabs/inventory?perPage=10&page=3', headers=auth(admin)).get_json()
    assert len(last['items']) == 5

    beyond = client.get('/api/admin/tabs/inventory?perPage=10&page=9', headers=auth(admin)).get_json()
    assert beyond['items'] == []

    capped = client.get('/api/admin/tabs/inventory?perPage=1000', headers=auth(admin)).get_json()
    assert capped['perPage'] == 100


def test_search_and_filter(client, container, admin):
    make_product(container, name='Ube roll', category='best-seller')
    make_product(container, name='Cheese roll', category='popular')
    make_product(container, name='Ensaymada', category='best-seller')

    rolls = client.get('/api/admin/tabs/inventory?q=roll', headers=auth(admin)).get_json()
    assert rolls['total'] == 2

    best = client.get('/api/admin/tabs/inventory?filter=best-seller&q=roll', headers=auth(admin)).get_json()
    assert [p['name'] for p in best['items']] == ['Ube roll']

    everything = client.get('/api/admin/tabs/inventory?filter=all', headers=auth(admin)).get_json()
    assert everything['total'] == 3


def test_orders_tab_searches_customer_name(client, container, customer, admin):
    product = make_product(container, stock=5)
    place_order(client, customer, (product, 1))

    page = client.get('/api/admin/tabs/orders', query_string={'q': 'ana cruz', 'filter': 'Pending'},
                      headers=auth(admin)).get_json()
    assert page['total'] == 1
    assert client.get('/api/admin/tabs/orders?filter=Shipped', headers=auth(admin)).get_json()['total'] == 0


def test_customers_tab_hides_admins(client, customer, admin):
    page = client.get('/api/admin/tabs/customers', headers=auth(admin)).get_json()
    assert [u['email'] for u in page['items']] == ['ana@example.com']


def test_unknown_tab_and_permissions(client, customer, admin):
    assert client.get('/api/admin/tabs/settings', headers=auth(admin)).status_code == 404
    assert client.get('/api/admin/tabs/orders', headers=auth(customer)).status_code == 403


def test_every_tab_needs_a_loader():
    loaders = {name: list for name in ADMIN_TABS}
    loaders.pop('logs')
    with pytest.raises(ValueError):
        AdminService(loaders)
