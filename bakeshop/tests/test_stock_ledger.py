import pytest

from conftest import auth, make_product, place_order


@pytest.mark.parametrize('tx_type, quantity, expected', [
    ('stock_in', 4, 14),
    ('return', 2, 12),
    ('stock_out', 3, 7),
    ('sale', 1, 9),
    ('adjustment', 5, 5),
])
def test_sign_convention(client, container, admin, tx_type, quantity, expected):
    product = make_product(container, stock=10)
    r = client.post('/api/stock-transactions', json={
        'productId': product['id'], 'type': tx_type, 'quantity': quantity, 'reference': 'INV-1',
    }, headers=auth(admin))
    assert r.status_code == 201
    row = r.get_json()
    assert (row['previousStock'], row['newStock']) == (10, expected)
    assert row['adminId'] == admin['id']
    assert container.product_repo.get_product(product['id'])['stock'] == expected


def test_movement_cannot_go_negative(client, container, admin):
    product = make_product(container, stock=2)
    r = client.post('/api/stock-transactions', json={
        'productId': product['id'], 'type': 'stock_out', 'quantity': 3,
    }, headers=auth(admin))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'Insufficient stock'
    assert container.product_repo.get_product(product['id'])['stock'] == 2
    assert len(container.stock_repo.list_for_product(product['id'])) == 1


@pytest.mark.parametrize('body', [
    {'type': 'stock_in', 'quantity': 1},
    {'productId': 1, 'type': 'gift', 'quantity': 1},
    {'productId': 1, 'type': 'stock_in', 'quantity': 0},
    {'productId': 1, 'type': 'stock_in', 'quantity': 1.5},
])
def test_invalid_movement(client, container, admin, body):
    make_product(container, stock=2)
    r = client.post('/api/stock-transactions', json=body, headers=auth(admin))
    assert r.status_code == 400


def test_every_stock_change_has_a_ledger_row(client, container, customer, admin):
    product = make_product(container, stock=5)
    pid = product['id']

    client.put(f'/api/products/{pid}', json={'stock': 8}, headers=auth(admin))
    order_id = place_order(client, customer, (product, 3)).get_json()['order']['id']
    client.put(f'/api/orders/{order_id}/status', json={'status': 'Cancelled'}, headers=auth(admin))
    client.post('/api/stock-transactions', json={'productId': pid, 'type': 'adjustment', 'quantity': 1},
                headers=auth(admin))

    rows = container.stock_repo.list_for_product(pid)
    assert [r['type'] for r in rows] == ['stock_in', 'stock_in', 'sale', 'return', 'adjustment']
    for prev, row in zip(rows, rows[1:]):
        assert row['previousStock'] == prev['newStock']
    assert rows[-1]['newStock'] == container.product_repo.get_product(pid)['stock'] == 7

    report = client.get(f'/api/stock-transactions/product/{pid}/reconcile', headers=auth(admin)).get_json()
    assert report['consistent'] is True
    assert report['issues'] == []
    assert report['ledgerStock'] == report['currentStock'] == 7
    assert report['transactions'] == 5


def test_reconcile_detects_drift(client, container, admin):
    product = make_product(container, stock=5)
    # Cambio directo al almacenamiento, sin kardex
    container.product_repo.set_stock(product['id'], 9)

    report = container.stock_service.reconcile(product['id'])
    assert report['consistent'] is False
    assert report['ledgerStock'] == 5
    assert report['currentStock'] == 9
    assert report['issues'] == ['Ledger ends at 5 but product stock is 9']


def test_ledger_listings(client, container, admin):
    product = make_product(container, stock=5)
    client.post('/api/stock-transactions', json={'productId': product['id'], 'type': 'stock_in', 'quantity': 2},
                headers=auth(admin))

    all_rows = client.get('/api/stock-transactions', headers=auth(admin)).get_json()
    assert all_rows[0]['quantity'] == 2
    assert all_rows[0]['product'] == {'id': product['id'], 'name': 'Pan de sal'}
    assert all_rows[0]['admin']['name'] == 'Admin'

    per_product = client.get(f"/api/stock-transactions/product/{product['id']}", headers=auth(admin))
    assert [r['newStock'] for r in per_product.get_json()] == [7, 5]

    missing = client.get('/api/stock-transactions/product/999', headers=auth(admin))
    assert missing.status_code == 404
