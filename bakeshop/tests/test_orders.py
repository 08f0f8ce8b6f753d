import pytest

from conftest import auth, make_product, order_body, place_order
from bakeshop.errors import InsufficientStockError


def test_order_decrements_stock_and_writes_sale_row(client, container, customer):
    product = make_product(container, stock=5)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 2}, headers=auth(customer))

    r = place_order(client, customer, (product, 2))
    assert r.status_code == 201
    order = r.get_json()['order']
    assert order['status'] == 'Pending'
    assert order['paymentMethod'] == 'GCash'
    assert order['shippingAddress'] == '12 Rizal St, Manila\nContact: 0917 000 0000'
    assert order['items'] == [{'productId': product['id'], 'name': 'Pan de sal', 'price': 5.0, 'quantity': 2}]

    assert container.product_repo.get_product(product['id'])['stock'] == 3

    rows = container.stock_repo.list_for_product(product['id'])
    assert [r['type'] for r in rows] == ['stock_in', 'sale']
    sale = rows[-1]
    assert (sale['previousStock'], sale['newStock'], sale['quantity']) == (5, 3, 2)
    assert sale['reference'] == f"Order #{order['id']}"

    # La línea pedida sale del carrito
    cart = client.get('/api/cart', headers=auth(customer)).get_json()
    assert cart['items'] == []


def test_insufficient_stock_writes_nothing(client, container, customer):
    product = make_product(container, stock=3)
    rows_before = container.stock_repo.list_transactions()

    r = place_order(client, customer, (product, 4))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'Insufficient stock for Pan de sal. Available: 3, Requested: 4'

    assert container.order_repo.list_orders() == []
    assert container.product_repo.get_product(product['id'])['stock'] == 3
    assert container.stock_repo.list_transactions() == rows_before
    assert container.notification_repo.get_all() == []


def test_one_short_item_rejects_whole_order(client, container, customer):
    bread = make_product(container, name='Pandesal', stock=10)
    cake = make_product(container, name='Ube cake', price=450, stock=1)

    r = place_order(client, customer, (bread, 3), (cake, 2))
    assert r.status_code == 400
    assert 'Ube cake' in r.get_json()['message']
    assert container.product_repo.get_product(bread['id'])['stock'] == 10
    assert container.order_repo.list_orders() == []


def test_failure_inside_unit_of_work_rolls_back(container, customer, monkeypatch):
    product = make_product(container, stock=5)
    ledger_before = container.stock_repo.list_transactions()

    def boom(*args, **kwargs):
        raise RuntimeError('disk full')

    monkeypatch.setattr(container.cart_repo, 'remove_products', boom)

    with pytest.raises(RuntimeError):
        container.order_service.create_order(
            customer, order_body((product, 2))['items'], 10,
            {'address': 'Somewhere', 'contact': '123'}
        )

    assert container.order_repo.list_orders() == []
    assert container.product_repo.get_product(product['id'])['stock'] == 5
    assert container.stock_repo.list_transactions() == ledger_before


def test_conditional_decrement_refuses_negative_stock(container):
    product = make_product(container, stock=2)
    with pytest.raises(InsufficientStockError):
        container.product_repo.decrement_stock(product['id'], 3)
    assert container.product_repo.get_product(product['id'])['stock'] == 2


def test_idempotency_key_returns_existing_order(client, container, customer):
    product = make_product(container, stock=5)
    headers = {'Idempotency-Key': 'checkout-42'}

    first = place_order(client, customer, (product, 2), headers=headers)
    second = place_order(client, customer, (product, 2), headers=headers)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.get_json()['order']['id'] == second.get_json()['order']['id']
    assert len(container.order_repo.list_orders()) == 1
    assert container.product_repo.get_product(product['id'])['stock'] == 3


def test_duplicate_lines_are_merged(client, container, customer):
    product = make_product(container, stock=5)
    r = place_order(client, customer, (product, 1), (product, 2))
    assert r.status_code == 201
    assert r.get_json()['order']['items'][0]['quantity'] == 3
    assert container.product_repo.get_product(product['id'])['stock'] == 2


@pytest.mark.parametrize('body, message', [
    ({'items': [], 'total': 10, 'shippingInfo': {'address': 'a', 'contact': 'b'}}, 'No order items'),
    ({'items': [{'product': {'id': 1}, 'quantity': 0}], 'total': 10,
      'shippingInfo': {'address': 'a', 'contact': 'b'}}, 'Each item needs a positive integer quantity'),
    ({'items': [{'product': {'id': 1}, 'quantity': 1}], 'total': 0,
      'shippingInfo': {'address': 'a', 'contact': 'b'}}, 'Invalid total amount'),
    ({'items': [{'product': {'id': 1}, 'quantity': 1}], 'total': 'Infinity',
      'shippingInfo': {'address': 'a', 'contact': 'b'}}, 'Invalid total amount'),
    ({'items': [{'product': {'id': 1}, 'quantity': 1}], 'total': 'nan',
      'shippingInfo': {'address': 'a', 'contact': 'b'}}, 'Invalid total amount'),
    ({'items': [{'product': {'id': 1}, 'quantity': 1}], 'total': 10,
      'shippingInfo': {'address': 'a'}}, 'Shipping address and contact are required'),
])
def test_invalid_order_body(client, container, customer, body, message):
    make_product(container, stock=5)
    r = client.post('/api/orders', json=body, headers=auth(customer))
    assert r.status_code == 400
    assert r.get_json()['message'] == message


def test_non_finite_literals_are_rejected(client, container, customer):
    product = make_product(container, stock=5)
    raw = (
        '{"items": [{"product": {"id": %d}, "quantity": 1}], "total": Infinity,'
        ' "shippingInfo": {"address": "a", "contact": "b"}}' % product['id']
    )
    r = client.post('/api/orders', data=raw, content_type='application/json', headers=auth(customer))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'Invalid total amount'

    bad_id = raw.replace('"id": %d' % product['id'], '"id": Infinity').replace('Infinity,', '5,')
    r = client.post('/api/orders', data=bad_id, content_type='application/json', headers=auth(customer))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'Each item needs a product id'

    assert container.order_repo.list_orders() == []
    assert container.product_repo.get_product(product['id'])['stock'] == 5


def test_unknown_product_is_404(client, container, customer):
    r = client.post('/api/orders', json={
        'items': [{'product': {'id': 99}, 'quantity': 1}],
        'total': 5,
        'shippingInfo': {'address': 'a', 'contact': 'b'},
    }, headers=auth(customer))
    assert r.status_code == 404


def test_get_order_is_idempotent_and_owner_only(client, container, customer, other_customer, admin):
    product = make_product(container, stock=5)
    order_id = place_order(client, customer, (product, 1)).get_json()['order']['id']

    first = client.get(f'/api/orders/{order_id}', headers=auth(customer))
    second = client.get(f'/api/orders/{order_id}', headers=auth(customer))
    assert first.status_code == 200
    assert first.get_json() == second.get_json()
    assert first.get_json()['total'] == 5.0
    assert first.get_json()['items'][0]['name'] == 'Pan de sal'

    r = client.get(f'/api/orders/{order_id}', headers=auth(other_customer))
    assert r.status_code == 403
    assert r.get_json()['message'] == 'Not authorized to view this order'

    assert client.get(f'/api/orders/{order_id}', headers=auth(admin)).status_code == 200
    assert client.get('/api/orders/999', headers=auth(customer)).status_code == 404


def test_my_orders_only_lists_own(client, container, customer, other_customer):
    product = make_product(container, stock=5)
    place_order(client, customer, (product, 1))
    place_order(client, other_customer, (product, 1))

    mine = client.get('/api/orders/mine', headers=auth(customer)).get_json()
    assert len(mine) == 1
    assert mine[0]['userId'] == customer['id']


def test_admin_order_list_joins_user_and_payment(client, container, customer, admin):
    product = make_product(container, stock=5)
    place_order(client, customer, (product, 1))

    orders = client.get('/api/orders', headers=auth(admin)).get_json()
    assert orders[0]['user']['name'] == 'Ana Cruz'
    assert 'paymentStatus' in orders[0]


def test_cancel_restocks_with_return_rows(client, container, customer, admin):
    product = make_product(container, stock=5)
    order_id = place_order(client, customer, (product, 2)).get_json()['order']['id']

    r = client.put(f'/api/orders/{order_id}/status', json={'status': 'Cancelled'}, headers=auth(admin))
    assert r.status_code == 200
    assert r.get_json()['status'] == 'Cancelled'
    assert container.product_repo.get_product(product['id'])['stock'] == 5

    last = container.stock_repo.list_for_product(product['id'])[-1]
    assert (last['type'], last['previousStock'], last['newStock']) == ('return', 3, 5)

    notes = container.notification_repo.list_for_user(customer['id'])
    assert notes[0]['type'] == 'order_update'
    assert notes[0]['message'] == f'Your order #{order_id} is now Cancelled.'

    again = client.put(f'/api/orders/{order_id}/status', json={'status': 'Processing'}, headers=auth(admin))
    assert again.status_code == 400
    assert again.get_json()['message'] == 'Order is already Cancelled'
    assert container.product_repo.get_product(product['id'])['stock'] == 5


def test_status_update_validates_and_tracks(client, container, customer, admin):
    product = make_product(container, stock=5)
    order_id = place_order(client, customer, (product, 1)).get_json()['order']['id']

    bad = client.put(f'/api/orders/{order_id}/status', json={'status': 'Lost'}, headers=auth(admin))
    assert bad.status_code == 400

    r = client.put(f'/api/orders/{order_id}/status',
                   json={'status': 'Shipped', 'trackingNumber': 'LBC-123'}, headers=auth(admin))
    assert r.get_json()['trackingNumber'] == 'LBC-123'
    assert container.log_repo.load()[0]['entityType'] == 'order'

    forbidden = client.put(f'/api/orders/{order_id}/status', json={'status': 'Delivered'},
                           headers=auth(customer))
    assert forbidden.status_code == 403
