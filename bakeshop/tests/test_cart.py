import pytest

from conftest import auth, make_product


def test_add_merges_existing_line(client, container, customer):
    product = make_product(container, stock=5)

    first = client.post('/api/cart', json={'productId': product['id'], 'quantity': 2}, headers=auth(customer))
    assert first.status_code == 201
    second = client.post('/api/cart', json={'productId': product['id'], 'quantity': 1}, headers=auth(customer))

    cart = second.get_json()
    assert len(cart['items']) == 1
    assert cart['items'][0]['quantity'] == 3
    assert cart['totalItems'] == 3
    assert cart['totalAmount'] == 15.0


def test_add_cannot_exceed_stock(client, container, customer):
    product = make_product(container, stock=3)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 2}, headers=auth(customer))

    r = client.post('/api/cart', json={'productId': product['id'], 'quantity': 2}, headers=auth(customer))
    assert r.status_code == 400
    assert r.get_json()['message'] == 'Insufficient stock for Pan de sal. Available: 3, In cart: 2'


def test_add_validation(client, container, customer):
    product = make_product(container, stock=3)
    assert client.post('/api/cart', json={'productId': 999, 'quantity': 1},
                       headers=auth(customer)).status_code == 404
    assert client.post('/api/cart', json={'productId': product['id'], 'quantity': -1},
                       headers=auth(customer)).status_code == 400


def test_update_and_remove_lines(client, container, customer):
    bread = make_product(container, name='Pandesal', stock=10)
    cake = make_product(container, name='Ube cake', price=450, stock=2)
    for p in (bread, cake):
        client.post('/api/cart', json={'productId': p['id'], 'quantity': 1}, headers=auth(customer))

    r = client.put(f"/api/cart/{bread['id']}", json={'quantity': 4, 'selected': False}, headers=auth(customer))
    cart = r.get_json()
    line = next(i for i in cart['items'] if i['productId'] == bread['id'])
    assert line['quantity'] == 4
    assert line['selected'] is False
    # Solo las líneas seleccionadas suman al total
    assert cart['totalAmount'] == 450.0

    removed = client.put(f"/api/cart/{cake['id']}", json={'quantity': 0}, headers=auth(customer)).get_json()
    assert [i['productId'] for i in removed['items']] == [bread['id']]

    missing = client.delete(f"/api/cart/{cake['id']}", headers=auth(customer))
    assert missing.status_code == 404
    assert missing.get_json()['message'] == 'Item not in cart'

    client.delete('/api/cart', headers=auth(customer))
    assert client.get('/api/cart', headers=auth(customer)).get_json()['items'] == []


def test_lines_of_deleted_products_are_purged(client, container, customer, admin):
    product = make_product(container, stock=3)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 1}, headers=auth(customer))
    client.delete(f"/api/products/{product['id']}", headers=auth(admin))

    cart = client.get('/api/cart', headers=auth(customer)).get_json()
    assert cart['items'] == []
    assert container.cart_repo.get_items(customer['id']) == []


def test_carts_are_per_user(client, container, customer, other_customer):
    product = make_product(container, stock=3)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 1}, headers=auth(customer))
    assert client.get('/api/cart', headers=auth(other_customer)).get_json()['items'] == []


@pytest.mark.parametrize('body, message', [
    ({'quantity': 2.5}, 'Quantity must be an integer'),
    ({'quantity': True}, 'Quantity must be an integer'),
    ({'quantity': 'two'}, 'Quantity must be an integer'),
    ({'quantity': 2, 'selected': 'maybe'}, 'Selected must be true or false'),
    ({'quantity': 2, 'selected': 1}, 'Selected must be true or false'),
])
def test_update_line_validation(client, container, customer, body, message):
    product = make_product(container, stock=5)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 1}, headers=auth(customer))

    r = client.put(f"/api/cart/{product['id']}", json=body, headers=auth(customer))
    assert r.status_code == 400
    assert r.get_json()['message'] == message
    assert container.cart_repo.get_items(customer['id']) == [
        {'productId': product['id'], 'quantity': 1, 'selected': True}
    ]


def test_update_line_reads_selected_text(client, container, customer):
    product = make_product(container, stock=5)
    client.post('/api/cart', json={'productId': product['id'], 'quantity': 1}, headers=auth(customer))

    r = client.put(f"/api/cart/{product['id']}", json={'quantity': '3', 'selected': 'false'},
                   headers=auth(customer))
    line = r.get_json()['items'][0]
    assert (line['quantity'], line['selected']) == (3, False)
    assert r.get_json()['totalAmount'] == 0
