from conftest import auth, make_product, place_order


def _paid_order(client, container, customer, admin, product, quantity):
    order = place_order(client, customer, (product, quantity)).get_json()['order']
    payment = client.post('/api/payments', json={'orderId': order['id'], 'amount': order['totalAmount']},
                          headers=auth(customer)).get_json()
    client.put(f"/api/payments/{payment['id']}/status", json={'status': 'confirmed'}, headers=auth(admin))
    return order


def test_stats_count_only_confirmed_revenue(client, container, customer, other_customer, admin):
    bread = make_product(container, name='Pandesal', price=5, stock=50)
    cake = make_product(container, name='Ube cake', price=450, stock=5)

    _paid_order(client, container, customer, admin, bread, 4)          # 20 confirmado
    pending = place_order(client, other_customer, (cake, 1)).get_json()['order']
    client.post('/api/payments', json={'orderId': pending['id'], 'amount': 450}, headers=auth(other_customer))
    cancelled = place_order(client, customer, (bread, 10)).get_json()['order']
    client.put(f"/api/orders/{cancelled['id']}/status", json={'status': 'Cancelled'}, headers=auth(admin))

    stats = client.get('/api/dashboard/stats', headers=auth(admin)).get_json()
    assert stats == {
        'totalRevenue': 20.0,
        'totalOrders': 3,
        'productsSold': 5,
        'totalCustomers': 2,
    }


def test_sales_chart(client, container, customer, admin):
    bread = make_product(container, price=5, stock=50)
    _paid_order(client, container, customer, admin, bread, 3)

    week = client.get('/api/dashboard/sales-chart?period=7d', headers=auth(admin)).get_json()
    assert week['labels'] == ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
    assert sum(week['data']) == 15.0

    month = client.get('/api/dashboard/sales-chart?period=30d', headers=auth(admin)).get_json()
    assert len(month['labels']) == 4
    assert month['data'][-1] == 15.0

    quarter = client.get('/api/dashboard/sales-chart?period=90d', headers=auth(admin)).get_json()
    assert quarter['data'] == [0.0, 0.0, 15.0]

    unknown = client.get('/api/dashboard/sales-chart?period=1y', headers=auth(admin)).get_json()
    assert unknown['data'] == [0] * 7


def test_products_chart_ranks_by_quantity(client, container, customer, admin):
    bread = make_product(container, name='Pandesal', stock=50)
    cake = make_product(container, name='Ube cake', stock=50)
    place_order(client, customer, (bread, 2))
    place_order(client, customer, (cake, 7))

    chart = client.get('/api/dashboard/products-chart', headers=auth(admin)).get_json()
    assert chart == {'labels': ['Ube cake', 'Pandesal'], 'data': [7, 2]}


def test_recent_activity_feed(client, container, admin):
    make_product(container, name='Pandesal')
    feed = client.get('/api/dashboard/activity?limit=1', headers=auth(admin)).get_json()
    assert len(feed) == 1
    assert feed[0]['action'] == 'create'
    assert feed[0]['type'] == 'product'
    assert feed[0]['message'] == 'create product: Pandesal'


def test_dashboard_is_admin_only(client, customer):
    assert client.get('/api/dashboard/stats', headers=auth(customer)).status_code == 403
