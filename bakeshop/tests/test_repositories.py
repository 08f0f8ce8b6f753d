import json
import os

import pytest

from bakeshop.repositories import (
    ICartRepository,
    ILogRepository,
    INotificationRepository,
    IOrderRepository,
    IPaymentRepository,
    IProductRepository,
    IStockTransactionRepository,
    IUserRepository,
    atomic,
)


def test_json_repositories_satisfy_interfaces(container):
    assert isinstance(container.user_repo, IUserRepository)
    assert isinstance(container.product_repo, IProductRepository)
    assert isinstance(container.cart_repo, ICartRepository)
    assert isinstance(container.order_repo, IOrderRepository)
    assert isinstance(container.payment_repo, IPaymentRepository)
    assert isinstance(container.stock_repo, IStockTransactionRepository)
    assert isinstance(container.notification_repo, INotificationRepository)
    assert isinstance(container.log_repo, ILogRepository)


def test_files_are_created_empty(container):
    container.order_repo
    container.product_repo
    with open(os.path.join(container.base_path, 'orders.json'), encoding='utf-8') as f:
        assert json.load(f) == []
    with open(os.path.join(container.base_path, 'products.json'), encoding='utf-8') as f:
        assert json.load(f) == {}


def test_corrupt_file_reads_as_empty(container):
    path = container.order_repo.file_path
    with open(path, 'w', encoding='utf-8') as f:
        f.write('{not json')
    assert container.order_repo.list_orders() == []


def test_atomic_restores_every_collection(container):
    container.product_repo.save_product({'id': 1, 'name': 'Pandesal', 'price': 5, 'stock': 4})
    container.cart_repo.save_items(7, [{'productId': 1, 'quantity': 1, 'selected': True}])

    with pytest.raises(ValueError):
        with atomic(container.product_repo, container.cart_repo):
            container.product_repo.set_stock(1, 0)
            container.cart_repo.save_items(7, [])
            raise ValueError('abort')

    assert container.product_repo.get_product(1)['stock'] == 4
    assert container.cart_repo.get_items(7) == [{'productId': 1, 'quantity': 1, 'selected': True}]


def test_atomic_keeps_changes_on_success(container):
    container.product_repo.save_product({'id': 1, 'name': 'Pandesal', 'price': 5, 'stock': 4})
    with atomic(container.product_repo):
        container.product_repo.decrement_stock(1, 3)
    assert container.product_repo.get_product(1)['stock'] == 1


def test_no_temp_files_left_behind(container):
    container.payment_repo.append({'id': 1, 'orderId': 1, 'status': 'pending'})
    leftovers = [n for n in os.listdir(container.base_path) if n.endswith('.tmp')]
    assert leftovers == []


def test_order_lookup_by_idempotency_key(container):
    container.order_repo.append({'id': 1, 'userId': 1, 'idempotencyKey': 'k1', 'createdAt': '2024-01-01'})
    container.order_repo.append({'id': 2, 'userId': 2, 'idempotencyKey': 'k1', 'createdAt': '2024-01-02'})
    assert container.order_repo.find_by_idempotency_key(2, 'k1')['id'] == 2
    assert container.order_repo.find_by_idempotency_key(3, 'k1') is None
