# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (archivos JSON).
#
# ESTRUCTURA:
# ├── interfaces.py                     → Protocolos (contratos)
# ├── base.py                           → DictRepository, ListRepository, atomic()
# ├── user_repository.py                → users.json
# ├── product_repository.py             → products.json
# ├── cart_repository.py                → carts.json
# ├── order_repository.py               → orders.json
# ├── payment_repository.py             → payments.json
# ├── stock_transaction_repository.py   → stock_transactions.json
# ├── notification_repository.py        → notifications.json
# └── log_repository.py                 → logs.json
# ==============================================================================

from bakeshop.repositories.interfaces import (
    IRepository,
    IUserRepository,
    IProductRepository,
    ICartRepository,
    IOrderRepository,
    IPaymentRepository,
    IStockTransactionRepository,
    INotificationRepository,
    ILogRepository,
)

from bakeshop.repositories.base import BaseRepository, DictRepository, ListRepository, atomic
from bakeshop.repositories.user_repository import UserRepository
from bakeshop.repositories.product_repository import ProductRepository
from bakeshop.repositories.cart_repository import CartRepository
from bakeshop.repositories.order_repository import OrderRepository
from bakeshop.repositories.payment_repository import PaymentRepository
from bakeshop.repositories.stock_transaction_repository import StockTransactionRepository
from bakeshop.repositories.notification_repository import NotificationRepository
from bakeshop.repositories.log_repository import LogRepository

__all__ = [
    # Interfaces
    'IRepository',
    'IUserRepository',
    'IProductRepository',
    'ICartRepository',
    'IOrderRepository',
    'IPaymentRepository',
    'IStockTransactionRepository',
    'INotificationRepository',
    'ILogRepository',

    # Clases base
    'BaseRepository',
    'DictRepository',
    'ListRepository',
    'atomic',

    # Implementaciones JSON
    'UserRepository',
    'ProductRepository',
    'CartRepository',
    'OrderRepository',
    'PaymentRepository',
    'StockTransactionRepository',
    'NotificationRepository',
    'LogRepository',
]
