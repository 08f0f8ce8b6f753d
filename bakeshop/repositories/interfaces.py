# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos (protocolos) que cumple cada repositorio. Los servicios dependen
# de estas interfaces, no de la implementación JSON:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Cambiar JSON → base relacional solo requiere nuevas implementaciones
#
# 2. TESTING
#    - Se pueden pasar dobles de prueba que implementen estas interfaces
#
# MIGRACIÓN A BASE RELACIONAL:
# 1. Crear SqlProductRepository, SqlOrderRepository, etc.
# 2. Implementar estas interfaces (snapshot/restore pasan a ser la transacción)
# 3. Cambiar instanciación en app_container.py
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


# ==============================================================================
# INTERFACES BASE
# ==============================================================================

@runtime_checkable
class IRepository(Protocol):
    """Operaciones mínimas de cualquier repositorio."""

    def reload(self) -> None:
        ...

    def snapshot(self) -> Any:
        """Estado actual, para deshacer una unidad de trabajo."""
        ...

    def restore(self, data: Any) -> None:
        ...


# ==============================================================================
# INTERFACES POR COLECCIÓN
# ==============================================================================

@runtime_checkable
class IUserRepository(IRepository, Protocol):

    def list_users(self) -> List[Dict[str, Any]]:
        ...

    def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        ...

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class IProductRepository(IRepository, Protocol):

    def list_products(self) -> List[Dict[str, Any]]:
        ...

    def get_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def save_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def delete_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def set_stock(self, product_id: int, new_stock: int) -> Dict[str, Any]:
        ...

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """Descuento condicional; lanza InsufficientStockError si no alcanza."""
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class ICartRepository(IRepository, Protocol):

    def get_items(self, user_id: int) -> List[Dict[str, Any]]:
        ...

    def save_items(self, user_id: int, items: List[Dict[str, Any]]) -> None:
        ...

    def remove_products(self, user_id: int, product_ids) -> int:
        ...


@runtime_checkable
class IOrderRepository(IRepository, Protocol):

    def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def list_orders(self) -> List[Dict[str, Any]]:
        ...

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        ...

    def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Dict[str, Any]]:
        ...

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update_by_id(self, record_id: int, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class IPaymentRepository(IRepository, Protocol):

    def get_payment(self, payment_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def list_payments(self) -> List[Dict[str, Any]]:
        ...

    def list_for_order(self, order_id: int) -> List[Dict[str, Any]]:
        ...

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def update_by_id(self, record_id: int, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class IStockTransactionRepository(IRepository, Protocol):

    def list_transactions(self) -> List[Dict[str, Any]]:
        ...

    def list_for_product(self, product_id: int) -> List[Dict[str, Any]]:
        ...

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class INotificationRepository(IRepository, Protocol):

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        ...

    def update_by_id(self, record_id: int, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def list_for_user(self, user_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        ...

    def mark_all_read(self, user_id: int) -> int:
        ...

    def unread_count(self, user_id: int) -> int:
        ...

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def next_id(self) -> int:
        ...


@runtime_checkable
class ILogRepository(IRepository, Protocol):

    def load(self, limit: int = None) -> List[Dict[str, Any]]:
        ...

    def log(self, record: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def clear(self) -> int:
        ...
