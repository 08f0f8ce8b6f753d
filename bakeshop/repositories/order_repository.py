# ==============================================================================
# REPOSITORIO DE PEDIDOS
# ==============================================================================
# Encapsula todo el acceso a orders.json
# Los pedidos se almacenan como lista, con sus items embebidos.
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from bakeshop.repositories.base import ListRepository


class OrderRepository(ListRepository):
    """
    Repositorio de pedidos.

    Formato de datos en orders.json:
    [
        {"id": 1, "userId": 2, "totalAmount": 20.0, "status": "Pending",
         "shippingAddress": "...", "items": [{"productId": 1, "quantity": 2, ...}]}
    ]
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'orders.json')
        super().__init__(file_path)

    def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        return self.get_by_id(order_id)

    def list_orders(self) -> List[Dict[str, Any]]:
        """Pedidos, más recientes primero."""
        return sorted(self.get_all(), key=lambda o: o.get('id', 0), reverse=True)

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        orders = self.find_all_by('userId', user_id)
        return sorted(orders, key=lambda o: o.get('id', 0), reverse=True)

    def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Dict[str, Any]]:
        """
        Busca un pedido ya creado por el mismo usuario con la misma clave.

        Args:
            user_id: Dueño del pedido
            key: Valor del header Idempotency-Key

        Returns:
            Pedido existente o None
        """
        for order in self.get_all():
            if order.get('userId') == user_id and order.get('idempotencyKey') == key:
                return order
        return None
