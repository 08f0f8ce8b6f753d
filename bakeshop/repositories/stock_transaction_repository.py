# ==============================================================================
# REPOSITORIO DEL KARDEX DE STOCK
# ==============================================================================
# Encapsula todo el acceso a stock_transactions.json
# Solo se agregan filas: el kardex no se edita ni se borra.
# ==============================================================================

import os
from typing import Any, Dict, List

from bakeshop.repositories.base import ListRepository


class StockTransactionRepository(ListRepository):
    """
    Repositorio append-only de movimientos de stock.

    Formato de datos en stock_transactions.json:
    [
        {"id": 1, "productId": 1, "type": "sale", "quantity": 2,
         "previousStock": 5, "newStock": 3, "reference": "Order #1", ...}
    ]
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'stock_transactions.json')
        super().__init__(file_path)

    def list_transactions(self) -> List[Dict[str, Any]]:
        """Movimientos, más recientes primero."""
        return sorted(self.get_all(), key=lambda t: t.get('id', 0), reverse=True)

    def list_for_product(self, product_id: int) -> List[Dict[str, Any]]:
        """Movimientos de un producto en orden cronológico."""
        rows = self.find_all_by('productId', product_id)
        return sorted(rows, key=lambda t: t.get('id', 0))
