# ==============================================================================
# REPOSITORIO DE CARRITOS
# ==============================================================================
# Encapsula todo el acceso a carts.json
# Un carrito por usuario: {"<userId>": [{productId, quantity, selected}, ...]}
# ==============================================================================

import os
from typing import Any, Dict, List

from bakeshop.repositories.base import DictRepository


class CartRepository(DictRepository):
    """Repositorio de carritos, indexado por ID de usuario."""

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'carts.json')
        super().__init__(file_path)

    def get_items(self, user_id: int) -> List[Dict[str, Any]]:
        """
        Obtiene las líneas del carrito de un usuario.

        Returns:
            Lista de líneas (vacía si el usuario no tiene carrito)
        """
        items = self.get_by_id(user_id)
        return items if isinstance(items, list) else []

    def save_items(self, user_id: int, items: List[Dict[str, Any]]) -> None:
        self.update(user_id, items)

    def remove_products(self, user_id: int, product_ids) -> int:
        """
        Quita del carrito las líneas de los productos indicados.

        Returns:
            Cantidad de líneas eliminadas
        """
        wanted = {int(pid) for pid in product_ids}
        with self._file_lock:
            items = self.get_items(user_id)
            kept = [i for i in items if int(i.get('productId')) not in wanted]
            removed = len(items) - len(kept)
            if removed:
                self.save_items(user_id, kept)
            return removed
