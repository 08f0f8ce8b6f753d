# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula todo el acceso a products.json
# Los productos se almacenan como diccionario: {"<id>": {...}}
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from bakeshop.errors import InsufficientStockError
from bakeshop.models.entities import utc_now
from bakeshop.repositories.base import DictRepository


class ProductRepository(DictRepository):
    """
    Repositorio del catálogo.

    Formato de datos en products.json:
    {
        "1": {"id": 1, "name": "Pandesal", "price": 5.0, "stock": 40,
              "category": "popular", "description": "", "imageUrl": "..."}
    }
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'products.json')
        super().__init__(file_path)

    def list_products(self) -> List[Dict[str, Any]]:
        """Productos ordenados por ID."""
        return sorted(self.get_all().values(), key=lambda p: p.get('id', 0))

    def get_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        return self.get_by_id(product_id)

    def save_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        """Crea o reemplaza un producto completo."""
        self.update(product['id'], product)
        return product

    def delete_product(self, product_id: Any) -> Optional[Dict[str, Any]]:
        return self.delete(product_id)

    # =========================================================================
    # STOCK
    # =========================================================================

    def set_stock(self, product_id: int, new_stock: int) -> Dict[str, Any]:
        """
        Fija el stock de un producto.

        Args:
            product_id: ID del producto
            new_stock: Nuevo stock (>= 0)

        Returns:
            Producto actualizado

        Raises:
            KeyError: Si el producto no existe
            InsufficientStockError: Si new_stock es negativo
        """
        if new_stock < 0:
            raise InsufficientStockError('Insufficient stock', product_id)
        with self._file_lock:
            data = self.get_all()
            product = data.get(str(product_id))
            if product is None:
                raise KeyError(product_id)
            product['stock'] = int(new_stock)
            product['updatedAt'] = utc_now()
            self._write_raw(data)
            return product

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """
        Descuento condicional: solo descuenta si stock >= quantity.
        Equivale a UPDATE ... SET stock = stock - q WHERE stock >= q.

        Returns:
            Stock previo al descuento

        Raises:
            KeyError: Si el producto no existe
            InsufficientStockError: Si no hay stock suficiente
        """
        with self._file_lock:
            data = self.get_all()
            product = data.get(str(product_id))
            if product is None:
                raise KeyError(product_id)
            previous = int(product.get('stock', 0))
            if previous < quantity:
                raise InsufficientStockError(
                    f"Insufficient stock for {product.get('name')}. "
                    f"Available: {previous}, Requested: {quantity}",
                    product_id,
                )
            product['stock'] = previous - quantity
            product['updatedAt'] = utc_now()
            self._write_raw(data)
            return previous
