# ==============================================================================
# SERVICIO DE CARRITO
# ==============================================================================
# Carrito persistente por usuario (carts.json).
# Una sola línea por producto: agregar un producto que ya está en el carrito
# suma la cantidad a la línea existente.
# ==============================================================================

from typing import Any, Dict, List

from bakeshop.errors import NotFoundError, ValidationError
from bakeshop.models.entities import CartItem
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import ICartRepository, IProductRepository
from bakeshop.services.stock_service import to_positive_int


def _parse_line_quantity(value: Any) -> int:
    """Entero (0 o negativo elimina la línea). Rechaza 2.5, True y textos."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError('Quantity must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('Quantity must be an integer')


def _parse_selected(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
        return value.strip().lower() == 'true'
    raise ValidationError('Selected must be true or false')


class CartService:
    """
    Servicio para gestión del carrito de compras.

    Responsabilidades:
    - Agregar/actualizar/eliminar líneas
    - Validar stock disponible
    - Calcular totales
    - Limpiar líneas de productos que ya no existen
    """

    def __init__(self, cart_repo: ICartRepository, product_repo: IProductRepository):
        """
        Inicializa el servicio de carrito.

        Args:
            cart_repo: Repositorio de carritos
            product_repo: Repositorio de productos
        """
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    def _load_items(self, user_id: int) -> List[CartItem]:
        return [CartItem.from_dict(i) for i in self.cart_repo.get_items(user_id)]

    def _save_items(self, user_id: int, items: List[CartItem]) -> None:
        self.cart_repo.save_items(user_id, [i.to_dict() for i in items])

    def get_cart(self, user_id: int) -> Dict[str, Any]:
        """
        Obtiene el carrito con los datos del producto y totales.
        Las líneas de productos eliminados se purgan y se guarda el carrito.

        Returns:
            Dict con items, totalItems, totalAmount
        """
        with atomic(self.cart_repo):
            items = self._load_items(user_id)
            lines = []
            kept = []
            for item in items:
                product = self.product_repo.get_product(item.product_id)
                if not product:
                    continue
                kept.append(item)
                line = item.to_dict()
                line['product'] = product
                line['subtotal'] = round(item.quantity * float(product.get('price', 0)), 2)
                lines.append(line)
            if len(kept) != len(items):
                self._save_items(user_id, kept)

        selected = [l for l in lines if l['selected']]
        return {
            'items': lines,
            'totalItems': sum(l['quantity'] for l in lines),
            'totalAmount': round(sum(l['subtotal'] for l in selected), 2),
        }

    def add_item(self, user_id: int, product_id: Any, quantity: Any = 1) -> Dict[str, Any]:
        """
        Agrega un producto al carrito (o suma a la línea existente).

        Args:
            user_id: Dueño del carrito
            product_id: ID del producto
            quantity: Cantidad a agregar (> 0)

        Returns:
            Carrito actualizado

        Raises:
            ValidationError: Cantidad inválida o supera el stock
            NotFoundError: Producto inexistente
        """
        qty = to_positive_int(1 if quantity is None else quantity)
        if qty is None:
            raise ValidationError('Quantity must be a positive integer')

        with atomic(self.cart_repo):
            product = self.product_repo.get_product(product_id)
            if not product:
                raise NotFoundError('Product not found')
            available = int(product.get('stock', 0))

            items = self._load_items(user_id)
            existing = next((i for i in items if i.product_id == product['id']), None)
            new_quantity = qty + (existing.quantity if existing else 0)
            if new_quantity > available:
                in_cart = existing.quantity if existing else 0
                raise ValidationError(
                    f"Insufficient stock for {product.get('name')}. "
                    f"Available: {available}, In cart: {in_cart}"
                )

            if existing:
                existing.quantity = new_quantity
            else:
                items.append(CartItem(product_id=product['id'], quantity=qty))
            self._save_items(user_id, items)

        return self.get_cart(user_id)

    def update_item(self, user_id: int, product_id: Any, quantity: Any, selected: Any = None) -> Dict[str, Any]:
        """
        Fija la cantidad de una línea. Cantidad <= 0 elimina la línea.

        Raises:
            NotFoundError: El producto no está en el carrito
            ValidationError: Cantidad inválida o supera el stock
        """
        qty = _parse_line_quantity(quantity)
        if selected is not None:
            selected = _parse_selected(selected)

        with atomic(self.cart_repo):
            items = self._load_items(user_id)
            line = next((i for i in items if str(i.product_id) == str(product_id)), None)
            if line is None:
                raise NotFoundError('Item not in cart')

            if qty <= 0:
                items.remove(line)
            else:
                product = self.product_repo.get_product(line.product_id)
                if product and qty > int(product.get('stock', 0)):
                    raise ValidationError(
                        f"Insufficient stock for {product.get('name')}. "
                        f"Available: {product.get('stock', 0)}"
                    )
                line.quantity = qty
                if selected is not None:
                    line.selected = selected
            self._save_items(user_id, items)

        return self.get_cart(user_id)

    def remove_item(self, user_id: int, product_id: Any) -> Dict[str, Any]:
        """
        Quita una línea del carrito.

        Raises:
            NotFoundError: El producto no está en el carrito
        """
        try:
            pid = int(product_id)
        except (TypeError, ValueError, OverflowError):
            raise NotFoundError('Item not in cart')
        if not self.cart_repo.remove_products(user_id, [pid]):
            raise NotFoundError('Item not in cart')
        return self.get_cart(user_id)

    def clear(self, user_id: int) -> None:
        self.cart_repo.save_items(user_id, [])
