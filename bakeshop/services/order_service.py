# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Núcleo de la tienda: crear pedido → descontar stock → kardex → limpiar
# carrito, todo dentro de UNA unidad de trabajo.
#
# REGLAS:
# 1. Se valida el stock de TODOS los items antes de escribir nada
# 2. El descuento es condicional (stock >= cantidad) y deja una fila 'sale'
# 3. Si cualquier paso falla, no queda ningún cambio (rollback completo)
# 4. El stock se descuenta SOLO aquí; confirmar el pago no toca el stock
# 5. Cancelar un pedido devuelve el stock con filas 'return'
# ==============================================================================

import math
from typing import Any, Dict, List, Optional, Tuple

from bakeshop.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bakeshop.models.entities import (
    NotificationType,
    Order,
    OrderItem,
    OrderStatus,
    RelatedType,
    StockTransactionType,
    parse_enum,
    utc_now,
)
from bakeshop.performance_logger import profile_function
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import (
    ICartRepository,
    IOrderRepository,
    IPaymentRepository,
    IProductRepository,
    IUserRepository,
)
from bakeshop.services.audit_service import AuditService
from bakeshop.services.notification_service import NotificationService
from bakeshop.services.stock_service import StockService, to_positive_int


class OrderService:
    """
    Servicio para gestión de pedidos.

    Responsabilidades:
    - Crear pedidos de forma atómica e idempotente (Idempotency-Key)
    - Consultar pedidos (dueño o admin)
    - Cambiar estado (admin), con devolución de stock al cancelar
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        product_repo: IProductRepository,
        cart_repo: ICartRepository,
        stock_service: StockService,
        notification_service: NotificationService = None,
        audit_service: AuditService = None,
        user_repo: IUserRepository = None,
        payment_repo: IPaymentRepository = None
    ):
        """
        Inicializa el servicio de pedidos.

        Args:
            order_repo: Repositorio de pedidos
            product_repo: Repositorio de productos
            cart_repo: Repositorio de carritos
            stock_service: Servicio de kardex
            notification_service: Avisos al cliente (opcional)
            audit_service: Log de actividad (opcional)
            user_repo: Para mostrar el cliente en el listado admin (opcional)
            payment_repo: Para mostrar el estado del pago en el listado admin (opcional)
        """
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.cart_repo = cart_repo
        self.stock_service = stock_service
        self.notification_service = notification_service
        self.audit_service = audit_service
        self.user_repo = user_repo
        self.payment_repo = payment_repo

    # =========================================================================
    # VALIDACIONES
    # =========================================================================

    def _normalize_items(self, items: Any) -> List[Tuple[int, int]]:
        """
        Valida los items del body y une líneas repetidas del mismo producto.

        Args:
            items: [{product: {id}, quantity}] (se acepta también productId)

        Returns:
            Lista de (product_id, quantity) sin repetidos, en orden de llegada

        Raises:
            ValidationError: Lista vacía o items inválidos
        """
        if not isinstance(items, list) or not items:
            raise ValidationError('No order items')

        merged: Dict[int, int] = {}
        for raw in items:
            if not isinstance(raw, dict):
                raise ValidationError('Invalid order item')
            product = raw.get('product')
            product_id = product.get('id') if isinstance(product, dict) else raw.get('productId')
            try:
                product_id = int(product_id)
            except (TypeError, ValueError, OverflowError):
                raise ValidationError('Each item needs a product id')
            quantity = to_positive_int(raw.get('quantity'))
            if quantity is None:
                raise ValidationError('Each item needs a positive integer quantity')
            merged[product_id] = merged.get(product_id, 0) + quantity
        return list(merged.items())

    @staticmethod
    def _parse_total(total: Any) -> float:
        if isinstance(total, bool):
            raise ValidationError('Invalid total amount')
        try:
            value = round(float(total), 2)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Invalid total amount')
        if not math.isfinite(value) or value <= 0:
            raise ValidationError('Invalid total amount')
        return value

    @staticmethod
    def _parse_shipping(shipping_info: Any) -> str:
        if not isinstance(shipping_info, dict):
            raise ValidationError('Shipping information is required')
        address = str(shipping_info.get('address') or '').strip()
        contact = str(shipping_info.get('contact') or '').strip()
        if not address or not contact:
            raise ValidationError('Shipping address and contact are required')
        return f"{address}\nContact: {contact}"

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    @profile_function(name="Crear pedido")
    def create_order(
        self,
        user: Dict[str, Any],
        items: Any,
        total: Any,
        shipping_info: Any,
        idempotency_key: str = None
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Crea un pedido y descuenta stock de forma atómica.

        Args:
            user: Usuario autenticado
            items: [{product: {id}, quantity}]
            total: Total esperado (> 0)
            shipping_info: {address, contact}
            idempotency_key: Clave para no duplicar pedidos (opcional)

        Returns:
            Tupla (pedido, creado). creado=False si la clave ya existía.

        Raises:
            ValidationError: Body inválido
            NotFoundError: Algún producto no existe
            InsufficientStockError: Algún item supera el stock
        """
        lines = self._normalize_items(items)
        total_amount = self._parse_total(total)
        shipping_address = self._parse_shipping(shipping_info)
        key = (idempotency_key or '').strip() or None
        user_id = user['id']

        stores = (self.order_repo, self.product_repo, self.stock_service.stock_repo, self.cart_repo)
        with atomic(*stores):
            if key:
                existing = self.order_repo.find_by_idempotency_key(user_id, key)
                if existing:
                    return existing, False

            # 1. Validar TODO antes de escribir
            snapshot = []
            for product_id, quantity in lines:
                product = self.product_repo.get_product(product_id)
                if not product:
                    raise NotFoundError(f'Product {product_id} not found')
                available = int(product.get('stock', 0))
                if quantity > available:
                    raise InsufficientStockError(
                        f"Insufficient stock for {product.get('name')}. "
                        f"Available: {available}, Requested: {quantity}",
                        product_id,
                    )
                snapshot.append(OrderItem(
                    product_id=product['id'],
                    name=product.get('name', ''),
                    price=float(product.get('price', 0)),
                    quantity=quantity,
                ))

            # 2. Pedido
            order = Order(
                id=self.order_repo.next_id(),
                user_id=user_id,
                total_amount=total_amount,
                shipping_address=shipping_address,
                items=snapshot,
                idempotency_key=key,
            )
            self.order_repo.append(order.to_dict())

            # 3. Descuento condicional + kardex
            for item in snapshot:
                self.stock_service.apply_sale(
                    item.product_id,
                    item.quantity,
                    reference=f"Order #{order.id}",
                    notes=f"Order placed - Order #{order.id}",
                    user_id=user_id,
                )

            # 4. Limpiar del carrito lo que se pidió
            self.cart_repo.remove_products(user_id, [i.product_id for i in snapshot])

        return order.to_dict(), True

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def _get(self, order_id: Any) -> Dict[str, Any]:
        order = self.order_repo.get_order(order_id)
        if not order:
            raise NotFoundError('Order not found')
        return order

    def get_order(self, order_id: Any, requester: Dict[str, Any]) -> Dict[str, Any]:
        """
        Pedido normalizado para la página de pago.

        Returns:
            {id, total, status, shippingAddress, createdAt, items: [{name, price, quantity, productId, product}]}

        Raises:
            NotFoundError: No existe
            PermissionDeniedError: No es el dueño ni admin
        """
        order = self._get(order_id)
        if order.get('userId') != requester.get('id') and not requester.get('isAdmin'):
            raise PermissionDeniedError('Not authorized to view this order')

        return {
            'id': order['id'],
            'total': float(order.get('totalAmount', 0)),
            'status': order.get('status'),
            'shippingAddress': order.get('shippingAddress'),
            'trackingNumber': order.get('trackingNumber'),
            'createdAt': order.get('createdAt'),
            'items': [
                {
                    'productId': item['productId'],
                    'name': item.get('name') or 'Unknown',
                    'price': float(item.get('price', 0)),
                    'quantity': item.get('quantity'),
                    'product': self.product_repo.get_product(item['productId']),
                }
                for item in order.get('items', [])
            ],
        }

    def _decorate(self, order: Dict[str, Any]) -> Dict[str, Any]:
        """Agrega cliente y estado del último pago (como un JOIN)."""
        result = dict(order)
        user = self.user_repo.get_user(order.get('userId')) if self.user_repo else None
        result['user'] = {'id': user['id'], 'name': user.get('name')} if user else None
        payments = self.payment_repo.list_for_order(order['id']) if self.payment_repo else []
        result['paymentStatus'] = payments[0].get('status') if payments else None
        return result

    def list_orders(self) -> List[Dict[str, Any]]:
        """Todos los pedidos (admin), más recientes primero."""
        return [self._decorate(o) for o in self.order_repo.list_orders()]

    def list_user_orders(self, user_id: int) -> List[Dict[str, Any]]:
        return [self._decorate(o) for o in self.order_repo.list_for_user(user_id)]

    # =========================================================================
    # CAMBIOS DE ESTADO
    # =========================================================================

    def mark_processing(self, order_id: int) -> Optional[Dict[str, Any]]:
        """
        Pasa el pedido a Processing si sigue en Pending.
        Se llama desde la confirmación de pago, dentro de su atomic().

        Returns:
            Pedido (actualizado o no) o None si no existe
        """
        order = self.order_repo.get_order(order_id)
        if not order:
            return None
        if order.get('status') == OrderStatus.PENDING.value:
            order = self.order_repo.update_by_id(order['id'], {
                'status': OrderStatus.PROCESSING.value,
                'updatedAt': utc_now(),
            })
        return order

    def update_status(
        self,
        order_id: Any,
        status: Any,
        actor: Dict[str, Any] = None,
        tracking_number: str = None
    ) -> Dict[str, Any]:
        """
        Cambia el estado de un pedido (admin).

        Args:
            order_id: ID del pedido
            status: Pending, Processing, Shipped, Delivered, Cancelled
            actor: Admin
            tracking_number: Número de guía (opcional)

        Returns:
            Pedido actualizado

        Raises:
            ValidationError: Estado inválido
            NotFoundError: Pedido inexistente
            InvalidTransitionError: El pedido ya está entregado o cancelado
        """
        new_status = parse_enum(OrderStatus, status)
        if new_status is None:
            allowed = ', '.join(s.value for s in OrderStatus)
            raise ValidationError(f'Invalid status. Allowed: {allowed}')

        admin_id = (actor or {}).get('id')
        stores = (self.order_repo, self.product_repo, self.stock_service.stock_repo)
        if self.notification_service:
            stores += (self.notification_service.notification_repo,)

        with atomic(*stores):
            order = self._get(order_id)
            old_status = OrderStatus(order.get('status', OrderStatus.PENDING.value))
            if old_status.is_closed:
                raise InvalidTransitionError(f'Order is already {old_status.value}')

            updates = {'updatedAt': utc_now()}
            if tracking_number is not None:
                updates['trackingNumber'] = str(tracking_number).strip() or None
            if new_status != old_status:
                updates['status'] = new_status.value

            # Cancelar devuelve el stock de cada item
            if new_status == OrderStatus.CANCELLED and old_status != OrderStatus.CANCELLED:
                for item in order.get('items', []):
                    if not self.product_repo.get_product(item['productId']):
                        continue
                    self.stock_service.apply_movement(
                        item['productId'],
                        StockTransactionType.RETURN,
                        int(item['quantity']),
                        reference=f"Order #{order['id']}",
                        notes=f"Order cancelled - Order #{order['id']}",
                        admin_id=admin_id,
                    )

            updated = self.order_repo.update_by_id(order['id'], updates)

            if new_status != old_status and self.notification_service:
                self.notification_service.notify(
                    order['userId'],
                    f"Your order #{order['id']} is now {new_status.value}.",
                    NotificationType.ORDER_UPDATE,
                    order['id'],
                    RelatedType.ORDER,
                )

        if new_status != old_status and self.audit_service:
            self.audit_service.log_order_status(actor, updated, old_status.value, new_status.value)
        return updated
