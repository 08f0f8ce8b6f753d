# ==============================================================================
# SERVICIO DE KARDEX (MOVIMIENTOS DE STOCK)
# ==============================================================================
# Toda modificación de Product.stock pasa por aquí y deja exactamente una
# fila en el kardex con previousStock / newStock.
#
# CONVENCIÓN DE SIGNO:
#   stock_in, return                → suman
#   stock_out, sale, adjustment     → restan
#
# Los métodos apply_* NO abren unidad de trabajo: se llaman desde dentro de
# un atomic() del servicio que orquesta (pedidos, productos). record() es la
# operación pública que abre la suya.
# ==============================================================================

from typing import Any, Dict, List, Optional

from bakeshop.errors import InsufficientStockError, NotFoundError, ValidationError
from bakeshop.models.entities import StockTransaction, StockTransactionType, parse_enum
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import (
    IProductRepository,
    IStockTransactionRepository,
    IUserRepository,
)


def to_positive_int(value: Any) -> Optional[int]:
    """Entero > 0 o None (acepta "3", rechaza 2.5, True y negativos)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


class StockService:
    """
    Servicio del kardex de stock.

    Responsabilidades:
    - Aplicar movimientos con la convención de signo
    - Rechazar movimientos que dejarían stock negativo
    - Consultar y auditar (reconciliar) el kardex
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        stock_repo: IStockTransactionRepository,
        user_repo: IUserRepository = None
    ):
        """
        Args:
            product_repo: Repositorio de productos
            stock_repo: Repositorio del kardex
            user_repo: Repositorio de usuarios (para mostrar el admin)
        """
        self.product_repo = product_repo
        self.stock_repo = stock_repo
        self.user_repo = user_repo

    # =========================================================================
    # MOVIMIENTOS
    # =========================================================================

    def _append(
        self,
        product_id: int,
        tx_type: StockTransactionType,
        quantity: int,
        previous: int,
        new_stock: int,
        reference: str = None,
        notes: str = None,
        admin_id: int = None
    ) -> Dict[str, Any]:
        row = StockTransaction(
            id=self.stock_repo.next_id(),
            product_id=product_id,
            type=tx_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new_stock,
            reference=reference,
            notes=notes,
            admin_id=admin_id,
        )
        return self.stock_repo.append(row.to_dict())

    def apply_movement(
        self,
        product_id: int,
        tx_type: StockTransactionType,
        quantity: int,
        reference: str = None,
        notes: str = None,
        admin_id: int = None
    ) -> Dict[str, Any]:
        """
        Aplica un movimiento y agrega su fila al kardex.
        Debe llamarse dentro de un atomic() que incluya productos y kardex.

        Returns:
            Fila del kardex creada

        Raises:
            NotFoundError: Producto inexistente
            InsufficientStockError: El resultado sería negativo
        """
        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError('Product not found')
        previous = int(product.get('stock', 0))
        new_stock = previous + tx_type.sign * quantity
        if new_stock < 0:
            raise InsufficientStockError('Insufficient stock', product_id)
        self.product_repo.set_stock(product_id, new_stock)
        return self._append(product_id, tx_type, quantity, previous, new_stock,
                            reference, notes, admin_id)

    def apply_sale(
        self,
        product_id: int,
        quantity: int,
        reference: str,
        notes: str = None,
        user_id: int = None
    ) -> Dict[str, Any]:
        """
        Descuento condicional por venta (stock >= quantity) + fila 'sale'.

        Raises:
            NotFoundError: Producto inexistente
            InsufficientStockError: Stock insuficiente al momento del descuento
        """
        try:
            previous = self.product_repo.decrement_stock(product_id, quantity)
        except KeyError:
            raise NotFoundError('Product not found')
        return self._append(product_id, StockTransactionType.SALE, quantity,
                            previous, previous - quantity, reference, notes, user_id)

    def record(
        self,
        product_id: Any,
        tx_type: Any,
        quantity: Any,
        reference: str = None,
        notes: str = None,
        admin_id: int = None
    ) -> Dict[str, Any]:
        """
        Registra un movimiento manual (POST /api/stock-transactions).

        Args:
            product_id: ID del producto
            tx_type: stock_in, stock_out, adjustment, sale, return
            quantity: Cantidad positiva
            reference: Referencia libre (factura, pedido...)
            notes: Notas
            admin_id: Admin que registra

        Returns:
            Fila del kardex creada

        Raises:
            ValidationError / InsufficientStockError / NotFoundError
        """
        if product_id is None or tx_type is None or quantity is None:
            raise ValidationError('Please provide productId, type and quantity')
        movement = parse_enum(StockTransactionType, tx_type)
        if movement is None:
            raise ValidationError('Invalid transaction type')
        qty = to_positive_int(quantity)
        if qty is None:
            raise ValidationError('Quantity must be a positive integer')
        try:
            product_id = int(product_id)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Invalid productId')

        with atomic(self.product_repo, self.stock_repo):
            return self.apply_movement(product_id, movement, qty, reference, notes, admin_id)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def _decorate(self, row: Dict[str, Any], products: Dict[str, Any]) -> Dict[str, Any]:
        """Agrega producto y admin a la fila (como un JOIN)."""
        result = dict(row)
        product = products.get(str(row.get('productId')))
        result['product'] = (
            {'id': product['id'], 'name': product.get('name')} if product else None
        )
        admin = None
        if self.user_repo and row.get('adminId') is not None:
            user = self.user_repo.get_user(row['adminId'])
            if user:
                admin = {'id': user['id'], 'name': user.get('name')}
        result['admin'] = admin
        return result

    def list_transactions(self) -> List[Dict[str, Any]]:
        """Kardex completo, más reciente primero."""
        products = {str(p['id']): p for p in self.product_repo.list_products()}
        return [self._decorate(r, products) for r in self.stock_repo.list_transactions()]

    def list_for_product(self, product_id: Any) -> List[Dict[str, Any]]:
        """
        Kardex de un producto, más reciente primero.

        Raises:
            NotFoundError: Producto inexistente
        """
        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError('Product not found')
        products = {str(product['id']): product}
        rows = self.stock_repo.list_for_product(product['id'])
        return [self._decorate(r, products) for r in reversed(rows)]

    def reconcile(self, product_id: Any) -> Dict[str, Any]:
        """
        Recorre el kardex de un producto y verifica:
        - cada fila cumple newStock = previousStock ± quantity
        - cada fila empieza donde terminó la anterior
        - la última fila coincide con el stock actual

        Returns:
            {productId, currentStock, ledgerStock, transactions, consistent, issues}
        """
        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError('Product not found')

        rows = self.stock_repo.list_for_product(product['id'])
        issues = []
        expected_previous = 0
        for row in rows:
            movement = parse_enum(StockTransactionType, row.get('type'))
            if movement is None:
                issues.append(f"Transaction #{row.get('id')}: unknown type {row.get('type')}")
                continue
            if row.get('previousStock') != expected_previous:
                issues.append(
                    f"Transaction #{row.get('id')}: previousStock {row.get('previousStock')}"
                    f" does not follow {expected_previous}"
                )
            computed = row.get('previousStock', 0) + movement.sign * row.get('quantity', 0)
            if computed != row.get('newStock'):
                issues.append(
                    f"Transaction #{row.get('id')}: newStock {row.get('newStock')}"
                    f" should be {computed}"
                )
            expected_previous = row.get('newStock', 0)

        current = int(product.get('stock', 0))
        if expected_previous != current:
            issues.append(f"Ledger ends at {expected_previous} but product stock is {current}")

        return {
            'productId': product['id'],
            'currentStock': current,
            'ledgerStock': expected_previous,
            'transactions': len(rows),
            'consistent': not issues,
            'issues': issues,
        }
