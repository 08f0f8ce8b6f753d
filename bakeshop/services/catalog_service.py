# ==============================================================================
# SERVICIO DE CATÁLOGO
# ==============================================================================
# Productos de la panadería: consulta pública y CRUD del administrador.
# Los cambios de stock hechos desde el CRUD pasan por el kardex
# (StockService) para que cada modificación tenga su fila.
# ==============================================================================

import math
from typing import Any, Dict, List, Optional

from bakeshop.errors import NotFoundError, ValidationError
from bakeshop.models.entities import Product, ProductCategory, StockTransactionType, parse_enum, utc_now
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import IProductRepository
from bakeshop.services.audit_service import AuditService
from bakeshop.services.stock_service import StockService


def _parse_price(value: Any) -> float:
    try:
        price = round(float(value), 2)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('Price must be a number')
    if not math.isfinite(price):
        raise ValidationError('Price must be a number')
    if price <= 0:
        raise ValidationError('Price must be greater than 0')
    return price


def _parse_stock(value: Any) -> int:
    if value is None or value == '':
        return 0
    if isinstance(value, bool):
        raise ValidationError('Stock must be a non-negative integer')
    try:
        stock = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError('Stock must be a non-negative integer')
    if stock < 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError('Stock must be a non-negative integer')
    return stock


def _parse_text(value: Any, label: str) -> str:
    """Texto recortado. None es vacío; números u objetos no se aceptan."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{label} must be text')
    return value.strip()


def _parse_category(value: Any) -> ProductCategory:
    if value is None or value == '':
        return ProductCategory.POPULAR
    category = parse_enum(ProductCategory, str(value).strip().lower())
    if category is None:
        allowed = ', '.join(c.value for c in ProductCategory)
        raise ValidationError(f'Invalid category. Allowed: {allowed}')
    return category


class CatalogService:
    """
    Servicio del catálogo de productos.

    Responsabilidades:
    - Listar y filtrar productos (público)
    - Crear, editar y eliminar productos (admin)
    - Registrar en el kardex los cambios de stock del CRUD
    - Registrar cada acción en el log de actividad
    """

    def __init__(
        self,
        product_repo: IProductRepository,
        stock_service: StockService,
        audit_service: AuditService = None
    ):
        """
        Args:
            product_repo: Repositorio de productos
            stock_service: Servicio de kardex
            audit_service: Servicio de auditoría (opcional)
        """
        self.product_repo = product_repo
        self.stock_service = stock_service
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_products(self, category: str = None, search: str = None) -> List[Dict[str, Any]]:
        """
        Lista productos con filtros opcionales.

        Args:
            category: popular, best-seller, main-product
            search: Texto a buscar en nombre y descripción
        """
        products = self.product_repo.list_products()
        if category:
            wanted = category.strip().lower()
            products = [p for p in products if p.get('category') == wanted]
        if search:
            term = search.strip().lower()
            products = [
                p for p in products
                if term in (p.get('name') or '').lower()
                or term in (p.get('description') or '').lower()
            ]
        return products

    def get_product(self, product_id: Any) -> Dict[str, Any]:
        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError('Product not found')
        return product

    # =========================================================================
    # CRUD (ADMIN)
    # =========================================================================

    def create_product(
        self,
        data: Dict[str, Any],
        actor: Dict[str, Any] = None,
        image_url: str = None
    ) -> Dict[str, Any]:
        """
        Crea un producto. El stock inicial entra al kardex como stock_in.

        Args:
            data: {name, price, description?, category?, stock?, imageUrl?}
            actor: Admin que crea
            image_url: URL de la imagen subida (tiene prioridad sobre data['imageUrl'])

        Returns:
            Producto creado

        Raises:
            ValidationError: Campos faltantes o inválidos
        """
        name = _parse_text(data.get('name'), 'Name')
        image = image_url or _parse_text(data.get('imageUrl'), 'Image URL')
        description = _parse_text(data.get('description'), 'Description')
        if not name or data.get('price') in (None, '') or not image:
            raise ValidationError('Please provide name, price and image')

        price = _parse_price(data.get('price'))
        stock = _parse_stock(data.get('stock'))
        category = _parse_category(data.get('category'))
        admin_id = (actor or {}).get('id')

        with atomic(self.product_repo, self.stock_service.stock_repo):
            product = Product(
                id=self.product_repo.next_id(),
                name=name,
                price=price,
                stock=0,
                category=category,
                description=description,
                image_url=image,
            )
            self.product_repo.save_product(product.to_dict())
            if stock > 0:
                self.stock_service.apply_movement(
                    product.id, StockTransactionType.STOCK_IN, stock,
                    reference='Product created', notes='Initial stock', admin_id=admin_id
                )
            created = self.product_repo.get_product(product.id)

        if self.audit_service:
            self.audit_service.log_product_created(actor, created)
        return created

    def update_product(
        self,
        product_id: Any,
        data: Dict[str, Any],
        actor: Dict[str, Any] = None,
        image_url: str = None
    ) -> Dict[str, Any]:
        """
        Actualización parcial. Un cambio de stock genera stock_in o stock_out.

        Returns:
            Producto actualizado

        Raises:
            NotFoundError: Producto inexistente
            ValidationError: Valores inválidos
        """
        admin_id = (actor or {}).get('id')

        with atomic(self.product_repo, self.stock_service.stock_repo):
            product = self.get_product(product_id)
            before = dict(product)
            updated = dict(product)

            if 'name' in data:
                name = _parse_text(data.get('name'), 'Name')
                if not name:
                    raise ValidationError('Name cannot be empty')
                updated['name'] = name
            if 'price' in data:
                updated['price'] = _parse_price(data.get('price'))
            if 'description' in data:
                updated['description'] = _parse_text(data.get('description'), 'Description')
            if 'category' in data:
                updated['category'] = _parse_category(data.get('category')).value
            new_image = image_url or _parse_text(data.get('imageUrl'), 'Image URL')
            if new_image:
                updated['imageUrl'] = new_image

            new_stock = None
            if 'stock' in data:
                new_stock = _parse_stock(data.get('stock'))

            updated['updatedAt'] = utc_now()
            self.product_repo.save_product(updated)

            if new_stock is not None and new_stock != int(before.get('stock', 0)):
                diff = new_stock - int(before.get('stock', 0))
                movement = StockTransactionType.STOCK_IN if diff > 0 else StockTransactionType.STOCK_OUT
                self.stock_service.apply_movement(
                    updated['id'], movement, abs(diff),
                    reference='Product edit', notes='Stock updated from product form',
                    admin_id=admin_id
                )

            result = self.product_repo.get_product(updated['id'])

        if self.audit_service:
            changes = {
                key: (before.get(key), result.get(key))
                for key in ('name', 'price', 'description', 'category', 'imageUrl', 'stock')
                if before.get(key) != result.get(key)
            }
            self.audit_service.log_product_updated(actor, result, changes)
        return result

    def _delete_one(self, product: Dict[str, Any], admin_id: Optional[int]) -> None:
        """Cierra el stock en el kardex y elimina. Llamar dentro de atomic()."""
        stock = int(product.get('stock', 0))
        if stock > 0:
            self.stock_service.apply_movement(
                product['id'], StockTransactionType.STOCK_OUT, stock,
                reference='Product deleted', notes='Remaining stock written off',
                admin_id=admin_id
            )
        self.product_repo.delete_product(product['id'])

    def delete_product(self, product_id: Any, actor: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Elimina un producto.

        Returns:
            Producto eliminado

        Raises:
            NotFoundError: Producto inexistente
        """
        with atomic(self.product_repo, self.stock_service.stock_repo):
            product = self.get_product(product_id)
            self._delete_one(product, (actor or {}).get('id'))

        if self.audit_service:
            self.audit_service.log_product_deleted(actor, product)
        return product

    def delete_products(self, product_ids: Any, actor: Dict[str, Any] = None) -> int:
        """
        Eliminación masiva.

        Args:
            product_ids: Lista de IDs

        Returns:
            Cantidad eliminada

        Raises:
            ValidationError: Lista vacía o inválida
            NotFoundError: Ninguno de los IDs existe
        """
        if not isinstance(product_ids, list) or not product_ids:
            raise ValidationError('Please provide an array of productIds')

        deleted = []
        with atomic(self.product_repo, self.stock_service.stock_repo):
            for pid in product_ids:
                product = self.product_repo.get_product(pid)
                if product:
                    self._delete_one(product, (actor or {}).get('id'))
                    deleted.append(product)
            if not deleted:
                raise NotFoundError('No products found to delete')

        if self.audit_service:
            for product in deleted:
                self.audit_service.log_product_deleted(actor, product)
        return len(deleted)
