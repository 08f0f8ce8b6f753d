# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio de la panadería.
# Se persisten como diccionarios con claves camelCase (formato de la API).
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone


def utc_now() -> str:
    """Timestamp ISO-8601 en UTC."""
    return datetime.now(timezone.utc).isoformat()


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class ProductCategory(str, Enum):
    """Categorías del catálogo."""
    POPULAR = "popular"
    BEST_SELLER = "best-seller"
    MAIN_PRODUCT = "main-product"


class OrderStatus(str, Enum):
    """Estados posibles de un pedido."""
    PENDING = "Pending"          # Creado, esperando pago
    PROCESSING = "Processing"    # Pago confirmado
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @property
    def is_closed(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentStatus(str, Enum):
    """Estados de un pago. Solo se sale de PENDING una vez."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class StockTransactionType(str, Enum):
    """Tipos de movimiento del kardex de stock."""
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    ADJUSTMENT = "adjustment"
    SALE = "sale"
    RETURN = "return"

    @property
    def sign(self) -> int:
        """+1 si el movimiento suma stock, -1 si lo resta."""
        if self in (StockTransactionType.STOCK_IN, StockTransactionType.RETURN):
            return 1
        return -1


class NotificationType(str, Enum):
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_REJECTED = "payment_rejected"
    ORDER_UPDATE = "order_update"
    GENERAL = "general"


class RelatedType(str, Enum):
    ORDER = "order"
    PAYMENT = "payment"
    PRODUCT = "product"


class LogAction(str, Enum):
    """Acciones registradas en el log de actividad del admin."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CONFIRM = "confirm"
    REJECT = "reject"


class LogEntityType(str, Enum):
    PRODUCT = "product"
    PAYMENT = "payment"
    ORDER = "order"
    USER = "user"


def parse_enum(enum_cls, value: Any) -> Optional[Enum]:
    """
    Convierte un valor a miembro del enum.

    Returns:
        Miembro del enum o None si el valor no es válido
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# ==============================================================================
# USUARIOS
# ==============================================================================

@dataclass
class User:
    """
    Cliente o administrador de la tienda.

    Attributes:
        id: Identificador numérico
        name: Nombre visible
        email: Email único (se guarda en minúsculas)
        password_hash: Hash werkzeug, nunca se expone en la API
        is_admin: Permisos de back-office
    """
    id: int
    name: str
    email: str
    password_hash: str
    is_admin: bool = False
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'password': self.password_hash,
            'isAdmin': self.is_admin,
            'createdAt': self.created_at,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Diccionario sin el hash de contraseña."""
        data = self.to_dict()
        data.pop('password')
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        return cls(
            id=int(data['id']),
            name=data.get('name', ''),
            email=data.get('email', ''),
            password_hash=data.get('password', ''),
            is_admin=bool(data.get('isAdmin', False)),
            created_at=data.get('createdAt') or utc_now(),
        )


# ==============================================================================
# CATÁLOGO
# ==============================================================================

@dataclass
class Product:
    """Producto del catálogo con su stock actual."""
    id: int
    name: str
    price: float
    stock: int = 0
    category: ProductCategory = ProductCategory.POPULAR
    description: str = ''
    image_url: str = ''
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'price': round(float(self.price), 2),
            'stock': int(self.stock),
            'category': _enum_value(self.category),
            'description': self.description,
            'imageUrl': self.image_url,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


# ==============================================================================
# CARRITO
# ==============================================================================

@dataclass
class CartItem:
    """Línea del carrito. Una sola línea por producto."""
    product_id: int
    quantity: int = 1
    selected: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'quantity': self.quantity,
            'selected': self.selected,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartItem':
        return cls(
            product_id=int(data['productId']),
            quantity=int(data.get('quantity', 1)),
            selected=bool(data.get('selected', True)),
        )


# ==============================================================================
# PEDIDOS
# ==============================================================================

@dataclass
class OrderItem:
    """Snapshot inmutable de lo pedido: nombre y precio al momento de la compra."""
    product_id: int
    name: str
    price: float
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'name': self.name,
            'price': round(float(self.price), 2),
            'quantity': self.quantity,
        }


@dataclass
class Order:
    """Pedido de un cliente."""
    id: int
    user_id: int
    total_amount: float
    shipping_address: str
    items: List[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    payment_method: str = 'GCash'
    tracking_number: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'totalAmount': round(float(self.total_amount), 2),
            'status': _enum_value(self.status),
            'shippingAddress': self.shipping_address,
            'paymentMethod': self.payment_method,
            'trackingNumber': self.tracking_number,
            'idempotencyKey': self.idempotency_key,
            'items': [item.to_dict() for item in self.items],
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


# ==============================================================================
# PAGOS
# ==============================================================================

@dataclass
class Payment:
    """Pago manual (GCash) asociado a un pedido."""
    id: int
    order_id: int
    amount: float
    payment_method: str = 'gcash'
    status: PaymentStatus = PaymentStatus.PENDING
    receipt_image_url: Optional[str] = None
    gcash_reference: Optional[str] = None
    notes: Optional[str] = None
    resolved_at: Optional[str] = None
    resolved_by: Optional[int] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'orderId': self.order_id,
            'amount': round(float(self.amount), 2),
            'paymentMethod': self.payment_method,
            'status': _enum_value(self.status),
            'receiptImageUrl': self.receipt_image_url,
            'gcashReference': self.gcash_reference,
            'notes': self.notes,
            'resolvedAt': self.resolved_at,
            'resolvedBy': self.resolved_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


# ==============================================================================
# KARDEX DE STOCK
# ==============================================================================

@dataclass
class StockTransaction:
    """
    Fila del kardex. Nunca se modifica ni se elimina.

    Invariante: new_stock == previous_stock + type.sign * quantity
    """
    id: int
    product_id: int
    type: StockTransactionType
    quantity: int
    previous_stock: int
    new_stock: int
    reference: Optional[str] = None
    notes: Optional[str] = None
    admin_id: Optional[int] = None
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'productId': self.product_id,
            'type': _enum_value(self.type),
            'quantity': self.quantity,
            'previousStock': self.previous_stock,
            'newStock': self.new_stock,
            'reference': self.reference,
            'notes': self.notes,
            'adminId': self.admin_id,
            'createdAt': self.created_at,
        }


# ==============================================================================
# NOTIFICACIONES Y LOG DE ACTIVIDAD
# ==============================================================================

@dataclass
class Notification:
    id: int
    user_id: int
    message: str
    type: NotificationType = NotificationType.GENERAL
    is_read: bool = False
    related_id: Optional[int] = None
    related_type: Optional[RelatedType] = None
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'message': self.message,
            'type': _enum_value(self.type),
            'isRead': self.is_read,
            'relatedId': self.related_id,
            'relatedType': _enum_value(self.related_type),
            'createdAt': self.created_at,
        }


@dataclass
class ActivityLog:
    """Registro de una acción administrativa."""
    id: int
    action: LogAction
    entity_type: LogEntityType
    entity_id: Optional[int] = None
    entity_name: str = ''
    details: str = ''
    admin_id: Optional[int] = None
    admin_name: str = ''
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'action': _enum_value(self.action),
            'entityType': _enum_value(self.entity_type),
            'entityId': self.entity_id,
            'entityName': self.entity_name,
            'details': self.details,
            'adminId': self.admin_id,
            'adminName': self.admin_name,
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
            'createdAt': self.created_at,
        }
