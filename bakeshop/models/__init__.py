# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses, serializadas a dict camelCase
# para la persistencia JSON y las respuestas de la API.
# ==============================================================================

from .entities import (
    utc_now,
    parse_enum,

    # Usuarios
    User,

    # Catálogo y carrito
    Product,
    ProductCategory,
    CartItem,

    # Pedidos y pagos
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,

    # Kardex
    StockTransaction,
    StockTransactionType,

    # Notificaciones y log de actividad
    Notification,
    NotificationType,
    RelatedType,
    ActivityLog,
    LogAction,
    LogEntityType,
)

__all__ = [
    'utc_now',
    'parse_enum',
    'User',
    'Product',
    'ProductCategory',
    'CartItem',
    'Order',
    'OrderItem',
    'OrderStatus',
    'Payment',
    'PaymentStatus',
    'StockTransaction',
    'StockTransactionType',
    'Notification',
    'NotificationType',
    'RelatedType',
    'ActivityLog',
    'LogAction',
    'LogEntityType',
]
