# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y lanzan excepciones de bakeshop.errors
# 3. Las rutas solo traducen request → service → response
# 4. Las operaciones de varios pasos corren dentro de atomic()
#
# ESTRUCTURA:
# ├── user_service.py          → Registro, login, listado de usuarios
# ├── catalog_service.py       → Productos (público + CRUD admin)
# ├── stock_service.py         → Kardex de stock
# ├── cart_service.py          → Carrito por usuario
# ├── order_service.py         → Pedidos (núcleo atómico)
# ├── payment_service.py       → Pagos GCash y su resolución
# ├── notification_service.py  → Notificaciones al cliente
# ├── audit_service.py         → Log de actividad del admin
# ├── dashboard_service.py     → Estadísticas del panel
# ├── admin_service.py         → Pestañas del panel (tabla estática)
# └── upload_service.py        → Validación y guardado de imágenes
# ==============================================================================

from bakeshop.services.audit_service import AuditService
from bakeshop.services.user_service import UserService
from bakeshop.services.stock_service import StockService
from bakeshop.services.catalog_service import CatalogService
from bakeshop.services.cart_service import CartService
from bakeshop.services.notification_service import NotificationService
from bakeshop.services.order_service import OrderService
from bakeshop.services.upload_service import UploadService
from bakeshop.services.payment_service import PaymentService
from bakeshop.services.dashboard_service import DashboardService
from bakeshop.services.admin_service import AdminService, ADMIN_TABS

__all__ = [
    'AuditService',
    'UserService',
    'StockService',
    'CatalogService',
    'CartService',
    'NotificationService',
    'OrderService',
    'UploadService',
    'PaymentService',
    'DashboardService',
    'AdminService',
    'ADMIN_TABS',
]
