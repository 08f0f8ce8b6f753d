# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (un directorio de datos temporal por test)
#   - Cambiar la persistencia sin tocar los servicios
#
# Para migrar de JSON a una base de datos basta con implementar las
# interfaces de repositories/interfaces.py y cambiar las importaciones de
# este archivo. Los servicios dependen de las interfaces, no de los JSON.
# ==============================================================================

import os
from typing import Optional

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia (JSON)
# ═══════════════════════════════════════════════════════════════════════════════
from bakeshop.repositories import (
    CartRepository,
    LogRepository,
    NotificationRepository,
    OrderRepository,
    PaymentRepository,
    ProductRepository,
    StockTransactionRepository,
    UserRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from bakeshop.services import (
    AdminService,
    AuditService,
    CartService,
    CatalogService,
    DashboardService,
    NotificationService,
    OrderService,
    PaymentService,
    StockService,
    UploadService,
    UserService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(base_path='/path/to/data')
        order_service = container.order_service
        payment_service = container.payment_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None, upload_dir: str = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None, upload_dir: str = None):
        """
        Inicializa el contenedor.

        Args:
            base_path: Directorio de los JSON
            upload_dir: Directorio de imágenes subidas (por defecto <base_path>/uploads)
        """
        if self._initialized:
            return

        self._base_path = base_path or os.path.join(
            os.path.dirname(os.path.abspath(__file__)), 'data'
        )
        self._upload_dir = upload_dir or os.path.join(self._base_path, 'uploads')

        self._clear()
        self._initialized = True

    def _clear(self) -> None:
        # Repositorios (lazy loading)
        self._user_repo: Optional[UserRepository] = None
        self._product_repo: Optional[ProductRepository] = None
        self._cart_repo: Optional[CartRepository] = None
        self._order_repo: Optional[OrderRepository] = None
        self._payment_repo: Optional[PaymentRepository] = None
        self._stock_repo: Optional[StockTransactionRepository] = None
        self._notification_repo: Optional[NotificationRepository] = None
        self._log_repo: Optional[LogRepository] = None

        # Servicios (lazy loading)
        self._audit_service: Optional[AuditService] = None
        self._user_service: Optional[UserService] = None
        self._stock_service: Optional[StockService] = None
        self._catalog_service: Optional[CatalogService] = None
        self._cart_service: Optional[CartService] = None
        self._notification_service: Optional[NotificationService] = None
        self._order_service: Optional[OrderService] = None
        self._upload_service: Optional[UploadService] = None
        self._payment_service: Optional[PaymentService] = None
        self._dashboard_service: Optional[DashboardService] = None
        self._admin_service: Optional[AdminService] = None

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def upload_dir(self) -> str:
        return self._upload_dir

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def user_repo(self) -> UserRepository:
        """Repositorio de usuarios (singleton)."""
        if self._user_repo is None:
            self._user_repo = UserRepository(self._base_path)
        return self._user_repo

    @property
    def product_repo(self) -> ProductRepository:
        """Repositorio de productos (singleton)."""
        if self._product_repo is None:
            self._product_repo = ProductRepository(self._base_path)
        return self._product_repo

    @property
    def cart_repo(self) -> CartRepository:
        """Repositorio de carritos (singleton)."""
        if self._cart_repo is None:
            self._cart_repo = CartRepository(self._base_path)
        return self._cart_repo

    @property
    def order_repo(self) -> OrderRepository:
        """Repositorio de pedidos (singleton)."""
        if self._order_repo is None:
            self._order_repo = OrderRepository(self._base_path)
        return self._order_repo

    @property
    def payment_repo(self) -> PaymentRepository:
        """Repositorio de pagos (singleton)."""
        if self._payment_repo is None:
            self._payment_repo = PaymentRepository(self._base_path)
        return self._payment_repo

    @property
    def stock_repo(self) -> StockTransactionRepository:
        """Repositorio del kardex (singleton)."""
        if self._stock_repo is None:
            self._stock_repo = StockTransactionRepository(self._base_path)
        return self._stock_repo

    @property
    def notification_repo(self) -> NotificationRepository:
        """Repositorio de notificaciones (singleton)."""
        if self._notification_repo is None:
            self._notification_repo = NotificationRepository(self._base_path)
        return self._notification_repo

    @property
    def log_repo(self) -> LogRepository:
        """Repositorio del log de actividad (singleton)."""
        if self._log_repo is None:
            self._log_repo = LogRepository(self._base_path)
        return self._log_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.log_repo)
        return self._audit_service

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(self.user_repo, self.audit_service)
        return self._user_service

    @property
    def stock_service(self) -> StockService:
        """Servicio del kardex (singleton)."""
        if self._stock_service is None:
            self._stock_service = StockService(
                self.product_repo,
                self.stock_repo,
                self.user_repo
            )
        return self._stock_service

    @property
    def catalog_service(self) -> CatalogService:
        """Servicio de catálogo (singleton)."""
        if self._catalog_service is None:
            self._catalog_service = CatalogService(
                self.product_repo,
                self.stock_service,
                self.audit_service
            )
        return self._catalog_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de carrito (singleton)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.cart_repo, self.product_repo)
        return self._cart_service

    @property
    def notification_service(self) -> NotificationService:
        """Servicio de notificaciones (singleton)."""
        if self._notification_service is None:
            self._notification_service = NotificationService(self.notification_repo)
        return self._notification_service

    @property
    def order_service(self) -> OrderService:
        """Servicio de pedidos (singleton)."""
        if self._order_service is None:
            self._order_service = OrderService(
                self.order_repo,
                self.product_repo,
                self.cart_repo,
                self.stock_service,
                notification_service=self.notification_service,
                audit_service=self.audit_service,
                user_repo=self.user_repo,
                payment_repo=self.payment_repo
            )
        return self._order_service

    @property
    def upload_service(self) -> UploadService:
        """Servicio de subida de imágenes (singleton)."""
        if self._upload_service is None:
            self._upload_service = UploadService(self._upload_dir)
        return self._upload_service

    @property
    def payment_service(self) -> PaymentService:
        """Servicio de pagos (singleton)."""
        if self._payment_service is None:
            self._payment_service = PaymentService(
                self.payment_repo,
                self.order_repo,
                self.order_service,
                self.notification_service,
                upload_service=self.upload_service,
                audit_service=self.audit_service
            )
        return self._payment_service

    @property
    def dashboard_service(self) -> DashboardService:
        """Servicio de estadísticas (singleton)."""
        if self._dashboard_service is None:
            self._dashboard_service = DashboardService(
                self.order_repo,
                self.payment_repo,
                self.user_repo,
                self.log_repo
            )
        return self._dashboard_service

    @property
    def admin_service(self) -> AdminService:
        """Pestañas del panel (singleton)."""
        if self._admin_service is None:
            self._admin_service = AdminService({
                'inventory': self.catalog_service.list_products,
                'orders': self.order_service.list_orders,
                'payments': self.payment_service.list_payments,
                'customers': self.user_service.list_customers,
                'logs': self.audit_service.list_logs,
                'transactions': self.stock_service.list_transactions,
            })
        return self._admin_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        self._clear()

    @classmethod
    def get_instance(cls, base_path: str = None, upload_dir: str = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            base_path: Directorio de datos (solo se usa en la primera llamada)
            upload_dir: Directorio de uploads (solo se usa en la primera llamada)

        Returns:
            Instancia del contenedor
        """
        if cls._instance is None:
            return cls(base_path, upload_dir)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


# Función helper para obtener el contenedor global
def get_container(base_path: str = None, upload_dir: str = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Directorio de datos
        upload_dir: Directorio de uploads

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(base_path, upload_dir)
