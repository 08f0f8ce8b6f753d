# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el log de actividad del back-office.
# Cada acción administrativa (crear/editar/eliminar producto, cambiar estado
# de pedido, confirmar/rechazar pago) deja un registro humanizado.
# ==============================================================================

from typing import Any, Dict, List, Optional

from bakeshop.errors import ValidationError
from bakeshop.models.entities import (
    ActivityLog,
    LogAction,
    LogEntityType,
    parse_enum,
)
from bakeshop.repositories.interfaces import ILogRepository


class AuditService:
    """
    Servicio para registro y consulta del log de actividad.

    El 'actor' que reciben los métodos es un dict con los datos del admin
    y de la petición: {id, name, ipAddress, userAgent}.
    """

    # Límite por defecto al listar
    DEFAULT_LIMIT = 1000

    def __init__(self, log_repo: ILogRepository):
        """
        Inicializa el servicio de auditoría.

        Args:
            log_repo: Repositorio del log de actividad
        """
        self.log_repo = log_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        action: LogAction,
        entity_type: LogEntityType,
        entity_id: Optional[int],
        entity_name: str,
        details: str = '',
        actor: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        """
        Registra un evento genérico.

        Args:
            action: create, update, delete, confirm, reject
            entity_type: product, payment, order, user
            entity_id: ID de la entidad afectada
            entity_name: Nombre legible de la entidad
            details: Mensaje descriptivo
            actor: Admin que realizó la acción (y datos de la petición)

        Returns:
            Registro guardado
        """
        actor = actor or {}
        entry = ActivityLog(
            id=0,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name or '',
            details=details or '',
            admin_id=actor.get('id'),
            admin_name=actor.get('name') or 'System',
            ip_address=actor.get('ipAddress'),
            user_agent=actor.get('userAgent'),
        )
        return self.log_repo.log(entry.to_dict())

    def log_product_created(self, actor: Dict[str, Any], product: Dict[str, Any]) -> None:
        details = (
            f"Created product {product.get('name')} - Price: {product.get('price', 0):.2f}"
            f" - Stock: {product.get('stock', 0)} - Category: {product.get('category')}"
        )
        self.log(LogAction.CREATE, LogEntityType.PRODUCT, product.get('id'),
                 product.get('name'), details, actor)

    def log_product_updated(
        self,
        actor: Dict[str, Any],
        product: Dict[str, Any],
        changes: Dict[str, Any]
    ) -> None:
        """
        Registra la edición de un producto.

        Args:
            actor: Admin
            product: Producto ya actualizado
            changes: {campo: (antes, después)} solo con lo que cambió
        """
        if changes:
            parts = [f"{k}: {old} → {new}" for k, (old, new) in changes.items()]
            details = f"Updated {product.get('name')}: " + ", ".join(parts)
        else:
            details = f"Updated {product.get('name')} (no changes)"
        self.log(LogAction.UPDATE, LogEntityType.PRODUCT, product.get('id'),
                 product.get('name'), details, actor)

    def log_product_deleted(self, actor: Dict[str, Any], product: Dict[str, Any]) -> None:
        details = f"Deleted product {product.get('name')} (stock at deletion: {product.get('stock', 0)})"
        self.log(LogAction.DELETE, LogEntityType.PRODUCT, product.get('id'),
                 product.get('name'), details, actor)

    def log_order_status(
        self,
        actor: Dict[str, Any],
        order: Dict[str, Any],
        old_status: str,
        new_status: str
    ) -> None:
        details = f"Order #{order.get('id')}: {old_status} → {new_status}"
        self.log(LogAction.UPDATE, LogEntityType.ORDER, order.get('id'),
                 f"Order #{order.get('id')}", details, actor)

    def log_payment_confirmed(self, actor: Dict[str, Any], payment: Dict[str, Any]) -> None:
        details = (
            f"Confirmed payment of {payment.get('amount', 0):.2f} for Order #{payment.get('orderId')}"
        )
        if payment.get('gcashReference'):
            details += f" (ref {payment['gcashReference']})"
        self.log(LogAction.CONFIRM, LogEntityType.PAYMENT, payment.get('id'),
                 f"Payment #{payment.get('id')}", details, actor)

    def log_payment_rejected(self, actor: Dict[str, Any], payment: Dict[str, Any]) -> None:
        details = f"Rejected payment for Order #{payment.get('orderId')}"
        if payment.get('notes'):
            details += f" - Reason: {payment['notes']}"
        self.log(LogAction.REJECT, LogEntityType.PAYMENT, payment.get('id'),
                 f"Payment #{payment.get('id')}", details, actor)

    def log_user_created(self, actor: Dict[str, Any], user: Dict[str, Any]) -> None:
        role = 'admin' if user.get('isAdmin') else 'customer'
        self.log(LogAction.CREATE, LogEntityType.USER, user.get('id'), user.get('name'),
                 f"Registered {role} account {user.get('email')}", actor)

    # =========================================================================
    # CONSULTA Y MANTENIMIENTO
    # =========================================================================

    def list_logs(self, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        """Últimos registros, más recientes primero."""
        return self.log_repo.load(limit)

    def create_log(self, data: Dict[str, Any], actor: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Crea un registro enviado por el cliente del back-office.

        Args:
            data: {action, entityType, entityId?, entityName?, details?}
            actor: Admin autenticado

        Raises:
            ValidationError: Si action o entityType no son válidos
        """
        action = parse_enum(LogAction, data.get('action'))
        entity_type = parse_enum(LogEntityType, data.get('entityType'))
        if action is None or entity_type is None:
            raise ValidationError('Invalid action or entityType')
        entity_id = data.get('entityId')
        try:
            entity_id = int(entity_id) if entity_id is not None else None
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Invalid entityId')
        return self.log(action, entity_type, entity_id, data.get('entityName') or '',
                        data.get('details') or '', actor)

    def clear_logs(self) -> int:
        """
        Elimina todo el log.

        Returns:
            Cantidad de registros eliminados
        """
        return self.log_repo.clear()
