# ==============================================================================
# SERVICIO DE NOTIFICACIONES
# ==============================================================================
# Avisos para el cliente: pago confirmado/rechazado, cambios de pedido.
# ==============================================================================

from typing import Any, Dict, List, Optional

from bakeshop.errors import NotFoundError, PermissionDeniedError, ValidationError
from bakeshop.models.entities import Notification, NotificationType, RelatedType, parse_enum
from bakeshop.repositories.interfaces import INotificationRepository


class NotificationService:
    """Crea, lista y marca como leídas las notificaciones de cada usuario."""

    # Cantidad máxima devuelta al listar
    LIST_LIMIT = 50

    def __init__(self, notification_repo: INotificationRepository):
        self.notification_repo = notification_repo

    def notify(
        self,
        user_id: int,
        message: str,
        notification_type: NotificationType = NotificationType.GENERAL,
        related_id: Optional[int] = None,
        related_type: Optional[RelatedType] = None
    ) -> Dict[str, Any]:
        """
        Crea una notificación.

        Args:
            user_id: Destinatario
            message: Texto visible para el cliente
            notification_type: payment_confirmed, payment_rejected, order_update, general
            related_id: ID del pedido/pago/producto relacionado
            related_type: order, payment, product

        Returns:
            Notificación creada
        """
        notification = Notification(
            id=self.notification_repo.next_id(),
            user_id=user_id,
            message=message,
            type=notification_type,
            related_id=related_id,
            related_type=related_type,
        )
        return self.notification_repo.append(notification.to_dict())

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crea una notificación desde la API de admin.

        Raises:
            ValidationError: Falta userId/message o type/relatedType inválidos
        """
        user_id = data.get('userId')
        message = (data.get('message') or '').strip()
        if user_id is None or not message:
            raise ValidationError('Please provide userId and message')
        try:
            user_id = int(user_id)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Invalid userId')

        notification_type = parse_enum(NotificationType, data.get('type') or 'general')
        if notification_type is None:
            raise ValidationError('Invalid notification type')

        related_type = None
        if data.get('relatedType'):
            related_type = parse_enum(RelatedType, data['relatedType'])
            if related_type is None:
                raise ValidationError('Invalid relatedType')

        related_id = data.get('relatedId')
        if related_id is not None:
            try:
                related_id = int(related_id)
            except (TypeError, ValueError, OverflowError):
                raise ValidationError('Invalid relatedId')

        return self.notify(user_id, message, notification_type, related_id, related_type)

    def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        return self.notification_repo.list_for_user(user_id, self.LIST_LIMIT)

    def mark_read(self, notification_id: Any, user_id: int) -> Dict[str, Any]:
        """
        Marca una notificación como leída.

        Raises:
            NotFoundError: No existe
            PermissionDeniedError: Pertenece a otro usuario
        """
        notification = self.notification_repo.get_by_id(notification_id)
        if not notification:
            raise NotFoundError('Notification not found')
        if notification.get('userId') != user_id:
            raise PermissionDeniedError('Not authorized to modify this notification')
        return self.notification_repo.update_by_id(notification['id'], {'isRead': True})

    def mark_all_read(self, user_id: int) -> int:
        return self.notification_repo.mark_all_read(user_id)

    def unread_count(self, user_id: int) -> int:
        return self.notification_repo.unread_count(user_id)
