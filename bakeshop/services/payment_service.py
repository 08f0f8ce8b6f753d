# ==============================================================================
# SERVICIO DE PAGOS
# ==============================================================================
# Pagos manuales GCash: el cliente crea el pago, sube el comprobante y un
# administrador lo confirma o rechaza.
#
# CICLO DE VIDA:  pending → confirmed  |  pending → rejected
# Un pago resuelto no vuelve a cambiar. Confirmar NO toca el stock: el
# descuento ya ocurrió al crear el pedido.
# ==============================================================================

import math
from typing import Any, Dict, List, Optional, Tuple

from werkzeug.datastructures import FileStorage

from bakeshop.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bakeshop.models.entities import (
    NotificationType,
    OrderStatus,
    Payment,
    PaymentStatus,
    RelatedType,
    parse_enum,
    utc_now,
)
from bakeshop.performance_logger import profile_function
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import IOrderRepository, IPaymentRepository
from bakeshop.services.audit_service import AuditService
from bakeshop.services.notification_service import NotificationService
from bakeshop.services.order_service import OrderService
from bakeshop.services.upload_service import UploadService


class PaymentService:
    """
    Servicio para gestión de pagos.

    Responsabilidades:
    - Crear pagos pendientes (uno vivo por pedido)
    - Adjuntar comprobantes
    - Confirmar/rechazar exactamente una vez, con cascada a pedido y notificación
    - Registrar cada resolución en auditoría
    """

    def __init__(
        self,
        payment_repo: IPaymentRepository,
        order_repo: IOrderRepository,
        order_service: OrderService,
        notification_service: NotificationService,
        upload_service: UploadService = None,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de pagos.

        Args:
            payment_repo: Repositorio de pagos
            order_repo: Repositorio de pedidos
            order_service: Para pasar el pedido a Processing
            notification_service: Avisos al cliente
            upload_service: Guardado de comprobantes
            audit_service: Servicio de auditoría
        """
        self.payment_repo = payment_repo
        self.order_repo = order_repo
        self.order_service = order_service
        self.notification_service = notification_service
        self.upload_service = upload_service
        self.audit_service = audit_service

    def _get(self, payment_id: Any) -> Dict[str, Any]:
        payment = self.payment_repo.get_payment(payment_id)
        if not payment:
            raise NotFoundError('Payment not found')
        return payment

    def _check_owner(self, order: Dict[str, Any], requester: Optional[Dict[str, Any]]) -> None:
        if requester is None or requester.get('isAdmin'):
            return
        if order.get('userId') != requester.get('id'):
            raise PermissionDeniedError('Not authorized to pay for this order')

    # =========================================================================
    # CLIENTE
    # =========================================================================

    def create_payment(
        self,
        order_id: Any,
        amount: Any,
        payment_method: str = None,
        notes: str = None,
        requester: Dict[str, Any] = None
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Crea un pago pendiente para un pedido.
        Si el pedido ya tiene un pago pendiente o confirmado, se devuelve ese.

        Args:
            order_id: ID del pedido
            amount: Monto (> 0)
            payment_method: Método (por defecto 'gcash')
            notes: Notas del cliente
            requester: Usuario autenticado

        Returns:
            Tupla (pago, creado)

        Raises:
            ValidationError: Falta orderId o monto inválido
            NotFoundError: Pedido inexistente
            PermissionDeniedError: El pedido es de otro usuario
            InvalidTransitionError: El pedido ya está entregado o cancelado
        """
        if order_id is None or amount is None:
            raise ValidationError('Please provide orderId and amount')
        if isinstance(amount, bool):
            raise ValidationError('Invalid amount')
        try:
            amount = round(float(amount), 2)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Invalid amount')
        if not math.isfinite(amount):
            raise ValidationError('Invalid amount')
        if amount <= 0:
            raise ValidationError('Amount must be greater than 0')

        with atomic(self.payment_repo):
            order = self.order_repo.get_order(order_id)
            if not order:
                raise NotFoundError('Order not found')
            self._check_owner(order, requester)

            for existing in self.payment_repo.list_for_order(order['id']):
                if existing.get('status') != PaymentStatus.REJECTED.value:
                    return existing, False

            order_status = parse_enum(OrderStatus, order.get('status'))
            if order_status is not None and order_status.is_closed:
                raise InvalidTransitionError(f'Order is already {order_status.value}')

            payment = Payment(
                id=self.payment_repo.next_id(),
                order_id=order['id'],
                amount=amount,
                payment_method=(payment_method or 'gcash').strip().lower() or 'gcash',
                notes=notes,
            )
            self.payment_repo.append(payment.to_dict())
        return payment.to_dict(), True

    def attach_proof(
        self,
        payment_id: Any,
        file: FileStorage,
        reference: str = None,
        payment_method: str = None,
        notes: str = None,
        requester: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        """
        Adjunta el comprobante a un pago pendiente. No cambia el estado.

        Raises:
            NotFoundError: Pago inexistente
            InvalidTransitionError: El pago ya fue resuelto
            ValidationError: Archivo ausente o inválido
        """
        payment = self._get(payment_id)
        order = self.order_repo.get_order(payment['orderId'])
        if order:
            self._check_owner(order, requester)
        if payment.get('status') != PaymentStatus.PENDING.value:
            raise InvalidTransitionError(f"Payment has already been {payment.get('status')}")
        if file is None or not file.filename:
            raise ValidationError('Please upload a payment receipt')

        receipt_url = self.upload_service.save(file, 'receipt')

        updates = {'receiptImageUrl': receipt_url, 'updatedAt': utc_now()}
        if reference:
            updates['gcashReference'] = str(reference).strip()
        if payment_method:
            updates['paymentMethod'] = str(payment_method).strip().lower()
        if notes:
            updates['notes'] = notes

        with atomic(self.payment_repo):
            current = self._get(payment['id'])
            if current.get('status') != PaymentStatus.PENDING.value:
                self.upload_service.delete(receipt_url)
                raise InvalidTransitionError(f"Payment has already been {current.get('status')}")
            previous_receipt = current.get('receiptImageUrl')
            updated = self.payment_repo.update_by_id(payment['id'], updates)

        if previous_receipt and previous_receipt != receipt_url:
            self.upload_service.delete(previous_receipt)
        return updated

    # =========================================================================
    # ADMINISTRADOR
    # =========================================================================

    @profile_function(name="Resolver pago")
    def update_status(
        self,
        payment_id: Any,
        status: Any,
        notes: str = None,
        actor: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        """
        Confirma o rechaza un pago pendiente.

        Confirmar: pedido Pending → Processing + notificación payment_confirmed.
        Rechazar: pedido sin cambios, sin devolución de stock + notificación payment_rejected.

        Args:
            payment_id: ID del pago
            status: 'confirmed' o 'rejected'
            notes: Notas del admin (motivo de rechazo)
            actor: Admin

        Returns:
            Pago actualizado

        Raises:
            ValidationError: Estado no permitido
            NotFoundError: Pago inexistente
            InvalidTransitionError: El pago ya fue resuelto o el pedido está cancelado
        """
        target = parse_enum(PaymentStatus, status)
        if target not in (PaymentStatus.CONFIRMED, PaymentStatus.REJECTED):
            raise ValidationError("Status must be 'confirmed' or 'rejected'")

        stores = (self.payment_repo, self.order_repo, self.notification_service.notification_repo)
        with atomic(*stores):
            payment = self._get(payment_id)
            if payment.get('status') != PaymentStatus.PENDING.value:
                raise InvalidTransitionError(f"Payment has already been {payment.get('status')}")

            # Un pedido cancelado ya devolvió su stock: no se puede procesar
            if target == PaymentStatus.CONFIRMED:
                linked = self.order_repo.get_order(payment['orderId'])
                if linked and linked.get('status') == OrderStatus.CANCELLED.value:
                    raise InvalidTransitionError('Cannot confirm payment for a cancelled order')

            now = utc_now()
            updates = {
                'status': target.value,
                'updatedAt': now,
                'resolvedAt': now,
                'resolvedBy': (actor or {}).get('id'),
            }
            if notes is not None:
                updates['notes'] = notes
            payment = self.payment_repo.update_by_id(payment['id'], updates)
            order_id = payment['orderId']

            if target == PaymentStatus.CONFIRMED:
                order = self.order_service.mark_processing(order_id)
                if order:
                    self.notification_service.notify(
                        order['userId'],
                        f"Your payment for Order #{order_id} has been confirmed. "
                        f"Your order is now being processed.",
                        NotificationType.PAYMENT_CONFIRMED,
                        order_id,
                        RelatedType.ORDER,
                    )
            else:
                order = self.order_repo.get_order(order_id)
                if order:
                    message = f"Your payment for Order #{order_id} has been rejected."
                    if notes:
                        message += f" Reason: {notes}"
                    self.notification_service.notify(
                        order['userId'],
                        message,
                        NotificationType.PAYMENT_REJECTED,
                        order_id,
                        RelatedType.ORDER,
                    )

        if self.audit_service:
            if target == PaymentStatus.CONFIRMED:
                self.audit_service.log_payment_confirmed(actor, payment)
            else:
                self.audit_service.log_payment_rejected(actor, payment)
        return payment

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_by_order(self, order_id: Any, requester: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Último pago de un pedido.

        Raises:
            NotFoundError: El pedido no tiene pagos
        """
        try:
            order_id = int(order_id)
        except (TypeError, ValueError, OverflowError):
            raise NotFoundError('Payment not found')
        order = self.order_repo.get_order(order_id)
        if order:
            self._check_owner(order, requester)
        payments = self.payment_repo.list_for_order(order_id)
        if not payments:
            raise NotFoundError('Payment not found')
        return payments[0]

    def _status_history(self, payment: Dict[str, Any]) -> List[Dict[str, Any]]:
        history = [{
            'status': PaymentStatus.PENDING.value,
            'timestamp': payment.get('createdAt'),
            'note': 'Payment record created',
        }]
        if payment.get('receiptImageUrl'):
            history.append({
                'status': PaymentStatus.PENDING.value,
                'timestamp': payment.get('updatedAt'),
                'note': 'Payment proof uploaded',
            })
        if payment.get('status') != PaymentStatus.PENDING.value:
            history.append({
                'status': payment.get('status'),
                'timestamp': payment.get('resolvedAt'),
                'note': payment.get('notes') or f"Payment {payment.get('status')}",
            })
        return history

    def list_payments(self) -> List[Dict[str, Any]]:
        """Pagos (admin), más recientes primero, con pedido e historial."""
        result = []
        for payment in self.payment_repo.list_payments():
            row = dict(payment)
            row['order'] = self.order_repo.get_order(payment.get('orderId'))
            row['statusHistory'] = self._status_history(payment)
            result.append(row)
        return result
