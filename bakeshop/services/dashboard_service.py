# ==============================================================================
# SERVICIO DE DASHBOARD
# ==============================================================================
# Estadísticas del panel de administración.
#
# REGLA PRINCIPAL: los ingresos salen SOLO de pagos confirmados.
# - pending ❌
# - rejected ❌
# Los pedidos cancelados no cuentan como productos vendidos.
# ==============================================================================

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bakeshop.models.entities import OrderStatus, PaymentStatus
from bakeshop.repositories.interfaces import (
    ILogRepository,
    IOrderRepository,
    IPaymentRepository,
    IUserRepository,
)


# Etiquetas de los gráficos de ventas
WEEKDAY_LABELS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
PERIODS = {
    '7d': (7, WEEKDAY_LABELS),
    '30d': (30, ['Week 1', 'Week 2', 'Week 3', 'Week 4']),
    '90d': (90, ['Month 1', 'Month 2', 'Month 3']),
}


class DashboardService:
    """
    Servicio para las estadísticas del dashboard.

    Responsabilidades:
    - Tarjetas de resumen (ingresos, pedidos, productos vendidos, clientes)
    - Actividad reciente (log de actividad)
    - Gráfico de ventas por período y top de productos
    """

    # Ventana por defecto de las tarjetas de resumen
    DEFAULT_DAYS = 30

    def __init__(
        self,
        order_repo: IOrderRepository,
        payment_repo: IPaymentRepository,
        user_repo: IUserRepository,
        log_repo: ILogRepository
    ):
        self.order_repo = order_repo
        self.payment_repo = payment_repo
        self.user_repo = user_repo
        self.log_repo = log_repo

    def _parse_date(self, date_str: str) -> Optional[datetime]:
        """
        Parsea una fecha ISO. Retorna None si no puede parsear.
        Las fechas sin zona se asumen UTC.
        """
        if not date_str:
            return None
        try:
            parsed = datetime.fromisoformat(str(date_str).replace('Z', '+00:00'))
        except (ValueError, TypeError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _confirmed_payments(self, since: datetime) -> List[Dict[str, Any]]:
        """Pagos confirmados desde 'since' (por fecha de creación del pago)."""
        result = []
        for payment in self.payment_repo.list_payments():
            if payment.get('status') != PaymentStatus.CONFIRMED.value:
                continue
            created = self._parse_date(payment.get('createdAt'))
            if created and created >= since:
                result.append(payment)
        return result

    # =========================================================================
    # TARJETAS
    # =========================================================================

    def stats(self, days: int = DEFAULT_DAYS) -> Dict[str, Any]:
        """
        Resumen de los últimos 'days' días.

        Returns:
            {totalRevenue, totalOrders, productsSold, totalCustomers}
        """
        since = datetime.now(timezone.utc) - timedelta(days=days)

        revenue = sum(float(p.get('amount', 0) or 0) for p in self._confirmed_payments(since))

        orders = [
            o for o in self.order_repo.list_orders()
            if (self._parse_date(o.get('createdAt')) or since) >= since
        ]
        products_sold = sum(
            int(item.get('quantity', 0))
            for o in orders if o.get('status') != OrderStatus.CANCELLED.value
            for item in o.get('items', [])
        )

        customers = [
            u for u in self.user_repo.list_users()
            if not u.get('isAdmin')
            and (self._parse_date(u.get('createdAt')) or since) >= since
        ]

        return {
            'totalRevenue': round(revenue, 2),
            'totalOrders': len(orders),
            'productsSold': products_sold,
            'totalCustomers': len(customers),
        }

    def recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Últimas acciones del log de actividad, en formato de feed."""
        return [
            {
                'id': log.get('id'),
                'type': log.get('entityType'),
                'action': log.get('action'),
                'message': f"{log.get('action')} {log.get('entityType')}: {log.get('entityName')}",
                'time': log.get('createdAt'),
                'user': log.get('adminName') or 'System',
            }
            for log in self.log_repo.load(limit)
        ]

    # =========================================================================
    # GRÁFICOS
    # =========================================================================

    def sales_chart(self, period: str = '7d') -> Dict[str, Any]:
        """
        Ingresos confirmados agrupados por período.

        Args:
            period: '7d' (por día de semana), '30d' (4 semanas), '90d' (3 meses)

        Returns:
            {labels, data}. Un período desconocido devuelve la semana en ceros.
        """
        if period not in PERIODS:
            return {'labels': list(WEEKDAY_LABELS), 'data': [0] * 7}

        days, labels = PERIODS[period]
        now = datetime.now(timezone.utc)
        data = [0.0] * len(labels)

        for payment in self._confirmed_payments(now - timedelta(days=days)):
            created = self._parse_date(payment['createdAt'])
            amount = float(payment.get('amount', 0) or 0)
            if period == '7d':
                index = created.weekday()
            else:
                bucket_days = 7 if period == '30d' else 30
                age = min((now - created).days // bucket_days, len(labels) - 1)
                index = len(labels) - 1 - age
            data[index] = round(data[index] + amount, 2)

        return {'labels': list(labels), 'data': data}

    def products_chart(self, top: int = 5) -> Dict[str, Any]:
        """Top de productos por cantidad pedida (pedidos no cancelados)."""
        totals: Dict[int, int] = defaultdict(int)
        names: Dict[int, str] = {}
        for order in self.order_repo.list_orders():
            if order.get('status') == OrderStatus.CANCELLED.value:
                continue
            for item in order.get('items', []):
                totals[item['productId']] += int(item.get('quantity', 0))
                names[item['productId']] = item.get('name') or 'Unknown Product'

        ranking = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:top]
        return {
            'labels': [names[pid] for pid, _ in ranking],
            'data': [qty for _, qty in ranking],
        }
