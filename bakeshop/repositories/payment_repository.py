# ==============================================================================
# REPOSITORIO DE PAGOS
# ==============================================================================
# Encapsula todo el acceso a payments.json
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from bakeshop.repositories.base import ListRepository


class PaymentRepository(ListRepository):
    """Repositorio de pagos (lista de registros con orderId)."""

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'payments.json')
        super().__init__(file_path)

    def get_payment(self, payment_id: Any) -> Optional[Dict[str, Any]]:
        return self.get_by_id(payment_id)

    def list_payments(self) -> List[Dict[str, Any]]:
        """Pagos, más recientes primero."""
        return sorted(self.get_all(), key=lambda p: p.get('id', 0), reverse=True)

    def list_for_order(self, order_id: int) -> List[Dict[str, Any]]:
        payments = self.find_all_by('orderId', order_id)
        return sorted(payments, key=lambda p: p.get('id', 0), reverse=True)
