# ==============================================================================
# REPOSITORIO DE NOTIFICACIONES
# ==============================================================================
# Encapsula todo el acceso a notifications.json
# ==============================================================================

import os
from typing import Any, Dict, List

from bakeshop.repositories.base import ListRepository


class NotificationRepository(ListRepository):
    """Repositorio de notificaciones para clientes."""

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'notifications.json')
        super().__init__(file_path)

    def list_for_user(self, user_id: int, limit: int = 50) -> List[Dict[str, Any]]:
        """
        Últimas notificaciones de un usuario.

        Args:
            user_id: ID del usuario
            limit: Máximo de registros

        Returns:
            Lista de notificaciones, más recientes primero
        """
        rows = self.find_all_by('userId', user_id)
        rows.sort(key=lambda n: n.get('id', 0), reverse=True)
        return rows[:limit]

    def mark_all_read(self, user_id: int) -> int:
        """
        Marca como leídas todas las notificaciones del usuario.

        Returns:
            Cantidad de notificaciones que estaban sin leer
        """
        with self._file_lock:
            data = self.get_all()
            changed = 0
            for row in data:
                if row.get('userId') == user_id and not row.get('isRead'):
                    row['isRead'] = True
                    changed += 1
            if changed:
                self._write_raw(data)
            return changed

    def unread_count(self, user_id: int) -> int:
        return sum(
            1 for row in self.get_all()
            if row.get('userId') == user_id and not row.get('isRead')
        )
