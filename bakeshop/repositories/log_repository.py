# ==============================================================================
# REPOSITORIO DEL LOG DE ACTIVIDAD
# ==============================================================================
# Encapsula todo el acceso a logs.json
# Se almacena como lista, el más reciente primero.
# ==============================================================================

import os
from typing import Any, Dict, List

from bakeshop.repositories.base import ListRepository


class LogRepository(ListRepository):
    """
    Repositorio del log de acciones administrativas.

    Formato de datos en logs.json:
    [
        {"id": 7, "action": "confirm", "entityType": "payment", "entityId": 3,
         "entityName": "Payment #3", "details": "...", "adminName": "Admin", ...}
    ]
    """

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'logs.json')
        super().__init__(file_path)

    def load(self, limit: int = None) -> List[Dict[str, Any]]:
        """
        Carga los logs, más recientes primero.

        Args:
            limit: Máximo de registros (None = todos)
        """
        logs = self.get_all()
        return logs[:limit] if limit else logs

    def log(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Inserta un registro al inicio y aplica el límite MAX_LOGS.

        Args:
            record: Registro sin 'id' (se asigna aquí)

        Returns:
            Registro guardado
        """
        with self._file_lock:
            logs = self.get_all()
            record['id'] = self.next_id()
            logs.insert(0, record)
            if len(logs) > self.MAX_LOGS:
                logs = logs[:self.MAX_LOGS]
            self._write_raw(logs)
            return record

    def clear(self) -> int:
        """
        Elimina todos los logs.

        Returns:
            Cantidad de registros eliminados
        """
        with self._file_lock:
            count = len(self.get_all())
            self._write_raw([])
            return count
