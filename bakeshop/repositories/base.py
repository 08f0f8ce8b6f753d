# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================

import json
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from abc import ABC, abstractmethod
import threading


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona lectura/escritura de archivos JSON con un lock global
    compartido por todas las colecciones.

    Al migrar a una base relacional:
    - Esta clase se reemplaza por una conexión a base de datos
    - atomic() se convierte en una transacción con SELECT ... FOR UPDATE
    """

    # Lock global (re-entrante) para todas las colecciones
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        os.makedirs(os.path.dirname(file_path) or '.', exist_ok=True)
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.

        Returns:
            Estructura vacía (dict o list) según el repositorio
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados del JSON (copia nueva en cada llamada)
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                # Archivo corrupto o borrado: se trata como colección vacía
                return self._empty_data()

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON (archivo temporal + os.replace).

        Args:
            data: Datos a serializar y escribir
        """
        with self._file_lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    def snapshot(self) -> Any:
        """Copia del contenido actual, para restaurar con restore()."""
        return self._read_raw()

    def restore(self, data: Any) -> None:
        """Reemplaza el contenido por un snapshot previo."""
        self._write_raw(data)
        self.reload()

    def reload(self) -> None:
        """
        Recarga los datos desde el archivo.
        Los repositorios actuales leen del disco en cada operación,
        las subclases con caché deben sobrescribirlo.
        """
        pass


@contextmanager
def atomic(*repos: BaseRepository) -> Iterator[None]:
    """
    Unidad de trabajo sobre varias colecciones.

    Mantiene el lock global durante todo el bloque y, si el bloque lanza
    una excepción, restaura cada colección a su estado previo antes de
    propagarla. Ninguna otra petición del proceso ve estados intermedios.

    Uso:
        with atomic(orders_repo, products_repo):
            ...
    """
    with BaseRepository._file_lock:
        snapshots = [(repo, repo.snapshot()) for repo in repos]
        try:
            yield
        except Exception:
            for repo, data in snapshots:
                repo.restore(data)
            raise


class DictRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como diccionario.
    El ID es la clave del diccionario (string en JSON).

    Ejemplo: products.json -> {"1": {...}, "2": {...}}
    """

    def _empty_data(self) -> Dict:
        return {}

    def get_all(self) -> Dict[str, Any]:
        """
        Obtiene todos los registros.

        Returns:
            Diccionario con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, dict) else {}

    def get_by_id(self, record_id: Any) -> Optional[Any]:
        """
        Obtiene un registro por su ID.

        Args:
            record_id: ID del registro (int o str)

        Returns:
            Datos del registro o None si no existe
        """
        return self.get_all().get(str(record_id))

    def save_all(self, data: Dict[str, Any]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)

    def update(self, record_id: Any, record_data: Any) -> None:
        """
        Crea o reemplaza un registro.

        Args:
            record_id: ID del registro
            record_data: Nuevos datos del registro
        """
        with self._file_lock:
            data = self.get_all()
            data[str(record_id)] = record_data
            self._write_raw(data)

    def delete(self, record_id: Any) -> Optional[Any]:
        """
        Elimina un registro.

        Returns:
            Datos del registro eliminado o None si no existía
        """
        with self._file_lock:
            data = self.get_all()
            removed = data.pop(str(record_id), None)
            if removed is not None:
                self._write_raw(data)
            return removed

    def next_id(self) -> int:
        """Siguiente ID numérico libre."""
        keys = [int(k) for k in self.get_all().keys() if str(k).isdigit()]
        return max(keys) + 1 if keys else 1


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista de registros con 'id'.

    Ejemplo: orders.json -> [{"id": 1, ...}, {"id": 2, ...}]
    """

    def _empty_data(self) -> List:
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Lista con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """Guarda todos los registros (reemplazo completo)."""
        self._write_raw(data)

    def next_id(self) -> int:
        ids = [int(r.get('id', 0) or 0) for r in self.get_all()]
        return max(ids) + 1 if ids else 1

    def append(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Agrega un registro al final.

        Args:
            record: Datos del nuevo registro (debe traer 'id')

        Returns:
            El registro agregado
        """
        with self._file_lock:
            data = self.get_all()
            data.append(record)
            self._write_raw(data)
        return record

    def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        try:
            record_id = int(record_id)
        except (TypeError, ValueError, OverflowError):
            return None
        return self.find_by('id', record_id)

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """
        Busca un registro por un campo específico.

        Returns:
            Primer registro que coincide o None
        """
        for record in self.get_all():
            if record.get(field) == value:
                return record
        return None

    def find_all_by(self, field: str, value: Any) -> List[Dict[str, Any]]:
        """
        Busca todos los registros que coinciden con un campo.

        Returns:
            Lista de registros que coinciden
        """
        return [r for r in self.get_all() if r.get(field) == value]

    def update_where(self, field: str, value: Any, updates: Dict[str, Any]) -> bool:
        """
        Actualiza registros que coinciden con un campo.

        Args:
            field: Nombre del campo para filtrar
            value: Valor a buscar
            updates: Campos a actualizar

        Returns:
            True si se actualizó al menos un registro
        """
        with self._file_lock:
            data = self.get_all()
            updated = False
            for record in data:
                if record.get(field) == value:
                    record.update(updates)
                    updated = True
            if updated:
                self._write_raw(data)
            return updated

    def update_by_id(self, record_id: int, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Actualiza un registro por ID.

        Returns:
            Registro actualizado o None si no existe
        """
        with self._file_lock:
            data = self.get_all()
            for record in data:
                if record.get('id') == record_id:
                    record.update(updates)
                    self._write_raw(data)
                    return record
            return None
