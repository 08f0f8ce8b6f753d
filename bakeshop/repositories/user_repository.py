# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula todo el acceso a users.json
# Los usuarios se almacenan como diccionario: {"<id>": {id, name, email, ...}}
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from bakeshop.repositories.base import DictRepository


class UserRepository(DictRepository):
    """
    Repositorio para gestión de usuarios.

    Formato de datos en users.json:
    {
        "1": {"id": 1, "name": "Ana", "email": "ana@mail.com",
              "password": "scrypt:...", "isAdmin": false, "createdAt": "..."}
    }
    """

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de usuarios.

        Args:
            base_path: Directorio de datos
        """
        file_path = os.path.join(base_path, 'users.json')
        super().__init__(file_path)

    def list_users(self) -> List[Dict[str, Any]]:
        """Usuarios ordenados por ID."""
        return sorted(self.get_all().values(), key=lambda u: u.get('id', 0))

    def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return self.get_by_id(user_id)

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Busca un usuario por email (sin distinguir mayúsculas).

        Args:
            email: Email a buscar

        Returns:
            Datos del usuario o None
        """
        wanted = (email or '').strip().lower()
        for user in self.get_all().values():
            if (user.get('email') or '').lower() == wanted:
                return user
        return None

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Guarda un usuario nuevo (el dict ya trae su 'id').

        Returns:
            Datos guardados
        """
        self.update(user_data['id'], user_data)
        return user_data
