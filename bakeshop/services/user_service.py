# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Registro, autenticación y consulta de usuarios.
#
# REGLAS:
# - El registro público NUNCA crea administradores
# - El email es único (sin distinguir mayúsculas)
# - El hash de contraseña nunca sale de este servicio
# ==============================================================================

from typing import Any, Dict, List, Optional
from werkzeug.security import generate_password_hash, check_password_hash

from bakeshop.errors import AuthenticationError, NotFoundError, ValidationError
from bakeshop.models.entities import User
from bakeshop.repositories.base import atomic
from bakeshop.repositories.interfaces import IUserRepository
from bakeshop.services.audit_service import AuditService


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - Registro de clientes
    - Autenticación por email y contraseña
    - Bootstrap del administrador
    - Listado de usuarios y clientes
    """

    MIN_PASSWORD_LENGTH = 6

    def __init__(
        self,
        user_repo: IUserRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de usuarios.

        Args:
            user_repo: Repositorio de usuarios
            audit_service: Servicio de auditoría (opcional)
        """
        self.user_repo = user_repo
        self.audit_service = audit_service

    @staticmethod
    def public(user: Dict[str, Any]) -> Dict[str, Any]:
        """Copia del usuario sin el hash de contraseña."""
        return User.from_dict(user).to_public_dict()

    # =========================================================================
    # REGISTRO Y AUTENTICACIÓN
    # =========================================================================

    def register(
        self,
        name: str,
        email: str,
        password: str,
        is_admin: bool = False
    ) -> Dict[str, Any]:
        """
        Registra un usuario nuevo.

        Args:
            name: Nombre visible
            email: Email (único)
            password: Contraseña en texto plano
            is_admin: Solo para bootstrap interno, nunca desde la API

        Returns:
            Usuario público (sin password)

        Raises:
            ValidationError: Campos faltantes o email ya registrado
        """
        name = (name or '').strip()
        email = (email or '').strip().lower()
        password = password or ''

        if not name or not email or not password:
            raise ValidationError('Please provide name, email and password')
        if '@' not in email:
            raise ValidationError('Invalid email address')
        if len(password) < self.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f'Password must be at least {self.MIN_PASSWORD_LENGTH} characters'
            )

        with atomic(self.user_repo):
            if self.user_repo.get_by_email(email):
                raise ValidationError('User already exists')
            user = User(
                id=self.user_repo.next_id(),
                name=name,
                email=email,
                password_hash=generate_password_hash(password),
                is_admin=bool(is_admin),
            )
            self.user_repo.create_user(user.to_dict())

        if self.audit_service:
            self.audit_service.log_user_created(None, user.to_dict())
        return user.to_public_dict()

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Verifica credenciales.

        Returns:
            Usuario público

        Raises:
            AuthenticationError: Email o contraseña incorrectos
        """
        user = self.user_repo.get_by_email(email or '')
        if not user or not check_password_hash(user.get('password', ''), password or ''):
            raise AuthenticationError('Invalid email or password')
        return self.public(user)

    def ensure_admin(self, email: str, password: str, name: str = 'Admin') -> Optional[Dict[str, Any]]:
        """
        Crea la cuenta de administrador configurada si todavía no existe.

        Returns:
            Admin creado, o None si ya existía
        """
        if not email or not password:
            return None
        existing = self.user_repo.get_by_email(email)
        if existing:
            if not existing.get('isAdmin'):
                print(f"[ADMIN] {email} existe pero no es administrador")
            return None
        admin = self.register(name or 'Admin', email, password, is_admin=True)
        print(f"[ADMIN] Cuenta de administrador creada: {admin['email']}")
        return admin

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_user(self, user_id: Any) -> Dict[str, Any]:
        """
        Obtiene un usuario por ID, releído del almacenamiento.

        Raises:
            NotFoundError: Si no existe
        """
        user = self.user_repo.get_user(user_id)
        if not user:
            raise NotFoundError('User not found')
        return self.public(user)

    def find_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        user = self.user_repo.get_user(user_id)
        return self.public(user) if user else None

    def list_users(self) -> List[Dict[str, Any]]:
        return [self.public(u) for u in self.user_repo.list_users()]

    def list_customers(self) -> List[Dict[str, Any]]:
        """Usuarios que no son administradores."""
        return [u for u in self.list_users() if not u.get('isAdmin')]
