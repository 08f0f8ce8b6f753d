# ==============================================================================
# EXCEPCIONES DEL DOMINIO
# ==============================================================================
# Los servicios lanzan estas excepciones; main.py las traduce a respuestas
# JSON {"message": ...} con el código HTTP correspondiente.
# ==============================================================================


class ShopError(Exception):
    """Excepción base de la tienda. Lleva el código HTTP asociado."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    """Datos faltantes o inválidos en la petición."""
    status_code = 400


class InsufficientStockError(ValidationError):
    """La cantidad solicitada supera el stock disponible."""

    def __init__(self, message: str, product_id: int = None):
        super().__init__(message)
        self.product_id = product_id


class InvalidTransitionError(ValidationError):
    """Cambio de estado no permitido (pago ya resuelto, pedido cerrado)."""


class AuthenticationError(ShopError):
    """Token ausente, inválido o credenciales incorrectas."""
    status_code = 401


class PermissionDeniedError(ShopError):
    """El usuario autenticado no tiene permiso sobre el recurso."""
    status_code = 403


class NotFoundError(ShopError):
    status_code = 404
