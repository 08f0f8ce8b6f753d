# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide rendimiento de rutas y funciones sin afectar la experiencia del usuario.
# Guarda logs legibles en logs/ para análisis humano.
#
# ACTIVAR/DESACTIVAR: variable de entorno BAKESHOP_PROFILING (1/0)
# DIRECTORIO:         variable de entorno BAKESHOP_LOGS_DIR
# ==============================================================================

import os
import time
import threading
from datetime import datetime
from functools import wraps

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = os.environ.get('BAKESHOP_PROFILING', '1') == '1'

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300   # Advertencia si supera 300ms
THRESHOLD_CRITICAL = 700  # Crítico si supera 700ms

# Directorio de logs
LOGS_DIR = os.environ.get(
    'BAKESHOP_LOGS_DIR',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
)

# Archivos de log
PERFORMANCE_LOG = os.path.join(LOGS_DIR, 'performance.log')
SLOW_ROUTES_LOG = os.path.join(LOGS_DIR, 'slow_routes.log')
SLOW_FUNCTIONS_LOG = os.path.join(LOGS_DIR, 'slow_functions.log')

# Rutas que no se registran
IGNORED_PREFIXES = ('/uploads', '/health')

# Mapeo de rutas a nombres legibles (para logs más humanos)
ROUTE_NAMES = {
    # Usuarios
    'POST /api/users': 'Registrar usuario',
    'POST /api/users/login': 'Iniciar sesión',
    'GET /api/users/profile': 'Ver perfil',
    'GET /api/users': 'Listar usuarios',

    # Catálogo
    'GET /api/products': 'Ver catálogo',
    'GET /api/products/<int:product_id>': 'Ver producto',
    'POST /api/products': 'Crear producto',
    'PUT /api/products/<int:product_id>': 'Editar producto',
    'DELETE /api/products/<int:product_id>': 'Eliminar producto',
    'DELETE /api/products': 'Eliminar productos (masivo)',
    'POST /api/products/upload': 'Subir imagen de producto',

    # Carrito
    'GET /api/cart': 'Ver carrito',
    'POST /api/cart': 'Agregar al carrito',
    'PUT /api/cart/<int:product_id>': 'Modificar línea del carrito',
    'DELETE /api/cart/<int:product_id>': 'Eliminar del carrito',
    'DELETE /api/cart': 'Vaciar carrito',

    # Pedidos
    'POST /api/orders': 'Crear pedido',
    'GET /api/orders': 'Listar pedidos',
    'GET /api/orders/mine': 'Ver mis pedidos',
    'GET /api/orders/<int:order_id>': 'Ver pedido',
    'PUT /api/orders/<int:order_id>/status': 'Cambiar estado de pedido',

    # Pagos
    'POST /api/payments': 'Crear pago',
    'POST /api/payments/<int:payment_id>/proof': 'Subir comprobante',
    'PUT /api/payments/<int:payment_id>/status': 'Confirmar/rechazar pago',
    'GET /api/payments': 'Listar pagos',
    'GET /api/payments/order/<int:order_id>': 'Ver pago de pedido',

    # Kardex
    'GET /api/stock-transactions': 'Ver kardex',
    'POST /api/stock-transactions': 'Registrar movimiento de stock',
    'GET /api/stock-transactions/product/<int:product_id>': 'Ver kardex de producto',
    'GET /api/stock-transactions/product/<int:product_id>/reconcile': 'Reconciliar kardex',

    # Notificaciones
    'GET /api/notifications': 'Ver notificaciones',
    'PUT /api/notifications/<int:notification_id>/read': 'Marcar notificación leída',
    'PUT /api/notifications/read-all': 'Marcar todas como leídas',
    'GET /api/notifications/unread-count': 'Contar no leídas',
    'POST /api/notifications': 'Crear notificación',

    # Log de actividad
    'GET /api/logs': 'Ver registro de actividad',
    'POST /api/logs': 'Agregar registro de actividad',
    'DELETE /api/logs': 'Limpiar registro de actividad',

    # Dashboard y pestañas
    'GET /api/dashboard/stats': 'Ver estadísticas',
    'GET /api/dashboard/activity': 'Ver actividad reciente',
    'GET /api/dashboard/sales-chart': 'Ver gráfico de ventas',
    'GET /api/dashboard/products-chart': 'Ver gráfico de productos',
    'GET /api/admin/tabs': 'Listar pestañas',
    'GET /api/admin/tabs/<name>': 'Ver pestaña',
}


# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def _ensure_logs_dir():
    """Crea el directorio de logs si no existe"""
    os.makedirs(LOGS_DIR, exist_ok=True)


# ═══════════════════════════════════════════════════════════════════════════
# BLOQUEO DE ESCRITURA DE LOGS
# ═══════════════════════════════════════════════════════════════════════════

_log_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# FUNCIONES DE LOGGING
# ═══════════════════════════════════════════════════════════════════════════

def _get_timestamp():
    """Obtiene timestamp legible"""
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _write_log(filepath, content):
    """Escribe contenido a un archivo de log (thread-safe)"""
    try:
        with _log_lock:
            _ensure_logs_dir()
            with open(filepath, 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass  # Un fallo del log no debe tumbar la petición


def _get_route_name(method, path, rule=None):
    """
    Obtiene nombre legible para una ruta.
    Intenta con la regla de Flask y luego con la ruta exacta.
    """
    if rule:
        rule_key = f"{method} {rule}"
        if rule_key in ROUTE_NAMES:
            return ROUTE_NAMES[rule_key]

    key = f"{method} {path}"
    if key in ROUTE_NAMES:
        return ROUTE_NAMES[key]

    return key


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════

def log_route_performance(method, path, rule, time_ms, status, user=None):
    """
    Registra el rendimiento de una ruta en performance.log

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/orders/3)
        rule: Regla de Flask (/api/orders/<int:order_id>)
        time_ms: Tiempo en milisegundos
        status: Código HTTP de la respuesta
        user: Email del usuario autenticado (opcional)
    """
    if not ENABLE_PROFILING:
        return

    action_name = _get_route_name(method, path, rule)
    user_str = user or 'anónimo'

    log_entry = f"""
════════════════════════════════════════
[PERFORMANCE] {_get_timestamp()}
────────────────────────────────────────
Acción: {action_name}
Usuario: {user_str}
Ruta: {method} {path}
Estado: {status}
Tiempo: {time_ms:.0f} ms
"""

    _write_log(PERFORMANCE_LOG, log_entry)


def log_slow_route(method, path, rule, time_ms, user=None, level='WARNING'):
    """
    Registra una ruta lenta en slow_routes.log

    Args:
        level: 'WARNING' (>300ms) o 'CRITICAL' (>700ms)
    """
    if not ENABLE_PROFILING:
        return

    action_name = _get_route_name(method, path, rule)
    user_str = user or 'anónimo'

    emoji = '⚠️' if level == 'WARNING' else '🔴'
    severity = 'LENTA' if level == 'WARNING' else 'MUY LENTA'

    log_entry = f"""
{emoji} [{level}] {_get_timestamp()}
────────────────────────────────────────
Ruta {severity}: {action_name}
Usuario: {user_str}
Detalle: {method} {path}
Tiempo: {time_ms:.0f} ms (umbral: {THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL} ms)
────────────────────────────────────────
"""

    _write_log(SLOW_ROUTES_LOG, log_entry)


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Inicializa el sistema de profiling en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from bakeshop.performance_logger import init_profiling
        init_profiling(app)
    """
    if not ENABLE_PROFILING:
        return

    _ensure_logs_dir()

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms

        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path
        current_user = getattr(g, 'current_user', None)
        user = current_user.get('email') if current_user else None

        if path.startswith(IGNORED_PREFIXES):
            return response

        log_route_performance(method, path, rule, elapsed, response.status_code, user)

        if elapsed >= THRESHOLD_CRITICAL:
            log_slow_route(method, path, rule, elapsed, user, 'CRITICAL')
        elif elapsed >= THRESHOLD_WARNING:
            log_slow_route(method, path, rule, elapsed, user, 'WARNING')

        return response


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para medir rendimiento de funciones críticas.

    Uso:
        @profile_function
        def mi_funcion():
            ...

        @profile_function(name="Crear pedido")
        def create_order():
            ...

    Las llamadas que superan THRESHOLD_WARNING se escriben en slow_functions.log
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                if elapsed_ms >= THRESHOLD_WARNING:
                    _log_slow_function_call(func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


def _log_slow_function_call(func_name, time_ms):
    """Registra una llamada lenta a una función"""
    severity = 'CRÍTICO' if time_ms >= THRESHOLD_CRITICAL else 'LENTO'
    emoji = '🔴' if time_ms >= THRESHOLD_CRITICAL else '⚠️'

    log_entry = f"""
{emoji} [{severity}] {_get_timestamp()}
Función: {func_name}
Tiempo: {time_ms:.0f} ms
────────────────────────────────────────
"""

    _write_log(SLOW_FUNCTIONS_LOG, log_entry)


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'profile_function',
]
