from flask import Flask, request, jsonify, g, send_from_directory
from functools import wraps
from werkzeug.exceptions import HTTPException
from itsdangerous import URLSafeTimedSerializer, BadData
import os

# Sistema de profiling interno
from bakeshop.performance_logger import init_profiling

# ═══════════════════════════════════════════════════════════════════════════
# CONTENEDOR DE DEPENDENCIAS - Servicios y Repositorios
# ═══════════════════════════════════════════════════════════════════════════
# Las rutas solo traducen HTTP <-> servicios. La lógica de negocio vive en
# services/ y la persistencia en repositories/.
# ═══════════════════════════════════════════════════════════════════════════
from bakeshop.app_container import get_container
from bakeshop.errors import AuthenticationError, PermissionDeniedError, ShopError
from bakeshop.models.entities import utc_now
from bakeshop.services.upload_service import UPLOAD_URL_PREFIX

app = Flask(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# INICIALIZAR SISTEMA DE PROFILING
# ═══════════════════════════════════════════════════════════════════════════
# Mide rendimiento de rutas y funciones. Logs en logs/
# Para desactivar: BAKESHOP_PROFILING=0
init_profiling(app)

# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════════
BASE = os.path.dirname(os.path.abspath(__file__))

DATA_DIR = os.environ.get("BAKESHOP_DATA_DIR", os.path.join(BASE, "data"))
UPLOAD_DIR = os.environ.get("BAKESHOP_UPLOAD_DIR", os.path.join(BASE, "uploads"))

# SECRET_KEY: En producción DEBE definirse via variable de entorno
# Comando: export BAKESHOP_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
_DEFAULT_SECRET = "bakeshop_dev_secret_key_change_in_production"
_SECRET_KEY = os.environ.get("BAKESHOP_SECRET_KEY")

if not _SECRET_KEY:
    print("[CONFIG] BAKESHOP_SECRET_KEY no definida, usando clave de desarrollo")
    print("[CONFIG] Define la variable de entorno antes de publicar el servidor")

app.secret_key = _SECRET_KEY or _DEFAULT_SECRET

# Vida de los tokens (segundos). Por defecto 30 días.
TOKEN_MAX_AGE = int(os.environ.get("BAKESHOP_TOKEN_MAX_AGE", 30 * 24 * 3600))
TOKEN_SALT = "bakeshop-auth"

# Margen sobre los 5 MB por archivo para el resto del formulario multipart
app.config['MAX_CONTENT_LENGTH'] = 6 * 1024 * 1024


def _container():
    return get_container(DATA_DIR, UPLOAD_DIR)


# Helpers
def to_int(v, default=None):
    try:
        return int(v)
    except (TypeError, ValueError, OverflowError):
        return default


def _json_body():
    return request.get_json(silent=True) or {}


def _absolute_image(product):
    """Devuelve el producto con imageUrl absoluta (/uploads/... → http://host/uploads/...)."""
    if not product:
        return product
    image = product.get('imageUrl')
    if image and image.startswith(UPLOAD_URL_PREFIX):
        product = dict(product)
        product['imageUrl'] = request.host_url.rstrip('/') + image
    return product


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN - Tokens Bearer firmados
# ═══════════════════════════════════════════════════════════════════════════════

def _serializer():
    return URLSafeTimedSerializer(app.secret_key, salt=TOKEN_SALT)


def issue_token(user):
    """Genera un token firmado que solo lleva el ID del usuario."""
    return _serializer().dumps({'id': user['id']})


def verify_token(token):
    """
    Verifica firma y vigencia del token.

    Returns:
        ID del usuario

    Raises:
        AuthenticationError: Token alterado, vencido o mal formado
    """
    try:
        payload = _serializer().loads(token, max_age=TOKEN_MAX_AGE)
    except BadData:
        raise AuthenticationError('Not authorized, token failed')
    if not isinstance(payload, dict) or 'id' not in payload:
        raise AuthenticationError('Not authorized, token failed')
    return payload['id']


def _current_user():
    """Lee el Bearer token y recarga el usuario desde el almacenamiento."""
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        raise AuthenticationError('Not authorized, no token')
    token = header[len('Bearer '):].strip()
    if not token:
        raise AuthenticationError('Not authorized, no token')

    user = _container().user_service.find_user(verify_token(token))
    if not user:
        raise AuthenticationError('Not authorized, token failed')
    return user


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.current_user = _current_user()
        return f(*args, **kwargs)
    return wrapper


def admin_required(f):
    # El rol se lee del usuario recargado, nunca del token
    @wraps(f)
    def wrapper(*args, **kwargs):
        g.current_user = _current_user()
        if not g.current_user.get('isAdmin'):
            raise PermissionDeniedError('Not authorized as an admin')
        return f(*args, **kwargs)
    return wrapper


def _actor():
    """Datos del usuario y de la petición para el log de actividad."""
    user = getattr(g, 'current_user', None) or {}
    return {
        'id': user.get('id'),
        'name': user.get('name'),
        'ipAddress': request.headers.get('X-Forwarded-For', request.remote_addr),
        'userAgent': request.headers.get('User-Agent'),
    }


# ═══════════════════════════════════════════════════════════════════════════════
# MANEJO DE ERRORES - Siempre JSON {"message": ...}
# ═══════════════════════════════════════════════════════════════════════════════

@app.errorhandler(ShopError)
def handle_shop_error(e):
    return jsonify({'message': e.message}), e.status_code


@app.errorhandler(413)
def handle_too_large(e):
    return jsonify({'message': 'File too large. Maximum size is 5MB.'}), 400


@app.errorhandler(HTTPException)
def handle_http_error(e):
    return jsonify({'message': e.description}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    print(f"[ERROR] {request.method} {request.path}: {type(e).__name__}: {e}")
    return jsonify({'message': 'Server Error'}), 500


@app.after_request
def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # NOTA: HSTS solo en producción con HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    # La tienda se sirve desde otro origen
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, Idempotency-Key'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
    return response


# ═══════════════════════════════════════════════════════════════════════════════
# SALUD Y ARCHIVOS SUBIDOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/health')
def health():
    return jsonify({'status': 'OK', 'timestamp': utc_now()})


@app.route('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(_container().upload_dir, filename)


# ═══════════════════════════════════════════════════════════════════════════════
# USUARIOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/users', methods=['POST'])
def register_user():
    data = _json_body()
    user = _container().user_service.register(
        data.get('name'), data.get('email'), data.get('password')
    )
    return jsonify({**user, 'token': issue_token(user)}), 201


@app.route('/api/users/login', methods=['POST'])
def login_user():
    data = _json_body()
    user = _container().user_service.authenticate(data.get('email'), data.get('password'))
    return jsonify({**user, 'token': issue_token(user)})


@app.route('/api/users/profile')
@login_required
def user_profile():
    return jsonify(g.current_user)


@app.route('/api/users')
@admin_required
def list_users():
    return jsonify(_container().user_service.list_users())


# ═══════════════════════════════════════════════════════════════════════════════
# CATÁLOGO
# ═══════════════════════════════════════════════════════════════════════════════

def _product_payload():
    """Datos del producto desde JSON o multipart, con la imagen ya guardada."""
    if request.files or request.form:
        data = request.form.to_dict()
    else:
        data = _json_body()
    image_url = None
    image = request.files.get('image')
    if image is not None and image.filename:
        image_url = _container().upload_service.save(image, 'image')
    return data, image_url


@app.route('/api/products')
def list_products():
    products = _container().catalog_service.list_products(
        request.args.get('category'), request.args.get('q')
    )
    return jsonify([_absolute_image(p) for p in products])


@app.route('/api/products/<int:product_id>')
def get_product(product_id):
    return jsonify(_absolute_image(_container().catalog_service.get_product(product_id)))


@app.route('/api/products', methods=['POST'])
@admin_required
def create_product():
    data, image_url = _product_payload()
    try:
        product = _container().catalog_service.create_product(data, _actor(), image_url)
    except ShopError:
        _container().upload_service.delete(image_url)
        raise
    return jsonify(_absolute_image(product)), 201


@app.route('/api/products/<int:product_id>', methods=['PUT'])
@admin_required
def update_product(product_id):
    data, image_url = _product_payload()
    try:
        product = _container().catalog_service.update_product(product_id, data, _actor(), image_url)
    except ShopError:
        _container().upload_service.delete(image_url)
        raise
    return jsonify(_absolute_image(product))


@app.route('/api/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    _container().catalog_service.delete_product(product_id, _actor())
    return jsonify({'message': 'Product removed'})


@app.route('/api/products', methods=['DELETE'])
@admin_required
def delete_products():
    count = _container().catalog_service.delete_products(
        _json_body().get('productIds'), _actor()
    )
    return jsonify({'message': f'{count} products removed', 'deletedCount': count})


@app.route('/api/products/upload', methods=['POST'])
@admin_required
def upload_product_image():
    url = _container().upload_service.save(request.files.get('image'), 'image')
    return jsonify({'imageUrl': url})


# ═══════════════════════════════════════════════════════════════════════════════
# CARRITO
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/cart')
@login_required
def get_cart():
    return jsonify(_container().cart_service.get_cart(g.current_user['id']))


@app.route('/api/cart', methods=['POST'])
@login_required
def add_to_cart():
    data = _json_body()
    cart = _container().cart_service.add_item(
        g.current_user['id'], data.get('productId'), data.get('quantity', 1)
    )
    return jsonify(cart), 201


@app.route('/api/cart/<int:product_id>', methods=['PUT'])
@login_required
def update_cart_item(product_id):
    data = _json_body()
    cart = _container().cart_service.update_item(
        g.current_user['id'], product_id, data.get('quantity'), data.get('selected')
    )
    return jsonify(cart)


@app.route('/api/cart/<int:product_id>', methods=['DELETE'])
@login_required
def remove_cart_item(product_id):
    return jsonify(_container().cart_service.remove_item(g.current_user['id'], product_id))


@app.route('/api/cart', methods=['DELETE'])
@login_required
def clear_cart():
    _container().cart_service.clear(g.current_user['id'])
    return jsonify({'message': 'Cart cleared'})


# ═══════════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/orders', methods=['POST'])
@login_required
def create_order():
    data = _json_body()
    order, created = _container().order_service.create_order(
        g.current_user,
        data.get('items'),
        data.get('total'),
        data.get('shippingInfo'),
        idempotency_key=request.headers.get('Idempotency-Key')
    )
    return jsonify({'order': order}), (201 if created else 200)


@app.route('/api/orders')
@admin_required
def list_orders():
    return jsonify(_container().order_service.list_orders())


@app.route('/api/orders/mine')
@login_required
def my_orders():
    return jsonify(_container().order_service.list_user_orders(g.current_user['id']))


@app.route('/api/orders/<int:order_id>')
@login_required
def get_order(order_id):
    return jsonify(_container().order_service.get_order(order_id, g.current_user))


@app.route('/api/orders/<int:order_id>/status', methods=['PUT'])
@admin_required
def update_order_status(order_id):
    data = _json_body()
    order = _container().order_service.update_status(
        order_id, data.get('status'), _actor(), data.get('trackingNumber')
    )
    return jsonify(order)


# ═══════════════════════════════════════════════════════════════════════════════
# PAGOS
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/payments', methods=['POST'])
@login_required
def create_payment():
    data = _json_body()
    payment, created = _container().payment_service.create_payment(
        data.get('orderId'),
        data.get('amount'),
        data.get('paymentMethod'),
        data.get('notes'),
        requester=g.current_user
    )
    return jsonify(payment), (201 if created else 200)


@app.route('/api/payments/<int:payment_id>/proof', methods=['POST'])
@login_required
def upload_payment_proof(payment_id):
    payment = _container().payment_service.attach_proof(
        payment_id,
        request.files.get('receipt'),
        reference=request.form.get('reference'),
        payment_method=request.form.get('payment_method'),
        notes=request.form.get('notes'),
        requester=g.current_user
    )
    return jsonify({'message': 'Payment proof uploaded successfully', 'payment': payment})


@app.route('/api/payments/<int:payment_id>/status', methods=['PUT'])
@admin_required
def update_payment_status(payment_id):
    data = _json_body()
    payment = _container().payment_service.update_status(
        payment_id, data.get('status'), data.get('notes'), _actor()
    )
    return jsonify({'message': 'Payment status updated', 'payment': payment})


@app.route('/api/payments')
@admin_required
def list_payments():
    return jsonify(_container().payment_service.list_payments())


@app.route('/api/payments/order/<int:order_id>')
@login_required
def payment_for_order(order_id):
    return jsonify(_container().payment_service.get_by_order(order_id, g.current_user))


# ═══════════════════════════════════════════════════════════════════════════════
# KARDEX (movimientos de stock)
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/stock-transactions')
@admin_required
def list_stock_transactions():
    return jsonify(_container().stock_service.list_transactions())


@app.route('/api/stock-transactions', methods=['POST'])
@admin_required
def record_stock_transaction():
    data = _json_body()
    row = _container().stock_service.record(
        data.get('productId'),
        data.get('type'),
        data.get('quantity'),
        data.get('reference'),
        data.get('notes'),
        g.current_user['id']
    )
    return jsonify(row), 201


@app.route('/api/stock-transactions/product/<int:product_id>')
@admin_required
def product_stock_transactions(product_id):
    return jsonify(_container().stock_service.list_for_product(product_id))


@app.route('/api/stock-transactions/product/<int:product_id>/reconcile')
@admin_required
def reconcile_product_stock(product_id):
    return jsonify(_container().stock_service.reconcile(product_id))


# ═══════════════════════════════════════════════════════════════════════════════
# NOTIFICACIONES
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/notifications')
@login_required
def list_notifications():
    return jsonify(_container().notification_service.list_for_user(g.current_user['id']))


@app.route('/api/notifications/<int:notification_id>/read', methods=['PUT'])
@login_required
def mark_notification_read(notification_id):
    notification = _container().notification_service.mark_read(
        notification_id, g.current_user['id']
    )
    return jsonify(notification)


@app.route('/api/notifications/read-all', methods=['PUT'])
@login_required
def mark_all_notifications_read():
    count = _container().notification_service.mark_all_read(g.current_user['id'])
    return jsonify({'message': 'All notifications marked as read', 'count': count})


@app.route('/api/notifications/unread-count')
@login_required
def unread_notifications():
    return jsonify({'count': _container().notification_service.unread_count(g.current_user['id'])})


@app.route('/api/notifications', methods=['POST'])
@admin_required
def create_notification():
    return jsonify(_container().notification_service.create(_json_body())), 201


# ═══════════════════════════════════════════════════════════════════════════════
# LOG DE ACTIVIDAD
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/logs')
@admin_required
def list_logs():
    limit = to_int(request.args.get('limit'), 1000)
    return jsonify(_container().audit_service.list_logs(max(limit, 1)))


@app.route('/api/logs', methods=['POST'])
@admin_required
def create_log():
    return jsonify(_container().audit_service.create_log(_json_body(), _actor())), 201


@app.route('/api/logs', methods=['DELETE'])
@admin_required
def clear_logs():
    count = _container().audit_service.clear_logs()
    return jsonify({'message': 'Logs cleared', 'count': count})


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/dashboard/stats')
@admin_required
def dashboard_stats():
    days = to_int(request.args.get('days'), 30)
    return jsonify(_container().dashboard_service.stats(max(days, 1)))


@app.route('/api/dashboard/activity')
@admin_required
def dashboard_activity():
    limit = to_int(request.args.get('limit'), 10)
    return jsonify(_container().dashboard_service.recent_activity(max(limit, 1)))


@app.route('/api/dashboard/sales-chart')
@admin_required
def dashboard_sales_chart():
    return jsonify(_container().dashboard_service.sales_chart(request.args.get('period', '7d')))


@app.route('/api/dashboard/products-chart')
@admin_required
def dashboard_products_chart():
    return jsonify(_container().dashboard_service.products_chart())


# ═══════════════════════════════════════════════════════════════════════════════
# PESTAÑAS DEL ADMIN
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/admin/tabs')
@admin_required
def admin_tabs():
    return jsonify(_container().admin_service.list_tabs())


@app.route('/api/admin/tabs/<name>')
@admin_required
def admin_tab(name):
    page = _container().admin_service.list_tab(
        name,
        query=request.args.get('q'),
        filter_value=request.args.get('filter'),
        page=request.args.get('page', 1),
        per_page=request.args.get('perPage', 20)
    )
    return jsonify(page)


# ═══════════════════════════════════════════════════════════════════════════════
# ARRANQUE
# ═══════════════════════════════════════════════════════════════════════════════

def bootstrap_admin():
    """Crea la cuenta de administrador definida en BAKESHOP_ADMIN_* si falta."""
    email = os.environ.get('BAKESHOP_ADMIN_EMAIL')
    password = os.environ.get('BAKESHOP_ADMIN_PASSWORD')
    if not email or not password:
        return None
    name = os.environ.get('BAKESHOP_ADMIN_NAME', 'Admin')
    return _container().user_service.ensure_admin(email, password, name)


if __name__ == "__main__":
    # Configuración para desarrollo local
    # En producción usar WSGI: gunicorn wsgi:app (un solo proceso)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    bootstrap_admin()

    if not DEBUG:
        print(f"\n{'='*50}")
        print(f"  Servidor iniciado en http://{HOST}:{PORT}")
        print(f"  Datos: {DATA_DIR}")
        print(f"  Uploads: {UPLOAD_DIR}")
        print(f"{'='*50}\n")

    app.run(host=HOST, port=PORT, debug=DEBUG)
