# ==============================================================================
# BAKESHOP - API de tienda y back-office de la panadería
# ==============================================================================

__version__ = '1.0.0'
