# ==============================================================================
# SERVICIO DE PESTAÑAS DEL ADMIN
# ==============================================================================
# Tabla estática de pestañas del back-office: nombre → colección, campos de
# búsqueda y campo de filtro. Filtro, búsqueda y paginación se resuelven en
# el servidor.
# ==============================================================================

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from bakeshop.errors import NotFoundError


@dataclass(frozen=True)
class AdminTab:
    """Definición de una pestaña del panel."""
    name: str
    title: str
    search_fields: Tuple[str, ...]
    filter_field: Optional[str] = None


# Registro estático de pestañas (orden = orden en el menú)
ADMIN_TABS: Dict[str, AdminTab] = {
    tab.name: tab for tab in (
        AdminTab('inventory', 'Inventory', ('name', 'description', 'category'), 'category'),
        AdminTab('orders', 'Orders', ('shippingAddress', 'status', 'user.name'), 'status'),
        AdminTab('payments', 'Payments', ('gcashReference', 'notes', 'orderId'), 'status'),
        AdminTab('customers', 'Customers', ('name', 'email')),
        AdminTab('logs', 'Activity Logs', ('entityName', 'adminName', 'details'), 'action'),
        AdminTab('transactions', 'Stock Transactions', ('reference', 'notes', 'product.name'), 'type'),
    )
}

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def _lookup(record: Dict[str, Any], path: str) -> Any:
    """Lee un campo, admite rutas con punto ('user.name')."""
    value: Any = record
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


class AdminService:
    """
    Resuelve las pestañas del panel contra los servicios de cada colección.
    """

    def __init__(self, loaders: Dict[str, Callable[[], List[Dict[str, Any]]]]):
        """
        Args:
            loaders: {nombre de pestaña: función que devuelve la colección}.
                     Debe cubrir exactamente las pestañas de ADMIN_TABS.
        """
        missing = set(ADMIN_TABS) - set(loaders)
        if missing:
            raise ValueError(f"Missing loaders for tabs: {', '.join(sorted(missing))}")
        self._loaders = dict(loaders)

    def list_tabs(self) -> List[Dict[str, Any]]:
        return [
            {
                'name': tab.name,
                'title': tab.title,
                'searchFields': list(tab.search_fields),
                'filterField': tab.filter_field,
            }
            for tab in ADMIN_TABS.values()
        ]

    def list_tab(
        self,
        name: str,
        query: str = None,
        filter_value: str = None,
        page: Any = 1,
        per_page: Any = DEFAULT_PER_PAGE
    ) -> Dict[str, Any]:
        """
        Página de una pestaña con búsqueda y filtro.

        Args:
            name: Nombre de la pestaña
            query: Texto a buscar (también coincide con el ID)
            filter_value: Valor exacto del campo de filtro ('all' = sin filtro)
            page: Página (desde 1)
            per_page: Registros por página (máx. 100)

        Returns:
            {tab, items, page, perPage, total, totalPages}

        Raises:
            NotFoundError: Pestaña desconocida
        """
        tab = ADMIN_TABS.get(name)
        if tab is None:
            raise NotFoundError(f'Unknown admin tab: {name}')

        records = self._loaders[name]()

        if filter_value and filter_value.lower() != 'all' and tab.filter_field:
            wanted = filter_value.strip().lower()
            records = [
                r for r in records
                if str(_lookup(r, tab.filter_field) or '').lower() == wanted
            ]

        if query:
            term = query.strip().lower()
            records = [
                r for r in records
                if term == str(r.get('id'))
                or any(term in str(_lookup(r, f) or '').lower() for f in tab.search_fields)
            ]

        per_page = min(max(_to_int(per_page, DEFAULT_PER_PAGE), 1), MAX_PER_PAGE)
        total = len(records)
        total_pages = max(1, math.ceil(total / per_page))
        page = max(_to_int(page, 1), 1)
        start = (page - 1) * per_page

        return {
            'tab': name,
            'items': records[start:start + per_page],
            'page': page,
            'perPage': per_page,
            'total': total,
            'totalPages': total_pages,
        }
