# purvita/admin_dashboard/view_model.py
"""
Admin dashboard view model: metrics snapshot → display-ready rows and copy (en/es).
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from core.utils import parse_datetime

ACTIVITY_ROWS_LIMIT = 5
TOP_PRODUCTS_LIMIT = 4

STATUS_TONE_BY_ACTION = {
    'PRODUCT_CREATED': {
        'template': {'en': 'Product added: {{entity}}', 'es': 'Producto agregado: {{entity}}'},
        'tone': 'success',
    },
    'PRODUCT_UPDATED': {
        'template': {'en': 'Product updated: {{entity}}', 'es': 'Producto actualizado: {{entity}}'},
        'tone': 'warning',
    },
    'PRODUCT_DELETED': {
        'template': {'en': 'Product removed: {{entity}}', 'es': 'Producto eliminado: {{entity}}'},
        'tone': 'info',
    },
    'ORDER_PAID': {
        'template': {'en': 'Order paid: {{entity}}', 'es': 'Orden pagada: {{entity}}'},
        'tone': 'success',
    },
    'SUBSCRIPTION_ACTIVATED': {
        'template': {'en': 'Subscription activated: {{entity}}', 'es': 'Suscripción activada: {{entity}}'},
        'tone': 'success',
    },
    'SUBSCRIPTION_CANCELED': {
        'template': {'en': 'Subscription canceled: {{entity}}', 'es': 'Suscripción cancelada: {{entity}}'},
        'tone': 'info',
    },
    'WALLET_RECHARGED': {
        'template': {'en': 'Wallet recharged: {{entity}}', 'es': 'Billetera recargada: {{entity}}'},
        'tone': 'success',
    },
}

ENTITY_TYPE_LABELS = {
    'product': {'en': 'Product', 'es': 'Producto'},
    'user': {'en': 'User', 'es': 'Usuario'},
    'subscription': {'en': 'Subscription', 'es': 'Suscripción'},
    'wallet': {'en': 'Wallet', 'es': 'Billetera'},
    'order': {'en': 'Order', 'es': 'Orden'},
}

_ENTITY_NAME_KEYS = ('name', 'productName', 'title', 'email', 'slug')

_MONTHS = {
    'en': ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec'],
    'es': ['ene', 'feb', 'mar', 'abr', 'may', 'jun', 'jul', 'ago', 'sept', 'oct', 'nov', 'dic'],
}

EMPTY_DASHBOARD_DATA: Dict[str, Any] = {
    "totalUsers": 0,
    "totalProducts": 0,
    "activeSubscriptions": 0,
    "waitlistedSubscriptions": 0,
    "totalSubscriptionRevenueCents": 0,
    "totalOrderRevenueCents": 0,
    "totalWalletBalanceCents": 0,
    "totalStock": 0,
    "comingSoonSubscribers": 0,
    "productStock": [],
    "recentProducts": [],
    "topProductSales": [],
    "recentAuditLogs": [],
    "recentUsers": [],
}


# ═══════════════════════════════════════════════════════════════════════════
# FORMATTING
# ═══════════════════════════════════════════════════════════════════════════

def format_number(value: Any, lang: str = 'en') -> str:
    """
    Examples:
        >>> format_number(12345, 'en')
        '12,345'
        >>> format_number(12345, 'es')
        '12.345'
    """
    rounded = int(Decimal(str(value or 0)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    text = f"{rounded:,}"
    return text.replace(',', '.') if lang == 'es' else text


def format_currency(amount: Any, lang: str = 'en') -> str:
    """USD without decimals: '$1,235' (en), '1.235 US$' (es)."""
    number = format_number(abs(Decimal(str(amount or 0))), lang)
    negative = Decimal(str(amount or 0)) < 0 and number != '0'
    sign = '-' if negative else ''
    if lang == 'es':
        return f"{sign}{number} US$"
    return f"{sign}${number}"


def format_date(value: Any, lang: str = 'en') -> str:
    moment = value if isinstance(value, datetime) else parse_datetime(value)
    if moment is None:
        return ''
    month = _MONTHS.get(lang, _MONTHS['en'])[moment.month - 1]
    if lang == 'es':
        return f"{moment.day} {month} {moment.year}"
    return f"{month} {moment.day}, {moment.year}"


# ═══════════════════════════════════════════════════════════════════════════
# ACTIVITY LABELS
# ═══════════════════════════════════════════════════════════════════════════

def _extract_metadata_string(metadata: Any, keys=_ENTITY_NAME_KEYS) -> Optional[str]:
    if not isinstance(metadata, dict):
        return None

    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    if isinstance(metadata.get('product'), dict):
        return _extract_metadata_string(metadata['product'], keys)

    return None


def get_activity_entity_name(metadata: Any, fallback: Optional[str] = None) -> str:
    candidate = _extract_metadata_string(metadata)
    if candidate:
        return candidate
    if isinstance(fallback, str) and fallback.strip():
        return fallback.strip()
    return 'Unknown'


def format_status_label(action: str, lang: str, entity_name: str, default_entity_label: str) -> Dict[str, str]:
    config = STATUS_TONE_BY_ACTION.get(action)
    subject = entity_name or default_entity_label

    if config is None:
        readable = action.replace('_', ' ').lower()
        prefix = 'Evento' if lang == 'es' else 'Event'
        return {'label': f"{prefix} {readable}: {subject}".strip(), 'tone': 'info'}

    template = config['template'].get(lang) or config['template']['en']
    if '{{entity}}' in template:
        label = template.replace('{{entity}}', subject)
    else:
        label = f"{template}: {subject}"
    return {'label': label, 'tone': config['tone']}


def _entity_labels(entity_type: str) -> Dict[str, str]:
    if entity_type in ENTITY_TYPE_LABELS:
        return ENTITY_TYPE_LABELS[entity_type]
    if entity_type == 'unknown':
        return {'en': 'Entity', 'es': 'Entidad'}
    return {'en': entity_type, 'es': entity_type}


def _activity_row(activity: Dict[str, Any], lang: str) -> Dict[str, Any]:
    entity_type = str(activity.get('entity_type') or 'unknown').lower()
    labels = _entity_labels(entity_type)
    entity_label = labels.get(lang) or labels['en']

    entity_name = get_activity_entity_name(activity.get('metadata'), activity.get('entity_id'))
    status = format_status_label(activity.get('action') or '', lang, entity_name, entity_label)

    profile = activity.get('profiles') or {}

    return {
        'id': activity.get('id'),
        'user': profile.get('name') or profile.get('email') or 'Unknown',
        'product': f"{entity_label}: {entity_name}" if entity_name else entity_label,
        'entityType': entity_type,
        'date': format_date(activity.get('created_at'), lang),
        'statusLabel': status['label'],
        'statusTone': status['tone'],
    }


# ═══════════════════════════════════════════════════════════════════════════
# BUILDER
# ═══════════════════════════════════════════════════════════════════════════

def _copy(lang: str) -> Dict[str, Any]:
    es = lang == 'es'
    return {
        'heading': 'Panel' if es else 'Dashboard',
        'recentActivityHeading': 'Actividad reciente' if es else 'Recent Activity',
        'topProductsHeading': 'Productos más vendidos' if es else 'Top Selling Products',
        'inventoryHeading': 'Resumen de inventario' if es else 'Inventory Overview',
        'inventorySummary': (
            'Controla el stock disponible de cada producto y reabastece a tiempo.' if es
            else 'Track the stock available for each product and restock proactively.'
        ),
        'loadingLabel': 'Cargando.' if es else 'Loading.',
        'columns': {
            'activity': {
                'user': 'Usuario' if es else 'User',
                'product': 'Entidad' if es else 'Entity',
                'date': 'Fecha' if es else 'Date',
                'status': 'Estado' if es else 'Status',
            },
            'products': {
                'product': 'Producto' if es else 'Product',
                'sales': 'Ventas' if es else 'Sales',
                'revenue': 'Ingresos' if es else 'Revenue',
            },
            'inventory': {
                'product': 'Producto' if es else 'Product',
                'stock': 'Stock',
            },
        },
        'emptyMessages': {
            'activity': 'No hay actividades recientes' if es else 'No recent activity yet',
            'products': 'No hay productos disponibles' if es else 'No products available',
            'inventory': 'No hay inventario registrado' if es else 'No inventory recorded yet',
        },
    }


def _stat_cards(data: Dict[str, Any], lang: str) -> List[Dict[str, str]]:
    es = lang == 'es'
    subscription_revenue = Decimal(data.get('totalSubscriptionRevenueCents') or 0) / 100
    order_revenue = Decimal(data.get('totalOrderRevenueCents') or 0) / 100
    wallet_liability = Decimal(data.get('totalWalletBalanceCents') or 0) / 100

    total_revenue = data.get('totalRevenue')
    if total_revenue is None:
        total_revenue = subscription_revenue + order_revenue

    return [
        {'icon': 'revenue', 'title': 'Ingresos totales' if es else 'Total Revenue',
         'value': format_currency(total_revenue, lang)},
        {'icon': 'subscriptions', 'title': 'Suscripciones activas' if es else 'Active Subscriptions',
         'value': format_number(data.get('activeSubscriptions'), lang)},
        {'icon': 'revenue', 'title': 'Ingresos mensuales por suscripción' if es else 'Monthly Subscription Revenue',
         'value': format_currency(subscription_revenue, lang)},
        {'icon': 'revenue', 'title': 'Ingresos de e-commerce' if es else 'E-commerce Revenue',
         'value': format_currency(order_revenue, lang)},
        {'icon': 'wallet', 'title': 'Saldo pendiente en billeteras' if es else 'Wallet Balance Outstanding',
         'value': format_currency(wallet_liability, lang)},
        {'icon': 'users', 'title': 'Usuarios totales' if es else 'Total Users',
         'value': format_number(data.get('totalUsers'), lang)},
        {'icon': 'inventory', 'title': 'Stock total' if es else 'Total Stock',
         'value': format_number(data.get('totalStock'), lang)},
        {'icon': 'email', 'title': 'Suscriptores próximamente' if es else 'Coming Soon Subscribers',
         'value': format_number(data.get('comingSoonSubscribers'), lang)},
    ]


def buildAdminDashboardViewModel(lang: str, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Args:
        lang: 'en' or 'es'
        data: Snapshot from AdminDashboardMetricsHttpGateway.getMetrics, or None

    Returns:
        {statCards, activityRows, topProductRows, inventoryRows, copy}
    """
    data = data or EMPTY_DASHBOARD_DATA

    activities = data.get('recentActivities')
    if activities is None:
        activities = data.get('recentAuditLogs') or []
    activity_rows = [_activity_row(activity, lang) for activity in activities[:ACTIVITY_ROWS_LIMIT]]

    sales = data.get('topProductSales') or []
    if not sales:
        sales = [
            {'productId': product.get('id'), 'name': product.get('name'), 'unitsSold': 0, 'revenueCents': 0}
            for product in data.get('recentProducts') or []
        ]
    sales = sorted(
        sales,
        key=lambda entry: (entry.get('unitsSold') or 0, entry.get('revenueCents') or 0),
        reverse=True
    )
    top_product_rows = [
        {
            'id': entry.get('productId'),
            'name': entry.get('name'),
            'salesLabel': format_number(entry.get('unitsSold'), lang),
            'revenueLabel': format_currency(Decimal(entry.get('revenueCents') or 0) / 100, lang),
        }
        for entry in sales[:TOP_PRODUCTS_LIMIT]
    ]

    stock = sorted(data.get('productStock') or [], key=lambda item: item.get('stockQuantity') or 0, reverse=True)
    inventory_rows = [
        {
            'id': item.get('id'),
            'name': item.get('name'),
            'stockLabel': format_number(item.get('stockQuantity'), lang),
        }
        for item in stock
    ]

    return {
        'statCards': _stat_cards(data, lang),
        'activityRows': activity_rows,
        'topProductRows': top_product_rows,
        'inventoryRows': inventory_rows,
        'copy': _copy(lang),
    }
