"""Order -> invoice record normalization.

Backends and older clients name the same field differently (``nit`` vs
``taxId``, ``qty`` vs ``quantity``). Each canonical field is resolved from a
ranked list of source keys; the tables below are the only place those
aliases live.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.envelopes import first_present, unwrap_entity
from orders.domain import Order, to_decimal

COMPANY_FIELDS = (
    ('tradeName', ('tradeName', 'legalName', 'name')),
    ('legalName', ('legalName', 'tradeName', 'name')),
    ('taxId', ('taxId', 'nit', 'documentId')),
    ('fiscalAddress', ('fiscalAddress', 'address', 'street')),
    ('city', ('city', 'town')),
    ('state', ('state', 'region')),
    ('companyEmail', ('companyEmail', 'email')),
    ('companyPhone', ('companyPhone', 'phone', 'telephone')),
)

CUSTOMER_FIELDS = (
    ('documentId', ('documentId', 'document', 'identification')),
    ('email', ('email', 'contactEmail')),
    ('phone', ('phone', 'contactPhone')),
    ('address', ('address', 'fiscalAddress', 'street')),
)

ITEM_FIELDS = (
    ('id', ('id', 'itemId', 'productId')),
    ('unitPrice', ('unitPrice', 'price', 'unit_price')),
    ('quantity', ('quantity', 'qty', 'amount')),
)

CREATED_AT_KEYS = ('createdAt', 'created_at', 'created')


def resolve_fields(source, table):
    """Apply a mapping table; unresolved fields become ``''``."""
    return {name: first_present(source, *keys, default='') for name, keys in table}


def customer_name(source):
    if not isinstance(source, dict):
        return ''
    name = source.get('name')
    if name:
        return str(name)
    full = f"{source.get('firstName') or ''} {source.get('lastName') or ''}".strip()
    return full or str(source.get('fullName') or '')


@dataclass(frozen=True)
class InvoiceLine:
    id: str
    name: str
    unit_price: Decimal
    quantity: Decimal

    @property
    def subtotal(self):
        return self.unit_price * self.quantity


@dataclass
class InvoiceRecord:
    """Everything the invoice renderer reads; nothing else is persisted."""

    order_id: str | None
    order_code: str
    status: str
    created_at: object
    company: dict
    customer: dict
    lines: list = field(default_factory=list)
    description: str = ''

    @property
    def subtotal(self):
        return sum((ln.subtotal for ln in self.lines), Decimal('0'))

    @property
    def total(self):
        return self.subtotal


def _line_name(raw):
    product = raw.get('product') if isinstance(raw.get('product'), dict) else {}
    name = product.get('name') or raw.get('productName') or raw.get('name')
    if name:
        return str(name)
    if raw.get('productId'):
        return f"Producto {raw['productId']}"
    return 'Producto'


def normalize_line(raw, position=0):
    values = resolve_fields(raw, ITEM_FIELDS)
    product = raw.get('product') if isinstance(raw.get('product'), dict) else {}
    unit_price = values['unitPrice'] if values['unitPrice'] != '' else product.get('price')
    return InvoiceLine(
        id=str(values['id'] or position + 1),
        name=_line_name(raw),
        unit_price=to_decimal(unit_price),
        quantity=to_decimal(values['quantity']),
    )


def _selection_items(selection):
    lines = getattr(selection, 'lines', selection) or []
    return [
        {'productId': ln.product_id, 'product': {'name': ln.product.name, 'price': ln.unit_price},
         'unitPrice': ln.unit_price, 'quantity': ln.quantity}
        for ln in lines
    ]


def _parse_created(value):
    if value in (None, ''):
        return timezone.now()
    if isinstance(value, str):
        parsed = parse_datetime(value) or parse_date(value)
        return parsed or value
    return value


def normalize(order, session_company=None, customer=None, selection=None):
    """Build an :class:`InvoiceRecord` for ``order``.

    ``order`` is an :class:`orders.domain.Order` or a raw payload. Company
    data comes from the order, else ``session_company``; customer data from
    the order, else ``customer``. When the order carries no items the
    ``selection`` is used at the catalog price captured when it was made.
    """
    if not isinstance(order, Order):
        order = Order.from_payload(unwrap_entity(order) or {})
    raw = order.raw or {}

    company_src = order.company or session_company or {}
    customer_src = order.customer or customer or {}

    items_src = [it for it in (raw.get('items') or []) if isinstance(it, dict)]
    if not items_src and order.items:
        items_src = [
            {'productId': it.product_id, 'product': it.product_snapshot,
             'unitPrice': it.unit_price, 'quantity': it.quantity}
            for it in order.items
        ]
    if not items_src and selection is not None:
        items_src = _selection_items(selection)

    customer_fields = resolve_fields(customer_src, CUSTOMER_FIELDS)
    customer_fields['name'] = customer_name(customer_src) or customer_name(customer)

    return InvoiceRecord(
        order_id=order.id,
        order_code=order.order_code or order.id or '',
        status=order.status.label if order.status else str(raw.get('status') or ''),
        created_at=_parse_created(first_present(raw, *CREATED_AT_KEYS)),
        company=resolve_fields(company_src, COMPANY_FIELDS),
        customer=customer_fields,
        lines=[normalize_line(raw_line, i) for i, raw_line in enumerate(items_src)],
        description=str(order.description or ''),
    )
