"""Order value types as read back from the backend."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from core.envelopes import first_present


class OrderStatus(str, Enum):
    """Fulfillment status; values are the backend wire strings."""

    RECEIVED = 'recibido'
    IN_PROCESS = 'en_proceso'
    SENT = 'enviado'

    @classmethod
    def parse(cls, value):
        """Accept wire values, member names or ``None``; unknown values give ``None``."""
        if isinstance(value, cls):
            return value
        s = str(value or '').strip().lower()
        if not s:
            return None
        for member in cls:
            if s in (member.value, member.name.lower()):
                return member
        aliases = {'received': cls.RECEIVED, 'in_process': cls.IN_PROCESS, 'sent': cls.SENT}
        return aliases.get(s)

    @property
    def label(self):
        return _LABELS[self]

    def can_move_to(self, other):
        """True for the forward path received -> in_process -> sent (and no-ops)."""
        return other == self or other in _FORWARD.get(self, ())


_LABELS = {
    OrderStatus.RECEIVED: 'Recibido',
    OrderStatus.IN_PROCESS: 'En proceso',
    OrderStatus.SENT: 'Enviado',
}

_FORWARD = {
    OrderStatus.RECEIVED: (OrderStatus.IN_PROCESS, OrderStatus.SENT),
    OrderStatus.IN_PROCESS: (OrderStatus.SENT,),
    OrderStatus.SENT: (),
}


def to_decimal(value):
    """Lenient number parsing: missing or invalid values become 0."""
    if value is None or value == '':
        return Decimal('0')
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal('0')
    return number if number.is_finite() else Decimal('0')


def to_int(value, default=0):
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, TypeError, ValueError, OverflowError):
        return default


def _str_or_none(value):
    return str(value) if value not in (None, '') else None


@dataclass
class OrderItem:
    product_id: str | None
    quantity: int
    unit_price: Decimal
    product_snapshot: dict = field(default_factory=dict)

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    @classmethod
    def from_payload(cls, raw):
        product = raw.get('product') if isinstance(raw.get('product'), dict) else {}
        return cls(
            product_id=_str_or_none(first_present(raw, 'productId') or product.get('id')),
            quantity=to_int(first_present(raw, 'quantity', 'qty')),
            unit_price=to_decimal(first_present(raw, 'unitPrice', 'price', default=product.get('price'))),
            product_snapshot=product or {k: raw[k] for k in ('productName', 'name') if k in raw},
        )

    def to_payload(self):
        return {'productId': self.product_id, 'quantity': self.quantity, 'unitPrice': float(self.unit_price)}


@dataclass
class Order:
    """Client-side view of a backend order.

    ``id`` may be missing right after creation; ``raw`` keeps the payload the
    backend returned so invoice normalization can read any field it needs.
    """

    id: str | None = None
    order_code: str | None = None
    status: OrderStatus | None = None
    created_at: str | None = None
    company_id: str | None = None
    customer_id: str | None = None
    items: list = field(default_factory=list)
    description: str | None = None
    invoice_url: str | None = None
    invoice_filename: str | None = None
    payment_status: str | None = None
    company: dict = field(default_factory=dict)
    customer: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)

    @property
    def has_invoice(self):
        return bool(self.invoice_url)

    @property
    def total(self):
        return sum((it.subtotal for it in self.items), Decimal('0'))

    @property
    def reference(self):
        """Human reference used in filenames and messages."""
        return self.order_code or self.id or ''

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            return cls()
        company = payload.get('company') if isinstance(payload.get('company'), dict) else {}
        customer = payload.get('customer') if isinstance(payload.get('customer'), dict) else {}
        items = [OrderItem.from_payload(raw) for raw in (payload.get('items') or []) if isinstance(raw, dict)]
        return cls(
            id=_str_or_none(first_present(payload, 'id', '_id', 'orderId')),
            order_code=_str_or_none(payload.get('orderCode')),
            status=OrderStatus.parse(payload.get('status')),
            created_at=first_present(payload, 'createdAt', 'created_at', 'created'),
            company_id=_str_or_none(payload.get('companyId') or company.get('id')),
            customer_id=_str_or_none(payload.get('customerId') or customer.get('id')),
            items=items,
            description=payload.get('description') or None,
            invoice_url=payload.get('invoiceUrl') or None,
            invoice_filename=payload.get('invoiceFilename') or None,
            payment_status=payload.get('paymentStatus') or None,
            company=company,
            customer=customer,
            raw=payload,
        )

    def looks_like_order(self):
        """True when the payload this was built from carries order content."""
        return bool(self.raw) and any(k in self.raw for k in ('items', 'orderCode', 'paymentStatus'))
