"""Selected order lines and the quantity policy applied to them.

Quantities typed by a user go through three steps: ``parse_quantity_input``
(an empty field is held as 0 while editing; text that is not a number is
rejected), ``clamp_quantity`` (into ``[1, stock]`` when the stock is known)
and ``finalize_quantity`` (0 becomes 1 before anything is sent).
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation

from core.exceptions import ValidationError

from .domain import to_decimal, to_int


def parse_quantity_input(raw):
    """Parse a typed quantity; blank input is held as 0.

    Raises :class:`ValidationError` when the text is not a number.
    """
    if raw is None:
        return 0
    text = str(raw).strip()
    if not text:
        return 0
    try:
        number = Decimal(text)
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        raise ValidationError(f'Quantity must be a number, got {text!r}.')
    return max(0, int(number))


def clamp_quantity(qty, stock=None):
    qty = to_int(qty, 0)
    if stock is not None and stock >= 1:
        qty = min(qty, stock)
    return max(1, qty)


def finalize_quantity(qty, stock=None):
    if not qty:
        return 1
    return clamp_quantity(qty, stock)


@dataclass(frozen=True)
class ProductSnapshot:
    """Product fields captured when the line was selected."""

    id: str
    name: str
    price: Decimal = Decimal('0')
    stock: int | None = None
    sku: str | None = None

    @classmethod
    def from_payload(cls, product):
        stock = product.get('stock')
        return cls(
            id=str(product['id']),
            name=str(product.get('name') or ''),
            price=to_decimal(product.get('price')),
            stock=to_int(stock, None) if stock is not None else None,
            sku=product.get('sku') or None,
        )

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'price': float(self.price), 'sku': self.sku}


@dataclass(frozen=True)
class SelectedLine:
    product: ProductSnapshot
    quantity: int

    @property
    def product_id(self):
        return self.product.id

    @property
    def unit_price(self):
        return self.product.price

    @property
    def subtotal(self):
        return self.product.price * self.quantity

    def to_order_item(self):
        return {
            'productId': self.product.id,
            'quantity': self.quantity,
            'unitPrice': float(self.product.price),
        }


@dataclass
class OrderSelection:
    """Product selection of the internal order form."""

    lines: list = field(default_factory=list)

    def __len__(self):
        return len(self.lines)

    def find(self, product_id):
        product_id = str(product_id)
        return next((ln for ln in self.lines if ln.product_id == product_id), None)

    def add(self, product, qty=1):
        """Add a product once; selecting it again leaves the line as it is."""
        snapshot = product if isinstance(product, ProductSnapshot) else ProductSnapshot.from_payload(product)
        existing = self.find(snapshot.id)
        if existing is not None:
            return existing
        line = SelectedLine(snapshot, clamp_quantity(qty, snapshot.stock))
        self.lines.append(line)
        return line

    def remove(self, product_id):
        product_id = str(product_id)
        self.lines = [ln for ln in self.lines if ln.product_id != product_id]

    def set_quantity(self, product_id, raw):
        """Apply a typed quantity; blank input is kept as 0 until finalize."""
        line = self.find(product_id)
        if line is None:
            raise ValidationError(f'Product {product_id} is not selected.')
        qty = parse_quantity_input(raw)
        if qty:
            qty = clamp_quantity(qty, line.product.stock)
        updated = replace(line, quantity=qty)
        self.lines = [updated if ln.product_id == line.product_id else ln for ln in self.lines]
        return updated

    def finalize(self):
        self.lines = [replace(ln, quantity=finalize_quantity(ln.quantity, ln.product.stock)) for ln in self.lines]
        return list(self.lines)

    @property
    def total(self):
        return sum((ln.subtotal for ln in self.lines), Decimal('0'))

    @classmethod
    def from_payload(cls, items):
        """Build a selection from request lines.

        Each line is ``{productId, quantity, name?, price?, stock?, sku?}`` or
        ``{product: {...}, quantity}``. Quantities are kept as sent so the
        preflight stage can reject out-of-range values; repeated products are
        merged into one line with the quantities summed.
        """
        selection = cls()
        for raw in items or []:
            if not isinstance(raw, dict):
                raise ValidationError('Each item must be an object.')
            product = raw.get('product') if isinstance(raw.get('product'), dict) else {
                'id': raw.get('productId'),
                'name': raw.get('name'),
                'price': raw.get('price', raw.get('unitPrice')),
                'stock': raw.get('stock'),
                'sku': raw.get('sku'),
            }
            if product.get('id') in (None, ''):
                raise ValidationError('Each item needs a productId.')
            snapshot = ProductSnapshot.from_payload(product)
            qty = parse_quantity_input(raw.get('quantity'))
            existing = selection.find(snapshot.id)
            if existing is None:
                selection.lines.append(SelectedLine(snapshot, qty))
                continue
            merged = replace(existing, quantity=existing.quantity + qty)
            selection.lines = [merged if ln is existing else ln for ln in selection.lines]
        return selection
