"""Client-held cart for one company at a time.

The cart is a :class:`CartStore` bound to a storage key. Mutations go through
its methods, are written through a single storage adapter, and are broadcast
with the ``cart_changed`` signal so any other store bound to the same key
(another open view of the same cart) adopts the new state.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

from django.conf import settings

from core.exceptions import ValidationError

from .signals import cart_changed
from .storage import ModelCartStorage

logger = logging.getLogger(__name__)


def _to_decimal(value):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal('0')
    return number if number.is_finite() else Decimal('0')


def _to_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: Decimal
    quantity: int
    company_id: str | None = None
    sku: str | None = None
    image: str | None = None
    stock: int | None = None

    @property
    def subtotal(self):
        return self.price * self.quantity

    @classmethod
    def from_product(cls, product, quantity):
        """Build a line from a catalog product dict (backend field names)."""
        company_id = product.get('companyId')
        stock = product.get('stock')
        return cls(
            product_id=str(product['id']),
            name=str(product.get('name') or ''),
            price=_to_decimal(product.get('price')),
            quantity=quantity,
            company_id=str(company_id) if company_id not in (None, '') else None,
            sku=product.get('sku') or None,
            image=product.get('imageUrl') or product.get('image') or None,
            stock=_to_int(stock, None) if stock is not None else None,
        )

    def to_dict(self):
        return {
            'productId': self.product_id,
            'name': self.name,
            'price': str(self.price),
            'quantity': self.quantity,
            'companyId': self.company_id,
            'sku': self.sku,
            'image': self.image,
            'stock': self.stock,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            product_id=str(data['productId']),
            name=str(data.get('name') or ''),
            price=_to_decimal(data.get('price')),
            quantity=_to_int(data.get('quantity')),
            company_id=data.get('companyId'),
            sku=data.get('sku'),
            image=data.get('image'),
            stock=_to_int(data['stock'], None) if data.get('stock') is not None else None,
        )


@dataclass(frozen=True)
class CartState:
    items: tuple = ()
    company_id: str | None = None

    @property
    def is_empty(self):
        return not self.items

    @property
    def subtotal(self):
        return sum((it.subtotal for it in self.items), Decimal('0'))

    def find(self, product_id):
        product_id = str(product_id)
        return next((it for it in self.items if it.product_id == product_id), None)

    def to_payload(self):
        return {'items': [it.to_dict() for it in self.items], 'companyId': self.company_id}

    @classmethod
    def from_payload(cls, payload):
        """Parse the stored shape; anything unreadable loads as an empty cart."""
        if not isinstance(payload, dict):
            return cls()
        try:
            items = tuple(
                CartItem.from_dict(raw) for raw in (payload.get('items') or [])
                if isinstance(raw, dict)
            )
        except (KeyError, TypeError, ValueError):
            logger.warning('Discarding unreadable stored cart payload')
            return cls()
        items = tuple(it for it in items if it.quantity > 0)
        company_id = payload.get('companyId') if items else None
        return cls(items=items, company_id=company_id)


class CartStore:
    """Mutation API over one persisted cart.

    - ``add_item`` merges quantities for the same product and replaces the
      cart when the product belongs to another company.
    - ``update_quantity`` clamps to ``>= 0``; 0 removes the line.
    - ``remove_item`` / ``clear`` drop the company once the cart is empty.
    """

    def __init__(self, storage_key=None, storage=None):
        self.storage_key = storage_key or settings.CART_STORAGE_KEY
        self.storage = storage or ModelCartStorage()
        self._state = self.storage.load(self.storage_key)
        self._listeners = []
        cart_changed.connect(self._on_cart_changed, dispatch_uid=f'cart-store-{id(self)}')

    @classmethod
    def for_session(cls, session_key, storage=None):
        return cls(f'{settings.CART_STORAGE_KEY}:{session_key}', storage=storage)

    @property
    def state(self):
        return self._state

    @property
    def items(self):
        return list(self._state.items)

    @property
    def company_id(self):
        return self._state.company_id

    @property
    def subtotal(self):
        return self._state.subtotal

    def subscribe(self, listener):
        """Call ``listener(state)`` after every change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self):
        cart_changed.disconnect(dispatch_uid=f'cart-store-{id(self)}')
        self._listeners.clear()

    def add_item(self, product, qty=1):
        qty = max(1, _to_int(qty, 1))
        incoming = CartItem.from_product(product, qty)
        state = self._state

        if incoming.company_id is None:
            if state.company_id is None:
                raise ValidationError(f'Product {incoming.product_id} has no company.')
            incoming = replace(incoming, company_id=state.company_id)

        # Legacy lines stored without a company count as another company.
        if state.items and state.company_id != incoming.company_id:
            logger.info('Cart %s switched company %s -> %s; previous lines dropped',
                        self.storage_key, state.company_id, incoming.company_id)
            new_state = CartState(items=(self._clamped(incoming, qty),), company_id=incoming.company_id)
            return self._commit(new_state)

        found = state.find(incoming.product_id)
        if found is not None:
            merged = self._clamped(found, found.quantity + qty)
            items = tuple(merged if it.product_id == found.product_id else it for it in state.items)
        else:
            items = state.items + (self._clamped(incoming, qty),)
        return self._commit(CartState(items=items, company_id=state.company_id or incoming.company_id))

    def update_quantity(self, product_id, qty):
        qty = max(0, _to_int(qty, 0))
        product_id = str(product_id)
        items = []
        for it in self._state.items:
            if it.product_id == product_id:
                if qty == 0:
                    continue
                it = self._clamped(it, qty)
            items.append(it)
        return self._commit(self._with_items(tuple(items)))

    def remove_item(self, product_id):
        product_id = str(product_id)
        items = tuple(it for it in self._state.items if it.product_id != product_id)
        return self._commit(self._with_items(items))

    def clear(self):
        return self._commit(CartState())

    def reload(self):
        self._state = self.storage.load(self.storage_key)
        return self._state

    def _with_items(self, items):
        return CartState(items=items, company_id=self._state.company_id if items else None)

    @staticmethod
    def _clamped(item, qty):
        if item.stock is not None and item.stock >= 1:
            qty = min(qty, item.stock)
        return replace(item, quantity=max(1, qty))

    def _commit(self, state):
        self._state = state
        self.storage.save(self.storage_key, state.to_payload(), origin=self)
        self._notify()
        return state

    def _notify(self):
        for listener in list(self._listeners):
            listener(self._state)

    def _on_cart_changed(self, sender, storage_key, payload, origin=None, **kwargs):
        if storage_key != self.storage_key or origin is self:
            return
        self._state = CartState.from_payload(payload)
        self._notify()
