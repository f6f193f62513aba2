"""Persistence adapter for cart state."""

import logging

from .models import StoredCart

logger = logging.getLogger(__name__)


class ModelCartStorage:
    """Reads and writes cart payloads through :class:`StoredCart` rows.

    ``save`` tags the row with the originating store before saving so the
    ``post_save`` receiver can tell views apart when it broadcasts the change.
    """

    def load(self, storage_key):
        from .store import CartState

        row = StoredCart.objects.filter(storage_key=storage_key).only('payload').first()
        if row is None:
            return CartState()
        return CartState.from_payload(row.payload)

    def save(self, storage_key, payload, origin=None):
        row = StoredCart.objects.filter(storage_key=storage_key).first()
        if row is None:
            row = StoredCart(storage_key=storage_key)
        row.payload = payload
        row._origin = origin
        row.save()
        logger.debug('Stored cart %s (%d items)', storage_key, len(payload.get('items') or []))
        return row
