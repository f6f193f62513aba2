"""Server-side stock validation.

The backend re-checks stock when the order is written, so this check is
advisory: a shortfall blocks submission with a per-product message, while a
failed call only logs a warning and lets the caller proceed.
"""

import logging
from dataclasses import dataclass

from core.envelopes import unwrap_list
from core.exceptions import InsufficientStockError, NetworkError, UnexpectedShapeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockCheckResult:
    product_id: str
    requested: int
    available: int | None
    sufficient: bool


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _normalize_items(items):
    normalized = []
    for item in items:
        if isinstance(item, dict):
            product_id, quantity = item.get('productId'), item.get('quantity')
        else:
            product_id, quantity = item
        normalized.append({'productId': str(product_id), 'quantity': _as_int(quantity) or 0})
    return normalized


class StockValidator:
    """Round-trips ``POST /products/check-stock`` for a set of lines."""

    path = '/products/check-stock'

    def __init__(self, backend):
        self.backend = backend

    async def check_stock(self, items):
        """Return one :class:`StockCheckResult` per requested line, in request order.

        Raises :class:`NetworkError` / :class:`UnexpectedShapeError` when the
        check itself could not be performed.
        """
        requested = _normalize_items(items)
        payload = await self.backend.post(self.path, json={'items': requested})
        rows = unwrap_list(payload)

        by_product = {}
        for row in rows:
            if isinstance(row, dict) and row.get('productId') is not None:
                by_product[str(row['productId'])] = row

        results = []
        for line in requested:
            row = by_product.get(line['productId'])
            if row is None:
                results.append(StockCheckResult(line['productId'], line['quantity'], None, True))
                continue
            available = _as_int(row.get('available'))
            sufficient = row.get('sufficient')
            if sufficient is None:
                sufficient = available is None or available >= line['quantity']
            results.append(StockCheckResult(
                product_id=line['productId'],
                requested=line['quantity'],
                available=available,
                sufficient=bool(sufficient),
            ))
        return results

    async def ensure_available(self, items, names=None):
        """Raise :class:`InsufficientStockError` on any shortfall.

        Returns the results, or ``None`` when stock could not be verified
        (the caller proceeds at its own risk).
        """
        names = names or {}
        try:
            results = await self.check_stock(items)
        except (NetworkError, UnexpectedShapeError) as exc:
            logger.warning('Stock check unavailable, proceeding without it: %s', exc)
            return None

        shortages = [
            (names.get(r.product_id, r.product_id), r.requested, r.available)
            for r in results if not r.sufficient
        ]
        if shortages:
            raise InsufficientStockError(shortages)
        return results
