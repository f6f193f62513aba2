"""Signals for order side-effects (e.g., invoicing on status change)."""

import logging

from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)

# Sent after a status write. Arguments: order, status, previous, backend,
# session_company, auto_invoice. Receivers may be async; a receiver's return value is
# collected by the status machine (the invoicing receiver returns the
# attachment it created).
order_status_changed = Signal()


@receiver(order_status_changed)
async def log_status_change(sender, order, status, previous=None, **kwargs):
    """Audit trail of status moves."""
    logger.info('Order %s: %s -> %s', order.reference, previous.value if previous else '-', status.value)
