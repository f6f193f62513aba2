"""Signals for invoice generation on order status changes."""

import logging

from django.dispatch import receiver

from orders.domain import OrderStatus
from orders.signals import order_status_changed

from .attachments import InvoiceAttachmentManager

logger = logging.getLogger(__name__)


@receiver(order_status_changed)
async def attach_invoice_when_sent(sender, order, status, backend, session_company=None,
                                   auto_invoice=True, **kwargs):
    """Attach an invoice when an order is sent.

    Uses a simple uniqueness guard (order has no invoice attachment yet).
    Exceptions propagate to the sender, which reports them as warnings.
    """
    if not auto_invoice or status != OrderStatus.SENT:
        return None
    if order.has_invoice:
        logger.info('Order %s already has invoice %s; skipping', order.reference, order.invoice_filename)
        return None

    attachment = await InvoiceAttachmentManager(backend).attach(order, session_company=session_company)
    logger.info('Invoice %s attached to sent order %s', attachment.filename, order.reference)
    return attachment
