"""Invoice documents attached to backend orders.

An order has at most one attachment: uploading replaces it, deleting clears
it. ``attach`` is the single path that builds, renders and uploads, shared by
order submission, auto-invoicing on status change and regeneration.
"""

import logging
from dataclasses import dataclass

from django.conf import settings

from core.envelopes import unwrap_entity
from core.exceptions import FulfillmentError, ValidationError
from orders.client import OrdersAPI
from orders.domain import Order

from .builder import InvoiceBuilder
from .render import render_invoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceAttachment:
    order_id: str
    url: str | None
    filename: str | None

    def to_dict(self):
        return {'orderId': self.order_id, 'invoiceUrl': self.url, 'invoiceFilename': self.filename}


class InvoiceRenderError(FulfillmentError):
    default_message = 'The invoice document could not be rendered.'


def invoice_filename(order):
    prefix = settings.INVOICE['FILENAME_PREFIX']
    return f'{prefix}-{order.order_code or order.id}.pdf'


class InvoiceAttachmentManager:

    def __init__(self, backend, orders=None, builder=None):
        self.backend = backend
        self.orders = orders or OrdersAPI(backend)
        self.builder = builder or InvoiceBuilder(backend)

    async def upload(self, order_id, document, filename):
        """Upload ``document`` as the order's invoice, replacing any previous one."""
        response = await self.orders.upload_invoice(order_id, document, filename)
        entity = unwrap_entity(response) or {}
        attachment = InvoiceAttachment(
            order_id=str(order_id),
            url=entity.get('invoiceUrl'),
            filename=entity.get('invoiceFilename') or filename,
        )
        logger.info('Invoice %s uploaded for order %s', attachment.filename, order_id)
        return attachment

    async def delete(self, order_id, confirmed=False):
        if not confirmed:
            raise ValidationError('Deleting an invoice must be explicitly confirmed.')
        await self.orders.delete_invoice(order_id)
        logger.info('Invoice deleted for order %s', order_id)
        return InvoiceAttachment(order_id=str(order_id), url=None, filename=None)

    async def attach(self, order, session_company=None, customer=None, selection=None):
        """Build, render and upload the invoice for an order snapshot."""
        if not order.id:
            raise ValidationError('Cannot attach an invoice to an order without id.')
        record = await self.builder.build(order, session_company=session_company,
                                          customer=customer, selection=selection)
        try:
            document = render_invoice(record)
        except Exception as exc:
            logger.exception('Rendering invoice for order %s failed', order.id)
            raise InvoiceRenderError() from exc
        attachment = await self.upload(order.id, document, invoice_filename(order))
        order.invoice_url = attachment.url or order.invoice_url
        order.invoice_filename = attachment.filename
        return attachment

    async def regenerate(self, order_id, session_company=None):
        """Re-fetch the order and replace its invoice with a fresh one."""
        order = Order.from_payload(await self.orders.get(order_id))
        order.id = order.id or str(order_id)
        return await self.attach(order, session_company=session_company)

    def describe(self, order):
        """Current attachment of ``order`` with its URL made absolute."""
        if not order.has_invoice:
            return None
        return InvoiceAttachment(
            order_id=order.id,
            url=self.backend.absolute_url(order.invoice_url),
            filename=order.invoice_filename,
        )
