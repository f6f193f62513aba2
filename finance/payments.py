"""Payment metadata attached to orders and customers.

No money moves through this service: confirming an order records whether it
was paid (and how much), and customer payments ("abonos") are stored by the
backend together with a receipt PDF as evidence.
"""

import logging

from django.conf import settings
from django.utils import timezone

from accounts.directory import Directory
from core.envelopes import unwrap_entity
from core.exceptions import ValidationError
from orders.domain import to_decimal

from .receipt import receipt_filename, render_payment_receipt

logger = logging.getLogger(__name__)

OTHER_METHOD = 'Otro'


def resolve_payment_method(method, custom=None):
    """``Otro`` takes the free-text ``custom`` method; blank means none."""
    method = (method or '').strip()
    if method == OTHER_METHOD:
        return (custom or '').strip() or None
    return method or None


def confirmation_payload(amount, method=None):
    """Body for ``POST /client-orders/{id}/confirm``.

    A positive amount marks the order paid; anything else registers it as
    outstanding debt.
    """
    amount = to_decimal(amount)
    if amount > 0:
        payload = {'paid': True, 'amount': float(amount)}
        if method:
            payload['paymentMethod'] = method
        return payload
    return {'paid': False}


def payments_for_order(payments, order):
    """Keep the payments linked to ``order`` (by id, code or ``metadata.orderId``)."""
    order_id = str(order.id) if order.id else None
    linked = []
    for p in payments or []:
        if not isinstance(p, dict):
            continue
        metadata = p.get('metadata') if isinstance(p.get('metadata'), dict) else {}
        if order_id and str(p.get('orderId') or '') == order_id:
            linked.append(p)
        elif order.order_code and p.get('orderCode') == order.order_code:
            linked.append(p)
        elif order_id and str(metadata.get('orderId') or '') == order_id:
            linked.append(p)
    return linked


class CustomerPayments:
    """Register and list customer payments tied to an order."""

    def __init__(self, backend, directory=None):
        self.backend = backend
        self.directory = directory or Directory(backend)

    async def list_for_order(self, order):
        if not order.customer_id:
            return []
        payments = await self.directory.list_customer_payments(order.customer_id)
        return payments_for_order(payments, order)

    async def register(self, order, amount, method=None, note=None, paid_at=None, evidence=None,
                       evidence_name=None):
        """Record a payment for the order's customer.

        Without ``evidence`` a receipt PDF is generated and sent in its place.
        """
        if not order.customer_id:
            raise ValidationError('The order has no customer to register a payment for.')
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValidationError('Enter a payment amount greater than zero.')

        paid_at = paid_at or timezone.now().isoformat()
        if evidence is None:
            company = order.company or {'tradeName': 'Empresa'}
            customer = order.customer or {}
            draft = {'amount': amount, 'paidAt': paid_at, 'paymentMethod': method, 'note': note}
            linked = order.raw or {'id': order.id, 'orderCode': order.order_code}
            evidence = render_payment_receipt(company, customer, draft, order=linked)
            evidence_name = receipt_filename(linked)
            content_type = 'application/pdf'
        else:
            content_type = 'application/octet-stream'
            if (evidence_name or '').lower().endswith('.pdf'):
                content_type = 'application/pdf'

        data = {'amount': str(amount), 'paidAt': paid_at}
        if method:
            data['paymentMethod'] = method
        if note:
            data['note'] = note
        if order.id:
            data['orderId'] = order.id
        files = {'evidence': (evidence_name or 'evidence', evidence, content_type)}

        response = await self.backend.post(f'/customers/{order.customer_id}/payments', data=data, files=files)
        logger.info('Payment of %s registered for order %s', amount, order.reference)
        return unwrap_entity(response) or {}


def payment_method_choices():
    return list(settings.PAYMENT_METHODS)

