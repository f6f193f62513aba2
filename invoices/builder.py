"""Gather the data an invoice needs before normalizing it."""

import logging

from accounts.directory import Directory
from core.envelopes import unwrap_entity
from core.exceptions import NetworkError, UnexpectedShapeError

from .normalize import normalize

logger = logging.getLogger(__name__)


class InvoiceBuilder:
    """Fills in thin company/customer data, then normalizes.

    Write responses often embed only ids, so the company is fetched when it
    has no ``tradeName`` and the customer when it has no ``name``. A failed
    lookup is logged and the invoice is built with what is there.
    """

    def __init__(self, backend, directory=None):
        self.backend = backend
        self.directory = directory or Directory(backend)

    async def enrich(self, order):
        order.company = unwrap_entity(order.company) or order.company or {}
        order.customer = unwrap_entity(order.customer) or order.customer or {}

        if not order.company.get('tradeName') and order.company_id:
            try:
                order.company = await self.directory.get_company(order.company_id) or order.company
            except (NetworkError, UnexpectedShapeError) as exc:
                logger.warning('Company %s lookup for invoice failed: %s', order.company_id, exc)

        if not order.customer.get('name') and order.customer_id:
            try:
                order.customer = await self.directory.get_customer(order.customer_id) or order.customer
            except (NetworkError, UnexpectedShapeError) as exc:
                logger.warning('Customer %s lookup for invoice failed: %s', order.customer_id, exc)
        return order

    async def build(self, order, session_company=None, customer=None, selection=None):
        order = await self.enrich(order)
        return normalize(order, session_company=session_company, customer=customer, selection=selection)
