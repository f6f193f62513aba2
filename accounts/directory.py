"""Read-only lookups of companies and customers owned by the backend."""

import logging

from core.envelopes import unwrap_entity

logger = logging.getLogger(__name__)


class Directory:
    """Company/customer lookups used to enrich invoices and receipts."""

    def __init__(self, backend):
        self.backend = backend

    async def get_company(self, company_id):
        payload = await self.backend.get(f'/companies/{company_id}')
        return unwrap_entity(payload) or {}

    async def get_customer(self, customer_id):
        payload = await self.backend.get(f'/customers/{customer_id}')
        return unwrap_entity(payload) or {}

    async def list_customer_payments(self, customer_id):
        payload = await self.backend.get(f'/customers/{customer_id}/payments')
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get('data'), list):
            return payload['data']
        return []
