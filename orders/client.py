"""Backend ``/client-orders`` resource."""

import logging

from core.envelopes import first_present, unwrap_entity, unwrap_page

from .domain import OrderStatus

logger = logging.getLogger(__name__)


class OrdersAPI:
    """Async wrapper over the backend order endpoints.

    Methods return decoded payloads (entity dicts or :class:`Page`); turning
    them into :class:`orders.domain.Order` is left to the caller, which often
    needs the raw shape for identifier resolution.
    """

    base = '/client-orders'

    def __init__(self, backend):
        self.backend = backend

    async def list(self, page=1, limit=20, search=None, company_id=None, status=None,
                   date_from=None, date_to=None):
        status = OrderStatus.parse(status)
        payload = await self.backend.get(self.base, params={
            'page': page,
            'limit': limit,
            'search': search,
            'companyId': company_id,
            'status': status.value if status else None,
            'dateFrom': date_from,
            'dateTo': date_to,
        })
        return unwrap_page(payload)

    async def get(self, order_id):
        payload = await self.backend.get(f'{self.base}/{order_id}')
        return unwrap_entity(payload, required=True)

    async def create(self, payload):
        return await self.backend.post(self.base, json=payload)

    async def update(self, order_id, payload):
        return await self.backend.patch(f'{self.base}/{order_id}', json=payload)

    async def delete(self, order_id):
        return await self.backend.delete(f'{self.base}/{order_id}')

    async def update_status(self, order_id, status):
        status = OrderStatus.parse(status)
        if status is None:
            raise ValueError('Unknown order status.')
        return await self.backend.patch(f'{self.base}/{order_id}/status', json={'status': status.value})

    async def confirm(self, order_id, payload):
        return await self.backend.post(f'{self.base}/{order_id}/confirm', json=payload)

    async def upload_invoice(self, order_id, document, filename):
        files = {'invoice': (filename, document, 'application/pdf')}
        return await self.backend.post(f'{self.base}/{order_id}/invoice', files=files)

    async def delete_invoice(self, order_id):
        return await self.backend.delete(f'{self.base}/{order_id}/invoice')

    async def find_by_code(self, order_code, company_id=None):
        """Return the id of the first order whose code matches exactly, or ``None``.

        The search is company-scoped and limited to 10 results; ties resolve to
        the first match in server order.
        """
        if not order_code:
            return None
        result = await self.list(page=1, limit=10, search=order_code, company_id=company_id)
        matches = [o for o in result.items if isinstance(o, dict) and o.get('orderCode') == order_code]
        if len(matches) > 1:
            logger.warning('Order code %s matched %d orders; using the first', order_code, len(matches))
        if not matches:
            return None
        found = first_present(matches[0], 'id', '_id', 'orderId')
        return str(found) if found is not None else None


def extract_order_id(payload):
    """Pick the order id out of a create/update response, if it is there."""
    if not isinstance(payload, dict):
        return None
    value = payload.get('id')
    if value in (None, '') and isinstance(payload.get('data'), dict):
        value = payload['data'].get('id')
    if value in (None, ''):
        value = payload.get('orderId')
    return str(value) if value not in (None, '') else None


def extract_order_code(payload):
    entity = unwrap_entity(payload) or {}
    code = entity.get('orderCode')
    if code in (None, '') and isinstance(payload, dict):
        code = payload.get('orderCode')
    return str(code) if code not in (None, '') else None
