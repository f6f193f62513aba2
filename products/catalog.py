"""Product catalog reads: paging and search with a client-side fallback."""

import logging

from django.conf import settings

from core.envelopes import unwrap_page

logger = logging.getLogger(__name__)


class Catalog:
    """Read access to ``GET /products`` (paginated ``{data, meta}`` envelope)."""

    def __init__(self, backend):
        self.backend = backend

    async def get_products(self, page=1, limit=None, search=None, company_id=None):
        limit = limit or settings.PRODUCT_SEARCH['PAGE_SIZE']
        payload = await self.backend.get('/products', params={
            'page': page,
            'limit': limit,
            'search': search,
            'companyId': company_id,
        })
        return unwrap_page(payload)

    async def fetch_all_products(self, search=None, company_id=None, max_pages=10):
        """Walk pages until the last one or ``max_pages``, whichever comes first."""
        acc = []
        page = 1
        while page <= max_pages:
            result = await self.get_products(page=page, search=search, company_id=company_id)
            acc.extend(p for p in result.items if isinstance(p, dict))
            if page >= result.total_pages:
                break
            page += 1
        return acc

    async def search_products(self, term, company_id=None, limit=None):
        """Search by name/SKU.

        Tries one server-side search page sized to ``limit`` first; when it
        matches nothing, pulls a bounded slice of the whole catalog and
        filters it locally.
        """
        conf = settings.PRODUCT_SEARCH
        limit = limit or conf['SUGGESTIONS']
        term = (term or '').strip()
        if not term:
            return []

        result = await self.get_products(page=1, limit=limit, search=term, company_id=company_id)
        matched = [p for p in result.items if isinstance(p, dict)]
        if not matched:
            everything = await self.fetch_all_products(None, company_id, max_pages=conf['FALLBACK_MAX_PAGES'])
            matched = filter_products(everything, term)
            logger.info('Server search for %r found nothing; local filter matched %d of %d',
                        term, len(matched), len(everything))
        return matched[:limit]


def filter_products(products, term):
    needle = str(term or '').strip().lower()
    if not needle:
        return list(products)
    return [
        p for p in products
        if needle in str(p.get('name') or '').lower() or needle in str(p.get('sku') or '').lower()
    ]
