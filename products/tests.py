"""Products app tests."""

import httpx
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import InsufficientStockError
from core.testing import FakeBackend
from products.catalog import Catalog, filter_products
from products.stock import StockValidator


CATALOG = [
	{'id': 'p1', 'name': 'Café molido', 'sku': 'CAF-01', 'price': 12000},
	{'id': 'p2', 'name': 'Azúcar', 'sku': 'AZU-01', 'price': 4000},
	{'id': 'p3', 'name': 'Café en grano', 'sku': 'CAF-02', 'price': 15000},
]


class StockValidatorTests(SimpleTestCase):
	async def test_results_follow_request_order(self):
		fake = FakeBackend().on('POST', '/products/check-stock', {'data': [
			{'productId': 'b', 'available': 1, 'sufficient': False},
			{'productId': 'a', 'available': 10, 'sufficient': True},
		]})
		async with fake.client() as backend:
			results = await StockValidator(backend).check_stock([('a', 2), ('b', 3)])
		self.assertEqual([r.product_id for r in results], ['a', 'b'])
		self.assertTrue(results[0].sufficient)
		self.assertFalse(results[1].sufficient)
		self.assertEqual(fake.calls_to('POST', '/products/check-stock')[0].json, {
			'items': [{'productId': 'a', 'quantity': 2}, {'productId': 'b', 'quantity': 3}],
		})

	async def test_sufficiency_derived_from_available_when_missing(self):
		fake = FakeBackend().on('POST', '/products/check-stock', [{'productId': 'a', 'available': 1}])
		async with fake.client() as backend:
			results = await StockValidator(backend).check_stock([{'productId': 'a', 'quantity': 2}])
		self.assertFalse(results[0].sufficient)
		self.assertEqual(results[0].available, 1)

	async def test_ensure_available_names_the_short_products(self):
		fake = FakeBackend().on('POST', '/products/check-stock', {'data': [
			{'productId': 'a', 'available': 0, 'sufficient': False},
		]})
		async with fake.client() as backend:
			with self.assertRaises(InsufficientStockError) as ctx:
				await StockValidator(backend).ensure_available([('a', 2)], names={'a': 'Café'})
		self.assertEqual(ctx.exception.shortages, [('Café', 2, 0)])
		self.assertIn('Café', ctx.exception.message)

	async def test_ensure_available_tolerates_network_failure(self):
		fake = FakeBackend().on('POST', '/products/check-stock', httpx.ConnectError)
		async with fake.client() as backend:
			result = await StockValidator(backend).ensure_available([('a', 2)])
		self.assertIsNone(result)


@override_settings(PRODUCT_SEARCH={'PAGE_SIZE': 2, 'FALLBACK_MAX_PAGES': 5, 'SUGGESTIONS': 10})
class CatalogTests(SimpleTestCase):
	def paged(self, call):
		search = call.params.get('search')
		rows = filter_products(CATALOG, search) if search == 'Café' else ([] if search else CATALOG)
		page = int(call.params.get('page', 1))
		size = int(call.params.get('limit'))
		total_pages = max(1, -(-len(rows) // size))
		return {'data': rows[(page - 1) * size:page * size], 'meta': {'totalPages': total_pages, 'total': len(rows)}}

	async def test_fetch_all_stops_at_last_page(self):
		fake = FakeBackend().on('GET', '/products', self.paged)
		async with fake.client() as backend:
			products = await Catalog(backend).fetch_all_products()
		self.assertEqual([p['id'] for p in products], ['p1', 'p2', 'p3'])
		self.assertEqual(len(fake.calls_to('GET', '/products')), 2)

	async def test_server_search_used_when_it_matches(self):
		fake = FakeBackend().on('GET', '/products', self.paged)
		async with fake.client() as backend:
			products = await Catalog(backend).search_products('Café', company_id='c1')
		self.assertEqual({p['id'] for p in products}, {'p1', 'p3'})
		self.assertEqual(len(fake.calls), 1)
		params = fake.calls[0].params
		self.assertEqual(params['search'], 'Café')
		self.assertEqual(params['page'], '1')
		self.assertEqual(params['limit'], '10')
		self.assertEqual(params['companyId'], 'c1')

	async def test_local_filter_when_server_search_is_empty(self):
		fake = FakeBackend().on('GET', '/products', self.paged)
		async with fake.client() as backend:
			products = await Catalog(backend).search_products('azu')
		self.assertEqual([p['id'] for p in products], ['p2'])
		self.assertTrue(any('search' not in c.params for c in fake.calls))

	async def test_blank_term_does_not_call_backend(self):
		fake = FakeBackend()
		async with fake.client() as backend:
			self.assertEqual(await Catalog(backend).search_products('  '), [])
		self.assertEqual(fake.calls, [])

	def test_filter_matches_name_or_sku(self):
		self.assertEqual([p['id'] for p in filter_products(CATALOG, 'caf-02')], ['p3'])
		self.assertEqual(len(filter_products(CATALOG, '')), 3)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ProductAPITests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.client.credentials(HTTP_AUTHORIZATION='Bearer tok', HTTP_X_COMPANY_ID='c1')

	def test_search_uses_session_company_and_forwards_token(self):
		fake = FakeBackend().on('GET', '/products', {'data': CATALOG[:1], 'meta': {'totalPages': 1}})
		with fake.installed():
			res = self.client.get('/api/products/search/', {'q': 'Café'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 1)
		call = fake.calls[0]
		self.assertEqual(call.params['companyId'], 'c1')
		self.assertEqual(call.headers['authorization'], 'Bearer tok')

	def test_check_stock(self):
		fake = FakeBackend().on('POST', '/products/check-stock', {'data': [
			{'productId': 'p1', 'available': 1, 'sufficient': False},
		]})
		with fake.installed():
			res = self.client.post('/api/products/check-stock/', {'items': [{'productId': 'p1', 'quantity': 3}]}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertFalse(res.data['sufficient'])
		self.assertEqual(res.data['results'][0]['available'], 1)

	def test_check_stock_backend_down_is_502(self):
		fake = FakeBackend().fail('POST', '/products/check-stock', status=503)
		with fake.installed():
			res = self.client.post('/api/products/check-stock/', {'items': [{'productId': 'p1', 'quantity': 3}]}, format='json')
		self.assertEqual(res.status_code, 502)
