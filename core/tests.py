"""Tests for the shared backend client, envelopes and API error mapping."""

import httpx
from django.test import SimpleTestCase

from core.api import error_payload, error_status
from core.backend import BackendClient
from core.envelopes import first_present, unwrap_entity, unwrap_list, unwrap_page
from core.exceptions import (
	InsufficientStockError,
	NetworkError,
	UnexpectedShapeError,
	ValidationError,
)
from core.testing import FakeBackend


class EnvelopeTests(SimpleTestCase):
	def test_unwrap_entity(self):
		self.assertEqual(unwrap_entity({'id': 1}), {'id': 1})
		self.assertEqual(unwrap_entity({'data': {'data': {'id': 2}}}), {'id': 2})
		self.assertEqual(unwrap_entity({'id': 3, 'data': {'x': 1}}), {'id': 3, 'data': {'x': 1}})
		self.assertIsNone(unwrap_entity(None))
		with self.assertRaises(UnexpectedShapeError):
			unwrap_entity([], required=True)

	def test_unwrap_page(self):
		page = unwrap_page({'data': [1, 2], 'meta': {'totalPages': 3, 'total': 5}})
		self.assertEqual(page.items, [1, 2])
		self.assertEqual(page.total_pages, 3)
		self.assertEqual(page.total, 5)
		self.assertEqual(unwrap_list({'data': {'data': [4]}}), [4])
		self.assertEqual(unwrap_list([5]), [5])
		self.assertEqual(unwrap_page([]).total_pages, 1)
		with self.assertRaises(UnexpectedShapeError):
			unwrap_page({'message': 'ok'})

	def test_first_present(self):
		self.assertEqual(first_present({'a': '', 'b': None, 'c': 0}, 'a', 'b', 'c'), 0)
		self.assertEqual(first_present(None, 'a', default='x'), 'x')


class BackendClientTests(SimpleTestCase):
	async def test_forwards_token_and_drops_empty_params(self):
		fake = FakeBackend().on('GET', '/products', {'data': []})
		async with fake.client(token='tok') as backend:
			await backend.get('/products', params={'page': 1, 'search': None, 'companyId': ''})
		call = fake.calls[0]
		self.assertEqual(call.headers['authorization'], 'Bearer tok')
		self.assertEqual(call.params, {'page': '1'})

	async def test_error_status_raises_network_error_with_message(self):
		fake = FakeBackend().fail('POST', '/client-orders', status=422, message=['items must not be empty'])
		async with fake.client() as backend:
			with self.assertRaises(NetworkError) as ctx:
				await backend.post('/client-orders', json={})
		self.assertEqual(ctx.exception.status_code, 422)
		self.assertEqual(ctx.exception.message, 'items must not be empty')

	async def test_transport_failure_raises_network_error(self):
		fake = FakeBackend().on('GET', '/client-orders/1', httpx.ReadTimeout)
		async with fake.client() as backend:
			with self.assertRaises(NetworkError) as ctx:
				await backend.get('/client-orders/1')
		self.assertIsNone(ctx.exception.status_code)

	async def test_empty_body_is_none(self):
		fake = FakeBackend().on('DELETE', '/client-orders/1', None, status=204)
		async with fake.client() as backend:
			self.assertIsNone(await backend.delete('/client-orders/1'))

	async def test_requires_context_manager(self):
		with self.assertRaises(RuntimeError):
			await BackendClient('https://backend.test').get('/products')

	def test_absolute_url(self):
		backend = BackendClient('https://backend.test/')
		self.assertEqual(backend.absolute_url('https://cdn.test/a.pdf'), 'https://cdn.test/a.pdf')
		self.assertEqual(backend.absolute_url('/uploads/a.pdf'), 'https://backend.test/uploads/a.pdf')
		self.assertEqual(backend.absolute_url('a.pdf'), 'https://backend.test/uploads/a.pdf')
		self.assertIsNone(backend.absolute_url(''))


class ErrorMappingTests(SimpleTestCase):
	def test_status_codes(self):
		self.assertEqual(error_status(ValidationError()), 400)
		self.assertEqual(error_status(InsufficientStockError([('A', 2, 1)])), 400)
		self.assertEqual(error_status(NetworkError('nope', status_code=404)), 404)
		self.assertEqual(error_status(NetworkError('down', status_code=503)), 502)
		self.assertEqual(error_status(NetworkError('timeout')), 502)
		self.assertEqual(error_status(UnexpectedShapeError()), 502)

	def test_shortages_in_payload(self):
		payload = error_payload(InsufficientStockError([('Café', 3, None)]))
		self.assertEqual(payload['shortages'], [{'product': 'Café', 'requested': 3, 'available': None}])
		self.assertIn('N/A', payload['detail'])
