"""Cart app tests."""

from decimal import Decimal

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from cart.models import StoredCart
from cart.store import CartState, CartStore
from core.exceptions import ValidationError
from core.testing import FakeBackend


def product(pid='p1', company='c1', price='10.00', stock=None, name=None):
	return {
		'id': pid,
		'name': name or f'Product {pid}',
		'price': price,
		'companyId': company,
		'stock': stock,
	}


class CartStoreTests(TestCase):
	def setUp(self):
		self.store = CartStore('test-cart')

	def tearDown(self):
		self.store.close()

	def test_add_same_product_merges_quantities(self):
		self.store.add_item(product(), 2)
		state = self.store.add_item(product(), 3)
		self.assertEqual(len(state.items), 1)
		self.assertEqual(state.items[0].quantity, 5)
		self.assertEqual(state.company_id, 'c1')

	def test_add_from_other_company_replaces_cart(self):
		self.store.add_item(product('p1', company='c1'), 2)
		self.store.add_item(product('p2', company='c1'), 1)
		state = self.store.add_item(product('p9', company='c2'), 4)
		self.assertEqual([it.product_id for it in state.items], ['p9'])
		self.assertEqual(state.items[0].quantity, 4)
		self.assertEqual(state.company_id, 'c2')

	def test_product_without_company_joins_cart_company(self):
		self.store.add_item(product('p1', company='c1'), 1)
		state = self.store.add_item(product('p2', company=None), 1)
		self.assertEqual([it.company_id for it in state.items], ['c1', 'c1'])
		self.assertEqual(state.company_id, 'c1')

	def test_product_without_company_rejected_on_empty_cart(self):
		with self.assertRaises(ValidationError):
			self.store.add_item(product(company=None), 1)
		self.assertTrue(self.store.state.is_empty)

	def test_stored_lines_without_company_are_replaced(self):
		StoredCart.objects.create(storage_key='legacy-cart', payload={
			'companyId': None,
			'items': [{'productId': 'p0', 'price': '5', 'quantity': 1}],
		})
		store = CartStore('legacy-cart')
		try:
			state = store.add_item(product('p2', company='c2'), 1)
		finally:
			store.close()
		self.assertEqual([it.product_id for it in state.items], ['p2'])
		self.assertEqual(state.company_id, 'c2')

	def test_merge_is_clamped_to_known_stock(self):
		self.store.add_item(product(stock=3), 2)
		state = self.store.add_item(product(stock=3), 5)
		self.assertEqual(state.items[0].quantity, 3)

	def test_update_to_zero_removes_line_and_company(self):
		self.store.add_item(product(), 2)
		state = self.store.update_quantity('p1', 0)
		self.assertTrue(state.is_empty)
		self.assertIsNone(state.company_id)

	def test_negative_quantity_is_treated_as_zero(self):
		self.store.add_item(product(), 2)
		self.store.add_item(product('p2'), 1)
		state = self.store.update_quantity('p1', -4)
		self.assertEqual([it.product_id for it in state.items], ['p2'])
		self.assertEqual(state.company_id, 'c1')

	def test_remove_last_item_clears_company(self):
		self.store.add_item(product(), 1)
		state = self.store.remove_item('p1')
		self.assertTrue(state.is_empty)
		self.assertIsNone(state.company_id)

	def test_subtotal(self):
		self.store.add_item(product(price='10.50'), 2)
		state = self.store.add_item(product('p2', price='3'), 1)
		self.assertEqual(state.subtotal, Decimal('24.00'))

	def test_state_is_persisted(self):
		self.store.add_item(product(), 2)
		row = StoredCart.objects.get(storage_key='test-cart')
		self.assertEqual(row.payload['companyId'], 'c1')
		self.assertEqual(row.payload['items'][0]['quantity'], 2)

	def test_other_store_on_same_key_adopts_changes(self):
		other = CartStore('test-cart')
		seen = []
		other.subscribe(seen.append)
		try:
			self.store.add_item(product(), 2)
			self.assertEqual(other.items[0].quantity, 2)
			self.assertEqual(len(seen), 1)
			self.store.clear()
			self.assertTrue(other.state.is_empty)
		finally:
			other.close()

	def test_store_on_other_key_is_not_touched(self):
		other = CartStore('another-cart')
		try:
			self.store.add_item(product(), 2)
			self.assertTrue(other.state.is_empty)
		finally:
			other.close()

	def test_unsubscribe_stops_notifications(self):
		seen = []
		unsubscribe = self.store.subscribe(seen.append)
		self.store.add_item(product(), 1)
		unsubscribe()
		self.store.add_item(product(), 1)
		self.assertEqual(len(seen), 1)

	def test_unreadable_payload_loads_as_empty_cart(self):
		self.assertTrue(CartState.from_payload({'items': [{'name': 'no id'}]}).is_empty)
		self.assertTrue(CartState.from_payload('garbage').is_empty)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CartAPITests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def add(self, **overrides):
		data = {**product(stock=5), 'quantity': 2, **overrides}
		return self.client.post('/api/cart/items/', data=data, format='json')

	def test_add_and_retrieve(self):
		res = self.add()
		self.assertEqual(res.status_code, 201)
		res = self.client.get('/api/cart/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['companyId'], 'c1')
		self.assertEqual(res.data['count'], 2)
		self.assertEqual(res.data['items'][0]['productId'], 'p1')

	def test_add_without_company_to_empty_cart_is_400(self):
		res = self.add(companyId=None)
		self.assertEqual(res.status_code, 400)
		self.assertEqual(self.client.get('/api/cart/').data['count'], 0)

	def test_update_missing_product_is_404(self):
		res = self.client.patch('/api/cart/items/nope/', data={'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 404)

	def test_update_and_remove(self):
		self.add()
		res = self.client.patch('/api/cart/items/p1/', data={'quantity': 9}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'][0]['quantity'], 5)
		res = self.client.delete('/api/cart/items/p1/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['items'], [])
		self.assertIsNone(res.data['companyId'])

	def test_clear(self):
		self.add()
		res = self.client.delete('/api/cart/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 0)

	def test_checkout_empty_cart_is_rejected(self):
		res = self.client.post('/api/cart/checkout/', data={}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_checkout_creates_order_and_clears_cart(self):
		self.add()
		fake = FakeBackend()
		fake.on('POST', '/products/check-stock', {'data': [{'productId': 'p1', 'available': 5, 'sufficient': True}]})
		fake.on('POST', '/client-orders', {'id': 'o1', 'orderCode': 'ORD-1'}, status=201)
		fake.on('POST', '/client-orders/o1/confirm', {'data': {'id': 'o1', 'paymentStatus': 'pending'}})
		fake.on('GET', '/client-orders/o1', {'data': {
			'id': 'o1',
			'orderCode': 'ORD-1',
			'status': 'recibido',
			'createdAt': '2026-01-15T10:00:00Z',
			'company': {'id': 'c1', 'tradeName': 'Acme'},
			'customer': {'id': 'cu1', 'name': 'Ana'},
			'items': [{'productId': 'p1', 'quantity': 2, 'unitPrice': 10}],
		}})
		fake.on('POST', '/client-orders/o1/invoice', {'invoiceUrl': '/uploads/factura-ORD-1.pdf', 'invoiceFilename': 'factura-ORD-1.pdf'})

		with fake.installed():
			res = self.client.post('/api/cart/checkout/', data={'description': 'Web order'}, format='json')

		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['orderId'], 'o1')
		self.assertEqual(res.data['warnings'], [])
		self.assertEqual(res.data['invoice']['invoiceFilename'], 'factura-ORD-1.pdf')

		created = fake.calls_to('POST', '/client-orders')[0].json
		self.assertEqual(created['companyId'], 'c1')
		self.assertEqual(created['items'], [{'productId': 'p1', 'quantity': 2}])
		self.assertEqual(created['description'], 'Web order')
		self.assertEqual(fake.calls_to('POST', '/client-orders/o1/confirm')[0].json, {'paid': False})

		self.assertEqual(self.client.get('/api/cart/').data['count'], 0)

	def test_checkout_with_short_stock_keeps_cart(self):
		self.add()
		fake = FakeBackend()
		fake.on('POST', '/products/check-stock', {'data': [{'productId': 'p1', 'available': 1, 'sufficient': False}]})

		with fake.installed():
			res = self.client.post('/api/cart/checkout/', data={}, format='json')

		self.assertEqual(res.status_code, 400)
		self.assertIn('shortages', res.data)
		self.assertFalse(fake.called('POST', '/client-orders'))
		self.assertEqual(self.client.get('/api/cart/').data['count'], 2)
