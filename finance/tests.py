"""Finance app tests."""

from decimal import Decimal

from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import ValidationError
from core.testing import FakeBackend
from finance.payments import (
	CustomerPayments,
	confirmation_payload,
	payments_for_order,
	resolve_payment_method,
)
from finance.receipt import receipt_filename, receipt_number, render_payment_receipt
from finance.words import amount_to_words
from orders.domain import Order


class AmountToWordsTests(SimpleTestCase):
	def test_small_numbers(self):
		self.assertEqual(amount_to_words(0), 'cero')
		self.assertEqual(amount_to_words(16), 'dieciséis')
		self.assertEqual(amount_to_words(21), 'veintiuno')
		self.assertEqual(amount_to_words(45), 'cuarenta y cinco')

	def test_hundreds(self):
		self.assertEqual(amount_to_words(100), 'cien')
		self.assertEqual(amount_to_words(101), 'ciento uno')
		self.assertEqual(amount_to_words(500), 'quinientos')
		self.assertEqual(amount_to_words(999), 'novecientos noventa y nueve')

	def test_thousands_and_millions(self):
		self.assertEqual(amount_to_words(1000), 'mil')
		self.assertEqual(amount_to_words(21000), 'veintiún mil')
		self.assertEqual(amount_to_words(101000), 'ciento un mil')
		self.assertEqual(amount_to_words(1_000_000), 'un millón')
		self.assertEqual(amount_to_words(2_500_000), 'dos millones quinientos mil')
		self.assertEqual(amount_to_words(21_000_000), 'veintiún millones')

	def test_cents_and_sign(self):
		self.assertEqual(amount_to_words(Decimal('150000.5')), 'ciento cincuenta mil con 50/100')
		self.assertEqual(amount_to_words('0.999'), 'uno')
		self.assertEqual(amount_to_words(-5), 'menos cinco')

	def test_not_a_number(self):
		self.assertEqual(amount_to_words('abc'), '')
		self.assertEqual(amount_to_words(float('nan')), '')
		self.assertEqual(amount_to_words(None), '')


class PaymentHelpersTests(SimpleTestCase):
	def test_confirmation_payload(self):
		self.assertEqual(confirmation_payload(None), {'paid': False})
		self.assertEqual(confirmation_payload('0'), {'paid': False})
		self.assertEqual(confirmation_payload(Decimal('1200'), 'Tarjeta'), {
			'paid': True, 'amount': 1200.0, 'paymentMethod': 'Tarjeta',
		})

	def test_resolve_payment_method(self):
		self.assertEqual(resolve_payment_method('Efectivo'), 'Efectivo')
		self.assertEqual(resolve_payment_method('Otro', ' Nequi '), 'Nequi')
		self.assertIsNone(resolve_payment_method('Otro', ''))
		self.assertIsNone(resolve_payment_method(''))

	def test_payments_for_order(self):
		order = Order(id='o1', order_code='ORD-1')
		payments = [
			{'id': 'a', 'orderId': 'o1'},
			{'id': 'b', 'orderCode': 'ORD-1'},
			{'id': 'c', 'metadata': {'orderId': 'o1'}},
			{'id': 'd', 'orderId': 'o2'},
			'junk',
		]
		self.assertEqual([p['id'] for p in payments_for_order(payments, order)], ['a', 'b', 'c'])

	def test_receipt_naming(self):
		self.assertEqual(receipt_number({'id': 'pay-1'}), 'pay-1')
		self.assertEqual(receipt_number({'reference': 'REF'}), 'REF')
		self.assertTrue(receipt_number({}).startswith('PA-'))
		self.assertEqual(receipt_filename({'orderCode': 'ORD-1'}), 'comprobante-ORD-1.pdf')
		self.assertEqual(receipt_filename(None), 'comprobante-abono.pdf')

	def test_receipt_renders(self):
		pdf = render_payment_receipt(
			{'tradeName': 'Acme', 'nit': '900'},
			{'name': 'Ana'},
			{'amount': '50000', 'paymentMethod': 'Efectivo', 'note': 'Primer abono'},
			order={'orderCode': 'ORD-1', 'items': [{'productId': 'p1', 'quantity': 2, 'unitPrice': 25000}]},
		)
		self.assertTrue(pdf.startswith(b'%PDF'))


class CustomerPaymentsTests(SimpleTestCase):
	def order(self, **overrides):
		payload = {'id': 'o1', 'orderCode': 'ORD-1', 'customerId': 'cu1', 'company': {'tradeName': 'Acme'},
				   'customer': {'id': 'cu1', 'name': 'Ana'}, 'items': []}
		payload.update(overrides)
		return Order.from_payload(payload)

	async def test_register_without_evidence_sends_generated_receipt(self):
		fake = FakeBackend().on('POST', '/customers/cu1/payments', {'data': {'id': 'pay-1', 'amount': 50000}}, status=201)
		async with fake.client() as backend:
			payment = await CustomerPayments(backend).register(self.order(), '50000', method='Efectivo', note='abono')
		self.assertEqual(payment['id'], 'pay-1')
		call = fake.calls_to('POST', '/customers/cu1/payments')[0]
		self.assertTrue(call.is_multipart)
		self.assertIn(b'comprobante-ORD-1.pdf', call.content)
		self.assertIn(b'%PDF', call.content)
		self.assertIn(b'Efectivo', call.content)

	async def test_register_validates_before_calling(self):
		fake = FakeBackend()
		async with fake.client() as backend:
			payments = CustomerPayments(backend)
			with self.assertRaises(ValidationError):
				await payments.register(self.order(customerId=None, customer={}), 100)
			with self.assertRaises(ValidationError):
				await payments.register(self.order(), 0)
		self.assertEqual(fake.calls, [])

	async def test_list_for_order(self):
		fake = FakeBackend().on('GET', '/customers/cu1/payments', {'data': [
			{'id': 'a', 'orderId': 'o1'}, {'id': 'b', 'orderId': 'o2'},
		]})
		async with fake.client() as backend:
			payments = await CustomerPayments(backend).list_for_order(self.order())
		self.assertEqual([p['id'] for p in payments], ['a'])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderPaymentsAPITests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.client.credentials(HTTP_AUTHORIZATION='Bearer tok', HTTP_X_COMPANY_ID='c1')
		self.fake = FakeBackend()
		self.fake.on('GET', '/client-orders/o1', {'data': {
			'id': 'o1', 'orderCode': 'ORD-1', 'customerId': 'cu1', 'items': [],
			'customer': {'id': 'cu1', 'name': 'Ana'},
		}})

	def test_list(self):
		self.fake.on('GET', '/customers/cu1/payments', [{'id': 'a', 'orderId': 'o1', 'amount': '100.00'}])
		with self.fake.installed():
			res = self.client.get('/api/orders/o1/payments/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['results'][0]['id'], 'a')
		self.assertIn('Efectivo', res.data['methods'])

	def test_register(self):
		self.fake.on('POST', '/customers/cu1/payments', {'id': 'pay-9', 'amount': 2000}, status=201)
		with self.fake.installed():
			res = self.client.post('/api/orders/o1/payments/', {
				'amount': '2000', 'paymentMethod': 'Otro', 'customPaymentMethod': 'Nequi',
			}, format='multipart')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['id'], 'pay-9')
		self.assertIn(b'Nequi', self.fake.calls_to('POST', '/customers/cu1/payments')[0].content)

	def test_register_rejects_zero_amount(self):
		res = self.client.post('/api/orders/o1/payments/', {'amount': '0'}, format='multipart')
		self.assertEqual(res.status_code, 400)
