"""Orders app tests."""

from decimal import Decimal

import httpx
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import IdentifierResolutionWarning, InsufficientStockError, ValidationError
from core.testing import FakeBackend
from orders.client import OrdersAPI, extract_order_code, extract_order_id
from orders.domain import Order, OrderStatus
from orders.listing import filter_orders
from orders.pipeline import OrderSubmission, SubmissionRequest
from orders.selection import OrderSelection, clamp_quantity, finalize_quantity, parse_quantity_input
from orders.status import OrderStatusMachine


COMPANY = {'id': 'c1', 'tradeName': 'Tienda Uno', 'taxId': '900123'}


def order_payload(**overrides):
	payload = {
		'id': 'o1',
		'orderCode': 'ORD-1',
		'status': 'recibido',
		'createdAt': '2026-03-10T15:00:00Z',
		'companyId': 'c1',
		'company': COMPANY,
		'customer': {'id': 'cu1', 'name': 'Ana Pérez'},
		'items': [{'productId': 'p1', 'quantity': 2, 'unitPrice': 12000, 'product': {'name': 'Café'}}],
	}
	payload.update(overrides)
	return payload


def selection(quantity=2, stock=10):
	return OrderSelection.from_payload([
		{'productId': 'p1', 'quantity': quantity, 'name': 'Café', 'price': 12000, 'stock': stock},
	])


def submission(**overrides):
	values = {'selection': selection(), 'company_id': 'c1', 'company': COMPANY}
	values.update(overrides)
	return SubmissionRequest(**values)


def happy_backend(create_reply=None, order=None):
	fake = FakeBackend()
	fake.on('POST', '/products/check-stock', {'data': [{'productId': 'p1', 'available': 10, 'sufficient': True}]})
	fake.on('POST', '/client-orders', create_reply if create_reply is not None else {'id': 'o1', 'orderCode': 'ORD-1'}, status=201)
	fake.on('POST', '/client-orders/o1/confirm', {'data': {'id': 'o1', 'paymentStatus': 'pending'}})
	fake.on('PATCH', '/client-orders/o1/status', {'id': 'o1', 'status': 'enviado'})
	fake.on('GET', '/client-orders/o1', {'data': order or order_payload()})
	fake.on('POST', '/client-orders/o1/invoice', {'data': {'invoiceUrl': '/uploads/factura-ORD-1.pdf', 'invoiceFilename': 'factura-ORD-1.pdf'}})
	return fake


class QuantityPolicyTests(SimpleTestCase):
	def test_parse_input(self):
		self.assertEqual(parse_quantity_input(''), 0)
		self.assertEqual(parse_quantity_input('  7 '), 7)
		self.assertEqual(parse_quantity_input('-3'), 0)
		self.assertEqual(parse_quantity_input(' 2.0 '), 2)

	def test_non_numeric_input_is_rejected(self):
		for raw in ('abc', '2x', 'NaN'):
			with self.assertRaises(ValidationError):
				parse_quantity_input(raw)
		with self.assertRaises(ValidationError):
			OrderSelection.from_payload([{'productId': 'p1', 'quantity': 'dos'}])

	def test_clamp_and_finalize(self):
		self.assertEqual(clamp_quantity(9, stock=4), 4)
		self.assertEqual(clamp_quantity(0, stock=4), 1)
		self.assertEqual(clamp_quantity(9, stock=0), 9)
		self.assertEqual(finalize_quantity(0), 1)
		self.assertEqual(finalize_quantity(3, stock=2), 2)

	def test_selection_adds_once_and_keeps_blank_until_finalize(self):
		sel = OrderSelection()
		sel.add({'id': 'p1', 'name': 'Café', 'price': 100, 'stock': 3}, 5)
		sel.add({'id': 'p1', 'name': 'Café', 'price': 100, 'stock': 3}, 1)
		self.assertEqual(len(sel), 1)
		self.assertEqual(sel.lines[0].quantity, 3)

		sel.set_quantity('p1', '')
		self.assertEqual(sel.lines[0].quantity, 0)
		sel.finalize()
		self.assertEqual(sel.lines[0].quantity, 1)
		self.assertEqual(sel.total, Decimal('100'))

	def test_set_quantity_for_unselected_product(self):
		with self.assertRaises(ValidationError):
			OrderSelection().set_quantity('nope', '2')

	def test_from_payload_requires_product_id(self):
		with self.assertRaises(ValidationError):
			OrderSelection.from_payload([{'quantity': 1}])

	def test_from_payload_merges_repeated_products(self):
		sel = OrderSelection.from_payload([
			{'productId': 'p1', 'quantity': 4, 'stock': 5},
			{'productId': 'p2', 'quantity': 1},
			{'productId': 'p1', 'quantity': '3'},
		])
		self.assertEqual([(ln.product_id, ln.quantity) for ln in sel.lines], [('p1', 7), ('p2', 1)])


class OrderDomainTests(SimpleTestCase):
	def test_status_parse(self):
		self.assertEqual(OrderStatus.parse('en_proceso'), OrderStatus.IN_PROCESS)
		self.assertEqual(OrderStatus.parse('SENT'), OrderStatus.SENT)
		self.assertEqual(OrderStatus.parse('received'), OrderStatus.RECEIVED)
		self.assertIsNone(OrderStatus.parse('cancelado'))
		self.assertIsNone(OrderStatus.parse(None))

	def test_forward_moves(self):
		self.assertTrue(OrderStatus.RECEIVED.can_move_to(OrderStatus.SENT))
		self.assertFalse(OrderStatus.SENT.can_move_to(OrderStatus.RECEIVED))

	def test_order_from_payload(self):
		order = Order.from_payload(order_payload(invoiceUrl='factura.pdf'))
		self.assertEqual(order.id, 'o1')
		self.assertEqual(order.status, OrderStatus.RECEIVED)
		self.assertEqual(order.total, Decimal('24000'))
		self.assertTrue(order.has_invoice)
		self.assertTrue(order.looks_like_order())
		self.assertFalse(Order.from_payload({'id': 'x'}).looks_like_order())

	def test_extract_identifiers(self):
		self.assertEqual(extract_order_id({'id': 5}), '5')
		self.assertEqual(extract_order_id({'data': {'id': 'a'}}), 'a')
		self.assertEqual(extract_order_id({'orderId': 'b'}), 'b')
		self.assertIsNone(extract_order_id({'orderCode': 'X'}))
		self.assertEqual(extract_order_code({'data': {'orderCode': 'ORD-9'}}), 'ORD-9')


class OrderListingTests(SimpleTestCase):
	def setUp(self):
		self.orders = [
			Order(id='1', order_code='ORD-001', status=OrderStatus.RECEIVED, created_at='2026-03-01T10:00:00-05:00'),
			Order(id='2', order_code='ORD-002', status=OrderStatus.SENT, created_at='2026-03-10T23:30:00-05:00'),
			Order(id='3', order_code='XYZ-003', status=OrderStatus.SENT, created_at='2026-03-05T08:00:00-05:00'),
			Order(id='4', order_code='ORD-004', status=OrderStatus.SENT, created_at=None),
		]

	def ids(self, orders):
		return [o.id for o in orders]

	def test_newest_first_and_undated_last(self):
		self.assertEqual(self.ids(filter_orders(self.orders)), ['2', '3', '1', '4'])

	def test_code_is_case_insensitive_substring(self):
		self.assertEqual(self.ids(filter_orders(self.orders, code='ord-00')), ['2', '1', '4'])

	def test_status_filter(self):
		self.assertEqual(self.ids(filter_orders(self.orders, status='enviado')), ['2', '3', '4'])

	def test_date_to_includes_whole_day(self):
		result = filter_orders(self.orders, date_from='2026-03-05', date_to='2026-03-10')
		self.assertEqual(self.ids(result), ['2', '3'])

	def test_impossible_date_is_ignored(self):
		result = filter_orders(self.orders, date_from='2026-13-45')
		self.assertEqual(self.ids(result), ['2', '3', '1', '4'])


class FindByCodeTests(SimpleTestCase):
	async def test_first_exact_match_wins(self):
		fake = FakeBackend().on('GET', '/client-orders', {'data': [
			{'id': 'o77', 'orderCode': 'ORD-77'},
			{'id': 'o7', 'orderCode': 'ORD-7'},
			{'id': 'o7b', 'orderCode': 'ORD-7'},
		]})
		async with fake.client() as backend:
			found = await OrdersAPI(backend).find_by_code('ORD-7', company_id='c1')
		self.assertEqual(found, 'o7')
		params = fake.calls[0].params
		self.assertEqual(params['search'], 'ORD-7')
		self.assertEqual(params['limit'], '10')
		self.assertEqual(params['companyId'], 'c1')


class OrderSubmissionTests(SimpleTestCase):
	async def submit(self, fake, request):
		async with fake.client(token='tok') as backend:
			return await OrderSubmission(backend).submit(request)

	async def test_create_runs_every_stage(self):
		fake = happy_backend()
		outcome = await self.submit(fake, submission(description='  Para mañana '))

		self.assertTrue(outcome.created)
		self.assertEqual(outcome.order_id, 'o1')
		self.assertEqual(outcome.warnings, [])
		self.assertEqual(outcome.summary, 'Order created.')
		self.assertEqual(outcome.invoice.filename, 'factura-ORD-1.pdf')

		body = fake.calls_to('POST', '/client-orders')[0].json
		self.assertEqual(body, {
			'companyId': 'c1',
			'items': [{'productId': 'p1', 'quantity': 2}],
			'description': 'Para mañana',
		})
		self.assertEqual(fake.calls_to('POST', '/client-orders/o1/confirm')[0].json, {'paid': False})
		self.assertFalse(fake.called('PATCH', '/client-orders/o1/status'))
		upload = fake.calls_to('POST', '/client-orders/o1/invoice')
		self.assertEqual(len(upload), 1)
		self.assertTrue(upload[0].is_multipart)
		self.assertIn(b'%PDF', upload[0].content)

	async def test_paid_order_is_confirmed_with_amount(self):
		fake = happy_backend()
		await self.submit(fake, submission(payment_amount=Decimal('5000'), payment_method='Efectivo'))
		self.assertEqual(fake.calls_to('POST', '/client-orders/o1/confirm')[0].json, {
			'paid': True, 'amount': 5000.0, 'paymentMethod': 'Efectivo',
		})
		self.assertEqual(fake.calls_to('POST', '/client-orders')[0].json['paymentMethod'], 'Efectivo')

	async def test_insufficient_stock_stops_before_write(self):
		fake = happy_backend()
		fake.on('POST', '/products/check-stock', {'data': [{'productId': 'p1', 'available': 1, 'sufficient': False}]})
		with self.assertRaises(InsufficientStockError) as ctx:
			await self.submit(fake, submission())
		self.assertEqual(ctx.exception.shortages, [('Café', 2, 1)])
		self.assertFalse(fake.called('POST', '/client-orders'))

	async def test_stock_check_failure_is_a_warning(self):
		fake = happy_backend()
		fake.on('POST', '/products/check-stock', httpx.ConnectError)
		outcome = await self.submit(fake, submission())
		self.assertEqual(outcome.warning_messages, ['stock could not be verified'])
		self.assertTrue(fake.called('POST', '/client-orders'))

	async def test_preflight_rejects_bad_input(self):
		fake = happy_backend()
		for request in (
			submission(company_id=None),
			submission(selection=OrderSelection()),
			submission(selection=selection(quantity=5, stock=3)),
		):
			with self.assertRaises(ValidationError):
				await self.submit(fake, request)
		self.assertEqual(fake.calls, [])

	async def test_repeated_product_lines_are_checked_against_stock_together(self):
		fake = happy_backend()
		fake.on('POST', '/products/check-stock', {'data': [{'productId': 'p1', 'available': 5, 'sufficient': True}]})
		request = submission(selection=OrderSelection.from_payload([
			{'productId': 'p1', 'quantity': 4, 'name': 'Café', 'price': 12000, 'stock': 5},
			{'productId': 'p1', 'quantity': 4, 'name': 'Café', 'price': 12000, 'stock': 5},
		]))
		with self.assertRaises(ValidationError):
			await self.submit(fake, request)
		self.assertFalse(fake.called('POST', '/client-orders'))

	async def test_blank_quantity_is_sent_as_one(self):
		fake = happy_backend()
		await self.submit(fake, submission(selection=selection(quantity='')))
		self.assertEqual(fake.calls_to('POST', '/client-orders')[0].json['items'], [{'productId': 'p1', 'quantity': 1}])

	async def test_order_id_resolved_from_code(self):
		fake = happy_backend(create_reply={'data': {'orderCode': 'ORD-1'}})
		fake.on('GET', '/client-orders', {'data': [{'id': 'o1', 'orderCode': 'ORD-1'}], 'meta': {'total': 1}})
		outcome = await self.submit(fake, submission())
		self.assertEqual(outcome.order_id, 'o1')
		self.assertEqual(outcome.order_code, 'ORD-1')
		self.assertEqual(outcome.warnings, [])
		self.assertTrue(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_unresolved_id_skips_follow_ups(self):
		fake = happy_backend(create_reply={'orderCode': 'ORD-1'})
		fake.on('GET', '/client-orders', {'data': []})
		outcome = await self.submit(fake, submission())
		self.assertTrue(outcome.created)
		self.assertIsNone(outcome.order_id)
		self.assertEqual(len(outcome.warnings), 1)
		self.assertIsInstance(outcome.warnings[0], IdentifierResolutionWarning)
		self.assertIn('ORD-1', outcome.summary)
		self.assertFalse(fake.called('POST', '/client-orders/o1/confirm'))
		self.assertFalse(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_code_lookup_failure_is_a_warning(self):
		fake = happy_backend(create_reply={'orderCode': 'ORD-1'})
		fake.fail('GET', '/client-orders', status=500)
		outcome = await self.submit(fake, submission())
		self.assertTrue(outcome.created)
		self.assertIsNone(outcome.order_id)
		self.assertEqual(len(outcome.warnings), 1)
		self.assertIsInstance(outcome.warnings[0], IdentifierResolutionWarning)
		self.assertTrue(fake.called('GET', '/client-orders'))
		self.assertFalse(fake.called('POST', '/client-orders/o1/confirm'))
		self.assertFalse(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_follow_up_failures_do_not_fail_the_order(self):
		fake = happy_backend()
		fake.fail('POST', '/client-orders/o1/confirm', status=500, message='boom')
		fake.fail('POST', '/client-orders/o1/invoice', status=500, message='disk full')
		outcome = await self.submit(fake, submission())
		self.assertEqual(outcome.order_id, 'o1')
		self.assertEqual(len(outcome.warnings), 2)
		self.assertTrue(outcome.summary.startswith('Order created, but '))
		self.assertIn('disk full', outcome.summary)

	async def test_fetch_failure_falls_back_to_confirm_response(self):
		fake = happy_backend()
		fake.on('POST', '/client-orders/o1/confirm', {'data': order_payload()})
		fake.fail('GET', '/client-orders/o1', status=500)
		outcome = await self.submit(fake, submission())
		self.assertEqual(outcome.warnings, [])
		self.assertEqual(outcome.order.order_code, 'ORD-1')
		self.assertTrue(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_mark_as_sent_attaches_a_single_invoice(self):
		fake = happy_backend()
		outcome = await self.submit(fake, submission(mark_as_sent=True))
		self.assertEqual(fake.calls_to('PATCH', '/client-orders/o1/status')[0].json, {'status': 'enviado'})
		self.assertEqual(len(fake.calls_to('POST', '/client-orders/o1/invoice')), 1)
		self.assertEqual(outcome.warnings, [])

	async def test_mark_as_sent_failure_still_attaches_invoice(self):
		fake = happy_backend()
		fake.fail('PATCH', '/client-orders/o1/status', status=500, message='status locked')
		outcome = await self.submit(fake, submission(mark_as_sent=True))
		self.assertTrue(outcome.created)
		self.assertEqual(outcome.order_id, 'o1')
		self.assertEqual(len(outcome.warnings), 1)
		self.assertIn('status locked', outcome.summary)
		self.assertEqual(len(fake.calls_to('POST', '/client-orders/o1/invoice')), 1)

	async def test_edit_updates_and_keeps_request_id(self):
		fake = happy_backend()
		fake.on('PATCH', '/client-orders/o1', {'data': {'orderCode': 'ORD-1'}})
		outcome = await self.submit(fake, submission(order_id='o1'))
		self.assertFalse(outcome.created)
		self.assertEqual(outcome.summary, 'Order updated.')
		self.assertFalse(fake.called('POST', '/client-orders'))
		self.assertTrue(fake.called('PATCH', '/client-orders/o1'))
		self.assertTrue(fake.called('POST', '/client-orders/o1/invoice'))


class OrderStatusMachineTests(SimpleTestCase):
	async def set_status(self, fake, order, status, **kwargs):
		async with fake.client() as backend:
			return await OrderStatusMachine(backend).set_status(order, status, **kwargs)

	async def test_sent_without_invoice_attaches_one(self):
		fake = happy_backend()
		order = Order.from_payload(order_payload())
		change = await self.set_status(fake, order, 'enviado', session_company=COMPANY)
		self.assertEqual(change.status, OrderStatus.SENT)
		self.assertEqual(change.previous, OrderStatus.RECEIVED)
		self.assertEqual(change.invoice.filename, 'factura-ORD-1.pdf')
		self.assertEqual(order.invoice_url, '/uploads/factura-ORD-1.pdf')
		self.assertEqual(len(fake.calls_to('POST', '/client-orders/o1/invoice')), 1)

	async def test_sent_with_invoice_does_not_attach(self):
		fake = happy_backend()
		order = Order.from_payload(order_payload(invoiceUrl='/uploads/old.pdf'))
		change = await self.set_status(fake, order, OrderStatus.SENT)
		self.assertIsNone(change.invoice)
		self.assertFalse(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_auto_invoice_can_be_disabled(self):
		fake = happy_backend()
		change = await self.set_status(fake, Order.from_payload(order_payload()), 'enviado', auto_invoice=False)
		self.assertIsNone(change.invoice)
		self.assertFalse(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_other_statuses_do_not_attach(self):
		fake = happy_backend()
		await self.set_status(fake, Order.from_payload(order_payload()), 'en_proceso')
		self.assertEqual(fake.calls_to('PATCH', '/client-orders/o1/status')[0].json, {'status': 'en_proceso'})
		self.assertFalse(fake.called('POST', '/client-orders/o1/invoice'))

	async def test_invoice_failure_keeps_status(self):
		fake = happy_backend()
		fake.fail('POST', '/client-orders/o1/invoice', status=500, message='disk full')
		order = Order.from_payload(order_payload())
		change = await self.set_status(fake, order, 'enviado')
		self.assertEqual(order.status, OrderStatus.SENT)
		self.assertEqual(len(change.warnings), 1)
		self.assertIn('disk full', change.warnings[0].message)

	async def test_backward_move_is_written(self):
		fake = happy_backend()
		fake.on('PATCH', '/client-orders/o1/status', {'id': 'o1', 'status': 'recibido'})
		order = Order.from_payload(order_payload(status='enviado', invoiceUrl='x.pdf'))
		change = await self.set_status(fake, order, 'recibido')
		self.assertEqual(change.status, OrderStatus.RECEIVED)
		self.assertTrue(fake.called('PATCH', '/client-orders/o1/status'))

	async def test_unknown_status(self):
		fake = happy_backend()
		with self.assertRaises(ValueError):
			await self.set_status(fake, Order.from_payload(order_payload()), 'cancelado')
		self.assertEqual(fake.calls, [])


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderAPITests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.client.credentials(HTTP_AUTHORIZATION='Bearer tok', HTTP_X_COMPANY_ID='c1')

	def test_list_filters_locally_and_scopes_company(self):
		fake = FakeBackend().on('GET', '/client-orders', {'data': [
			order_payload(id='o1', orderCode='ORD-1', status='recibido', createdAt='2026-03-01T10:00:00Z'),
			order_payload(id='o2', orderCode='ORD-2', status='enviado', createdAt='2026-03-02T10:00:00Z'),
		], 'meta': {'total': 2, 'totalPages': 1}})
		with fake.installed():
			res = self.client.get('/api/orders/', {'status': 'enviado'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual([o['id'] for o in res.data['results']], ['o2'])
		self.assertEqual(res.data['results'][0]['statusLabel'], 'Enviado')
		self.assertEqual(fake.calls[0].params['companyId'], 'c1')

	def test_list_rejects_unknown_status(self):
		res = self.client.get('/api/orders/', {'status': 'perdido'})
		self.assertEqual(res.status_code, 400)

	def test_list_rejects_impossible_date(self):
		fake = FakeBackend().on('GET', '/client-orders', {'data': []})
		with fake.installed():
			res = self.client.get('/api/orders/', {'dateFrom': '2026-13-45'})
		self.assertEqual(res.status_code, 400)
		self.assertIn('dateFrom', res.data['detail'])
		self.assertEqual(fake.calls, [])

	def test_create_rejects_non_numeric_quantity(self):
		fake = happy_backend()
		data = {'items': [{'productId': 'p1', 'quantity': 'abc', 'name': 'Café', 'price': '12000', 'stock': 10}]}
		with fake.installed():
			res = self.client.post('/api/orders/', data, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertFalse(fake.called('POST', '/client-orders'))

	def test_create(self):
		fake = happy_backend()
		data = {'items': [{'productId': 'p1', 'quantity': '2', 'name': 'Café', 'price': '12000', 'stock': 10}],
				'paymentAmount': '0', 'customerId': 'cu1'}
		with fake.installed():
			res = self.client.post('/api/orders/', data, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['orderId'], 'o1')
		self.assertEqual(res.data['detail'], 'Order created.')
		self.assertEqual(res.data['order']['invoiceUrl'], 'https://backend.test/uploads/factura-ORD-1.pdf')
		self.assertEqual(fake.calls_to('POST', '/client-orders')[0].json['customerId'], 'cu1')

	def test_create_without_company_is_400(self):
		self.client.credentials(HTTP_AUTHORIZATION='Bearer tok')
		res = self.client.post('/api/orders/', {'items': [{'productId': 'p1'}]}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_retrieve_missing_order_passes_404_through(self):
		fake = FakeBackend().fail('GET', '/client-orders/zz', status=404, message='Order not found')
		with fake.installed():
			res = self.client.get('/api/orders/zz/')
		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data['detail'], 'Order not found')

	def test_status_update_attaches_invoice(self):
		fake = happy_backend()
		with fake.installed():
			res = self.client.patch('/api/orders/o1/status/', {'status': 'enviado'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['status'], 'enviado')
		self.assertEqual(res.data['previousStatus'], 'recibido')
		self.assertEqual(res.data['invoice']['invoiceFilename'], 'factura-ORD-1.pdf')
		self.assertEqual(res.data['warnings'], [])

	def test_status_update_validates_value(self):
		res = self.client.patch('/api/orders/o1/status/', {'status': 'cancelado'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_invoice_delete_requires_confirmation(self):
		fake = happy_backend()
		fake.on('DELETE', '/client-orders/o1/invoice', None, status=204)
		with fake.installed():
			res = self.client.delete('/api/orders/o1/invoice/')
			self.assertEqual(res.status_code, 400)
			self.assertFalse(fake.called('DELETE', '/client-orders/o1/invoice'))
			res = self.client.delete('/api/orders/o1/invoice/?confirm=true')
		self.assertEqual(res.status_code, 200)
		self.assertIsNone(res.data['invoiceUrl'])
		self.assertTrue(fake.called('DELETE', '/client-orders/o1/invoice'))

	def test_manual_invoice_upload(self):
		from django.core.files.uploadedfile import SimpleUploadedFile

		fake = happy_backend()
		upload = SimpleUploadedFile('manual.pdf', b'%PDF-1.4 manual', content_type='application/pdf')
		with fake.installed():
			res = self.client.post('/api/orders/o1/invoice/', {'invoice': upload}, format='multipart')
		self.assertEqual(res.status_code, 201)
		self.assertIn(b'manual.pdf', fake.calls_to('POST', '/client-orders/o1/invoice')[0].content)

	def test_regenerate_invoice(self):
		fake = happy_backend()
		with fake.installed():
			res = self.client.post('/api/orders/o1/invoice/regenerate/')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(len(fake.calls_to('POST', '/client-orders/o1/invoice')), 1)

	def test_destroy_removes_invoice_first(self):
		fake = FakeBackend()
		fake.fail('DELETE', '/client-orders/o1/invoice', status=404)
		fake.on('DELETE', '/client-orders/o1', None, status=204)
		with fake.installed():
			res = self.client.delete('/api/orders/o1/')
		self.assertEqual(res.status_code, 204)
		self.assertEqual([c.path for c in fake.calls], ['/client-orders/o1/invoice', '/client-orders/o1'])
