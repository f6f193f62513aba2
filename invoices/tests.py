"""Invoices app tests."""

from datetime import datetime
from decimal import Decimal
from unittest import mock

from django.test import SimpleTestCase

from core.exceptions import ValidationError
from core.testing import FakeBackend
from invoices.attachments import InvoiceAttachmentManager, InvoiceRenderError, invoice_filename
from invoices.builder import InvoiceBuilder
from invoices.normalize import normalize, normalize_line
from invoices.render import format_currency, format_quantity, render_invoice
from orders.domain import Order
from orders.selection import OrderSelection


def order(**overrides):
	payload = {
		'id': 'o1',
		'orderCode': 'ORD-1',
		'status': 'enviado',
		'createdAt': '2026-03-10T15:00:00Z',
		'companyId': 'c1',
		'customerId': 'cu1',
		'items': [{'productId': 'p1', 'qty': 2, 'price': '1500.50', 'productName': 'Café'}],
	}
	payload.update(overrides)
	return Order.from_payload(payload)


class NormalizeTests(SimpleTestCase):
	def test_company_aliases(self):
		record = normalize(order(company={'nit': '900123', 'name': 'Acme', 'address': 'Calle 1', 'email': 'a@b.co'}))
		self.assertEqual(record.company['taxId'], '900123')
		self.assertEqual(record.company['tradeName'], 'Acme')
		self.assertEqual(record.company['legalName'], 'Acme')
		self.assertEqual(record.company['fiscalAddress'], 'Calle 1')
		self.assertEqual(record.company['companyEmail'], 'a@b.co')
		self.assertEqual(record.company['city'], '')

	def test_session_company_used_when_order_has_none(self):
		record = normalize(order(), session_company={'tradeName': 'Mi Tienda', 'taxId': '1'})
		self.assertEqual(record.company['tradeName'], 'Mi Tienda')

	def test_customer_name_from_parts(self):
		record = normalize(order(customer={'firstName': 'Ana', 'lastName': 'Pérez', 'document': 'CC 1'}))
		self.assertEqual(record.customer['name'], 'Ana Pérez')
		self.assertEqual(record.customer['documentId'], 'CC 1')

	def test_item_aliases_and_totals(self):
		record = normalize(order())
		line = record.lines[0]
		self.assertEqual(line.name, 'Café')
		self.assertEqual(line.quantity, Decimal('2'))
		self.assertEqual(line.unit_price, Decimal('1500.50'))
		self.assertEqual(record.total, Decimal('3001.00'))
		self.assertEqual(record.status, 'Enviado')

	def test_bad_quantity_counts_as_zero(self):
		line = normalize_line({'productId': 'p9', 'quantity': 'many', 'unitPrice': 10})
		self.assertEqual(line.quantity, Decimal('0'))
		self.assertEqual(line.name, 'Producto p9')
		self.assertEqual(line.subtotal, Decimal('0'))

	def test_selection_used_when_order_has_no_items(self):
		sel = OrderSelection.from_payload([{'productId': 'p1', 'quantity': 3, 'name': 'Azúcar', 'price': 4000}])
		record = normalize(order(items=[]), selection=sel)
		self.assertEqual(record.lines[0].name, 'Azúcar')
		self.assertEqual(record.total, Decimal('12000'))

	def test_missing_created_at_defaults_to_now(self):
		record = normalize(order(createdAt=None))
		self.assertIsInstance(record.created_at, datetime)

	def test_accepts_raw_envelope(self):
		record = normalize({'data': {'id': 'o5', 'orderCode': 'ORD-5', 'items': []}})
		self.assertEqual(record.order_code, 'ORD-5')
		self.assertEqual(record.lines, [])


class RenderTests(SimpleTestCase):
	def test_formatting(self):
		self.assertEqual(format_currency(Decimal('1234.5')), 'COP 1.234,50')
		self.assertEqual(format_currency('oops'), 'COP 0,00')
		self.assertEqual(format_quantity(Decimal('2')), '2')
		self.assertEqual(format_quantity(Decimal('1.5')), '1,5')

	def test_render_produces_pdf(self):
		pdf = render_invoice(normalize(order(description='Entrega <rápida> & segura')))
		self.assertTrue(pdf.startswith(b'%PDF'))

	def test_render_long_item_list(self):
		items = [{'productId': f'p{i}', 'quantity': 1, 'unitPrice': 100, 'name': f'Item {i}'} for i in range(150)]
		pdf = render_invoice(normalize(order(items=items)))
		self.assertTrue(pdf.startswith(b'%PDF'))

	def test_render_with_missing_fields(self):
		pdf = render_invoice(normalize({'id': 'o9'}))
		self.assertTrue(pdf.startswith(b'%PDF'))


class InvoiceBuilderTests(SimpleTestCase):
	async def test_thin_company_is_fetched_and_failed_customer_lookup_ignored(self):
		fake = FakeBackend()
		fake.on('GET', '/companies/c1', {'data': {'id': 'c1', 'tradeName': 'Acme', 'taxId': '900'}})
		fake.fail('GET', '/customers/cu1', status=500)
		async with fake.client() as backend:
			record = await InvoiceBuilder(backend).build(order(company={'id': 'c1'}), customer={'name': 'Walk-in'})
		self.assertEqual(record.company['tradeName'], 'Acme')
		self.assertEqual(record.customer['name'], 'Walk-in')

	async def test_complete_order_needs_no_lookups(self):
		fake = FakeBackend()
		async with fake.client() as backend:
			await InvoiceBuilder(backend).build(order(company={'tradeName': 'Acme'}, customer={'name': 'Ana'}))
		self.assertEqual(fake.calls, [])


class InvoiceAttachmentTests(SimpleTestCase):
	def test_filename_prefers_order_code(self):
		self.assertEqual(invoice_filename(order()), 'factura-ORD-1.pdf')
		self.assertEqual(invoice_filename(order(orderCode=None)), 'factura-o1.pdf')

	async def test_attach_uploads_pdf_and_updates_order(self):
		fake = FakeBackend()
		fake.on('POST', '/client-orders/o1/invoice', {'invoiceUrl': '/uploads/factura-ORD-1.pdf'})
		target = order(company={'tradeName': 'Acme'}, customer={'name': 'Ana'})
		async with fake.client() as backend:
			attachment = await InvoiceAttachmentManager(backend).attach(target)
		self.assertEqual(attachment.filename, 'factura-ORD-1.pdf')
		self.assertEqual(target.invoice_url, '/uploads/factura-ORD-1.pdf')
		call = fake.calls_to('POST', '/client-orders/o1/invoice')[0]
		self.assertTrue(call.is_multipart)
		self.assertIn(b'name="invoice"', call.content)

	async def test_attach_requires_id(self):
		fake = FakeBackend()
		async with fake.client() as backend:
			with self.assertRaises(ValidationError):
				await InvoiceAttachmentManager(backend).attach(order(id=None))
		self.assertEqual(fake.calls, [])

	async def test_render_failure_is_reported(self):
		fake = FakeBackend()
		target = order(company={'tradeName': 'Acme'}, customer={'name': 'Ana'})
		async with fake.client() as backend:
			with mock.patch('invoices.attachments.render_invoice', side_effect=RuntimeError('bad font')):
				with self.assertRaises(InvoiceRenderError):
					await InvoiceAttachmentManager(backend).attach(target)
		self.assertEqual(fake.calls, [])

	async def test_delete_needs_confirmation(self):
		fake = FakeBackend().on('DELETE', '/client-orders/o1/invoice', None, status=204)
		async with fake.client() as backend:
			manager = InvoiceAttachmentManager(backend)
			with self.assertRaises(ValidationError):
				await manager.delete('o1')
			self.assertFalse(fake.called('DELETE', '/client-orders/o1/invoice'))
			cleared = await manager.delete('o1', confirmed=True)
		self.assertIsNone(cleared.url)
		self.assertTrue(fake.called('DELETE', '/client-orders/o1/invoice'))

	async def test_regenerate_refetches_order(self):
		fake = FakeBackend()
		fake.on('GET', '/client-orders/o1', {'data': {
			'id': 'o1', 'orderCode': 'ORD-1', 'invoiceUrl': '/uploads/old.pdf',
			'company': {'tradeName': 'Acme'}, 'customer': {'name': 'Ana'}, 'items': [],
		}})
		fake.on('POST', '/client-orders/o1/invoice', {'invoiceUrl': '/uploads/new.pdf'})
		async with fake.client() as backend:
			attachment = await InvoiceAttachmentManager(backend).regenerate('o1')
		self.assertEqual(attachment.url, '/uploads/new.pdf')

	async def test_describe_makes_url_absolute(self):
		fake = FakeBackend()
		async with fake.client() as backend:
			manager = InvoiceAttachmentManager(backend)
			self.assertIsNone(manager.describe(order()))
			described = manager.describe(order(invoiceUrl='factura-ORD-1.pdf'))
		self.assertEqual(described.url, 'https://backend.test/uploads/factura-ORD-1.pdf')
