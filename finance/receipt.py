"""Partial payment ("abono") receipt PDF."""

from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from orders.domain import to_decimal

from .words import amount_to_words

LEGAL_TEXT = (
    'Este comprobante sirve como constancia de pago. La información aquí contenida es válida '
    'para efectos contables y tributarios. Conserva este documento como soporte de la transacción.'
)


def receipt_number(payment):
    """Payment id, else its reference, else ``PA-<epoch millis>``."""
    number = payment.get('id') or payment.get('reference')
    if number:
        return str(number)
    created = payment.get('createdAt')
    moment = created if isinstance(created, datetime) else timezone.now()
    return f'PA-{int(moment.timestamp() * 1000)}'


def receipt_filename(order):
    prefix = settings.INVOICE['RECEIPT_PREFIX']
    reference = (order or {}).get('orderCode') or (order or {}).get('id') or 'abono'
    return f'{prefix}-{reference}.pdf'


def _item_name(item, position):
    product = item.get('product') if isinstance(item.get('product'), dict) else {}
    return product.get('name') or item.get('productName') or item.get('name') or \
        f"Producto {item.get('productId') or position + 1}"


def render_payment_receipt(company, customer, payment, order=None):
    """Render the receipt for ``payment`` (``amount``, ``paymentMethod``, ``note``, ``paidAt``)."""
    company = company or {}
    customer = customer or {}
    currency = settings.INVOICE['CURRENCY']
    base = getSampleStyleSheet()
    title = ParagraphStyle('ReceiptTitle', parent=base['Normal'], fontName='Helvetica-Bold', fontSize=14,
                           leading=18, spaceAfter=8)
    text = ParagraphStyle('ReceiptText', parent=base['Normal'], fontSize=10, leading=13)

    amount = to_decimal(payment.get('amount'))
    issued = payment.get('paidAt') or payment.get('createdAt') or timezone.now().isoformat()

    buffer = BytesIO()
    margin = 15 * mm
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=margin, rightMargin=margin,
                            topMargin=margin, bottomMargin=margin, title='Comprobante de abono')
    width = A4[0] - 2 * margin

    def block(pairs):
        table = Table(
            [[Paragraph(f'<b>{escape(label)}</b>', text), Paragraph(escape(str(value)), text)] for label, value in pairs],
            colWidths=[width * 0.35, width * 0.65],
        )
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 0),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    story = [Paragraph('COMPROBANTE DE ABONO', title)]
    story.append(block([
        ('Empresa:', company.get('tradeName') or company.get('legalName') or ''),
        ('NIT / Identificación:', company.get('taxId') or company.get('nit') or 'N/D'),
        ('Dirección fiscal:', company.get('fiscalAddress') or company.get('address') or 'N/D'),
        ('Cliente:', customer.get('name') or ''),
        ('Documento cliente:', customer.get('documentId') or '-'),
        ('Comprobante N°:', receipt_number(payment)),
        ('Fecha emisión:', issued),
    ]))
    story.append(Spacer(1, 4 * mm))

    if order:
        pairs = [('Orden vinculada:', order.get('orderCode') or order.get('code') or '-')]
        items = [it for it in (order.get('items') or []) if isinstance(it, dict)]
        if items:
            pairs.append(('Productos:', ''))
            for i, item in enumerate(items):
                unit = to_decimal(item.get('unitPrice') or item.get('price'))
                pairs.append((_item_name(item, i), f"{int(to_decimal(item.get('quantity')))} x {unit:.2f}"))
        story.append(block(pairs))
        story.append(Spacer(1, 4 * mm))

    story.append(block([
        ('Monto (numérico):', f'{amount:.2f} {currency}'),
        ('Monto (letras):', f'{amount_to_words(amount)} {currency}'),
        ('Método de pago:', payment.get('paymentMethod') or '-'),
        ('Referencia / Nota:', payment.get('note') or '-'),
    ]))
    story.append(Spacer(1, 4 * mm))
    story.append(Paragraph(LEGAL_TEXT, text))
    story.append(Spacer(1, 18 * mm))

    signatures = Table([
        ['___________________________', '___________________________'],
        ['Firma representante', 'Firma cliente'],
    ], colWidths=[width / 2, width / 2])
    signatures.setStyle(TableStyle([
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.black),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
    ]))
    story.append(signatures)

    doc.build(story)
    return buffer.getvalue()
