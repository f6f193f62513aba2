"""Invoice PDF rendering (reportlab platypus)."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from io import BytesIO
from xml.sax.saxutils import escape

from django.conf import settings
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from orders.domain import to_decimal

ACCENT = colors.HexColor('#973c00')
BORDER = colors.HexColor('#f2e6c9')
ROW_RULE = colors.HexColor('#eeeeee')
MISSING = 'N/D'


def format_currency(amount, currency=None):
    """``COP 1.234,56``: dot thousands, comma decimals, two digits."""
    currency = currency or settings.INVOICE['CURRENCY']
    value = to_decimal(amount).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    text = f'{value:,.2f}'.translate(str.maketrans(',.', '.,'))
    return f'{currency} {text}'


def format_quantity(value):
    value = to_decimal(value)
    if value == value.to_integral_value():
        return str(int(value))
    return f'{value.normalize()}'.replace('.', ',')


def format_date(value):
    if isinstance(value, datetime):
        return value.strftime('%d/%m/%Y')
    if isinstance(value, date):
        return value.strftime('%d/%m/%Y')
    return str(value or MISSING)


def _or_missing(value):
    return escape(str(value)) if value not in (None, '') else MISSING


def _styles():
    base = getSampleStyleSheet()
    return {
        'title': ParagraphStyle('InvoiceTitle', parent=base['Normal'], fontName='Helvetica-Bold',
                                fontSize=16, leading=20, textColor=ACCENT, spaceAfter=4),
        'text': ParagraphStyle('InvoiceText', parent=base['Normal'], fontSize=10, leading=13),
        'right': ParagraphStyle('InvoiceRight', parent=base['Normal'], fontSize=10, leading=13, alignment=2),
        'box_title': ParagraphStyle('InvoiceBoxTitle', parent=base['Normal'], fontName='Helvetica-Bold',
                                    fontSize=11, leading=14, textColor=ACCENT, spaceAfter=4),
        'bold': ParagraphStyle('InvoiceBold', parent=base['Normal'], fontName='Helvetica-Bold',
                               fontSize=10, leading=13, spaceAfter=2),
        'cell': ParagraphStyle('InvoiceCell', parent=base['Normal'], fontSize=10, leading=12),
    }


def _info_box(title, rows, st):
    cell = [Paragraph(title, st['box_title'])]
    cell.extend(Paragraph(f'{label}: {_or_missing(value)}', st['text']) for label, value in rows)
    return cell


def build_story(record, width):
    st = _styles()
    company, customer = record.company, record.customer
    story = []

    left = [
        Paragraph('Factura de venta', st['title']),
        Paragraph(f'Código: {_or_missing(record.order_code)}', st['text']),
        Paragraph(f'Estado: {_or_missing(record.status)}', st['text']),
    ]
    right = [
        Paragraph(f'Fecha: {escape(format_date(record.created_at))}', st['right']),
        Paragraph(f"Cliente: {_or_missing(customer.get('name'))}", st['right']),
        Paragraph(f"Empresa: {_or_missing(company.get('tradeName'))}", st['right']),
        Paragraph(f"Email: {_or_missing(company.get('companyEmail'))}", st['right']),
        Paragraph(f"Teléfono: {_or_missing(company.get('companyPhone'))}", st['right']),
    ]
    header = Table([[left, right]], colWidths=[width * 0.5, width * 0.5])
    header.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 0),
        ('RIGHTPADDING', (0, 0), (-1, -1), 0),
    ]))
    story.extend([header, Spacer(1, 6 * mm)])

    company_box = _info_box('Datos de la empresa', [
        ('Razón social', company.get('legalName') or company.get('tradeName')),
        ('NIT', company.get('taxId')),
        ('Dirección', company.get('fiscalAddress')),
        ('Ciudad', company.get('city')),
        ('Estado', company.get('state')),
        ('Email', company.get('companyEmail')),
        ('Teléfono', company.get('companyPhone')),
    ], st)
    customer_box = _info_box('Datos del cliente', [
        ('Nombre', customer.get('name')),
        ('Documento', customer.get('documentId')),
        ('Email', customer.get('email')),
        ('Teléfono', customer.get('phone')),
        ('Dirección', customer.get('address')),
    ], st)
    gap = 4 * mm
    boxes = Table([[company_box, '', customer_box]], colWidths=[(width - gap) / 2, gap, (width - gap) / 2])
    boxes.setStyle(TableStyle([
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('BOX', (0, 0), (0, 0), 1, BORDER),
        ('BOX', (2, 0), (2, 0), 1, BORDER),
        ('LEFTPADDING', (0, 0), (-1, -1), 6),
        ('RIGHTPADDING', (0, 0), (-1, -1), 6),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    story.extend([boxes, Spacer(1, 5 * mm)])

    if record.description:
        story.append(Paragraph('Descripción', st['bold']))
        story.append(Paragraph(escape(record.description), st['text']))
        story.append(Spacer(1, 4 * mm))

    story.append(Paragraph('Productos', st['bold']))
    data = [['Descripción', 'Cant.', 'V. unitario', 'Subtotal']]
    for line in record.lines:
        data.append([
            Paragraph(escape(line.name), st['cell']),
            format_quantity(line.quantity),
            format_currency(line.unit_price),
            format_currency(line.subtotal),
        ])
    col_widths = [width * 0.45, width * 0.15, width * 0.20, width * 0.20]
    items = Table(data, colWidths=col_widths, repeatRows=1)
    items.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('LINEBELOW', (0, 0), (-1, 0), 1, colors.black),
        ('LINEBELOW', (0, 1), (-1, -1), 0.5, ROW_RULE),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('TOPPADDING', (0, 0), (-1, -1), 5),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
        ('LEFTPADDING', (0, 0), (0, -1), 0),
    ]))
    story.extend([items, Spacer(1, 6 * mm)])

    totals = Table([
        ['Subtotal', format_currency(record.subtotal)],
        ['Total', format_currency(record.total)],
    ], colWidths=[width * 0.2, width * 0.2], hAlign='RIGHT')
    totals.setStyle(TableStyle([
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('LINEABOVE', (0, 1), (-1, 1), 0.5, colors.black),
    ]))
    story.append(totals)
    return story


def render_invoice(record):
    """Render ``record`` to PDF bytes (A4, item header repeated on every page)."""
    buffer = BytesIO()
    margin = 15 * mm
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=margin, rightMargin=margin, topMargin=margin, bottomMargin=margin,
        title=f'Factura {record.order_code}',
    )
    doc.build(build_story(record, A4[0] - 2 * margin))
    return buffer.getvalue()
