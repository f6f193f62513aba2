"""DRF serializers for orders APIs."""

from rest_framework import serializers

from finance.payments import resolve_payment_method

from .domain import OrderStatus
from .pipeline import SubmissionRequest
from .selection import OrderSelection


class OrderItemSerializer(serializers.Serializer):
    productId = serializers.CharField(source='product_id', allow_null=True)
    name = serializers.SerializerMethodField()
    quantity = serializers.IntegerField()
    unitPrice = serializers.DecimalField(source='unit_price', max_digits=14, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)

    def get_name(self, obj):
        snapshot = obj.product_snapshot or {}
        return snapshot.get('name') or snapshot.get('productName') or None


class OrderSerializer(serializers.Serializer):
    """Read shape of a backend order.

    ``invoiceUrl`` is resolved against the backend base URL when the view
    passes ``absolute_url`` in the context.
    """

    id = serializers.CharField(allow_null=True)
    orderCode = serializers.CharField(source='order_code', allow_null=True)
    status = serializers.SerializerMethodField()
    statusLabel = serializers.SerializerMethodField()
    createdAt = serializers.CharField(source='created_at', allow_null=True)
    companyId = serializers.CharField(source='company_id', allow_null=True)
    customerId = serializers.CharField(source='customer_id', allow_null=True)
    customer = serializers.DictField()
    description = serializers.CharField(allow_null=True)
    paymentStatus = serializers.CharField(source='payment_status', allow_null=True)
    invoiceUrl = serializers.SerializerMethodField()
    invoiceFilename = serializers.CharField(source='invoice_filename', allow_null=True)
    items = OrderItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2)

    def get_status(self, obj):
        return obj.status.value if obj.status else None

    def get_statusLabel(self, obj):
        return obj.status.label if obj.status else None

    def get_invoiceUrl(self, obj):
        resolve = self.context.get('absolute_url')
        if obj.invoice_url and resolve is not None:
            return resolve(obj.invoice_url)
        return obj.invoice_url


class InvoiceAttachmentSerializer(serializers.Serializer):
    orderId = serializers.CharField(source='order_id')
    invoiceUrl = serializers.CharField(source='url', allow_null=True)
    invoiceFilename = serializers.CharField(source='filename', allow_null=True)


class SubmissionOutcomeSerializer(serializers.Serializer):
    detail = serializers.CharField(source='summary')
    orderId = serializers.CharField(source='order_id', allow_null=True)
    orderCode = serializers.CharField(source='order_code', allow_null=True)
    created = serializers.BooleanField()
    warnings = serializers.ListField(source='warning_messages', child=serializers.CharField())
    order = serializers.SerializerMethodField()
    invoice = serializers.SerializerMethodField()

    def get_order(self, obj):
        if obj.order is None:
            return None
        return OrderSerializer(obj.order, context=self.context).data

    def get_invoice(self, obj):
        if obj.invoice is None:
            return None
        return InvoiceAttachmentSerializer(obj.invoice).data


class OrderLineInputSerializer(serializers.Serializer):
    """One selected line; a blank quantity is accepted and coerced later."""

    productId = serializers.CharField()
    quantity = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='1')
    name = serializers.CharField(required=False, allow_blank=True, default='')
    price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    stock = serializers.IntegerField(required=False, allow_null=True, default=None)
    sku = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class OrderSubmissionSerializer(serializers.Serializer):
    """Body of the internal order form (create and edit)."""

    items = OrderLineInputSerializer(many=True)
    customerId = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    customer = serializers.DictField(required=False, default=dict)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    paymentAmount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, default=None)
    paymentMethod = serializers.CharField(required=False, allow_blank=True, default='')
    customPaymentMethod = serializers.CharField(required=False, allow_blank=True, default='')
    markAsSent = serializers.BooleanField(required=False, default=False)

    def to_request(self, session, order_id=None):
        data = self.validated_data
        return SubmissionRequest(
            selection=OrderSelection.from_payload(data['items']),
            company_id=session.company_id,
            company=session.company,
            customer_id=data.get('customerId') or None,
            customer=data.get('customer') or {},
            description=data.get('description') or None,
            payment_amount=data.get('paymentAmount'),
            payment_method=resolve_payment_method(data.get('paymentMethod'), data.get('customPaymentMethod')),
            mark_as_sent=data.get('markAsSent', False),
            order_id=order_id,
        )


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s.value for s in OrderStatus])


class InvoiceUploadSerializer(serializers.Serializer):
    invoice = serializers.FileField()
