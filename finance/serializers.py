"""DRF serializers for order payments (abonos)."""

from django.conf import settings
from rest_framework import serializers

from .payments import OTHER_METHOD, resolve_payment_method


class PaymentSerializer(serializers.Serializer):
    """A payment as stored by the backend (read side)."""

    id = serializers.CharField(read_only=True, allow_null=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, coerce_to_string=False, required=False)
    paidAt = serializers.CharField(allow_null=True, required=False)
    paymentMethod = serializers.CharField(allow_null=True, required=False)
    note = serializers.CharField(allow_null=True, required=False)
    orderId = serializers.CharField(allow_null=True, required=False)
    evidenceUrl = serializers.SerializerMethodField()

    def get_evidenceUrl(self, obj):
        url = (obj.get('evidenceUrl') or obj.get('evidence')) if isinstance(obj, dict) else None
        resolve = self.context.get('absolute_url')
        return resolve(url) if resolve and url else url


class PaymentCreateSerializer(serializers.Serializer):
    """Register a payment for an order's customer.

    ``evidence`` is optional; without it a receipt PDF is generated.
    """

    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    paymentMethod = serializers.CharField(required=False, allow_blank=True, default='')
    customPaymentMethod = serializers.CharField(required=False, allow_blank=True, default='')
    note = serializers.CharField(required=False, allow_blank=True, default='')
    paidAt = serializers.DateTimeField(required=False, allow_null=True, default=None)
    evidence = serializers.FileField(required=False, allow_null=True, default=None)

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Enter a payment amount greater than zero.')
        return value

    def validate(self, attrs):
        method = attrs.get('paymentMethod')
        if method and method != OTHER_METHOD and method not in settings.PAYMENT_METHODS:
            raise serializers.ValidationError({'paymentMethod': f'Unknown payment method: {method}.'})
        attrs['method'] = resolve_payment_method(method, attrs.get('customPaymentMethod'))
        return attrs
