"""Serializers for product search and stock checks."""

from rest_framework import serializers


class ProductSearchQuerySerializer(serializers.Serializer):
    q = serializers.CharField(allow_blank=True, default='')
    companyId = serializers.CharField(required=False, allow_blank=True, default='')
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=None, allow_null=True)


class StockLineSerializer(serializers.Serializer):
    productId = serializers.CharField()
    quantity = serializers.IntegerField(min_value=0)


class StockCheckRequestSerializer(serializers.Serializer):
    items = StockLineSerializer(many=True, allow_empty=False)


class StockCheckResultSerializer(serializers.Serializer):
    productId = serializers.CharField(source='product_id')
    requested = serializers.IntegerField()
    available = serializers.IntegerField(allow_null=True)
    sufficient = serializers.BooleanField()
