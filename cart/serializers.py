"""DRF serializers for cart APIs."""

from rest_framework import serializers


class CartItemSerializer(serializers.Serializer):
    """Read shape of one cart line (camelCase, as the storefront expects)."""

    productId = serializers.CharField(source='product_id')
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=14, decimal_places=2)
    quantity = serializers.IntegerField()
    companyId = serializers.CharField(source='company_id', allow_null=True)
    sku = serializers.CharField(allow_null=True)
    image = serializers.CharField(allow_null=True)
    stock = serializers.IntegerField(allow_null=True)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)


class CartSerializer(serializers.Serializer):
    """Serializer for the cart state including nested items."""

    items = CartItemSerializer(many=True)
    companyId = serializers.CharField(source='company_id', allow_null=True)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    count = serializers.SerializerMethodField()

    def get_count(self, obj):
        return sum(it.quantity for it in obj.items)


class AddCartItemSerializer(serializers.Serializer):
    """A catalog product (backend field names) plus the quantity to add."""

    id = serializers.CharField()
    name = serializers.CharField(required=False, allow_blank=True, default='')
    price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    companyId = serializers.CharField(required=False, allow_null=True, default=None)
    sku = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    imageUrl = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    stock = serializers.IntegerField(required=False, allow_null=True, default=None)
    quantity = serializers.IntegerField(required=False, min_value=1, default=1)

    def to_product(self):
        data = dict(self.validated_data)
        data.pop('quantity', None)
        return data


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class CheckoutSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, allow_blank=True, default='')
    customerId = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    customer = serializers.DictField(required=False, default=dict)
