"""Payments registered against an order's customer."""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import BackendAPIMixin
from orders.client import OrdersAPI
from orders.domain import Order

from .payments import CustomerPayments, payment_method_choices
from .serializers import PaymentCreateSerializer, PaymentSerializer


class OrderPaymentsView(BackendAPIMixin, APIView):
    """GET: payments linked to the order. POST: register a new abono."""

    permission_classes = [AllowAny]

    @extend_schema(responses=PaymentSerializer(many=True))
    def get(self, request, order_id):
        async def fetch(backend, session):
            order = Order.from_payload(await OrdersAPI(backend).get(order_id))
            order.id = order.id or order_id
            payments = await CustomerPayments(backend).list_for_order(order)
            return PaymentSerializer(payments, many=True, context={'absolute_url': backend.absolute_url}).data

        results = self.call_backend(request, fetch)
        return Response({'results': results, 'methods': payment_method_choices()})

    @extend_schema(request=PaymentCreateSerializer, responses=PaymentSerializer)
    def post(self, request, order_id):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        evidence = data.get('evidence')
        content = evidence.read() if evidence else None
        paid_at = data['paidAt'].isoformat() if data.get('paidAt') else None

        async def register(backend, session):
            order = Order.from_payload(await OrdersAPI(backend).get(order_id))
            order.id = order.id or order_id
            if not order.company and session.company:
                order.company = session.company
            payment = await CustomerPayments(backend).register(
                order, data['amount'], method=data['method'], note=data.get('note') or None,
                paid_at=paid_at, evidence=content, evidence_name=evidence.name if evidence else None,
            )
            return PaymentSerializer(payment, context={'absolute_url': backend.absolute_url}).data

        payment = self.call_backend(request, register)
        return Response(payment, status=status.HTTP_201_CREATED)
