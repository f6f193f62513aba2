"""Cart APIs.

The cart lives in a :class:`cart.store.CartStore` keyed by the Django
session, so every open view of the same session sees the same cart.
Checkout runs the shared order submission pipeline with the cart's company.
"""

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.api import BackendAPIMixin
from orders.pipeline import OrderSubmission, SubmissionRequest
from orders.selection import OrderSelection, ProductSnapshot, SelectedLine
from orders.serializers import SubmissionOutcomeSerializer

from .serializers import AddCartItemSerializer, CartSerializer, CheckoutSerializer, UpdateCartItemSerializer
from .store import CartStore

logger = logging.getLogger(__name__)


def selection_from_cart(state):
    return OrderSelection(lines=[
        SelectedLine(
            ProductSnapshot(id=it.product_id, name=it.name, price=it.price, stock=it.stock, sku=it.sku),
            it.quantity,
        )
        for it in state.items
    ])


class CartViewSet(BackendAPIMixin, viewsets.ViewSet):
    """Cart API (anonymous, scoped to the Django session)."""

    permission_classes = [AllowAny]

    def get_store(self, request):
        if not request.session.session_key:
            request.session.create()
        return CartStore.for_session(request.session.session_key)

    def _respond(self, state, code=status.HTTP_200_OK):
        return Response(CartSerializer(state).data, status=code)

    @extend_schema(responses=CartSerializer)
    def retrieve(self, request):
        store = self.get_store(request)
        try:
            return self._respond(store.state)
        finally:
            store.close()

    @extend_schema(responses=CartSerializer)
    def clear(self, request):
        store = self.get_store(request)
        try:
            return self._respond(store.clear())
        finally:
            store.close()

    @extend_schema(request=AddCartItemSerializer, responses=CartSerializer)
    def add_item(self, request):
        """Add a product; a product from another company starts a new cart."""
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = self.get_store(request)
        try:
            state = store.add_item(serializer.to_product(), serializer.validated_data['quantity'])
            return self._respond(state, status.HTTP_201_CREATED)
        finally:
            store.close()

    @extend_schema(request=UpdateCartItemSerializer, responses=CartSerializer)
    def update_item(self, request, product_id=None):
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = self.get_store(request)
        try:
            if store.state.find(product_id) is None:
                return Response({'detail': 'Product is not in the cart.'}, status=status.HTTP_404_NOT_FOUND)
            return self._respond(store.update_quantity(product_id, serializer.validated_data['quantity']))
        finally:
            store.close()

    @extend_schema(responses=CartSerializer)
    def remove_item(self, request, product_id=None):
        store = self.get_store(request)
        try:
            return self._respond(store.remove_item(product_id))
        finally:
            store.close()

    @extend_schema(request=CheckoutSerializer, responses=SubmissionOutcomeSerializer)
    def checkout(self, request):
        """Submit the cart as an order; the cart is cleared once the order exists."""
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = self.get_store(request)
        try:
            state = store.state
            if state.is_empty:
                return Response({'detail': 'Cart is empty.'}, status=status.HTTP_400_BAD_REQUEST)
            if not state.company_id:
                return Response({'detail': 'Cart has no company.'}, status=status.HTTP_400_BAD_REQUEST)

            submission = SubmissionRequest(
                selection=selection_from_cart(state),
                company_id=state.company_id,
                company={'id': state.company_id},
                customer_id=serializer.validated_data.get('customerId') or None,
                customer=serializer.validated_data.get('customer') or {},
                description=serializer.validated_data.get('description') or None,
            )

            async def submit(backend, session):
                outcome = await OrderSubmission(backend).submit(submission)
                return outcome, backend.absolute_url

            outcome, absolute_url = self.call_backend(request, submit)
            store.clear()
            data = SubmissionOutcomeSerializer(outcome, context={'absolute_url': absolute_url}).data
            return Response(data, status=status.HTTP_201_CREATED)
        finally:
            store.close()
