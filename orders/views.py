"""Orders API views.

Includes order submission (create/edit), listing with local filters, status
updates and invoice attachment endpoints. Orders are owned by the backend;
every action runs against it with the caller's token and active company.
"""

import logging

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.api import BackendAPIMixin
from core.exceptions import NetworkError
from invoices.attachments import InvoiceAttachmentManager

from .client import OrdersAPI
from .domain import Order, OrderStatus
from .listing import filter_orders, parse_day
from .pipeline import OrderSubmission
from .serializers import (
    InvoiceAttachmentSerializer,
    InvoiceUploadSerializer,
    OrderSerializer,
    OrderSubmissionSerializer,
    StatusUpdateSerializer,
    SubmissionOutcomeSerializer,
)
from .status import OrderStatusMachine

logger = logging.getLogger(__name__)


def _truthy(value):
    return str(value or '').strip().lower() in {'1', 'true', 'yes', 'on'}


class OrderViewSet(BackendAPIMixin, viewsets.ViewSet):
    """Order API endpoints for the internal order screens."""

    permission_classes = [AllowAny]
    lookup_value_regex = '[^/]+'

    def _order_data(self, order, backend):
        return OrderSerializer(order, context={'absolute_url': backend.absolute_url}).data

    @extend_schema(parameters=[
        OpenApiParameter('search', str), OpenApiParameter('status', str),
        OpenApiParameter('dateFrom', str), OpenApiParameter('dateTo', str),
        OpenApiParameter('page', int), OpenApiParameter('limit', int),
    ])
    def list(self, request):
        """List the active company's orders, newest first.

        Supports optional filters: `search` (order code), `status`,
        `dateFrom`, `dateTo` (inclusive, whole day).
        """
        params = request.query_params
        try:
            page = max(1, int(params.get('page') or 1))
            limit = max(1, min(100, int(params.get('limit') or 20)))
        except ValueError:
            return Response({'detail': 'page and limit must be integers.'}, status=400)

        search = (params.get('search') or '').strip()
        wanted = params.get('status')
        if wanted and OrderStatus.parse(wanted) is None:
            return Response({'detail': f'Unknown status: {wanted}.'}, status=400)
        for key in ('dateFrom', 'dateTo'):
            if params.get(key) and parse_day(params[key]) is None:
                return Response({'detail': f'{key} must be a date (YYYY-MM-DD).'}, status=400)

        async def fetch(backend, session):
            result = await OrdersAPI(backend).list(
                page=page, limit=limit, search=search or None, company_id=session.company_id,
                status=wanted, date_from=params.get('dateFrom'), date_to=params.get('dateTo'),
            )
            orders = [Order.from_payload(o) for o in result.items if isinstance(o, dict)]
            orders = filter_orders(orders, code=search, status=wanted,
                                   date_from=params.get('dateFrom'), date_to=params.get('dateTo'))
            return {
                'results': [self._order_data(o, backend) for o in orders],
                'meta': result.meta,
            }

        return Response(self.call_backend(request, fetch))

    @extend_schema(request=OrderSubmissionSerializer, responses=SubmissionOutcomeSerializer)
    def create(self, request):
        """Create an order for the active company (stock check, confirm, invoice)."""
        return self._submit(request, order_id=None, created_status=status.HTTP_201_CREATED)

    @extend_schema(request=OrderSubmissionSerializer, responses=SubmissionOutcomeSerializer)
    def update(self, request, pk=None):
        """Edit an existing order; the invoice is regenerated from the new data."""
        return self._submit(request, order_id=pk, created_status=status.HTTP_200_OK)

    def _submit(self, request, order_id, created_status):
        serializer = OrderSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        async def submit(backend, session):
            outcome = await OrderSubmission(backend).submit(serializer.to_request(session, order_id=order_id))
            return SubmissionOutcomeSerializer(outcome, context={'absolute_url': backend.absolute_url}).data

        return Response(self.call_backend(request, submit), status=created_status)

    @extend_schema(responses=OrderSerializer)
    def retrieve(self, request, pk=None):
        async def fetch(backend, session):
            order = Order.from_payload(await OrdersAPI(backend).get(pk))
            return self._order_data(order, backend)

        return Response(self.call_backend(request, fetch))

    def destroy(self, request, pk=None):
        """Delete an order; its invoice is removed first when possible."""

        async def delete(backend, session):
            orders = OrdersAPI(backend)
            try:
                await orders.delete_invoice(pk)
            except NetworkError as exc:
                logger.warning('Invoice delete before deleting order %s failed: %s', pk, exc)
            await orders.delete(pk)

        self.call_backend(request, delete)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=StatusUpdateSerializer)
    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        """Move the order to a new status; `enviado` attaches an invoice if missing."""
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        async def change(backend, session):
            orders = OrdersAPI(backend)
            order = Order.from_payload(await orders.get(pk))
            order.id = order.id or pk
            result = await OrderStatusMachine(backend, orders=orders).set_status(
                order, serializer.validated_data['status'], session_company=session.company,
            )
            return {
                'order': self._order_data(result.order, backend),
                'previousStatus': result.previous.value if result.previous else None,
                'status': result.status.value,
                'invoice': InvoiceAttachmentSerializer(result.invoice).data if result.invoice else None,
                'warnings': [w.message for w in result.warnings],
            }

        return Response(self.call_backend(request, change))

    @extend_schema(request=InvoiceUploadSerializer, responses=InvoiceAttachmentSerializer)
    @action(detail=True, methods=['post', 'delete'], url_path='invoice')
    def invoice(self, request, pk=None):
        """POST: upload a PDF as the invoice. DELETE: remove it (needs `confirm=true`)."""
        if request.method == 'DELETE':
            confirmed = _truthy(request.query_params.get('confirm') or request.data.get('confirm'))

            async def delete(backend, session):
                return await InvoiceAttachmentManager(backend).delete(pk, confirmed=confirmed)

            attachment = self.call_backend(request, delete)
            return Response(InvoiceAttachmentSerializer(attachment).data)

        serializer = InvoiceUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['invoice']
        document = upload.read()

        async def attach(backend, session):
            return await InvoiceAttachmentManager(backend).upload(pk, document, upload.name)

        attachment = self.call_backend(request, attach)
        return Response(InvoiceAttachmentSerializer(attachment).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=InvoiceAttachmentSerializer)
    @action(detail=True, methods=['post'], url_path='invoice/regenerate')
    def regenerate_invoice(self, request, pk=None):
        """Rebuild the invoice from the current order data and replace the old one."""

        async def regenerate(backend, session):
            return await InvoiceAttachmentManager(backend).regenerate(pk, session_company=session.company)

        attachment = self.call_backend(request, regenerate)
        return Response(InvoiceAttachmentSerializer(attachment).data, status=status.HTTP_201_CREATED)
