"""Products API views: catalog search and server-side stock checks.

The catalog itself is owned by the backend; these endpoints proxy it with
the caller's token.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.api import BackendAPIMixin

from .catalog import Catalog
from .serializers import (
    ProductSearchQuerySerializer,
    StockCheckRequestSerializer,
    StockCheckResultSerializer,
)
from .stock import StockValidator


class ProductSearchView(BackendAPIMixin, APIView):
    """Search products by name/SKU (server search, then local fallback)."""

    permission_classes = [AllowAny]

    @extend_schema(parameters=[ProductSearchQuerySerializer])
    def get(self, request):
        query = ProductSearchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        term = query.validated_data['q']

        async def search(backend, session):
            company_id = query.validated_data.get('companyId') or session.company_id
            return await Catalog(backend).search_products(term, company_id=company_id,
                                                          limit=query.validated_data.get('limit'))

        results = self.call_backend(request, search)
        return Response({'results': results, 'count': len(results)})


class StockCheckView(BackendAPIMixin, APIView):
    """Check requested quantities against server stock."""

    permission_classes = [AllowAny]

    @extend_schema(request=StockCheckRequestSerializer, responses=StockCheckResultSerializer(many=True))
    def post(self, request):
        serializer = StockCheckRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        async def check(backend, session):
            return await StockValidator(backend).check_stock(serializer.validated_data['items'])

        results = self.call_backend(request, check)
        return Response({
            'results': StockCheckResultSerializer(results, many=True).data,
            'sufficient': all(r.sufficient for r in results),
        }, status=status.HTTP_200_OK)
