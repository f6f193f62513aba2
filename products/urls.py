"""Product API routes (search and stock checks against the backend catalog)."""

from django.urls import path

from .views import ProductSearchView, StockCheckView

urlpatterns = [
    path('search/', ProductSearchView.as_view(), name='product-search'),
    path('check-stock/', StockCheckView.as_view(), name='product-check-stock'),
]
