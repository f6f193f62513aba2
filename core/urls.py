"""
URL configuration for the order fulfillment service.

All data lives in the remote backend; these routes expose the cart,
product search, order pipeline and payment endpoints on top of it.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/cart/', include('cart.urls')),
    path('api/products/', include('products.urls')),
    path('api/orders/<str:order_id>/payments/', include('finance.urls')),
    path('api/orders/', include('orders.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
