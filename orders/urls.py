from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import OrderViewSet

# Mounted at /api/orders/, so the viewset is registered at the root.
router = SimpleRouter(trailing_slash=True)
router.register(r'', OrderViewSet, basename='order')

urlpatterns = [
    path('', include(router.urls)),
]
