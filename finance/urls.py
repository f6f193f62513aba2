from django.urls import path

from .views import OrderPaymentsView

urlpatterns = [
    path('', OrderPaymentsView.as_view(), name='order-payments'),
]
