from django.urls import path
from .views import GetStripeConfigView, StripeWebhookView

app_name = "stripe_integration"

urlpatterns = [
    path("stripe/config/", GetStripeConfigView.as_view(), name="stripe-config"),
    path("stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
