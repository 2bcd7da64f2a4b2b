from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # POST /api/payments/webhooks/sumup/?accountId=<uuid>  - SumUp checkout notification
    path('webhooks/sumup/', views.SumUpWebhookView.as_view(), name='sumup-webhook'),

    # GET  /api/payments/balance/?slackUserId=<id>         - Balance lookup (API key)
    path('balance/', views.BalanceLookupView.as_view(), name='balance'),

    # POST /api/payments/payment-links/                    - Send a payment link over Slack
    path('payment-links/', views.send_payment_link, name='payment-links'),
]
