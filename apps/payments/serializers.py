from decimal import Decimal

from rest_framework import serializers

CHECKOUT_STATUS_CHANGED = 'CHECKOUT_STATUS_CHANGED'


class SumUpWebhookSerializer(serializers.Serializer):
    """Body of a SumUp checkout notification."""

    event_type = serializers.ChoiceField(choices=[CHECKOUT_STATUS_CHANGED])
    id = serializers.CharField(max_length=64)


class WebhookQuerySerializer(serializers.Serializer):
    """Query string SumUp echoes back from the checkout return URL."""

    accountId = serializers.UUIDField()


class BalanceQuerySerializer(serializers.Serializer):
    slackUserId = serializers.CharField(max_length=32)


class SendPaymentLinkSerializer(serializers.Serializer):
    accountId = serializers.UUIDField()
    amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01')
    )


# Response serializers for API documentation
class BalanceResponseSerializer(serializers.Serializer):
    balance = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    paymentLink = serializers.URLField(required=False)


class SendPaymentLinkResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    checkoutId = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
