import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.integrations.exceptions import UpstreamServiceError

from .permissions import BalanceApiKeyAuthentication, HasBalanceApiKey
from .serializers import (
    SumUpWebhookSerializer,
    WebhookQuerySerializer,
    BalanceQuerySerializer,
    SendPaymentLinkSerializer,
    BalanceResponseSerializer,
    SendPaymentLinkResponseSerializer,
    ErrorResponseSerializer,
)
from .services import (
    lookup_balance,
    process_checkout_event,
    send_payment_link as send_payment_link_service,
    # Exceptions
    CheckoutAccountMismatchError,
    PaymentAccountNotFoundError,
    PaymentsServiceError,
    UnknownMemberError,
)
from apps.tabs.services import TabsServiceError

logger = logging.getLogger(__name__)


def _error_message(data):
    """Collapse a DRF error payload into one line."""
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        return '; '.join(
            f"{field}: {' '.join(str(m) for m in messages) if isinstance(messages, list) else messages}"
            for field, messages in data.items()
        )
    if isinstance(data, list):
        return ' '.join(str(item) for item in data)
    return str(data)


class ErrorEnvelopeMixin:
    """Render every framework error as ``{'error': message}``."""

    def handle_exception(self, exc):
        response = super().handle_exception(exc)
        if response is not None and response.data is not None:
            response.data = {'error': _error_message(response.data)}
        return response


class SumUpWebhookView(ErrorEnvelopeMixin, APIView):
    """
    Checkout status notifications from SumUp.

    POST /api/payments/webhooks/sumup/?accountId=<uuid>
    Body: {"event_type": "CHECKOUT_STATUS_CHANGED", "id": "<checkout id>"}

    Any structurally valid notification that was processed (recorded,
    already recorded, or not paid yet) gets an empty 200 so SumUp stops
    retrying. Real failures return 5xx and SumUp retries.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        request=SumUpWebhookSerializer,
        parameters=[OpenApiParameter('accountId', str, required=True)],
        responses={200: None, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
        tags=['payments'],
    )
    def post(self, request):
        body = SumUpWebhookSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        query = WebhookQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            outcome = process_checkout_event(
                checkout_id=body.validated_data['id'],
                account_id=query.validated_data['accountId'],
            )
        except CheckoutAccountMismatchError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentAccountNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except UpstreamServiceError as e:
            logger.error('Could not verify checkout %s: %s', body.validated_data['id'], e)
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        except (DatabaseError, TabsServiceError) as e:
            logger.exception('Failed to record checkout %s', body.validated_data['id'])
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        logger.info('Webhook for checkout %s: %s', body.validated_data['id'], outcome)
        return Response(status=status.HTTP_200_OK)


class BalanceLookupView(ErrorEnvelopeMixin, APIView):
    """
    Balance of a Slack member, for the Slack bot.

    GET /api/payments/balance/?slackUserId=<id>
    Authorization: Bearer <BALANCE_API_KEY>
    """

    authentication_classes = [BalanceApiKeyAuthentication]
    permission_classes = [HasBalanceApiKey]

    @extend_schema(
        parameters=[OpenApiParameter('slackUserId', str, required=True)],
        responses={
            200: BalanceResponseSerializer,
            400: ErrorResponseSerializer,
            401: ErrorResponseSerializer,
            404: ErrorResponseSerializer,
        },
        tags=['payments'],
    )
    def get(self, request):
        query = BalanceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        slack_user_id = query.validated_data['slackUserId']

        try:
            result = lookup_balance(slack_user_id=slack_user_id)
        except UnknownMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except UpstreamServiceError as e:
            logger.error('Could not create checkout for %s: %s', slack_user_id, e)
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        except (DatabaseError, PaymentsServiceError) as e:
            logger.exception('Balance lookup failed for %s', slack_user_id)
            return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(result)


@extend_schema(
    request=SendPaymentLinkSerializer,
    responses={
        200: SendPaymentLinkResponseSerializer,
        404: ErrorResponseSerializer,
        502: ErrorResponseSerializer,
    },
    description="Create a checkout and send its link to the member over Slack.",
    tags=['payments'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_payment_link(request):
    """Send a payment link to a member as a Slack DM."""
    serializer = SendPaymentLinkSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        checkout = send_payment_link_service(
            account_id=serializer.validated_data['accountId'],
            amount=serializer.validated_data['amount']
        )
    except PaymentAccountNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except UpstreamServiceError as e:
        logger.error('Failed to send payment link: %s', e)
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({'success': True, 'checkoutId': checkout.checkout_id})
