from rest_framework import viewsets, status, mixins
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .models import Item, Transaction
from .serializers import (
    AccountSerializer,
    ItemSerializer,
    TransactionSerializer,
    BalanceSummarySerializer,
    # Input serializers
    AccountFilterSerializer,
    RecordPurchaseSerializer,
    RecordPaymentSerializer,
)
from .services import (
    list_accounts,
    get_account,
    get_account_transactions,
    get_balance_summary,
    record_purchase,
    record_payment,
    delete_transaction,
    # Exceptions
    AccountNotFoundError,
    ItemNotFoundError,
    TransactionNotFoundError,
    DuplicateTransactionError,
    InvalidAmountError,
)


class TabsPagination(PageNumberPagination):
    """Custom pagination for the dashboard lists."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


class AccountViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Dashboard view of member accounts.

    Accounts are created and removed by roster sync; totals change only
    through the purchase and payment actions below.

    list: Accounts, filterable by search/employee and sortable
    retrieve: One account with its balance
    """

    serializer_class = AccountSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = TabsPagination

    def get_queryset(self):
        """Filter accounts using input serializer validation."""
        if self.action != 'list':
            return list_accounts()

        filter_serializer = AccountFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        return list_accounts(**filter_serializer.validated_data)

    @extend_schema(
        parameters=[
            OpenApiParameter('search', str, description='Name or username contains'),
            OpenApiParameter('employee', str, enum=['all', 'employee', 'non_employee']),
            OpenApiParameter('ordering', str, enum=['last_purchase', 'debt', 'total_paid']),
        ],
        tags=['tabs'],
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def retrieve(self, request, *args, **kwargs):
        try:
            account = get_account(account_id=kwargs['pk'])
        except AccountNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(AccountSerializer(account).data)

    @extend_schema(responses={200: BalanceSummarySerializer}, tags=['tabs'])
    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Global totals: owed, overpaid, and debt split by employee status."""
        return Response(BalanceSummarySerializer(get_balance_summary()).data)

    @extend_schema(responses={200: TransactionSerializer(many=True)}, tags=['tabs'])
    @action(detail=True, methods=['get'])
    def transactions(self, request, pk=None):
        """Transaction history of the account."""
        try:
            queryset = get_account_transactions(account_id=pk)
        except AccountNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = TransactionSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(TransactionSerializer(queryset, many=True).data)

    @extend_schema(
        request=RecordPurchaseSerializer,
        responses={201: TransactionSerializer},
        tags=['tabs'],
    )
    @action(detail=True, methods=['post'])
    def purchases(self, request, pk=None):
        """Record the purchase of one item."""
        serializer = RecordPurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            purchase = record_purchase(
                account_id=pk,
                item_id=serializer.validated_data['item']
            )
        except (AccountNotFoundError, ItemNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(TransactionSerializer(purchase).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=RecordPaymentSerializer,
        responses={201: TransactionSerializer},
        tags=['tabs'],
    )
    @action(detail=True, methods=['post'])
    def payments(self, request, pk=None):
        """Record a manual (cash) payment."""
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = record_payment(
                account_id=pk,
                amount=serializer.validated_data['amount']
            )
        except AccountNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DuplicateTransactionError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
        except InvalidAmountError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(TransactionSerializer(payment).data, status=status.HTTP_201_CREATED)


class ItemViewSet(viewsets.ReadOnlyModelViewSet):
    """Items currently for sale."""

    queryset = Item.objects.filter(is_available=True)
    serializer_class = ItemSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None


class TransactionViewSet(mixins.RetrieveModelMixin,
                         mixins.DestroyModelMixin,
                         viewsets.GenericViewSet):
    """
    Single ledger entries.

    retrieve: Get a transaction
    destroy: Delete a transaction and reverse the account totals
    """

    queryset = Transaction.objects.select_related('item')
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated]

    def destroy(self, request, *args, **kwargs):
        try:
            delete_transaction(transaction_id=kwargs['pk'])
        except TransactionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)
