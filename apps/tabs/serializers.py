from decimal import Decimal

from rest_framework import serializers

from .models import Account, Item, Transaction
from .services import AccountOrdering, EmployeeFilter


class AccountSerializer(serializers.ModelSerializer):
    """Account with its derived balance."""

    balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Account
        fields = [
            'id',
            'slack_id',
            'name',
            'username',
            'picture_url',
            'is_employee',
            'total_purchased',
            'total_paid',
            'balance',
            'last_purchase_at',
            'last_payment_at',
            'created_at',
        ]
        read_only_fields = fields


class ItemSerializer(serializers.ModelSerializer):

    class Meta:
        model = Item
        fields = ['id', 'name', 'price', 'is_available']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """Ledger entry; ``item_name`` is empty for payments."""

    item_name = serializers.CharField(source='item.name', read_only=True, default='')

    class Meta:
        model = Transaction
        fields = ['id', 'type', 'account', 'item', 'item_name', 'amount', 'created_at']
        read_only_fields = fields


class BalanceSummarySerializer(serializers.Serializer):
    total_owed = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_overpaid = serializers.DecimalField(max_digits=12, decimal_places=2)
    employee_debt = serializers.DecimalField(max_digits=12, decimal_places=2)
    non_employee_debt = serializers.DecimalField(max_digits=12, decimal_places=2)


# =============================================================================
# Input serializers
# =============================================================================

class AccountFilterSerializer(serializers.Serializer):
    """Query parameters of the account list."""

    search = serializers.CharField(required=False, allow_blank=True, default='')
    employee = serializers.ChoiceField(
        choices=EmployeeFilter.choices,
        required=False,
        default=EmployeeFilter.ALL
    )
    ordering = serializers.ChoiceField(
        choices=AccountOrdering.choices,
        required=False,
        default=AccountOrdering.LAST_PURCHASE
    )


class RecordPurchaseSerializer(serializers.Serializer):
    item = serializers.IntegerField(min_value=1)


class RecordPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal('0.01')
    )
