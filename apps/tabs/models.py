from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


def generate_transaction_id():
    return str(uuid.uuid4())


class TransactionType(models.TextChoices):
    PURCHASE = 'purchase', 'Purchase'
    PAYMENT = 'payment', 'Payment'


class Account(models.Model):
    """A member's tab, mirrored from the Slack workspace."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Slack identity
    slack_id = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=200)
    username = models.CharField(max_length=100, blank=True)
    picture_url = models.URLField(max_length=500, blank=True)
    is_employee = models.BooleanField(default=False)

    # Activity (maintained by the ledger only)
    total_purchased = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total_paid = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    last_purchase_at = models.DateTimeField(null=True, blank=True)
    last_payment_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts'
        indexes = [
            models.Index(fields=['is_employee'], name='accounts_is_employee_idx'),
            models.Index(fields=['last_purchase_at'], name='accounts_last_purchase_idx'),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.slack_id})"

    @property
    def balance(self):
        """Paid minus purchased; negative means the member owes money."""
        return self.total_paid - self.total_purchased

    @property
    def has_purchases(self):
        return self.total_purchased > 0


class Item(models.Model):
    """Something sold at the bar."""

    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    is_available = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'items'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.price})"


class Transaction(models.Model):
    """
    A single purchase or payment on an account.

    Webhook payments use the checkout reference as primary key, which is
    what makes recording them idempotent.
    """

    id = models.CharField(
        primary_key=True,
        max_length=64,
        default=generate_transaction_id,
        editable=False
    )
    type = models.CharField(max_length=10, choices=TransactionType.choices)
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    item = models.ForeignKey(
        Item,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions'
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'transactions'
        indexes = [
            models.Index(fields=['account', 'created_at'], name='transactions_account_idx'),
            models.Index(fields=['type', 'created_at'], name='transactions_type_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} ({self.account_id})"
