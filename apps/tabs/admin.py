from django.contrib import admin
from apps.tabs.models import Account, Item, Transaction


class TransactionInline(admin.TabularInline):
    """Read-only ledger entries on the account page."""
    model = Transaction
    extra = 0
    fields = ['id', 'type', 'item', 'amount', 'created_at']
    readonly_fields = fields
    can_delete = False
    ordering = ['-created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    """Admin interface for Accounts."""

    list_display = [
        'name',
        'slack_id',
        'is_employee',
        'total_purchased',
        'total_paid',
        'balance',
        'last_purchase_at',
    ]
    list_filter = ['is_employee']
    search_fields = ['name', 'username', 'slack_id']
    # Totals are owned by the ledger
    readonly_fields = [
        'total_purchased',
        'total_paid',
        'last_purchase_at',
        'last_payment_at',
        'created_at',
        'updated_at',
    ]
    inlines = [TransactionInline]

    fieldsets = (
        ('Slack Profile', {
            'fields': ('slack_id', 'name', 'username', 'picture_url', 'is_employee')
        }),
        ('Activity', {
            'fields': ('total_purchased', 'total_paid', 'last_purchase_at', 'last_payment_at')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def balance(self, obj):
        return obj.balance
    balance.short_description = 'Balance'

    # Accounts are removed only by roster sync, which keeps any with ledger history
    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'price', 'is_available']
    list_filter = ['is_available']
    list_editable = ['price', 'is_available']
    search_fields = ['name']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Ledger entries are read-only; use the API to delete and reverse."""

    list_display = ['id', 'type', 'account', 'item', 'amount', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['id', 'account__name', 'account__slack_id']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
