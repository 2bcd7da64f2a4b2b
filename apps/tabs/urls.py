from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'tabs'

# Router for ViewSets
router = DefaultRouter()
router.register(r'accounts', views.AccountViewSet, basename='account')
router.register(r'items', views.ItemViewSet, basename='item')
router.register(r'transactions', views.TransactionViewSet, basename='transaction')

urlpatterns = [
    # GET    /api/tabs/accounts/                       - List accounts (search, employee, ordering)
    # GET    /api/tabs/accounts/summary/               - Global balance metrics
    # GET    /api/tabs/accounts/{id}/                  - Account details
    # GET    /api/tabs/accounts/{id}/transactions/     - Account history
    # POST   /api/tabs/accounts/{id}/purchases/        - Record a purchase
    # POST   /api/tabs/accounts/{id}/payments/         - Record a manual payment
    # GET    /api/tabs/items/                          - Items for sale
    # GET    /api/tabs/transactions/{id}/              - Transaction details
    # DELETE /api/tabs/transactions/{id}/              - Delete and reverse totals
    path('', include(router.urls)),
]
