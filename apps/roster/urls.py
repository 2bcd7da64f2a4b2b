from django.urls import path
from . import views

app_name = 'roster'

urlpatterns = [
    # POST /api/roster/sync/  - Reconcile accounts with Slack ({dry_run})
    path('sync/', views.sync_roster, name='sync'),
]
