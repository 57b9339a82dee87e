"""
Treasury app URL configuration.

Included from the project ``urls.py`` as
``path('api/treasury/', include('treasury.urls'))``.

    GET /transfers/   → TransferLogListView
    GET /balance/     → WalletBalanceView
"""

from django.urls import path

from .views import TransferLogListView, WalletBalanceView

app_name = "treasury"

urlpatterns = [
    path("transfers/", TransferLogListView.as_view(), name="transfer-list"),
    path("balance/", WalletBalanceView.as_view(), name="balance"),
]
