"""
Hints app URL configuration.

Included from the project ``urls.py`` as
``path('api/hints/', include('hints.urls'))``.

    GET/PUT /settings/                 → HintSettingsView
    POST    /purchase/                 → HintPurchaseView
    GET     /{ping_id}/purchased/      → PurchasedHintsView
"""

from django.urls import path

from .views import HintPurchaseView, HintSettingsView, PurchasedHintsView

app_name = "hints"

urlpatterns = [
    path("settings/", HintSettingsView.as_view(), name="settings"),
    path("purchase/", HintPurchaseView.as_view(), name="purchase"),
    path("<int:ping_id>/purchased/", PurchasedHintsView.as_view(), name="purchased"),
]
