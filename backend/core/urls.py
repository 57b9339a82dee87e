"""
Core app URL configuration.

URL prefix (registered in ``pinghunt/urls.py``)::

    path('api/core/', include('core.urls'))

Endpoint summary
----------------
GET  /api/core/health/       — Liveness check.
GET  /api/core/audit-logs/   — Administrative audit trail.
"""

from django.urls import path

from . import views

app_name = "core"

urlpatterns = [
    path("health/", views.HealthView.as_view(), name="health"),
    path("audit-logs/", views.AuditLogListView.as_view(), name="audit-logs"),
]
