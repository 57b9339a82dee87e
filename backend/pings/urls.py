"""
Pings app URL configuration.

Included from the project ``urls.py`` as ``path('api/', include('pings.urls'))``.

Route Hierarchy
---------------
  /api/pings/                          → list / create
  /api/pings/{id}/                     → retrieve / update / partial_update / destroy

  ── Public @actions ─────────────────────────────────────────────
  POST /api/pings/{id}/claim/
  POST /api/pings/{id}/proximity-check/

  ── Admin @actions ──────────────────────────────────────────────
  POST /api/pings/{id}/approve/
  GET  /api/pings/{id}/key/
  POST /api/pings/{id}/fund/
  GET  /api/pings/claims/
  GET  /api/pings/claimed/
"""

from rest_framework.routers import DefaultRouter

from .views import PingViewSet

router = DefaultRouter()
router.register(
    prefix=r"pings",
    viewset=PingViewSet,
    basename="ping",
)

urlpatterns = router.urls
