"""
Accounts app URL configuration.

Included from the project ``urls.py`` as
``path('api/accounts/', include('accounts.urls'))``.

Endpoint Map
------------
    POST   /auth/login/            → LoginView
    POST   /auth/token/refresh/    → TokenRefreshView (SimpleJWT)
    GET    /me/                    → MeView
    GET    /users/                 → UserViewSet.list
    POST   /users/                 → UserViewSet.create
    DELETE /users/{id}/            → UserViewSet.destroy
    PATCH  /users/{id}/role/       → UserViewSet.role
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import LoginView, MeView, UserViewSet

app_name = "accounts"

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

urlpatterns = [
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),
    path("", include(router.urls)),
]
