"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/register/        - Create an account (POST)
    /api/v1/auth/token/           - Obtain access/refresh pair (POST)
    /api/v1/auth/token/refresh/   - Refresh access token (POST)
    /api/v1/auth/me/              - Current user (GET/PATCH)
    /api/v1/auth/users/           - Search users (GET)

Access tokens are accepted both as "Authorization: Bearer <token>" on REST
calls and as ?token=<token> on the realtime websocket.
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from authentication.views import MeView, RegisterView, UserSearchView

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),
    path("users/", UserSearchView.as_view(), name="user-search"),
]
