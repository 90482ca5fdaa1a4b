from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    RegisterView, LoginView, ProfileView, AccountStatsView, AccountDeactivateView,
)

urlpatterns = [
    path("register/",                         RegisterView.as_view(),          name="auth-register"),
    path("login/",                            LoginView.as_view(),             name="auth-login"),
    path("refresh/",                          TokenRefreshView.as_view(),      name="auth-refresh"),
    path("me/",                               ProfileView.as_view(),           name="auth-me"),
    path("stats/",                            AccountStatsView.as_view(),      name="auth-stats"),
    path("accounts/<uuid:account_id>/deactivate/", AccountDeactivateView.as_view(), name="auth-deactivate"),
]
