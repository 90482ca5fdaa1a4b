"""Authentication: registration, login, profile, admin account management."""

import logging
from django.contrib.auth import get_user_model
from django.db.models import Count
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.views import APIView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework import serializers
from drf_spectacular.utils import extend_schema

from apps.authentication.gate import require_role
from supplytrack.errors import NotFound

logger = logging.getLogger("supplytrack.auth")

Account = get_user_model()

SELF_REGISTER_ROLES = [
    Account.Role.SUPPLIER, Account.Role.DRIVER, Account.Role.CONSUMER,
]


# ── Serializers ───────────────────────────────────────────────────────────────
class AccountRegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    role     = serializers.ChoiceField(choices=SELF_REGISTER_ROLES)

    class Meta:
        model  = Account
        fields = ["email", "name", "role", "phone", "address", "company_name", "password"]

    def create(self, validated_data):
        password = validated_data.pop("password")
        return Account.objects.create_user(password=password, **validated_data)


class AccountProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model  = Account
        fields = ["id", "email", "name", "role", "phone", "address",
                  "company_name", "is_active", "created_at"]
        read_only_fields = ["id", "email", "role", "is_active", "created_at"]


class LoginSerializer(TokenObtainPairSerializer):
    """Adds email/role claims and returns the profile alongside the tokens."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["email"] = user.email
        token["role"]  = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = AccountProfileSerializer(self.user).data
        return data


# ── Views ─────────────────────────────────────────────────────────────────────
@extend_schema(tags=["Auth"])
class RegisterView(generics.CreateAPIView):
    """POST /api/auth/register/: Create a new account (admins are provisioned, not registered)."""
    queryset           = Account.objects.all()
    serializer_class   = AccountRegisterSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        account = serializer.save()
        logger.info("Registered %s account %s", account.role, account.pk)
        return Response(
            {"message": "Account created. Please log in.", "id": str(account.id)},
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Auth"])
class LoginView(TokenObtainPairView):
    """POST /api/auth/login/: Exchange email + password for access/refresh tokens."""
    serializer_class = LoginSerializer


@extend_schema(tags=["Auth"])
class ProfileView(generics.RetrieveUpdateAPIView):
    """GET/PATCH /api/auth/me/: Retrieve or update own profile."""
    serializer_class   = AccountProfileSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user


@extend_schema(tags=["Auth"], summary="Active accounts grouped by role (Admin only)")
class AccountStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        require_role(request.user, [Account.Role.ADMIN])
        rows = (
            Account.objects.filter(is_active=True)
            .values("role").annotate(count=Count("id")).order_by("role")
        )
        return Response({"stats": list(rows)})


@extend_schema(tags=["Auth"], summary="Deactivate an account (Admin only)")
class AccountDeactivateView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, account_id):
        require_role(request.user, [Account.Role.ADMIN])
        updated = Account.objects.filter(pk=account_id, is_active=True).update(is_active=False)
        if not updated:
            raise NotFound("Account not found.")
        logger.info("Account %s deactivated by %s", account_id, request.user.pk)
        return Response({"id": str(account_id), "is_active": False})
