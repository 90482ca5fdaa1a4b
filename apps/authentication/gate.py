"""
Identity & Role Gate.

resolve_identity() turns a bearer credential into an active Account;
require_role() is called explicitly at the top of every core operation.
Roles are the closed Account.Role enum, so a typo'd role fails loudly here
instead of silently matching nobody.
"""

import logging

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from supplytrack.errors import AccountInactive, Forbidden, Unauthenticated

logger = logging.getLogger("supplytrack.auth")

Account = get_user_model()
Role = Account.Role


def _as_role(value):
    """Coerce to Role; unknown strings raise ValueError at the boundary."""
    return value if isinstance(value, Role) else Role(value)


def load_identity(account_id):
    try:
        account = Account.objects.get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError):
        raise Unauthenticated()
    if not account.is_active:
        logger.warning("Inactive account %s presented a credential", account_id)
        raise AccountInactive()
    return account


def resolve_token(raw_token):
    """Validate an access token and return (account, token)."""
    if not raw_token:
        raise Unauthenticated()
    try:
        token = AccessToken(raw_token)
    except TokenError as exc:
        logger.info("Rejected credential: %s", exc)
        raise Unauthenticated()
    account_id = token.get(api_settings.USER_ID_CLAIM)
    if account_id is None:
        raise Unauthenticated()
    return load_identity(account_id), token


def resolve_identity(raw_token):
    return resolve_token(raw_token)[0]


def require_role(identity, allowed_roles):
    allowed = {_as_role(r) for r in allowed_roles}
    if identity is None or not getattr(identity, "is_authenticated", False):
        raise Unauthenticated()
    if _as_role(identity.role) not in allowed:
        logger.warning(
            "Account %s (%s) denied; requires %s",
            identity.pk, identity.role, ", ".join(sorted(allowed)),
        )
        raise Forbidden(allowed)
    return identity


def has_role(identity, *roles):
    return _as_role(identity.role) in {_as_role(r) for r in roles}


class GateAuthentication(JWTAuthentication):
    """DRF authentication class backed by resolve_token()."""

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None
        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None
        return resolve_token(raw_token)
