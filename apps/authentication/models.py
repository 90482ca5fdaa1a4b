"""
Authentication models.
Account is the custom User. It covers Supplier, Driver, Consumer, Admin roles.
"""

import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager


class AccountManager(BaseUserManager):
    def create_user(self, email, password=None, **extra):
        if not email:
            raise ValueError("Email is required.")
        account = self.model(email=self.normalize_email(email), **extra)
        account.set_password(password)
        account.save(using=self._db)
        return account

    def create_superuser(self, email, password, **extra):
        extra.setdefault("is_staff", True)
        extra.setdefault("is_superuser", True)
        extra.setdefault("role", Account.Role.ADMIN)
        return self.create_user(email, password, **extra)


class Account(AbstractBaseUser, PermissionsMixin):
    """Every human actor in the supply chain. The role is fixed at creation."""

    class Role(models.TextChoices):
        SUPPLIER = "SUPPLIER", "Supplier"
        DRIVER   = "DRIVER",   "Driver"
        CONSUMER = "CONSUMER", "Consumer"
        ADMIN    = "ADMIN",    "Admin"

    id            = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email         = models.EmailField(unique=True)
    name          = models.CharField(max_length=120)
    role          = models.CharField(max_length=10, choices=Role.choices)
    phone         = models.CharField(max_length=20, blank=True)
    address       = models.CharField(max_length=255, blank=True)
    company_name  = models.CharField(max_length=120, blank=True)
    is_active     = models.BooleanField(default=True)
    is_staff      = models.BooleanField(default=False)
    created_at    = models.DateTimeField(auto_now_add=True)
    updated_at    = models.DateTimeField(auto_now=True)

    USERNAME_FIELD  = "email"
    REQUIRED_FIELDS = ["name"]

    objects = AccountManager()

    class Meta:
        verbose_name = "Account"
        indexes = [models.Index(fields=["role", "is_active"], name="account_role_active_idx")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(role__in=["SUPPLIER", "DRIVER", "CONSUMER", "ADMIN"]),
                name="account_role_valid",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.role})"

    @classmethod
    def from_db(cls, db, field_names, values):
        account = super().from_db(db, field_names, values)
        if "role" in field_names:
            account._stored_role = account.role
        return account

    def save(self, *args, **kwargs):
        stored = getattr(self, "_stored_role", None)
        if stored is not None and stored != self.role:
            raise ValueError("An account's role cannot change after creation.")
        super().save(*args, **kwargs)
        self._stored_role = self.role

    @property
    def display_name(self):
        """Name-level label safe to show to the public."""
        return self.company_name or self.name
