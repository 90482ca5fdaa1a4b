import uuid
from django.db import migrations, models

import apps.authentication.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("password",     models.CharField(max_length=128, verbose_name="password")),
                ("last_login",   models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False)),
                ("id",           models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("email",        models.EmailField(max_length=254, unique=True)),
                ("name",         models.CharField(max_length=120)),
                ("role",         models.CharField(
                    choices=[
                        ("SUPPLIER", "Supplier"),
                        ("DRIVER", "Driver"),
                        ("CONSUMER", "Consumer"),
                        ("ADMIN", "Admin"),
                    ],
                    max_length=10,
                )),
                ("phone",        models.CharField(blank=True, max_length=20)),
                ("address",      models.CharField(blank=True, max_length=255)),
                ("company_name", models.CharField(blank=True, max_length=120)),
                ("is_active",    models.BooleanField(default=True)),
                ("is_staff",     models.BooleanField(default=False)),
                ("created_at",   models.DateTimeField(auto_now_add=True)),
                ("updated_at",   models.DateTimeField(auto_now=True)),
                ("groups",       models.ManyToManyField(blank=True, related_name="user_set", related_query_name="user", to="auth.group")),
                ("user_permissions", models.ManyToManyField(blank=True, related_name="user_set", related_query_name="user", to="auth.permission")),
            ],
            options={"verbose_name": "Account"},
            managers=[("objects", apps.authentication.models.AccountManager())],
        ),
        migrations.AddIndex(
            model_name="account",
            index=models.Index(fields=["role", "is_active"], name="account_role_active_idx"),
        ),
        migrations.AddConstraint(
            model_name="account",
            constraint=models.CheckConstraint(
                condition=models.Q(role__in=["SUPPLIER", "DRIVER", "CONSUMER", "ADMIN"]),
                name="account_role_valid",
            ),
        ),
    ]
