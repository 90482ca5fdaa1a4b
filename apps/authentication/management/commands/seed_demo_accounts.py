"""
Management command: seed one account per role for local demos and load tests.

Usage:
    python manage.py seed_demo_accounts [--password secret123]
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

Account = get_user_model()
Role = Account.Role

ACCOUNTS = [
    ("admin@supplytrack.local",    "Control Tower",  Role.ADMIN,    "",                 "+250788000001"),
    ("supplier@supplytrack.local", "Kigali Foods",   Role.SUPPLIER, "Kigali Foods Ltd", "+250788000002"),
    ("driver@supplytrack.local",   "Jean Driver",    Role.DRIVER,   "",                 "+250788000003"),
    ("consumer@supplytrack.local", "Aline Consumer", Role.CONSUMER, "",                 "+250788000004"),
]


class Command(BaseCommand):
    help = "Seed one demo account per role (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument("--password", default="demo-pass-123")

    def handle(self, *args, **options):
        created_count = 0
        for email, name, role, company, phone in ACCOUNTS:
            if Account.objects.filter(email=email).exists():
                continue
            if role == Role.ADMIN:
                Account.objects.create_superuser(
                    email=email, password=options["password"], name=name, phone=phone,
                )
            else:
                Account.objects.create_user(
                    email=email, password=options["password"], name=name,
                    role=role, company_name=company, phone=phone,
                )
            created_count += 1

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {created_count} demo accounts ({len(ACCOUNTS) - created_count} already present)."
        ))
