# ipd/management/commands/ensure_staff_users.py
import os

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from ipd.models import User

DEFAULT_ADMIN = {
    "username": "admin",
    "email": "admin@patient.com",
    "full_name": "System Administrator",
    "department": "Admin",
}


class Command(BaseCommand):
    help = "Ensure the default administrator account exists (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default=os.getenv("SEED_ADMIN_PASSWORD", "Admin@123"),
            help="Password for the admin account (default: $SEED_ADMIN_PASSWORD or Admin@123).",
        )
        parser.add_argument(
            "--reset-password",
            action="store_true",
            help="Overwrite the password of an existing admin account.",
        )

    def handle(self, *args, **opts):
        u, created = User.objects.get_or_create(
            username=DEFAULT_ADMIN["username"],
            defaults={
                "email": DEFAULT_ADMIN["email"],
                "full_name": DEFAULT_ADMIN["full_name"],
                "department": DEFAULT_ADMIN["department"],
                "role": "admin",
                "is_staff": True,
                "is_superuser": True,
                "is_active": True,
                "password": make_password(opts["password"]),
            },
        )
        if not created:
            # keep role and activation right on reruns
            u.role = "admin"
            u.is_active = True
            fields = ["role", "is_active"]
            if opts["reset_password"]:
                u.password = make_password(opts["password"])
                fields.append("password")
            u.save(update_fields=fields)
        state = "created" if created else "ok"
        self.stdout.write(self.style.SUCCESS(f"{state}: {u.username} ({u.role})"))
