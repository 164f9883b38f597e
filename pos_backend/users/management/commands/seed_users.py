# users/management/commands/seed_users.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from permissions.roles import ROLE_ADMIN, ROLE_CASHIER, ROLE_CUSTOMER, ROLE_MANAGER


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def is_staff(self) -> bool:
        return self.role != ROLE_CUSTOMER


SEED_USERS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "admin@example.com", "System", "Admin"),
    SeedUserSpec("Manager", ROLE_MANAGER, "manager@example.com", "Store", "Manager"),
    SeedUserSpec("Cashier", ROLE_CASHIER, "cashier@example.com", "Front", "Desk"),
    SeedUserSpec("Customer", ROLE_CUSTOMER, "walkin@example.com", "Walk-in", "Customer"),
]


class Command(BaseCommand):
    help = "Seed staff users (admin, manager, cashier) and a walk-in customer."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded staff users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset password for existing seeded users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if not password or len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        User = get_user_model()

        created_count = 0
        updated_count = 0

        for spec in SEED_USERS:
            user, created = User.objects.get_or_create(
                email=spec.email,
                defaults={
                    "role": spec.role,
                    "is_staff": spec.is_staff,
                    "is_superuser": spec.role == ROLE_ADMIN,
                    "is_active": True,
                    "first_name": spec.first_name,
                    "last_name": spec.last_name,
                    "username": spec.email.split("@")[0],
                },
            )

            dirty = False

            if user.role != spec.role:
                user.role = spec.role
                dirty = True

            if user.is_staff != spec.is_staff:
                user.is_staff = spec.is_staff
                dirty = True

            if spec.is_staff and (created or force_password):
                user.set_password(password)
                dirty = True
            elif created:
                user.set_unusable_password()
                dirty = True

            if dirty:
                user.save()
                if not created:
                    updated_count += 1

            if created:
                created_count += 1
                self.stdout.write(f"created: {spec.label} ({spec.role}) -> {spec.email}")
            else:
                self.stdout.write(f"exists:  {spec.label} ({spec.role}) -> {spec.email}")

        self.stdout.write(
            self.style.SUCCESS(f"Seed complete. Created: {created_count}, Updated: {updated_count}")
        )
