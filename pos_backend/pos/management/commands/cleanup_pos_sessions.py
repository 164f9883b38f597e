from django.core.management.base import BaseCommand

from pos.services.reservations import cleanup_expired_reservations
from pos.services.session_handler import cleanup_expired_sessions


class Command(BaseCommand):
    help = "Delete expired POS sessions (with their carts) and expired stock reservations"

    def handle(self, *args, **options):
        sessions = cleanup_expired_sessions()
        reservations = cleanup_expired_reservations()

        self.stdout.write(
            self.style.SUCCESS(
                f"Removed {sessions} expired session(s) and {reservations} expired reservation(s)"
            )
        )
