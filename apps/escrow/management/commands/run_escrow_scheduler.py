from __future__ import annotations

import signal
import threading

from django.core.management.base import BaseCommand  # type: ignore

from apps.escrow.scheduler import ReleaseScheduler


class Command(BaseCommand):
    help = "Runs the in-process escrow release scheduler until interrupted"

    def add_arguments(self, parser):  # type: ignore
        parser.add_argument("--interval", type=int, default=None, help="Seconds between release checks")

    def handle(self, *args, **options):  # type: ignore
        scheduler = ReleaseScheduler(interval_seconds=options["interval"])
        stopped = threading.Event()

        def _stop(signum, frame):
            stopped.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        released = scheduler.start(
            on_release=lambda booking_id, amount: self.stdout.write(f"Released {amount} for booking {booking_id}")
        )
        self.stdout.write(self.style.SUCCESS(f"Escrow scheduler running ({released} released on start)"))
        stopped.wait()
        scheduler.stop()
        self.stdout.write("Escrow scheduler stopped")
