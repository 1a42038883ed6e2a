import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("spaceshare")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Pay hosts whose escrow release date has passed - every minute
    "release-due-escrow": {
        "task": "escrow.release_due_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Cancel pending bookings the host did not answer - every 5 minutes
    "auto-cancel-unanswered-bookings": {
        "task": "bookings.auto_cancel_unanswered_bookings",
        "schedule": 300.0,
        "options": {"expires": 240},
    },
    # Complete confirmed bookings after check-out - hourly
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": crontab(minute=15),
    },
}

app.conf.timezone = os.environ.get("DJANGO_TIME_ZONE", "Africa/Lagos")
