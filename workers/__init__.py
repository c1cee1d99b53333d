# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# Celery configuration and task definitions for outbound email and the
# scheduled maintenance jobs (ticket auto-close, monthly report snapshot).
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions
# - config.py: Queues, routes and the beat schedule
#
# Usage:
#   # Start worker (with embedded beat for scheduled jobs)
#   celery -A workers.celery_app worker -B --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import send_order_invoice_email
#   result = send_order_invoice_email.delay(order_id, customer_email)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
