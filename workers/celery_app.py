# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# Builds the "spraxe_worker" Celery app. Broker and result backend are both
# the Redis instance from settings.REDIS_URL; queues, routes and the beat
# schedule live in workers/config.py.
#
# Usage:
#   celery -A workers.celery_app worker -B -Q default,email --loglevel=info
#   celery -A workers.celery_app inspect active
# =============================================================================

import logging
import time

from dotenv import load_dotenv

load_dotenv()

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, task_retry, worker_ready

from app.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# task id -> monotonic start time, for duration logging
_started: dict[str, float] = {}


def _redacted(url: str) -> str:
    """Broker URL without credentials."""
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    """
    Create the Celery app for email delivery and scheduled maintenance.

    Returns:
        Configured Celery app instance
    """
    app = Celery("spraxe_worker", include=["workers.tasks"])
    app.config_from_object("workers.config:CeleryConfig")
    logger.info(f"Celery broker: {_redacted(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


@celery_app.task(name="workers.healthcheck")
def healthcheck() -> str:
    return "OK"


# =============================================================================
# Signals
# =============================================================================

@worker_ready.connect
def on_worker_ready(sender=None, **extra):
    logger.info(f"Spraxe worker ready on {_redacted(settings.REDIS_URL)}")


@task_prerun.connect
def on_task_prerun(sender=None, task_id=None, task=None, **extra):
    _started[task_id] = time.monotonic()
    logger.info(f"{task.name} started [{task_id}]")


@task_postrun.connect
def on_task_postrun(sender=None, task_id=None, task=None, state=None, **extra):
    began = _started.pop(task_id, None)
    took = f" in {time.monotonic() - began:.2f}s" if began is not None else ""
    logger.info(f"{task.name} {state}{took} [{task_id}]")


@task_retry.connect
def on_task_retry(sender=None, request=None, reason=None, **extra):
    logger.warning(f"{sender.name} will retry [{request.id if request else '?'}]: {reason}")


@task_failure.connect
def on_task_failure(sender=None, task_id=None, exception=None, **extra):
    logger.error(f"{sender.name} failed [{task_id}]: {exception}")
