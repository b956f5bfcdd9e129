from celery import Celery

from portalgen.config import CELERY_QUEUE, PIPELINE_BUDGET_SECONDS, REDIS_URL, USE_CELERY

# -------------------------------------------------
# LOCAL MODE (NO REDIS, NO WORKER)
# Tasks run inline in the calling process
# -------------------------------------------------
if not USE_CELERY:
    celery = Celery("portalgen_local")

    celery.conf.update(
        task_always_eager=True,
        task_eager_propagates=True,
    )

# -------------------------------------------------
# PRODUCTION MODE (REDIS + WORKER)
# -------------------------------------------------
else:
    celery = Celery(
        "portalgen_worker",
        broker=REDIS_URL,
        backend=REDIS_URL,
    )

    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_default_queue=CELERY_QUEUE,
        task_routes={"generate_portal": {"queue": CELERY_QUEUE}},

        # One portal run per worker process at a time; a run that dies with
        # its worker is redelivered instead of lost
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Hard stop well past the pipeline budget so hung deployments free the worker
        task_time_limit=PIPELINE_BUDGET_SECONDS * 3,
        result_expires=60 * 60 * 24,
    )

# -------------------------------------------------
# FORCE task registration
# -------------------------------------------------
import portalgen.workers.portal_task  # noqa: F401
