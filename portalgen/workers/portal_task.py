import logging

from celery.signals import setup_logging

from portalgen.config import LOG_LEVEL
from portalgen.services.portal_pipeline import generate_portal
from portalgen.workers.celery import celery

logger = logging.getLogger(__name__)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# --------------------------------------------------
# Celery / Local Task Wrapper
# --------------------------------------------------
@celery.task(name="generate_portal")
def generate_portal_task(jobId, userId, portalConfig=None, userName=None):
    """
    Runs one pipeline invocation and returns the JSON result.
    The pipeline reports failures as data, so the task itself only
    fails on worker-level problems.
    """
    result = generate_portal(jobId, userId, portalConfig, userName)

    logger.info(
        "Task finished job=%s success=%s steps=%s",
        jobId, result.success, len(result.stepsCompleted),
    )
    return result.model_dump(mode="json", exclude_none=True)
