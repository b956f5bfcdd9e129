# portalgen/services/reconcile.py
"""
Job <-> Portal consistency.

The portal document is the source of truth for a generation run. The job
carries a cached projection of it (status, urls, error) which can always be
rebuilt from the portal with reconcile_job().
"""
import logging
from typing import Any, Dict, Optional

from portalgen.repos.base import SERVER_TIMESTAMP
from portalgen.schemas.job import PortalGenerationStatus
from portalgen.schemas.portal import PortalStatus

logger = logging.getLogger(__name__)


def job_projection(portal: Dict[str, Any]) -> Dict[str, Any]:
    status = portal.get("status")
    projection: Dict[str, Any] = {"portalId": portal["id"]}

    if status == PortalStatus.COMPLETED.value:
        projection["portalGenerationStatus"] = PortalGenerationStatus.COMPLETED.value
        projection["portalUrls"] = portal.get("urls")
        projection["portalError"] = None
    elif status == PortalStatus.FAILED.value:
        error = portal.get("error") or {}
        projection["portalGenerationStatus"] = PortalGenerationStatus.FAILED.value
        projection["portalError"] = error.get("message")
        projection["portalUrls"] = None
    else:
        projection["portalGenerationStatus"] = PortalGenerationStatus.GENERATING.value

    return projection


def reconcile_job(job_id: str, jobs, portals) -> Optional[Dict[str, Any]]:
    """
    Re-projects the job's active portal onto the job document.
    Writes only when the cached fields differ; returns the projection,
    or None when the job has no portal to project.
    """
    job = jobs.get(job_id)
    if not job or not job.get("portalId"):
        return None

    portal = portals.get(job["portalId"])
    if not portal:
        logger.warning("Job %s references missing portal %s", job_id, job["portalId"])
        return None

    projection = job_projection({**portal, "id": job["portalId"]})

    if any(job.get(k) != v for k, v in projection.items()):
        logger.info("Reconciling job %s with portal %s", job_id, job["portalId"])
        jobs.merge(job_id, {**projection, "updatedAt": SERVER_TIMESTAMP})

    return projection
