from fastapi import APIRouter, Header, HTTPException, Response
from typing import Optional

from portalgen.config import API_PREFIX, USE_CELERY
from portalgen.repos.stores import get_job_store, get_portal_store
from portalgen.schemas.portal import GeneratePortalRequest
from portalgen.services.portal_pipeline import PortalPipeline
from portalgen.services.reconcile import reconcile_job
from portalgen.workers.portal_task import generate_portal_task

router = APIRouter(prefix=API_PREFIX)
jobs = get_job_store()
portals = get_portal_store()


def _require_user(user_id: Optional[str]) -> str:
    # Authentication itself happens upstream; we only need the identity
    if not user_id:
        raise HTTPException(status_code=401, detail="User authentication required")
    return user_id


# --------------------------------------------------
# Generate portal
# --------------------------------------------------
@router.post("/portals/generate")
def generate_portal(
    req: GeneratePortalRequest,
    response: Response,
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
):
    user_id = _require_user(x_user_id)

    if USE_CELERY:
        generate_portal_task.delay(
            jobId=req.jobId,
            userId=user_id,
            portalConfig=req.portalConfig,
            userName=x_user_name,
        )
        response.status_code = 202
        return {
            "jobId": req.jobId,
            "status": "queued",
        }

    result = PortalPipeline(jobs, portals).generate_portal(
        req.jobId,
        user_id,
        req.portalConfig,
        x_user_name,
    )
    return result.model_dump(mode="json", exclude_none=True)


# --------------------------------------------------
# Portal record
# --------------------------------------------------
@router.get("/portals/{portalId}")
def get_portal(portalId: str, x_user_id: Optional[str] = Header(None)):
    user_id = _require_user(x_user_id)
    data = portals.get(portalId)

    if not data or data.get("userId") != user_id:
        raise HTTPException(status_code=404, detail="Portal not found")

    return data


# --------------------------------------------------
# Job portal status (reconciled)
# --------------------------------------------------
@router.get("/jobs/{jobId}/portal")
def job_portal(jobId: str, x_user_id: Optional[str] = Header(None)):
    user_id = _require_user(x_user_id)
    job = jobs.get(jobId)

    if not job or job.get("userId") != user_id:
        raise HTTPException(status_code=404, detail="Job not found")

    projection = reconcile_job(jobId, jobs, portals)
    if projection is None:
        raise HTTPException(status_code=404, detail="No portal generated for this job")

    return {"jobId": jobId, **projection}
