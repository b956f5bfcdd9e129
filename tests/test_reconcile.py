import pytest

from portalgen.services.reconcile import job_projection, reconcile_job

pytestmark = pytest.mark.unit

URLS = {"portal": "https://ada-lovelace-cv-portal.hf.space"}


def test_projection_of_completed_portal():
    projection = job_projection({"id": "p1", "status": "COMPLETED", "urls": URLS})

    assert projection == {
        "portalId": "p1",
        "portalGenerationStatus": "completed",
        "portalUrls": URLS,
        "portalError": None,
    }


def test_projection_of_failed_portal():
    projection = job_projection({"id": "p1", "status": "FAILED", "error": {"message": "Try again"}})

    assert projection == {
        "portalId": "p1",
        "portalGenerationStatus": "failed",
        "portalError": "Try again",
        "portalUrls": None,
    }


@pytest.mark.parametrize("status", ["GENERATING", "BUILDING_RAG", "DEPLOYING"])
def test_projection_of_running_portal(status):
    assert job_projection({"id": "p1", "status": status}) == {
        "portalId": "p1",
        "portalGenerationStatus": "generating",
    }


def test_reconcile_repairs_stale_job(jobs, portals):
    portals.merge("p1", {"id": "p1", "status": "COMPLETED", "urls": URLS})
    jobs.merge("J1", {"userId": "U1", "portalId": "p1", "portalGenerationStatus": "generating"})

    projection = reconcile_job("J1", jobs, portals)

    assert projection["portalGenerationStatus"] == "completed"
    job = jobs.get("J1")
    assert job["portalGenerationStatus"] == "completed"
    assert job["portalUrls"] == URLS


def test_reconcile_is_idempotent(jobs, portals):
    portals.merge("p1", {"id": "p1", "status": "FAILED", "error": {"message": "Try again"}})
    jobs.merge("J1", {"userId": "U1", "portalId": "p1"})

    first = reconcile_job("J1", jobs, portals)
    writes = len(jobs.writes)
    second = reconcile_job("J1", jobs, portals)

    assert first == second
    assert len(jobs.writes) == writes


def test_reconcile_without_portal(jobs, portals):
    jobs.merge("J1", {"userId": "U1"})
    jobs.merge("J2", {"userId": "U1", "portalId": "missing"})

    assert reconcile_job("J1", jobs, portals) is None
    assert reconcile_job("J2", jobs, portals) is None
    assert reconcile_job("J3", jobs, portals) is None
