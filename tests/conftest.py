"""
Pytest configuration: in-memory stores, simulated stage services and a
deterministic clock for the portal pipeline.
"""

import os

# Local, credential-free defaults before any portalgen import
os.environ["ENV"] = "local"
os.environ["USE_CELERY"] = "false"
os.environ["STORE_BACKEND"] = "memory"
os.environ["SIMULATE_EXTERNAL"] = "true"
os.environ["SIMULATED_STEP_DELAY_MS"] = "0"

import pytest

from portalgen.repos.memory_repo import InMemoryRepo
from portalgen.services.portal_pipeline import PortalPipeline
from portalgen.services.portal_stages import PortalStages


class FakeClock:
    """Epoch milliseconds advancing by `step` on every read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 5):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


class RecordingRepo(InMemoryRepo):
    """In-memory store that also keeps every merge call in order."""

    def __init__(self, collection: str):
        super().__init__(collection, docs={})
        self.writes = []

    def merge(self, doc_id, patch):
        self.writes.append((doc_id, patch))
        super().merge(doc_id, patch)


# ==================== Stores ====================

@pytest.fixture
def jobs():
    return RecordingRepo("jobs")


@pytest.fixture
def portals():
    return RecordingRepo("portals")


# ==================== Pipeline ====================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stages(jobs):
    return PortalStages(jobs, simulate=True, delay_ms=0)


@pytest.fixture
def pipeline(jobs, portals, stages, clock):
    return PortalPipeline(jobs, portals, stages, now_ms=clock)


# ==================== Test data ====================

ADA_CV = {
    "personalInfo": {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "title": "Analyst",
    },
    "summary": "Mathematician and first computer programmer.",
    "skills": {"technical": ["Python", "Mathematics"], "soft": ["Writing"]},
    "experience": [
        {
            "company": "Analytical Engine",
            "position": "Programmer",
            "duration": "1842-1843",
            "description": "Wrote the first published algorithm.",
            "achievements": ["Note G"],
        }
    ],
    "projects": [{"name": "Bernoulli numbers", "technologies": ["Analytical Engine"]}],
}


@pytest.fixture
def ada_job(jobs):
    jobs.merge("J1", {
        "id": "J1",
        "userId": "U1",
        "status": "completed",
        "parsedData": ADA_CV,
    })
    jobs.writes.clear()
    return "J1"


def make_job(jobs, job_id, *, user_id="U1", status="completed", parsed_data=None, **extra):
    jobs.merge(job_id, {
        "id": job_id,
        "userId": user_id,
        "status": status,
        "parsedData": ADA_CV if parsed_data is None else parsed_data,
        **extra,
    })
    return job_id
