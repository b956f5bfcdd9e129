# portalgen/repos/stores.py
import logging

from portalgen.config import IS_PROD, JOBS_COLLECTION, PORTALS_COLLECTION, STORE_BACKEND

logger = logging.getLogger(__name__)


def _build_store(collection: str):
    if STORE_BACKEND == "redis":
        from portalgen.repos.redis_repo import RedisRepo
        return RedisRepo(collection)

    if STORE_BACKEND == "firestore":
        from portalgen.repos.firestore_repo import FirestoreRepo
        repo = FirestoreRepo(collection)
        if repo.enabled():
            return repo
        if IS_PROD:
            raise RuntimeError(f"Firestore unavailable for collection '{collection}'")
        logger.warning("Firestore unavailable, using in-memory store for '%s'", collection)

    from portalgen.repos.memory_repo import InMemoryRepo
    return InMemoryRepo(collection)


# -------------------------------------------------
# Factories
# -------------------------------------------------
def get_job_store():
    return _build_store(JOBS_COLLECTION)


def get_portal_store():
    return _build_store(PORTALS_COLLECTION)
