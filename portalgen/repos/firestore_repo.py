# portalgen/repos/firestore_repo.py
import logging
from google.cloud import firestore
from google.auth.exceptions import DefaultCredentialsError
from typing import Optional, Dict

from portalgen.config import FIRESTORE_PROJECT
from portalgen.repos.base import resolve_timestamps

logger = logging.getLogger(__name__)


class FirestoreRepo:
    """
    One Firestore collection exposed as a document store:
    - get(id)           -> dict | None
    - merge(id, patch)  -> upsert with field-level merge
    """

    def __init__(self, collection: str, project: Optional[str] = None):
        self.collection = collection
        self._db = None

        project = project or FIRESTORE_PROJECT

        if not project:
            logger.info("Firestore disabled: FIRESTORE_PROJECT not set")
            return

        try:
            self._db = firestore.Client(project=project)
        except DefaultCredentialsError as e:
            logger.warning("Firestore disabled due to missing credentials: %s", e)
            self._db = None

    def enabled(self) -> bool:
        return self._db is not None

    def _doc(self, doc_id: str):
        return self._db.collection(self.collection).document(doc_id)

    # ---------------------------------------------------
    # Document-level
    # ---------------------------------------------------
    def get(self, doc_id: str) -> Optional[Dict]:
        if not self._db:
            return None

        doc = self._doc(doc_id).get()
        return doc.to_dict() if doc.exists else None

    def merge(self, doc_id: str, patch: Dict):
        if not self._db:
            return

        payload = resolve_timestamps(patch, lambda: firestore.SERVER_TIMESTAMP)
        self._doc(doc_id).set(payload, merge=True)
