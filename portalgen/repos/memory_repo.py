# portalgen/repos/memory_repo.py
import copy
from typing import Dict, Optional

from portalgen.repos.base import deep_merge, resolve_timestamps, utc_now

# -------------------------------------------------
# In-memory fallback (LOCAL DEV / TESTS)
# -------------------------------------------------
_IN_MEMORY_DOCS: Dict[str, Dict[str, Dict]] = {}


class InMemoryRepo:
    """
    Process-local document store. Callers get copies, never the stored dict.
    Pass `docs` to isolate a store from the module-wide registry.
    """

    def __init__(self, collection: str, docs: Optional[Dict[str, Dict]] = None):
        self.collection = collection
        if docs is None:
            docs = _IN_MEMORY_DOCS.setdefault(collection, {})
        self._docs = docs

    def get(self, doc_id: str) -> Optional[Dict]:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def merge(self, doc_id: str, patch: Dict):
        current = self._docs.setdefault(doc_id, {})
        deep_merge(current, resolve_timestamps(patch, utc_now))

    def all(self) -> Dict[str, Dict]:
        return copy.deepcopy(self._docs)
