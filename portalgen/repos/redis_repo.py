# portalgen/repos/redis_repo.py
import json
from typing import Dict, Optional

from portalgen.config import DOC_TTL_SECONDS, REDIS_PREFIX, REDIS_URL
from portalgen.repos.base import deep_merge, resolve_timestamps, utc_now


class RedisRepo:
    """
    Redis-backed document store.
    Documents are JSON blobs under {prefix}{collection}:{id}; the TTL is
    refreshed on every merge. Merge is read-modify-write and is not atomic
    across concurrent writers.
    """

    def __init__(self, collection: str, client=None):
        if client is None:
            import redis  # lazy import
            if not REDIS_URL:
                raise RuntimeError("REDIS_URL is required for the redis store backend")
            client = redis.from_url(REDIS_URL, decode_responses=True)

        self.collection = collection
        self.client = client

    def _key(self, doc_id: str) -> str:
        return f"{REDIS_PREFIX}{self.collection}:{doc_id}"

    def get(self, doc_id: str) -> Optional[Dict]:
        raw = self.client.get(self._key(doc_id))
        return json.loads(raw) if raw else None

    def merge(self, doc_id: str, patch: Dict):
        key = self._key(doc_id)
        raw = self.client.get(key)
        data = json.loads(raw) if raw else {}

        deep_merge(data, resolve_timestamps(patch, lambda: utc_now().isoformat()))

        # 🔄 Refresh TTL on update
        self.client.set(key, json.dumps(data, default=str), ex=DOC_TTL_SECONDS)
