import logging
from pinecone import Pinecone
from typing import List, Dict

from portalgen.config import PINECONE_API_KEY, PINECONE_HOST

logger = logging.getLogger(__name__)


class PineconeRepo:
    """
    Pinecone repository for portal knowledge bases.
    - Namespace is the portalId: every generation run gets a fresh one
    - Chunk text is stored in metadata next to the vector
    """

    def __init__(self):
        if not PINECONE_API_KEY or not PINECONE_HOST:
            raise RuntimeError("PINECONE_API_KEY or PINECONE_HOST not set")

        self.pc = Pinecone(api_key=PINECONE_API_KEY)
        self.index = self.pc.Index(host=PINECONE_HOST)

    # --------------------------------------------------
    # Upsert (portal namespace)
    # --------------------------------------------------
    def upsert(
        self,
        *,
        namespace: str,
        vectors: List[Dict],
        batch_size: int = 100,
    ) -> int:
        if not vectors:
            return 0

        for start in range(0, len(vectors), batch_size):
            self.index.upsert(
                vectors=vectors[start:start + batch_size],
                namespace=namespace,
            )

        logger.info("📦 Upserted %s vectors into namespace %s", len(vectors), namespace)
        return len(vectors)

    # --------------------------------------------------
    # Delete a whole portal namespace
    # --------------------------------------------------
    def delete_namespace(self, *, namespace: str):
        self.index.delete(
            delete_all=True,
            namespace=namespace,
        )
        logger.info("🗑️  Deleted namespace %s", namespace)
