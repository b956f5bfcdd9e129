# portalgen/services/portal_stages.py
"""
Units of work behind the portal generation steps.

Template design, embeddings, vector storage and deployment are external
services. With SIMULATE_EXTERNAL they are replaced by deterministic local
results so the pipeline can run without credentials.
"""
import json
import logging
import time
from typing import Dict, List, Optional

from portalgen.config import SIMULATE_EXTERNAL, SIMULATED_STEP_DELAY_MS
from portalgen.repos.base import SERVER_TIMESTAMP
from portalgen.schemas.job import CVContent
from portalgen.schemas.portal import PortalConfigOverrides, PortalUrls
from portalgen.services.embeddings import chunk_cv

logger = logging.getLogger(__name__)


# -------------------------
# Templates
# -------------------------
DEFAULT_TEMPLATES: Dict[str, Dict] = {
    "corporate-professional": {
        "id": "corporate-professional",
        "name": "Corporate Professional",
        "theme": "professional",
        "sections": ["hero", "about", "experience", "skills", "contact", "chat"],
    },
    "creative-portfolio": {
        "id": "creative-portfolio",
        "name": "Creative Portfolio",
        "theme": "creative",
        "sections": ["hero", "about", "portfolio", "skills", "contact", "chat"],
    },
    "technical-expert": {
        "id": "technical-expert",
        "name": "Technical Expert",
        "theme": "minimal",
        "sections": ["hero", "about", "experience", "skills", "projects", "contact", "chat"],
    },
}

TECH_KEYWORDS = ("javascript", "typescript", "python", "react", "node", "java", "go", "rust")


def select_template(cv: CVContent, template_id: Optional[str] = None) -> Dict:
    if template_id:
        if template_id not in DEFAULT_TEMPLATES:
            raise ValueError(f"Unknown portal template: {template_id}")
        return dict(DEFAULT_TEMPLATES[template_id])

    has_portfolio = bool(cv.projects) or "portfolio" in cv.customSections
    has_tech = any(k in skill.lower() for skill in cv.skills for k in TECH_KEYWORDS)

    if has_portfolio and has_tech:
        return dict(DEFAULT_TEMPLATES["technical-expert"])
    if has_portfolio:
        return dict(DEFAULT_TEMPLATES["creative-portfolio"])
    return dict(DEFAULT_TEMPLATES["corporate-professional"])


class PortalStages:
    """
    Default stage services. The orchestrator only relies on the method
    names and return shapes, so tests swap in their own implementation.
    """

    def __init__(self, jobs, simulate: bool = SIMULATE_EXTERNAL, delay_ms: int = SIMULATED_STEP_DELAY_MS):
        self.jobs = jobs
        self.simulate = simulate
        self.delay_ms = delay_ms

    def _simulated(self, what: str):
        logger.debug("Simulating %s", what)
        if self.delay_ms:
            time.sleep(self.delay_ms / 1000)

    # -------------------------
    # GENERATE_TEMPLATE
    # -------------------------
    def generate_template(self, cv: CVContent, overrides: PortalConfigOverrides) -> Dict:
        template = select_template(cv, overrides.templateId)
        if "theme" in overrides.model_fields_set:
            template["theme"] = overrides.theme
        template["features"] = list(overrides.features)
        return template

    # -------------------------
    # CUSTOMIZE_DESIGN
    # -------------------------
    def customize_design(self, cv: CVContent, template: Dict, overrides: PortalConfigOverrides) -> Dict:
        if self.simulate:
            self._simulated("design customization")
            customization = {"theme": {}, "config": {}, "content": {}}
        else:
            from portalgen.services.template_designer import design_customization
            customization = design_customization(cv, template, template["theme"])

        # Caller supplied customization always wins
        customization["config"] = {**customization["config"], **overrides.customization}
        return {**template, "customization": customization}

    # -------------------------
    # CREATE_EMBEDDINGS
    # -------------------------
    def create_embeddings(self, cv: CVContent) -> List[Dict]:
        chunks = chunk_cv(cv)
        if not chunks:
            return []

        if self.simulate:
            self._simulated("embedding generation")
            return [{**c, "values": None} for c in chunks]

        from portalgen.services.embeddings import embed_chunks
        return embed_chunks(chunks)

    # -------------------------
    # SETUP_VECTOR_DB
    # -------------------------
    def setup_vector_db(self, *, portal_id: str, user_id: str, embeddings: List[Dict]) -> int:
        if self.simulate:
            self._simulated("vector database upsert")
            return len(embeddings)

        from portalgen.repos.pinecone_repo import PineconeRepo
        from portalgen.services.embeddings import to_pinecone_vectors

        vectors = to_pinecone_vectors(embeddings, portal_id=portal_id, user_id=user_id)
        return PineconeRepo().upsert(namespace=portal_id, vectors=vectors)

    def discard_vectors(self, *, portal_id: str):
        """Drops the knowledge base of a run that did not complete."""
        if self.simulate:
            self._simulated("vector namespace cleanup")
            return

        from portalgen.repos.pinecone_repo import PineconeRepo
        PineconeRepo().delete_namespace(namespace=portal_id)

    # -------------------------
    # DEPLOY_TO_HUGGINGFACE
    # -------------------------
    def deployment_files(self, *, portal_id: str, cv: CVContent, design: Dict, embeddings: List[Dict]) -> List[Dict]:
        title = cv.name or "Professional"
        readme = (
            "---\n"
            f"title: {title} - Professional Portfolio\n"
            "sdk: gradio\n"
            "pinned: false\n"
            "---\n\n"
            f"# {title} - Interactive Professional Portfolio\n"
        )
        portal_config = {
            "portalId": portal_id,
            "template": design["id"],
            "theme": design["theme"],
            "features": design.get("features", []),
            "customization": design.get("customization", {}),
        }
        knowledge = [{"id": e["id"], "text": e["text"], "metadata": e["metadata"]} for e in embeddings]

        return [
            {"path": "README.md", "content": readme},
            {"path": "portal_config.json", "content": json.dumps(portal_config, indent=2)},
            {"path": "knowledge.json", "content": json.dumps(knowledge, indent=2)},
        ]

    def deploy(self, *, portal_id: str, slug: str, cv: CVContent, design: Dict, embeddings: List[Dict]) -> Dict:
        files = self.deployment_files(portal_id=portal_id, cv=cv, design=design, embeddings=embeddings)
        space_name = f"{slug}-cv-portal"

        if self.simulate:
            self._simulated("HuggingFace deployment")
            deployment = {"spaceId": f"simulated/{space_name}", "commit": ""}
        else:
            from portalgen.services.hf_deployer import deploy_space
            deployment = deploy_space(space_name, files, summary=f"Deploy portal {portal_id}")

        deployment["filesGenerated"] = len(files)
        deployment["totalSize"] = sum(len(f["content"].encode("utf-8")) for f in files)
        return deployment

    # -------------------------
    # UPDATE_CV_DOCUMENT
    # -------------------------
    def update_cv_document(self, job_id: str, urls: PortalUrls):
        self.jobs.merge(job_id, {
            "portalData": {
                "urls": urls.model_dump(),
                "lastUpdated": SERVER_TIMESTAMP,
            },
            "metadata": {
                "hasWebPortal": True,
                "portalUrl": urls.portal,
            },
        })

    # -------------------------
    # GENERATE_QR_CODES
    # -------------------------
    def generate_qr_codes(self, job_id: str, portal_id: str, urls: PortalUrls) -> List[Dict]:
        """
        Registers the QR entry points of the portal on the job.
        Image rendering happens in the QR service reading these records.
        """
        codes = [
            {
                "id": f"{portal_id}_qr_portal",
                "type": "portal",
                "data": urls.portal,
                "title": "Web Portal QR Code",
                "description": "Scan to view interactive professional portal",
                "tags": ["portal", "web", "interactive"],
            },
            {
                "id": f"{portal_id}_qr_chat",
                "type": "chat",
                "data": urls.chat,
                "title": "AI Chat QR Code",
                "description": "Scan to chat with AI about my professional background",
                "tags": ["chat", "ai", "interactive"],
            },
            {
                "id": f"{portal_id}_qr_menu",
                "type": "menu",
                "data": urls.qrMenu,
                "title": "Connect QR Code",
                "description": "Scan for all ways to connect",
                "tags": ["menu", "contact"],
            },
        ]

        self.jobs.merge(job_id, {
            "portalQrCodes": {code["type"]: code for code in codes},
        })
        return codes
