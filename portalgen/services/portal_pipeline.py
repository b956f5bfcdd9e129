# portalgen/services/portal_pipeline.py
"""
Portal generation pipeline.

Drives one CV job through the fixed step sequence, persists progress on the
portal document before every step, and always ends with both the portal and
the job in the same terminal state. generate_portal() never raises: every
fault is classified and returned as a failure result.
"""
import logging
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from portalgen.config import PIPELINE_BUDGET_SECONDS, PORTAL_GENERATOR_VERSION
from portalgen.errors import (
    InvalidCVDataError,
    InvalidStateError,
    JobNotFoundError,
    MissingParameterError,
    UnauthorizedError,
)
from portalgen.repos.base import SERVER_TIMESTAMP, utc_now
from portalgen.schemas.job import CVContent, PortalGenerationStatus, READY_JOB_STATUSES
from portalgen.schemas.portal import (
    GenerationMetadata,
    GenerationStatistics,
    PortalConfigOverrides,
    PortalError,
    PortalErrorContext,
    PortalGenerationResult,
    PortalGenerationStep as Step,
    PortalRecord,
    PortalStatus,
    PortalUrls,
    STEP_SEQUENCE,
)
from portalgen.services.cv_extractor import extract_cv_content
from portalgen.services.error_classifier import classify_error, fault_message
from portalgen.services.portal_stages import PortalStages
from portalgen.services.portal_state import PortalRun, is_terminal
from portalgen.services.portal_urls import (
    FALLBACK_NAME,
    FALLBACK_SLUG,
    build_portal_urls,
    resolve_display_name,
    slugify,
)
from portalgen.services.reconcile import job_projection

logger = logging.getLogger(__name__)

BASE_FEATURES = ["rag", "huggingface", "qr-codes"]


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class GenerationContext:
    job_id: str
    user_id: str
    job: Dict[str, Any]
    raw_config: Optional[Dict[str, Any]] = None
    caller_name: Optional[str] = None
    portal_id: Optional[str] = None

    overrides: Optional[PortalConfigOverrides] = None
    cv: Optional[CVContent] = None
    display_name: str = FALLBACK_NAME
    slug: str = FALLBACK_SLUG
    template: Optional[Dict] = None
    design: Optional[Dict] = None
    embeddings: List[Dict] = field(default_factory=list)
    vector_count: int = 0
    deployment: Dict[str, Any] = field(default_factory=dict)
    urls: Optional[PortalUrls] = None
    qr_codes: List[Dict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PortalPipeline:
    def __init__(
        self,
        jobs=None,
        portals=None,
        stages=None,
        now_ms: Callable[[], int] = epoch_ms,
        budget_seconds: int = PIPELINE_BUDGET_SECONDS,
    ):
        if jobs is None or portals is None:
            from portalgen.repos.stores import get_job_store, get_portal_store
            jobs = jobs if jobs is not None else get_job_store()
            portals = portals if portals is not None else get_portal_store()

        self.jobs = jobs
        self.portals = portals
        self.stages = stages if stages is not None else PortalStages(jobs)
        self.now_ms = now_ms
        self.budget_ms = budget_seconds * 1000

        self._handlers = {
            Step.VALIDATE_INPUT: self._validate_input,
            Step.EXTRACT_CV_DATA: self._extract_cv_data,
            Step.GENERATE_TEMPLATE: self._generate_template,
            Step.CUSTOMIZE_DESIGN: self._customize_design,
            Step.CREATE_EMBEDDINGS: self._create_embeddings,
            Step.SETUP_VECTOR_DB: self._setup_vector_db,
            Step.DEPLOY_TO_HUGGINGFACE: self._deploy,
            Step.CONFIGURE_URLS: self._configure_urls,
            Step.UPDATE_CV_DOCUMENT: self._update_cv_document,
            Step.GENERATE_QR_CODES: self._generate_qr_codes,
            Step.FINALIZE_PORTAL: self._finalize_portal,
        }

    # ==================================================
    # Entry point
    # ==================================================
    def generate_portal(
        self,
        job_id: Optional[str],
        caller_user_id: str,
        portal_config: Optional[Dict[str, Any]] = None,
        caller_name: Optional[str] = None,
    ) -> PortalGenerationResult:
        started = self.now_ms()
        job: Optional[Dict[str, Any]] = None
        run: Optional[PortalRun] = None

        logger.info("🚀 Portal generation started job=%s user=%s", job_id or "MISSING", caller_user_id)

        try:
            job = self._load_job(job_id)
            self._check_preconditions(job_id, job, caller_user_id)

            ctx = GenerationContext(
                job_id=job_id,
                user_id=caller_user_id,
                job=job,
                raw_config=portal_config,
                caller_name=caller_name,
            )
            run = self._allocate_portal(ctx)

            for step in STEP_SEQUENCE:
                self._run_step(run, step, ctx)

            return self._complete(run, ctx, started)

        except Exception as exc:
            return self._fail(exc, job_id, caller_user_id, job, run, started)

    # ==================================================
    # Preconditions
    # ==================================================
    def _load_job(self, job_id: Optional[str]) -> Dict[str, Any]:
        if not job_id:
            raise MissingParameterError("jobId")

        job = self.jobs.get(job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    def _check_preconditions(self, job_id: str, job: Dict[str, Any], caller_user_id: str):
        if job.get("userId") != caller_user_id:
            raise UnauthorizedError()

        if job.get("status") not in READY_JOB_STATUSES:
            raise InvalidStateError(job_id, job.get("status"))

        if not job.get("parsedData"):
            raise InvalidCVDataError(f"Job {job_id} has no parsed CV data")

    def _allocate_portal(self, ctx: GenerationContext) -> PortalRun:
        portal_id = f"portal_{ctx.job_id}_{self.now_ms()}"
        ctx.portal_id = portal_id

        self.portals.merge(portal_id, {
            "id": portal_id,
            "jobId": ctx.job_id,
            "userId": ctx.user_id,
            "status": PortalStatus.GENERATING.value,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
        })
        self.jobs.merge(ctx.job_id, {
            "portalGenerationStatus": PortalGenerationStatus.GENERATING.value,
            "portalId": portal_id,
            "updatedAt": SERVER_TIMESTAMP,
        })

        logger.info("📌 Portal %s allocated for job %s", portal_id, ctx.job_id)
        return PortalRun(portal_id)

    # ==================================================
    # Steps
    # ==================================================
    def _run_step(self, run: PortalRun, step: Step, ctx: GenerationContext):
        status = run.begin(step)

        # Progress is persisted before the work starts
        self.portals.merge(run.portal_id, {
            "status": status.value,
            "currentStep": step.value,
            "updatedAt": SERVER_TIMESTAMP,
        })

        logger.info("▶️  %s [%s] %s", run.portal_id, status.value, step.value)
        self._handlers[step](ctx)
        run.finish(step)

    def _validate_input(self, ctx: GenerationContext):
        try:
            ctx.overrides = PortalConfigOverrides.model_validate(ctx.raw_config or {})
        except ValidationError as e:
            raise InvalidCVDataError(f"Portal configuration validation failed: {e}") from e

    def _extract_cv_data(self, ctx: GenerationContext):
        parsed = ctx.job["parsedData"]
        ctx.cv = extract_cv_content(parsed, warnings=ctx.warnings)
        ctx.display_name = resolve_display_name(parsed, ctx.caller_name)
        ctx.slug = slugify(ctx.display_name)

        if ctx.display_name == FALLBACK_NAME:
            ctx.warnings.append(
                "No name found on the CV or the user profile; portal URL uses the fallback slug 'user'"
            )
        elif ctx.slug == FALLBACK_SLUG:
            ctx.warnings.append(
                f"Name '{ctx.display_name}' has no URL-safe characters; portal URL uses the fallback slug 'user'"
            )
        elif not ctx.cv.name:
            ctx.warnings.append("CV has no personal name; portal URL uses the profile name")

    def _generate_template(self, ctx: GenerationContext):
        try:
            ctx.template = self.stages.generate_template(ctx.cv, ctx.overrides)
        except ValueError as e:
            raise InvalidCVDataError(f"Portal template validation failed: {e}") from e

    def _customize_design(self, ctx: GenerationContext):
        ctx.design = self.stages.customize_design(ctx.cv, ctx.template, ctx.overrides)

    def _create_embeddings(self, ctx: GenerationContext):
        ctx.embeddings = self.stages.create_embeddings(ctx.cv)
        if not ctx.embeddings:
            ctx.warnings.append("CV has no content for the AI chat knowledge base; the portal chat starts empty")
        logger.info("🧠 %s embeddings created for %s", len(ctx.embeddings), ctx.portal_id)

    def _setup_vector_db(self, ctx: GenerationContext):
        ctx.vector_count = self.stages.setup_vector_db(
            portal_id=ctx.portal_id,
            user_id=ctx.user_id,
            embeddings=ctx.embeddings,
        )

    def _deploy(self, ctx: GenerationContext):
        ctx.deployment = self.stages.deploy(
            portal_id=ctx.portal_id,
            slug=ctx.slug,
            cv=ctx.cv,
            design=ctx.design,
            embeddings=ctx.embeddings,
        )
        logger.info("🌐 %s deployed as %s", ctx.portal_id, ctx.deployment.get("spaceId"))

    def _configure_urls(self, ctx: GenerationContext):
        ctx.urls = build_portal_urls(ctx.display_name)

    def _update_cv_document(self, ctx: GenerationContext):
        self.stages.update_cv_document(ctx.job_id, ctx.urls)

    def _generate_qr_codes(self, ctx: GenerationContext):
        ctx.qr_codes = self.stages.generate_qr_codes(ctx.job_id, ctx.portal_id, ctx.urls)

    def _finalize_portal(self, ctx: GenerationContext):
        self.portals.merge(ctx.portal_id, {
            "template": ctx.design.get("id"),
            "theme": ctx.design.get("theme"),
            "features": self._features(ctx),
            "deployment": {
                "spaceId": ctx.deployment.get("spaceId"),
                "commit": ctx.deployment.get("commit"),
            },
            "vectorCount": ctx.vector_count,
            "qrCodes": [code["id"] for code in ctx.qr_codes],
            "updatedAt": SERVER_TIMESTAMP,
        })

    @staticmethod
    def _features(ctx: GenerationContext) -> List[str]:
        features = list(ctx.design.get("features", [])) if ctx.design else []
        return features + [f for f in BASE_FEATURES if f not in features]

    # ==================================================
    # Terminal writes
    # ==================================================
    def _complete(self, run: PortalRun, ctx: GenerationContext, started: int) -> PortalGenerationResult:
        status = run.complete()

        final_portal = {
            "id": run.portal_id,
            "jobId": ctx.job_id,
            "userId": ctx.user_id,
            "status": status.value,
            "currentStep": None,
            "urls": ctx.urls.model_dump(),
            "updatedAt": SERVER_TIMESTAMP,
        }
        self.portals.merge(run.portal_id, final_portal)
        self.jobs.merge(ctx.job_id, {**job_projection(final_portal), "updatedAt": SERVER_TIMESTAMP})

        processing_ms = self.now_ms() - started
        if processing_ms > self.budget_ms:
            ctx.warnings.append(
                f"Portal generation took {processing_ms} ms, over the {self.budget_ms} ms budget"
            )

        logger.info("🎉 Portal %s completed in %s ms", run.portal_id, processing_ms)

        return PortalGenerationResult(
            success=True,
            portalConfig=self._read_portal(run.portal_id, final_portal),
            urls=ctx.urls,
            metadata=GenerationMetadata(
                version=PORTAL_GENERATOR_VERSION,
                timestamp=utc_now(),
                cvAnalysis={
                    "name": ctx.cv.name,
                    "skills": len(ctx.cv.skills),
                    "experience": len(ctx.cv.experience),
                    "projects": len(ctx.cv.projects),
                },
                templateUsed=ctx.design.get("id", "default"),
                featuresEnabled=self._features(ctx),
                filesGenerated=ctx.deployment.get("filesGenerated", 0),
                totalSize=ctx.deployment.get("totalSize", 0),
                statistics=GenerationStatistics(
                    totalTimeMs=processing_ms,
                    stepTimes=dict(run.step_times_ms),
                    embeddingsGenerated=len(ctx.embeddings),
                ),
            ),
            processingTimeMs=processing_ms,
            stepsCompleted=list(run.steps_completed),
            warnings=ctx.warnings or None,
        )

    def _fail(
        self,
        exc: Exception,
        job_id: Optional[str],
        caller_user_id: str,
        job: Optional[Dict[str, Any]],
        run: Optional[PortalRun],
        started: int,
    ) -> PortalGenerationResult:
        processing_ms = self.now_ms() - started
        steps_completed = list(run.steps_completed) if run else []
        classified = classify_error(exc)

        logger.error(
            "❌ Portal generation failed job=%s code=%s step=%s: %s",
            job_id, classified.code.value,
            run.current_step.value if run and run.current_step else None,
            exc,
        )

        error = PortalError(
            code=classified.code,
            message=classified.user_message,
            details=fault_message(exc),
            context=PortalErrorContext(stepsCompleted=steps_completed, processingTimeMs=processing_ms),
            timestamp=utc_now(),
            recoverable=classified.recoverable,
            category=classified.category,
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )

        portal_config = None
        if job_id:
            try:
                portal_config = self._persist_failure(error, job_id, caller_user_id, job, run)
            except Exception:
                # Result is still returned; reconcile_job() repairs the job later
                logger.exception("Failed to persist failure state for job %s", job_id)

        failed_after_upsert = (
            run is not None
            and run.status != PortalStatus.COMPLETED
            and Step.SETUP_VECTOR_DB in run.steps_completed
        )
        if failed_after_upsert:
            self._discard_vectors(run.portal_id)

        return PortalGenerationResult(
            success=False,
            portalConfig=portal_config,
            error=error,
            metadata=GenerationMetadata(
                version=PORTAL_GENERATOR_VERSION,
                timestamp=utc_now(),
                statistics=GenerationStatistics(
                    totalTimeMs=processing_ms,
                    stepTimes=dict(run.step_times_ms) if run else {},
                ),
            ),
            processingTimeMs=processing_ms,
            stepsCompleted=steps_completed,
        )

    def _persist_failure(
        self,
        error: PortalError,
        job_id: str,
        caller_user_id: str,
        job: Optional[Dict[str, Any]],
        run: Optional[PortalRun],
    ) -> Optional[PortalRecord]:
        owned = job is not None and job.get("userId") == caller_user_id
        portal_id, is_new = self._resolve_failed_portal_id(job_id, run, owned)

        if run is not None and run.portal_id == portal_id and not is_terminal(run.status):
            run.fail()

        failed_portal = {
            "id": portal_id,
            "jobId": job_id,
            "userId": caller_user_id,
            "status": PortalStatus.FAILED.value,
            "currentStep": None,
            "error": error.model_dump(mode="json"),
            "updatedAt": SERVER_TIMESTAMP,
        }
        if is_new:
            failed_portal["createdAt"] = SERVER_TIMESTAMP

        self.portals.merge(portal_id, failed_portal)

        # Never touch a job the caller does not own
        if owned:
            self.jobs.merge(job_id, {**job_projection(failed_portal), "updatedAt": SERVER_TIMESTAMP})

        return self._read_portal(portal_id, failed_portal)

    def _discard_vectors(self, portal_id: str):
        # Failed runs never serve their namespace
        try:
            self.stages.discard_vectors(portal_id=portal_id)
        except Exception:
            logger.exception("Could not discard vectors of failed portal %s", portal_id)

    def _resolve_failed_portal_id(self, job_id: str, run: Optional[PortalRun], owned: bool):
        """
        Portal that receives the failure: this invocation's portal, else the
        job's current portal, else a new error record. Terminal portals are
        never reused.
        """
        if run is not None:
            # Decided from the run itself, never from a store read
            if run.status != PortalStatus.COMPLETED:
                return run.portal_id, False
            return f"portal_{job_id}_error_{self.now_ms()}", True

        if owned:
            try:
                candidate = (self.jobs.get(job_id) or {}).get("portalId")
                if candidate:
                    existing = self.portals.get(candidate)
                    if existing is None or not is_terminal(existing.get("status")):
                        return candidate, existing is None
            except Exception:
                logger.exception("Could not resolve active portal for job %s", job_id)

        return f"portal_{job_id}_error_{self.now_ms()}", True

    def _read_portal(self, portal_id: str, written: Dict[str, Any]) -> PortalRecord:
        try:
            stored = self.portals.get(portal_id)
        except Exception:
            logger.exception("Could not read back portal %s, returning the written fields", portal_id)
            stored = None
        if stored:
            return PortalRecord.model_validate(stored)
        return PortalRecord.model_validate({k: v for k, v in written.items() if v is not SERVER_TIMESTAMP})


def generate_portal(
    job_id: Optional[str],
    caller_user_id: str,
    portal_config: Optional[Dict[str, Any]] = None,
    caller_name: Optional[str] = None,
) -> PortalGenerationResult:
    return PortalPipeline().generate_portal(job_id, caller_user_id, portal_config, caller_name)
