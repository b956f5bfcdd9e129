# portalgen/schemas/portal.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List, Literal


class PortalStatus(str, Enum):
    GENERATING = "GENERATING"
    BUILDING_RAG = "BUILDING_RAG"
    DEPLOYING = "DEPLOYING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class PortalGenerationStep(str, Enum):
    VALIDATE_INPUT = "VALIDATE_INPUT"
    EXTRACT_CV_DATA = "EXTRACT_CV_DATA"
    GENERATE_TEMPLATE = "GENERATE_TEMPLATE"
    CUSTOMIZE_DESIGN = "CUSTOMIZE_DESIGN"
    CREATE_EMBEDDINGS = "CREATE_EMBEDDINGS"
    SETUP_VECTOR_DB = "SETUP_VECTOR_DB"
    DEPLOY_TO_HUGGINGFACE = "DEPLOY_TO_HUGGINGFACE"
    CONFIGURE_URLS = "CONFIGURE_URLS"
    UPDATE_CV_DOCUMENT = "UPDATE_CV_DOCUMENT"
    GENERATE_QR_CODES = "GENERATE_QR_CODES"
    FINALIZE_PORTAL = "FINALIZE_PORTAL"


# Fixed execution order of a pipeline invocation
STEP_SEQUENCE = tuple(PortalGenerationStep)


class ErrorCode(str, Enum):
    INVALID_CV_DATA = "INVALID_CV_DATA"
    HUGGINGFACE_API_ERROR = "HUGGINGFACE_API_ERROR"
    DEPLOYMENT_FAILED = "DEPLOYMENT_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorCategory(str, Enum):
    VALIDATION = "VALIDATION"
    EXTERNAL_API = "EXTERNAL_API"
    SYSTEM = "SYSTEM"


# -------------------------
# URLs
# -------------------------
class PortalApiUrls(BaseModel):
    chat: str
    contact: str
    analytics: str


class PortalUrls(BaseModel):
    portal: str
    chat: str
    contact: str
    download: str
    qrMenu: str
    api: PortalApiUrls


# -------------------------
# Errors
# -------------------------
class PortalErrorContext(BaseModel):
    stepsCompleted: List[PortalGenerationStep] = Field(default_factory=list)
    processingTimeMs: int = 0


class PortalError(BaseModel):
    code: ErrorCode
    message: str                  # sanitized, user facing
    details: str                  # raw fault text
    context: PortalErrorContext
    timestamp: datetime
    recoverable: bool
    category: ErrorCategory
    stack: Optional[str] = None


# -------------------------
# Portal record
# -------------------------
class PortalRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    jobId: str
    userId: Optional[str] = None
    status: PortalStatus
    currentStep: Optional[PortalGenerationStep] = None

    # Present only when COMPLETED / FAILED respectively
    urls: Optional[PortalUrls] = None
    error: Optional[PortalError] = None

    createdAt: Optional[Any] = None
    updatedAt: Optional[Any] = None


class PortalConfigOverrides(BaseModel):
    """
    Optional caller overrides for a generation run.
    Unknown keys are rejected so typos surface as validation failures.
    """
    model_config = ConfigDict(extra="forbid")

    theme: Literal["professional", "creative", "minimal"] = "professional"
    features: List[str] = Field(default_factory=lambda: ["chat", "analytics", "sharing"])
    customization: Dict[str, Any] = Field(default_factory=dict)
    templateId: Optional[str] = None


# -------------------------
# Result
# -------------------------
class GenerationStatistics(BaseModel):
    totalTimeMs: int = 0
    stepTimes: Dict[str, int] = Field(default_factory=dict)
    embeddingsGenerated: int = 0


class GenerationMetadata(BaseModel):
    version: str
    timestamp: datetime
    cvAnalysis: Optional[Dict[str, Any]] = None
    templateUsed: str = "none"
    featuresEnabled: List[str] = Field(default_factory=list)
    filesGenerated: int = 0
    totalSize: int = 0
    statistics: GenerationStatistics = Field(default_factory=GenerationStatistics)


class PortalGenerationResult(BaseModel):
    success: bool
    portalConfig: Optional[PortalRecord] = None
    urls: Optional[PortalUrls] = None
    error: Optional[PortalError] = None
    metadata: GenerationMetadata
    processingTimeMs: int
    stepsCompleted: List[PortalGenerationStep] = Field(default_factory=list)
    warnings: Optional[List[str]] = None


class GeneratePortalRequest(BaseModel):
    jobId: Optional[str] = Field(None, description="CV job to build the portal for")
    portalConfig: Optional[Dict[str, Any]] = Field(
        None,
        description="Optional overrides: theme, features, customization, templateId"
    )


class GeneratePortalQueued(BaseModel):
    jobId: Optional[str] = None
    status: str
