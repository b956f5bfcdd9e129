# portalgen/schemas/job.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, Dict, Any, List


class JobStatus(str, Enum):
    """Set by the upstream CV pipeline; read-only here."""
    CREATED = "created"
    PROCESSING = "processing"
    ANALYZED = "analyzed"
    COMPLETED = "completed"
    FAILED = "failed"


# Job statuses that allow a portal to be generated
READY_JOB_STATUSES = frozenset({JobStatus.COMPLETED.value, JobStatus.ANALYZED.value})


class PortalGenerationStatus(str, Enum):
    """Written exclusively by the portal pipeline."""
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class PortalJob(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    userId: str
    status: str
    parsedData: Optional[Dict[str, Any]] = None

    # -------------------------
    # Portal linkage (pipeline-owned)
    # -------------------------
    portalGenerationStatus: Optional[PortalGenerationStatus] = None
    portalId: Optional[str] = None
    portalUrls: Optional[Dict[str, Any]] = None
    portalError: Optional[str] = None


# -------------------------
# Normalized CV content
# -------------------------
def _as_text_list(value: Any) -> List[str]:
    """A single string becomes a one item list; non-text items are dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [
            str(item).strip() for item in value
            if isinstance(item, (str, int, float)) and str(item).strip()
        ]
    return []


class CVExperience(BaseModel):
    model_config = ConfigDict(extra="ignore")

    company: Optional[str] = None
    position: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    achievements: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _aliases(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("position"):
                data["position"] = data.get("title") or data.get("role")
            if not data.get("duration") and (data.get("startDate") or data.get("endDate")):
                data["duration"] = f"{data.get('startDate') or ''} - {data.get('endDate') or 'Present'}".strip(" -")
        return data

    @field_validator("achievements", "technologies", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> List[str]:
        return _as_text_list(value)


class CVEducation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    institution: Optional[str] = None
    degree: Optional[str] = None
    field: Optional[str] = None
    graduationDate: Optional[str] = None
    gpa: Optional[str] = None
    honors: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _aliases(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("institution"):
                data["institution"] = data.get("school") or data.get("university")
            if not data.get("graduationDate"):
                data["graduationDate"] = data.get("endDate") or data.get("year")
            for key in ("graduationDate", "gpa"):
                if isinstance(data.get(key), (int, float)):
                    data[key] = str(data[key])
        return data

    @field_validator("honors", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> List[str]:
        return _as_text_list(value)


class CVProject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _title_as_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("title"):
            data = {**data, "name": data["title"]}
        return data

    @field_validator("technologies", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> List[str]:
        return _as_text_list(value)


class CVCertification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    issuer: Optional[str] = None
    date: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _title_as_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("title"):
            data = {**data, "name": data["title"]}
        return data


class CVLanguage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    language: str
    proficiency: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _plain_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"language": data}
        if isinstance(data, dict) and not data.get("language") and data.get("name"):
            return {**data, "language": data["name"]}
        return data


class CVContent(BaseModel):
    """
    The parts of `parsedData` the portal is built from.
    Anything else in the parsed CV is ignored.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[CVExperience] = Field(default_factory=list)
    education: List[CVEducation] = Field(default_factory=list)
    projects: List[CVProject] = Field(default_factory=list)
    certifications: List[CVCertification] = Field(default_factory=list)
    languages: List[CVLanguage] = Field(default_factory=list)
    customSections: Dict[str, Any] = Field(default_factory=dict)
