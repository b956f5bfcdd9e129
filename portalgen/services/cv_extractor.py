# portalgen/services/cv_extractor.py
import logging
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, List, Optional, Type

from portalgen.errors import InvalidCVDataError
from portalgen.schemas.job import (
    CVCertification,
    CVContent,
    CVEducation,
    CVExperience,
    CVLanguage,
    CVProject,
)

logger = logging.getLogger(__name__)


def _skill_names(raw: Any) -> List[str]:
    """
    Parsed CVs carry skills as a flat list, a list of {name} objects
    or a map of category -> list. All become one flat list of names.
    """
    if not raw:
        return []

    if isinstance(raw, dict):
        items = []
        for value in raw.values():
            items.extend(_skill_names(value))
        return items

    if isinstance(raw, (list, tuple)):
        names = []
        for item in raw:
            if isinstance(item, str) and item.strip():
                names.append(item.strip())
            elif isinstance(item, dict) and item.get("name"):
                names.append(str(item["name"]).strip())
        return names

    if isinstance(raw, str):
        return [s.strip() for s in raw.split(",") if s.strip()]

    return []


def _dedupe(values: List[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        key = v.lower()
        if key not in seen:
            seen.add(key)
            out.append(v)
    return out


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# -------------------------
# Sections
# -------------------------
def _section(
    parsed: Dict[str, Any],
    key: str,
    model: Type[BaseModel],
    warnings: List[str],
    required: Optional[str] = None,
) -> List[BaseModel]:
    """
    Validates one list section item by item. Items that cannot be used are
    skipped and reported in `warnings`; they never fail the run.
    """
    raw = parsed.get(key)
    if not raw:
        return []
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        warnings.append(f"CV section '{key}' is not a list and was ignored")
        return []

    items, skipped = [], 0
    for entry in raw:
        try:
            item = model.model_validate(entry)
        except ValidationError as e:
            logger.debug("Skipping %s entry: %s", key, e)
            skipped += 1
            continue

        if required and not getattr(item, required):
            skipped += 1
            continue
        items.append(item)

    if skipped:
        warnings.append(f"Skipped {skipped} unusable '{key}' entr{'y' if skipped == 1 else 'ies'} of the CV")
    return items


def extract_cv_content(parsed_data: Dict[str, Any], warnings: Optional[List[str]] = None) -> CVContent:
    """
    Builds the normalized CV content. Only a parsed CV that is not an object
    at all is rejected; problems inside it end up in `warnings`.
    """
    if not isinstance(parsed_data, dict):
        raise InvalidCVDataError("Parsed CV data must be an object")

    warnings = warnings if warnings is not None else []

    personal = parsed_data.get("personalInfo") or {}
    if not isinstance(personal, dict):
        warnings.append("CV personalInfo is not an object and was ignored")
        personal = {}

    custom = parsed_data.get("customSections") or {}
    if not isinstance(custom, dict):
        warnings.append("CV customSections is not an object and was ignored")
        custom = {}

    return CVContent(
        name=_text(personal.get("name")),
        email=_text(personal.get("email")),
        title=_text(personal.get("title")),
        summary=_text(parsed_data.get("summary")) or _text(personal.get("summary")),
        skills=_dedupe(_skill_names(parsed_data.get("skills"))),
        experience=_section(parsed_data, "experience", CVExperience, warnings),
        education=_section(parsed_data, "education", CVEducation, warnings),
        projects=_section(parsed_data, "projects", CVProject, warnings, required="name"),
        certifications=_section(parsed_data, "certifications", CVCertification, warnings, required="name"),
        languages=_section(parsed_data, "languages", CVLanguage, warnings),
        customSections=custom,
    )
