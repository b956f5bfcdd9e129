# portalgen/services/portal_urls.py
import re
from typing import Any, Dict, Optional

from portalgen.schemas.portal import PortalApiUrls, PortalUrls

FALLBACK_SLUG = "user"
FALLBACK_NAME = "user"

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(name: Optional[str]) -> str:
    """
    Canonical portal slug for a display name.

    lowercase -> drop anything outside [a-z0-9 whitespace -] -> whitespace
    runs to "-" -> collapse "--" -> trim "-". Never raises; empty results
    become "user".
    """
    slug = (name or "").lower()
    slug = _DISALLOWED.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug.strip("-")
    return slug or FALLBACK_SLUG


def portal_base_url(slug: str) -> str:
    return f"https://{slug}-cv-portal.hf.space"


def build_portal_urls(name: Optional[str]) -> PortalUrls:
    base = portal_base_url(slugify(name))
    return PortalUrls(
        portal=base,
        chat=f"{base}/chat",
        contact=f"{base}/contact",
        download=f"{base}/download",
        qrMenu=f"{base}/connect",
        api=PortalApiUrls(
            chat=f"{base}/api/chat",
            contact=f"{base}/api/contact",
            analytics=f"{base}/api/analytics",
        ),
    )


def resolve_display_name(
    parsed_data: Optional[Dict[str, Any]],
    caller_name: Optional[str] = None,
) -> str:
    """CV owner's name, then the caller's profile name, then "user"."""
    personal = (parsed_data or {}).get("personalInfo") or {}
    name = personal.get("name") if isinstance(personal, dict) else None

    if isinstance(name, str) and name.strip():
        return name
    if caller_name and caller_name.strip():
        return caller_name
    return FALLBACK_NAME
