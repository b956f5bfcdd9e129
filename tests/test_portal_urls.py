import pytest

from portalgen.services.portal_urls import (
    build_portal_urls,
    portal_base_url,
    resolve_display_name,
    slugify,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("name, slug", [
    ("Ada Lovelace", "ada-lovelace"),
    ("Jane O'Brien!!", "jane-obrien"),
    ("  Jean -- Luc  Picard ", "jean-luc-picard"),
    ("Zoë Smith", "zo-smith"),
    ("R2 D2", "r2-d2"),
    ("", "user"),
    ("   ", "user"),
    ("!!!", "user"),
    (None, "user"),
])
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_slugify_is_idempotent():
    slug = slugify("Grace  Brewster Murray Hopper")
    assert slugify(slug) == slug


def test_build_portal_urls_shape():
    urls = build_portal_urls("Ada Lovelace")
    base = "https://ada-lovelace-cv-portal.hf.space"

    assert urls.portal == base
    assert urls.chat == f"{base}/chat"
    assert urls.contact == f"{base}/contact"
    assert urls.download == f"{base}/download"
    assert urls.qrMenu == f"{base}/connect"
    assert urls.api.chat == f"{base}/api/chat"
    assert urls.api.contact == f"{base}/api/contact"
    assert urls.api.analytics == f"{base}/api/analytics"


def test_build_portal_urls_without_name():
    assert build_portal_urls("").portal == portal_base_url("user")


def test_resolve_display_name_prefers_cv():
    parsed = {"personalInfo": {"name": "Ada Lovelace"}}
    assert resolve_display_name(parsed, "Someone Else") == "Ada Lovelace"


def test_resolve_display_name_fallbacks():
    assert resolve_display_name({"personalInfo": {"name": "  "}}, "Grace Hopper") == "Grace Hopper"
    assert resolve_display_name({}, None) == "user"
    assert resolve_display_name(None, "   ") == "user"
