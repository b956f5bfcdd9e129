import json
from unittest.mock import patch

import pytest

from portalgen.repos.base import SERVER_TIMESTAMP
from portalgen.schemas.job import CVContent
from portalgen.schemas.portal import PortalConfigOverrides
from portalgen.services.embeddings import chunk_cv
from portalgen.services.portal_stages import select_template
from portalgen.services.portal_urls import build_portal_urls
from portalgen.services.template_designer import parse_customization

pytestmark = pytest.mark.unit

CV = CVContent(
    name="Ada Lovelace",
    summary="Mathematician",
    skills=["Python"],
    projects=[{"name": "Note G"}],
)


# ==================== Templates ====================

def test_select_template_by_content():
    assert select_template(CV)["id"] == "technical-expert"
    assert select_template(CVContent(projects=[{"name": "Art"}]))["id"] == "creative-portfolio"
    assert select_template(CVContent(summary="Manager"))["id"] == "corporate-professional"


def test_select_template_unknown_id():
    with pytest.raises(ValueError):
        select_template(CV, "does-not-exist")


def test_theme_only_overridden_when_given(stages):
    default = stages.generate_template(CV, PortalConfigOverrides())
    themed = stages.generate_template(CV, PortalConfigOverrides(theme="creative"))

    assert default["theme"] == "minimal"
    assert themed["theme"] == "creative"


def test_customization_overrides_win(stages):
    overrides = PortalConfigOverrides(customization={"accent": "#123456"})
    template = stages.generate_template(CV, overrides)

    design = stages.customize_design(CV, template, overrides)

    assert design["customization"]["config"] == {"accent": "#123456"}
    assert design["id"] == template["id"]


def test_parse_customization():
    fenced = '```json\n{"theme": {"primary": "#000"}, "content": {"tagline": "Hi"}}\n```'

    assert parse_customization(fenced) == {
        "theme": {"primary": "#000"},
        "config": {},
        "content": {"tagline": "Hi"},
    }
    assert parse_customization("not json") == {"theme": {}, "config": {}, "content": {}}
    assert parse_customization("[1, 2]") == {"theme": {}, "config": {}, "content": {}}


# ==================== Knowledge base ====================

def test_chunk_ids_are_deterministic():
    chunks = chunk_cv(CV)

    assert [c["id"] for c in chunks] == [c["id"] for c in chunk_cv(CV)]
    assert chunks[0]["id"] == "personal-0-0"
    assert {c["metadata"]["section"] for c in chunks} == {"personal", "summary", "projects", "skills"}


def test_long_sections_are_split():
    cv = CVContent(summary="word " * 600)
    chunks = chunk_cv(cv, chunk_size=200, chunk_overlap=20)

    assert len(chunks) > 1
    assert all(len(c["text"]) <= 200 for c in chunks)


def test_empty_cv_has_empty_knowledge(stages):
    assert stages.create_embeddings(CVContent()) == []
    assert stages.setup_vector_db(portal_id="p1", user_id="U1", embeddings=[]) == 0


def test_education_is_a_knowledge_section():
    cv = CVContent(education=[{"institution": "University of London", "degree": "BSc",
                               "field": "Mathematics", "graduationDate": "1835"}])

    [chunk] = chunk_cv(cv)

    assert chunk["id"] == "education-0-0"
    assert chunk["metadata"] == {"section": "education", "importance": 7}
    assert chunk["text"] == "Education: BSc in Mathematics at University of London (1835)"


def test_discard_vectors_is_a_no_op_when_simulated(stages):
    assert stages.discard_vectors(portal_id="p1") is None


def test_simulated_vector_setup_counts_embeddings(stages):
    embeddings = stages.create_embeddings(CV)
    assert stages.setup_vector_db(portal_id="p1", user_id="U1", embeddings=embeddings) == len(embeddings)


# ==================== Deployment ====================

def test_simulated_deploy(stages):
    overrides = PortalConfigOverrides()
    design = stages.customize_design(CV, stages.generate_template(CV, overrides), overrides)
    embeddings = stages.create_embeddings(CV)

    deployment = stages.deploy(portal_id="p1", slug="ada-lovelace", cv=CV, design=design, embeddings=embeddings)

    assert deployment["spaceId"] == "simulated/ada-lovelace-cv-portal"
    assert deployment["filesGenerated"] == 3
    assert deployment["totalSize"] > 0


def test_deployment_files(stages):
    overrides = PortalConfigOverrides()
    design = stages.customize_design(CV, stages.generate_template(CV, overrides), overrides)
    embeddings = stages.create_embeddings(CV)

    files = {f["path"]: f["content"] for f in
             stages.deployment_files(portal_id="p1", cv=CV, design=design, embeddings=embeddings)}

    assert "Ada Lovelace" in files["README.md"]
    assert json.loads(files["portal_config.json"])["portalId"] == "p1"
    assert len(json.loads(files["knowledge.json"])) == len(embeddings)


# ==================== Job document ====================

def test_update_cv_document(stages, jobs):
    urls = build_portal_urls("Ada Lovelace")
    stages.update_cv_document("J1", urls)

    _, patch = jobs.writes[-1]
    assert patch["portalData"]["lastUpdated"] is SERVER_TIMESTAMP
    assert patch["metadata"] == {"hasWebPortal": True, "portalUrl": urls.portal}


def test_generate_qr_codes(stages, jobs):
    urls = build_portal_urls("Ada Lovelace")
    codes = stages.generate_qr_codes("J1", "p1", urls)

    assert [c["id"] for c in codes] == ["p1_qr_portal", "p1_qr_chat", "p1_qr_menu"]
    assert jobs.get("J1")["portalQrCodes"]["chat"]["data"] == urls.chat


# ==================== Live adapters (patched) ====================

def test_live_stages_call_external_adapters(jobs):
    from portalgen.services.portal_stages import PortalStages

    live = PortalStages(jobs, simulate=False, delay_ms=0)
    overrides = PortalConfigOverrides()
    template = live.generate_template(CV, overrides)

    with patch("portalgen.services.template_designer.design_customization",
               return_value={"theme": {"primary": "#111"}, "config": {}, "content": {}}) as mock_design, \
            patch("portalgen.services.embeddings.embed_chunks",
                  side_effect=lambda chunks: [{**c, "values": [0.5]} for c in chunks]), \
            patch("portalgen.repos.pinecone_repo.PineconeRepo") as mock_repo, \
            patch("portalgen.services.hf_deployer.deploy_space",
                  return_value={"spaceId": "ns/ada-lovelace-cv-portal", "commit": "c1"}) as mock_deploy:
        mock_repo.return_value.upsert.return_value = 4

        design = live.customize_design(CV, template, overrides)
        embeddings = live.create_embeddings(CV)
        count = live.setup_vector_db(portal_id="p1", user_id="U1", embeddings=embeddings)
        deployment = live.deploy(portal_id="p1", slug="ada-lovelace", cv=CV, design=design, embeddings=embeddings)

    mock_design.assert_called_once_with(CV, template, "minimal")
    assert design["customization"]["theme"] == {"primary": "#111"}
    assert all(e["values"] == [0.5] for e in embeddings)

    assert count == 4
    upsert_kwargs = mock_repo.return_value.upsert.call_args.kwargs
    assert upsert_kwargs["namespace"] == "p1"
    assert upsert_kwargs["vectors"][0]["metadata"]["userId"] == "U1"

    assert mock_deploy.call_args.args[0] == "ada-lovelace-cv-portal"
    assert deployment["commit"] == "c1"
    assert deployment["filesGenerated"] == 3


@patch("portalgen.repos.pinecone_repo.PineconeRepo")
def test_live_discard_vectors_deletes_portal_namespace(mock_repo, jobs):
    from portalgen.services.portal_stages import PortalStages

    PortalStages(jobs, simulate=False, delay_ms=0).discard_vectors(portal_id="p1")

    mock_repo.return_value.delete_namespace.assert_called_once_with(namespace="p1")
