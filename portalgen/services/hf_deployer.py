# portalgen/services/hf_deployer.py
import base64
import json
import requests
from typing import Dict, List

from portalgen.config import HUGGINGFACE_API_TOKEN, HUGGINGFACE_API_URL, HUGGINGFACE_NAMESPACE
from portalgen.errors import ExternalServiceError

SERVICE = "huggingface"
TIMEOUT = 60


def _raise_for_status(resp: requests.Response, action: str):
    if resp.ok:
        return

    status = resp.status_code
    body = resp.text[:300]

    if status == 402:
        message = f"HuggingFace {action} failed: credit balance is too low ({status})"
    elif status in (401, 403):
        message = f"HuggingFace {action} failed: Authentication failed ({status})"
    elif status in (429, 503):
        message = f"HuggingFace overloaded during {action} ({status})"
    else:
        message = f"HuggingFace {action} failed ({status}): {body}"

    raise ExternalServiceError(SERVICE, message, status_code=status)


def _headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {HUGGINGFACE_API_TOKEN}"}


def space_repo_id(space_name: str) -> str:
    return f"{HUGGINGFACE_NAMESPACE}/{space_name}"


def create_space(space_name: str, *, sdk: str = "gradio", private: bool = False) -> str:
    """
    Creates the Space repo. An already existing Space (409) is reused.
    """
    try:
        resp = requests.post(
            f"{HUGGINGFACE_API_URL}/repos/create",
            headers=_headers(),
            json={
                "type": "space",
                "name": space_name,
                "organization": HUGGINGFACE_NAMESPACE,
                "sdk": sdk,
                "private": private,
            },
            timeout=TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        raise ExternalServiceError(SERVICE, f"HuggingFace space creation failed: {e}")

    if resp.status_code != 409:
        _raise_for_status(resp, "space creation")

    return space_repo_id(space_name)


def upload_files(repo_id: str, files: List[Dict], summary: str) -> str:
    """
    Commits all files in one request (ndjson commit API).
    files: [{"path": str, "content": str}]
    """
    lines = [json.dumps({"key": "header", "value": {"summary": summary}})]
    for f in files:
        lines.append(json.dumps({
            "key": "file",
            "value": {
                "path": f["path"],
                "encoding": "base64",
                "content": base64.b64encode(f["content"].encode("utf-8")).decode("ascii"),
            },
        }))

    try:
        resp = requests.post(
            f"{HUGGINGFACE_API_URL}/spaces/{repo_id}/commit/main",
            headers={**_headers(), "Content-Type": "application/x-ndjson"},
            data="\n".join(lines).encode("utf-8"),
            timeout=TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        raise ExternalServiceError(SERVICE, f"HuggingFace upload failed: {e}")

    _raise_for_status(resp, "upload")
    return resp.json().get("commitOid", "")


def deploy_space(space_name: str, files: List[Dict], summary: str) -> Dict:
    repo_id = create_space(space_name)
    commit = upload_files(repo_id, files, summary)
    return {
        "spaceId": repo_id,
        "commit": commit,
    }
