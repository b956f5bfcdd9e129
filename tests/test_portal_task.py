from unittest.mock import patch

import pytest

from portalgen.workers.portal_task import generate_portal_task

pytestmark = pytest.mark.unit


@patch("portalgen.workers.portal_task.generate_portal")
def test_task_returns_json_result(mock_generate, pipeline, ada_job):
    mock_generate.side_effect = lambda job_id, user_id, config, name: pipeline.generate_portal(
        job_id, user_id, config, name
    )

    result = generate_portal_task.delay(jobId=ada_job, userId="U1").get()

    assert result["success"] is True
    assert result["stepsCompleted"][0] == "VALIDATE_INPUT"
    assert result["urls"]["portal"] == "https://ada-lovelace-cv-portal.hf.space"
    mock_generate.assert_called_once_with(ada_job, "U1", None, None)


@patch("portalgen.workers.portal_task.generate_portal")
def test_task_reports_failures_as_data(mock_generate, pipeline):
    mock_generate.side_effect = lambda job_id, user_id, config, name: pipeline.generate_portal(
        job_id, user_id, config, name
    )

    result = generate_portal_task.delay(jobId=None, userId="U1").get()

    assert result["success"] is False
    assert result["error"]["code"] == "INVALID_CV_DATA"
