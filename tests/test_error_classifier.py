import pytest

from portalgen.errors import (
    ExternalServiceError,
    IllegalTransitionError,
    InvalidCVDataError,
    InvalidStateError,
    JobNotFoundError,
    MissingParameterError,
    UnauthorizedError,
)
from portalgen.schemas.portal import ErrorCategory, ErrorCode
from portalgen.services.error_classifier import (
    MSG_BILLING,
    MSG_DEPLOY_AUTH,
    MSG_INTERNAL,
    MSG_JOB_NOT_FOUND,
    MSG_NOT_READY,
    MSG_OVERLOADED,
    MSG_UNAUTHORIZED,
    classify_error,
    classify_message,
    fault_message,
    is_recoverable,
)

pytestmark = pytest.mark.unit


# ==================== Message table ====================

@pytest.mark.parametrize("message, code, category, user_message", [
    ("Job J1 not found", ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_JOB_NOT_FOUND),
    ("Unauthorized: nope", ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_UNAUTHORIZED),
    ("Job must be completed first", ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_NOT_READY),
    ("credit balance is too low", ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_BILLING),
    ("blocked by billing issues", ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_BILLING),
    ("Authentication failed", ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_DEPLOY_AUTH),
    ("service overloaded", ErrorCode.DEPLOYMENT_FAILED, ErrorCategory.EXTERNAL_API, MSG_OVERLOADED),
    ("HTTP 429", ErrorCode.DEPLOYMENT_FAILED, ErrorCategory.EXTERNAL_API, MSG_OVERLOADED),
])
def test_message_rules(message, code, category, user_message):
    classified = classify_message(message)

    assert classified.code == code
    assert classified.category == category
    assert classified.user_message == user_message


def test_first_matching_rule_wins():
    classified = classify_message("Job J9 not found after 429")

    assert classified.code == ErrorCode.INVALID_CV_DATA
    assert classified.user_message == MSG_JOB_NOT_FOUND


def test_unmatched_message_is_internal_error():
    classified = classify_message("something odd")

    assert classified.code == ErrorCode.INTERNAL_ERROR
    assert classified.category == ErrorCategory.SYSTEM
    assert classified.recoverable is True
    assert classified.user_message == "something odd"


def test_matching_is_case_sensitive():
    assert classify_message("unauthorized").code == ErrorCode.INTERNAL_ERROR


@pytest.mark.parametrize("code", list(ErrorCode))
def test_only_invalid_cv_data_is_unrecoverable(code):
    assert is_recoverable(code) is (code != ErrorCode.INVALID_CV_DATA)


# ==================== Typed faults ====================

@pytest.mark.parametrize("fault, user_message", [
    (JobNotFoundError("J1"), MSG_JOB_NOT_FOUND),
    (UnauthorizedError(), MSG_UNAUTHORIZED),
    (InvalidStateError("J1", "processing"), MSG_NOT_READY),
])
def test_precondition_faults(fault, user_message):
    classified = classify_error(fault)

    assert classified.code == ErrorCode.INVALID_CV_DATA
    assert classified.recoverable is False
    assert classified.user_message == user_message


def test_missing_parameter_is_a_validation_fault():
    classified = classify_error(MissingParameterError("jobId"))

    assert classified.code == ErrorCode.INVALID_CV_DATA
    assert classified.category == ErrorCategory.VALIDATION


def test_invalid_cv_data_uses_kind_not_text():
    # text would otherwise match the overload rule
    classified = classify_error(InvalidCVDataError("429 empty sections"))
    assert classified.code == ErrorCode.INVALID_CV_DATA


@pytest.mark.parametrize("status, code, user_message", [
    (402, ErrorCode.HUGGINGFACE_API_ERROR, MSG_BILLING),
    (401, ErrorCode.HUGGINGFACE_API_ERROR, MSG_DEPLOY_AUTH),
    (403, ErrorCode.HUGGINGFACE_API_ERROR, MSG_DEPLOY_AUTH),
    (429, ErrorCode.DEPLOYMENT_FAILED, MSG_OVERLOADED),
    (503, ErrorCode.DEPLOYMENT_FAILED, MSG_OVERLOADED),
])
def test_external_faults_by_status(status, code, user_message):
    classified = classify_error(ExternalServiceError("huggingface", "request rejected", status_code=status))

    assert classified.code == code
    assert classified.category == ErrorCategory.EXTERNAL_API
    assert classified.recoverable is True
    assert classified.user_message == user_message


def test_external_fault_without_status_falls_back_to_text():
    classified = classify_error(ExternalServiceError("huggingface", "connection reset"))

    assert classified.code == ErrorCode.INTERNAL_ERROR
    assert classified.user_message == "connection reset"


def test_illegal_transition_is_internal_whatever_the_portal_id():
    fault = IllegalTransitionError("Portal portal_J_1700000429000: expected step none, got FINALIZE_PORTAL")
    classified = classify_error(fault)

    assert classified.code == ErrorCode.INTERNAL_ERROR
    assert classified.category == ErrorCategory.SYSTEM
    assert classified.recoverable is True
    assert classified.user_message == MSG_INTERNAL


def test_foreign_exception_uses_message_table():
    assert classify_error(RuntimeError("HuggingFace overloaded (429)")).code == ErrorCode.DEPLOYMENT_FAILED


def test_fault_message_for_empty_exception():
    assert fault_message(KeyError()) == "KeyError"
    assert classify_error(ValueError()).user_message == "ValueError"
