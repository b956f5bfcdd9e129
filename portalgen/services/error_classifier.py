# portalgen/services/error_classifier.py
"""
Maps any fault raised during portal generation to a stable
(code, category, recoverable, user message) tuple.

Typed faults are classified by their kind tag. Foreign exceptions (and typed
faults whose tag is not decisive) fall back to an ordered table of message
patterns where the first match wins.
"""
from typing import Callable, NamedTuple, Optional, Tuple

from portalgen.errors import FaultKind, PortalFault
from portalgen.schemas.portal import ErrorCategory, ErrorCode


class ClassifiedError(NamedTuple):
    code: ErrorCode
    category: ErrorCategory
    recoverable: bool
    user_message: str


MSG_JOB_NOT_FOUND = (
    "The specified CV job could not be found. "
    "Please ensure you have completed CV processing first."
)
MSG_UNAUTHORIZED = "You are not authorized to generate a portal for this CV."
MSG_NOT_READY = "CV processing must be completed before generating a portal."
MSG_MISSING_JOB = "A CV job id is required to generate a portal."
MSG_INVALID_CV = "The CV data is incomplete or invalid. Please review your CV and try again."
MSG_BILLING = (
    "The portal generation service is temporarily unavailable due to billing issues. "
    "Please try again later or contact support."
)
MSG_DEPLOY_AUTH = (
    "Authentication failed with the portal deployment service. "
    "Please try again later or contact support."
)
MSG_INTERNAL = "Portal generation failed because of an internal error. Please try again."
MSG_OVERLOADED = (
    "The portal generation service is currently overloaded. "
    "Please try again in a few moments."
)

_Row = Tuple[Callable[[str], bool], ErrorCode, ErrorCategory, Optional[str]]

# Order matters: first match wins
_MESSAGE_RULES: Tuple[_Row, ...] = (
    (lambda m: "Job" in m and "not found" in m,
     ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_JOB_NOT_FOUND),
    (lambda m: "Unauthorized" in m,
     ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_UNAUTHORIZED),
    (lambda m: "must be completed" in m,
     ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_NOT_READY),
    (lambda m: "credit balance is too low" in m or "billing issues" in m,
     ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_BILLING),
    (lambda m: "Authentication failed" in m,
     ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_DEPLOY_AUTH),
    (lambda m: "overloaded" in m or "429" in m,
     ErrorCode.DEPLOYMENT_FAILED, ErrorCategory.EXTERNAL_API, MSG_OVERLOADED),
)

_KIND_RULES = {
    FaultKind.MISSING_PARAMETER: (ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_MISSING_JOB),
    FaultKind.NOT_FOUND: (ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_JOB_NOT_FOUND),
    FaultKind.UNAUTHORIZED: (ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_UNAUTHORIZED),
    FaultKind.INVALID_STATE: (ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_NOT_READY),
    FaultKind.INVALID_CV_DATA: (ErrorCode.INVALID_CV_DATA, ErrorCategory.VALIDATION, MSG_INVALID_CV),
    FaultKind.ILLEGAL_TRANSITION: (ErrorCode.INTERNAL_ERROR, ErrorCategory.SYSTEM, MSG_INTERNAL),
}

_STATUS_RULES = {
    402: (ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_BILLING),
    401: (ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_DEPLOY_AUTH),
    403: (ErrorCode.HUGGINGFACE_API_ERROR, ErrorCategory.EXTERNAL_API, MSG_DEPLOY_AUTH),
    429: (ErrorCode.DEPLOYMENT_FAILED, ErrorCategory.EXTERNAL_API, MSG_OVERLOADED),
    503: (ErrorCode.DEPLOYMENT_FAILED, ErrorCategory.EXTERNAL_API, MSG_OVERLOADED),
}


def is_recoverable(code: ErrorCode) -> bool:
    return code != ErrorCode.INVALID_CV_DATA


def _build(code: ErrorCode, category: ErrorCategory, message: str) -> ClassifiedError:
    return ClassifiedError(code, category, is_recoverable(code), message)


def fault_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


def classify_message(message: str) -> ClassifiedError:
    for matches, code, category, user_message in _MESSAGE_RULES:
        if matches(message):
            return _build(code, category, user_message)

    # Unclassified: surface the raw message
    return _build(ErrorCode.INTERNAL_ERROR, ErrorCategory.SYSTEM, message)


def classify_error(error: BaseException) -> ClassifiedError:
    if isinstance(error, PortalFault):
        rule = _KIND_RULES.get(error.kind)
        if rule is None and error.kind == FaultKind.EXTERNAL_SERVICE:
            rule = _STATUS_RULES.get(getattr(error, "status_code", None))
        if rule is not None:
            return _build(*rule)

    return classify_message(fault_message(error))
