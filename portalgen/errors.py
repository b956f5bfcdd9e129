"""
Typed faults raised inside the portal pipeline.

Each fault carries a `kind` tag so the error classifier can map it without
looking at the message text. Messages keep their historical wording because
they are persisted as `details` and shown in logs.
"""
from enum import Enum
from typing import Optional


class FaultKind(str, Enum):
    MISSING_PARAMETER = "MISSING_PARAMETER"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_STATE = "INVALID_STATE"
    INVALID_CV_DATA = "INVALID_CV_DATA"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"


class PortalFault(Exception):
    kind: FaultKind = FaultKind.INVALID_CV_DATA

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingParameterError(PortalFault):
    kind = FaultKind.MISSING_PARAMETER

    def __init__(self, parameter: str):
        super().__init__(f"Missing required parameter: {parameter}")
        self.parameter = parameter


class JobNotFoundError(PortalFault):
    kind = FaultKind.NOT_FOUND

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class UnauthorizedError(PortalFault):
    kind = FaultKind.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized: Job does not belong to authenticated user"):
        super().__init__(message)


class InvalidStateError(PortalFault):
    kind = FaultKind.INVALID_STATE

    def __init__(self, job_id: str, current_status: Optional[str]):
        super().__init__(
            f"Job {job_id} must be completed before generating portal. "
            f"Current status: {current_status}"
        )
        self.job_id = job_id
        self.current_status = current_status


class InvalidCVDataError(PortalFault):
    kind = FaultKind.INVALID_CV_DATA


class ExternalServiceError(PortalFault):
    """
    Failure reported by a generation / deployment service.
    `status_code` is the HTTP status when the service answered at all.
    """
    kind = FaultKind.EXTERNAL_SERVICE

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class IllegalTransitionError(PortalFault):
    kind = FaultKind.ILLEGAL_TRANSITION
