# portalgen/services/portal_state.py
"""
Explicit state machine of one portal generation run.

A run only moves forward: each step of STEP_SEQUENCE is begun and finished
exactly once, in order, under the portal status given by STEP_STATUS, and
status changes must appear in TRANSITIONS. Terminal statuses have no exits.
"""
import time
from typing import Dict, List, Optional

from portalgen.errors import IllegalTransitionError
from portalgen.schemas.portal import PortalGenerationStep as Step
from portalgen.schemas.portal import PortalStatus as Status
from portalgen.schemas.portal import STEP_SEQUENCE

STEP_STATUS: Dict[Step, Status] = {
    Step.VALIDATE_INPUT: Status.GENERATING,
    Step.EXTRACT_CV_DATA: Status.GENERATING,
    Step.GENERATE_TEMPLATE: Status.GENERATING,
    Step.CUSTOMIZE_DESIGN: Status.GENERATING,
    Step.CREATE_EMBEDDINGS: Status.BUILDING_RAG,
    Step.SETUP_VECTOR_DB: Status.BUILDING_RAG,
    Step.DEPLOY_TO_HUGGINGFACE: Status.DEPLOYING,
    Step.CONFIGURE_URLS: Status.DEPLOYING,
    Step.UPDATE_CV_DOCUMENT: Status.DEPLOYING,
    Step.GENERATE_QR_CODES: Status.DEPLOYING,
    Step.FINALIZE_PORTAL: Status.DEPLOYING,
}

TRANSITIONS: Dict[Status, frozenset] = {
    Status.GENERATING: frozenset({Status.GENERATING, Status.BUILDING_RAG, Status.FAILED}),
    Status.BUILDING_RAG: frozenset({Status.BUILDING_RAG, Status.DEPLOYING, Status.FAILED}),
    Status.DEPLOYING: frozenset({Status.DEPLOYING, Status.COMPLETED, Status.FAILED}),
    Status.COMPLETED: frozenset(),
    Status.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.FAILED})


def is_terminal(status) -> bool:
    try:
        return Status(status) in TERMINAL_STATUSES
    except ValueError:
        return False


def can_transition(current: Status, target: Status) -> bool:
    return target in TRANSITIONS[current]


class PortalRun:
    def __init__(self, portal_id: str, clock=time.monotonic):
        self.portal_id = portal_id
        self.status = Status.GENERATING
        self.current_step: Optional[Step] = None
        self.steps_completed: List[Step] = []
        self.step_times_ms: Dict[str, int] = {}
        self._clock = clock
        self._step_started: Optional[float] = None

    @property
    def next_step(self) -> Optional[Step]:
        done = len(self.steps_completed)
        return STEP_SEQUENCE[done] if done < len(STEP_SEQUENCE) else None

    def _move_to(self, target: Status):
        if not can_transition(self.status, target):
            raise IllegalTransitionError(
                f"Portal {self.portal_id}: illegal transition {self.status.value} -> {target.value}"
            )
        self.status = target

    def begin(self, step: Step) -> Status:
        if self.current_step is not None:
            raise IllegalTransitionError(
                f"Portal {self.portal_id}: {step.value} started while "
                f"{self.current_step.value} is still running"
            )
        if step != self.next_step:
            expected = self.next_step.value if self.next_step else "none"
            raise IllegalTransitionError(
                f"Portal {self.portal_id}: expected step {expected}, got {step.value}"
            )

        self._move_to(STEP_STATUS[step])
        self.current_step = step
        self._step_started = self._clock()
        return self.status

    def finish(self, step: Step):
        if self.current_step != step:
            raise IllegalTransitionError(
                f"Portal {self.portal_id}: cannot finish {step.value}, it is not running"
            )

        self.steps_completed.append(step)
        self.step_times_ms[step.value] = int((self._clock() - self._step_started) * 1000)
        self.current_step = None
        self._step_started = None

    def complete(self) -> Status:
        if self.next_step is not None:
            raise IllegalTransitionError(
                f"Portal {self.portal_id}: cannot complete before {self.next_step.value}"
            )
        self._move_to(Status.COMPLETED)
        return self.status

    def fail(self) -> Status:
        self._move_to(Status.FAILED)
        self.current_step = None
        return self.status
