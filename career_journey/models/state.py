from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# Completion flags in pipeline order (the two resume gates come first).
GATE_FLAGS = ("resume_uploaded", "resume_parsed")

STAGE_FLAGS = (
    "career_analysis_completed",
    "skill_validation_completed",
    "learning_plan_completed",
    "project_guidance_completed",
    "project_plan_completed",
    "project_build_completed",
    "resume_completed",
    "job_matching_completed",
    "interview_completed",
)


class StepStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class JourneyState(BaseModel):
    """Persisted completion flags for one user's journey.

    Stages are assumed to complete in order, so a later flag should never be
    true while an earlier one is false. Nothing enforces this; see
    ``out_of_order_flags`` for detection.
    """
    resume_uploaded: bool = False
    resume_parsed: bool = False
    career_analysis_completed: bool = False
    skill_validation_completed: bool = False
    learning_plan_completed: bool = False
    project_guidance_completed: bool = False
    project_plan_completed: bool = False
    project_build_completed: bool = False
    resume_completed: bool = False
    job_matching_completed: bool = False
    interview_completed: bool = False

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> "JourneyState":
        """Build a state from a store record, treating missing or null flags as False."""
        record = record or {}
        return cls(**{
            flag: bool(record.get(flag))
            for flag in GATE_FLAGS + STAGE_FLAGS
        })

    @property
    def resume_ready(self) -> bool:
        return self.resume_uploaded and self.resume_parsed

    def out_of_order_flags(self) -> List[str]:
        """Flags set while an earlier stage flag is still unset."""
        seen_incomplete = False
        violations: List[str] = []
        for flag in STAGE_FLAGS:
            if not getattr(self, flag):
                seen_incomplete = True
            elif seen_incomplete:
                violations.append(flag)
        return violations


class StepDescriptor(BaseModel):
    """The controller's view of the stage the user is currently in.

    Rebuilt on every recomputation; ``data`` holds either the auxiliary
    options fetched on entry or the result of a successful execution.
    """
    id: str
    name: str
    status: StepStatus = StepStatus.PENDING
    data: Any = None
    error: Optional[str] = None
    attempts: int = Field(
        default=0,
        description="Failed execution attempts since the step was entered"
    )


class StageResult(BaseModel):
    """Outcome of one remote stage executor call."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    next_step: Optional[str] = None
