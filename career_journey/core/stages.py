"""Stage table for the career journey.

The journey is a fixed, linear sequence; the order of STAGE_TABLE is the
order of the pipeline. Every stage carries the JourneyState flag that marks
it done and the executor method that performs it.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Tuple, Union

from ..models import JourneyState, StepDescriptor, StepStatus


ENTRY_GATE = "entry_gate"
COMPLETED = "completed"


class UnknownStageError(ValueError):
    """Raised when a step id does not name an executable stage."""

    def __init__(self, step_id: str):
        super().__init__(f"Unknown step: {step_id}")
        self.step_id = step_id


class Stage(str, Enum):
    """Executable journey stages in pipeline order."""
    CAREER_ANALYSIS = "career_analysis"
    SKILL_VALIDATION = "skill_validation"
    LEARNING_PLAN = "learning_plan"
    PROJECT_IDEAS = "project_ideas"
    PROJECT_PLAN = "project_plan"
    PROJECT_BUILD = "project_build"
    RESUME_UPGRADE = "resume_upgrade"
    JOB_MATCHING = "job_matching"
    INTERVIEW_PREP = "interview_prep"


class StageSpec(NamedTuple):
    stage: Stage
    name: str
    flag: str
    executor: str
    accepts_selection: bool
    auto_advance: bool
    pending_message: str
    status_message: str


STAGE_TABLE: Tuple[StageSpec, ...] = (
    StageSpec(
        Stage.CAREER_ANALYSIS, "Career Analysis", "career_analysis_completed",
        "execute_career_analysis", False, False,
        "Ready to analyze your career path",
        "Analyzing your resume and identifying career paths...",
    ),
    StageSpec(
        Stage.SKILL_VALIDATION, "Skill Validation", "skill_validation_completed",
        "execute_skill_validation", True, False,
        "Choose a career path to validate your skills against",
        "Validating your skills against career requirements...",
    ),
    StageSpec(
        Stage.LEARNING_PLAN, "Learning Plan", "learning_plan_completed",
        "execute_learning_plan", True, False,
        "Choose the skills to build a learning plan for",
        "Generating your personalized learning roadmap...",
    ),
    StageSpec(
        Stage.PROJECT_IDEAS, "Project Ideas", "project_guidance_completed",
        "execute_project_ideas", False, True,
        "Generating project ideas...",
        "Creating project recommendations to build your portfolio...",
    ),
    StageSpec(
        Stage.PROJECT_PLAN, "Project Plan", "project_plan_completed",
        "execute_project_plan", True, False,
        "Pick a project to plan",
        "Planning your portfolio project...",
    ),
    StageSpec(
        Stage.PROJECT_BUILD, "Project Build", "project_build_completed",
        "execute_project_build", True, True,
        "Preparing your project build...",
        "Setting up the build workspace for your project...",
    ),
    StageSpec(
        Stage.RESUME_UPGRADE, "Resume Upgrade", "resume_completed",
        "execute_resume_upgrade", False, True,
        "Upgrading your resume...",
        "Rewriting your resume with your new skills and projects...",
    ),
    StageSpec(
        Stage.JOB_MATCHING, "Job Matching", "job_matching_completed",
        "execute_job_matching", False, True,
        "Finding matching jobs...",
        "Finding the best job matches for your profile...",
    ),
    StageSpec(
        Stage.INTERVIEW_PREP, "Interview Prep", "interview_completed",
        "execute_interview_prep", True, False,
        "Pick a job to prepare for",
        "Preparing your interview kit...",
    ),
)

_SPECS: Dict[Stage, StageSpec] = {spec.stage: spec for spec in STAGE_TABLE}

if set(_SPECS) != set(Stage) or len(_SPECS) != len(STAGE_TABLE):
    raise RuntimeError("STAGE_TABLE must list every Stage exactly once")


def spec_for(step_id: Union[str, Stage]) -> StageSpec:
    """Look up the table entry for a step id.

    Raises:
        UnknownStageError: If the id is not an executable stage
            (including the ``entry_gate`` and ``completed`` sinks).
    """
    try:
        return _SPECS[Stage(step_id)]
    except ValueError:
        raise UnknownStageError(str(step_id)) from None


def predecessor_flag(stage: Stage) -> Optional[str]:
    """Completion flag of the stage before this one (None for the first stage)."""
    index = STAGE_TABLE.index(_SPECS[stage])
    return STAGE_TABLE[index - 1].flag if index else None


def determine_current_step(state: JourneyState) -> StepDescriptor:
    """Pick the step the user is in: the first stage whose flag is unset.

    A missing or unparsed resume blocks the whole journey at the entry gate;
    a fully flagged state is the completed sink.
    """
    if not state.resume_ready:
        return StepDescriptor(
            id=ENTRY_GATE, name="Resume Required", status=StepStatus.BLOCKED
        )

    for spec in STAGE_TABLE:
        if not getattr(state, spec.flag):
            return StepDescriptor(
                id=spec.stage.value, name=spec.name, status=StepStatus.PENDING
            )

    return StepDescriptor(id=COMPLETED, name="Journey Complete", status=StepStatus.COMPLETED)


def status_message_for(step: Optional[StepDescriptor]) -> str:
    if step is None:
        return "Initializing..."
    if step.id == ENTRY_GATE:
        return "Resume required to begin"
    if step.id == COMPLETED:
        return "Career journey complete!"
    return spec_for(step.id).pending_message
