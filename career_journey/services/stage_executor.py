"""Remote stage executors - one edge function call per journey stage."""

import logging
from typing import Any, Dict, List, Optional

from ..models import StageResult
from .backend_service import BackendService

logger = logging.getLogger(__name__)


def _pick(selection: Any, *keys: str) -> Optional[Any]:
    """Read the first present key from a dict selection, or use a scalar as-is."""
    if selection is None:
        return None
    if isinstance(selection, dict):
        for key in keys:
            if selection.get(key) is not None:
                return selection[key]
        return None
    return selection


class StageExecutorService:
    """Invokes the edge function behind each stage and folds the outcome
    into a StageResult.

    Every edge function stores its own output and sets the stage's
    completion flag on success, so nothing here writes journey state.
    Failures never raise out of an ``execute_*`` method.

    Usage:
        executors = StageExecutorService(backend, resume_id, career_goal="Data Engineer")
        result = await executors.execute_career_analysis()
    """

    def __init__(
        self,
        backend: BackendService,
        resume_id: str,
        career_goal: Optional[str] = None,
    ):
        self.backend = backend
        self.resume_id = resume_id
        self.career_goal = career_goal

    async def _run(self, function: str, extra: Optional[Dict[str, Any]] = None) -> StageResult:
        body: Dict[str, Any] = {"resume_id": self.resume_id}
        body.update(extra or {})

        try:
            payload = await self.backend.invoke_function(function, body)
        except Exception as e:
            logger.error(f"{function} execution failed: {e}")
            return StageResult(success=False, error=str(e) or type(e).__name__)

        success = bool(payload.get("success", True))
        if not success:
            error = payload.get("error") or f"{function} failed"
            logger.warning(f"{function} reported failure: {error}")
            return StageResult(success=False, error=error)

        data = payload.get("data")
        if data is None:
            data = {k: v for k, v in payload.items() if k not in ("success", "error")}
        return StageResult(success=True, data=data, next_step=payload.get("next_step"))

    async def execute_career_analysis(self) -> StageResult:
        return await self._run("career-analysis")

    async def execute_skill_validation(self, selection: Any = None) -> StageResult:
        """Validate skills against the picked career match.

        Falls back to the configured career goal; with neither, the remote
        side uses the short-term role from career analysis.
        """
        target_role = _pick(selection, "role", "target_role", "title") or self.career_goal
        extra = {"target_role": str(target_role).strip()} if target_role else {}
        return await self._run("skill-validation", extra)

    async def execute_learning_plan(self, selection: Any = None) -> StageResult:
        skills: List[Any] = []
        if isinstance(selection, (list, tuple)):
            skills = [s for s in selection if s]
        elif selection:
            skill = _pick(selection, "skill", "skill_name", "name")
            skills = [skill] if skill else []
        return await self._run("learning-plan", {"skills": skills} if skills else None)

    async def execute_project_ideas(self) -> StageResult:
        return await self._run("project-generation")

    async def execute_project_plan(self, selection: Any = None) -> StageResult:
        if not isinstance(selection, dict):
            return StageResult(success=False, error="Select a project idea to plan")

        return await self._run("generate-project-plan", {
            "project_id": _pick(selection, "project_id", "id"),
            "title": selection.get("title"),
            "problem": selection.get("problem"),
            "description": selection.get("description"),
        })

    async def execute_project_build(self, selection: Any = None) -> StageResult:
        extra: Dict[str, Any] = {"action": "start"}
        if isinstance(selection, dict):
            extra["project_id"] = _pick(selection, "project_id", "id")
            extra["project_data"] = selection
        elif selection is not None:
            extra["project_id"] = selection
        return await self._run("project-builder", extra)

    async def execute_resume_upgrade(self) -> StageResult:
        return await self._run("resume-upgrade")

    async def execute_job_matching(self) -> StageResult:
        return await self._run("job-matching")

    async def execute_interview_prep(self, selection: Any = None) -> StageResult:
        job_id = _pick(selection, "id", "job_id")
        if not job_id:
            return StageResult(success=False, error="Select a job to prepare for")
        return await self._run("interview-prep", {"job_id": job_id})
