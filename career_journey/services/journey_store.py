"""Read-only access to persisted journey state and stage outputs."""

import logging
from typing import Any, Dict, List, Optional

from ..models import JourneyState
from .backend_service import BackendService

logger = logging.getLogger(__name__)


class JourneyStore:
    """Reads a resume's journey flags and the results earlier stages stored.

    The store never writes: completion flags are set by the remote stage
    executors themselves.
    """

    STATE_RPC = "get_sigma_journey_state"

    def __init__(self, backend: BackendService, resume_id: str):
        self.backend = backend
        self.resume_id = resume_id

    @property
    def _key(self) -> Dict[str, str]:
        return {"resume_id": self.resume_id}

    async def load_state(self) -> JourneyState:
        """Load the current JourneyState.

        ``resume_uploaded`` / ``resume_parsed`` come from the resume row;
        stage flags come from the journey-state RPC.
        """
        resume = await self.backend.select_one(
            "resume_store", self._key, columns="resume_id,parsed_data"
        )
        record = await self.backend.rpc(self.STATE_RPC, {"p_resume_id": self.resume_id})

        # The RPC may hand back a single row wrapped in a list.
        if isinstance(record, list):
            record = record[0] if record else None
        if record is not None and not isinstance(record, dict):
            logger.warning(f"Unexpected journey state payload: {type(record).__name__}")
            record = None

        flags = dict(record or {})
        flags["resume_uploaded"] = resume is not None
        flags["resume_parsed"] = bool(resume and resume.get("parsed_data"))

        state = JourneyState.from_record(flags)
        violations = state.out_of_order_flags()
        if violations:
            logger.warning(
                f"Journey {self.resume_id} has stages completed out of order: {violations}"
            )
        return state

    async def load_career_matches(self) -> List[Dict[str, Any]]:
        """Career roles proposed by the career analysis stage."""
        row = await self.backend.select_one(
            "career_analysis_result", self._key, columns="career_roles,created_at"
        )
        return list((row or {}).get("career_roles") or [])

    async def load_missing_skills(self) -> List[Any]:
        """Skills the latest skill validation found missing."""
        row = await self.backend.select_one(
            "skill_validation_result", self._key,
            columns="target_role,missing_skills,created_at",
        )
        return list((row or {}).get("missing_skills") or [])

    async def load_project_ideas(self) -> List[Dict[str, Any]]:
        return await self.backend.select(
            "project_ideas_result", self._key, order="created_at"
        )

    async def load_project_plan(self, project_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not project_id:
            return None
        return await self.backend.select_one(
            "project_detail", {"project_id": project_id}, order=None
        )

    async def load_job_matches(self) -> List[Dict[str, Any]]:
        return await self.backend.select(
            "job_matching_result", self._key, order="relevance_score"
        )
