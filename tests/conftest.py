"""Shared pytest fixtures: an in-memory journey store and stub stage executors."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from career_journey.core import STAGE_TABLE, JourneyController
from career_journey.models import ControllerConfig, JourneyState, StageResult
from career_journey.services import BackendServiceError


class FakeJourneyStore:
    """Mimics JourneyStore over plain attributes."""

    def __init__(self, state: Optional[JourneyState] = None):
        self.state = state or JourneyState()
        self.career_matches: List[Dict[str, Any]] = [{"role": "Data Engineer", "match_score": 82}]
        self.missing_skills: List[Any] = ["Spark", "Airflow"]
        self.project_ideas: List[Dict[str, Any]] = [{"id": "p1", "title": "Streaming ETL"}]
        self.project_plans: Dict[str, Dict[str, Any]] = {"p1": {"project_id": "p1", "tasks": []}}
        self.job_matches: List[Dict[str, Any]] = [{"id": "j1", "job_title": "Data Engineer"}]
        self.fail_auxiliary = False
        self.fail_state = False
        self.state_loads = 0

    async def load_state(self) -> JourneyState:
        self.state_loads += 1
        if self.fail_state:
            raise BackendServiceError("state unavailable")
        return self.state.model_copy()

    async def _auxiliary(self, value):
        if self.fail_auxiliary:
            raise BackendServiceError("options unavailable")
        return value

    async def load_career_matches(self):
        return await self._auxiliary(self.career_matches)

    async def load_missing_skills(self):
        return await self._auxiliary(self.missing_skills)

    async def load_project_ideas(self):
        return await self._auxiliary(self.project_ideas)

    async def load_project_plan(self, project_id):
        return await self._auxiliary(self.project_plans.get(project_id))

    async def load_job_matches(self):
        return await self._auxiliary(self.job_matches)


class StubExecutors:
    """Stage executors that flip the store's flag on success, like the remote side does."""

    FLAGS = {spec.executor: spec.flag for spec in STAGE_TABLE}

    def __init__(self, store: FakeJourneyStore):
        self.store = store
        self.results: Dict[str, Any] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.gate: Optional[asyncio.Event] = None

    async def _run(self, name: str, selection: Any = None) -> StageResult:
        self.calls.append((name, selection))
        if self.gate is not None:
            await self.gate.wait()

        result = self.results.get(name, StageResult(success=True, data={"stage": name}))
        if isinstance(result, Exception):
            raise result
        if result.success:
            setattr(self.store.state, self.FLAGS[name], True)
        return result

    async def execute_career_analysis(self):
        return await self._run("execute_career_analysis")

    async def execute_skill_validation(self, selection=None):
        return await self._run("execute_skill_validation", selection)

    async def execute_learning_plan(self, selection=None):
        return await self._run("execute_learning_plan", selection)

    async def execute_project_ideas(self):
        return await self._run("execute_project_ideas")

    async def execute_project_plan(self, selection=None):
        return await self._run("execute_project_plan", selection)

    async def execute_project_build(self, selection=None):
        return await self._run("execute_project_build", selection)

    async def execute_resume_upgrade(self):
        return await self._run("execute_resume_upgrade")

    async def execute_job_matching(self):
        return await self._run("execute_job_matching")

    async def execute_interview_prep(self, selection=None):
        return await self._run("execute_interview_prep", selection)

    @property
    def called(self) -> List[str]:
        return [name for name, _ in self.calls]


class RecordingNotifier:
    def __init__(self):
        self.successes: List[str] = []
        self.failures: List[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def failure(self, message: str) -> None:
        self.failures.append(message)


def journey_state(*completed: str, resume: bool = True) -> JourneyState:
    """A JourneyState with the resume gates open and the given flags set."""
    flags = {flag: True for flag in completed}
    return JourneyState(resume_uploaded=resume, resume_parsed=resume, **flags)


@pytest.fixture
def store() -> FakeJourneyStore:
    return FakeJourneyStore(journey_state())


@pytest.fixture
def executors(store) -> StubExecutors:
    return StubExecutors(store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def fast_config() -> ControllerConfig:
    return ControllerConfig(auto_advance_delay=0.0, reload_delay=0.0, stage_timeout=5.0)


@pytest.fixture
def controller(store, executors, fast_config, notifier) -> JourneyController:
    return JourneyController(store, executors, fast_config, notifier=notifier)
