"""Journey controller - sequences the career journey one stage at a time.

Determines the current stage from persisted state, runs that stage's remote
executor, reports the outcome, reloads state and advances. Stages that need
no user decision advance on their own after a short pause.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set, Union

from ..models import ControllerConfig, JourneyState, StageResult, StepDescriptor, StepStatus
from ..services import BackendServiceError, JourneyStore
from .stages import (
    Stage,
    UnknownStageError,
    determine_current_step,
    predecessor_flag,
    spec_for,
    status_message_for,
)

logger = logging.getLogger(__name__)


Listener = Callable[["JourneyController"], None]


class Notifier(Protocol):
    """Receives user-facing success and failure notices."""

    def success(self, message: str) -> None:
        ...

    def failure(self, message: str) -> None:
        ...


class LoggingNotifier:
    def success(self, message: str) -> None:
        logger.info(message)

    def failure(self, message: str) -> None:
        logger.warning(message)


class StageExecutors(Protocol):
    """One remote operation per stage; see StageExecutorService."""

    async def execute_career_analysis(self) -> StageResult: ...
    async def execute_skill_validation(self, selection: Any = None) -> StageResult: ...
    async def execute_learning_plan(self, selection: Any = None) -> StageResult: ...
    async def execute_project_ideas(self) -> StageResult: ...
    async def execute_project_plan(self, selection: Any = None) -> StageResult: ...
    async def execute_project_build(self, selection: Any = None) -> StageResult: ...
    async def execute_resume_upgrade(self) -> StageResult: ...
    async def execute_job_matching(self) -> StageResult: ...
    async def execute_interview_prep(self, selection: Any = None) -> StageResult: ...


def _step_id(step_id: Union[str, Stage]) -> str:
    return step_id.value if isinstance(step_id, Stage) else str(step_id)


class JourneyController:
    """Single authority over which stage a user is in and whether it may run.

    The controller is either idle or executing exactly one step
    (``executing_step``); while executing, every other ``execute_step`` call
    is ignored. It only reads journey state; stage executors set the
    completion flags.

    Usage:
        controller = JourneyController(store, executors, config.controller)
        await controller.load()
        if controller.can_execute("career_analysis"):
            await controller.execute_step("career_analysis")
        await controller.wait_idle()
    """

    def __init__(
        self,
        store: JourneyStore,
        executors: StageExecutors,
        config: Optional[ControllerConfig] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.store = store
        self.executors = executors
        self.config = config or ControllerConfig()
        self.notifier = notifier or LoggingNotifier()

        self.journey_state = JourneyState()
        self.current_step: Optional[StepDescriptor] = None
        self.status_message = status_message_for(None)

        self._executing: Optional[str] = None
        self._selections: Dict[Stage, Any] = {}
        self._listeners: List[Listener] = []
        self._tasks: Set[asyncio.Task] = set()
        self._auto_timer: Optional[asyncio.Task] = None
        self._closed = False

    # === Presentation-facing state ===

    @property
    def is_executing(self) -> bool:
        return self._executing is not None

    @property
    def executing_step(self) -> Optional[str]:
        return self._executing

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def can_execute(self, step_id: Union[str, Stage]) -> bool:
        if self.is_executing or self.current_step is None:
            return False
        if self.current_step.status == StepStatus.BLOCKED:
            return False
        return self.current_step.id == _step_id(step_id)

    # === State loading ===

    async def load(self) -> JourneyState:
        """Reload journey state and recompute the current step."""
        self.status_message = "Loading your progress..."
        try:
            state = await self.store.load_state()
        except BackendServiceError as e:
            logger.error(f"Error loading journey state: {e}")
            self.status_message = "Error loading state"
            self._changed()
            return self.journey_state

        self.journey_state = state
        await self._enter(determine_current_step(state))
        return state

    async def _enter(self, step: StepDescriptor) -> None:
        if step.status == StepStatus.PENDING:
            step.data = await self._load_auxiliary(Stage(step.id))

        if self.current_step is None or self.current_step.id != step.id:
            logger.info(f"Current step: {step.id} ({step.status.value})")
        self.current_step = step
        self.status_message = status_message_for(step)
        self._changed()

    async def _load_auxiliary(self, stage: Stage) -> Any:
        """Fetch the options a stage needs before it can be acted on.

        Failures degrade to the empty shape so navigation is never blocked.
        """
        selected_project = self._selections.get(Stage.PROJECT_PLAN)
        if isinstance(selected_project, dict):
            project_id = selected_project.get("project_id") or selected_project.get("id")
        else:
            project_id = selected_project

        loaders: Dict[Stage, Callable[[], Awaitable[Any]]] = {
            Stage.SKILL_VALIDATION: lambda: self.store.load_career_matches(),
            Stage.LEARNING_PLAN: lambda: self.store.load_missing_skills(),
            Stage.PROJECT_PLAN: lambda: self.store.load_project_ideas(),
            Stage.PROJECT_BUILD: lambda: self.store.load_project_plan(project_id),
            Stage.INTERVIEW_PREP: lambda: self.store.load_job_matches(),
        }
        keys = {
            Stage.SKILL_VALIDATION: ("career_matches", []),
            Stage.LEARNING_PLAN: ("missing_skills", []),
            Stage.PROJECT_PLAN: ("projects", []),
            Stage.PROJECT_BUILD: ("project_plan", None),
            Stage.INTERVIEW_PREP: ("jobs", []),
        }

        if stage not in loaders:
            return None

        key, empty = keys[stage]
        try:
            value = await loaders[stage]()
        except Exception as e:
            logger.warning(f"Could not load options for {stage.value}: {e}")
            value = empty

        data = {key: value if value is not None else empty}
        if stage is Stage.PROJECT_BUILD:
            data["project"] = selected_project
        return data

    # === Execution ===

    async def execute_step(self, step_id: Union[str, Stage], selection: Any = None) -> None:
        """Run the current step's remote executor.

        A no-op unless ``can_execute(step_id)``. Failures leave the step
        pending with ``error`` set so the same call can be retried.
        """
        if not self.can_execute(step_id):
            logger.debug(f"Ignoring execute_step({_step_id(step_id)}): not executable now")
            return

        step = self.current_step
        self._executing = step.id
        step.status = StepStatus.EXECUTING

        spec = None
        error: Optional[str] = None
        result: Optional[StageResult] = None

        try:
            try:
                spec = spec_for(step.id)
                self.status_message = spec.status_message
                self._changed()

                method = getattr(self.executors, spec.executor)
                call = method(selection) if spec.accepts_selection else method()
                result = await asyncio.wait_for(call, timeout=self.config.stage_timeout)
                if not result.success:
                    error = result.error or f"{spec.name} failed"
            except asyncio.CancelledError:
                logger.info(f"Step {step.id} cancelled")
                step.status = StepStatus.PENDING
                self.status_message = status_message_for(step)
                raise
            except UnknownStageError as e:
                error = str(e)
            except asyncio.TimeoutError:
                error = f"{spec.name} timed out after {self.config.stage_timeout:g}s"
            except Exception as e:
                logger.exception(f"Error executing step {step.id}")
                error = str(e) or type(e).__name__

            if error is not None:
                logger.warning(f"Step {step.id} failed: {error}")
                step.status = StepStatus.PENDING
                step.error = error
                step.attempts += 1
                self.status_message = "Error occurred. Retry to continue."
                self.notifier.failure(f"Failed: {error}")
            else:
                logger.info(f"Step {step.id} completed")
                step.status = StepStatus.COMPLETED
                step.data = result.data
                step.error = None
                if spec.accepts_selection and selection is not None:
                    self._selections[spec.stage] = selection
                self.status_message = f"{spec.name} completed!"
                self.notifier.success(f"{spec.name} completed successfully!")
                self._schedule(self.config.reload_delay, self.load)
        finally:
            self._executing = None
            self._changed()

    # === Auto-advance ===

    def _observe(self) -> None:
        """Arm the auto-advance timer when the current stage needs no choice.

        Re-observing disarms any timer that has not fired yet, so a pending
        stage is auto-executed at most once.
        """
        if self._auto_timer is not None and not self._auto_timer.done():
            self._auto_timer.cancel()
        self._auto_timer = None

        step = self.current_step
        if self._closed or self.is_executing or step is None:
            return
        if step.status != StepStatus.PENDING or step.error:
            return

        try:
            spec = spec_for(step.id)
        except UnknownStageError:
            return
        if not spec.auto_advance or getattr(self.journey_state, spec.flag):
            return
        previous = predecessor_flag(spec.stage)
        if previous and not getattr(self.journey_state, previous):
            return

        selection = None
        if spec.stage is Stage.PROJECT_BUILD and isinstance(step.data, dict):
            selection = step.data.get("project")

        self._auto_timer = self._spawn(self._auto_execute(step.id, selection))

    async def _auto_execute(self, step_id: str, selection: Any) -> None:
        await asyncio.sleep(self.config.auto_advance_delay)
        # Detach first: the execution below re-observes and must not cancel itself.
        self._auto_timer = None

        step = self.current_step
        if step is None or step.id != step_id or step.status != StepStatus.PENDING:
            return
        logger.info(f"Auto-advancing: {step_id}")
        await self.execute_step(step_id, selection)

    # === Task bookkeeping ===

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Journey listener failed")
        self._observe()

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background journey task failed: {task.exception()}")

    def _schedule(self, delay: float, action: Callable[[], Awaitable[Any]]) -> None:
        async def delayed():
            await asyncio.sleep(delay)
            if not self._closed:
                await action()

        self._spawn(delayed())

    async def wait_idle(self) -> None:
        """Wait until no reload or auto-advance work is scheduled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel scheduled work; later completions no longer touch the controller."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
