"""External service integrations."""

from .backend_service import BackendService, BackendServiceError, FunctionInvocationError
from .journey_store import JourneyStore
from .stage_executor import StageExecutorService

__all__ = [
    "BackendService",
    "BackendServiceError",
    "FunctionInvocationError",
    "JourneyStore",
    "StageExecutorService",
]
