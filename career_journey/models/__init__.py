"""Pydantic models for the career journey controller."""

from .state import (
    GATE_FLAGS,
    STAGE_FLAGS,
    JourneyState,
    StageResult,
    StepDescriptor,
    StepStatus,
)
from .config import AppConfig, BackendConfig, ControllerConfig

__all__ = [
    "GATE_FLAGS",
    "STAGE_FLAGS",
    "JourneyState",
    "StageResult",
    "StepDescriptor",
    "StepStatus",
    "AppConfig",
    "BackendConfig",
    "ControllerConfig",
]
