"""Core journey sequencing for the career journey controller."""

from .stages import (
    COMPLETED,
    ENTRY_GATE,
    STAGE_TABLE,
    Stage,
    StageSpec,
    UnknownStageError,
    determine_current_step,
    spec_for,
)
from .controller import JourneyController, LoggingNotifier, Notifier, StageExecutors

__all__ = [
    "COMPLETED",
    "ENTRY_GATE",
    "STAGE_TABLE",
    "Stage",
    "StageSpec",
    "UnknownStageError",
    "determine_current_step",
    "spec_for",
    "JourneyController",
    "LoggingNotifier",
    "Notifier",
    "StageExecutors",
]
