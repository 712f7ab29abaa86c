"""Workflow orchestration for the monument wizard.

The workflow chains the generation calls of the three wizard steps (Create
Monument, Place in Scene, Share), threading each step's artifacts into the
next step's prompts.

Modules
-------
models
    Workflow state, steps, modes and failure kinds.
validation
    Input checks run before any generation call.
failures
    Classification of call failures into user-facing messages.
monument
    :class:`MonumentWorkflow`, the per-session controller.
"""

from monumentmixer.workflows.models import (
    FailureKind,
    MonumentMode,
    SceneMode,
    StepError,
    WorkflowState,
    WorkflowStep,
)
from monumentmixer.workflows.monument import MonumentWorkflow
from monumentmixer.workflows.validation import InputValidationError

__all__ = [
    "FailureKind",
    "InputValidationError",
    "MonumentMode",
    "MonumentWorkflow",
    "SceneMode",
    "StepError",
    "WorkflowState",
    "WorkflowStep",
]
