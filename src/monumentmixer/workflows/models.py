"""Data models for the monument workflow state."""

import logging
from dataclasses import dataclass
from enum import Enum

from monumentmixer.core.image_codec import ImagePayload, ImageSource
from monumentmixer.core.prompts import DEFAULT_MONUMENT_PROMPT

logger = logging.getLogger(__name__)


class WorkflowStep(str, Enum):
    """Wizard steps, in forward order."""

    CREATE_MONUMENT = "create_monument"
    PLACE_IN_SCENE = "place_in_scene"
    SHARE = "share"

    @property
    def index(self) -> int:
        return list(WorkflowStep).index(self)


class MonumentMode(str, Enum):
    PROMPT = "prompt"
    UPLOAD = "upload"


class SceneMode(str, Enum):
    UPLOAD = "upload"
    PROMPT = "prompt"


class FailureKind(str, Enum):
    """Classification of a failed action, used to pick the user-facing message."""

    INPUT = "input"
    READ = "read"
    FORMAT = "format"
    TRANSPORT = "transport"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED = "quota_exceeded"
    EMPTY_RESPONSE = "empty_response"


@dataclass(frozen=True)
class StepError:
    """An error shown on the step where it happened.

    Attributes:
        kind: Failure classification.
        message: User-facing message.
        step: Step the error belongs to.
    """

    kind: FailureKind
    message: str
    step: WorkflowStep


@dataclass
class WorkflowState:
    """All wizard fields for one session.

    Only :class:`~monumentmixer.workflows.monument.MonumentWorkflow` mutates
    this object.  ``epoch`` is bumped whenever a change makes in-flight
    results obsolete (navigation, mode switches, new scene uploads, reset).
    """

    step: WorkflowStep = WorkflowStep.CREATE_MONUMENT

    # Create Monument
    monument_mode: MonumentMode = MonumentMode.PROMPT
    monument_prompt: str = DEFAULT_MONUMENT_PROMPT
    monument_file: ImageSource | None = None
    monument_image: ImagePayload | None = None

    # Place in Scene
    scene_mode: SceneMode = SceneMode.UPLOAD
    scene_prompt: str = ""
    scene_file: ImageSource | None = None
    scene_image: ImagePayload | None = None
    scene_description: str = ""
    placement_instruction: str = ""

    # Share
    final_image: ImagePayload | None = None

    # Transient status
    is_busy: bool = False
    is_describing: bool = False
    error: StepError | None = None
    notice: str | None = None
    needs_credential: bool = False
    epoch: int = 0

    def can_advance(self) -> bool:
        """Whether the current step's output exists, so the next step may open."""
        if self.step is WorkflowStep.CREATE_MONUMENT:
            return self.monument_image is not None
        if self.step is WorkflowStep.PLACE_IN_SCENE:
            return self.final_image is not None
        return False

    def __repr__(self) -> str:
        return (
            f"WorkflowState(step={self.step.value}, "
            f"monument={'yes' if self.monument_image else 'no'}, "
            f"scene={'yes' if self.scene_image else 'no'}, "
            f"final={'yes' if self.final_image else 'no'}, "
            f"busy={self.is_busy}, describing={self.is_describing})"
        )
