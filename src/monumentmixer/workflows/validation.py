"""Validation of workflow inputs before any generation call is made."""

import logging

from .models import MonumentMode, SceneMode, WorkflowState

logger = logging.getLogger(__name__)


class InputValidationError(Exception):
    """User-friendly validation error.

    Raised when a required prompt or image is missing, or an action is not
    allowed in the current state.  The message is intended to be displayed
    directly to the user.
    """

    pass


def _is_blank(text: str | None) -> bool:
    return not text or not text.strip()


def validate_idle(state: WorkflowState) -> None:
    """Refuse a new action while another generation call is in flight."""
    if state.is_busy:
        raise InputValidationError("A generation is already in progress. Please wait.")


def validate_monument_from_prompt(state: WorkflowState) -> None:
    """Validate inputs for generating a monument from a text prompt.

    Raises:
        InputValidationError: If the state is busy, in the wrong mode, or the
            prompt is empty.
    """
    validate_idle(state)
    if state.monument_mode is not MonumentMode.PROMPT:
        raise InputValidationError("Switch to 'Describe it' to generate from a prompt.")
    if _is_blank(state.monument_prompt):
        raise InputValidationError("Please describe the monument you want to create.")


def validate_monument_from_image(state: WorkflowState) -> None:
    """Validate inputs for generating a monument from an uploaded image.

    Raises:
        InputValidationError: If the state is busy, in the wrong mode, or the
            upload or style text is missing.
    """
    validate_idle(state)
    if state.monument_mode is not MonumentMode.UPLOAD:
        raise InputValidationError("Switch to 'Upload an image' to generate from an image.")
    if state.monument_file is None:
        raise InputValidationError("Please upload an image to turn into a monument.")
    if _is_blank(state.monument_prompt):
        raise InputValidationError("Please describe the style of the monument.")


def validate_placement(state: WorkflowState) -> None:
    """Validate inputs for placing the monument in a scene.

    Raises:
        InputValidationError: If there is no monument, no scene for the
            selected scene mode, no placement instruction, or a call (or
            the scene description) is still running.
    """
    validate_idle(state)
    if state.monument_image is None:
        raise InputValidationError("Create a monument before placing it in a scene.")
    if state.scene_mode is SceneMode.UPLOAD:
        if state.scene_file is None or state.scene_image is None:
            raise InputValidationError("Please upload a scene image.")
        if state.is_describing:
            raise InputValidationError("Still analyzing the scene. Please wait a moment.")
    elif _is_blank(state.scene_prompt):
        raise InputValidationError("Please describe the scene to generate.")
    if _is_blank(state.placement_instruction):
        raise InputValidationError("Please describe where to place the monument.")
