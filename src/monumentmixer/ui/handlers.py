"""UI event handlers for the monument wizard.

Every handler takes the session workflow (``None`` on the first event) plus
the raw component values, applies one workflow action, and returns
:func:`render` output: the session followed by one update per wizard
component, in :data:`RENDER_FIELDS` order.

Input problems are already recorded on the workflow state by the time an
:class:`InputValidationError` reaches a handler, so handlers only need to
re-render.  Anything unexpected is logged and shown on the current step.
"""

import inspect
import logging
from pathlib import Path
from typing import Any

import gradio as gr

from monumentmixer.core.image_codec import to_pil_image
from monumentmixer.workflows.models import MonumentMode, SceneMode, WorkflowState, WorkflowStep
from monumentmixer.workflows.monument import MonumentWorkflow
from monumentmixer.workflows.validation import InputValidationError

from .state import initialize_session

logger = logging.getLogger(__name__)

MONUMENT_MODE_LABELS = {
    "Describe it": MonumentMode.PROMPT,
    "Upload an image": MonumentMode.UPLOAD,
}
SCENE_MODE_LABELS = {
    "Upload a scene": SceneMode.UPLOAD,
    "Describe a scene": SceneMode.PROMPT,
}

# Order of the values returned by render(), after the session itself.
RENDER_FIELDS = (
    "create_column",
    "place_column",
    "share_column",
    "credential_status",
    "monument_mode",
    "monument_prompt",
    "monument_upload",
    "monument_image",
    "create_status",
    "scene_mode",
    "scene_upload",
    "scene_prompt",
    "placement_instruction",
    "place_status",
    "final_image",
)


def _label_for(labels: dict, mode) -> str:
    return next(label for label, value in labels.items() if value is mode)


def _upload_value(file) -> str | None:
    # Only file paths can be shown back in an upload component.
    return str(file) if isinstance(file, (str, Path)) else None


def format_status(state: WorkflowState, step: WorkflowStep, message: str | None = None) -> str:
    """Build the status line shown under a wizard step.

    Args:
        state: Current workflow state
        step: Step the status line belongs to
        message: Unexpected-error text to show instead (current step only)

    Returns:
        Markdown status text
    """
    if message and step is state.step:
        return f"❌ **Error:** {message}"
    if state.error is not None and state.error.step is step:
        return f"❌ **Error:** {state.error.message}"

    if step is WorkflowStep.CREATE_MONUMENT:
        if state.is_busy:
            return "⏳ *Sculpting your monument...*"
        if state.monument_image is not None:
            return "✅ **Monument ready.** Continue to place it in a scene."
        return "*Describe a monument or upload an image to get started*"

    if step is WorkflowStep.PLACE_IN_SCENE:
        if state.is_busy:
            return "⏳ *Placing your monument...*"
        if state.is_describing:
            return "⏳ *Analyzing your scene...*"
        if state.notice:
            return f"⚠️ {state.notice}"
        return "*Choose a scene and describe where the monument should go*"

    return "🎉 **Your monument is in place!** Download the image to share it."


def format_credential_status(workflow: MonumentWorkflow) -> str:
    """Build the API key status line (empty when the key is server-side)."""
    if not workflow.backend.client_supplied_credentials:
        return ""
    if workflow.state.needs_credential:
        return "🔑 **Enter your Gemini API key** to start. It is kept for this session only."
    return "✅ API key set for this session."


def render(workflow: MonumentWorkflow, message: str | None = None) -> tuple:
    """Render the whole wizard from the workflow state.

    Args:
        workflow: Session workflow
        message: Unexpected-error text for the current step

    Returns:
        Tuple of (workflow, *updates) in RENDER_FIELDS order
    """
    state = workflow.state
    upload_monument = state.monument_mode is MonumentMode.UPLOAD
    upload_scene = state.scene_mode is SceneMode.UPLOAD

    return (
        workflow,
        gr.update(visible=state.step is WorkflowStep.CREATE_MONUMENT),
        gr.update(visible=state.step is WorkflowStep.PLACE_IN_SCENE),
        gr.update(visible=state.step is WorkflowStep.SHARE),
        format_credential_status(workflow),
        gr.update(value=_label_for(MONUMENT_MODE_LABELS, state.monument_mode)),
        gr.update(
            value=state.monument_prompt,
            label="Monument style" if upload_monument else "Describe your monument",
        ),
        gr.update(visible=upload_monument, value=_upload_value(state.monument_file)),
        to_pil_image(state.monument_image) if state.monument_image else None,
        format_status(state, WorkflowStep.CREATE_MONUMENT, message),
        gr.update(value=_label_for(SCENE_MODE_LABELS, state.scene_mode)),
        gr.update(visible=upload_scene, value=_upload_value(state.scene_file)),
        gr.update(visible=not upload_scene, value=state.scene_prompt),
        gr.update(value=state.placement_instruction),
        format_status(state, WorkflowStep.PLACE_IN_SCENE, message),
        to_pil_image(state.final_image) if state.final_image else None,
    )


async def _apply(session: MonumentWorkflow | None, action) -> tuple:
    """Run *action* on the session workflow and render the result."""
    workflow = initialize_session(session)
    try:
        result = action(workflow)
        if inspect.isawaitable(result):
            await result
    except InputValidationError as e:
        logger.info(f"Input rejected: {e}")
    except Exception as e:
        logger.error(f"Unexpected error in UI handler: {e}", exc_info=True)
        return render(workflow, message=str(e))
    return render(workflow)


async def set_api_key_handler(key: str, session: MonumentWorkflow | None) -> tuple:
    """Store the API key typed by the user.

    Returns:
        render() output followed by a cleared key textbox
    """
    rendered = await _apply(session, lambda wf: wf.set_api_key(key))
    return (*rendered, gr.update(value=""))


async def monument_mode_handler(label: str, session: MonumentWorkflow | None) -> tuple:
    return await _apply(
        session, lambda wf: wf.select_monument_mode(MONUMENT_MODE_LABELS[label])
    )


async def generate_monument_handler(
    prompt: str, upload_path: str | None, session: MonumentWorkflow | None
) -> tuple:
    """Generate the monument from the prompt, or from the upload in upload mode."""

    async def action(wf: MonumentWorkflow) -> Any:
        wf.set_monument_prompt(prompt)
        if wf.state.monument_mode is MonumentMode.UPLOAD:
            wf.set_monument_file(upload_path)
            return await wf.generate_monument_from_image()
        return await wf.generate_monument()

    return await _apply(session, action)


async def next_step_handler(session: MonumentWorkflow | None) -> tuple:
    return await _apply(session, lambda wf: wf.advance())


async def back_handler(session: MonumentWorkflow | None) -> tuple:
    return await _apply(session, lambda wf: wf.back())


async def scene_mode_handler(label: str, session: MonumentWorkflow | None) -> tuple:
    return await _apply(session, lambda wf: wf.select_scene_mode(SCENE_MODE_LABELS[label]))


async def scene_upload_handler(upload_path: str | None, session: MonumentWorkflow | None) -> tuple:
    """Encode the uploaded scene and describe it automatically."""
    if not upload_path:
        return render(initialize_session(session))
    return await _apply(session, lambda wf: wf.upload_scene(upload_path))


async def place_monument_handler(
    scene_prompt: str, placement: str, session: MonumentWorkflow | None
) -> tuple:
    """Composite the monument into the scene."""

    async def action(wf: MonumentWorkflow) -> Any:
        wf.set_scene_prompt(scene_prompt)
        wf.set_placement_instruction(placement)
        return await wf.place_monument()

    return await _apply(session, action)


async def reset_handler(session: MonumentWorkflow | None) -> tuple:
    return await _apply(session, lambda wf: wf.reset())
