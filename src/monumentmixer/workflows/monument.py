"""The Create Monument → Place in Scene → Share workflow.

:class:`MonumentWorkflow` is the controller for one user session.  It owns a
:class:`~monumentmixer.workflows.models.WorkflowState`, is the only code that
mutates it, and runs every generation call through the
:class:`~monumentmixer.core.backends.GenerationBackend` it was built with.

State Machine
-------------
::

    CREATE_MONUMENT ──(monument exists)──> PLACE_IN_SCENE ──(composite exists)──> SHARE
          ^                                      │                                  │
          └──────────── back / reset ────────────┴──────────── back / reset ────────┘

- **Create Monument**: ``generate_monument()`` (prompt mode) or
  ``generate_monument_from_image()`` (upload mode).  Switching modes discards
  the generated monument and the uploaded file.
- **Place in Scene**: ``upload_scene()`` encodes the upload and immediately
  describes it to seed the placement instruction; a failed description falls
  back to a default instruction.  ``place_monument()`` composites the
  monument into the uploaded scene, or first generates a scene from its prompt.
  Success moves to Share.
- **Share**: terminal; ``reset()`` starts over.

Concurrency
-----------
Each action makes its calls one at a time and is single-flight: the busy flag
refuses a second action until the first finishes.  The scene description has
its own flag, and placement is refused until it finishes.  Calls cannot be
cancelled.  Instead every action records the state ``epoch`` when it starts,
and a result that arrives after the epoch moved on (navigation, mode switch,
new upload, reset) is discarded.

Failures
--------
Input problems raise :class:`InputValidationError` before any call is made.
Call failures are classified, stored in ``state.error`` and the action
returns ``None``; the rest of the state is left as it was before the action.
"""

import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from monumentmixer.core.backends import GenerationBackend
from monumentmixer.core.generation import GenerationError
from monumentmixer.core.image_codec import ImageCodecError, ImagePayload, ImageSource, encode
from monumentmixer.core.prompts import (
    DEFAULT_MONUMENT_PROMPT,
    DEFAULT_PLACEMENT_INSTRUCTION,
    DEFAULT_STYLE_PROMPT,
    placement_from_description,
)

from .failures import classify_failure, failure_message
from .models import (
    FailureKind,
    MonumentMode,
    SceneMode,
    StepError,
    WorkflowState,
    WorkflowStep,
)
from .validation import (
    InputValidationError,
    validate_idle,
    validate_monument_from_image,
    validate_monument_from_prompt,
    validate_placement,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MODE_DEFAULT_PROMPTS = {
    MonumentMode.PROMPT: DEFAULT_MONUMENT_PROMPT,
    MonumentMode.UPLOAD: DEFAULT_STYLE_PROMPT,
}


class MonumentWorkflow:
    """Session controller for the monument wizard.

    Args:
        backend: Generation backend chosen for this session.

    Attributes:
        backend: The backend every call goes through.
        state: Current wizard state.
    """

    def __init__(self, backend: GenerationBackend) -> None:
        self.backend = backend
        self.state = self._fresh_state()
        self._tokens = itertools.count(1)
        self._busy_token: int | None = None
        self._describe_token: int | None = None
        logger.info(f"MonumentWorkflow created with {backend.name} backend")

    def _fresh_state(self, epoch: int = 0) -> WorkflowState:
        return WorkflowState(
            epoch=epoch,
            needs_credential=(
                self.backend.client_supplied_credentials and not self.backend.has_credentials
            ),
        )

    # -- Credentials --------------------------------------------------------

    def set_api_key(self, key: str) -> None:
        """Store a user-supplied API key for this session."""
        self.backend.set_api_key(key)
        self.state.needs_credential = not self.backend.has_credentials

    # -- Field setters ------------------------------------------------------

    def set_monument_prompt(self, text: str) -> None:
        self.state.monument_prompt = text or ""

    def set_monument_file(self, file: ImageSource | None) -> None:
        self.state.monument_file = file

    def set_scene_prompt(self, text: str) -> None:
        self.state.scene_prompt = text or ""

    def set_placement_instruction(self, text: str) -> None:
        self.state.placement_instruction = text or ""

    def select_monument_mode(self, mode: MonumentMode | str) -> None:
        """Switch between describing and uploading the monument source.

        Always discards the generated monument, the uploaded file and any
        composite built from them, and resets the prompt to the mode default.
        """
        mode = MonumentMode(mode)
        state = self.state
        state.monument_mode = mode
        state.monument_prompt = _MODE_DEFAULT_PROMPTS[mode]
        state.monument_file = None
        state.monument_image = None
        state.final_image = None
        state.error = None
        self._invalidate()
        logger.info(f"Monument mode set to {mode.value}")

    def select_scene_mode(self, mode: SceneMode | str) -> None:
        """Switch between uploading and generating the scene.

        Discards the uploaded scene, its description and any composite, and
        resets the placement instruction.
        """
        mode = SceneMode(mode)
        state = self.state
        state.scene_mode = mode
        state.scene_file = None
        state.scene_image = None
        state.scene_description = ""
        state.placement_instruction = (
            DEFAULT_PLACEMENT_INSTRUCTION if mode is SceneMode.PROMPT else ""
        )
        state.final_image = None
        state.error = None
        state.notice = None
        self._stop_describing()
        self._invalidate()
        logger.info(f"Scene mode set to {mode.value}")

    # -- Navigation ---------------------------------------------------------

    def go_to(self, step: WorkflowStep | str) -> None:
        """Move to *step*.

        Moving backward is always allowed.  Moving forward requires the
        monument to open Place in Scene and the composite to open Share.

        Raises:
            InputValidationError: If a forward move is not allowed yet.
        """
        step = WorkflowStep(step)
        state = self.state
        if step is state.step:
            return

        if step.index > state.step.index:
            if state.monument_image is None:
                raise InputValidationError("Create a monument before moving on.")
            if step is WorkflowStep.SHARE and state.final_image is None:
                raise InputValidationError("Place the monument in a scene before sharing.")

        logger.info(f"Navigating {state.step.value} -> {step.value}")
        state.step = step
        state.error = None
        self._invalidate()

    def advance(self) -> None:
        """Move to the next step, if allowed."""
        steps = list(WorkflowStep)
        index = self.state.step.index
        if index + 1 >= len(steps):
            raise InputValidationError("Already at the last step.")
        self.go_to(steps[index + 1])

    def back(self) -> None:
        """Move to the previous step."""
        index = self.state.step.index
        if index > 0:
            self.go_to(list(WorkflowStep)[index - 1])

    def reset(self) -> None:
        """Return to Create Monument with every field cleared.

        In-flight calls keep running but their results are discarded.  A
        user-supplied API key is session-level and is kept.
        """
        logger.info("Resetting workflow")
        self.state = self._fresh_state(epoch=self.state.epoch + 1)
        self._busy_token = None
        self._describe_token = None

    # -- Actions ------------------------------------------------------------

    async def generate_monument(self) -> ImagePayload | None:
        """Generate the monument from the prompt text.

        Returns:
            The new monument, or ``None`` if the call failed or went stale.

        Raises:
            InputValidationError: If the prompt is empty or a call is running.
        """
        self._validate(validate_monument_from_prompt)
        prompt = self.state.monument_prompt.strip()

        image = await self._run(
            "generate monument",
            lambda: self.backend.generate_monument_from_prompt(prompt),
        )
        if image is not None:
            self._store_monument(image)
        return image

    async def generate_monument_from_image(self) -> ImagePayload | None:
        """Generate the monument from the uploaded image and the style text.

        Returns:
            The new monument, or ``None`` if encoding or the call failed.

        Raises:
            InputValidationError: If the upload or style text is missing.
        """
        self._validate(validate_monument_from_image)
        file = self.state.monument_file
        style = self.state.monument_prompt.strip()

        async def call() -> ImagePayload:
            source = await encode(file)
            return await self.backend.generate_monument_from_image(source, style)

        image = await self._run("generate monument from image", call)
        if image is not None:
            self._store_monument(image)
        return image

    async def upload_scene(self, file: ImageSource) -> ImagePayload | None:
        """Accept a scene upload and describe it automatically.

        The description call starts without further user action.  If it
        fails, the placement instruction falls back to a default and a
        notice is shown; the upload itself still counts.

        Returns:
            The encoded scene, or ``None`` if it could not be read.

        Raises:
            InputValidationError: If not in upload scene mode, or a call is running.
        """
        self._validate(validate_idle)
        state = self.state
        if state.scene_mode is not SceneMode.UPLOAD:
            error = InputValidationError("Switch to 'Upload a scene' to use your own photo.")
            self._record(error)
            raise error

        self._stop_describing()
        self._invalidate()
        state.scene_file = file
        state.scene_image = None
        state.scene_description = ""
        state.placement_instruction = ""
        state.final_image = None
        state.error = None
        state.notice = None

        token = self._start_describing()
        epoch = state.epoch
        try:
            try:
                image = await encode(file)
            except ImageCodecError as e:
                if epoch == self.state.epoch:
                    state.scene_file = None
                    self._record(e)
                return None
            if epoch != self.state.epoch:
                logger.warning("Discarding stale scene upload")
                return None
            state.scene_image = image

            try:
                description = await self.backend.describe_scene(image)
            except GenerationError as e:
                if epoch == self.state.epoch:
                    self._fall_back_placement(e)
                return image
            if epoch != self.state.epoch:
                logger.warning("Discarding stale scene description")
                return image

            state.scene_description = description
            state.placement_instruction = placement_from_description(description)
            logger.info("Scene described; placement instruction seeded")
            return image
        finally:
            self._finish_describing(token)

    async def place_monument(self) -> ImagePayload | None:
        """Composite the monument into the scene and move to Share.

        In prompt scene mode the scene is generated first with a text-only
        call; the composite is the result of the second call.

        Returns:
            The final composite, or ``None`` if a call failed or went stale.

        Raises:
            InputValidationError: If the monument, the scene or the placement
                instruction is missing, or a call is still running.
        """
        self._validate(validate_placement)
        state = self.state
        monument = state.monument_image
        instruction = state.placement_instruction.strip()
        scene_mode = state.scene_mode
        scene_image = state.scene_image
        scene_prompt = state.scene_prompt.strip()

        async def call() -> ImagePayload:
            scene = scene_image
            if scene_mode is SceneMode.PROMPT:
                scene = await self.backend.generate_scene(scene_prompt)
            return await self.backend.place_monument(scene, monument, instruction)

        image = await self._run("place monument", call)
        if image is not None:
            self.state.final_image = image
            self.state.step = WorkflowStep.SHARE
            self._invalidate()
        return image

    # -- Internals ----------------------------------------------------------

    def _invalidate(self) -> None:
        self.state.epoch += 1

    def _validate(self, check: Callable[[WorkflowState], None]) -> None:
        try:
            check(self.state)
        except InputValidationError as e:
            self._record(e)
            raise

    def _record(self, exc: BaseException) -> FailureKind:
        """Classify *exc* into ``state.error`` and handle credential failures."""
        kind = classify_failure(exc)
        client_supplied = self.backend.client_supplied_credentials
        self.state.error = StepError(
            kind=kind,
            message=failure_message(kind, exc, client_supplied=client_supplied),
            step=self.state.step,
        )
        if kind is FailureKind.INVALID_CREDENTIAL and client_supplied:
            self.backend.forget_credentials()
            self.state.needs_credential = True
        return kind

    def _fall_back_placement(self, exc: GenerationError) -> None:
        kind = classify_failure(exc)
        logger.warning(f"Scene description failed ({kind.value}); using default instruction")
        if kind is FailureKind.INVALID_CREDENTIAL and self.backend.client_supplied_credentials:
            self._record(exc)
        self.state.scene_description = ""
        self.state.placement_instruction = DEFAULT_PLACEMENT_INSTRUCTION
        self.state.notice = (
            "We couldn't analyze your scene automatically, so a default placement "
            "instruction was filled in. You can edit it before placing the monument."
        )

    def _store_monument(self, image: ImagePayload) -> None:
        self.state.monument_image = image
        self.state.final_image = None

    async def _run(self, label: str, call: Callable[[], Awaitable[T]]) -> T | None:
        """Run one single-flight action and apply the busy/error/staleness rules."""
        token = next(self._tokens)
        self._busy_token = token
        state = self.state
        epoch = state.epoch
        state.is_busy = True
        state.error = None
        logger.info(f"Starting {label}")

        try:
            result = await call()
        except (GenerationError, ImageCodecError) as e:
            if epoch == self.state.epoch:
                kind = self._record(e)
                logger.warning(f"{label} failed ({kind.value}): {e}")
            else:
                logger.warning(f"{label} failed after the workflow moved on: {e}")
            return None
        finally:
            if self._busy_token == token:
                self._busy_token = None
                self.state.is_busy = False

        if epoch != self.state.epoch:
            logger.warning(f"Discarding stale result of {label}")
            return None

        logger.info(f"Finished {label}")
        return result

    def _start_describing(self) -> int:
        token = next(self._tokens)
        self._describe_token = token
        self.state.is_describing = True
        return token

    def _finish_describing(self, token: int) -> None:
        if self._describe_token == token:
            self._describe_token = None
            self.state.is_describing = False

    def _stop_describing(self) -> None:
        self._describe_token = None
        self.state.is_describing = False
