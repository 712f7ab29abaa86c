"""Instruction templates for every generation call in the monument workflow.

Each operation wraps the user's free text in fixed scaffolding that keeps
results consistent across the wizard: monuments always come out as solid
objects on a base against a neutral backdrop, so that the compositing step
can cut them out and light them to match the scene.

Template Structure
------------------
Monument from text::

    Create a photorealistic image of a monument depicting: [user text]

    [Fixed: solid object] [Fixed: plinth] [Fixed: studio lighting]
    [Fixed: neutral background]

Monument from image::

    Use the main subject of the provided image. Render it as a monument in
    this style: [user text]

    [Fixed: isolate subject] [Fixed: discard background] [Fixed: plinth]
    [Fixed: neutral background]

Scene composite::

    The first image is a scene and the second image is a monument.
    Place the monument into the scene. Placement: [user text]

    [Fixed: analyze lighting] [Fixed: scale] [Fixed: shadows]
    [Fixed: preserve framing]

Sections are separated by double newlines.  The composer does no input
validation; callers check for missing text before composing.
"""

from __future__ import annotations

from enum import Enum


class PromptOperation(str, Enum):
    """Operations that have a prompt template."""

    MONUMENT_FROM_TEXT = "monument_from_text"
    MONUMENT_FROM_IMAGE = "monument_from_image"
    SCENE_COMPOSITE = "scene_composite"
    SCENE_FROM_TEXT = "scene_from_text"


# ---------------------------------------------------------------------------
# Fixed clauses.
# ---------------------------------------------------------------------------

SOLID_OBJECT_CLAUSE = (
    "The monument must be a three-dimensional, solid, freestanding object "
    "sculpted from a single durable material such as stone or bronze."
)
PLINTH_CLAUSE = "It must stand on a clearly visible plinth or base."
STUDIO_LIGHTING_CLAUSE = (
    "The monument looks brand new and unweathered, lit with soft, even studio lighting."
)
NEUTRAL_BACKGROUND_CLAUSE = (
    "Show it in full against a plain, neutral, flat grey background with no scenery, "
    "props or text, so it can be composited into another image later."
)

ISOLATE_SUBJECT_CLAUSE = "Identify and isolate the main subject of the provided image."
DISCARD_BACKGROUND_CLAUSE = "Discard the original background of the image completely."
MONUMENT_WITH_BASE_CLAUSE = (
    "Render the subject as a solid monument standing on a clearly visible plinth or base."
)

ANALYZE_SCENE_CLAUSE = (
    "First analyze the scene's lighting, perspective, camera angle and horizon line."
)
SCALE_POSITION_CLAUSE = (
    "Scale and position the monument so that it sits plausibly in the scene, "
    "resting on a believable surface at a realistic size."
)
MATCH_SHADOWS_CLAUSE = (
    "Match the direction, length and softness of the monument's shadows to the "
    "light sources in the scene."
)
PRESERVE_FRAMING_CLAUSE = (
    "Preserve the scene's original framing and aspect ratio; do not crop, extend "
    "or otherwise alter the rest of the scene."
)

NO_MONUMENT_IN_SCENE_CLAUSE = (
    "Leave open space where a monument could stand, and do not include any statues or monuments."
)

MONUMENT_FROM_TEXT_CLAUSES = (
    SOLID_OBJECT_CLAUSE,
    PLINTH_CLAUSE,
    STUDIO_LIGHTING_CLAUSE,
    NEUTRAL_BACKGROUND_CLAUSE,
)
MONUMENT_FROM_IMAGE_CLAUSES = (
    ISOLATE_SUBJECT_CLAUSE,
    DISCARD_BACKGROUND_CLAUSE,
    MONUMENT_WITH_BASE_CLAUSE,
    NEUTRAL_BACKGROUND_CLAUSE,
)
SCENE_COMPOSITE_CLAUSES = (
    ANALYZE_SCENE_CLAUSE,
    SCALE_POSITION_CLAUSE,
    MATCH_SHADOWS_CLAUSE,
    PRESERVE_FRAMING_CLAUSE,
)

# Sent alongside an uploaded scene; the reply seeds the placement instruction.
DESCRIBE_SCENE_PROMPT = (
    "Describe the environment shown in this image in one short sentence, "
    "for example 'a sunny city park with a fountain'. "
    "Reply with the description only, without any preamble or trailing period."
)

# Used when the scene description call fails.
DEFAULT_PLACEMENT_INSTRUCTION = "Add the monument to the scene, making it look natural"

# Mode defaults for the monument prompt box.
DEFAULT_MONUMENT_PROMPT = ""
DEFAULT_STYLE_PROMPT = "a polished bronze statue"


def _join(*sections: str) -> str:
    return "\n\n".join(s for s in sections if s)


def build_monument_from_text_prompt(description: str) -> str:
    """Wrap a free-text monument description."""
    return _join(
        f"Create a photorealistic image of a monument depicting: {description}",
        " ".join(MONUMENT_FROM_TEXT_CLAUSES),
    )


def build_monument_from_image_prompt(style: str) -> str:
    """Wrap a style description for a monument made from a reference image."""
    return _join(
        f"Use the main subject of the provided image. Render it as a monument in this style: {style}",
        " ".join(MONUMENT_FROM_IMAGE_CLAUSES),
    )


def build_scene_composite_prompt(instruction: str) -> str:
    """Wrap a placement instruction for the scene + monument edit call.

    The scene image must be sent first and the monument second; the template
    refers to them in that order.
    """
    return _join(
        "The first image is a scene and the second image is a monument. "
        f"Place the monument into the scene. Placement: {instruction}",
        " ".join(SCENE_COMPOSITE_CLAUSES),
    )


def build_scene_prompt(description: str) -> str:
    """Wrap a free-text description of a scene to generate."""
    return _join(
        f"A photorealistic, wide photograph of {description}",
        NO_MONUMENT_IN_SCENE_CLAUSE,
    )


def placement_from_description(description: str) -> str:
    """Seed the placement instruction from an automatic scene description."""
    description = description.strip().rstrip(".")
    if not description:
        return DEFAULT_PLACEMENT_INSTRUCTION
    return f"Place the monument in {description[0].lower()}{description[1:]}, making it look natural"


_BUILDERS = {
    PromptOperation.MONUMENT_FROM_TEXT: build_monument_from_text_prompt,
    PromptOperation.MONUMENT_FROM_IMAGE: build_monument_from_image_prompt,
    PromptOperation.SCENE_COMPOSITE: build_scene_composite_prompt,
    PromptOperation.SCENE_FROM_TEXT: build_scene_prompt,
}


def compose_prompt(operation: PromptOperation | str, text: str) -> str:
    """Build the instruction string for *operation*.

    Args:
        operation: Template to use.
        text: The user's free text, inserted verbatim.

    Returns:
        The composed instruction.

    Raises:
        ValueError: If *operation* has no template.
    """
    return _BUILDERS[PromptOperation(operation)](text)
