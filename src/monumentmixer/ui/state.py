"""Session management for the Monument Mixer UI.

Each browser session gets its own :class:`MonumentWorkflow`, created lazily
on the first event and released when Gradio drops the session state.
"""

import logging
from collections.abc import Callable

from monumentmixer.core.backends import GenerationBackend, create_backend
from monumentmixer.core.config import MonumentConfig, config
from monumentmixer.workflows.monument import MonumentWorkflow

logger = logging.getLogger(__name__)


def initialize_session(
    session: MonumentWorkflow | None,
    app_config: MonumentConfig | None = None,
    backend_factory: Callable[[MonumentConfig], GenerationBackend] = create_backend,
) -> MonumentWorkflow:
    """Return the session workflow, creating it on first use.

    Args:
        session: Existing workflow or None
        app_config: Configuration to build the backend from (default: global config)
        backend_factory: Builds the generation backend for a new session

    Returns:
        The session's MonumentWorkflow
    """
    if session is not None:
        return session

    logger.info("Creating new MonumentWorkflow session")
    try:
        backend = backend_factory(app_config or config)
    except Exception as e:
        logger.error(f"Error creating generation backend: {e}", exc_info=True)
        raise
    return MonumentWorkflow(backend)


def cleanup_session(session: MonumentWorkflow | None) -> None:
    """Release a session: clear the workflow and forget any user-supplied key.

    Args:
        session: Workflow to clean up (ignored if None)
    """
    if session is None:
        return

    logger.info("Cleaning up MonumentWorkflow session")
    session.reset()
    session.backend.forget_credentials()
