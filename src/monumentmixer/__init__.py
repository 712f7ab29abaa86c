"""Monument Mixer - Generate monuments and place them in scenes with Gemini."""

__version__ = "0.1.0"

from monumentmixer.core.config import MonumentConfig, config
from monumentmixer.core.backends import GenerationBackend, create_backend
from monumentmixer.workflows.monument import MonumentWorkflow

__all__ = [
    "GenerationBackend",
    "MonumentConfig",
    "MonumentWorkflow",
    "config",
    "create_backend",
]
