"""Configuration management for Monument Mixer.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the MONUMENT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (MONUMENT_* prefix)
2. .env file in the project root
3. Default values defined in MonumentConfig

The Gemini API key is the one exception to the prefix rule: it is also read
from ``GEMINI_API_KEY`` or ``API_KEY`` so that existing deployments keep
working.

Example .env file:
    MONUMENT_GEMINI_API_KEY=AIza...
    MONUMENT_IMAGE_MODEL=gemini-2.5-flash-image
    MONUMENT_UI_CREDENTIAL_MODE=client

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.

Usage Example
-------------
    from monumentmixer.core.config import config

    print(config.image_model)
    print(config.max_request_bytes)

Credential Handling
-------------------
The API key is stored as a ``SecretStr`` so it never shows up in ``repr()``,
``model_dump()`` output, or log lines. Call ``get_secret_value()`` only at the
point where the key authorizes a single generation call.

See Also
--------
- .env.example: Template with all available configuration options
- monumentmixer.core.credentials: How the key reaches the generation client
"""

from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MonumentConfig(BaseSettings):
    """Main configuration for Monument Mixer.

    Attributes
    ----------
    Generation Settings:
        gemini_api_key : SecretStr | None
            Server-held Gemini API key (None when keys are typed into the UI)
        image_model : str
            Gemini model used for every image-producing call
        text_model : str
            Gemini model used for the scene description call
        request_timeout : float
            Timeout in seconds for proxied HTTP calls

    API Server Settings:
        server_host : str
            Bind address for the FastAPI server
        server_port : int
            Port for the FastAPI server
        max_request_bytes : int
            Largest accepted request body (images travel inline as base64)

    UI Settings:
        ui_credential_mode : Literal["client", "server", "proxy"]
            Where the wizard gets its credential: typed by the user, read from
            the server environment, or delegated to a remote API server
        proxy_url : str
            Base URL of the API server used in proxy mode
        gradio_server_name : str
            Server bind address (0.0.0.0 for local network)
        gradio_server_port : int
            Server port (1024-65535)
        gradio_share : bool
            Create public gradio.live link (keep False for local-only)

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = MonumentConfig(
        ...     ui_credential_mode="proxy",
        ...     proxy_url="http://localhost:8000",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="MONUMENT_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Generation settings
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "gemini_api_key", "MONUMENT_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"
        ),
        description="Server-held Gemini API key",
    )
    image_model: str = Field(
        default="gemini-2.5-flash-image",
        description="Gemini model for image generation and editing",
    )
    text_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model for scene descriptions",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for proxied generation calls",
        gt=0,
    )

    # API server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="FastAPI server port",
        ge=1024,
        le=65535,
    )
    max_request_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted request body size (10MB default)",
        ge=1024,
    )

    # UI settings
    ui_credential_mode: Literal["client", "server", "proxy"] = Field(
        default="client",
        description="Credential source for the wizard UI",
    )
    proxy_url: str = Field(
        default="http://localhost:8000",
        description="API server base URL used when ui_credential_mode is 'proxy'",
    )
    gradio_server_name: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    gradio_server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    gradio_share: bool = Field(
        default=False,
        description="Create public gradio.live link (keep False for local-only)",
    )


# Global configuration instance
# Loaded from environment variables (MONUMENT_* prefix) and .env file.
config = MonumentConfig()
