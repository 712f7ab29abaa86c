"""Monument Mixer — FastAPI REST API layer.

This package contains the FastAPI application that proxies generation calls
so the API key stays on the server, plus the Pydantic request models.

Modules
-------
main
    FastAPI application with the route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for the ``POST /api/generate`` request union.
"""
