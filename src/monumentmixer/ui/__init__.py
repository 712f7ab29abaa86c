"""Gradio wizard UI for Monument Mixer.

Modules
-------
app
    Builds the three-step Blocks layout and the ``main()`` entry point.
handlers
    Event handlers that drive the session workflow and render its state.
state
    Per-session workflow creation and cleanup.
"""
