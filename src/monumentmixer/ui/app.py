"""Gradio UI for Monument Mixer."""

import logging

import gradio as gr

from monumentmixer.core.config import config

from .handlers import (
    MONUMENT_MODE_LABELS,
    SCENE_MODE_LABELS,
    back_handler,
    generate_monument_handler,
    monument_mode_handler,
    next_step_handler,
    place_monument_handler,
    reset_handler,
    scene_mode_handler,
    scene_upload_handler,
    set_api_key_handler,
)
from .state import cleanup_session

logger = logging.getLogger(__name__)


def create_ui() -> tuple[gr.Blocks, str]:
    """Create the three-step monument wizard.

    The steps are columns whose visibility follows the workflow state, so the
    only way between them is the navigation buttons the workflow guards.

    Returns:
        Tuple of (Gradio Blocks app, custom CSS string)
    """
    custom_css = """
    .step-status {
        min-height: 2.5em;
    }
    """

    app = gr.Blocks(title="Monument Mixer")

    with app:
        # Session state - one workflow per browser session
        session = gr.State(None, delete_callback=cleanup_session)

        gr.Markdown(
            """
            # Monument Mixer
            ### Create a monument, place it in a scene, share the result
            """
        )

        with gr.Row(visible=config.ui_credential_mode == "client"):
            api_key = gr.Textbox(
                label="Gemini API key",
                type="password",
                placeholder="Paste your key; it is kept for this session only",
                scale=4,
            )
            api_key_btn = gr.Button("Use key", scale=1)
        credential_status = gr.Markdown("")

        # Step 1: Create Monument
        with gr.Column(visible=True) as create_column:
            gr.Markdown("## 1. Create Monument")
            monument_mode = gr.Radio(
                choices=list(MONUMENT_MODE_LABELS),
                value="Describe it",
                label="Monument source",
            )
            monument_upload = gr.Image(
                label="Reference image",
                type="filepath",
                sources=["upload"],
                visible=False,
            )
            monument_prompt = gr.Textbox(
                label="Describe your monument",
                placeholder="e.g. a lion guarding a city gate",
                lines=3,
            )
            generate_btn = gr.Button("Generate Monument", variant="primary")
            monument_image = gr.Image(label="Your monument", type="pil", interactive=False)
            create_status = gr.Markdown(
                "*Describe a monument or upload an image to get started*",
                elem_classes="step-status",
            )
            to_scene_btn = gr.Button("Next: Place in Scene")

        # Step 2: Place in Scene
        with gr.Column(visible=False) as place_column:
            gr.Markdown("## 2. Place in Scene")
            scene_mode = gr.Radio(
                choices=list(SCENE_MODE_LABELS),
                value="Upload a scene",
                label="Scene source",
            )
            scene_upload = gr.Image(label="Scene photo", type="filepath", sources=["upload"])
            scene_prompt = gr.Textbox(
                label="Describe the scene",
                placeholder="e.g. a park at sunset",
                lines=2,
                visible=False,
            )
            placement_instruction = gr.Textbox(
                label="Placement instruction",
                placeholder="Where and how should the monument stand?",
                lines=2,
            )
            place_status = gr.Markdown("", elem_classes="step-status")
            with gr.Row():
                back_to_create_btn = gr.Button("Back")
                place_btn = gr.Button("Place Monument", variant="primary")

        # Step 3: Share
        with gr.Column(visible=False) as share_column:
            gr.Markdown("## 3. Share")
            final_image = gr.Image(
                label="Your monument in place",
                type="pil",
                format="png",
                interactive=False,
            )
            with gr.Row():
                back_to_place_btn = gr.Button("Back")
                reset_btn = gr.Button("Start Over", variant="secondary")

        rendered = [
            session,
            create_column,
            place_column,
            share_column,
            credential_status,
            monument_mode,
            monument_prompt,
            monument_upload,
            monument_image,
            create_status,
            scene_mode,
            scene_upload,
            scene_prompt,
            placement_instruction,
            place_status,
            final_image,
        ]

        # Event handlers. Radios use .input so re-rendering their value does
        # not fire them again.
        api_key_btn.click(
            fn=set_api_key_handler,
            inputs=[api_key, session],
            outputs=[*rendered, api_key],
        )
        api_key.submit(
            fn=set_api_key_handler,
            inputs=[api_key, session],
            outputs=[*rendered, api_key],
        )

        monument_mode.input(
            fn=monument_mode_handler,
            inputs=[monument_mode, session],
            outputs=rendered,
        )
        generate_btn.click(
            fn=generate_monument_handler,
            inputs=[monument_prompt, monument_upload, session],
            outputs=rendered,
        )
        to_scene_btn.click(fn=next_step_handler, inputs=[session], outputs=rendered)

        scene_mode.input(
            fn=scene_mode_handler,
            inputs=[scene_mode, session],
            outputs=rendered,
        )
        scene_upload.upload(
            fn=scene_upload_handler,
            inputs=[scene_upload, session],
            outputs=rendered,
        )
        place_btn.click(
            fn=place_monument_handler,
            inputs=[scene_prompt, placement_instruction, session],
            outputs=rendered,
        )
        back_to_create_btn.click(fn=back_handler, inputs=[session], outputs=rendered)

        back_to_place_btn.click(fn=back_handler, inputs=[session], outputs=rendered)
        reset_btn.click(fn=reset_handler, inputs=[session], outputs=rendered)

    return app, custom_css


def main():
    """Main entry point for the application."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting Monument Mixer...")
    logger.info(f"Configuration: {config.model_dump(exclude={'gemini_api_key'})}")

    app, custom_css = create_ui()

    logger.info(f"Launching Gradio UI on {config.gradio_server_name}:{config.gradio_server_port}")

    app.launch(
        server_name=config.gradio_server_name,
        server_port=config.gradio_server_port,
        share=config.gradio_share,
        show_error=True,
        inbrowser=False,
        css=custom_css,
    )


if __name__ == "__main__":
    main()
