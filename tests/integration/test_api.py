"""Integration tests for monumentmixer.api.main — FastAPI REST API endpoints.

All tests use the FastAPI TestClient with the generation backend replaced by
an in-memory fake, so no network access occurs.  Tests cover every endpoint:

- ``GET /api/config`` — Public configuration delivery.
- ``POST /api/generate`` — Every operation type, input validation, the body
  size limit, and the mapping of upstream failures to status codes.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from monumentmixer.api.main import app, get_backend
from monumentmixer.core.config import config
from monumentmixer.core.generation import EmptyResponse, TransportError


@pytest.fixture
def test_client(fake_backend):
    """TestClient whose requests run against the fake backend."""
    app.dependency_overrides[get_backend] = lambda: fake_backend
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def image_json(payload) -> dict:
    return {"data": payload.data, "mimeType": payload.mime_type}


# ---------------------------------------------------------------------------
# Configuration endpoint tests.
# ---------------------------------------------------------------------------


class TestGetConfig:
    """Test GET /api/config — public configuration."""

    def test_config_returns_version_and_models(self, test_client):
        resp = test_client.get("/api/config")

        assert resp.status_code == 200
        data = resp.json()
        assert "version" in data
        assert data["imageModel"] == config.image_model
        assert data["textModel"] == config.text_model

    def test_config_never_includes_key(self, test_client):
        """The response should not mention the API key at all."""
        data = test_client.get("/api/config").json()

        assert not any("key" in name.lower() for name in data)


# ---------------------------------------------------------------------------
# Generation endpoint tests.
# ---------------------------------------------------------------------------


class TestGenerateOperations:
    """Test POST /api/generate — one test per operation type."""

    def test_monument_from_prompt(self, test_client, fake_backend, monument_payload):
        resp = test_client.post(
            "/api/generate", json={"type": "generateMonumentFromPrompt", "prompt": "a lion"}
        )

        assert resp.status_code == 200
        assert resp.json() == {"imageUrl": monument_payload.to_data_url()}
        fake_backend.generate_monument_from_prompt.assert_awaited_once_with("a lion")

    def test_monument_from_image(self, test_client, fake_backend, scene_payload, monument_payload):
        resp = test_client.post(
            "/api/generate",
            json={
                "type": "generateMonumentFromImage",
                "image": image_json(scene_payload),
                "prompt": "marble",
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"imageUrl": monument_payload.to_data_url()}
        fake_backend.generate_monument_from_image.assert_awaited_once_with(scene_payload, "marble")

    def test_describe_scene(self, test_client, scene_payload):
        resp = test_client.post(
            "/api/generate", json={"type": "describeScene", "image": image_json(scene_payload)}
        )

        assert resp.status_code == 200
        assert resp.json() == {"description": "A sunny city park"}

    def test_generate_scene(self, test_client, scene_payload):
        resp = test_client.post("/api/generate", json={"type": "generateScene", "prompt": "a park"})

        assert resp.status_code == 200
        assert resp.json() == {"imageUrl": scene_payload.to_data_url()}

    def test_place_monument(
        self, test_client, fake_backend, scene_payload, monument_payload, final_payload
    ):
        """Scene and monument are passed to the backend in that order."""
        resp = test_client.post(
            "/api/generate",
            json={
                "type": "placeMonument",
                "sceneImage": image_json(scene_payload),
                "monumentImage": image_json(monument_payload),
                "prompt": "on the hill",
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"finalImageUrl": final_payload.to_data_url()}
        fake_backend.place_monument.assert_awaited_once_with(
            scene_payload, monument_payload, "on the hill"
        )


class TestGenerateValidation:
    """Invalid requests are rejected with 400 and an error message."""

    def test_unknown_type(self, test_client):
        resp = test_client.post("/api/generate", json={"type": "paintMural", "prompt": "x"})

        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_blank_prompt(self, test_client, fake_backend):
        resp = test_client.post(
            "/api/generate", json={"type": "generateMonumentFromPrompt", "prompt": "   "}
        )

        assert resp.status_code == 400
        assert "prompt" in resp.json()["error"]
        fake_backend.generate_monument_from_prompt.assert_not_awaited()

    def test_missing_image(self, test_client):
        resp = test_client.post(
            "/api/generate", json={"type": "placeMonument", "prompt": "on the hill"}
        )

        assert resp.status_code == 400

    def test_invalid_base64(self, test_client):
        resp = test_client.post(
            "/api/generate",
            json={"type": "describeScene", "image": {"data": "@@@", "mimeType": "image/png"}},
        )

        assert resp.status_code == 400
        assert "base64" in resp.json()["error"]

    def test_non_image_mime(self, test_client):
        resp = test_client.post(
            "/api/generate",
            json={"type": "describeScene", "image": {"data": "QUJD", "mimeType": "text/plain"}},
        )

        assert resp.status_code == 400

    def test_oversized_body(self, test_client, monkeypatch):
        """Bodies over the configured limit get 413."""
        monkeypatch.setattr(config, "max_request_bytes", 2048)

        resp = test_client.post(
            "/api/generate",
            json={"type": "generateMonumentFromPrompt", "prompt": "a" * 4096},
        )

        assert resp.status_code == 413
        assert "too large" in resp.json()["error"]


class TestGenerateFailures:
    """Upstream failures map to status codes without leaking details of the key."""

    def post_prompt(self, client):
        return client.post(
            "/api/generate", json={"type": "generateMonumentFromPrompt", "prompt": "a lion"}
        )

    def test_quota_is_429(self, test_client, fake_backend):
        fake_backend.generate_monument_from_prompt.side_effect = TransportError(
            "RESOURCE_EXHAUSTED", status_code=429
        )

        resp = self.post_prompt(test_client)

        assert resp.status_code == 429
        assert "quota" in resp.json()["error"]

    def test_bad_server_key_is_503(self, test_client, fake_backend):
        fake_backend.generate_monument_from_prompt.side_effect = TransportError(
            "API key not valid", status_code=400
        )

        resp = self.post_prompt(test_client)

        assert resp.status_code == 503
        assert resp.json() == {"error": "The server's API key is missing or invalid."}

    def test_transport_error_is_502(self, test_client, fake_backend):
        fake_backend.generate_monument_from_prompt.side_effect = TransportError("network down")

        resp = self.post_prompt(test_client)

        assert resp.status_code == 502
        assert resp.json() == {"error": "Error generating image: network down"}

    def test_empty_response_is_502(self, test_client, fake_backend):
        fake_backend.generate_monument_from_prompt.side_effect = EmptyResponse(
            "The model did not return an image."
        )

        resp = self.post_prompt(test_client)

        assert resp.status_code == 502
        assert resp.json() == {"error": "The model did not return an image."}


class TestBodySizeLimit:
    """The body limit holds with or without a declared Content-Length."""

    def test_chunked_oversized_body(self, test_client, fake_backend, monkeypatch):
        """A streamed body with no Content-Length is counted and refused."""
        monkeypatch.setattr(config, "max_request_bytes", 2048)
        body = b'{"type": "generateMonumentFromPrompt", "prompt": "' + b"a" * 4096 + b'"}'

        resp = test_client.post(
            "/api/generate",
            content=iter([body[:1024], body[1024:]]),
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 413
        assert "too large" in resp.json()["error"]
        fake_backend.generate_monument_from_prompt.assert_not_awaited()

    def test_chunked_body_under_limit(self, test_client, monkeypatch):
        monkeypatch.setattr(config, "max_request_bytes", 2048)
        body = b'{"type": "generateMonumentFromPrompt", "prompt": "a lion"}'

        resp = test_client.post(
            "/api/generate",
            content=iter([body[:10], body[10:]]),
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 200

    def test_unknown_route_uses_error_shape(self, test_client):
        resp = test_client.get("/api/nothing-here")

        assert resp.status_code == 404
        assert "error" in resp.json()


# ---------------------------------------------------------------------------
# OpenAPI schema tests.
# ---------------------------------------------------------------------------


class TestOpenAPISchema:
    """The generated schema documents success and error bodies."""

    def test_generate_success_models(self, test_client):
        schema = test_client.get("/openapi.json").json()
        components = schema["components"]["schemas"]

        image = next(v for k, v in components.items() if k.startswith("ImageResponse"))
        final = next(v for k, v in components.items() if k.startswith("FinalImageResponse"))

        assert "imageUrl" in image["properties"]
        assert "finalImageUrl" in final["properties"]
        assert any(k.startswith("DescriptionResponse") for k in components)

    @pytest.mark.parametrize("status", ["400", "413", "429", "502", "503"])
    def test_generate_error_models(self, test_client, status):
        schema = test_client.get("/openapi.json").json()
        responses = schema["paths"]["/api/generate"]["post"]["responses"]

        ref = responses[status]["content"]["application/json"]["schema"]["$ref"]
        assert ref.split("/")[-1].startswith("ErrorResponse")
