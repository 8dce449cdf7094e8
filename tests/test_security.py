"""Security tests for uploads and input validation."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.routes import studio
from core.render import PresetStore, RenderController


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def controller():
    controller = RenderController(MagicMock(), progress_reset_delay=0)
    with patch("api.routes.studio.get_controller", return_value=controller):
        yield controller


class TestFileUploadSecurity:
    """Test file upload security."""

    def test_reject_pdf_file(self, client, controller):
        """PDF uploads are rejected."""
        response = client.put(
            "/api/studio/plan",
            files={"file": ("plan.pdf", b"%PDF-1.4 fake", "application/pdf")},
        )
        assert response.status_code == 400

    def test_reject_text_disguised_as_image(self, client, controller):
        """Non-image bytes with a generic type are rejected."""
        response = client.put(
            "/api/studio/plan",
            files={"file": ("plan.png", b"<script>alert(1)</script>", "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_reject_empty_file(self, client, controller):
        response = client.put("/api/studio/plan", files={"file": ("plan.png", b"", "image/png")})
        assert response.status_code == 400

    def test_reject_oversized_file(self, client, controller, png_bytes):
        with patch.object(studio, "MAX_UPLOAD_BYTES", 10):
            response = client.put("/api/studio/plan", files={"file": ("plan.png", png_bytes, "image/png")})
        assert response.status_code == 413

    def test_path_traversal_in_filename(self, client, controller, png_bytes):
        """Path components are stripped from uploaded filenames."""
        response = client.put(
            "/api/studio/plan",
            files={"file": ("../../../etc/passwd.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["filename"] == "passwd.png"

    def test_null_byte_in_filename(self, client, controller, png_bytes):
        response = client.post(
            "/api/studio/styles",
            files=[("files", ("style\x00.png", png_bytes, "image/png"))],
        )
        assert response.status_code == 200
        assert "\x00" not in response.json()["styles"][0]["filename"]


class TestInputValidation:
    """Test input validation."""

    @pytest.fixture
    def preset_store(self):
        store = PresetStore()
        with patch("api.routes.studio.get_preset_store", return_value=store):
            yield store

    def test_xss_in_preset_name(self, client, controller, preset_store):
        """Preset names are stored as plain data."""
        response = client.post("/api/studio/presets", json={"name": "<script>alert('xss')</script>"})
        assert response.status_code == 200
        assert response.json()["name"] == "<script>alert('xss')</script>"

    def test_very_long_preset_name(self, client, controller, preset_store):
        response = client.post("/api/studio/presets", json={"name": "x" * 500})
        assert response.status_code == 422

    def test_whitespace_preset_name(self, client, controller, preset_store):
        response = client.post("/api/studio/presets", json={"name": "   "})
        assert response.status_code == 422

    def test_null_preset_name(self, client, controller, preset_store):
        response = client.post("/api/studio/presets", json={"name": None})
        assert response.status_code == 422

    def test_unknown_download_target(self, client, controller):
        response = client.get("/api/studio/download?target=../../secrets")
        assert response.status_code == 422


class TestCORSSecurity:
    """Test CORS configuration."""

    def test_cors_allows_localhost(self, client):
        """CORS allows localhost:3000."""
        response = client.options(
            "/api/studio/settings",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "PUT"
            }
        )
        assert response.status_code in [200, 204]

    def test_cors_blocks_unknown_origin(self, client):
        """CORS should not echo arbitrary origins."""
        response = client.get(
            "/health",
            headers={"Origin": "https://malicious-site.com"}
        )
        allow_origin = response.headers.get("access-control-allow-origin", "")
        assert allow_origin != "https://malicious-site.com"


class TestAPISecurityHeaders:
    """Test API response security headers."""

    def test_content_type_json(self, client, controller):
        """API responses should have JSON content type."""
        response = client.get("/api/studio/state")
        assert "application/json" in response.headers.get("content-type", "")

    def test_invalid_content_type_rejected(self, client, controller):
        """POST with wrong content type should be handled."""
        response = client.put(
            "/api/studio/settings",
            content="resolution=4k",
            headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 422
