"""Azure OpenAI integration tests."""

import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def gateway_available(client) -> bool:
    """Check if the generation gateway is configured."""
    response = client.get("/api/studio/status")
    return response.json().get("available", False)


@pytest.mark.integration
class TestLiveGeneration:
    """Generation against a live Azure OpenAI deployment."""

    def test_generate_single_image(self, client):
        """Test text-to-image with one result."""
        if not gateway_available(client):
            pytest.skip("Azure OpenAI not configured")

        response = client.post(
            "/api/studio/images",
            json={"prompt": "A bright Scandinavian living room with oak floors", "count": 1},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["error"] is None
        assert len(data["images"]) == 1
        assert data["images"][0]["data_url"].startswith("data:image/")

    def test_render_uploaded_plan(self, client, png_bytes):
        """Test rendering a (blank) plan end to end."""
        if not gateway_available(client):
            pytest.skip("Azure OpenAI not configured")

        client.post("/api/studio/reset")
        client.put("/api/studio/plan", files={"file": ("plan.png", png_bytes, "image/png")})

        response = client.post("/api/studio/render")
        assert response.status_code == 200
        data = response.json()
        if data["error"] is None:
            assert data["current_render"]["kind"] == "image"
            assert data["history"]["length"] == 1
