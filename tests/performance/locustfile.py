"""
Locust load profile for Plan Render Studio.

Usage:
    locust -f tests/performance/locustfile.py --host=http://localhost:8000 \
           --headless -u 50 -r 10 --run-time 5m

Generation endpoints return 409 while another generation or a batch run
holds the studio; those responses count as successes.
"""

import io
import random

from locust import HttpUser, task, between
from PIL import Image

LIGHTING = ["studio", "sunny", "night", "dramatic", "golden hour", "overcast"]
RESOLUTIONS = ["1080p", "2k", "4k"]
ASPECT_RATIOS = ["16:9", "9:16", "1:1", "4:3", "3:4"]
PROMPTS = [
    "A modern kitchen with marble counters",
    "A cozy bedroom with warm lighting",
    "A minimalist office with oak desks",
]


def sample_png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (64, 64), random.choice(["white", "gray", "beige"])).save(buffer, format="PNG")
    return buffer.getvalue()


class StudioEditor(HttpUser):
    """Edits inputs and polls state the way the studio UI does."""

    wait_time = between(1, 5)

    def on_start(self):
        self.client.put("/api/studio/plan", files={"file": ("plan.png", sample_png(), "image/png")})

    @task(40)
    def poll_state(self):
        self.client.get("/api/studio/state")

    @task(15)
    def update_settings(self):
        self.client.put(
            "/api/studio/settings",
            json={
                "resolution": random.choice(RESOLUTIONS),
                "aspect_ratio": random.choice(ASPECT_RATIOS),
                "lighting_preset": random.choice(LIGHTING),
                "denoising": round(random.uniform(0, 1), 2),
            },
        )

    @task(5)
    def add_style(self):
        self.client.post("/api/studio/styles", files=[("files", ("style.png", sample_png(), "image/png"))])

    @task(8)
    def list_presets(self):
        self.client.get("/api/studio/presets")

    @task(3)
    def gateway_status(self):
        self.client.get("/api/studio/status")


class StudioGenerator(HttpUser):
    """Triggers single renders, edits and standalone images."""

    wait_time = between(5, 15)
    weight = 1

    def _post(self, path: str, **kwargs):
        with self.client.post(path, catch_response=True, **kwargs) as response:
            if response.status_code in (400, 409):
                response.success()

    @task(5)
    def render(self):
        self.client.put("/api/studio/plan", files={"file": ("plan.png", sample_png(), "image/png")})
        self._post("/api/studio/render")

    @task(3)
    def enhance(self):
        self._post("/api/studio/enhance", json={"prompt": "Add indoor plants"})

    @task(2)
    def undo(self):
        self._post("/api/studio/undo")

    @task(3)
    def generate_images(self):
        self._post("/api/studio/images", json={"prompt": random.choice(PROMPTS), "count": random.randint(1, 2)})


class BatchRunner(HttpUser):
    """Queues style variants and starts batch runs."""

    wait_time = between(10, 30)
    weight = 1

    @task(3)
    def queue_job(self):
        with self.client.post("/api/studio/batch", catch_response=True) as response:
            if response.status_code == 409:
                response.success()

    @task(1)
    def start_batch(self):
        with self.client.post("/api/studio/batch/start", catch_response=True) as response:
            if response.status_code in (400, 409):
                response.success()

    @task(2)
    def read_queue(self):
        self.client.get("/api/studio/batch")
