"""
Shared test fixtures for weather-ayah.

Provides:
- FakeClock for deterministic cache timing
- Responses API body builders
- Fake generator server (pytest-httpserver)
"""

import pytest
from pytest_httpserver import HTTPServer


class FakeClock:
    """Controllable clock (epoch seconds) for deterministic cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Generator reply builders
# ---------------------------------------------------------------------------

def responses_body(text: str) -> dict:
    """A minimal Responses API body whose assistant message is `text`."""
    return {
        "id": "resp_test",
        "object": "response",
        "status": "completed",
        "output": [
            {
                "type": "message",
                "role": "assistant",
                "content": [
                    {"type": "output_text", "text": text, "annotations": []}
                ],
            }
        ],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_generator():
    """
    A real HTTP server that impersonates the OpenAI /responses endpoint.

    Tests configure replies with expect_request / respond_with_*.
    """
    server = HTTPServer(host="127.0.0.1")
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()

