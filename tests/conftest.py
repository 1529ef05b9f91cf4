import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Set

import httpx
import pytest
from typer.testing import CliRunner

from figmadl.domain.events.api_events import DomainEvent
from figmadl.domain.events.dispatcher import EventDispatcher
from figmadl.infrastructure.config import settings as settings_module
from figmadl.infrastructure.config.settings import GovernanceSettings

IMAGE_HOST = "images.figma.test"


class BrokenBody(httpx.AsyncByteStream):
    """Response body that fails after its first chunk."""

    async def __aiter__(self):
        yield b"first-chunk"
        raise httpx.ReadError("connection reset")


def image_url_for(node_id: str) -> str:
    """Signed-looking URL the stub API hands out for a node."""
    return f"https://{IMAGE_HOST}/render/{node_id.replace(':', '_')}.png?signature=secret"


class FigmaApiStub:
    """In-memory stand-in for the Figma images endpoint and the image CDN.

    Routes requests by host: ``api.figma.com`` answers the images endpoint
    from ``images``; every other host serves ``image_bytes``. Image paths can
    script a status per attempt in ``image_status_sequence`` or fail mid-body
    via ``broken_paths``.
    """

    def __init__(
        self,
        images: Optional[Dict[str, Optional[str]]] = None,
        image_bytes: bytes = b"\x89PNG fake image payload",
        image_status: Optional[Dict[str, int]] = None,
        api_status: int = 200,
        api_error: Optional[str] = None,
        image_status_sequence: Optional[Dict[str, List[int]]] = None,
        broken_paths: Optional[Set[str]] = None,
    ):
        self.images = images if images is not None else {}
        self.image_bytes = image_bytes
        self.image_status = image_status or {}
        self.api_status = api_status
        self.api_error = api_error
        self.image_status_sequence = image_status_sequence or {}
        self.broken_paths = broken_paths or set()
        self.api_requests: List[httpx.Request] = []
        self.image_requests: List[httpx.Request] = []

    def requested_ids(self) -> List[List[str]]:
        return [request.url.params["ids"].split(",") for request in self.api_requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.figma.com":
            self.api_requests.append(request)
            if self.api_status != 200:
                return httpx.Response(self.api_status, json={"status": self.api_status, "err": "Forbidden"})
            if self.api_error:
                return httpx.Response(200, json={"err": self.api_error, "images": {}})
            ids = request.url.params["ids"].split(",")
            body = {"err": None, "images": {node_id: self.images.get(node_id) for node_id in ids}}
            return httpx.Response(200, content=json.dumps(body).encode(), headers={"Content-Type": "application/json"})

        self.image_requests.append(request)
        path = request.url.path
        scripted = self.image_status_sequence.get(path)
        status = scripted.pop(0) if scripted else self.image_status.get(path, 200)
        if status == 429:
            return httpx.Response(429, headers={"Retry-After": "0"}, content=b"slow down")
        if status != 200:
            return httpx.Response(status, content=b"nope")
        if path in self.broken_paths:
            return httpx.Response(200, stream=BrokenBody())
        return httpx.Response(200, content=self.image_bytes)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class EventRecorder:
    """Collects dispatched events so tests can assert on governance decisions."""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[DomainEvent]:
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def dispatcher(recorder: EventRecorder) -> EventDispatcher:
    return EventDispatcher([recorder])


@pytest.fixture
def fast_settings() -> GovernanceSettings:
    """Default governance shape with every wait shrunk to milliseconds."""
    return GovernanceSettings(
        rate_limit_window_seconds=0.5,
        rate_limit_safety_margin_seconds=0.001,
        initial_backoff_seconds=0.001,
        max_jitter_seconds=0.0,
        throttle_step_seconds=0.001,
        throttle_cap_seconds=0.005,
        queue_interval_seconds=0.001,
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "images"


@pytest.fixture(autouse=True)
def isolated_configuration(tmp_path: Path, monkeypatch):
    """Keeps tests away from the developer's ~/.figmadl config, .env and FIGMA_* env vars."""
    for name in list(os.environ):
        if name.startswith("FIGMA_") or name == "LOGGING_LEVEL":
            monkeypatch.delenv(name, raising=False)
    settings_module.reset_configuration()
    settings_module.clear_test_config()
    settings_module.load_configuration(
        config_file=tmp_path / "missing-config.yaml",
        env_file=tmp_path / "missing.env",
    )
    yield
    settings_module.reset_configuration()
    settings_module.clear_test_config()


@pytest.fixture
def figma_api() -> FigmaApiStub:
    """Stub API; tests fill in ``images`` and failure knobs as needed."""
    return FigmaApiStub()


@pytest.fixture
def signed_url():
    return image_url_for
