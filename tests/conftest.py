"""Shared test fixtures.

Provides a two-person gallery, runtime factories wired to fake frame
sources and ports, and an API client that never opens a camera or loads
model weights.
"""
from __future__ import annotations

import numpy as np
import pytest
from fastapi.testclient import TestClient

from common.config import RuntimeConfig
from cv.identity import Gallery
from cv.ports import ClassifierPorts


# ---------- Gallery fixtures ----------

@pytest.fixture()
def gallery() -> Gallery:
    """Ana at the origin, Ben two units away along the first axis."""
    return Gallery({
        "Ana": [np.array([0.0, 0.0, 0.0, 0.0])],
        "Ben": [np.array([2.0, 0.0, 0.0, 0.0])],
    })


@pytest.fixture()
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        period_ms=10,
        classifier_timeout_ms=200,
        distance_threshold=0.5,
        gallery_labels=["Ana", "Ben"],
        autostart=False,
        publish_enabled=False,
    )


# ---------- Runtime fixtures ----------

@pytest.fixture()
async def runtime_factory(gallery, runtime_config):
    """Create SessionRuntimes over fake frame sources.

    Returns a factory accepting `frame_source` and port keyword overrides.
    Shuts every created runtime down on teardown.
    """
    from orchestrator.runtime import SessionRuntime
    from tests.fakes import FakeFrameSource

    created: list[SessionRuntime] = []

    def _factory(frame_source=None, config: RuntimeConfig | None = None, **ports) -> SessionRuntime:
        rt = SessionRuntime(
            frame_source=frame_source or FakeFrameSource(),
            config=config or runtime_config,
            ports=ClassifierPorts(**ports),
            gallery=gallery,
        )
        created.append(rt)
        return rt

    yield _factory

    for rt in created:
        await rt.shutdown()


# ---------- FastAPI test client ----------

@pytest.fixture()
def api_client(monkeypatch, gallery, runtime_config):
    """TestClient for api.app with camera and model loading replaced by fakes."""
    import api
    from orchestrator.runtime import SessionRuntime
    from tests.fakes import FakeFrameSource, ScriptedPort, face, hand, objects

    ports = ClassifierPorts(
        identity=ScriptedPort([[face([0.1, 0.0, 0.0, 0.0])]]),
        gesture=ScriptedPort([[hand(raised=True)]]),
        object=ScriptedPort([objects(textbook=0.9)]),
    )

    def _create_runtime(config):
        return SessionRuntime(
            frame_source=FakeFrameSource(),
            config=runtime_config,
            ports=ports,
            gallery=gallery,
        )

    async def _prepare(self):
        return self.gallery

    monkeypatch.setattr(api, "create_runtime", _create_runtime)
    monkeypatch.setattr(SessionRuntime, "prepare", _prepare)

    with TestClient(api.app) as c:
        yield c
