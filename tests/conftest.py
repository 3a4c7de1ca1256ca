"""Shared pytest fixtures for speech relay tests."""

from typing import List

import pytest
from fastapi.testclient import TestClient

from speech_relay.core.pipeline import PipelineOptions, PipelineOrchestrator
from speech_relay.core.resources import TemporaryResourceManager

from tests.stubs import StubConditioner, StubRecognizer, StubSynthesizer, StubTranslator


@pytest.fixture
def calls() -> List[str]:
    """Shared log of collaborator calls, in order."""
    return []


@pytest.fixture
def temp_dir(tmp_path):
    """Directory for temporary pipeline resources."""
    path = tmp_path / "resources"
    path.mkdir()
    return path


@pytest.fixture
def resources(temp_dir):
    """Resource manager rooted in a per-test directory."""
    return TemporaryResourceManager(temp_dir)


@pytest.fixture
def make_orchestrator(calls, resources):
    """Factory for an orchestrator wired with stub collaborators."""

    def _make(
        conditioner=None,
        recognizer=None,
        translator=None,
        synthesizer=None,
        **options,
    ) -> PipelineOrchestrator:
        return PipelineOrchestrator(
            recognizer=recognizer or StubRecognizer(calls),
            translator=translator or StubTranslator(calls),
            synthesizer=synthesizer or StubSynthesizer(calls),
            conditioner=conditioner or StubConditioner(calls),
            resources=resources,
            options=PipelineOptions(**options),
        )

    return _make


@pytest.fixture
def test_client(make_orchestrator, monkeypatch, temp_dir):
    """Return FastAPI test client backed by a stub pipeline."""
    monkeypatch.setenv("RELAY_DSP_TEMP_DIR", str(temp_dir))
    monkeypatch.setenv("RELAY_LOG_FORMAT", "text")

    # Import here to avoid circular dependencies
    from speech_relay.dependencies import get_orchestrator, set_orchestrator, set_settings
    from speech_relay.main import create_app

    orchestrator = make_orchestrator()
    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    yield TestClient(app)

    set_orchestrator(None)
    set_settings(None)
