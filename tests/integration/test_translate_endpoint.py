"""Integration tests for the translation endpoints."""

import io
import struct

import pytest
from fastapi import UploadFile

from speech_relay.api.translate import read_upload
from speech_relay.config.settings import Settings
from speech_relay.core.errors import InputError, ResourceError, TranslationError
from speech_relay.dependencies import get_orchestrator, get_settings

from tests.stubs import StubRecognizer, StubTranslator


def override_orchestrator(test_client, orchestrator):
    test_client.app.dependency_overrides[get_orchestrator] = lambda: orchestrator


class TestAudioTranslate:
    """Test POST /api/translate."""

    def test_returns_wav(self, test_client):
        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"fake webm bytes", "audio/webm")},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/wav"
        assert response.headers["content-length"] == "48"
        assert response.headers["x-run-id"]
        assert response.content[:4] == b"RIFF"
        assert struct.unpack_from("<I", response.content, 24)[0] == 24000

    def test_missing_audio(self, test_client):
        response = test_client.post("/api/translate")

        assert response.status_code == 400
        assert response.json() == {"error": "Audio file not provided"}

    def test_empty_audio(self, test_client):
        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"", "audio/webm")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Audio file is empty"

    def test_unintelligible_audio(self, test_client, make_orchestrator, calls):
        override_orchestrator(test_client, make_orchestrator(recognizer=StubRecognizer(calls, text="")))

        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"noise", "audio/webm")},
        )

        assert response.status_code == 422
        assert response.json() == {"error": "Could not understand audio", "stage": "Recognizing"}

    def test_collaborator_failure(self, test_client, make_orchestrator, calls):
        translator = StubTranslator(calls, error=TranslationError("Google Translate returned 403"))
        override_orchestrator(test_client, make_orchestrator(translator=translator))

        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"audio", "audio/webm")},
        )

        assert response.status_code == 502
        assert response.json() == {"error": "Google Translate returned 403", "stage": "Translating"}
        assert "synthesize" not in calls

    def test_wiring_failure(self, test_client):
        """Errors raised before a run starts keep the JSON error shape."""

        def broken_orchestrator():
            raise ResourceError("Temporary directory is not writable")

        test_client.app.dependency_overrides[get_orchestrator] = broken_orchestrator

        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"audio", "audio/webm")},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Temporary directory is not writable"}


class TestTextTranslate:
    """Test POST /api/text-translate."""

    def test_returns_wav(self, test_client):
        response = test_client.post("/api/text-translate", json={"text": "মই ভাল আছোঁ"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/wav"
        assert len(response.content) == 48

    def test_missing_text(self, test_client):
        response = test_client.post("/api/text-translate", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "No text provided"}

    def test_blank_text(self, test_client):
        response = test_client.post("/api/text-translate", json={"text": "   "})

        assert response.status_code == 400

    def test_text_too_long(self, test_client):
        response = test_client.post("/api/text-translate", json={"text": "ক" * 5001})

        assert response.status_code == 400

    def test_skips_recognition(self, test_client, make_orchestrator, calls):
        override_orchestrator(test_client, make_orchestrator())

        response = test_client.post("/api/text-translate", json={"text": "নমস্কাৰ"})

        assert response.status_code == 200
        assert calls == ["translate", "synthesize"]


class TestMalformedRequests:
    """Requests rejected before a run starts still get an error payload."""

    def test_text_without_body(self, test_client):
        response = test_client.post("/api/text-translate")

        assert response.status_code == 400
        assert response.json() == {"error": "Request body is required"}

    def test_text_wrong_type(self, test_client):
        response = test_client.post("/api/text-translate", json={"text": 123})

        assert response.status_code == 400
        body = response.json()
        assert set(body) == {"error"}
        assert "text" in body["error"]

    def test_non_integer_sample_rate(self, test_client, calls):
        response = test_client.post(
            "/api/translate?sample_rate=abc",
            files={"audio": ("recording.webm", b"audio", "audio/webm")},
        )

        assert response.status_code == 400
        assert set(response.json()) == {"error"}
        assert "sample_rate" in response.json()["error"]
        assert calls == []


class TestUploadLimit:
    """Test the upload size cap."""

    def test_oversized_upload_rejected(self, test_client, calls):
        test_client.app.dependency_overrides[get_settings] = lambda: Settings(api={"max_upload_bytes": 16})

        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"x" * 1024, "audio/webm")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Audio file exceeds maximum 16 bytes"}
        assert calls == []

    def test_upload_at_limit_accepted(self, test_client):
        test_client.app.dependency_overrides[get_settings] = lambda: Settings(api={"max_upload_bytes": 16})

        response = test_client.post(
            "/api/translate",
            files={"audio": ("recording.webm", b"x" * 16, "audio/webm")},
        )

        assert response.status_code == 200


class SpyFile(io.BytesIO):
    """In-memory upload that records how much each read asked for."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.read_sizes = []

    def read(self, size=-1):
        self.read_sizes.append(size)
        return super().read(size)


@pytest.mark.asyncio
async def test_read_upload_stops_past_limit():
    """Oversized uploads of unknown size are never read in full."""
    spy = SpyFile(b"x" * 10_000)
    upload = UploadFile(file=spy, filename="recording.webm")

    with pytest.raises(InputError, match="exceeds maximum 100 bytes"):
        await read_upload(upload, 100)

    assert spy.read_sizes == [101]


@pytest.mark.asyncio
async def test_read_upload_missing_file():
    with pytest.raises(InputError, match="not provided"):
        await read_upload(None, 100)
