"""OpenAI transcription recognizer."""

from typing import Dict, Optional, Tuple

import aiohttp

from .base import RecognitionConfig
from .http import HTTPClient
from ..core.errors import RecognitionError
from ..utils.logging import get_logger

logger = get_logger(__name__)

# Speech-to-Text encoding names to the file name and MIME type sent upstream
UPLOAD_FORMATS: Dict[str, Tuple[str, str]] = {
    "LINEAR16": ("audio.wav", "audio/wav"),
    "WEBM_OPUS": ("audio.webm", "audio/webm"),
    "OGG_OPUS": ("audio.ogg", "audio/ogg"),
    "FLAC": ("audio.flac", "audio/flac"),
    "MP3": ("audio.mp3", "audio/mpeg"),
}


class OpenAITranscriber(HTTPClient):
    """Recognize speech with the OpenAI audio transcription endpoint.

    The endpoint sniffs the container from the uploaded file, so the
    encoding only picks the file name and MIME type; the sample rate is
    not sent. The language is passed as a free-text prompt.
    """

    error_class = RecognitionError
    service_name = "OpenAI transcription"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini-transcribe",
        prompt: Optional[str] = None,
        base_url: str = "https://api.openai.com",
        timeout: float = 60.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key
        self.model = model
        self.prompt = prompt

    @staticmethod
    def upload_format(encoding: str) -> Tuple[str, str]:
        """File name and content type for audio in ``encoding``.

        Unknown encodings are sent as an opaque binary file.
        """
        return UPLOAD_FORMATS.get(encoding.upper(), ("audio.bin", "application/octet-stream"))

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str:
        """Transcribe ``audio``.

        Raises:
            RecognitionError: On API failure
        """
        api_key = self._require_key(self.api_key)

        form = aiohttp.FormData()
        filename, content_type = self.upload_format(config.encoding)
        form.add_field("file", audio, filename=filename, content_type=content_type)
        form.add_field("model", self.model)
        if self.prompt:
            form.add_field("prompt", self.prompt)

        response = await self._post(
            f"{self.base_url}/v1/audio/transcriptions",
            data=form,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        text = (response.get("text") or "").strip()

        logger.info(f"Transcription complete ({self.model}): {text[:50]}...")
        return text
