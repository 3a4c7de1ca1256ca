"""Google Cloud Speech-to-Text recognizer."""

import base64
from typing import Any, Dict, Optional

from .base import RecognitionConfig
from .http import HTTPClient
from ..core.errors import RecognitionError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class GoogleSpeechRecognizer(HTTPClient):
    """Recognize speech with the Speech-to-Text v1 REST API."""

    error_class = RecognitionError
    service_name = "Google Speech-to-Text"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://speech.googleapis.com",
        timeout: float = 30.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key

    def build_request(self, audio: bytes, config: RecognitionConfig) -> Dict[str, Any]:
        """Build the ``speech:recognize`` request body."""
        speech_config: Dict[str, Any] = {
            "encoding": config.encoding,
            "sampleRateHertz": config.sample_rate_hertz,
            "languageCode": config.language_code,
            "useEnhanced": config.use_enhanced,
        }
        if config.vocabulary_hints:
            speech_config["speechContexts"] = [{"phrases": list(config.vocabulary_hints)}]

        return {
            "config": speech_config,
            "audio": {"content": base64.b64encode(audio).decode("ascii")},
        }

    @staticmethod
    def extract_transcript(response: Dict[str, Any]) -> str:
        """Join the top alternative of every result, one per line."""
        lines = []
        for result in response.get("results") or []:
            alternatives = result.get("alternatives") or []
            if alternatives and alternatives[0].get("transcript"):
                lines.append(alternatives[0]["transcript"])
        return "\n".join(lines)

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str:
        """Recognize speech in ``audio``.

        Returns:
            Transcript text, empty if nothing was recognized

        Raises:
            RecognitionError: On API failure
        """
        api_key = self._require_key(self.api_key)
        url = f"{self.base_url}/v1/speech:recognize"

        logger.info(
            "Requesting speech recognition",
            extra={
                "language": config.language_code,
                "encoding": config.encoding,
                "sample_rate": config.sample_rate_hertz,
                "audio_bytes": len(audio),
            },
        )
        response = await self._post(url, json=self.build_request(audio, config), params={"key": api_key})
        transcript = self.extract_transcript(response)

        logger.info(f"Recognition complete: {transcript[:50]}...")
        return transcript
