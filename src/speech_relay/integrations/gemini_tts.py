"""Gemini text-to-speech client."""

from typing import Any, Dict, Optional

from .http import HTTPClient
from ..core.errors import SynthesisError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class GeminiSynthesizer(HTTPClient):
    """Synthesize speech with a Gemini TTS model.

    The model answers with base64 encoded signed 16-bit little-endian mono
    PCM at 24 kHz inside ``candidates[0].content.parts[0].inlineData``.
    """

    error_class = SynthesisError
    service_name = "Gemini TTS"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash-preview-tts",
        voice: str = "Puck",
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 60.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key
        self.model = model
        self.voice = voice

    def build_request(self, text: str) -> Dict[str, Any]:
        """Build the ``generateContent`` request body."""
        return {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice}},
                },
            },
        }

    @staticmethod
    def extract_audio(response: Dict[str, Any]) -> Optional[str]:
        """Pull the base64 audio payload out of a response, if present."""
        try:
            return response["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
        except (KeyError, IndexError, TypeError):
            return None

    async def synthesize(self, text: str) -> Optional[str]:
        """Synthesize ``text`` to base64 PCM.

        Returns:
            Base64 payload, or None if the model returned no audio

        Raises:
            SynthesisError: On API failure
        """
        api_key = self._require_key(self.api_key)
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"

        logger.info(
            "Requesting speech synthesis",
            extra={"model": self.model, "voice": self.voice, "text_length": len(text)},
        )
        response = await self._post(url, json=self.build_request(text), params={"key": api_key})
        audio = self.extract_audio(response)

        if audio:
            logger.info("Synthesis complete", extra={"payload_chars": len(audio)})
        else:
            logger.warning("Gemini TTS response contained no audio")
        return audio
