"""Google Cloud Translation client."""

import html
from typing import Optional

from .http import HTTPClient
from ..core.errors import TranslationError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class GoogleTranslator(HTTPClient):
    """Translate text with the Cloud Translation v2 REST API."""

    error_class = TranslationError
    service_name = "Google Translate"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://translation.googleapis.com",
        timeout: float = 30.0,
    ):
        super().__init__(base_url, timeout)
        self.api_key = api_key

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        """Translate ``text`` from ``source_language`` to ``target_language``.

        Raises:
            TranslationError: On API failure or a response without translations
        """
        api_key = self._require_key(self.api_key)
        payload = {
            "q": [text],
            "source": source_language,
            "target": target_language,
            "format": "text",
        }

        logger.info(
            f"Translating {source_language} -> {target_language}",
            extra={"text_length": len(text)},
        )
        response = await self._post(
            f"{self.base_url}/language/translate/v2",
            json=payload,
            params={"key": api_key},
        )

        try:
            translated = response["data"]["translations"][0]["translatedText"]
        except (KeyError, IndexError, TypeError):
            raise TranslationError(f"{self.service_name} returned no translations")

        # v2 may still escape entities for some languages
        translated = html.unescape(translated)
        logger.info(f"Translation complete: {translated[:50]}...")
        return translated
