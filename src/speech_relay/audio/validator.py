"""Request input validation."""

from typing import Optional

from ..core.errors import InputError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class AudioValidator:
    """Validate pipeline inputs before a run starts."""

    MAX_UPLOAD_BYTES = 25 * 1024 * 1024
    MAX_TEXT_CHARS = 5000

    @classmethod
    def validate_upload(cls, audio_data: Optional[bytes], max_bytes: Optional[int] = None) -> bytes:
        """Validate an uploaded audio buffer.

        Args:
            audio_data: Raw uploaded bytes
            max_bytes: Size limit (default: MAX_UPLOAD_BYTES)

        Returns:
            The validated bytes

        Raises:
            InputError: If the upload is missing, empty or too large
        """
        if audio_data is None:
            raise InputError("Audio file not provided")
        if len(audio_data) == 0:
            raise InputError("Audio file is empty")

        limit = max_bytes or cls.MAX_UPLOAD_BYTES
        if len(audio_data) > limit:
            raise InputError(f"Audio file exceeds maximum {limit} bytes")

        logger.debug("Validated audio upload", extra={"size_bytes": len(audio_data)})
        return audio_data

    @classmethod
    def validate_text(cls, text: Optional[str], max_chars: Optional[int] = None) -> str:
        """Validate source-language text for the text-only path.

        Returns:
            The text with surrounding whitespace removed

        Raises:
            InputError: If the text is missing, blank or too long
        """
        if text is None or not text.strip():
            raise InputError("No text provided")

        text = text.strip()
        limit = max_chars or cls.MAX_TEXT_CHARS
        if len(text) > limit:
            raise InputError(f"Text of {len(text)} characters exceeds maximum {limit}")
        return text
