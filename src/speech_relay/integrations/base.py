"""Collaborator interfaces and the value records passed between stages."""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Tuple, runtime_checkable


@dataclass(frozen=True)
class AudioAsset:
    """Immutable audio payload with its format descriptors."""
    data: bytes
    encoding: str
    sample_rate: int
    channels: int = 1

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RecognitionConfig:
    """Parameters for a single recognition request."""
    encoding: str
    sample_rate_hertz: int
    language_code: str
    vocabulary_hints: Tuple[str, ...] = field(default_factory=tuple)
    use_enhanced: bool = True


@dataclass(frozen=True)
class TranscriptResult:
    """Text recognized from audio."""
    text: str
    stage: str = "Recognizing"


@dataclass(frozen=True)
class TranslationResult:
    """Text translated into the target language."""
    text: str
    source_language: str
    target_language: str
    stage: str = "Translating"


@dataclass(frozen=True)
class SynthesisResult:
    """Synthesized speech wrapped in a WAV container."""
    audio: AudioAsset
    stage: str = "Synthesizing"


@runtime_checkable
class Recognizer(Protocol):
    """Speech-to-text collaborator."""

    async def recognize(self, audio: bytes, config: RecognitionConfig) -> str:
        """Recognize speech in ``audio``.

        Raises:
            RecognitionError: On collaborator failure
        """
        ...


@runtime_checkable
class Translator(Protocol):
    """Text translation collaborator."""

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        """Translate ``text`` between the given languages.

        Raises:
            TranslationError: On collaborator failure
        """
        ...


@runtime_checkable
class Synthesizer(Protocol):
    """Text-to-speech collaborator returning base64 encoded int16 PCM."""

    async def synthesize(self, text: str) -> Optional[str]:
        """Synthesize ``text``.

        Raises:
            SynthesisError: On collaborator failure
        """
        ...
