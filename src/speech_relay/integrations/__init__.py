"""
External collaborators for the speech relay.

Recognition, translation and synthesis are delegated to hosted services.
The pipeline only depends on the protocols in ``base``; the concrete
clients here are wired in by ``speech_relay.dependencies``.
"""

from .base import (
    AudioAsset,
    RecognitionConfig,
    Recognizer,
    SynthesisResult,
    Synthesizer,
    TranscriptResult,
    TranslationResult,
    Translator,
)
from .gemini_tts import GeminiSynthesizer
from .google_speech import GoogleSpeechRecognizer
from .google_translate import GoogleTranslator
from .openai_transcribe import OpenAITranscriber

__all__ = [
    "AudioAsset",
    "RecognitionConfig",
    "Recognizer",
    "SynthesisResult",
    "Synthesizer",
    "TranscriptResult",
    "TranslationResult",
    "Translator",
    "GeminiSynthesizer",
    "GoogleSpeechRecognizer",
    "GoogleTranslator",
    "OpenAITranscriber",
]
