"""FastAPI dependency injection providers.

Collaborator clients are process-wide: they are created once on first use
and shared by every request. Tests replace them through FastAPI's
``dependency_overrides`` or by calling ``set_orchestrator``.
"""

from typing import Optional

from .audio.conditioner import AudioConditioner
from .config.loader import load_config
from .config.settings import Settings
from .core.pipeline import PipelineOptions, PipelineOrchestrator
from .core.resources import TemporaryResourceManager
from .integrations import (
    GeminiSynthesizer,
    GoogleSpeechRecognizer,
    GoogleTranslator,
    OpenAITranscriber,
    Recognizer,
)
from .utils.logging import get_logger

logger = get_logger(__name__)


# Global singletons (initialized once)
_settings: Optional[Settings] = None
_orchestrator: Optional[PipelineOrchestrator] = None


def get_settings() -> Settings:
    """Get application settings (loaded once)."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the cached settings instance."""
    global _settings
    _settings = settings


def create_recognizer(settings: Settings) -> Recognizer:
    """Build the recognizer for the configured backend."""
    config = settings.recognition
    if config.backend == "openai":
        return OpenAITranscriber(
            api_key=config.openai_api_key,
            model=config.openai_model,
            prompt=config.openai_prompt,
            base_url=config.openai_base_url,
            timeout=config.timeout,
        )
    return GoogleSpeechRecognizer(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=config.timeout,
    )


def create_orchestrator(settings: Settings) -> PipelineOrchestrator:
    """Wire the pipeline with the configured collaborator clients."""
    resources = TemporaryResourceManager(settings.dsp.temp_dir)
    conditioner = AudioConditioner(
        resources,
        ffmpeg_path=settings.dsp.ffmpeg_path,
        timeout=settings.dsp.timeout,
    )
    translator = GoogleTranslator(
        api_key=settings.translation.api_key,
        base_url=settings.translation.base_url,
        timeout=settings.translation.timeout,
    )
    synthesizer = GeminiSynthesizer(
        api_key=settings.synthesis.api_key,
        model=settings.synthesis.model,
        voice=settings.synthesis.voice,
        base_url=settings.synthesis.base_url,
        timeout=settings.synthesis.timeout,
    )

    logger.info(
        "Initializing pipeline",
        extra={
            "recognition_backend": settings.recognition.backend,
            "source_language": settings.translation.source_language,
            "target_language": settings.translation.target_language,
            "temp_dir": str(settings.dsp.temp_dir),
        },
    )
    return PipelineOrchestrator(
        recognizer=create_recognizer(settings),
        translator=translator,
        synthesizer=synthesizer,
        conditioner=conditioner,
        resources=resources,
        options=PipelineOptions.from_settings(settings),
    )


def get_orchestrator() -> PipelineOrchestrator:
    """Get or create the pipeline orchestrator (singleton)."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = create_orchestrator(get_settings())
    return _orchestrator


def set_orchestrator(orchestrator: Optional[PipelineOrchestrator]) -> None:
    """Replace the orchestrator singleton."""
    global _orchestrator
    _orchestrator = orchestrator


async def close_clients() -> None:
    """Close the HTTP sessions held by collaborator clients."""
    if _orchestrator is None:
        return
    for client in (_orchestrator.recognizer, _orchestrator.translator, _orchestrator.synthesizer):
        close = getattr(client, "close", None)
        if close is not None:
            await close()
