"""Speech-to-speech translation pipeline.

A run walks a fixed sequence of stages:

    Idle -> Conditioning -> Recognizing -> Translating -> Synthesizing -> Complete

Text input enters at Recognizing with the text standing in for the
transcript. Any error moves the run to Failed, tagged with the stage it
happened in. Stages never overlap within a run and are never retried.
Temporary files are released before the outcome is returned, whatever
the result.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from ..audio import wav
from ..audio.conditioner import TARGET_SAMPLE_RATE, AudioConditioner
from ..config.settings import Settings
from ..integrations.base import (
    AudioAsset,
    RecognitionConfig,
    Recognizer,
    SynthesisResult,
    Synthesizer,
    TranscriptResult,
    TranslationResult,
    Translator,
)
from ..utils.logging import get_logger
from .context import PipelineState, RunContext
from .errors import (
    DSPError,
    EmptyTranscriptError,
    InputError,
    PipelineError,
    RecognitionError,
    StageTimeoutError,
    SynthesisError,
    TranslationError,
)
from .metrics import active_runs, pipeline_runs, stage_duration, stage_failures
from .resources import TemporaryResourceManager

logger = get_logger(__name__)

T = TypeVar("T")

CONDITIONED_ENCODING = "LINEAR16"

# Error type used when a stage raises something outside the taxonomy
STAGE_ERRORS: Dict[PipelineState, Type[PipelineError]] = {
    PipelineState.CONDITIONING: DSPError,
    PipelineState.RECOGNIZING: RecognitionError,
    PipelineState.TRANSLATING: TranslationError,
    PipelineState.SYNTHESIZING: SynthesisError,
}


@dataclass(frozen=True)
class LanguagePair:
    """Source and target language tags for translation."""
    source: str = "as"
    target: str = "en"


@dataclass(frozen=True)
class PipelineOptions:
    """Fixed per-process pipeline configuration."""
    recognition_language: str = "as-IN"
    vocabulary_hints: Tuple[str, ...] = ()
    use_enhanced: bool = True
    languages: LanguagePair = field(default_factory=LanguagePair)
    output_sample_rate: int = 24000
    condition_audio: bool = True
    upload_encoding: str = "WEBM_OPUS"
    upload_sample_rate: int = 48000
    stage_timeout: Optional[float] = 120.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineOptions":
        return cls(
            recognition_language=settings.recognition.language_code,
            vocabulary_hints=tuple(settings.recognition.vocabulary_hints),
            use_enhanced=settings.recognition.use_enhanced,
            languages=LanguagePair(
                source=settings.translation.source_language,
                target=settings.translation.target_language,
            ),
            output_sample_rate=settings.synthesis.sample_rate,
            condition_audio=settings.pipeline.condition_audio,
            upload_encoding=settings.pipeline.upload_encoding,
            upload_sample_rate=settings.pipeline.upload_sample_rate,
            stage_timeout=settings.pipeline.stage_timeout,
        )


@dataclass
class PipelineOutcome:
    """Result of one pipeline run: a WAV asset or a tagged failure."""
    run_id: str
    state: PipelineState
    audio: Optional[AudioAsset] = None
    transcript: Optional[TranscriptResult] = None
    translation: Optional[TranslationResult] = None
    failed_stage: Optional[PipelineState] = None
    error: Optional[PipelineError] = None
    history: Tuple[PipelineState, ...] = ()
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.COMPLETE

    def to_error_dict(self) -> Dict[str, Any]:
        """Structured error payload for callers."""
        if self.error is None:
            return {}
        return self.error.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Summary suitable for JSON responses and logs."""
        data: Dict[str, Any] = {
            "run_id": self.run_id,
            "state": self.state.value,
            "duration": round(self.duration, 3),
        }
        if self.transcript:
            data["transcript"] = self.transcript.text
        if self.translation:
            data["translation"] = self.translation.text
        if self.audio:
            data["audio_bytes"] = self.audio.size
        if self.failed_stage:
            data["failed_stage"] = self.failed_stage.value
            data.update(self.to_error_dict())
        return data


class PipelineOrchestrator:
    """Drive conditioning, recognition, translation and synthesis for a run.

    Collaborators are injected so they can be replaced with stubs; they are
    shared between concurrent runs and must not hold per-run state.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        translator: Translator,
        synthesizer: Synthesizer,
        conditioner: AudioConditioner,
        resources: TemporaryResourceManager,
        options: Optional[PipelineOptions] = None,
    ):
        self.recognizer = recognizer
        self.translator = translator
        self.synthesizer = synthesizer
        self.conditioner = conditioner
        self.resources = resources
        self.options = options or PipelineOptions()

    async def run_audio(
        self,
        audio: bytes,
        encoding: Optional[str] = None,
        sample_rate: Optional[int] = None,
    ) -> PipelineOutcome:
        """Translate spoken audio into synthesized speech.

        Args:
            audio: Uploaded audio bytes
            encoding: Upload encoding, used when conditioning is disabled
            sample_rate: Upload sample rate, used when conditioning is disabled

        Returns:
            Outcome holding the WAV asset or the tagged failure
        """
        return await self._execute(
            "audio", lambda context: self._audio_stages(context, audio, encoding, sample_rate)
        )

    async def run_text(self, text: str) -> PipelineOutcome:
        """Translate source-language text into synthesized speech."""
        return await self._execute("text", lambda context: self._text_stages(context, text))

    async def _execute(
        self,
        entry: str,
        stages: Callable[[RunContext], Awaitable[PipelineOutcome]],
    ) -> PipelineOutcome:
        context = RunContext(self.resources)
        start_time = time.time()
        active_runs.inc()
        logger.info(f"Starting {entry} pipeline run", extra={"run_id": context.run_id})

        try:
            outcome = await stages(context)
        except Exception as e:
            error = self._as_pipeline_error(e, context.state)
            failed_stage = context.fail(error)
            stage_failures.labels(stage=failed_stage.value, error_type=type(error).__name__).inc()

            if isinstance(e, PipelineError):
                logger.error(
                    f"Pipeline failed in {failed_stage.value}: {error}",
                    extra={"run_id": context.run_id},
                )
            else:
                logger.error(
                    f"Unexpected error in {failed_stage.value}: {e}",
                    extra={"run_id": context.run_id},
                    exc_info=True,
                )

            outcome = PipelineOutcome(
                run_id=context.run_id,
                state=PipelineState.FAILED,
                failed_stage=failed_stage,
                error=error,
            )
        finally:
            context.close()
            active_runs.dec()

        outcome.history = tuple(context.history)
        outcome.duration = time.time() - start_time
        pipeline_runs.labels(entry=entry, outcome=outcome.state.value).inc()

        logger.info(
            f"Pipeline run finished: {outcome.state.value}",
            extra={"run_id": context.run_id, "duration": outcome.duration},
        )
        return outcome

    async def _audio_stages(
        self,
        context: RunContext,
        audio: bytes,
        encoding: Optional[str],
        sample_rate: Optional[int],
    ) -> PipelineOutcome:
        if not audio:
            raise InputError("Audio file not provided")

        if self.options.condition_audio:
            context.transition(PipelineState.CONDITIONING)
            audio = await self._run_stage(context, self.conditioner.condition(audio, context))
            encoding = CONDITIONED_ENCODING
            sample_rate = TARGET_SAMPLE_RATE
        else:
            encoding = encoding or self.options.upload_encoding
            sample_rate = sample_rate or self.options.upload_sample_rate

        context.transition(PipelineState.RECOGNIZING)
        config = RecognitionConfig(
            encoding=encoding,
            sample_rate_hertz=sample_rate,
            language_code=self.options.recognition_language,
            vocabulary_hints=self.options.vocabulary_hints,
            use_enhanced=self.options.use_enhanced,
        )
        text = await self._run_stage(context, self.recognizer.recognize(audio, config))
        if not text or not text.strip():
            raise EmptyTranscriptError("Could not understand audio")

        transcript = TranscriptResult(text=text.strip())
        logger.info(f"Transcript: {transcript.text[:80]}", extra={"run_id": context.run_id})
        return await self._translate_and_synthesize(context, transcript)

    async def _text_stages(self, context: RunContext, text: str) -> PipelineOutcome:
        if not text or not text.strip():
            raise InputError("No text provided")

        # Text input stands in for the recognition result
        context.transition(PipelineState.RECOGNIZING)
        transcript = TranscriptResult(text=text.strip())
        return await self._translate_and_synthesize(context, transcript)

    async def _translate_and_synthesize(
        self,
        context: RunContext,
        transcript: TranscriptResult,
    ) -> PipelineOutcome:
        languages = self.options.languages

        context.transition(PipelineState.TRANSLATING)
        translated = await self._run_stage(
            context,
            self.translator.translate(transcript.text, languages.source, languages.target),
        )
        if not translated or not translated.strip():
            raise TranslationError("Translator returned empty text")

        translation = TranslationResult(
            text=translated.strip(),
            source_language=languages.source,
            target_language=languages.target,
        )
        logger.info(f"Translation: {translation.text[:80]}", extra={"run_id": context.run_id})

        context.transition(PipelineState.SYNTHESIZING)
        payload = await self._run_stage(context, self.synthesizer.synthesize(translation.text))
        if not payload:
            raise SynthesisError("Synthesizer did not return audio")

        sample_rate = self.options.output_sample_rate
        synthesis = SynthesisResult(
            audio=AudioAsset(
                data=wav.pcm_to_wav(payload, sample_rate),
                encoding="WAV",
                sample_rate=sample_rate,
            )
        )

        context.transition(PipelineState.COMPLETE)
        return PipelineOutcome(
            run_id=context.run_id,
            state=PipelineState.COMPLETE,
            audio=synthesis.audio,
            transcript=transcript,
            translation=translation,
        )

    async def _run_stage(self, context: RunContext, operation: Awaitable[T]) -> T:
        """Await a stage operation under the per-stage deadline."""
        stage = context.state
        timeout = self.options.stage_timeout
        start_time = time.time()
        try:
            if timeout:
                return await asyncio.wait_for(operation, timeout=timeout)
            return await operation
        except asyncio.TimeoutError:
            raise StageTimeoutError(
                f"{stage.value} did not finish within {timeout}s", stage=stage.value
            )
        finally:
            stage_duration.labels(stage=stage.value).observe(time.time() - start_time)

    @staticmethod
    def _as_pipeline_error(error: Exception, state: PipelineState) -> PipelineError:
        if isinstance(error, PipelineError):
            return error
        error_class = STAGE_ERRORS.get(state, PipelineError)
        return error_class(str(error) or type(error).__name__)
