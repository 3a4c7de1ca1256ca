"""Unit tests for the pipeline orchestrator."""

import struct

import pytest

from speech_relay.core.context import PipelineState
from speech_relay.core.errors import (
    DSPError,
    EmptyTranscriptError,
    InputError,
    RecognitionError,
    StageTimeoutError,
    SynthesisError,
    TranslationError,
)
from speech_relay.core.pipeline import LanguagePair, PipelineOptions

from tests.stubs import (
    LeakyConditioner,
    StubConditioner,
    StubRecognizer,
    StubSynthesizer,
    StubTranslator,
    pcm_base64,
)


def assert_no_leaks(resources, temp_dir):
    assert resources.live_handles() == []
    assert list(temp_dir.iterdir()) == []


class TestAudioRun:
    """Test the full audio pipeline."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, make_orchestrator, calls, resources, temp_dir):
        """Identity DSP and echo collaborators yield a 48-byte WAV."""
        orchestrator = make_orchestrator()

        outcome = await orchestrator.run_audio(b"recorded audio")

        assert outcome.ok
        assert outcome.state is PipelineState.COMPLETE
        assert outcome.transcript.text == "hello"
        assert outcome.translation.text == "hello"

        data = outcome.audio.data
        assert len(data) == 48
        assert outcome.audio.encoding == "WAV"
        assert outcome.audio.sample_rate == 24000
        assert struct.unpack_from("<I", data, 4)[0] == 40
        assert struct.unpack_from("<I", data, 40)[0] == 4
        assert data[44:] == b"\x64\x00\x9c\xff"
        assert_no_leaks(resources, temp_dir)

    @pytest.mark.asyncio
    async def test_stage_order(self, make_orchestrator, calls):
        """Collaborators run one at a time in stage order."""
        outcome = await make_orchestrator().run_audio(b"audio")

        assert calls == ["condition", "recognize", "translate", "synthesize"]
        assert outcome.history == (
            PipelineState.IDLE,
            PipelineState.CONDITIONING,
            PipelineState.RECOGNIZING,
            PipelineState.TRANSLATING,
            PipelineState.SYNTHESIZING,
            PipelineState.COMPLETE,
        )

    @pytest.mark.asyncio
    async def test_recognizer_gets_conditioned_descriptors(self, make_orchestrator, calls):
        """Conditioned audio is always described as 16 kHz LINEAR16."""
        recognizer = StubRecognizer(calls)
        orchestrator = make_orchestrator(
            recognizer=recognizer,
            vocabulary_hints=("মই", "ভাল"),
        )

        await orchestrator.run_audio(b"audio", encoding="WEBM_OPUS", sample_rate=48000)

        config = recognizer.configs[0]
        assert config.encoding == "LINEAR16"
        assert config.sample_rate_hertz == 16000
        assert config.language_code == "as-IN"
        assert config.vocabulary_hints == ("মই", "ভাল")
        assert recognizer.audio == [b"audio"]

    @pytest.mark.asyncio
    async def test_conditioning_disabled(self, make_orchestrator, calls):
        """Without conditioning the upload descriptors are passed through."""
        recognizer = StubRecognizer(calls)
        orchestrator = make_orchestrator(recognizer=recognizer, condition_audio=False)

        outcome = await orchestrator.run_audio(b"audio")

        assert outcome.ok
        assert "condition" not in calls
        assert PipelineState.CONDITIONING not in outcome.history
        assert recognizer.configs[0].encoding == "WEBM_OPUS"
        assert recognizer.configs[0].sample_rate_hertz == 48000

    @pytest.mark.asyncio
    async def test_translation_languages(self, make_orchestrator, calls):
        translator = StubTranslator(calls)
        orchestrator = make_orchestrator(
            translator=translator,
            languages=LanguagePair(source="as", target="hi"),
        )

        await orchestrator.run_audio(b"audio")

        assert translator.requests == [("hello", "as", "hi")]

    @pytest.mark.asyncio
    async def test_transcript_is_stripped(self, make_orchestrator, calls):
        translator = StubTranslator(calls)
        orchestrator = make_orchestrator(
            recognizer=StubRecognizer(calls, text="  মই ভাল আছোঁ \n"),
            translator=translator,
        )

        outcome = await orchestrator.run_audio(b"audio")

        assert outcome.transcript.text == "মই ভাল আছোঁ"
        assert translator.requests[0][0] == "মই ভাল আছোঁ"


class TestAudioRunFailures:
    """Test failure tagging and short-circuiting."""

    @pytest.mark.asyncio
    async def test_empty_upload(self, make_orchestrator, calls):
        outcome = await make_orchestrator().run_audio(b"")

        assert outcome.state is PipelineState.FAILED
        assert outcome.failed_stage is PipelineState.IDLE
        assert isinstance(outcome.error, InputError)
        assert calls == []

    @pytest.mark.asyncio
    async def test_dsp_failure(self, make_orchestrator, calls, resources, temp_dir):
        conditioner = StubConditioner(calls, error=DSPError("ffmpeg exited with code 1"))
        outcome = await make_orchestrator(conditioner=conditioner).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.CONDITIONING
        assert isinstance(outcome.error, DSPError)
        assert outcome.error.stage == "Conditioning"
        assert calls == ["condition"]
        assert_no_leaks(resources, temp_dir)

    @pytest.mark.asyncio
    async def test_empty_transcript(self, make_orchestrator, calls, resources, temp_dir):
        """Empty recognition stops the run before translation."""
        orchestrator = make_orchestrator(recognizer=StubRecognizer(calls, text=""))

        outcome = await orchestrator.run_audio(b"audio")

        assert outcome.state is PipelineState.FAILED
        assert outcome.failed_stage is PipelineState.RECOGNIZING
        assert isinstance(outcome.error, EmptyTranscriptError)
        assert outcome.to_error_dict() == {
            "error": "Could not understand audio",
            "stage": "Recognizing",
        }
        assert calls == ["condition", "recognize"]
        assert_no_leaks(resources, temp_dir)

    @pytest.mark.asyncio
    async def test_whitespace_transcript(self, make_orchestrator, calls):
        orchestrator = make_orchestrator(recognizer=StubRecognizer(calls, text=" \n "))

        outcome = await orchestrator.run_audio(b"audio")

        assert isinstance(outcome.error, EmptyTranscriptError)

    @pytest.mark.asyncio
    async def test_recognition_failure(self, make_orchestrator, calls):
        recognizer = StubRecognizer(calls, error=RecognitionError("Google Speech-to-Text returned 403"))

        outcome = await make_orchestrator(recognizer=recognizer).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.RECOGNIZING
        assert outcome.error.status_code == 502
        assert "translate" not in calls

    @pytest.mark.asyncio
    async def test_translation_failure(self, make_orchestrator, calls, resources, temp_dir):
        """A translator error fails the run without calling the synthesizer."""
        translator = StubTranslator(calls, error=TranslationError("quota exceeded"))

        outcome = await make_orchestrator(translator=translator).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.TRANSLATING
        assert outcome.error.to_dict() == {"error": "quota exceeded", "stage": "Translating"}
        assert "synthesize" not in calls
        assert_no_leaks(resources, temp_dir)

    @pytest.mark.asyncio
    async def test_empty_translation(self, make_orchestrator, calls):
        outcome = await make_orchestrator(translator=StubTranslator(calls, text="")).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.TRANSLATING
        assert isinstance(outcome.error, TranslationError)
        assert "synthesize" not in calls

    @pytest.mark.asyncio
    async def test_synthesizer_returns_no_audio(self, make_orchestrator, calls):
        outcome = await make_orchestrator(synthesizer=StubSynthesizer(calls, payload="")).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.SYNTHESIZING
        assert isinstance(outcome.error, SynthesisError)
        assert outcome.audio is None

    @pytest.mark.asyncio
    async def test_malformed_synthesis_payload(self, make_orchestrator, calls):
        """Undecodable audio fails the synthesis stage."""
        synthesizer = StubSynthesizer(calls, payload=pcm_base64([1])[:-2] + "!!")

        outcome = await make_orchestrator(synthesizer=synthesizer).run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.SYNTHESIZING
        assert outcome.error.stage == "Synthesizing"
        assert outcome.error.status_code == 502

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, make_orchestrator, calls):
        """Errors outside the taxonomy become the stage's error type."""
        translator = StubTranslator(calls, error=RuntimeError("socket closed"))

        outcome = await make_orchestrator(translator=translator).run_audio(b"audio")

        assert isinstance(outcome.error, TranslationError)
        assert outcome.error.message == "socket closed"
        assert outcome.error.stage == "Translating"

    @pytest.mark.asyncio
    async def test_stage_timeout(self, make_orchestrator, calls):
        translator = StubTranslator(calls, delay=1.0)
        orchestrator = make_orchestrator(translator=translator, stage_timeout=0.05)

        outcome = await orchestrator.run_audio(b"audio")

        assert outcome.failed_stage is PipelineState.TRANSLATING
        assert isinstance(outcome.error, StageTimeoutError)
        assert outcome.error.status_code == 504
        assert "synthesize" not in calls

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", ["recognizer", "translator", "synthesizer"])
    async def test_unreleased_resources_cleaned_up(self, make_orchestrator, calls, resources, temp_dir, failing):
        """Files a stage forgot to release are removed when the run ends."""
        error = RuntimeError("boom")
        collaborators = {
            "recognizer": StubRecognizer(calls),
            "translator": StubTranslator(calls),
            "synthesizer": StubSynthesizer(calls),
        }
        setattr(collaborators[failing], "error", error)
        orchestrator = make_orchestrator(conditioner=LeakyConditioner(calls), **collaborators)

        outcome = await orchestrator.run_audio(b"audio")

        assert outcome.state is PipelineState.FAILED
        assert_no_leaks(resources, temp_dir)


class TestTextRun:
    """Test the text-only entry path."""

    @pytest.mark.asyncio
    async def test_skips_recognizer(self, make_orchestrator, calls, resources, temp_dir):
        translator = StubTranslator(calls)
        orchestrator = make_orchestrator(translator=translator)

        outcome = await orchestrator.run_text("মই ভাল আছোঁ")

        assert outcome.ok
        assert calls == ["translate", "synthesize"]
        assert translator.requests == [("মই ভাল আছোঁ", "as", "en")]
        assert outcome.history[:2] == (PipelineState.IDLE, PipelineState.RECOGNIZING)
        assert len(outcome.audio.data) == 48
        assert_no_leaks(resources, temp_dir)

    @pytest.mark.asyncio
    async def test_empty_text(self, make_orchestrator, calls):
        outcome = await make_orchestrator().run_text("   ")

        assert isinstance(outcome.error, InputError)
        assert outcome.error.status_code == 400
        assert calls == []

    @pytest.mark.asyncio
    async def test_synthesis_failure(self, make_orchestrator, calls):
        synthesizer = StubSynthesizer(calls, error=SynthesisError("Gemini TTS returned 500"))

        outcome = await make_orchestrator(synthesizer=synthesizer).run_text("নমস্কাৰ")

        assert outcome.failed_stage is PipelineState.SYNTHESIZING
        assert outcome.to_dict()["failed_stage"] == "Synthesizing"
        assert outcome.to_dict()["error"] == "Gemini TTS returned 500"


class TestConcurrentRuns:
    """Test that runs do not share state."""

    @pytest.mark.asyncio
    async def test_runs_have_distinct_ids(self, make_orchestrator, resources, temp_dir):
        import asyncio

        orchestrator = make_orchestrator()

        outcomes = await asyncio.gather(*(orchestrator.run_audio(b"audio") for _ in range(5)))

        assert all(outcome.ok for outcome in outcomes)
        assert len({outcome.run_id for outcome in outcomes}) == 5
        assert_no_leaks(resources, temp_dir)


def test_options_from_settings():
    from speech_relay.config.settings import Settings

    settings = Settings(
        translation={"source_language": "as", "target_language": "bn"},
        pipeline={"condition_audio": False, "stage_timeout": 30},
    )

    options = PipelineOptions.from_settings(settings)

    assert options.languages == LanguagePair(source="as", target="bn")
    assert options.condition_audio is False
    assert options.stage_timeout == 30
    assert options.output_sample_rate == 24000
    assert options.recognition_language == "as-IN"
