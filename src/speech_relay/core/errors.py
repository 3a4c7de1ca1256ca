"""Error taxonomy for the translation pipeline.

Every failure surfaced by the pipeline is a ``PipelineError``. The
orchestrator tags each error with the stage it originated in before
handing it back to the caller, and the HTTP layer maps ``status_code``
onto the response.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    status_code: int = 500

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the structured error payload returned to callers."""
        payload: Dict[str, Any] = {"error": self.message}
        if self.stage:
            payload["stage"] = self.stage
        return payload

    def __str__(self) -> str:
        return self.message


class InputError(PipelineError):
    """Missing or empty upload or text."""

    status_code = 400


class DSPError(PipelineError):
    """Signal-processing engine failure or missing engine binary."""

    def __init__(self, message: str, diagnostics: str = "", stage: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.diagnostics = diagnostics


class RecognitionError(PipelineError):
    """Speech recognition collaborator failure."""

    status_code = 502


class EmptyTranscriptError(RecognitionError):
    """Recognizer returned no usable text."""

    status_code = 422


class TranslationError(PipelineError):
    """Translation collaborator failure."""

    status_code = 502


class SynthesisError(PipelineError):
    """Speech synthesis collaborator failure or empty audio."""

    status_code = 502


class DecodeError(PipelineError):
    """Malformed base64, PCM or WAV payload."""

    status_code = 502


class ResourceError(PipelineError):
    """Filesystem I/O failure while handling a temporary resource."""


class NotFoundError(ResourceError):
    """A temporary resource or input file does not exist."""


class StageTimeoutError(PipelineError):
    """A stage did not finish within its deadline."""

    status_code = 504


class InvalidTransitionError(PipelineError):
    """The pipeline was asked to make an illegal state transition."""
