"""Speech translation API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..audio.validator import AudioValidator
from ..config.settings import Settings
from ..core.errors import InputError, PipelineError
from ..core.pipeline import PipelineOrchestrator, PipelineOutcome
from ..dependencies import get_orchestrator, get_settings
from ..utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


class TextTranslateRequest(BaseModel):
    """Text-to-speech translation request."""
    text: Optional[str] = Field(None, description="Text in the source language")


def error_response(error: PipelineError) -> JSONResponse:
    """Build the structured error response for a pipeline error."""
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def read_upload(audio: Optional[UploadFile], max_bytes: int) -> bytes:
    """Read and validate an upload without buffering more than ``max_bytes + 1``.

    Raises:
        InputError: If the upload is missing, empty or too large
    """
    if audio is None:
        return AudioValidator.validate_upload(None, max_bytes)
    if audio.size is not None and audio.size > max_bytes:
        raise InputError(f"Audio file exceeds maximum {max_bytes} bytes")

    # One byte past the limit is enough to detect an oversized upload
    data = await audio.read(max_bytes + 1)
    return AudioValidator.validate_upload(data, max_bytes)


def outcome_response(outcome: PipelineOutcome) -> Response:
    """Turn a pipeline outcome into a WAV or error response."""
    if not outcome.ok:
        return error_response(outcome.error)

    data = outcome.audio.data
    return Response(
        content=data,
        media_type="audio/wav",
        headers={
            "Content-Length": str(len(data)),
            "X-Run-Id": outcome.run_id,
        },
    )


@router.post(
    "/translate",
    response_class=Response,
    summary="Translate speech to speech",
    description="Upload source-language audio and receive translated speech as WAV",
)
async def translate_audio(
    audio: Optional[UploadFile] = File(None, description="Recorded source-language audio"),
    encoding: Optional[str] = Query(None, description="Upload encoding when conditioning is disabled"),
    sample_rate: Optional[int] = Query(None, description="Upload sample rate when conditioning is disabled"),
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Run the full audio pipeline on an uploaded recording."""
    try:
        audio_bytes = await read_upload(audio, settings.api.max_upload_bytes)
    except InputError as e:
        logger.warning(f"Rejected audio upload: {e}")
        return error_response(e)

    logger.info(
        "Received audio upload",
        extra={"file_name": audio.filename, "size_bytes": len(audio_bytes)},
    )
    outcome = await orchestrator.run_audio(audio_bytes, encoding=encoding, sample_rate=sample_rate)
    return outcome_response(outcome)


@router.post(
    "/text-translate",
    response_class=Response,
    summary="Translate text to speech",
    description="Send source-language text and receive translated speech as WAV",
)
async def translate_text(
    request: TextTranslateRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Run the text-only pipeline."""
    try:
        text = AudioValidator.validate_text(request.text, settings.api.max_text_chars)
    except InputError as e:
        logger.warning(f"Rejected text request: {e}")
        return error_response(e)

    outcome = await orchestrator.run_text(text)
    if outcome.ok:
        logger.info(f"Text translation completed: {outcome.translation.text[:80]}")
    return outcome_response(outcome)
