"""Speech conditioning with ffmpeg.

Uploaded audio arrives in whatever format the browser recorded. Before
recognition it is normalized to mono 16 kHz 16-bit PCM and cleaned up by
a fixed filter chain. The chain order matters: band-limiting runs before
noise reduction, and loudness normalization runs last.
"""

import asyncio
import contextlib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..core.context import RunContext
from ..core.errors import DSPError, NotFoundError, ResourceError
from ..core.resources import TemporaryResourceManager
from ..utils.logging import get_logger

logger = get_logger(__name__)

TARGET_SAMPLE_RATE = 16000
TARGET_CHANNELS = 1
TARGET_CODEC = "pcm_s16le"


@dataclass(frozen=True)
class FilterStep:
    """A single ffmpeg audio filter."""
    name: str
    options: str = ""

    def render(self) -> str:
        return f"{self.name}={self.options}" if self.options else self.name


SPEECH_FILTER_CHAIN: Tuple[FilterStep, ...] = (
    FilterStep("highpass", "f=80"),          # low-frequency hum
    FilterStep("lowpass", "f=8000"),         # high-frequency hiss
    FilterStep("afftdn"),                    # spectral noise reduction
    FilterStep("silenceremove", "1:0:-50dB"),
    FilterStep("loudnorm"),
)


def build_filter_graph(chain: Tuple[FilterStep, ...] = SPEECH_FILTER_CHAIN) -> str:
    """Render a filter chain as an ffmpeg ``-af`` argument."""
    return ",".join(step.render() for step in chain)


def resolve_ffmpeg(ffmpeg_path: Optional[str] = None) -> Optional[str]:
    """Locate the ffmpeg binary.

    An explicit path wins if it exists; otherwise ``ffmpeg`` is looked up
    on ``PATH``.
    """
    if ffmpeg_path:
        if Path(ffmpeg_path).is_file():
            return str(ffmpeg_path)
        return shutil.which(ffmpeg_path)
    return shutil.which("ffmpeg")


class AudioConditioner:
    """Run uploaded audio through the speech filter chain."""

    def __init__(
        self,
        resources: TemporaryResourceManager,
        ffmpeg_path: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """Initialize conditioner.

        Args:
            resources: Manager for the raw and cleaned working files
            ffmpeg_path: ffmpeg binary path or name (default: ``ffmpeg`` on PATH)
            timeout: Seconds to wait for the engine before killing it
        """
        self.resources = resources
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    @property
    def available(self) -> bool:
        """Check if the ffmpeg binary can be found."""
        return resolve_ffmpeg(self.ffmpeg_path) is not None

    def build_command(self, binary: str, input_path: Path, output_path: Path) -> List[str]:
        """Build the ffmpeg command line for one conditioning pass."""
        return [
            binary,
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y",
            "-i", str(input_path),
            "-af", build_filter_graph(),
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", str(TARGET_CHANNELS),
            "-acodec", TARGET_CODEC,
            "-f", "wav",
            str(output_path),
        ]

    async def condition(self, raw_bytes: bytes, context: Optional[RunContext] = None) -> bytes:
        """Condition an audio buffer for speech recognition.

        Both working files are released before this returns, whether the
        engine succeeded or not.

        Args:
            raw_bytes: Audio in any format ffmpeg can decode
            context: Run that owns the working files; a fresh one is used
                when omitted

        Returns:
            Mono 16 kHz 16-bit PCM WAV bytes

        Raises:
            DSPError: If ffmpeg is missing, fails or times out
            NotFoundError: If a working file is missing
        """
        if context is None:
            with RunContext(self.resources) as own_context:
                return await self._condition(raw_bytes, own_context)
        return await self._condition(raw_bytes, context)

    async def condition_file(self, path: Union[str, Path], context: Optional[RunContext] = None) -> bytes:
        """Condition an audio file on disk.

        Raises:
            NotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"Audio file not found: {path}")
        try:
            raw_bytes = path.read_bytes()
        except OSError as e:
            raise ResourceError(f"Failed to read {path}: {e}")
        return await self.condition(raw_bytes, context)

    async def _condition(self, raw_bytes: bytes, context: RunContext) -> bytes:
        binary = resolve_ffmpeg(self.ffmpeg_path)
        if binary is None:
            raise DSPError(f"ffmpeg binary not found ({self.ffmpeg_path or 'ffmpeg'})")

        with context.resource("raw") as raw, context.resource("cleaned") as cleaned:
            self.resources.write(raw, raw_bytes)

            cmd = self.build_command(binary, raw.path, cleaned.path)
            logger.info(
                "Running ffmpeg conditioning",
                extra={"run_id": context.run_id, "input_bytes": len(raw_bytes)},
            )
            await self._run_engine(cmd)

            cleaned_bytes = self.resources.read(cleaned)

        logger.info(
            "Conditioning complete",
            extra={"run_id": context.run_id, "output_bytes": len(cleaned_bytes)},
        )
        return cleaned_bytes

    async def _run_engine(self, cmd: List[str]) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise DSPError(f"ffmpeg binary not found: {e}")
        except OSError as e:
            raise DSPError(f"Failed to start ffmpeg: {e}")

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise DSPError(f"ffmpeg timed out after {self.timeout}s")
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            raise

        diagnostics = stderr.decode(errors="replace").strip()
        if process.returncode != 0:
            logger.error(f"ffmpeg failed with exit code {process.returncode}: {diagnostics}")
            raise DSPError(
                f"ffmpeg exited with code {process.returncode}: {diagnostics}",
                diagnostics=diagnostics,
            )
