"""Per-run pipeline state and resource ownership."""

import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional

from .errors import InvalidTransitionError, PipelineError
from .resources import ResourceHandle, TemporaryResourceManager
from ..utils.logging import get_logger

logger = get_logger(__name__)


class PipelineState(str, Enum):
    """Pipeline states in stage order."""
    IDLE = "Idle"
    CONDITIONING = "Conditioning"
    RECOGNIZING = "Recognizing"
    TRANSLATING = "Translating"
    SYNTHESIZING = "Synthesizing"
    COMPLETE = "Complete"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.COMPLETE, PipelineState.FAILED)


# Forward transitions; FAILED is additionally reachable from any non-terminal state
TRANSITIONS: Dict[PipelineState, FrozenSet[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.CONDITIONING, PipelineState.RECOGNIZING}),
    PipelineState.CONDITIONING: frozenset({PipelineState.RECOGNIZING}),
    PipelineState.RECOGNIZING: frozenset({PipelineState.TRANSLATING}),
    PipelineState.TRANSLATING: frozenset({PipelineState.SYNTHESIZING}),
    PipelineState.SYNTHESIZING: frozenset({PipelineState.COMPLETE}),
    PipelineState.COMPLETE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


class RunContext:
    """State and temporary resources for a single pipeline run.

    The context owns every resource it acquires. ``close`` releases
    whatever is still outstanding and is safe to call more than once.
    """

    def __init__(self, resources: TemporaryResourceManager, run_id: Optional[str] = None):
        self.run_id = run_id or uuid.uuid4().hex
        self.resources = resources
        self.state = PipelineState.IDLE
        self.history: List[PipelineState] = [PipelineState.IDLE]
        self._handles: List[ResourceHandle] = []

    def transition(self, new_state: PipelineState) -> None:
        """Move to ``new_state``.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        allowed = TRANSITIONS[self.state]
        if new_state is PipelineState.FAILED and not self.state.is_terminal:
            allowed = allowed | {PipelineState.FAILED}

        if new_state not in allowed:
            raise InvalidTransitionError(
                f"Illegal transition {self.state.value} -> {new_state.value}",
                stage=self.state.value,
            )

        logger.info(
            f"{self.state.value} -> {new_state.value}",
            extra={"run_id": self.run_id, "old_state": self.state.value, "new_state": new_state.value},
        )
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: PipelineError) -> PipelineState:
        """Tag ``error`` with the current stage and move to FAILED.

        Returns:
            The stage the run failed in
        """
        failed_stage = self.state
        if error.stage is None:
            error.stage = failed_stage.value
        if not self.state.is_terminal:
            self.transition(PipelineState.FAILED)
        return failed_stage

    def acquire(self, role: str) -> ResourceHandle:
        """Acquire a resource owned by this run."""
        handle = self.resources.acquire(self.run_id, role)
        self._handles.append(handle)
        return handle

    def release(self, handle: ResourceHandle) -> None:
        """Release a resource owned by this run."""
        try:
            self.resources.release(handle)
        finally:
            if handle in self._handles:
                self._handles.remove(handle)

    @contextmanager
    def resource(self, role: str) -> Iterator[ResourceHandle]:
        """Acquire a run-owned resource for the duration of a ``with`` block."""
        handle = self.acquire(role)
        try:
            yield handle
        except BaseException:
            self._release_quietly(handle)
            raise
        self.release(handle)

    @property
    def outstanding(self) -> List[ResourceHandle]:
        return list(self._handles)

    def close(self) -> None:
        """Release every outstanding resource.

        Release failures are logged rather than raised so they never mask
        the error that ended the run.
        """
        for handle in list(self._handles):
            self._release_quietly(handle)

    def _release_quietly(self, handle: ResourceHandle) -> None:
        try:
            self.release(handle)
        except PipelineError as e:
            logger.error(
                f"Failed to release resource during cleanup: {e}",
                extra={"run_id": self.run_id, "role": handle.role},
            )

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "RunContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
