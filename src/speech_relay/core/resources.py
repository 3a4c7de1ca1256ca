"""Scoped temporary files for pipeline runs.

Each run writes its intermediate audio to disk so the external DSP engine
can read and write it. Files are keyed by ``(run_id, role)`` and must be
removed on every exit path; ``TemporaryResourceManager`` is the only code
that creates or deletes them.
"""

import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .errors import NotFoundError, ResourceError
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ROOT = Path(tempfile.gettempdir()) / "speech-relay"


@dataclass(eq=False)
class ResourceHandle:
    """A named, run-scoped file path."""
    run_id: str
    role: str
    path: Path
    released: bool = field(default=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.run_id, self.role)

    @property
    def exists(self) -> bool:
        """Whether content has been materialized on disk."""
        return self.path.exists()


class TemporaryResourceManager:
    """Allocate, read, write and release run-scoped temporary files."""

    def __init__(self, root_dir: Union[str, Path, None] = None, suffix: str = ".wav"):
        """Initialize resource manager.

        Args:
            root_dir: Directory holding temporary files (created on demand)
            suffix: File extension for allocated paths
        """
        self.root_dir = Path(root_dir) if root_dir else DEFAULT_ROOT
        self.suffix = suffix
        self._live: Dict[Tuple[str, str], ResourceHandle] = {}
        self._lock = threading.RLock()

    def acquire(self, run_id: str, role: str) -> ResourceHandle:
        """Allocate a uniquely named path for ``(run_id, role)``.

        No content is created until ``write`` is called.

        Raises:
            ResourceError: If the key is already held
        """
        if not run_id or not role:
            raise ResourceError("Resource run_id and role must be non-empty")

        handle = ResourceHandle(
            run_id=run_id,
            role=role,
            path=self.root_dir / f"{role}_{run_id}{self.suffix}",
        )
        with self._lock:
            if handle.key in self._live:
                raise ResourceError(f"Resource '{role}' already acquired for run {run_id}")
            self._live[handle.key] = handle

        logger.debug("Acquired resource", extra={"run_id": run_id, "role": role})
        return handle

    def write(self, handle: ResourceHandle, data: bytes) -> None:
        """Write bytes to the resource, replacing existing content."""
        self._check_live(handle)
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
            handle.path.write_bytes(data)
        except OSError as e:
            raise ResourceError(f"Failed to write resource '{handle.role}': {e}")

    def read(self, handle: ResourceHandle) -> bytes:
        """Read the resource content.

        Raises:
            NotFoundError: If nothing was written to the resource
            ResourceError: On any other filesystem failure
        """
        self._check_live(handle)
        try:
            return handle.path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(f"Resource '{handle.role}' has no content for run {handle.run_id}")
        except OSError as e:
            raise ResourceError(f"Failed to read resource '{handle.role}': {e}")

    def release(self, handle: ResourceHandle) -> None:
        """Delete the resource content.

        Releasing an already released or never written handle is a no-op.

        Raises:
            ResourceError: If the file exists but cannot be removed
        """
        if handle.released:
            return

        with self._lock:
            self._live.pop(handle.key, None)
        handle.released = True

        try:
            handle.path.unlink(missing_ok=True)
        except OSError as e:
            raise ResourceError(f"Failed to release resource '{handle.role}': {e}")

        logger.debug("Released resource", extra={"run_id": handle.run_id, "role": handle.role})

    @contextmanager
    def scoped(self, run_id: str, role: str) -> Iterator[ResourceHandle]:
        """Acquire a resource for the duration of a ``with`` block."""
        handle = self.acquire(run_id, role)
        try:
            yield handle
        finally:
            self.release(handle)

    def live_handles(self, run_id: Optional[str] = None) -> List[ResourceHandle]:
        """List handles that have been acquired but not released."""
        with self._lock:
            handles = list(self._live.values())
        if run_id is not None:
            handles = [h for h in handles if h.run_id == run_id]
        return handles

    def _check_live(self, handle: ResourceHandle) -> None:
        if handle.released:
            raise ResourceError(f"Resource '{handle.role}' was already released")
