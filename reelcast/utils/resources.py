"""
Per-run scratch workspace

Every downloaded input, intermediate render and generated filter/concat file
of a run lives under one temp directory and is tracked here. release() unlinks
all of it exactly once, whichever way the run ends. Remote storage is never
touched.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional, Union

from .errors import ResourceError

logger = logging.getLogger(__name__)


class RunWorkspace:
    """Scoped temp directory with tracked files"""

    def __init__(self, root: Union[str, Path], run_id: Optional[str] = None):
        self.root = Path(root)
        self.run_id = run_id or uuid.uuid4().hex
        self.directory = self.root / self.run_id
        self._tracked: List[Path] = []
        self._acquired = False
        self._released = False

    @property
    def tracked_paths(self) -> List[Path]:
        return list(self._tracked)

    @property
    def released(self) -> bool:
        return self._released

    def acquire(self) -> "RunWorkspace":
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceError(f"Temp directory {self.directory} is not writable: {e}") from e
        self._acquired = True
        logger.debug(f"Workspace ready: {self.directory}")
        return self

    def track(self, path: Union[str, Path]) -> Path:
        """Register a local file for cleanup; returns it as a Path"""
        path = Path(path)
        if path not in self._tracked:
            self._tracked.append(path)
        return path

    def new_path(self, prefix: str, suffix: str = "") -> Path:
        """Reserve (and track) a fresh file name inside the workspace"""
        if not self._acquired:
            raise ResourceError("Workspace used before acquire()")
        return self.track(self.directory / f"{prefix}_{uuid.uuid4().hex[:12]}{suffix}")

    def release(self) -> int:
        """Best-effort removal of every tracked file; returns how many were deleted"""
        if self._released:
            return 0
        self._released = True

        deleted = 0
        for path in self._tracked:
            try:
                if path.exists():
                    path.unlink()
                    deleted += 1
            except OSError as e:
                logger.warning(f"Could not delete temp file {path}: {e}")

        if self._acquired:
            try:
                self.directory.rmdir()
            except FileNotFoundError:
                pass
            except OSError as e:
                # Untracked leftovers stay for inspection
                logger.warning(f"Workspace directory not removed {self.directory}: {e}")

        logger.info(f"Workspace {self.run_id} released ({deleted} files deleted)")
        return deleted

    def __enter__(self) -> "RunWorkspace":
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    async def __aenter__(self) -> "RunWorkspace":
        return self.acquire()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
