"""Per-job working directory.

    with RenderWorkspace(job) as workspace:
        ... write into workspace.frames_dir / audio_dir / output_dir ...
    # directory removed and the job's image cache cleared, even on error
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from tierlist_video.exceptions import ResourceAllocationError

if TYPE_CHECKING:
    from tierlist_video.render.pipeline import RenderJob

logger = logging.getLogger(__name__)


class RenderWorkspace:
    def __init__(self, job: "RenderJob", root: str | Path | None = None):
        self.job = job
        self.root = Path(root) if root else None
        self.path: Optional[Path] = None

    @property
    def frames_dir(self) -> Path:
        return self._require() / "frames"

    @property
    def audio_dir(self) -> Path:
        return self._require() / "audio"

    @property
    def output_dir(self) -> Path:
        return self._require() / "output"

    def _require(self) -> Path:
        if self.path is None:
            raise RuntimeError("Workspace is not open")
        return self.path

    def open(self) -> "RenderWorkspace":
        """Create the private directory tree.

        Raises:
            ResourceAllocationError: Directory could not be created
        """
        try:
            if self.root is not None:
                self.root.mkdir(parents=True, exist_ok=True)
            self.path = Path(
                tempfile.mkdtemp(
                    prefix=f"tierlist_render_{self.job.id}_",
                    dir=str(self.root) if self.root is not None else None,
                )
            )
            for sub in ("frames", "audio", "output"):
                (self.path / sub).mkdir()
        except OSError as e:
            self.cleanup()
            raise ResourceAllocationError(f"Failed to create working directory: {e}") from e

        logger.info(f"[WORKSPACE] Job {self.job.id}: {self.path}")
        return self

    def cleanup(self) -> None:
        """Remove the directory tree and evict the job's cached images."""
        self.job.image_cache.clear()
        if self.path is None:
            return
        try:
            shutil.rmtree(self.path)
            logger.info(f"[WORKSPACE] Job {self.job.id}: removed {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"[WORKSPACE] Job {self.job.id}: failed to remove {self.path}: {e}")

    def __enter__(self) -> "RenderWorkspace":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
