"""
Render pipeline for tier list narration videos.

Stages:
1. Open a private working directory
2. Normalize narration audio (exact per-segment durations)
3. Resolve item artwork
4. Plan the frame timeline from the audio durations
5. Render frames (static phases once, reveal frames on a worker pool)
6. Encode frames + audio into MP4
7. Read the result and remove the working directory
"""

import asyncio
import itertools
import logging
import os
import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import httpx

from tierlist_video.config import Settings, get_settings
from tierlist_video.exceptions import TierVideoError
from tierlist_video.render.audio_normalizer import AudioNormalizer
from tierlist_video.render.encoder import EncoderOrchestrator, frame_filename
from tierlist_video.render.fonts import FontSet
from tierlist_video.render.frame_renderer import Renderer, Scene
from tierlist_video.render.image_resolver import ImageCache, ImageResolver
from tierlist_video.render.layout import TierLayout
from tierlist_video.render.media_tool import FFmpegMediaTool, MediaTool
from tierlist_video.render.ranking import NarrationSegment, RankingDocument
from tierlist_video.render.timeline import Timeline, plan_timeline
from tierlist_video.render.workspace import RenderWorkspace
from tierlist_video.services.image_staging import ImageStagingArea

logger = logging.getLogger(__name__)

# Advisory counter for job id uniqueness within the process
_job_counter = itertools.count(1)

ProgressCallback = Callable[[int, str], Any]

FRAME_THREAD_PREFIX = "tierlist-frames"


class RenderStatus(Enum):
    """Render job status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RenderJob:
    """One render request and the state it owns."""

    ranking: RankingDocument
    segments: tuple[NarrationSegment, ...]
    id: str
    image_cache: ImageCache = field(default_factory=ImageCache)
    status: RenderStatus = RenderStatus.PENDING
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def create(cls, ranking: RankingDocument, segments: Sequence[NarrationSegment]) -> "RenderJob":
        job_id = f"{int(time.time() * 1000)}_{next(_job_counter)}"
        return cls(
            ranking=ranking,
            segments=tuple(segments),
            id=job_id,
            created_at=datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "segments": len(self.segments),
            "items": len(self.ranking.all_items()),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class RenderResult:
    video: bytes = field(repr=False)
    frame_count: int
    duration_s: float
    content_type: str = "video/mp4"
    filename: str = "tier-ranking-video.mp4"


def _default_http_client(settings: Settings) -> Callable[[], httpx.AsyncClient]:
    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.remote_image_timeout_s, follow_redirects=True)

    return factory


class RenderPipeline:
    """Turns a RenderJob into MP4 bytes."""

    PROGRESS_EVERY_FRAMES = 30

    def __init__(
        self,
        fonts: FontSet,
        settings: Settings | None = None,
        media_tool: MediaTool | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
        staging: ImageStagingArea | None = None,
    ):
        self.settings = settings or get_settings()
        self.fonts = fonts
        self.media_tool = media_tool or FFmpegMediaTool(self.settings)
        self.http_client_factory = http_client_factory or _default_http_client(self.settings)
        self.staging = staging or ImageStagingArea()
        self.fps = self.settings.render_fps
        self.layout = TierLayout(
            width=self.settings.render_output_width,
            height=self.settings.render_output_height,
        )
        self.workers = self.settings.render_workers or os.cpu_count() or 1

    async def render(self, job: RenderJob, progress_callback: ProgressCallback | None = None) -> RenderResult:
        """
        Execute the full render pipeline.

        Args:
            job: Job to render; its image cache is cleared afterwards
            progress_callback: Optional ``(percent, stage)`` callback

        Returns:
            RenderResult with the encoded video

        Raises:
            TierVideoError: Any fatal stage failure, after cleanup
        """

        def update_progress(percent: int, stage: str) -> None:
            logger.debug(f"[RENDER] Job {job.id}: {percent}% {stage}")
            if progress_callback:
                progress_callback(percent, stage)

        job.status = RenderStatus.PROCESSING
        started = time.perf_counter()
        workspace = RenderWorkspace(job, root=self.settings.render_work_root or None)

        try:
            with workspace:
                update_progress(5, "Preparing render")

                normalizer = AudioNormalizer(self.media_tool, workspace.audio_dir)
                update_progress(10, "Normalizing audio")
                audio = await normalizer.normalize(job.segments)

                update_progress(20, "Resolving images")
                async with self.http_client_factory() as client:
                    resolver = ImageResolver(
                        job.image_cache,
                        self.staging,
                        client,
                        max_bytes=self.settings.remote_image_max_bytes,
                    )
                    artwork = await resolver.resolve_items(job.ranking.all_items())

                timeline = plan_timeline(job.ranking, job.segments, audio.durations, fps=self.fps)
                scene = Scene(document=job.ranking, artwork=artwork)

                update_progress(30, "Rendering frames")
                await self._render_frames_in_thread(timeline, scene, workspace.frames_dir, update_progress)

                update_progress(80, "Encoding final video")
                encoder = EncoderOrchestrator(self.media_tool, fps=self.fps, settings=self.settings)
                output = await encoder.encode(
                    workspace.frames_dir,
                    timeline.total_frames,
                    audio.track_path,
                    workspace.output_dir / "video.mp4",
                )
                video = output.read_bytes()
                update_progress(95, "Cleaning up")
        except TierVideoError as e:
            job.status = RenderStatus.FAILED
            job.error_message = e.message
            logger.error(f"[RENDER] Job {job.id} failed: {e.code} {e.message}")
            raise
        except BaseException as e:
            job.status = RenderStatus.FAILED
            if isinstance(e, asyncio.CancelledError):
                job.error_message = "Render cancelled"
                logger.warning(f"[RENDER] Job {job.id} cancelled")
            else:
                job.error_message = str(e) or type(e).__name__
                logger.exception(f"[RENDER] Job {job.id} failed unexpectedly")
            raise

        job.status = RenderStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        elapsed = time.perf_counter() - started
        logger.info(
            f"[RENDER] Job {job.id} complete: {timeline.total_frames} frames, "
            f"{len(video)} bytes in {elapsed:.1f}s"
        )
        update_progress(100, "Complete")
        return RenderResult(
            video=video,
            frame_count=timeline.total_frames,
            duration_s=timeline.total_seconds,
        )

    async def _render_frames_in_thread(
        self,
        timeline: Timeline,
        scene: Scene,
        frames_dir: Path,
        update_progress: Callable[[int, str], None],
    ) -> int:
        """Run ``_render_frames`` off the event loop.

        On cancellation the frame threads are told to stop and awaited before
        the cancellation propagates, so nothing is still writing into
        ``frames_dir`` when the workspace is removed.
        """
        stop_event = threading.Event()
        frames_task = asyncio.ensure_future(
            asyncio.to_thread(self._render_frames, timeline, scene, frames_dir, update_progress, stop_event)
        )
        try:
            return await asyncio.shield(frames_task)
        except asyncio.CancelledError:
            stop_event.set()
            logger.warning("[FRAMES] Cancelled; waiting for frame workers to stop")
            await asyncio.wait({frames_task})
            raise

    def _render_frames(
        self,
        timeline: Timeline,
        scene: Scene,
        frames_dir: Path,
        update_progress: Callable[[int, str], None],
        stop_event: threading.Event | None = None,
    ) -> int:
        """Write every frame of ``timeline`` as ``frame_%06d.png``.

        Returns the number of frames written, which is short of the total
        when ``stop_event`` was set part way through.
        """
        stop_event = stop_event or threading.Event()
        renderer = Renderer(self.fonts, layout=self.layout, title=self.settings.render_title)
        total = timeline.total_frames
        dynamic: list[int] = []
        written = 0

        for phase in timeline.phases:
            if phase.frame_count == 0:
                continue
            if not phase.is_static:
                dynamic.extend(range(phase.start_frame, phase.end_frame))
                continue
            # Intro and conclusion frames are identical: render once, copy the rest
            first = frames_dir / frame_filename(phase.start_frame)
            renderer.render(phase, 0.0, scene).save(first, "PNG")
            written += 1
            for index in range(phase.start_frame + 1, phase.end_frame):
                if stop_event.is_set():
                    return written
                shutil.copyfile(first, frames_dir / frame_filename(index))
                written += 1

        logger.info(f"[FRAMES] {total - len(dynamic)} static, {len(dynamic)} animated frames")

        def render_one(index: int) -> bool:
            if stop_event.is_set():
                return False
            renderer.render_frame(timeline, index, scene).save(frames_dir / frame_filename(index), "PNG")
            return True

        done = 0
        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix=FRAME_THREAD_PREFIX)
        try:
            for rendered in executor.map(render_one, dynamic):
                if not rendered or stop_event.is_set():
                    break
                done += 1
                if done % self.PROGRESS_EVERY_FRAMES == 0:
                    update_progress(30 + int(50 * done / len(dynamic)), f"Rendered {done}/{len(dynamic)} frames")
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        if stop_event.is_set():
            logger.info(f"[FRAMES] Stopped after {written + done}/{total} frames")
            return written + done

        logger.info(f"[FRAMES] Wrote {total} frames to {frames_dir}")
        return total
