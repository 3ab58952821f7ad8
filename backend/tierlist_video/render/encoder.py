import logging
from pathlib import Path

from tierlist_video.config import Settings, get_settings
from tierlist_video.exceptions import EncoderInvocationError
from tierlist_video.render.media_tool import MediaTool

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"


def frame_filename(index: int) -> str:
    return f"frame_{index:06d}.png"


class EncoderOrchestrator:
    """Muxes the numbered frame sequence and the narration track into MP4."""

    def __init__(self, media_tool: MediaTool, fps: int = 30, settings: Settings | None = None):
        self.media_tool = media_tool
        self.fps = fps
        self.settings = settings or get_settings()

    def timeout_for(self, frame_count: int) -> float:
        return self.settings.encode_timeout_base_s + frame_count * self.settings.encode_timeout_per_frame_s

    def _check_frames(self, frames_dir: Path, frame_count: int) -> None:
        if frame_count <= 0:
            raise EncoderInvocationError("No frames to encode")
        # The image2 demuxer stops at the first gap
        for index in range(frame_count):
            if not (frames_dir / frame_filename(index)).is_file():
                raise EncoderInvocationError(f"Missing frame {frame_filename(index)}")
        if (frames_dir / frame_filename(frame_count)).exists():
            raise EncoderInvocationError(f"Unexpected frame beyond {frame_count - 1}")

    async def encode(self, frames_dir: Path, frame_count: int, audio_path: Path, output_path: Path) -> Path:
        """Encode frames + audio into ``output_path``.

        Raises:
            EncoderInvocationError: Frames missing, encoder failed or no output
        """
        frames_dir = Path(frames_dir)
        output_path = Path(output_path)
        self._check_frames(frames_dir, frame_count)
        if not Path(audio_path).is_file():
            raise EncoderInvocationError(f"Audio track not found: {audio_path}")

        timeout = self.timeout_for(frame_count)
        logger.info(f"[ENCODE] {frame_count} frames @ {self.fps}fps, timeout {timeout:.0f}s")
        await self.media_tool.encode(frames_dir / FRAME_PATTERN, self.fps, Path(audio_path), output_path, timeout)

        if not output_path.is_file() or output_path.stat().st_size == 0:
            raise EncoderInvocationError("Encoder produced no output")

        logger.info(f"[ENCODE] Output {output_path.name}: {output_path.stat().st_size} bytes")
        return output_path
