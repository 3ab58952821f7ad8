"""ffmpeg / ffprobe invocations used by the render pipeline.

``MediaTool`` is the only seam through which the pipeline touches external
media tools, so tests can substitute a fake. Every call runs the binary as an
asyncio subprocess with a finite timeout and is never retried. Cancelling the
awaiting task kills the child.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Protocol

from tierlist_video.config import Settings, get_settings
from tierlist_video.exceptions import (
    AudioProbeError,
    AudioTranscodeError,
    EncoderInvocationError,
    TierVideoError,
)
from tierlist_video.utils.media_info import get_media_duration_seconds, run_media_command

logger = logging.getLogger(__name__)

STDERR_TAIL = 800


class MediaTool(Protocol):
    async def transcode(self, source: Path, destination: Path) -> None:
        """Convert any audio container into the canonical WAV format."""

    async def probe_duration(self, path: Path) -> float:
        """Return the exact duration of a clip in seconds."""

    async def synthesize_silence(self, destination: Path, duration: float) -> None:
        """Write a canonical silent clip of ``duration`` seconds."""

    async def fit_duration(self, source: Path, destination: Path, duration: float) -> None:
        """Pad or trim a canonical clip to exactly ``duration`` seconds."""

    async def concat(self, clips: list[Path], destination: Path) -> None:
        """Losslessly join canonical clips in order."""

    async def encode(
        self,
        frame_pattern: Path,
        fps: int,
        audio_path: Path,
        output_path: Path,
        timeout: float,
    ) -> None:
        """Mux a numbered PNG sequence and an audio track into MP4."""


class FFmpegMediaTool:
    """MediaTool backed by the ffmpeg and ffprobe binaries."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path
        self.ffprobe_path = self.settings.ffprobe_path
        self.sample_rate = self.settings.render_audio_sample_rate
        self.channels = self.settings.render_audio_channels
        self.timeout = self.settings.media_tool_timeout_s

    @property
    def _pcm_args(self) -> list[str]:
        return [
            "-ar", str(self.sample_rate),
            "-ac", str(self.channels),
            "-c:a", "pcm_s16le",
        ]

    async def _run(self, cmd: list[str], error_cls: type[TierVideoError], timeout: float | None = None) -> None:
        timeout = timeout or self.timeout
        logger.debug(f"[FFMPEG] {' '.join(cmd)}")
        try:
            returncode, _, stderr = await run_media_command(cmd, timeout)
        except FileNotFoundError as e:
            raise error_cls(f"Executable not found: {cmd[0]}") from e
        except asyncio.TimeoutError as e:
            raise error_cls(f"{Path(cmd[0]).name} timed out after {timeout:.0f}s") from e

        if returncode != 0:
            stderr_tail = stderr[-STDERR_TAIL:]
            logger.error(f"[FFMPEG] exit {returncode}: {stderr_tail}")
            raise error_cls(f"{Path(cmd[0]).name} exited with {returncode}: {stderr_tail}")

    async def transcode(self, source: Path, destination: Path) -> None:
        cmd = [
            self.ffmpeg_path, "-y",
            "-i", str(source),
            "-vn",
            *self._pcm_args,
            str(destination),
        ]
        await self._run(cmd, AudioTranscodeError)

    async def probe_duration(self, path: Path) -> float:
        try:
            return await get_media_duration_seconds(
                str(path), ffprobe_path=self.ffprobe_path, timeout=self.timeout
            )
        except RuntimeError as e:
            raise AudioProbeError(str(e)) from e

    async def synthesize_silence(self, destination: Path, duration: float) -> None:
        layout = "stereo" if self.channels == 2 else "mono"
        cmd = [
            self.ffmpeg_path, "-y",
            "-f", "lavfi",
            "-i", f"anullsrc=r={self.sample_rate}:cl={layout}",
            "-t", f"{duration:.6f}",
            *self._pcm_args,
            str(destination),
        ]
        await self._run(cmd, AudioTranscodeError)

    async def fit_duration(self, source: Path, destination: Path, duration: float) -> None:
        cmd = [
            self.ffmpeg_path, "-y",
            "-i", str(source),
            "-af", "apad",
            "-t", f"{duration:.6f}",
            *self._pcm_args,
            str(destination),
        ]
        await self._run(cmd, AudioTranscodeError)

    async def concat(self, clips: list[Path], destination: Path) -> None:
        if len(clips) == 1:
            shutil.copy2(clips[0], destination)
            return

        list_path = destination.with_suffix(".txt")
        with open(list_path, "w") as f:
            for clip in clips:
                escaped = str(clip.resolve()).replace("'", "'\\''")
                f.write(f"file '{escaped}'\n")

        cmd = [
            self.ffmpeg_path, "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_path),
            "-c", "copy",
            str(destination),
        ]
        await self._run(cmd, AudioTranscodeError)

    async def encode(
        self,
        frame_pattern: Path,
        fps: int,
        audio_path: Path,
        output_path: Path,
        timeout: float,
    ) -> None:
        cmd = [
            self.ffmpeg_path, "-y",
            "-framerate", str(fps),
            "-i", str(frame_pattern),
            "-i", str(audio_path),
            "-c:v", self.settings.render_video_codec,
            "-pix_fmt", self.settings.render_pixel_format,
            "-c:a", self.settings.render_audio_codec,
            "-b:a", self.settings.render_audio_bitrate,
            "-af", "apad",
            "-shortest",
            "-movflags", "+faststart",
            str(output_path),
        ]
        logger.info(f"[ENCODE] {' '.join(cmd)}")
        await self._run(cmd, EncoderInvocationError, timeout=timeout)
