"""Narration audio normalization.

Every segment becomes one canonical WAV clip (PCM s16le at the configured
sample rate and channel count):

- segments with raw audio are transcoded and measured with ffprobe
- segments without audio get a silent clip of their estimated duration

Clips are then joined losslessly in segment order. The per-segment durations
returned here drive the frame timeline.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from tierlist_video.exceptions import AudioProbeError, AudioTranscodeError
from tierlist_video.render.media_tool import MediaTool
from tierlist_video.render.ranking import NarrationSegment

logger = logging.getLogger(__name__)

DEFAULT_NOMINAL_DURATION_S = 3.0
# Spoken pacing approximation for text-driven segments
TTS_CHARS_PER_SECOND = 4.0
TTS_MIN_DURATION_S = 2.0
PLACEHOLDER_TRACK_S = 1.0


def nominal_duration(segment: NarrationSegment) -> float:
    """Declared duration, or the default when none was declared."""
    if segment.duration and segment.duration > 0:
        return float(segment.duration)
    return DEFAULT_NOMINAL_DURATION_S


def estimate_segment_duration(segment: NarrationSegment) -> float:
    """Duration to use when a segment has no measurable audio."""
    if segment.is_tts and segment.text:
        return max(TTS_MIN_DURATION_S, len(segment.text) / TTS_CHARS_PER_SECOND)
    return nominal_duration(segment)


@dataclass(frozen=True)
class NormalizedAudio:
    track_path: Path
    durations: tuple[float, ...]

    @property
    def total_duration(self) -> float:
        return sum(self.durations)


class AudioNormalizer:
    """Turns narration segments into one track plus exact durations."""

    def __init__(self, media_tool: MediaTool, work_dir: Path):
        self.media_tool = media_tool
        self.work_dir = Path(work_dir)

    def _clip_path(self, index: int, suffix: str) -> Path:
        return self.work_dir / f"segment_{index:03d}{suffix}"

    async def _normalize_segment(self, index: int, segment: NarrationSegment) -> tuple[Path, float]:
        clip = self._clip_path(index, ".wav")

        if not segment.audio:
            duration = estimate_segment_duration(segment)
            await self.media_tool.synthesize_silence(clip, duration)
            logger.info(f"[AUDIO] Segment {index} ({segment.kind.value}): silence {duration:.2f}s")
            return clip, duration

        source = self._clip_path(index, ".src")
        source.write_bytes(segment.audio)
        await self.media_tool.transcode(source, clip)

        try:
            duration = await self.media_tool.probe_duration(clip)
        except AudioProbeError as e:
            duration = nominal_duration(segment)
            logger.warning(
                f"[AUDIO] Segment {index} probe failed ({e.message}); using nominal {duration:.2f}s"
            )
            fitted = self._clip_path(index, "_fit.wav")
            await self.media_tool.fit_duration(clip, fitted, duration)
            return fitted, duration

        logger.info(f"[AUDIO] Segment {index} ({segment.kind.value}): {duration:.3f}s")
        return clip, duration

    async def normalize(self, segments: Sequence[NarrationSegment]) -> NormalizedAudio:
        """Normalize and concatenate all segments.

        Raises:
            AudioTranscodeError: Any transcode, synthesis or concat call failed
        """
        self.work_dir.mkdir(parents=True, exist_ok=True)
        track_path = self.work_dir / "narration.wav"

        if not segments:
            await self.media_tool.synthesize_silence(track_path, PLACEHOLDER_TRACK_S)
            logger.info("[AUDIO] No segments; wrote placeholder track")
            return NormalizedAudio(track_path=track_path, durations=())

        clips: list[Path] = []
        durations: list[float] = []
        for index, segment in enumerate(segments):
            try:
                clip, duration = await self._normalize_segment(index, segment)
            except AudioTranscodeError as e:
                if e.location is not None:
                    raise
                raise AudioTranscodeError(e.message, segment_index=index) from e
            clips.append(clip)
            durations.append(duration)

        await self.media_tool.concat(clips, track_path)
        logger.info(f"[AUDIO] Track ready: {len(clips)} clips, {sum(durations):.2f}s")
        return NormalizedAudio(track_path=track_path, durations=tuple(durations))
