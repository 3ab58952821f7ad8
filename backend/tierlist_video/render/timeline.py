"""Frame timeline planning.

The video is an intro, one reveal sub-phase per revealed item, and a
conclusion. Each phase lasts ``floor(duration * fps)`` frames where the
duration comes from the normalized narration audio.

Usage:
    timeline = plan_timeline(document, segments, durations=audio.durations)
    phase, progress = timeline.locate(frame_index)
"""

import bisect
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from tierlist_video.render.animation import RevealMode
from tierlist_video.render.audio_normalizer import estimate_segment_duration
from tierlist_video.render.ranking import (
    Item,
    NarrationSegment,
    RankingDocument,
    RevealEntry,
    SegmentKind,
    reveal_order,
)

logger = logging.getLogger(__name__)

THEATRICAL_THRESHOLD_S = 4.0
DEFAULT_ITEM_DURATION_S = 2.0
DEFAULT_BOOKEND_DURATION_S = 3.0

# Absorbs float noise such as 2.3 * 30 = 68.99999999999999
_FRAME_EPSILON = 1e-9

__all__ = [
    "DEFAULT_BOOKEND_DURATION_S",
    "DEFAULT_ITEM_DURATION_S",
    "THEATRICAL_THRESHOLD_S",
    "Phase",
    "PhaseKind",
    "RevealMode",
    "RevealStep",
    "Timeline",
    "frames_for",
    "plan_timeline",
]


class PhaseKind(str, Enum):
    INTRO = "intro"
    REVEAL = "reveal"
    CONCLUSION = "conclusion"


@dataclass(frozen=True)
class RevealStep:
    """Board state at the start of one reveal sub-phase.

    ``placed`` maps tier index to the items revealed by earlier sub-phases,
    ordered by final slot. ``insert_slot`` is where the incoming item lands
    among them.
    """

    entry: RevealEntry
    insert_slot: Optional[int] = None
    placed: dict[int, tuple[Item, ...]] = field(default_factory=dict)

    @property
    def squeeze(self) -> bool:
        if self.entry.tier_index is None or self.insert_slot is None:
            return False
        return self.insert_slot < len(self.placed.get(self.entry.tier_index, ()))


@dataclass(frozen=True)
class Phase:
    kind: PhaseKind
    start_frame: int
    frame_count: int
    duration: float
    step: Optional[RevealStep] = None
    mode: RevealMode = RevealMode.DIRECT

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.frame_count

    @property
    def is_static(self) -> bool:
        return self.kind is not PhaseKind.REVEAL


@dataclass(frozen=True)
class Timeline:
    phases: tuple[Phase, ...]
    fps: int

    @property
    def total_frames(self) -> int:
        return sum(phase.frame_count for phase in self.phases)

    @property
    def total_seconds(self) -> float:
        return self.total_frames / self.fps

    @property
    def reveal_phases(self) -> list[Phase]:
        return [phase for phase in self.phases if phase.kind is PhaseKind.REVEAL]

    def locate(self, frame_index: int) -> tuple[Phase, float]:
        """Return the phase containing ``frame_index`` and progress within it.

        Raises:
            IndexError: Frame is outside the timeline
        """
        if frame_index < 0 or frame_index >= self.total_frames:
            raise IndexError(f"Frame {frame_index} outside timeline of {self.total_frames} frames")

        active = [phase for phase in self.phases if phase.frame_count > 0]
        starts = [phase.start_frame for phase in active]
        phase = active[bisect.bisect_right(starts, frame_index) - 1]
        return phase, (frame_index - phase.start_frame) / phase.frame_count


def frames_for(duration: float, fps: int) -> int:
    return max(0, math.floor(duration * fps + _FRAME_EPSILON))


def _build_steps(entries: Sequence[RevealEntry]) -> list[RevealStep]:
    placed: dict[int, list[RevealEntry]] = {}
    steps: list[RevealStep] = []

    for entry in entries:
        snapshot = {
            tier_index: tuple(placed_entry.item for placed_entry in tier_entries)
            for tier_index, tier_entries in placed.items()
        }
        if not entry.is_placed:
            steps.append(RevealStep(entry=entry, placed=snapshot))
            continue

        tier_entries = placed.setdefault(entry.tier_index, [])
        insert_slot = sum(1 for placed_entry in tier_entries if placed_entry.final_slot < entry.final_slot)
        steps.append(RevealStep(entry=entry, insert_slot=insert_slot, placed=snapshot))
        tier_entries.insert(insert_slot, entry)

    return steps


def plan_timeline(
    document: RankingDocument,
    segments: Sequence[NarrationSegment],
    durations: Optional[Sequence[float]] = None,
    fps: int = 30,
    theatrical_threshold: float = THEATRICAL_THRESHOLD_S,
    default_item_duration: float = DEFAULT_ITEM_DURATION_S,
    default_bookend_duration: float = DEFAULT_BOOKEND_DURATION_S,
) -> Timeline:
    """Plan every phase of the video.

    Args:
        document: Ranking being narrated
        segments: Narration segments in track order
        durations: Exact per-segment durations aligned with ``segments``;
            text-length estimates are used when omitted
        fps: Frame rate

    Returns:
        Timeline of intro, reveal sub-phases and conclusion
    """
    if durations is not None and len(durations) != len(segments):
        raise ValueError(f"Got {len(durations)} durations for {len(segments)} segments")

    def duration_of(index: int) -> float:
        if durations is not None:
            return float(durations[index])
        return estimate_segment_duration(segments[index])

    intro_duration = default_bookend_duration
    conclusion_duration = default_bookend_duration
    item_durations: list[float] = []
    intro_seen = conclusion_seen = False
    for index, segment in enumerate(segments):
        if segment.kind is SegmentKind.INTRO and not intro_seen:
            intro_duration, intro_seen = duration_of(index), True
        elif segment.kind is SegmentKind.CONCLUSION and not conclusion_seen:
            conclusion_duration, conclusion_seen = duration_of(index), True
        elif segment.kind is SegmentKind.ITEM:
            item_durations.append(duration_of(index))

    phases: list[Phase] = []
    cursor = 0

    def add(kind: PhaseKind, duration: float, step: Optional[RevealStep] = None, mode=RevealMode.DIRECT):
        nonlocal cursor
        frame_count = frames_for(duration, fps)
        phases.append(Phase(kind, cursor, frame_count, duration, step, mode))
        cursor += frame_count

    add(PhaseKind.INTRO, intro_duration)

    steps = _build_steps(reveal_order(document))
    if len(item_durations) != len(steps):
        logger.warning(
            f"[TIMELINE] {len(steps)} reveals but {len(item_durations)} item segments; "
            f"unmatched reveals last {default_item_duration}s"
        )
    for index, step in enumerate(steps):
        duration = item_durations[index] if index < len(item_durations) else default_item_duration
        mode = RevealMode.THEATRICAL if duration > theatrical_threshold else RevealMode.DIRECT
        add(PhaseKind.REVEAL, duration, step, mode)

    add(PhaseKind.CONCLUSION, conclusion_duration)

    timeline = Timeline(phases=tuple(phases), fps=fps)
    logger.info(
        f"[TIMELINE] {len(steps)} reveals, {timeline.total_frames} frames ({timeline.total_seconds:.2f}s)"
    )
    return timeline
