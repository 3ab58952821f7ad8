"""Animation paths for revealed items.

Every path is a pure function of the sub-phase progress (0.0 - 1.0), so the
renderer can compute any frame independently:

    direct       start -> target slot, linear
    theatrical   start -> centre stage (grow) -> hold -> target slot (shrink)
    squeeze      already placed items sliding one slot right with a jitter

Usage:
    placement = theatrical_placement(0.5, start, center, target, 100, 150)
    # -> Placement(x=center.x, y=center.y, size=150)
"""

import math
from dataclasses import dataclass
from enum import Enum


# Theatrical progress windows: move-and-grow, hold, move-and-shrink
THEATRICAL_GROW_END = 0.2
THEATRICAL_HOLD_END = 0.8


class RevealMode(str, Enum):
    """How the incoming item travels to its slot."""

    DIRECT = "direct"
    THEATRICAL = "theatrical"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Placement:
    """Cell centre and edge length in canvas pixels."""

    x: float
    y: float
    size: float

    @property
    def left(self) -> float:
        return self.x - self.size / 2

    @property
    def top(self) -> float:
        return self.y - self.size / 2


@dataclass(frozen=True)
class SqueezeStyle:
    """Cosmetic constants of the squeeze animation.

    The push completes after ``1 / progress_multiplier`` of the sub-phase; the
    jitter decays with the remaining push.
    """

    progress_multiplier: float = 1.5
    jitter_amplitude: float = 2.0
    jitter_frequency: float = 8 * math.pi


DEFAULT_SQUEEZE = SqueezeStyle()


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def interpolate(
    progress: float,
    input_range: list[float],
    output_range: list[float],
) -> float:
    """Piecewise-linear interpolation, clamped at both ends.

    Args:
        progress: Current progress value
        input_range: Monotonically increasing breakpoints [a, b, c, ...]
        output_range: Output values matching input_range length

    Returns:
        Interpolated output value

    Examples:
        interpolate(0.5, [0, 1], [0, 10])  # -> 5.0
        interpolate(0.75, [0, 0.5, 1], [0, 1, 0])  # -> 0.5
    """
    if len(input_range) != len(output_range):
        raise ValueError("input_range and output_range must have the same length")
    if len(input_range) < 2:
        raise ValueError("input_range must have at least 2 values")
    for i in range(1, len(input_range)):
        if input_range[i] <= input_range[i - 1]:
            raise ValueError("input_range must be monotonically increasing")

    if progress <= input_range[0]:
        return output_range[0]
    if progress >= input_range[-1]:
        return output_range[-1]

    segment_idx = len(input_range) - 2
    for i in range(1, len(input_range)):
        if progress <= input_range[i]:
            segment_idx = i - 1
            break

    seg_start = input_range[segment_idx]
    seg_end = input_range[segment_idx + 1]
    t = (progress - seg_start) / (seg_end - seg_start)
    return lerp(output_range[segment_idx], output_range[segment_idx + 1], t)


def direct_placement(progress: float, start: Point, target: Point, size: float) -> Placement:
    """Linear travel from the start point to the target slot."""
    t = clamp01(progress)
    return Placement(x=lerp(start.x, target.x, t), y=lerp(start.y, target.y, t), size=size)


def theatrical_placement(
    progress: float,
    start: Point,
    center: Point,
    target: Point,
    base_size: float,
    stage_size: float,
) -> Placement:
    """Three-part centre-stage path.

    0-20% move to the centre while growing to ``stage_size``, 20-80% hold at
    the centre, 80-100% move to the target slot while shrinking back.
    """
    breakpoints = [0.0, THEATRICAL_GROW_END, THEATRICAL_HOLD_END, 1.0]
    return Placement(
        x=interpolate(progress, breakpoints, [start.x, center.x, center.x, target.x]),
        y=interpolate(progress, breakpoints, [start.y, center.y, center.y, target.y]),
        size=interpolate(progress, breakpoints, [base_size, stage_size, stage_size, base_size]),
    )


def reveal_placement(
    mode: RevealMode,
    progress: float,
    start: Point,
    center: Point,
    target: Point,
    base_size: float,
    stage_size: float,
) -> Placement:
    if mode is RevealMode.THEATRICAL:
        return theatrical_placement(progress, start, center, target, base_size, stage_size)
    return direct_placement(progress, start, target, base_size)


def squeeze_shift(progress: float, style: SqueezeStyle = DEFAULT_SQUEEZE) -> tuple[float, float]:
    """Return ``(slot_offset, jitter_px)`` for an item being pushed right.

    ``slot_offset`` reaches exactly 1.0 once the push completes and the jitter
    is 0 from then on, so resting coordinates are unaffected.
    """
    push = min(1.0, max(0.0, progress) * style.progress_multiplier)
    if push >= 1.0:
        return 1.0, 0.0
    jitter = math.sin(progress * style.jitter_frequency) * (1 - push) * style.jitter_amplitude
    return push, jitter
