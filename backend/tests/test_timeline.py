"""
Tests for timeline planning.

Test cases:
1. Frame counts use floor(duration * fps)
2. Intro / reveal / conclusion phase layout
3. Theatrical threshold
4. Positional pairing of item segments, with defaults
5. Squeeze detection from the reveal order
6. Frame lookup
"""

import pytest

from tierlist_video.render.animation import RevealMode
from tierlist_video.render.ranking import (
    AssignmentEvent,
    Item,
    NarrationSegment,
    RankingDocument,
    SegmentKind,
    Tier,
)
from tierlist_video.render.timeline import PhaseKind, frames_for, plan_timeline


def _segment(kind: SegmentKind, duration: float, **kwargs) -> NarrationSegment:
    return NarrationSegment(id=f"{kind.value}-{duration}", kind=kind, duration=duration, **kwargs)


class TestFrameCounts:
    """Test frame count rounding."""

    def test_floor(self):
        assert frames_for(3.33, 30) == 99
        assert frames_for(3.0, 30) == 90
        assert frames_for(0.0, 30) == 0

    def test_float_noise_does_not_drop_a_frame(self):
        assert frames_for(2.3, 30) == 69

    def test_intro_uses_exact_duration(self):
        document = RankingDocument()
        timeline = plan_timeline(
            document,
            [_segment(SegmentKind.INTRO, 0), _segment(SegmentKind.CONCLUSION, 0)],
            durations=[3.33, 3.0],
        )

        assert [p.frame_count for p in timeline.phases] == [99, 90]


class TestPlanTimeline:
    """Test phase layout."""

    def test_two_tier_scenario(self, two_tier_document, two_tier_segments):
        """Intro 3s, 5s item, 2s item, conclusion 3s -> 90/150/60/90 frames."""
        timeline = plan_timeline(two_tier_document, two_tier_segments, durations=[3.0, 5.0, 2.0, 3.0])

        assert [p.kind for p in timeline.phases] == [
            PhaseKind.INTRO,
            PhaseKind.REVEAL,
            PhaseKind.REVEAL,
            PhaseKind.CONCLUSION,
        ]
        assert [p.frame_count for p in timeline.phases] == [90, 150, 60, 90]
        assert [p.start_frame for p in timeline.phases] == [0, 90, 240, 300]
        assert timeline.total_frames == 390
        assert timeline.total_seconds == pytest.approx(13.0)

        first, second = timeline.reveal_phases
        assert first.mode is RevealMode.THEATRICAL
        assert second.mode is RevealMode.DIRECT
        assert first.step.entry.item.id == "apple"
        assert second.step.entry.item.id == "banana"

    def test_theatrical_threshold_is_exclusive(self):
        document = RankingDocument(tiers=(Tier(id="s", name="S", items=(Item("x", "X"), Item("y", "Y"))),))
        segments = [_segment(SegmentKind.ITEM, 4.0), _segment(SegmentKind.ITEM, 4.01)]

        timeline = plan_timeline(document, segments, durations=[4.0, 4.01])

        assert [p.mode for p in timeline.reveal_phases] == [RevealMode.DIRECT, RevealMode.THEATRICAL]

    def test_defaults_without_segments(self):
        """Missing bookends last 3s, unmatched reveals 2s."""
        document = RankingDocument(tiers=(Tier(id="s", name="S", items=(Item("x", "X"),)),))

        timeline = plan_timeline(document, [], durations=[])

        assert [p.frame_count for p in timeline.phases] == [90, 60, 90]

    def test_extra_reveals_use_default_duration(self):
        document = RankingDocument(tiers=(Tier(id="s", name="S", items=(Item("x", "X"), Item("y", "Y"))),))
        segments = [_segment(SegmentKind.ITEM, 5.0)]

        timeline = plan_timeline(document, segments, durations=[5.0])

        assert [p.frame_count for p in timeline.reveal_phases] == [150, 60]

    def test_estimates_when_durations_missing(self):
        """Text-driven segments fall back to max(2, chars / 4)."""
        document = RankingDocument(tiers=(Tier(id="s", name="S", items=(Item("x", "X"),)),))
        segments = [
            _segment(SegmentKind.INTRO, 1.0, text="a" * 20, is_tts=True),
            _segment(SegmentKind.ITEM, 0, text="short", is_tts=True),
            _segment(SegmentKind.CONCLUSION, 4.0),
        ]

        timeline = plan_timeline(document, segments)

        assert [p.duration for p in timeline.phases] == [5.0, 2.0, 4.0]

    def test_rejects_misaligned_durations(self):
        with pytest.raises(ValueError):
            plan_timeline(RankingDocument(), [_segment(SegmentKind.INTRO, 3.0)], durations=[])

    def test_unplaced_items_get_a_reveal(self):
        document = RankingDocument(unranked_items=(Item("u", "U"),))

        timeline = plan_timeline(document, [], durations=[])

        (phase,) = timeline.reveal_phases
        assert phase.step.entry.tier_index is None
        assert phase.step.squeeze is False


class TestRevealSteps:
    """Test placed-item bookkeeping and squeeze detection."""

    def test_insert_before_placed_item_squeezes(self):
        """Y (slot 1) is revealed first; X (slot 0) then pushes it right."""
        x, y = Item("x", "X"), Item("y", "Y")
        document = RankingDocument(
            tiers=(Tier(id="s", name="S", items=(x, y)),),
            assignments=(
                AssignmentEvent("y", "Y", "s", "S", 100),
                AssignmentEvent("x", "X", "s", "S", 200),
            ),
        )

        first, second = plan_timeline(document, [], durations=[]).reveal_phases

        assert first.step.insert_slot == 0
        assert first.step.squeeze is False
        assert second.step.placed == {0: (y,)}
        assert second.step.insert_slot == 0
        assert second.step.squeeze is True

    def test_append_does_not_squeeze(self, two_tier_document):
        first, second = plan_timeline(two_tier_document, [], durations=[]).reveal_phases

        assert second.step.placed == {0: (two_tier_document.tiers[0].items[0],)}
        assert second.step.squeeze is False

    def test_insert_slot_counts_only_earlier_slots(self):
        a, b, c = Item("a", "A"), Item("b", "B"), Item("c", "C")
        document = RankingDocument(
            tiers=(Tier(id="s", name="S", items=(a, b, c)),),
            assignments=(
                AssignmentEvent("c", "C", "s", "S", 1),
                AssignmentEvent("a", "A", "s", "S", 2),
                AssignmentEvent("b", "B", "s", "S", 3),
            ),
        )

        steps = [p.step for p in plan_timeline(document, [], durations=[]).reveal_phases]

        assert [s.insert_slot for s in steps] == [0, 0, 1]
        assert steps[2].placed[0] == (a, c)
        assert [s.squeeze for s in steps] == [False, True, True]


class TestLocate:
    """Test frame lookup."""

    def test_locate(self, two_tier_document, two_tier_segments):
        timeline = plan_timeline(two_tier_document, two_tier_segments, durations=[3.0, 5.0, 2.0, 3.0])

        phase, progress = timeline.locate(0)
        assert phase.kind is PhaseKind.INTRO and progress == 0

        phase, progress = timeline.locate(90 + 75)
        assert phase.step.entry.item.id == "apple"
        assert progress == pytest.approx(0.5)

        phase, progress = timeline.locate(389)
        assert phase.kind is PhaseKind.CONCLUSION

    def test_theatrical_hold_frames(self, two_tier_document, two_tier_segments):
        """Frames 30-120 of the 150-frame reveal sit in the hold window."""
        timeline = plan_timeline(two_tier_document, two_tier_segments, durations=[3.0, 5.0, 2.0, 3.0])

        for frame_in_phase in (30, 75, 120):
            _, progress = timeline.locate(90 + frame_in_phase)
            assert 0.2 <= progress <= 0.8
        _, progress = timeline.locate(90 + 29)
        assert progress < 0.2
        _, progress = timeline.locate(90 + 121)
        assert progress > 0.8

    def test_skips_empty_phases(self):
        document = RankingDocument(tiers=(Tier(id="s", name="S", items=(Item("x", "X"),)),))
        segments = [_segment(SegmentKind.INTRO, 0), _segment(SegmentKind.ITEM, 1.0)]

        timeline = plan_timeline(document, segments, durations=[0.0, 1.0])

        phase, _ = timeline.locate(0)
        assert phase.kind is PhaseKind.REVEAL

    def test_out_of_range(self, two_tier_document):
        timeline = plan_timeline(two_tier_document, [], durations=[])
        with pytest.raises(IndexError):
            timeline.locate(timeline.total_frames)
