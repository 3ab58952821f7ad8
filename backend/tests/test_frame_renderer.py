"""
Tests for tier board frame rendering.

Test cases:
1. Chrome (background, tier label colours, content cells)
2. Resting items, artwork and gradient placeholders
3. Squeeze: placed items shift exactly one slot
4. Theatrical hold at centre stage
5. Conclusion draws every ranked item
6. Determinism and cell memoisation
"""

import pytest
from PIL import Image

from tierlist_video.render.animation import RevealMode
from tierlist_video.render.frame_renderer import (
    Renderer,
    Scene,
    diagonal_gradient,
    fit_within,
    tier_color,
)
from tierlist_video.render.ranking import AssignmentEvent, Item, RankingDocument, Tier
from tierlist_video.render.timeline import PhaseKind, plan_timeline

BACKGROUND = (243, 244, 246)
WHITE = (255, 255, 255)
CELL_BORDER = (229, 231, 235)
MOVING_BORDER = (251, 191, 36)
RESTING_GRADIENT_START = (59, 130, 246)


@pytest.fixture
def renderer(fonts) -> Renderer:
    return Renderer(fonts, title="Ranking")


@pytest.fixture
def squeeze_document() -> RankingDocument:
    """Y (slot 1) is assigned before X (slot 0)."""
    return RankingDocument(
        tiers=(Tier(id="s", name="S", color="bg-red-300", items=(Item("x", "X"), Item("y", "Y"))),),
        assignments=(
            AssignmentEvent("y", "Y", "s", "S", 100),
            AssignmentEvent("x", "X", "s", "S", 200),
        ),
    )


class TestHelpers:
    """Test colour and geometry helpers."""

    def test_tier_colors(self):
        assert tier_color("bg-red-300") == "#fca5a5"
        assert tier_color("bg-unknown-500") == "#9ca3af"
        assert tier_color("#123456") == "#123456"

    def test_fit_within_wide_image(self):
        assert fit_within((200, 100), (0, 0, 100, 100)) == (0, 25, 100, 50)

    def test_fit_within_tall_image(self):
        assert fit_within((50, 100), (10, 10, 100, 100)) == (35, 10, 50, 100)

    def test_gradient_starts_at_first_colour(self):
        gradient = diagonal_gradient(20, 20, "#3b82f6", "#8b5cf6")
        assert gradient.size == (20, 20)
        assert gradient.getpixel((0, 0)) == RESTING_GRADIENT_START
        # Blue channel falls, red channel rises along the diagonal
        assert gradient.getpixel((19, 19))[0] > gradient.getpixel((10, 10))[0] > 59


class TestChrome:
    """Test the empty board."""

    def test_intro_frame(self, renderer, two_tier_document):
        timeline = plan_timeline(two_tier_document, [], durations=[])
        intro = timeline.phases[0]
        assert intro.kind is PhaseKind.INTRO

        frame = renderer.render(intro, 0.0, Scene(two_tier_document))

        assert frame.size == (1920, 1080)
        assert frame.mode == "RGB"
        assert frame.getpixel((10, 10)) == BACKGROUND
        assert frame.getpixel((60, 160)) == (252, 165, 165)  # bg-red-300 label
        assert frame.getpixel((60, 300)) == (253, 186, 116)  # bg-orange-300 label
        assert frame.getpixel((1000, 200)) == WHITE
        assert frame.getpixel((295, 165)) == WHITE  # no items yet

    def test_unknown_tier_colour_falls_back_to_grey(self, renderer):
        document = RankingDocument(tiers=(Tier(id="t", name="T", color="bg-teal-900"),))

        frame = renderer.chrome(document.tiers)

        assert frame.getpixel((60, 160)) == (156, 163, 175)

    def test_chrome_copies_are_independent(self, renderer, two_tier_document):
        first = renderer.chrome(two_tier_document.tiers)
        first.putpixel((10, 10), (0, 0, 0))

        second = renderer.chrome(two_tier_document.tiers)

        assert second.getpixel((10, 10)) == BACKGROUND


class TestItems:
    """Test resting item cells."""

    def test_conclusion_draws_every_ranked_item(self, renderer, two_tier_document):
        frame = renderer.render_complete(Scene(two_tier_document))

        assert frame.getpixel((290, 160)) == CELL_BORDER
        assert frame.getpixel((290, 300)) == CELL_BORDER
        assert frame.getpixel((295, 165)) == RESTING_GRADIENT_START
        assert frame.getpixel((400, 160)) == WHITE

    def test_artwork_is_drawn_inside_cell(self, renderer, two_tier_document):
        red = Image.new("RGBA", (40, 40), (255, 0, 0, 255))
        scene = Scene(two_tier_document, artwork={"apple": red})

        frame = renderer.render_complete(scene)

        assert frame.getpixel((340, 197)) == (255, 0, 0)
        assert frame.getpixel((295, 305)) == RESTING_GRADIENT_START  # banana has no artwork

    def test_cells_are_memoised(self, renderer):
        item = Item("x", "X")
        resting = renderer.cell(item, None, 100)

        assert renderer.cell(item, None, 100.2) is resting
        assert renderer.cell(item, None, 100, moving_mode=RevealMode.DIRECT) is not resting
        assert resting.getpixel((0, 0)) == CELL_BORDER


class TestReveal:
    """Test animated reveal frames."""

    def test_squeeze_shifts_placed_item_one_slot(self, renderer, squeeze_document):
        timeline = plan_timeline(squeeze_document, [], durations=[])
        phase = timeline.reveal_phases[1]
        assert phase.step.squeeze
        scene = Scene(squeeze_document)

        start = renderer.render(phase, 0.0, scene)
        end = renderer.render(phase, 1.0, scene)

        # Y starts at slot 0 ...
        assert start.getpixel((290, 160)) == CELL_BORDER
        assert start.getpixel((400, 160)) == WHITE
        # ... and ends exactly one pitch right, with X landing in slot 0
        assert end.getpixel((400, 160)) == CELL_BORDER
        assert end.getpixel((290, 160)) == MOVING_BORDER

    def test_theatrical_hold_at_centre_stage(self, renderer, two_tier_document, two_tier_segments):
        timeline = plan_timeline(two_tier_document, two_tier_segments, durations=[3.0, 5.0, 2.0, 3.0])
        phase = timeline.reveal_phases[0]

        frame = renderer.render(phase, 0.5, Scene(two_tier_document))

        # 150px highlighted cell centred on (960, 400)
        assert frame.getpixel((885, 325)) == MOVING_BORDER
        assert frame.getpixel((1034, 474)) == MOVING_BORDER
        assert frame.getpixel((884, 324)) != MOVING_BORDER

    def test_incoming_item_starts_off_screen(self, renderer, two_tier_document):
        timeline = plan_timeline(two_tier_document, [], durations=[])
        phase = timeline.reveal_phases[0]
        scene = Scene(two_tier_document)

        frame = renderer.render(phase, 0.0, scene)

        assert frame.tobytes() == renderer.chrome(two_tier_document.tiers).tobytes()

    def test_unplaced_item_draws_nothing(self, renderer):
        document = RankingDocument(
            tiers=(Tier(id="s", name="S"),),
            unranked_items=(Item("u", "U"),),
        )
        timeline = plan_timeline(document, [], durations=[])

        frame = renderer.render(timeline.reveal_phases[0], 0.5, Scene(document))

        assert frame.tobytes() == renderer.chrome(document.tiers).tobytes()

    def test_frames_are_deterministic(self, fonts, squeeze_document):
        timeline = plan_timeline(squeeze_document, [], durations=[])
        scene = Scene(squeeze_document)

        first = Renderer(fonts).render_frame(timeline, 150, scene)
        second = Renderer(fonts).render_frame(timeline, 150, scene)

        assert first.tobytes() == second.tobytes()
