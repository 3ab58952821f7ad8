"""Analytic canvas geometry for the tier board.

All coordinates are derived from a handful of constants so any frame can be
laid out without measuring what was drawn before it.
"""

from dataclasses import dataclass

from tierlist_video.render.animation import Point


@dataclass(frozen=True)
class TierLayout:
    width: int = 1920
    height: int = 1080

    title_y: int = 80
    title_font_size: int = 48

    first_row_y: int = 150
    row_height: int = 120
    row_gap: int = 20

    label_x: int = 50
    label_width: int = 200
    label_font_size: int = 32
    border_width: int = 2

    content_x: int = 270
    content_width: int = 1600

    first_slot_x: int = 290
    slot_pitch: int = 110
    cell_size: int = 100
    cell_inset: int = 10

    # Centre of the incoming cell before its sub-phase starts (below the frame)
    start_x: int = 960
    start_y: int = 1140

    stage_x: int = 960
    stage_y: int = 400
    stage_size: int = 150

    def row_top(self, tier_index: int) -> int:
        return self.first_row_y + tier_index * (self.row_height + self.row_gap)

    def slot_origin(self, tier_index: float, slot: float) -> tuple[float, float]:
        """Top-left corner of a cell; ``slot`` may be fractional mid-squeeze."""
        return (
            self.first_slot_x + slot * self.slot_pitch,
            self.row_top(int(tier_index)) + self.cell_inset,
        )

    def slot_center(self, tier_index: int, slot: float) -> Point:
        x, y = self.slot_origin(tier_index, slot)
        return Point(x + self.cell_size / 2, y + self.cell_size / 2)

    @property
    def start_point(self) -> Point:
        return Point(self.start_x, self.start_y)

    @property
    def stage_point(self) -> Point:
        return Point(self.stage_x, self.stage_y)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height
