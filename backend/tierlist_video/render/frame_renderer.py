"""
Tier board frame renderer using Pillow.

Each frame is composed from scratch:
1. Chrome: background, title, one label cell and one content cell per tier
2. Items revealed by earlier sub-phases at their resting slots
   (shifted right while the incoming item squeezes in)
3. The incoming item with a highlighted border

Rendering a frame depends only on (phase, progress, scene), so frames can be
produced in any order and on any thread.
"""

import logging
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

import numpy as np
from PIL import Image, ImageChops, ImageDraw

from tierlist_video.render.animation import (
    DEFAULT_SQUEEZE,
    RevealMode,
    SqueezeStyle,
    reveal_placement,
    squeeze_shift,
)
from tierlist_video.render.fonts import FontSet
from tierlist_video.render.layout import TierLayout
from tierlist_video.render.ranking import Item, RankingDocument, Tier
from tierlist_video.render.timeline import Phase, PhaseKind, Timeline

logger = logging.getLogger(__name__)

BACKGROUND = "#f3f4f6"
TEXT_DARK = "#1f2937"
CHROME_BORDER = "#d1d5db"
CONTENT_FILL = "#ffffff"
DEFAULT_TIER_COLOR = "#9ca3af"

CELL_FILL = "#ffffff"
CELL_BORDER = "#e5e7eb"
MOVING_BORDER = "#fbbf24"

RESTING_GRADIENT = ("#3b82f6", "#8b5cf6")
MOVING_GRADIENT = ("#f59e0b", "#d97706")

TIER_COLORS = {
    "bg-red-300": "#fca5a5",
    "bg-orange-300": "#fdba74",
    "bg-yellow-300": "#fde047",
    "bg-green-300": "#86efac",
    "bg-green-400": "#4ade80",
    "bg-blue-300": "#93c5fd",
    "bg-purple-300": "#c4b5fd",
    "bg-pink-300": "#f9a8d4",
    "bg-indigo-300": "#a5b4fc",
}


def tier_color(color: str) -> str:
    """Map a Tailwind background class (or a literal hex colour) to hex."""
    if color.startswith("#") and len(color) in (4, 7):
        return color
    return TIER_COLORS.get(color, DEFAULT_TIER_COLOR)


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = "".join(c * 2 for c in hex_color)
    return int(hex_color[0:2], 16), int(hex_color[2:4], 16), int(hex_color[4:6], 16)


@lru_cache(maxsize=256)
def diagonal_gradient(width: int, height: int, start: str, end: str) -> Image.Image:
    """Top-left to bottom-right linear gradient. Returned images are shared; do not mutate."""
    width, height = max(1, width), max(1, height)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    # Projection onto the (width, height) diagonal
    t = (xs * width + ys * height) / float(width * width + height * height)
    t = np.clip(t, 0.0, 1.0)[..., None]
    start_rgb = np.array(hex_to_rgb(start), dtype=np.float32)
    end_rgb = np.array(hex_to_rgb(end), dtype=np.float32)
    pixels = start_rgb + (end_rgb - start_rgb) * t
    return Image.fromarray(pixels.round().astype(np.uint8))


def fit_within(image_size: tuple[int, int], box: tuple[float, float, float, float]) -> tuple[int, int, int, int]:
    """Largest aspect-preserving rect inside ``box`` (x, y, w, h).

    Wide images are centred vertically, tall images horizontally.
    """
    img_w, img_h = image_size
    box_x, box_y, box_w, box_h = box
    img_aspect = img_w / img_h
    if img_aspect > box_w / box_h:
        draw_w, draw_h = box_w, box_w / img_aspect
        draw_x, draw_y = box_x, box_y + (box_h - draw_h) / 2
    else:
        draw_w, draw_h = box_h * img_aspect, box_h
        draw_x, draw_y = box_x + (box_w - draw_w) / 2, box_y
    return round(draw_x), round(draw_y), max(1, round(draw_w)), max(1, round(draw_h))


@dataclass(frozen=True)
class CellStyle:
    """Proportions of an item cell at a given edge length."""

    border: str
    border_width: int
    image_padding: float
    text_height: float
    corner_radius: float
    name_size: float
    gradient: tuple[str, str]
    gradient_padding: float
    placeholder_name_size: float
    placeholder_name_y: float

    @classmethod
    def resting(cls, size: float) -> "CellStyle":
        return cls(
            border=CELL_BORDER,
            border_width=2,
            image_padding=5,
            text_height=30,
            corner_radius=8,
            name_size=12,
            gradient=RESTING_GRADIENT,
            gradient_padding=5,
            placeholder_name_size=14,
            placeholder_name_y=size / 2 + 5,
        )

    @classmethod
    def moving(cls, size: float, mode: RevealMode) -> "CellStyle":
        name_size = max(14, size * 0.14)
        return cls(
            border=MOVING_BORDER,
            border_width=4 if mode is RevealMode.THEATRICAL else 3,
            image_padding=max(8, size * 0.08),
            text_height=max(30, size * 0.2),
            corner_radius=max(4, size * 0.05),
            name_size=max(12, size * 0.12),
            gradient=MOVING_GRADIENT,
            gradient_padding=max(5, size * 0.05),
            placeholder_name_size=name_size,
            placeholder_name_y=size / 2 + name_size / 3,
        )


@dataclass(frozen=True)
class Scene:
    """What a job draws: the ranking and each item's decoded artwork."""

    document: RankingDocument
    artwork: dict[str, Optional[Image.Image]] = field(default_factory=dict)

    def artwork_for(self, item: Item) -> Optional[Image.Image]:
        return self.artwork.get(item.id)


class Renderer:
    """Composes tier board frames.

    Chrome and item cells are memoised per instance; a renderer is meant to
    serve one job and may be shared by that job's worker threads.
    """

    def __init__(
        self,
        fonts: FontSet,
        layout: TierLayout | None = None,
        title: str = "",
        squeeze_style: SqueezeStyle = DEFAULT_SQUEEZE,
    ):
        self.fonts = fonts
        self.layout = layout or TierLayout()
        self.title = title
        self.squeeze_style = squeeze_style
        self._chrome: dict[tuple[Tier, ...], Image.Image] = {}
        self._cells: dict[tuple, Image.Image] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Chrome
    # =========================================================================

    def _draw_chrome(self, tiers: tuple[Tier, ...]) -> Image.Image:
        layout = self.layout
        canvas = Image.new("RGB", layout.size, BACKGROUND)
        draw = ImageDraw.Draw(canvas)

        if self.title:
            draw.text(
                (layout.width / 2, layout.title_y),
                self.title,
                font=self.fonts.get(layout.title_font_size),
                fill=TEXT_DARK,
                anchor="ms",
            )

        label_font = self.fonts.get(layout.label_font_size)
        for index, tier in enumerate(tiers):
            top = layout.row_top(index)
            bottom = top + layout.row_height
            label_box = (layout.label_x, top, layout.label_x + layout.label_width, bottom)
            draw.rectangle(label_box, fill=tier_color(tier.color), outline=CHROME_BORDER, width=layout.border_width)
            draw.text(
                (layout.label_x + layout.label_width / 2, top + layout.row_height / 2 + 12),
                tier.name,
                font=label_font,
                fill=TEXT_DARK,
                anchor="ms",
            )
            content_box = (layout.content_x, top, layout.content_x + layout.content_width, bottom)
            draw.rectangle(content_box, fill=CONTENT_FILL, outline=CHROME_BORDER, width=layout.border_width)

        return canvas

    def chrome(self, tiers: tuple[Tier, ...]) -> Image.Image:
        """Return a fresh copy of the empty board."""
        with self._lock:
            base = self._chrome.get(tiers)
        if base is None:
            base = self._draw_chrome(tiers)
            with self._lock:
                self._chrome.setdefault(tiers, base)
        return base.copy()

    # =========================================================================
    # Item cells
    # =========================================================================

    def _draw_cell(self, item: Item, artwork: Optional[Image.Image], size: int, style: CellStyle) -> Image.Image:
        cell = Image.new("RGB", (size, size), CELL_FILL)
        draw = ImageDraw.Draw(cell)

        if artwork is not None:
            pad = style.image_padding
            box = (pad, pad, size - pad * 2, size - style.text_height - pad)
            if box[2] > 0 and box[3] > 0:
                x, y, w, h = fit_within(artwork.size, box)
                fitted = artwork.resize((w, h), Image.Resampling.LANCZOS)
                mask = Image.new("L", (w, h), 0)
                ImageDraw.Draw(mask).rounded_rectangle((0, 0, w - 1, h - 1), radius=style.corner_radius, fill=255)
                if fitted.mode == "RGBA":
                    mask = ImageChops.multiply(mask, fitted.getchannel("A"))
                cell.paste(fitted.convert("RGB"), (x, y), mask)
            draw.text(
                (size / 2, size - pad),
                item.name,
                font=self.fonts.get(style.name_size),
                fill=TEXT_DARK,
                anchor="ms",
            )
        else:
            pad = int(round(style.gradient_padding))
            inner = size - pad * 2
            if inner > 0:
                cell.paste(diagonal_gradient(inner, inner, *style.gradient), (pad, pad))
            draw.text(
                (size / 2, style.placeholder_name_y),
                item.name,
                font=self.fonts.get(style.placeholder_name_size),
                fill="#ffffff",
                anchor="ms",
            )

        draw.rectangle((0, 0, size - 1, size - 1), outline=style.border, width=style.border_width)
        return cell

    def cell(
        self,
        item: Item,
        artwork: Optional[Image.Image],
        size: float,
        moving_mode: Optional[RevealMode] = None,
    ) -> Image.Image:
        """Memoised item cell; ``moving_mode`` selects the highlighted variant."""
        edge = max(1, int(round(size)))
        key = (item.id, item.name, edge, moving_mode, artwork is not None)
        with self._lock:
            cached = self._cells.get(key)
        if cached is not None:
            return cached

        if moving_mode is None:
            style = CellStyle.resting(edge)
        else:
            style = CellStyle.moving(edge, moving_mode)
        rendered = self._draw_cell(item, artwork, edge, style)
        with self._lock:
            return self._cells.setdefault(key, rendered)

    # =========================================================================
    # Frames
    # =========================================================================

    def _paste_resting(self, canvas: Image.Image, scene: Scene, item: Item, tier_index: int, slot: float, jitter: float = 0.0):
        x, y = self.layout.slot_origin(tier_index, slot)
        cell = self.cell(item, scene.artwork_for(item), self.layout.cell_size)
        canvas.paste(cell, (int(round(x + jitter)), int(round(y + jitter))))

    def render_complete(self, scene: Scene) -> Image.Image:
        """Every ranked item at its final slot."""
        canvas = self.chrome(scene.document.tiers)
        for tier_index, tier in enumerate(scene.document.tiers):
            for slot, item in enumerate(tier.items):
                self._paste_resting(canvas, scene, item, tier_index, slot)
        return canvas

    def _render_reveal(self, phase: Phase, progress: float, scene: Scene) -> Image.Image:
        canvas = self.chrome(scene.document.tiers)
        step = phase.step
        if step is None:
            return canvas
        entry = step.entry

        slot_offset, jitter = 0.0, 0.0
        if step.squeeze:
            slot_offset, jitter = squeeze_shift(progress, self.squeeze_style)

        for tier_index, items in step.placed.items():
            for index, item in enumerate(items):
                if step.squeeze and tier_index == entry.tier_index and index >= step.insert_slot:
                    self._paste_resting(canvas, scene, item, tier_index, index + slot_offset, jitter)
                else:
                    self._paste_resting(canvas, scene, item, tier_index, index)

        if not entry.is_placed:
            return canvas

        layout = self.layout
        placement = reveal_placement(
            phase.mode,
            progress,
            layout.start_point,
            layout.stage_point,
            layout.slot_center(entry.tier_index, step.insert_slot),
            layout.cell_size,
            layout.stage_size,
        )
        cell = self.cell(entry.item, scene.artwork_for(entry.item), placement.size, moving_mode=phase.mode)
        canvas.paste(cell, (int(round(placement.x - cell.width / 2)), int(round(placement.y - cell.height / 2))))
        return canvas

    def render(self, phase: Phase, progress: float, scene: Scene) -> Image.Image:
        """Render one frame of ``phase`` at ``progress`` (0.0 - 1.0)."""
        if phase.kind is PhaseKind.INTRO:
            return self.chrome(scene.document.tiers)
        if phase.kind is PhaseKind.CONCLUSION:
            return self.render_complete(scene)
        return self._render_reveal(phase, progress, scene)

    def render_frame(self, timeline: Timeline, frame_index: int, scene: Scene) -> Image.Image:
        phase, progress = timeline.locate(frame_index)
        return self.render(phase, progress, scene)
