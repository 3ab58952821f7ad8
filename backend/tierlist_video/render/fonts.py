"""Font loading with CJK coverage checks."""

import logging
import threading
from typing import Callable, Iterable

from PIL import Image, ImageChops, ImageDraw, ImageFont

from tierlist_video.exceptions import GlyphSetUnavailableError

logger = logging.getLogger(__name__)

# Glyph that every CJK font has, and a code point no font maps
PROBE_GLYPH = "中"
MISSING_GLYPH = "￿"
PROBE_SIZE = 32

FontLoader = Callable[[int], ImageFont.FreeTypeFont]


class FontSet:
    """Size-keyed cache of fonts from a single face.

    Safe to share between frame worker threads.
    """

    def __init__(self, loader: FontLoader, source: str = "<memory>"):
        self._loader = loader
        self._fonts: dict[int, ImageFont.FreeTypeFont] = {}
        self._lock = threading.Lock()
        self.source = source

    def get(self, size: float) -> ImageFont.FreeTypeFont:
        key = max(1, int(round(size)))
        with self._lock:
            font = self._fonts.get(key)
            if font is None:
                font = self._loader(key)
                self._fonts[key] = font
            return font


def _render_glyph(font: ImageFont.FreeTypeFont, text: str) -> Image.Image:
    canvas = Image.new("L", (PROBE_SIZE * 2, PROBE_SIZE * 2), 0)
    ImageDraw.Draw(canvas).text((4, 4), text, font=font, fill=255)
    return canvas


def covers_cjk(font: ImageFont.FreeTypeFont) -> bool:
    """True if the probe glyph renders and differs from the missing-glyph box."""
    probe = _render_glyph(font, PROBE_GLYPH)
    if probe.getbbox() is None:
        return False
    missing = _render_glyph(font, MISSING_GLYPH)
    return ImageChops.difference(probe, missing).getbbox() is not None


def load_font_set(candidates: Iterable[str]) -> FontSet:
    """Return a FontSet over the first candidate that loads and covers CJK.

    Raises:
        GlyphSetUnavailableError: No candidate is usable
    """
    tried: list[str] = []
    for path in candidates:
        tried.append(path)
        try:
            font = ImageFont.truetype(path, PROBE_SIZE)
        except OSError:
            continue
        if not covers_cjk(font):
            logger.warning(f"[FONT] {path} lacks CJK glyphs, skipping")
            continue
        logger.info(f"[FONT] Loaded font: {path}")
        return FontSet(lambda size, _path=path: ImageFont.truetype(_path, size), source=path)

    raise GlyphSetUnavailableError(
        f"No CJK-capable font among {len(tried)} candidates",
        suggested_fix="Install fonts-noto-cjk or set FONT_CANDIDATES",
    )
