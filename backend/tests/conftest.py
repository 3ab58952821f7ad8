"""
Pytest fixtures for tier list video backend tests.

Most tests run against FakeMediaTool so no ffmpeg binary is needed. Tests that
exercise the real binaries are marked with @pytest.mark.requires_ffmpeg and
skipped when ffmpeg/ffprobe are not on PATH:

    pytest -m "not requires_ffmpeg"
"""

import base64
import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import pytest
from PIL import Image, ImageFont

from tierlist_video.exceptions import AudioProbeError, AudioTranscodeError, EncoderInvocationError
from tierlist_video.render.fonts import FontSet
from tierlist_video.render.ranking import (
    AssignmentEvent,
    Item,
    NarrationSegment,
    RankingDocument,
    SegmentKind,
    Tier,
)


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg and ffprobe on PATH"
    )


def _ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def pytest_collection_modifyitems(config, items):
    """Skip requires_ffmpeg tests when the binaries are missing."""
    if _ffmpeg_available():
        return
    skip_ffmpeg = pytest.mark.skip(reason="ffmpeg/ffprobe not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip_ffmpeg)


class FakeMediaTool:
    """In-memory MediaTool that tracks the duration of every file it writes.

    Transcoding copies bytes; probing looks the clip's bytes up in
    ``probe_results`` and raises AudioProbeError for unknown clips.
    """

    def __init__(
        self,
        probe_results: Optional[dict[bytes, float]] = None,
        fail_transcode: bool = False,
        fail_encode: bool = False,
        write_output: bool = True,
    ):
        self.probe_results = probe_results or {}
        self.fail_transcode = fail_transcode
        self.fail_encode = fail_encode
        self.write_output = write_output
        self.durations: dict[Path, Optional[float]] = {}
        self.calls: list[tuple] = []
        self.encoded_frames: Optional[int] = None
        self.encode_output: Optional[Path] = None
        self.encode_timeout: Optional[float] = None
        # Called with the frames directory before encoding, e.g. to inspect frames
        self.on_encode: Optional[Callable[[Path], None]] = None

    async def transcode(self, source: Path, destination: Path) -> None:
        self.calls.append(("transcode", source, destination))
        if self.fail_transcode:
            raise AudioTranscodeError("fake transcode failure")
        data = source.read_bytes()
        destination.write_bytes(data)
        self.durations[destination] = self.probe_results.get(data)

    async def probe_duration(self, path: Path) -> float:
        self.calls.append(("probe", path))
        duration = self.durations.get(path)
        if duration is None:
            raise AudioProbeError(f"fake probe failure: {path.name}")
        return duration

    async def synthesize_silence(self, destination: Path, duration: float) -> None:
        self.calls.append(("silence", destination, duration))
        destination.write_bytes(b"silence")
        self.durations[destination] = duration

    async def fit_duration(self, source: Path, destination: Path, duration: float) -> None:
        self.calls.append(("fit", source, destination, duration))
        destination.write_bytes(source.read_bytes())
        self.durations[destination] = duration

    async def concat(self, clips: list[Path], destination: Path) -> None:
        self.calls.append(("concat", list(clips), destination))
        destination.write_bytes(b"".join(clip.read_bytes() for clip in clips))
        self.durations[destination] = sum(self.durations[clip] or 0.0 for clip in clips)

    async def encode(self, frame_pattern: Path, fps: int, audio_path: Path, output_path: Path, timeout: float) -> None:
        self.calls.append(("encode", frame_pattern, fps, audio_path, output_path))
        self.encode_output = output_path
        self.encode_timeout = timeout
        self.encoded_frames = len(list(frame_pattern.parent.glob("frame_*.png")))
        if self.on_encode is not None:
            self.on_encode(frame_pattern.parent)
        if self.fail_encode:
            raise EncoderInvocationError("fake encoder failure")
        if self.write_output:
            output_path.write_bytes(b"fake-mp4")

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def fake_media_tool() -> FakeMediaTool:
    return FakeMediaTool()


@pytest.fixture
def fonts() -> FontSet:
    """Pillow's bundled font; no CJK coverage but enough for layout tests."""
    return FontSet(lambda size: ImageFont.load_default(size=size), source="pillow-default")


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="tierlist_test_") as tmpdir:
        yield Path(tmpdir)


def png_bytes(color=(255, 0, 0), size=(40, 40), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, fmt)
    return buffer.getvalue()


def png_data_url(color=(255, 0, 0), size=(40, 40)) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(color, size)).decode()


@pytest.fixture
def make_png():
    """Factory for solid-colour image bytes."""
    return png_bytes


@pytest.fixture
def make_data_url():
    """Factory for solid-colour PNG data URLs."""
    return png_data_url


@pytest.fixture
def two_tier_document() -> RankingDocument:
    """Two tiers, one item each, assigned S first then A."""
    apple = Item(id="apple", name="Apple")
    banana = Item(id="banana", name="Banana")
    return RankingDocument(
        tiers=(
            Tier(id="s", name="S", color="bg-red-300", items=(apple,)),
            Tier(id="a", name="A", color="bg-orange-300", items=(banana,)),
        ),
        assignments=(
            AssignmentEvent("apple", "Apple", "s", "S", timestamp=1000),
            AssignmentEvent("banana", "Banana", "a", "A", timestamp=2000),
        ),
    )


@pytest.fixture
def two_tier_segments() -> list[NarrationSegment]:
    """Intro 3s, a 5s (theatrical) item, a 2s item and a 3s conclusion."""
    return [
        NarrationSegment(id="intro", kind=SegmentKind.INTRO, audio=b"intro-audio", duration=3.0),
        NarrationSegment(id="item-1", kind=SegmentKind.ITEM, audio=b"apple-audio", duration=5.0, item_id="apple"),
        NarrationSegment(id="item-2", kind=SegmentKind.ITEM, audio=b"banana-audio", duration=2.0, item_id="banana"),
        NarrationSegment(id="outro", kind=SegmentKind.CONCLUSION, audio=b"outro-audio", duration=3.0),
    ]


@pytest.fixture
def two_tier_media_tool() -> FakeMediaTool:
    return FakeMediaTool(
        probe_results={
            b"intro-audio": 3.0,
            b"apple-audio": 5.0,
            b"banana-audio": 2.0,
            b"outro-audio": 3.0,
        }
    )


@pytest.fixture
def media_tool_factory():
    """Factory for FakeMediaTool instances with custom behaviour."""
    return FakeMediaTool
