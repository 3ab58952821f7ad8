import json
from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Tier List Video API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:3000,http://localhost:3001"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # Request limits
    max_request_bytes: int = 50 * 1024 * 1024

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    # Per-invocation timeout for transcode/probe/concat calls (seconds)
    media_tool_timeout_s: float = 120.0
    # Encode timeout = base + frames * per_frame
    encode_timeout_base_s: float = 120.0
    encode_timeout_per_frame_s: float = 0.25

    # Render preset (fixed 1080p30)
    render_output_width: int = 1920
    render_output_height: int = 1080
    render_fps: int = 30
    render_video_codec: str = "libx264"
    render_pixel_format: str = "yuv420p"
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "192k"

    # Canonical narration format
    render_audio_sample_rate: int = 44100
    render_audio_channels: int = 2

    # Working directories. Empty = system temp dir; set to a persistent path
    # (e.g. ./temp) on hosts where the temp filesystem is not writable.
    render_work_root: str = ""
    # Frame composition workers. 0 = os.cpu_count()
    render_workers: int = 0

    # Title drawn above the tiers
    render_title: str = "从夯到拉排行榜"

    # Fonts (must cover CJK glyphs)
    font_candidates: list[str] = [
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Bold.ttc",
        "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/truetype/noto/NotoSansCJK-Bold.ttc",
        "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
        "/usr/share/fonts/noto-cjk/NotoSansCJK-Bold.ttc",
        "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
        "/System/Library/Fonts/PingFang.ttc",
        "/System/Library/Fonts/ヒラギノ角ゴシック W6.ttc",
        "C:/Windows/Fonts/msyhbd.ttc",
        "C:/Windows/Fonts/msyh.ttc",
    ]

    # Images
    staged_images_dir: str = "temp/images"
    staged_image_url_prefix: str = "/api/temp-image/"
    remote_image_timeout_s: float = 30.0
    remote_image_max_bytes: int = 20 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
