"""ffmpeg/ffprobe process helpers."""

import asyncio
import json
import logging

from tierlist_video.config import get_settings

logger = logging.getLogger(__name__)


async def run_media_command(cmd: list[str], timeout: float) -> tuple[int, str, str]:
    """Run ``cmd`` and return ``(returncode, stdout, stderr)``.

    The child is killed if the timeout expires or the awaiting task is
    cancelled, so no process outlives its caller.

    Raises:
        FileNotFoundError: Executable not found
        asyncio.TimeoutError: Command ran longer than ``timeout``
    """
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except (asyncio.TimeoutError, asyncio.CancelledError):
        if proc.returncode is None:
            logger.warning(f"[FFMPEG] Killing pid {proc.pid}: {cmd[0]}")
            proc.kill()
            await proc.wait()
        raise

    return (
        proc.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


async def _run_ffprobe(file_path: str, *args, ffprobe_path: str | None = None, timeout: float | None = None) -> dict:
    """Run ffprobe and return parsed JSON.

    Raises:
        RuntimeError: ffprobe missing, timed out, failed or printed garbage
    """
    settings = get_settings()
    timeout = timeout or settings.media_tool_timeout_s
    cmd = [
        ffprobe_path or settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        returncode, stdout, stderr = await run_media_command(cmd, timeout)
    except FileNotFoundError as e:
        raise RuntimeError(f"ffprobe not found: {cmd[0]}") from e
    except asyncio.TimeoutError as e:
        raise RuntimeError(f"ffprobe timed out after {timeout}s: {file_path}") from e

    if returncode != 0:
        raise RuntimeError(f"ffprobe failed: {stderr}")

    try:
        return json.loads(stdout)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse ffprobe output: {e}")


async def get_media_duration_seconds(file_path: str, **kwargs) -> float:
    """
    Get media duration in seconds.

    Args:
        file_path: Path to media file

    Returns:
        Duration in seconds (container duration)

    Raises:
        RuntimeError: If ffprobe fails or reports no usable duration
    """
    data = await _run_ffprobe(file_path, "-show_format", **kwargs)
    format_info = data.get("format", {})

    try:
        duration = float(format_info["duration"])
    except (KeyError, TypeError, ValueError):
        raise RuntimeError(f"Duration not found in: {file_path}")

    if duration <= 0:
        raise RuntimeError(f"Non-positive duration {duration} in: {file_path}")
    return duration
