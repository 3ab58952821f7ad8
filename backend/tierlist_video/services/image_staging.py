import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path

from tierlist_video.config import get_settings
from tierlist_video.exceptions import InvalidStagedImageError

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[^,]*)?;base64,(?P<payload>.*)$", re.DOTALL)

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class StagedImage:
    file_name: str
    url: str
    path: Path


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into ``(mime_type, payload)``."""
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise ValueError("Not a base64 data URL")
    try:
        payload = base64.b64decode(match.group("payload"), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc
    return match.group("mime"), payload


class ImageStagingArea:
    """Local directory holding images uploaded ahead of a render."""

    def __init__(self, base_path: str | Path | None = None, url_prefix: str | None = None) -> None:
        settings = get_settings()
        self.base_path = Path(base_path or settings.staged_images_dir)
        self.url_prefix = url_prefix or settings.staged_image_url_prefix

    @staticmethod
    def validate_name(file_name: str) -> str:
        if not file_name or ".." in file_name or "/" in file_name or "\\" in file_name:
            raise InvalidStagedImageError(f"Invalid file name: {file_name!r}")
        return file_name

    def path_for(self, file_name: str) -> Path:
        return self.base_path / self.validate_name(file_name)

    def url_for(self, file_name: str) -> str:
        return f"{self.url_prefix}{file_name}"

    def name_from_reference(self, reference: str) -> str | None:
        """Return the staged file name a reference points at, if any."""
        if reference.startswith(self.url_prefix):
            return reference[len(self.url_prefix):].split("?", 1)[0]
        if reference.startswith("staged:"):
            return reference[len("staged:"):]
        return None

    def stage(self, image_data: str) -> StagedImage:
        """Store a data URL under a fresh ``<uuid>.<ext>`` name."""
        if not image_data:
            raise InvalidStagedImageError("Image data must not be empty")
        try:
            mime_type, payload = decode_data_url(image_data)
        except ValueError as exc:
            raise InvalidStagedImageError(str(exc)) from exc
        if not payload:
            raise InvalidStagedImageError("Image data must not be empty")

        extension = mime_type.split("/", 1)[1].split("+", 1)[0]
        file_name = f"{uuid.uuid4()}.{extension}"
        self.base_path.mkdir(parents=True, exist_ok=True)
        path = self.base_path / file_name
        path.write_bytes(payload)
        logger.info(f"[IMAGE] Staged {file_name} ({len(payload)} bytes)")
        return StagedImage(file_name=file_name, url=self.url_for(file_name), path=path)

    def read(self, file_name: str) -> tuple[bytes, str]:
        """Return ``(bytes, mime_type)`` of a staged image.

        Raises:
            InvalidStagedImageError: Name is unsafe
            FileNotFoundError: No such staged image
        """
        path = self.path_for(file_name)
        if not path.is_file():
            raise FileNotFoundError(file_name)
        mime_type = MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
        return path.read_bytes(), mime_type
