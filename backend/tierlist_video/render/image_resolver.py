"""Item artwork resolution.

References are resolved in this order:
    data:image/...;base64,...      inline payload
    /api/temp-image/<name>         image staged by the upload endpoint
    staged:<name>                  same, short form
    http(s)://...                  remote fetch without credentials

Resolved images are decoded once into RGBA and memoised in a job-scoped
``ImageCache``. Failures are never cached.
"""

import asyncio
import io
import logging
from typing import Iterable, Optional

import httpx
from PIL import Image

from tierlist_video.config import get_settings
from tierlist_video.exceptions import (
    ImageDecodeError,
    InvalidStagedImageError,
    UnsupportedImageSourceError,
)
from tierlist_video.render.ranking import Item
from tierlist_video.services.image_staging import ImageStagingArea, decode_data_url

logger = logging.getLogger(__name__)


class ImageCache:
    """Per-job memo of decoded artwork keyed by reference."""

    def __init__(self) -> None:
        self._images: dict[str, Image.Image] = {}

    def get(self, reference: str) -> Optional[Image.Image]:
        return self._images.get(reference)

    def put(self, reference: str, image: Image.Image) -> None:
        self._images[reference] = image

    def clear(self) -> None:
        self._images.clear()

    def __len__(self) -> int:
        return len(self._images)

    def __contains__(self, reference: object) -> bool:
        return reference in self._images


def decode_image(data: bytes, reference: str = "") -> Image.Image:
    """Decode bytes into a fully loaded RGBA image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Failed to decode image {reference[:64]}: {exc}") from exc


class ImageResolver:
    """Resolves item image references into decoded artwork."""

    def __init__(
        self,
        cache: ImageCache,
        staging: ImageStagingArea,
        client: httpx.AsyncClient,
        max_bytes: int | None = None,
    ):
        self.cache = cache
        self.staging = staging
        self.client = client
        self.max_bytes = max_bytes or get_settings().remote_image_max_bytes

    async def resolve(self, reference: str) -> Image.Image:
        """Resolve one reference.

        Raises:
            UnsupportedImageSourceError: Reference scheme is not recognised
            ImageDecodeError: Fetch or decode failed
        """
        cached = self.cache.get(reference)
        if cached is not None:
            return cached

        data = await self._load_bytes(reference)
        image = await asyncio.to_thread(decode_image, data, reference)
        self.cache.put(reference, image)
        logger.debug(f"[IMAGE] Resolved {reference[:64]} -> {image.size}")
        return image

    async def _load_bytes(self, reference: str) -> bytes:
        if reference.startswith("data:"):
            try:
                _, payload = decode_data_url(reference)
            except ValueError as exc:
                raise ImageDecodeError(f"Invalid inline image: {exc}") from exc
            return payload

        staged_name = self.staging.name_from_reference(reference)
        if staged_name is not None:
            try:
                data, _ = await asyncio.to_thread(self.staging.read, staged_name)
            except (InvalidStagedImageError, OSError) as exc:
                raise ImageDecodeError(f"Staged image unavailable: {staged_name}") from exc
            return data

        if reference.startswith(("http://", "https://")):
            try:
                return await self._fetch_remote(reference)
            except httpx.HTTPError as exc:
                raise ImageDecodeError(f"Failed to fetch {reference[:64]}: {exc}") from exc

        raise UnsupportedImageSourceError(reference)

    async def _fetch_remote(self, reference: str) -> bytes:
        """Download a remote image, refusing bodies over ``max_bytes``."""
        async with self.client.stream("GET", reference) as response:
            response.raise_for_status()

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_bytes:
                raise ImageDecodeError(
                    f"Remote image too large ({declared} bytes, limit {self.max_bytes}): {reference[:64]}"
                )

            chunks: list[bytes] = []
            received = 0
            async for chunk in response.aiter_bytes():
                received += len(chunk)
                if received > self.max_bytes:
                    raise ImageDecodeError(
                        f"Remote image exceeds {self.max_bytes} bytes: {reference[:64]}"
                    )
                chunks.append(chunk)

        return b"".join(chunks)

    async def resolve_items(self, items: Iterable[Item]) -> dict[str, Optional[Image.Image]]:
        """Resolve artwork for every item, mapping failures to ``None``.

        Unique references are resolved concurrently; items sharing a reference
        share the decoded image.
        """
        items = list(items)
        references = list(dict.fromkeys(item.image for item in items if item.image))

        async def _resolve_or_none(reference: str) -> Optional[Image.Image]:
            try:
                return await self.resolve(reference)
            except (UnsupportedImageSourceError, ImageDecodeError) as exc:
                logger.warning(f"[IMAGE] Using placeholder: {exc.message}")
                return None

        results = await asyncio.gather(*(_resolve_or_none(ref) for ref in references))
        by_reference = dict(zip(references, results))

        artwork = {item.id: by_reference.get(item.image) if item.image else None for item in items}
        resolved = sum(1 for image in by_reference.values() if image is not None)
        logger.info(f"[IMAGE] Resolved {resolved}/{len(references)} unique images for {len(items)} items")
        return artwork
