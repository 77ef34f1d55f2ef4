"""Attachment ingestion: decode, downscale, JPEG re-encode, base64.

Photos straight from a phone camera are far larger than the submission
webhook accepts, so every upload is bounded to ``max_width`` pixels wide
and re-encoded as JPEG before it is attached to an area.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from roomcheck.config import ImagePipelineConfig, get_settings
from roomcheck.errors import AttachmentError
from roomcheck.schemas.area import Attachment

logger = logging.getLogger(__name__)

JPEG_MIME = "image/jpeg"


def _pillow_quality(quality: float) -> int:
    """Map a 0..1 quality factor onto Pillow's 1..95 JPEG scale."""
    return max(1, min(95, int(round(quality * 100))))


def target_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    if width <= max_width:
        return width, height
    return max_width, max(1, int(height * max_width / width + 0.5))


def compress_image(data: bytes, cfg: ImagePipelineConfig) -> tuple[bytes, tuple[int, int]]:
    """Decode ``data``, bound its width and re-encode as JPEG.

    Returns (jpeg_bytes, (width, height)). Raises AttachmentError when the
    bytes are empty, too large, or not an image Pillow can round-trip.
    """
    if not data:
        raise AttachmentError(detail="empty file")
    if len(data) > cfg.max_upload_bytes:
        raise AttachmentError(detail=f"file exceeds {cfg.max_upload_bytes} bytes")

    try:
        with Image.open(io.BytesIO(data)) as src:
            src.load()
            img = ImageOps.exif_transpose(src)
            if img.mode != "RGB":
                img = img.convert("RGB")
            size = target_size(img.width, img.height, cfg.max_width)
            if size != img.size:
                img = img.resize(size, Image.LANCZOS)
            buf = io.BytesIO()
            img.save(buf, "JPEG", quality=_pillow_quality(cfg.quality), optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise AttachmentError(detail=str(e)) from e

    return buf.getvalue(), size


def ingest_image_sync(
    area_id: str,
    filename: str,
    data: bytes,
    cfg: ImagePipelineConfig | None = None,
) -> Attachment:
    cfg = cfg or get_settings().image_pipeline
    name = filename or "photo.jpg"
    try:
        jpeg, size = compress_image(data, cfg)
    except AttachmentError as e:
        e.filename = name
        logger.warning("Rejected upload %s for %s: %s", name, area_id, e.detail)
        raise

    encoded = base64.standard_b64encode(jpeg).decode("ascii")
    logger.debug("Compressed %s: %d -> %d bytes at %dx%d", name, len(data), len(jpeg), *size)
    return Attachment(
        area_id=area_id,
        name=name,
        mime_type=JPEG_MIME,
        encoded_data=encoded,
        preview_data=f"data:{JPEG_MIME};base64,{encoded}",
    )


async def ingest_image(
    area_id: str,
    filename: str,
    data: bytes,
    cfg: ImagePipelineConfig | None = None,
) -> Attachment:
    """Produce an Attachment off the event loop."""
    return await asyncio.to_thread(ingest_image_sync, area_id, filename, data, cfg)
