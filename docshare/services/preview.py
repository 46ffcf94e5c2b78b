"""First-page previews rendered with Pillow.

Only raster images are rendered natively; every other format raises
``UnsupportedFormat`` and the caller falls back to ``render_placeholder``.
"""

import io
import logging
import textwrap

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from docshare.config import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "bmp", "webp", "tif", "tiff"}
PLACEHOLDER_SIZE = (600, 800)


class UnsupportedFormat(Exception):
    pass


def _to_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_preview(data: bytes, hinted_extension: str | None = None) -> bytes:
    extension = (hinted_extension or "").lower().lstrip(".")
    if extension and extension not in IMAGE_EXTENSIONS:
        raise UnsupportedFormat(f"No renderer for .{extension} files")
    if len(data) > settings.max_preview_size_bytes:
        raise UnsupportedFormat("File is too large to preview")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.seek(0)
            page = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise UnsupportedFormat("File could not be decoded as an image") from exc
    bound = settings.preview_max_dimension
    page.thumbnail((bound, bound))
    return _to_png(page)


def render_placeholder(title: str | None, subtitle: str | None = None) -> bytes:
    image = Image.new("RGB", PLACEHOLDER_SIZE, "white")
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()
    draw.rectangle(
        [(20, 20), (PLACEHOLDER_SIZE[0] - 20, PLACEHOLDER_SIZE[1] - 20)],
        outline="#c8c8c8",
        width=2,
    )
    y = 80
    for line in textwrap.wrap(title or settings.brand_name, width=40)[:6]:
        draw.text((50, y), line, fill="#202020", font=font)
        y += 24
    if subtitle:
        y += 16
        for line in textwrap.wrap(subtitle, width=48)[:4]:
            draw.text((50, y), line, fill="#707070", font=font)
            y += 20
    draw.text(
        (50, PLACEHOLDER_SIZE[1] - 60), "Preview unavailable", fill="#a0a0a0", font=font
    )
    return _to_png(image)
