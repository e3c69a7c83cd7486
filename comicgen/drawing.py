"""Pillow helpers shared by the placeholder art and the print renderer."""

import base64
import io
from functools import lru_cache
from typing import List

from PIL import Image, ImageDraw, ImageFont

# Comic-style fonts first, then common Linux fallbacks
_FONT_CANDIDATES = [
    "Comic Sans MS",
    "ComicSansMS",
    "comic.ttf",
    "/usr/share/fonts/truetype/msttcorefonts/comic.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
]


@lru_cache(maxsize=16)
def get_font(size: int) -> ImageFont.ImageFont:
    """Load the first available font at ``size`` pixels."""
    for font_name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(font_name, size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default(size=size)


def text_width(font: ImageFont.ImageFont, text: str) -> int:
    bbox = font.getbbox(text)
    return int(bbox[2] - bbox[0])


def line_height(font: ImageFont.ImageFont, spacing: float = 1.2) -> int:
    bbox = font.getbbox("Ag")
    return int((bbox[3] - bbox[1]) * spacing) + 1


def wrap_text(text: str, font: ImageFont.ImageFont, max_width: int) -> List[str]:
    """Wrap ``text`` into lines no wider than ``max_width`` pixels."""
    words = text.split()
    lines = []
    current_line: List[str] = []

    for word in words:
        test_line = " ".join(current_line + [word])
        if text_width(font, test_line) <= max_width:
            current_line.append(word)
        else:
            if current_line:
                lines.append(" ".join(current_line))
            current_line = [word]

    if current_line:
        lines.append(" ".join(current_line))

    return lines


def draw_wrapped(
    draw: ImageDraw.ImageDraw,
    text: str,
    box: tuple[int, int, int, int],
    font: ImageFont.ImageFont,
    fill: str = "black",
) -> int:
    """Draw wrapped text inside ``box`` (left, top, right, bottom).

    Lines that do not fit vertically are dropped. Returns the y position
    after the last drawn line.
    """
    left, top, right, bottom = box
    step = line_height(font)
    y = top
    for line in wrap_text(text, font, right - left):
        if y + step > bottom:
            break
        draw.text((left, y), line, font=font, fill=fill)
        y += step
    return y


def encode_png(image: Image.Image) -> str:
    """Base64 PNG payload, the image format used throughout the project."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_image(payload: str) -> Image.Image:
    """Open a base64 image payload as an RGB Pillow image.

    Raises:
        ValueError: If the payload is not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(base64.b64decode(payload)))
        image.load()
    except (OSError, ValueError) as e:
        raise ValueError("Not a readable image payload") from e
    return image.convert("RGB")
