"""Placeholder rich menu images.

Draws one coloured rectangle per area, labelled with the action label, so
a menu can be deployed and tried on a phone before real artwork exists.
"""
from typing import Optional, Union
import io
import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from richmenu_manager.models.rich_menu import RichMenuRequest


# Configure logging
logger = logging.getLogger(__name__)

AREA_COLORS = ["#06c755", "#00b900", "#4cc764", "#2e8b57", "#3cb371", "#20b2aa"]
BACKGROUND_COLOR = "#f5f5f5"
BORDER_COLOR = "#ffffff"
TEXT_COLOR = "#ffffff"

FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:\\Windows\\Fonts\\arial.ttf",
]


def _load_font(size: int):
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    logger.debug("No TrueType font found, using the default bitmap font")
    return ImageFont.load_default()


def render_placeholder_image(
    menu: RichMenuRequest,
    output_path: Optional[Union[str, Path]] = None
) -> bytes:
    """
    Render a PNG placeholder for a rich menu.

    Args:
        menu: Rich menu whose size and areas are drawn
        output_path: Also write the PNG there when given

    Returns:
        PNG bytes
    """
    width, height = menu.size.width, menu.size.height
    img = Image.new("RGB", (width, height), color=BACKGROUND_COLOR)
    draw = ImageDraw.Draw(img)
    font = _load_font(max(24, height // 12))

    for index, area in enumerate(menu.areas):
        b = area.bounds
        box = [(b.x, b.y), (b.x + b.width - 1, b.y + b.height - 1)]
        draw.rectangle(box, fill=AREA_COLORS[index % len(AREA_COLORS)], outline=BORDER_COLOR, width=4)

        label = area.action.label or area.action.type
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        text_x = b.x + (b.width - (right - left)) // 2
        text_y = b.y + (b.height - (bottom - top)) // 2
        draw.text((text_x, text_y), label, fill=TEXT_COLOR, font=font)

    buffer = io.BytesIO()
    img.save(buffer, "PNG", optimize=True)
    data = buffer.getvalue()

    if output_path:
        Path(output_path).write_bytes(data)
        logger.info(f"Placeholder image written to {output_path} ({width}x{height}, {len(data)} bytes)")
    return data
