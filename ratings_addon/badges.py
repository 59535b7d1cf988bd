"""
Default poster annotator: draws one badge per rating along the bottom of
the poster and returns the result as an inline JPEG data URI.
"""

import asyncio
import base64
import io

from PIL import Image, ImageDraw, ImageFont

from .scores import IMDB, METACRITIC, ROTTEN_TOMATOES

BADGE_COLORS = {
    IMDB: (245, 197, 24),
    METACRITIC: (102, 204, 51),
    ROTTEN_TOMATOES: (250, 50, 10),
}
BADGE_LABELS = {
    IMDB: "IMDb",
    METACRITIC: "MC",
    ROTTEN_TOMATOES: "RT",
}
SUFFIXES = {ROTTEN_TOMATOES: "%"}
DEFAULT_COLOR = (200, 200, 200)
JPEG_QUALITY = 90


def _font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


def badge_text(provider: str, value: str) -> str:
    label = BADGE_LABELS.get(provider, provider.replace("_", " ").title())
    return f"{label} {value}{SUFFIXES.get(provider, '')}"


def render_rating_badges(image_base64: str, ratings: dict[str, str]) -> str:
    image = Image.open(io.BytesIO(base64.b64decode(image_base64))).convert("RGB")
    width, height = image.size
    draw = ImageDraw.Draw(image, "RGBA")

    font_size = max(12, width // 18)
    font = _font(font_size)
    padding = max(4, font_size // 3)
    gap = padding
    y_bottom = height - padding

    x = padding
    y = y_bottom
    row_height = 0
    for provider, value in ratings.items():
        text = badge_text(provider, value)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        badge_w = (right - left) + 2 * padding
        badge_h = (bottom - top) + 2 * padding
        if x + badge_w > width - padding and x > padding:
            x = padding
            y -= row_height + gap
            row_height = 0
        box = (x, y - badge_h, x + badge_w, y)
        draw.rounded_rectangle(box, radius=padding, fill=(0, 0, 0, 190), outline=BADGE_COLORS.get(provider, DEFAULT_COLOR), width=2)
        draw.text((x + padding - left, y - badge_h + padding - top), text, font=font, fill=(255, 255, 255, 255))
        x += badge_w + gap
        row_height = max(row_height, badge_h)

    out = io.BytesIO()
    image.save(out, format="JPEG", quality=JPEG_QUALITY)
    return "data:image/jpeg;base64," + base64.b64encode(out.getvalue()).decode("ascii")


async def annotate_poster(image_base64: str, ratings: dict[str, str]) -> str:
    return await asyncio.to_thread(render_rating_badges, image_base64, ratings)
