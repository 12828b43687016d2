"""Rating colour scale used for flair backgrounds."""
from __future__ import annotations

from texting_theory.core.classification import round_half_up

RATING_COLOR_STOPS: tuple[tuple[int, str], ...] = (
    (100, "#fa412d"),
    (375, "#ff7769"),
    (650, "#ffa459"),
    (925, "#f7c631"),
    (1200, "#95b776"),
    (1475, "#81b64c"),
    (1750, "#749bbf"),
    (2025, "#26c2a3"),
    (2200, "#722f2c"),
)

# Checked highest first.
TITLE_EMOJI_STOPS: tuple[tuple[int, str], ...] = (
    (2500, ":gm:"),
    (2400, ":im:"),
    (2300, ":fm:"),
    (2200, ":cm:"),
)


def _hex_to_rgb(value: str) -> tuple[int, int, int]:
    return int(value[1:3], 16), int(value[3:5], 16), int(value[5:7], 16)


def _lerp_hex(start: str, end: str, t: float) -> str:
    a = _hex_to_rgb(start)
    b = _hex_to_rgb(end)
    channels = (round_half_up(x + (y - x) * t) for x, y in zip(a, b, strict=True))
    return "#" + "".join(f"{channel:02x}" for channel in channels)


def rating_color(rating: float) -> str:
    """Return the interpolated hex colour for ``rating``."""
    first_rating, first_hex = RATING_COLOR_STOPS[0]
    last_rating, last_hex = RATING_COLOR_STOPS[-1]
    if rating <= first_rating:
        return first_hex
    if rating >= last_rating:
        return last_hex

    for (low, low_hex), (high, high_hex) in zip(RATING_COLOR_STOPS, RATING_COLOR_STOPS[1:]):
        if low <= rating <= high:
            return _lerp_hex(low_hex, high_hex, (rating - low) / (high - low))
    return last_hex


def title_emoji(rating: int) -> str:
    """Return the title emoji prefix earned by ``rating`` (empty below 2200)."""
    for floor, emoji in TITLE_EMOJI_STOPS:
        if rating >= floor:
            return emoji
    return ""
