import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .settings import DEFAULT_BACKGROUND, DEFAULT_PRIMARY, DEFAULT_SECONDARY


HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

# Prominence filter for brand colours: drop near-white, near-black and grey.
MIN_LIGHTNESS = 0.1
MAX_LIGHTNESS = 0.9
MIN_SATURATION = 0.1


@dataclass(frozen=True)
class ColorSample:
    hex: str
    red: int
    green: int
    blue: int
    area: float
    hue: float
    saturation: float
    lightness: float
    intensity: float


@dataclass(frozen=True)
class BrandPalette:
    primary: str
    secondary: str
    background: str = DEFAULT_BACKGROUND
    accent: Optional[str] = None


DEFAULT_PALETTE = BrandPalette(
    primary=DEFAULT_PRIMARY,
    secondary=DEFAULT_SECONDARY,
    background=DEFAULT_BACKGROUND,
)


def is_valid_hex_color(color: str) -> bool:
    return isinstance(color, str) and bool(HEX_COLOR_RE.match(color))


def rgb_to_hex(red: float, green: float, blue: float) -> str:
    channels = (max(0, min(255, int(round(c)))) for c in (red, green, blue))
    return "#" + "".join(f"{c:02X}" for c in channels)


def is_usable(sample: ColorSample) -> bool:
    return (
        MIN_LIGHTNESS < sample.lightness < MAX_LIGHTNESS
        and sample.saturation > MIN_SATURATION
    )


def select_palette(samples: Sequence[ColorSample]) -> BrandPalette:
    """
    Pick brand colours from extracted samples.

    Samples are ranked by area (stable, so ties keep their input order).
    The usable subset is preferred when it has at least two entries;
    otherwise the full ranking is used so a near-monochrome logo still
    yields its own colours. Secondary repeats primary when only one colour
    exists. Invalid primary/secondary candidates fall back to the defaults,
    an invalid accent is dropped, and background is always white.
    """
    if not samples:
        return DEFAULT_PALETTE

    ranked: List[ColorSample] = sorted(samples, key=lambda s: s.area, reverse=True)
    usable = [s for s in ranked if is_usable(s)]
    working = usable if len(usable) >= 2 else ranked

    primary = working[0].hex
    secondary = working[1].hex if len(working) > 1 else working[0].hex
    accent = working[2].hex if len(working) > 2 else None

    return BrandPalette(
        primary=primary if is_valid_hex_color(primary) else DEFAULT_PRIMARY,
        secondary=secondary if is_valid_hex_color(secondary) else DEFAULT_SECONDARY,
        background=DEFAULT_BACKGROUND,
        accent=accent if accent is not None and is_valid_hex_color(accent) else None,
    )
